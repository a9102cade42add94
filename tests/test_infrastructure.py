import json
import logging
import os
import tempfile
import unittest
from datetime import timedelta

from application import instrumentation
from application.events import EventDispatcher, register_audit_handlers
from domain.events import GameSessionEnded, PlayerCreated, PlayerScoreUpdated
from infrastructure.config import POSTGRES_BACKEND, SQLITE_BACKEND, Settings
from infrastructure.db.player_repository_sqlite import SqlitePlayerRepository
from infrastructure.db.session_repository_sqlite import SqliteGameSessionRepository
from infrastructure.logging_config import JSONFormatter
from infrastructure.repositories import build_repositories


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        settings = Settings.from_env({})
        self.assertEqual(settings.db_backend, SQLITE_BACKEND)
        self.assertEqual(settings.db_path, "gaming.db")
        self.assertIsNone(settings.discord_token)
        self.assertEqual(settings.log_level, "INFO")
        self.assertEqual(settings.slow_operation_ms, 5000)

    def test_reads_postgres_settings(self):
        settings = Settings.from_env(
            {
                "DB_BACKEND": "Postgres",
                "POSTGRES_HOST": "db",
                "POSTGRES_PORT": "6543",
                "POSTGRES_PASSWORD": "secret",
                "LOG_LEVEL": "debug",
                "TELEGRAM_TOKEN": "abc",
            }
        )
        self.assertEqual(settings.db_backend, POSTGRES_BACKEND)
        self.assertEqual(settings.postgres_params["port"], 6543)
        self.assertEqual(settings.postgres_params["host"], "db")
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertEqual(settings.telegram_token, "abc")

    def test_rejects_unknown_backend(self):
        with self.assertRaises(RuntimeError):
            Settings.from_env({"DB_BACKEND": "mongo"})


class BuildRepositoriesTests(unittest.TestCase):
    def test_sqlite_backend_builds_all_stores(self):
        handle, db_path = tempfile.mkstemp(suffix=".db")
        os.close(handle)
        self.addCleanup(os.remove, db_path)

        repos = build_repositories(Settings(db_path=db_path))
        self.assertIsInstance(repos.players, SqlitePlayerRepository)
        self.assertIsNone(repos.identities.find_player_id("discord", "1"))
        self.assertIsInstance(repos.sessions, SqliteGameSessionRepository)


class JSONFormatterTests(unittest.TestCase):
    def test_formats_record_as_json(self):
        record = logging.LogRecord(
            "application.sessions", logging.WARNING, __file__, 1, "Session %s", ("abc",), None
        )
        payload = json.loads(JSONFormatter().format(record))
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["logger"], "application.sessions")
        self.assertEqual(payload["message"], "Session abc")
        self.assertNotIn("exception", payload)


class TimedOperationTests(unittest.TestCase):
    def tearDown(self) -> None:
        instrumentation.set_slow_operation_threshold(
            instrumentation.DEFAULT_SLOW_OPERATION_MS
        )

    def test_warns_when_operation_is_slow(self):
        @instrumentation.timed_operation
        def work(value):
            return value * 2

        instrumentation.set_slow_operation_threshold(-1)
        with self.assertLogs("application.instrumentation", level="WARNING") as logs:
            self.assertEqual(work(21), 42)
        self.assertIn("Slow operation: work", logs.output[0])
        self.assertEqual(work.__name__, "work")


class EventDispatcherTests(unittest.TestCase):
    def test_failing_handler_does_not_stop_delivery(self):
        dispatcher = EventDispatcher()
        received = []

        def broken(event):
            raise RuntimeError("boom")

        dispatcher.subscribe(PlayerCreated, broken)
        dispatcher.subscribe(PlayerCreated, received.append)

        event = PlayerCreated(player_id="p1", name="Ada", email="ada@ex.com")
        with self.assertLogs("application.events", level="ERROR"):
            dispatcher.dispatch([event])
        self.assertEqual(received, [event])

    def test_audit_handlers_log_achievements(self):
        dispatcher = EventDispatcher()
        register_audit_handlers(dispatcher)

        with self.assertLogs("application.events", level="INFO") as logs:
            dispatcher.dispatch(
                [
                    PlayerScoreUpdated(
                        player_id="p1",
                        old_score=900,
                        new_score=1200,
                        score_change=300,
                        game_completed=True,
                    ),
                    GameSessionEnded(
                        session_id="s1",
                        player_id="p1",
                        game_type=2,
                        final_score=1500,
                        completed_successfully=True,
                        duration=timedelta(minutes=3),
                    ),
                ]
            )
        output = "\n".join(logs.output)
        self.assertIn("score milestone", output)
        self.assertIn("High-performance session s1", output)


if __name__ == "__main__":
    unittest.main()
