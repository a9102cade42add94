import unittest
from datetime import datetime, timedelta, timezone

from domain.errors import InvalidStateError, ValidationError
from domain.events import (
    GameSessionEnded,
    GameSessionStarted,
    PlayerCreated,
    PlayerDeactivated,
    PlayerReactivated,
    PlayerScoreUpdated,
)
from domain.game_types import GameType
from domain.models import GameSession, Player
from domain.values import PlayerId

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class PlayerTests(unittest.TestCase):
    def test_create_starts_with_empty_statistics(self):
        player = Player.create("Ada", "ADA@EX.com", now=T0)
        self.assertEqual(player.name, "Ada")
        self.assertEqual(player.email, "ada@ex.com")
        self.assertEqual(player.total_score, 0)
        self.assertEqual(player.games_played, 0)
        self.assertTrue(player.is_active)
        self.assertEqual(player.created_at, T0)
        self.assertEqual(player.last_played_at, T0)

        events = player.pull_events()
        self.assertEqual(len(events), 1)
        self.assertIsInstance(events[0], PlayerCreated)
        self.assertEqual(player.pull_events(), [])

    def test_create_validates_input(self):
        with self.assertRaises(ValidationError):
            Player.create("A", "ada@ex.com")
        with self.assertRaises(ValidationError):
            Player.create("Ada", "not-an-email")

    def test_update_score_never_goes_negative(self):
        player = Player.create("Ada", "ada@ex.com")
        player.update_score(100, completed=True)
        player.update_score(-500, completed=False)
        self.assertEqual(player.total_score, 0)
        self.assertEqual(player.games_played, 1)

    def test_update_score_counts_only_completed_games(self):
        player = Player.create("Ada", "ada@ex.com", now=T0)
        later = T0 + timedelta(hours=1)
        player.update_score(50, completed=False, now=later)
        self.assertEqual(player.total_score, 50)
        self.assertEqual(player.games_played, 0)
        self.assertEqual(player.last_played_at, later)

    def test_score_update_event_reports_milestones(self):
        player = Player.create("Ada", "ada@ex.com")
        player.pull_events()
        player.update_score(900, completed=True)
        player.update_score(200, completed=True)

        first, second = player.pull_events()
        self.assertIsInstance(second, PlayerScoreUpdated)
        self.assertFalse(first.is_significant_milestone)
        self.assertTrue(second.is_significant_milestone)
        self.assertEqual((second.old_score, second.new_score), (900, 1100))

    def test_average_score_per_game(self):
        player = Player.create("Ada", "ada@ex.com")
        self.assertEqual(player.average_score_per_game(), 0)
        for score in (100, 200, 300):
            player.update_score(score, completed=True)
        self.assertEqual(player.average_score_per_game(), 200.0)

    def test_deactivate_and_reactivate(self):
        player = Player.create("Ada", "ada@ex.com", now=T0)
        player.pull_events()
        player.deactivate()
        self.assertFalse(player.is_active)

        later = T0 + timedelta(days=2)
        player.reactivate(now=later)
        self.assertTrue(player.is_active)
        self.assertEqual(player.last_played_at, later)
        self.assertEqual(
            [type(e) for e in player.pull_events()],
            [PlayerDeactivated, PlayerReactivated],
        )

    def test_qualifies_for_leaderboard(self):
        player = Player.create("Ada", "ada@ex.com")
        self.assertFalse(player.qualifies_for_leaderboard())
        player.update_score(10, completed=True)
        self.assertTrue(player.qualifies_for_leaderboard())
        player.deactivate()
        self.assertFalse(player.qualifies_for_leaderboard())

    def test_update_info_revalidates(self):
        player = Player.create("Ada", "ada@ex.com")
        player.update_info(" Grace ", "GRACE@EX.com")
        self.assertEqual((player.name, player.email), ("Grace", "grace@ex.com"))
        with self.assertRaises(ValidationError):
            player.update_info("Grace", "broken")
        self.assertEqual(player.email, "grace@ex.com")


class GameSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session = GameSession.create(PlayerId.new(), GameType.DEPLOY_THE_CAT, now=T0)

    def test_create_is_active_with_zero_score(self):
        self.assertTrue(self.session.is_active)
        self.assertEqual(self.session.score, 0)
        self.assertIsNone(self.session.ended_at)
        self.assertEqual(self.session.duration(T0 + timedelta(seconds=90)), timedelta(seconds=90))
        (event,) = self.session.pull_events()
        self.assertIsInstance(event, GameSessionStarted)
        self.assertEqual(event.game_type, 1)

    def test_score_is_floored_at_zero(self):
        self.session.update_score(40)
        self.session.update_score(-100)
        self.assertEqual(self.session.score, 0)
        self.session.set_final_score(-5)
        self.assertEqual(self.session.score, 0)
        self.session.set_final_score(250)
        self.assertEqual(self.session.score, 250)

    def test_game_data_last_write_wins(self):
        self.session.set_game_data("successful_deploys", 3)
        self.session.set_game_data("successful_deploys", 4)
        self.assertEqual(self.session.get_game_data("successful_deploys"), 4)
        self.assertIsNone(self.session.get_game_data("missing"))
        with self.assertRaises(ValidationError):
            self.session.set_game_data("  ", 1)

    def test_end_is_one_way(self):
        self.session.end(True, now=T0 + timedelta(minutes=2))
        self.assertFalse(self.session.is_active)
        with self.assertRaises(InvalidStateError):
            self.session.end(True)
        with self.assertRaises(InvalidStateError):
            self.session.update_score(10)
        with self.assertRaises(InvalidStateError):
            self.session.set_final_score(10)
        with self.assertRaises(InvalidStateError):
            self.session.set_game_data("key", 1)

    def test_overlong_session_is_never_completed(self):
        self.session.set_final_score(500)
        self.session.end(True, now=T0 + timedelta(minutes=65))
        self.assertFalse(self.session.completed_successfully)
        self.assertFalse(self.session.qualifies_for_scoring())

        ended = [e for e in self.session.pull_events() if isinstance(e, GameSessionEnded)]
        self.assertFalse(ended[0].completed_successfully)
        self.assertEqual(ended[0].duration, timedelta(minutes=65))

    def test_exactly_sixty_minutes_keeps_completion(self):
        self.session.set_final_score(10)
        self.session.end(True, now=T0 + timedelta(minutes=60))
        self.assertTrue(self.session.completed_successfully)
        self.assertTrue(self.session.qualifies_for_scoring())

    def test_qualifies_for_scoring_bounds(self):
        self.assertFalse(self.session.qualifies_for_scoring(T0 + timedelta(minutes=5)))
        self.session.set_final_score(100)
        self.assertFalse(self.session.qualifies_for_scoring(T0 + timedelta(seconds=29)))
        self.assertTrue(self.session.qualifies_for_scoring(T0 + timedelta(seconds=30)))
        self.assertTrue(self.session.qualifies_for_scoring(T0 + timedelta(minutes=60)))
        self.assertFalse(self.session.qualifies_for_scoring(T0 + timedelta(minutes=61)))

    def test_rating_is_zero_unless_completed_with_score(self):
        self.session.set_game_data("successful_deploys", 10)
        self.session.end(False, now=T0 + timedelta(minutes=2))
        self.assertEqual(self.session.calculate_performance_rating(), 0)

        zero = GameSession.create(PlayerId.new(), GameType.DEPLOY_THE_CAT, now=T0)
        zero.end(True, now=T0 + timedelta(minutes=2))
        self.assertEqual(zero.calculate_performance_rating(), 0)

    def test_rating_delegates_to_policy(self):
        self.session.set_game_data("successful_deploys", 9)
        self.session.set_game_data("cat_interventions", 1)
        self.session.set_final_score(300)
        self.session.end(True, now=T0 + timedelta(minutes=3))
        self.assertEqual(self.session.calculate_performance_rating(), 5)

    def test_flags_high_score_in_under_a_minute(self):
        self.session.set_final_score(1500)
        self.assertTrue(self.session.should_flag_for_review(T0 + timedelta(seconds=45)))
        self.assertFalse(self.session.should_flag_for_review(T0 + timedelta(minutes=2)))

        self.session.set_final_score(1000)
        self.assertFalse(self.session.should_flag_for_review(T0 + timedelta(seconds=45)))

    def test_flags_superhuman_reaction_game(self):
        session = GameSession.create(PlayerId.new(), GameType.GIT_BLASTER, now=T0)
        session.set_final_score(200)
        session.set_game_data("average_accuracy", 1.0)
        session.set_game_data("average_response_time_ms", 80)
        self.assertTrue(session.should_flag_for_review(T0 + timedelta(minutes=5)))

        session.set_game_data("average_response_time_ms", 250)
        self.assertFalse(session.should_flag_for_review(T0 + timedelta(minutes=5)))

        session.set_game_data("average_accuracy", 0.95)
        session.set_game_data("average_response_time_ms", 50)
        self.assertFalse(session.should_flag_for_review(T0 + timedelta(minutes=5)))

    def test_reaction_rule_only_applies_to_reaction_game(self):
        self.session.set_game_data("average_accuracy", 1.0)
        self.session.set_game_data("average_response_time_ms", 10)
        self.assertFalse(self.session.should_flag_for_review(T0 + timedelta(minutes=5)))


if __name__ == "__main__":
    unittest.main()
