from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import List, Optional

from domain.errors import ConflictError
from domain.game_types import GameType
from domain.models import GameSession
from domain.repositories import GameSessionRepository
from domain.values import PlayerId, SessionId

_COLUMNS = (
    "id, player_id, game_type, score, started_at, ended_at, "
    "completed_successfully, game_data"
)


class SqliteGameSessionRepository(GameSessionRepository):
    """
    SQLite-backed implementation of `GameSessionRepository`.

    Sessions live in the `game_sessions` table; game data is stored as a
    JSON document. A partial unique index on `player_id` over rows without
    `ended_at` makes the store reject a second active session per player.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS game_sessions (
                    id TEXT PRIMARY KEY,
                    player_id TEXT NOT NULL,
                    game_type INTEGER NOT NULL,
                    score INTEGER NOT NULL DEFAULT 0,
                    started_at TEXT NOT NULL,
                    ended_at TEXT,
                    completed_successfully INTEGER NOT NULL DEFAULT 0,
                    game_data TEXT NOT NULL DEFAULT '{}'
                )
                """
            )
            cur.execute(
                """
                CREATE INDEX IF NOT EXISTS ix_game_sessions_player
                ON game_sessions (player_id, started_at)
                """
            )
            cur.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS ux_game_sessions_active_player
                ON game_sessions (player_id)
                WHERE ended_at IS NULL
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> GameSession:
        return GameSession(
            id=SessionId(str(row[0])),
            player_id=PlayerId(str(row[1])),
            game_type=GameType(int(row[2])),
            score=int(row[3]),
            started_at=datetime.fromisoformat(row[4]),
            ended_at=datetime.fromisoformat(row[5]) if row[5] else None,
            completed_successfully=bool(row[6]),
            game_data=json.loads(row[7] or "{}"),
        )

    def get_by_id(self, session_id: SessionId) -> Optional[GameSession]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_COLUMNS} FROM game_sessions WHERE id = ?",
                (str(session_id),),
            )
            row = cur.fetchone()
            if not row:
                return None
            return self._to_domain(row)

    def get_by_player(
        self,
        player_id: PlayerId,
        game_type: Optional[GameType] = None,
    ) -> List[GameSession]:
        query = f"SELECT {_COLUMNS} FROM game_sessions WHERE player_id = ?"
        params: tuple = (str(player_id),)
        if game_type is not None:
            query += " AND game_type = ?"
            params += (int(game_type),)
        query += " ORDER BY started_at DESC"

        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(query, params)
            rows = cur.fetchall()
            return [self._to_domain(row) for row in rows]

    def add(self, session: GameSession) -> None:
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    f"""
                    INSERT INTO game_sessions ({_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(session.id),
                        str(session.player_id),
                        int(session.game_type),
                        session.score,
                        session.started_at.isoformat(),
                        session.ended_at.isoformat() if session.ended_at else None,
                        int(session.completed_successfully),
                        json.dumps(session.game_data),
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError:
            raise ConflictError(
                f"Player {session.player_id} already has an active session"
            ) from None

    def update(self, session: GameSession) -> None:
        """
        Write back an active session.

        Only rows still without `ended_at` are written, so of two requests
        ending the same session the second raises `ConflictError`.
        """

        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE game_sessions
                SET score = ?, ended_at = ?, completed_successfully = ?, game_data = ?
                WHERE id = ? AND ended_at IS NULL
                """,
                (
                    session.score,
                    session.ended_at.isoformat() if session.ended_at else None,
                    int(session.completed_successfully),
                    json.dumps(session.game_data),
                    str(session.id),
                ),
            )
            if cur.rowcount == 0:
                raise ConflictError(f"Game session '{session.id}' has already ended")
            conn.commit()
