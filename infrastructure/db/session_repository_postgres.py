from __future__ import annotations

from typing import List, Optional

import psycopg2
from psycopg2 import errors
from psycopg2.extras import Json

from domain.errors import ConflictError
from domain.game_types import GameType
from domain.models import GameSession
from domain.repositories import GameSessionRepository
from domain.values import PlayerId, SessionId

_COLUMNS = (
    "id, player_id, game_type, score, started_at, ended_at, "
    "completed_successfully, game_data"
)


class PostgresGameSessionRepository(GameSessionRepository):
    """
    Postgres-backed implementation of `GameSessionRepository`.

    Game data is a JSONB document. As in the SQLite store, a partial unique
    index allows a single session without `ended_at` per player.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._ensure_table()

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS game_sessions (
                        id UUID PRIMARY KEY,
                        player_id UUID NOT NULL,
                        game_type SMALLINT NOT NULL,
                        score INTEGER NOT NULL DEFAULT 0,
                        started_at TIMESTAMPTZ NOT NULL,
                        ended_at TIMESTAMPTZ,
                        completed_successfully BOOLEAN NOT NULL DEFAULT FALSE,
                        game_data JSONB NOT NULL DEFAULT '{}'::jsonb
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
            started_at=row[4],
            ended_at=row[5],
            completed_successfully=bool(row[6]),
            game_data=dict(row[7] or {}),
        )

    def get_by_id(self, session_id: SessionId) -> Optional[GameSession]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM game_sessions WHERE id = %s",
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
        query = f"SELECT {_COLUMNS} FROM game_sessions WHERE player_id = %s"
        params: tuple = (str(player_id),)
        if game_type is not None:
            query += " AND game_type = %s"
            params += (int(game_type),)
        query += " ORDER BY started_at DESC"

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return [self._to_domain(row) for row in cur.fetchall()]

    def add(self, session: GameSession) -> None:
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        INSERT INTO game_sessions ({_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        """,
                        (
                            str(session.id),
                            str(session.player_id),
                            int(session.game_type),
                            session.score,
                            session.started_at,
                            session.ended_at,
                            session.completed_successfully,
                            Json(session.game_data),
                        ),
                    )
                    conn.commit()
        except errors.UniqueViolation:
            raise ConflictError(
                f"Player {session.player_id} already has an active session"
            ) from None

    def update(self, session: GameSession) -> None:
        """Write back an active session; `ConflictError` once it has ended."""

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE game_sessions
                    SET score = %s, ended_at = %s, completed_successfully = %s,
                        game_data = %s
                    WHERE id = %s AND ended_at IS NULL
                    """,
                    (
                        session.score,
                        session.ended_at,
                        session.completed_successfully,
                        Json(session.game_data),
                        str(session.id),
                    ),
                )
                if cur.rowcount == 0:
                    raise ConflictError(
                        f"Game session '{session.id}' has already ended"
                    )
                conn.commit()
