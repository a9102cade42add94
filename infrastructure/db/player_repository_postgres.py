from __future__ import annotations

from typing import List, Optional

import psycopg2
from psycopg2 import errors

from domain.errors import ConflictError
from domain.models import Player
from domain.repositories import PlayerRepository
from domain.values import PlayerId

_COLUMNS = (
    "id, name, email, total_score, games_played, is_active, last_played_at, created_at"
)


class PostgresPlayerRepository(PlayerRepository):
    """
    Postgres-backed implementation of `PlayerRepository`.

    Timestamps are stored as TIMESTAMPTZ, so psycopg2 hands back aware
    datetimes that map straight onto the domain model.
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
                    CREATE TABLE IF NOT EXISTS players (
                        id UUID PRIMARY KEY,
                        name VARCHAR(50) NOT NULL,
                        email VARCHAR(100) NOT NULL UNIQUE,
                        total_score INTEGER NOT NULL DEFAULT 0,
                        games_played INTEGER NOT NULL DEFAULT 0,
                        is_active BOOLEAN NOT NULL DEFAULT TRUE,
                        last_played_at TIMESTAMPTZ NOT NULL,
                        created_at TIMESTAMPTZ NOT NULL
                    )
                    """
                )
                conn.commit()

    @staticmethod
    def _to_domain(row: tuple) -> Player:
        return Player(
            id=PlayerId(str(row[0])),
            name=row[1],
            email=row[2],
            total_score=int(row[3]),
            games_played=int(row[4]),
            is_active=bool(row[5]),
            last_played_at=row[6],
            created_at=row[7],
        )

    def _fetch_one(self, where: str, params: tuple) -> Optional[Player]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM players WHERE {where}", params)
                row = cur.fetchone()
                if not row:
                    return None
                return self._to_domain(row)

    def get_by_id(self, player_id: PlayerId) -> Optional[Player]:
        return self._fetch_one("id = %s", (str(player_id),))

    def get_by_email(self, email: str) -> Optional[Player]:
        return self._fetch_one("email = %s", (email,))

    def email_exists(self, email: str) -> bool:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 FROM players WHERE email = %s", (email,))
                return cur.fetchone() is not None

    def add(self, player: Player) -> None:
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        INSERT INTO players ({_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        """,
                        (
                            str(player.id),
                            player.name,
                            player.email,
                            player.total_score,
                            player.games_played,
                            player.is_active,
                            player.last_played_at,
                            player.created_at,
                        ),
                    )
                    conn.commit()
        except errors.UniqueViolation:
            raise ConflictError(
                f"A player with email '{player.email}' already exists"
            ) from None

    def update(self, player: Player) -> None:
        try:
            with self._get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        UPDATE players
                        SET name = %s, email = %s, total_score = %s, games_played = %s,
                            is_active = %s, last_played_at = %s
                        WHERE id = %s
                        """,
                        (
                            player.name,
                            player.email,
                            player.total_score,
                            player.games_played,
                            player.is_active,
                            player.last_played_at,
                            str(player.id),
                        ),
                    )
                    conn.commit()
        except errors.UniqueViolation:
            raise ConflictError(
                f"A player with email '{player.email}' already exists"
            ) from None

    def get_top_by_score(self, limit: int) -> List[Player]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM players
                    WHERE is_active AND games_played >= 1
                    ORDER BY total_score DESC, games_played DESC
                    LIMIT %s
                    """,
                    (limit,),
                )
                return [self._to_domain(row) for row in cur.fetchall()]
