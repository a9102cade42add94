from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from domain.errors import ConflictError
from domain.models import Player
from domain.repositories import PlayerRepository
from domain.values import PlayerId

_COLUMNS = (
    "id, name, email, total_score, games_played, is_active, last_played_at, created_at"
)


class SqlitePlayerRepository(PlayerRepository):
    """
    SQLite-backed implementation of `PlayerRepository`.

    This repository owns the `players` table and maps rows to the `Player`
    domain model. It is self-initialising: the table is created if needed.
    Email uniqueness is enforced by a UNIQUE constraint.
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
                CREATE TABLE IF NOT EXISTS players (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    total_score INTEGER NOT NULL DEFAULT 0,
                    games_played INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    last_played_at TEXT NOT NULL,
                    created_at TEXT NOT NULL
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
            last_played_at=datetime.fromisoformat(row[6]),
            created_at=datetime.fromisoformat(row[7]),
        )

    def _fetch_one(self, where: str, params: tuple) -> Optional[Player]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(f"SELECT {_COLUMNS} FROM players WHERE {where}", params)
            row = cur.fetchone()
            if not row:
                return None
            return self._to_domain(row)

    def get_by_id(self, player_id: PlayerId) -> Optional[Player]:
        return self._fetch_one("id = ?", (str(player_id),))

    def get_by_email(self, email: str) -> Optional[Player]:
        return self._fetch_one("email = ?", (email,))

    def email_exists(self, email: str) -> bool:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("SELECT 1 FROM players WHERE email = ?", (email,))
            return cur.fetchone() is not None

    def add(self, player: Player) -> None:
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    f"""
                    INSERT INTO players ({_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(player.id),
                        player.name,
                        player.email,
                        player.total_score,
                        player.games_played,
                        int(player.is_active),
                        player.last_played_at.isoformat(),
                        player.created_at.isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError:
            raise ConflictError(
                f"A player with email '{player.email}' already exists"
            ) from None

    def update(self, player: Player) -> None:
        try:
            with self._get_connection() as conn:
                cur = conn.cursor()
                cur.execute(
                    """
                    UPDATE players
                    SET name = ?, email = ?, total_score = ?, games_played = ?,
                        is_active = ?, last_played_at = ?
                    WHERE id = ?
                    """,
                    (
                        player.name,
                        player.email,
                        player.total_score,
                        player.games_played,
                        int(player.is_active),
                        player.last_played_at.isoformat(),
                        str(player.id),
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError:
            raise ConflictError(
                f"A player with email '{player.email}' already exists"
            ) from None

    def get_top_by_score(self, limit: int) -> List[Player]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM players
                WHERE is_active = 1 AND games_played >= 1
                ORDER BY total_score DESC, games_played DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cur.fetchall()
            return [self._to_domain(row) for row in rows]
