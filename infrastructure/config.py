from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

SQLITE_BACKEND = "sqlite"
POSTGRES_BACKEND = "postgres"


@dataclass
class Settings:
    """Runtime configuration read from the environment (and `.env`)."""

    db_backend: str = SQLITE_BACKEND
    db_path: str = "gaming.db"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "gaming"
    postgres_user: str = "postgres"
    postgres_password: str = ""
    discord_token: Optional[str] = None
    telegram_token: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None
    slow_operation_ms: int = 5000

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "Settings":
        backend = environ.get("DB_BACKEND", SQLITE_BACKEND).strip().lower()
        if backend not in (SQLITE_BACKEND, POSTGRES_BACKEND):
            raise RuntimeError(f"Unsupported DB_BACKEND: {backend!r}")

        return cls(
            db_backend=backend,
            db_path=environ.get("DB_PATH", "gaming.db"),
            postgres_host=environ.get("POSTGRES_HOST", "localhost"),
            postgres_port=int(environ.get("POSTGRES_PORT", "5432")),
            postgres_db=environ.get("POSTGRES_DB", "gaming"),
            postgres_user=environ.get("POSTGRES_USER", "postgres"),
            postgres_password=environ.get("POSTGRES_PASSWORD", ""),
            discord_token=environ.get("DISCORD_TOKEN") or None,
            telegram_token=environ.get("TELEGRAM_TOKEN") or None,
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
            log_file=environ.get("LOG_FILE") or None,
            slow_operation_ms=int(environ.get("SLOW_OPERATION_MS", "5000")),
        )

    @property
    def postgres_params(self) -> dict:
        """Keyword arguments for `psycopg2.connect`."""

        return {
            "host": self.postgres_host,
            "port": self.postgres_port,
            "dbname": self.postgres_db,
            "user": self.postgres_user,
            "password": self.postgres_password,
        }


def load_settings() -> Settings:
    load_dotenv()
    return Settings.from_env(os.environ)
