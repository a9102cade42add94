from __future__ import annotations

import logging
from dataclasses import dataclass

from domain.repositories import (
    GameSessionRepository,
    IdentityRepository,
    PlayerRepository,
)
from infrastructure.config import POSTGRES_BACKEND, Settings

logger = logging.getLogger(__name__)


@dataclass
class Repositories:
    players: PlayerRepository
    sessions: GameSessionRepository
    identities: IdentityRepository


def build_repositories(settings: Settings) -> Repositories:
    """Instantiate the stores for the configured database backend."""

    if settings.db_backend == POSTGRES_BACKEND:
        # Imported lazily so SQLite deployments do not need a Postgres driver.
        from infrastructure.db.identity_repository_postgres import (
            PostgresIdentityRepository,
        )
        from infrastructure.db.player_repository_postgres import PostgresPlayerRepository
        from infrastructure.db.session_repository_postgres import (
            PostgresGameSessionRepository,
        )

        params = settings.postgres_params
        logger.info(
            "Using Postgres database %s on %s", settings.postgres_db, settings.postgres_host
        )
        return Repositories(
            players=PostgresPlayerRepository(params),
            sessions=PostgresGameSessionRepository(params),
            identities=PostgresIdentityRepository(params),
        )

    from infrastructure.db.identity_repository_sqlite import SqliteIdentityRepository
    from infrastructure.db.player_repository_sqlite import SqlitePlayerRepository
    from infrastructure.db.session_repository_sqlite import SqliteGameSessionRepository

    logger.info("Using SQLite database %s", settings.db_path)
    return Repositories(
        players=SqlitePlayerRepository(settings.db_path),
        sessions=SqliteGameSessionRepository(settings.db_path),
        identities=SqliteIdentityRepository(settings.db_path),
    )
