from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from domain.errors import ConflictError, ErrorKind, GamingError, NotFoundError
from domain.models import GameSession, Player
from domain.repositories import IdentityRepository, PlayerRepository
from domain.values import PlayerId, normalize_email

from application.events import EventDispatcher, default_dispatcher
from application.instrumentation import timed_operation

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_SIZE = 10


@dataclass
class ExternalContext:
    """
    Information about the caller from a particular channel (Telegram, Discord).

    The application layer never depends on concrete SDK types; it only sees
    this small context object.
    """

    provider: str
    provider_user_id: str
    display_name: str


@dataclass
class OperationResult:
    """Generic result type: either success, or a failure kind with a message."""

    success: bool
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, error: GamingError):
        return cls(success=False, error_kind=error.kind, error_message=error.message)


@dataclass
class PlayerResult(OperationResult):
    player: Optional[Player] = None


@dataclass
class LeaderboardResult(OperationResult):
    players: List[Player] = field(default_factory=list)


@dataclass
class SessionResult(OperationResult):
    """Outcome of a session operation, with the derived ratings once it has ended."""

    session: Optional[GameSession] = None
    performance_rating: int = 0
    flagged_for_review: bool = False


@dataclass
class SessionListResult(OperationResult):
    sessions: List[GameSession] = field(default_factory=list)


def as_player_id(value: Union[PlayerId, str]) -> PlayerId:
    if isinstance(value, PlayerId):
        return value
    return PlayerId(value)


def load_player(player_repo: PlayerRepository, player_id: PlayerId) -> Player:
    player = player_repo.get_by_id(player_id)
    if player is None:
        raise NotFoundError(f"Player '{player_id}' not found")
    return player


@timed_operation
def create_player(
    name: str,
    email: str,
    player_repo: PlayerRepository,
    dispatcher: Optional[EventDispatcher] = None,
) -> PlayerResult:
    """
    Register a new player account.

    - Name and email are validated and normalized by the domain.
    - Emails are unique; a taken email yields a conflict.
    """

    dispatcher = dispatcher or default_dispatcher
    logger.info("Creating player with email %s", email)
    try:
        player = Player.create(name, email)
        if player_repo.email_exists(player.email):
            raise ConflictError(f"A player with email '{player.email}' already exists")
        player_repo.add(player)
    except GamingError as exc:
        logger.warning("Could not create player: %s", exc.message)
        return PlayerResult.failure(exc)

    dispatcher.dispatch(player.pull_events())
    logger.info("Created player %s", player.id)
    return PlayerResult(success=True, player=player)


@timed_operation
def get_player(
    player_id: Union[PlayerId, str],
    player_repo: PlayerRepository,
) -> PlayerResult:
    try:
        player = load_player(player_repo, as_player_id(player_id))
    except GamingError as exc:
        return PlayerResult.failure(exc)
    return PlayerResult(success=True, player=player)


@timed_operation
def update_player_info(
    player_id: Union[PlayerId, str],
    name: str,
    email: str,
    player_repo: PlayerRepository,
    dispatcher: Optional[EventDispatcher] = None,
) -> PlayerResult:
    """Rename a player or change their email; the new email must be free."""

    dispatcher = dispatcher or default_dispatcher
    try:
        player = load_player(player_repo, as_player_id(player_id))
        owner = player_repo.get_by_email(normalize_email(email))
        if owner is not None and owner.id != player.id:
            raise ConflictError(f"A player with email '{owner.email}' already exists")
        player.update_info(name, email)
        player_repo.update(player)
    except GamingError as exc:
        logger.warning("Could not update player %s: %s", player_id, exc.message)
        return PlayerResult.failure(exc)

    dispatcher.dispatch(player.pull_events())
    return PlayerResult(success=True, player=player)


@timed_operation
def deactivate_player(
    player_id: Union[PlayerId, str],
    player_repo: PlayerRepository,
    dispatcher: Optional[EventDispatcher] = None,
) -> PlayerResult:
    dispatcher = dispatcher or default_dispatcher
    try:
        player = load_player(player_repo, as_player_id(player_id))
        player.deactivate()
        player_repo.update(player)
    except GamingError as exc:
        return PlayerResult.failure(exc)

    dispatcher.dispatch(player.pull_events())
    logger.info("Deactivated player %s", player.id)
    return PlayerResult(success=True, player=player)


@timed_operation
def reactivate_player(
    player_id: Union[PlayerId, str],
    player_repo: PlayerRepository,
    dispatcher: Optional[EventDispatcher] = None,
) -> PlayerResult:
    dispatcher = dispatcher or default_dispatcher
    try:
        player = load_player(player_repo, as_player_id(player_id))
        player.reactivate()
        player_repo.update(player)
    except GamingError as exc:
        return PlayerResult.failure(exc)

    dispatcher.dispatch(player.pull_events())
    logger.info("Reactivated player %s", player.id)
    return PlayerResult(success=True, player=player)


@timed_operation
def get_leaderboard(
    player_repo: PlayerRepository,
    limit: int = DEFAULT_LEADERBOARD_SIZE,
) -> LeaderboardResult:
    """
    Top players by total score, restricted to those who qualify.

    The store applies the qualification rule before the limit: active
    players with at least one completed game.
    """

    players = player_repo.get_top_by_score(limit)
    return LeaderboardResult(success=True, players=players)


@timed_operation
def register_from_channel(
    external_ctx: ExternalContext,
    name: str,
    email: str,
    player_repo: PlayerRepository,
    identity_repo: IdentityRepository,
    dispatcher: Optional[EventDispatcher] = None,
) -> PlayerResult:
    """
    Create a player for a chat user and link the chat identity to it.

    A chat identity that is already linked to an existing player cannot
    register again.
    """

    linked_id = identity_repo.find_player_id(
        external_ctx.provider, external_ctx.provider_user_id
    )
    if linked_id is not None and player_repo.get_by_id(linked_id) is not None:
        return PlayerResult.failure(
            ConflictError("This account is already registered.")
        )

    result = create_player(name, email, player_repo, dispatcher)
    if not result.success:
        return result

    identity_repo.link(
        external_ctx.provider, external_ctx.provider_user_id, result.player.id
    )
    return result


@timed_operation
def resolve_channel_player(
    external_ctx: ExternalContext,
    player_repo: PlayerRepository,
    identity_repo: IdentityRepository,
) -> PlayerResult:
    """Find the player linked to the calling chat user."""

    player_id = identity_repo.find_player_id(
        external_ctx.provider, external_ctx.provider_user_id
    )
    player = player_repo.get_by_id(player_id) if player_id is not None else None
    if player is None:
        return PlayerResult.failure(
            NotFoundError("You are not registered yet.")
        )
    return PlayerResult(success=True, player=player)
