from __future__ import annotations

from typing import List, Optional, Protocol

from .game_types import GameType
from .models import GameSession, Player
from .values import PlayerId, SessionId


class PlayerRepository(Protocol):
    """
    Abstraction over player persistence.

    Implementations are responsible for:
    - Mapping between stored records and the `Player` domain model.
    - Enforcing email uniqueness: `add` raises `ConflictError` when the
      email is already taken.
    """

    def get_by_id(self, player_id: PlayerId) -> Optional[Player]:
        """Return the player with the given ID, or None if not found."""

        ...

    def get_by_email(self, email: str) -> Optional[Player]:
        """Look up a player by normalized email."""

        ...

    def email_exists(self, email: str) -> bool:
        ...

    def add(self, player: Player) -> None:
        """Persist a new player."""

        ...

    def update(self, player: Player) -> None:
        """Replace the stored state of an existing player."""

        ...

    def get_top_by_score(self, limit: int) -> List[Player]:
        """
        Return up to `limit` ranked players, highest total score first.

        Only active players with at least one completed game are ranked.
        """

        ...


class GameSessionRepository(Protocol):
    """
    Persistence abstraction for game sessions.

    Implementations must guarantee at most one active session per player:
    `add` raises `ConflictError` if the player already has a session
    without an end timestamp.
    """

    def get_by_id(self, session_id: SessionId) -> Optional[GameSession]:
        ...

    def get_by_player(
        self,
        player_id: PlayerId,
        game_type: Optional[GameType] = None,
    ) -> List[GameSession]:
        """Return the player's sessions, most recently started first."""

        ...

    def add(self, session: GameSession) -> None:
        ...

    def update(self, session: GameSession) -> None:
        """
        Replace the stored state of a session that is still active.

        Raises `ConflictError` when the stored session has already ended.
        """

        ...


class IdentityRepository(Protocol):
    """
    Maps external chat identities (Telegram/Discord) to player IDs.

    The application layer works with player IDs and leaves
    provider-specific identifiers to this abstraction.
    """

    def find_player_id(
        self,
        provider: str,
        provider_user_id: str,
    ) -> Optional[PlayerId]:
        """Return the player linked to the given external identity, if any."""

        ...

    def link(
        self,
        provider: str,
        provider_user_id: str,
        player_id: PlayerId,
    ) -> None:
        """Associate an external identity with a player, replacing any old link."""

        ...
