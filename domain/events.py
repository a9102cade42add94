from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Union


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


SCORE_MILESTONES = (1000, 5000, 10000)
HIGH_PERFORMANCE_SCORE = 1000


@dataclass(frozen=True)
class PlayerCreated:
    player_id: str
    name: str
    email: str
    occurred_on: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class PlayerScoreUpdated:
    """Raised whenever a finished session is credited to a player."""

    player_id: str
    old_score: int
    new_score: int
    score_change: int
    game_completed: bool
    occurred_on: datetime = field(default_factory=_utcnow)

    @property
    def is_significant_milestone(self) -> bool:
        return any(
            self.old_score < milestone <= self.new_score
            for milestone in SCORE_MILESTONES
        )


@dataclass(frozen=True)
class PlayerInfoUpdated:
    player_id: str
    name: str
    email: str
    occurred_on: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class PlayerDeactivated:
    player_id: str
    occurred_on: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class PlayerReactivated:
    player_id: str
    occurred_on: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class GameSessionStarted:
    session_id: str
    player_id: str
    game_type: int
    occurred_on: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class GameSessionEnded:
    session_id: str
    player_id: str
    game_type: int
    final_score: int
    completed_successfully: bool
    duration: timedelta
    occurred_on: datetime = field(default_factory=_utcnow)

    @property
    def is_high_performance(self) -> bool:
        return self.completed_successfully and self.final_score >= HIGH_PERFORMANCE_SCORE


DomainEvent = Union[
    PlayerCreated,
    PlayerScoreUpdated,
    PlayerInfoUpdated,
    PlayerDeactivated,
    PlayerReactivated,
    GameSessionStarted,
    GameSessionEnded,
]
