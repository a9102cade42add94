from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .errors import InvalidStateError, ValidationError
from .events import (
    DomainEvent,
    GameSessionEnded,
    GameSessionStarted,
    PlayerCreated,
    PlayerDeactivated,
    PlayerInfoUpdated,
    PlayerReactivated,
    PlayerScoreUpdated,
)
from .game_types import GameType
from .scoring import (
    AVERAGE_ACCURACY,
    AVERAGE_RESPONSE_TIME_MS,
    DEFAULT_SCORING_POLICY,
    ScoringPolicy,
    read_number,
)
from .values import PlayerId, SessionId, normalize_email, normalize_player_name

MAX_SESSION_DURATION = timedelta(minutes=60)
MIN_SCORING_DURATION = timedelta(seconds=30)
REVIEW_SCORE_THRESHOLD = 1000
REVIEW_DURATION_THRESHOLD = timedelta(minutes=1)
SUPERHUMAN_RESPONSE_TIME_MS = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Player:
    """
    Domain representation of a player account and its lifetime statistics.

    The model is independent of any transport (Discord, Telegram) or
    database schema. Mutating methods append events to `pending_events`;
    the application layer pulls and dispatches them after persisting.
    """

    id: PlayerId
    name: str
    email: str
    created_at: datetime
    last_played_at: datetime
    total_score: int = 0
    games_played: int = 0
    is_active: bool = True
    pending_events: List[DomainEvent] = field(
        default_factory=list, repr=False, compare=False
    )

    @classmethod
    def create(cls, name: str, email: str, now: Optional[datetime] = None) -> "Player":
        now = now or utcnow()
        player = cls(
            id=PlayerId.new(),
            name=normalize_player_name(name),
            email=normalize_email(email),
            created_at=now,
            last_played_at=now,
        )
        player.pending_events.append(
            PlayerCreated(player_id=str(player.id), name=player.name, email=player.email)
        )
        return player

    def update_score(
        self,
        delta: int,
        completed: bool,
        now: Optional[datetime] = None,
    ) -> None:
        """Apply a session result; the total never drops below zero."""

        old_score = self.total_score
        self.total_score = max(0, self.total_score + delta)
        if completed:
            self.games_played += 1
        self.last_played_at = now or utcnow()

        self.pending_events.append(
            PlayerScoreUpdated(
                player_id=str(self.id),
                old_score=old_score,
                new_score=self.total_score,
                score_change=delta,
                game_completed=completed,
            )
        )

    def record_game_start(self, now: Optional[datetime] = None) -> None:
        self.last_played_at = now or utcnow()

    def update_info(self, name: str, email: str) -> None:
        new_name = normalize_player_name(name)
        new_email = normalize_email(email)
        self.name = new_name
        self.email = new_email
        self.pending_events.append(
            PlayerInfoUpdated(player_id=str(self.id), name=new_name, email=new_email)
        )

    def deactivate(self) -> None:
        self.is_active = False
        self.pending_events.append(PlayerDeactivated(player_id=str(self.id)))

    def reactivate(self, now: Optional[datetime] = None) -> None:
        self.is_active = True
        self.last_played_at = now or utcnow()
        self.pending_events.append(PlayerReactivated(player_id=str(self.id)))

    def average_score_per_game(self) -> float:
        if self.games_played == 0:
            return 0.0
        return self.total_score / self.games_played

    def qualifies_for_leaderboard(self) -> bool:
        return self.is_active and self.games_played >= 1

    def pull_events(self) -> List[DomainEvent]:
        events, self.pending_events = self.pending_events, []
        return events


@dataclass
class GameSession:
    """
    One playthrough of a minigame by one player.

    A session is `Active` until `end` records an end timestamp, after which
    it is `Ended` for good: score and game data can no longer change.
    The owning player is referenced by id only.
    """

    id: SessionId
    player_id: PlayerId
    game_type: GameType
    started_at: datetime
    score: int = 0
    ended_at: Optional[datetime] = None
    completed_successfully: bool = False
    game_data: Dict[str, Any] = field(default_factory=dict)
    pending_events: List[DomainEvent] = field(
        default_factory=list, repr=False, compare=False
    )

    @classmethod
    def create(
        cls,
        player_id: PlayerId,
        game_type: GameType,
        now: Optional[datetime] = None,
    ) -> "GameSession":
        session = cls(
            id=SessionId.new(),
            player_id=player_id,
            game_type=GameType.parse(game_type),
            started_at=now or utcnow(),
        )
        session.pending_events.append(
            GameSessionStarted(
                session_id=str(session.id),
                player_id=str(session.player_id),
                game_type=int(session.game_type),
            )
        )
        return session

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    def duration(self, now: Optional[datetime] = None) -> timedelta:
        end = self.ended_at or now or utcnow()
        return end - self.started_at

    def _ensure_active(self, action: str) -> None:
        if not self.is_active:
            raise InvalidStateError(f"Cannot {action}: session {self.id} has already ended")

    def update_score(self, delta: int) -> None:
        self._ensure_active("update score")
        self.score = max(0, self.score + delta)

    def set_final_score(self, value: int) -> None:
        self._ensure_active("set final score")
        self.score = max(0, value)

    def set_game_data(self, key: str, value: Any) -> None:
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("Game data key cannot be empty", field="game_data")
        self._ensure_active("update game data")
        self.game_data[key] = value

    def get_game_data(self, key: str, default: Any = None) -> Any:
        return self.game_data.get(key, default)

    def end(self, completed_successfully: bool, now: Optional[datetime] = None) -> None:
        """
        Close the session.

        Sessions that ran longer than `MAX_SESSION_DURATION` are never
        recorded as completed, whatever the caller reports.
        """

        self._ensure_active("end session")
        self.ended_at = now or utcnow()
        self.completed_successfully = bool(completed_successfully)
        if self.duration() > MAX_SESSION_DURATION:
            self.completed_successfully = False

        self.pending_events.append(
            GameSessionEnded(
                session_id=str(self.id),
                player_id=str(self.player_id),
                game_type=int(self.game_type),
                final_score=self.score,
                completed_successfully=self.completed_successfully,
                duration=self.duration(),
            )
        )

    def qualifies_for_scoring(self, now: Optional[datetime] = None) -> bool:
        duration = self.duration(now)
        return (
            MIN_SCORING_DURATION <= duration <= MAX_SESSION_DURATION
            and self.score > 0
        )

    def calculate_performance_rating(
        self,
        policy: Optional[ScoringPolicy] = None,
        now: Optional[datetime] = None,
    ) -> int:
        if not self.completed_successfully or self.score == 0:
            return 0
        policy = policy or DEFAULT_SCORING_POLICY
        return policy.rate(self.game_type, self.game_data, self.duration(now))

    def should_flag_for_review(self, now: Optional[datetime] = None) -> bool:
        """Flag results that are implausible for a human player."""

        if (
            self.duration(now) < REVIEW_DURATION_THRESHOLD
            and self.score > REVIEW_SCORE_THRESHOLD
        ):
            return True

        if self.game_type == GameType.GIT_BLASTER:
            accuracy = read_number(self.game_data, AVERAGE_ACCURACY)
            response_time = read_number(self.game_data, AVERAGE_RESPONSE_TIME_MS)
            if accuracy >= 1.0 and response_time < SUPERHUMAN_RESPONSE_TIME_MS:
                return True

        return False

    def pull_events(self) -> List[DomainEvent]:
        events, self.pending_events = self.pending_events, []
        return events
