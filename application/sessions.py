"""
Game session lifecycle: starting, updating and ending sessions.

Business rules enforced here rather than on `GameSession` itself:
- a player must exist and be active to start a session;
- a player has at most one active session at a time (also guaranteed by
  the session store, which rejects a second active session on insert);
- a finished session only credits the player when it qualifies for
  scoring.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from domain.errors import (
    ConflictError,
    GamingError,
    InactiveAccountError,
    NotFoundError,
    ValidationError,
)
from domain.game_types import GameType
from domain.models import GameSession
from domain.repositories import GameSessionRepository, PlayerRepository
from domain.scoring import ScoringPolicy
from domain.values import PlayerId, SessionId

from application.events import EventDispatcher, default_dispatcher
from application.instrumentation import timed_operation
from application.services import (
    SessionListResult,
    SessionResult,
    as_player_id,
    load_player,
)

logger = logging.getLogger(__name__)


def _as_session_id(value: Union[SessionId, str]) -> SessionId:
    if isinstance(value, SessionId):
        return value
    return SessionId(value)


def _load_session(session_repo: GameSessionRepository, session_id: SessionId) -> GameSession:
    session = session_repo.get_by_id(session_id)
    if session is None:
        raise NotFoundError(f"Game session '{session_id}' not found")
    return session


def _validate_game_data(game_data: Optional[Mapping[str, Any]]) -> None:
    # Checked up front so a bad key never leaves a half-applied update.
    for key in game_data or {}:
        if not isinstance(key, str) or not key.strip():
            raise ValidationError("Game data key cannot be empty", field="game_data")


@timed_operation
def start_session(
    player_id: Union[PlayerId, str],
    game_type: Union[GameType, int, str],
    player_repo: PlayerRepository,
    session_repo: GameSessionRepository,
    now: Optional[datetime] = None,
    dispatcher: Optional[EventDispatcher] = None,
) -> SessionResult:
    """
    Start a new game session for a player.

    The session is stored before the player is updated, so a conflict
    raised by the session store leaves the player untouched.
    """

    dispatcher = dispatcher or default_dispatcher
    logger.info("Starting %s session for player %s", game_type, player_id)
    try:
        pid = as_player_id(player_id)
        game = GameType.parse(game_type)
        player = load_player(player_repo, pid)
        if not player.is_active:
            raise InactiveAccountError(f"Player '{pid}' is inactive")

        active = next((s for s in session_repo.get_by_player(pid) if s.is_active), None)
        if active is not None:
            raise ConflictError(f"Player already has an active session: {active.id}")

        session = GameSession.create(pid, game, now=now)
        player.record_game_start(now=now)

        session_repo.add(session)
        player_repo.update(player)
    except GamingError as exc:
        logger.warning("Could not start session for player %s: %s", player_id, exc.message)
        return SessionResult.failure(exc)

    dispatcher.dispatch(session.pull_events() + player.pull_events())
    logger.info("Started game session %s", session.id)
    return SessionResult(success=True, session=session)


@timed_operation
def end_session(
    session_id: Union[SessionId, str],
    final_score: int,
    completed_successfully: bool,
    game_data: Optional[Mapping[str, Any]],
    player_repo: PlayerRepository,
    session_repo: GameSessionRepository,
    now: Optional[datetime] = None,
    policy: Optional[ScoringPolicy] = None,
    dispatcher: Optional[EventDispatcher] = None,
) -> SessionResult:
    """
    Finish an active session and credit the player when it qualifies.

    - Final game data is merged before the score is set.
    - Ending applies the maximum-duration override to the completion flag.
    - The session store only writes sessions that are still active, and the
      player is written after it; a concurrent end that loses the race is a
      conflict and credits nothing.
    - The result carries the performance rating and the review flag.
    """

    dispatcher = dispatcher or default_dispatcher
    logger.info("Ending game session %s with score %s", session_id, final_score)
    try:
        sid = _as_session_id(session_id)
        session = _load_session(session_repo, sid)
        if not session.is_active:
            raise ConflictError(f"Game session '{sid}' has already ended")

        player = player_repo.get_by_id(session.player_id)
        if player is None:
            logger.error("Session %s references missing player %s", sid, session.player_id)
            raise NotFoundError("Player not found for this session")

        _validate_game_data(game_data)
        for key, value in (game_data or {}).items():
            session.set_game_data(key, value)
        session.set_final_score(final_score)
        session.end(completed_successfully, now=now)

        credited = session.qualifies_for_scoring()
        if credited:
            player.update_score(session.score, session.completed_successfully, now=now)

        session_repo.update(session)
        if credited:
            player_repo.update(player)
    except GamingError as exc:
        logger.warning("Could not end session %s: %s", session_id, exc.message)
        return SessionResult.failure(exc)

    if credited:
        logger.info("Credited player %s with %s points", player.id, session.score)

    rating = session.calculate_performance_rating(policy)
    flagged = session.should_flag_for_review()
    if flagged:
        logger.warning(
            "Session %s flagged for review: score %s in %s",
            session.id,
            session.score,
            session.duration(),
        )

    dispatcher.dispatch(session.pull_events() + player.pull_events())
    logger.info(
        "Ended game session %s | duration %s | rating %s",
        session.id,
        session.duration(),
        rating,
    )
    return SessionResult(
        success=True,
        session=session,
        performance_rating=rating,
        flagged_for_review=flagged,
    )


@timed_operation
def abandon_session(
    session_id: Union[SessionId, str],
    player_id: Union[PlayerId, str],
    player_repo: PlayerRepository,
    session_repo: GameSessionRepository,
    now: Optional[datetime] = None,
    dispatcher: Optional[EventDispatcher] = None,
) -> SessionResult:
    """
    End the caller's own session without a score.

    A session owned by another player is reported as not found.
    """

    try:
        pid = as_player_id(player_id)
        session = _load_session(session_repo, _as_session_id(session_id))
        if session.player_id != pid:
            raise NotFoundError(f"Game session '{session.id}' not found")
    except GamingError as exc:
        logger.warning(
            "Player %s could not abandon session %s: %s", player_id, session_id, exc.message
        )
        return SessionResult.failure(exc)

    return end_session(
        session.id,
        0,
        False,
        None,
        player_repo,
        session_repo,
        now=now,
        dispatcher=dispatcher,
    )


@timed_operation
def update_session_data(
    session_id: Union[SessionId, str],
    game_data: Mapping[str, Any],
    session_repo: GameSessionRepository,
) -> SessionResult:
    """Merge in-game metrics into an active session."""

    try:
        sid = _as_session_id(session_id)
        session = _load_session(session_repo, sid)
        _validate_game_data(game_data)
        for key, value in game_data.items():
            session.set_game_data(key, value)
        session_repo.update(session)
    except GamingError as exc:
        logger.warning("Could not update data of session %s: %s", session_id, exc.message)
        return SessionResult.failure(exc)

    return SessionResult(success=True, session=session)


@timed_operation
def get_session(
    session_id: Union[SessionId, str],
    session_repo: GameSessionRepository,
    policy: Optional[ScoringPolicy] = None,
) -> SessionResult:
    try:
        session = _load_session(session_repo, _as_session_id(session_id))
    except GamingError as exc:
        return SessionResult.failure(exc)

    return SessionResult(
        success=True,
        session=session,
        performance_rating=session.calculate_performance_rating(policy),
        flagged_for_review=session.should_flag_for_review(),
    )


@timed_operation
def get_active_session(
    player_id: Union[PlayerId, str],
    session_repo: GameSessionRepository,
) -> SessionResult:
    try:
        pid = as_player_id(player_id)
        active = next((s for s in session_repo.get_by_player(pid) if s.is_active), None)
        if active is None:
            raise NotFoundError("No active game session.")
    except GamingError as exc:
        return SessionResult.failure(exc)

    return SessionResult(success=True, session=active)


@timed_operation
def get_player_sessions(
    player_id: Union[PlayerId, str],
    player_repo: PlayerRepository,
    session_repo: GameSessionRepository,
    game_type: Optional[Union[GameType, int, str]] = None,
    limit: Optional[int] = None,
) -> SessionListResult:
    """A player's session history, most recent first."""

    try:
        pid = as_player_id(player_id)
        game = GameType.parse(game_type) if game_type is not None else None
        if limit is not None and limit < 1:
            raise ValidationError("Limit must be greater than zero.", field="limit")
        load_player(player_repo, pid)
        sessions = session_repo.get_by_player(pid, game)
    except GamingError as exc:
        return SessionListResult.failure(exc)

    if limit is not None:
        sessions = sessions[:limit]
    return SessionListResult(success=True, sessions=sessions)
