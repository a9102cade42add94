"""
Channel-agnostic helpers shared by the Discord and Telegram bots.

Parsing turns raw command arguments into typed values (rejecting unknown
game types before they reach the application layer); formatting turns
domain objects into chat replies.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Tuple

from application.services import OperationResult
from domain.errors import ErrorKind, ValidationError
from domain.game_types import GameType
from domain.models import GameSession, Player

_WON = {"won", "win", "completed", "done", "yes", "true"}
_LOST = {"lost", "lose", "failed", "quit", "no", "false"}

_ERROR_PREFIX = {
    ErrorKind.VALIDATION: "Invalid input",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.CONFLICT: "Conflict",
    ErrorKind.INVALID_STATE: "Not allowed",
    ErrorKind.INACTIVE_ACCOUNT: "Account inactive",
}


def parse_game_type(text: str) -> GameType:
    return GameType.parse(text)


def parse_value(raw: str) -> Any:
    """Coerce a command argument into int, float, bool or leave it as text."""

    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def parse_game_data(tokens: Iterable[str]) -> Dict[str, Any]:
    """Parse `key=value` tokens; later keys overwrite earlier ones."""

    data: Dict[str, Any] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key.strip():
            raise ValidationError(f"Expected key=value, got {token!r}", field="game_data")
        data[key.strip()] = parse_value(value.strip())
    return data


def parse_outcome(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in _WON:
        return True
    if lowered in _LOST:
        return False
    raise ValidationError(f"Outcome must be 'won' or 'lost', got {text!r}", field="outcome")


def parse_finish_args(args: Sequence[str]) -> Tuple[int, bool, Dict[str, Any]]:
    """
    Parse `<score> <won|lost> [key=value ...]`.

    Returns the final score, the reported completion flag and game data.
    """

    if len(args) < 2:
        raise ValidationError("Usage: finish <score> <won|lost> [key=value ...]")
    try:
        score = int(args[0])
    except ValueError:
        raise ValidationError("Score must be a number.", field="score") from None
    return score, parse_outcome(args[1]), parse_game_data(args[2:])


def error_reply(result: OperationResult) -> str:
    prefix = _ERROR_PREFIX.get(result.error_kind, "Error")
    return f"{prefix}: {result.error_message}"


def format_game_list() -> str:
    return "\n".join(f"{g.value} - {g.label}" for g in GameType)


def format_player(player: Player) -> str:
    status = "active" if player.is_active else "inactive"
    return (
        f"{player.name} ({status})\n"
        f"Total score: {player.total_score}\n"
        f"Games played: {player.games_played}\n"
        f"Average per game: {player.average_score_per_game():.1f}"
    )


def format_session(
    session: GameSession,
    rating: int = 0,
    flagged: bool = False,
) -> str:
    minutes, seconds = divmod(int(session.duration().total_seconds()), 60)
    lines = [f"{session.game_type.label}: {session.score} points ({minutes}m {seconds:02d}s)"]
    if session.is_active:
        lines.append("Session in progress.")
    else:
        outcome = "completed" if session.completed_successfully else "not completed"
        lines.append(f"Result: {outcome}, rating {'*' * rating or '-'} ({rating}/5)")
    if flagged:
        lines.append("This result has been flagged for review.")
    return "\n".join(lines)


def format_history(sessions: List[GameSession]) -> str:
    if not sessions:
        return "No sessions played yet."
    return "\n\n".join(format_session(s, s.calculate_performance_rating()) for s in sessions)


def format_leaderboard(players: List[Player]) -> str:
    if not players:
        return "No ranked players yet."
    return "\n".join(
        f"{rank}. {p.name}: {p.total_score} ({p.games_played} games)"
        for rank, p in enumerate(players, start=1)
    )
