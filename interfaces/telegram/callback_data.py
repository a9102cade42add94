from __future__ import annotations

from domain.game_types import GameType


def encode_game_choice(game_type: GameType) -> str:
    """
    Encode a "choose game" callback.

    Format: play:{game_type_id}
    """

    return f"play:{int(game_type)}"


def parse_game_choice(data: str) -> GameType:
    parts = data.split(":")
    if len(parts) != 2 or parts[0] != "play":
        raise ValueError(f"Invalid game choice callback data: {data}")
    return GameType.parse(parts[1])


def encode_end_confirmation(session_id: str, accepted: bool) -> str:
    """
    Encode an abandon-session confirmation.

    Format:
      quit:yes:{session_id}
      quit:no:{session_id}
    """

    answer = "yes" if accepted else "no"
    return f"quit:{answer}:{session_id}"


def parse_end_confirmation(data: str) -> tuple[bool, str]:
    parts = data.split(":")
    if len(parts) != 3 or parts[0] != "quit" or parts[1] not in ("yes", "no"):
        raise ValueError(f"Invalid quit confirmation callback data: {data}")
    return parts[1] == "yes", parts[2]
