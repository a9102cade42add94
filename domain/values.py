from __future__ import annotations

import re
import unicodedata
import uuid
from dataclasses import dataclass

from .errors import ValidationError

PLAYER_NAME_MIN_LENGTH = 2
PLAYER_NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 100

_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def _require_guid(value: object, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} cannot be empty", field=field)
    try:
        uuid.UUID(value)
    except ValueError:
        raise ValidationError(f"{field} must be a valid GUID: {value!r}", field=field) from None


@dataclass(frozen=True)
class PlayerId:
    """Identifier of a player; constructing one validates the GUID shape."""

    value: str

    def __post_init__(self) -> None:
        _require_guid(self.value, "player_id")

    @classmethod
    def new(cls) -> "PlayerId":
        return cls(str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SessionId:
    """Identifier of a game session; never interchangeable with `PlayerId`."""

    value: str

    def __post_init__(self) -> None:
        _require_guid(self.value, "session_id")

    @classmethod
    def new(cls) -> "SessionId":
        return cls(str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.value


def normalize_player_name(raw: str) -> str:
    """Trim a display name and check its length and characters."""

    if raw is None or not str(raw).strip():
        raise ValidationError("Player name cannot be empty", field="name")

    name = str(raw).strip()
    if len(name) < PLAYER_NAME_MIN_LENGTH:
        raise ValidationError(
            f"Player name must be at least {PLAYER_NAME_MIN_LENGTH} characters",
            field="name",
        )
    if len(name) > PLAYER_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Player name cannot exceed {PLAYER_NAME_MAX_LENGTH} characters",
            field="name",
        )
    if any(unicodedata.category(ch) == "Cc" for ch in name):
        raise ValidationError("Player name cannot contain control characters", field="name")
    return name


def normalize_email(raw: str) -> str:
    """Trim and lower-case an email address after checking its format."""

    if raw is None or not str(raw).strip():
        raise ValidationError("Email cannot be empty", field="email")

    email = str(raw).strip()
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError(
            f"Email cannot exceed {EMAIL_MAX_LENGTH} characters", field="email"
        )
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError(f"Invalid email format: {email!r}", field="email")
    return email.lower()
