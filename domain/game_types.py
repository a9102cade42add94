from __future__ import annotations

from enum import IntEnum
from typing import Union

from .errors import ValidationError


class GameType(IntEnum):
    """The minigames that can be launched from the portfolio."""

    # CI/CD pipeline game where a cat interferes with deploys.
    DEPLOY_THE_CAT = 1
    # Git command shooter; measures accuracy and reaction time.
    GIT_BLASTER = 2

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()

    @classmethod
    def parse(cls, value: Union["GameType", int, str]) -> "GameType":
        """
        Convert caller-supplied input into a `GameType`.

        Accepts a member, its integer id (also as a string) or its name in
        any case with spaces or dashes instead of underscores. Anything else
        raises `ValidationError`, so unknown games never reach the core.
        """

        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValidationError(f"Invalid game type: {value!r}", field="game_type")

        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValidationError(
                    f"Invalid game type: {value!r}", field="game_type"
                ) from None

        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.parse(int(text))
            name = text.upper().replace("-", "_").replace(" ", "_")
            if name in cls.__members__:
                return cls[name]

        raise ValidationError(f"Invalid game type: {value!r}", field="game_type")
