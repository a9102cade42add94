from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Dict, Mapping, Optional

from .game_types import GameType

MIN_RATING = 0
MAX_RATING = 5

# Game data keys reported by the minigames.
SUCCESSFUL_DEPLOYS = "successful_deploys"
CAT_INTERVENTIONS = "cat_interventions"
AVERAGE_ACCURACY = "average_accuracy"
UNIQUE_COMMANDS_USED = "unique_commands_used"
AVERAGE_RESPONSE_TIME_MS = "average_response_time_ms"

RatingRule = Callable[[Mapping[str, Any], timedelta], int]


def read_number(game_data: Mapping[str, Any], key: str) -> float:
    """
    Return the numeric value stored under `key`.

    Missing keys and non-numeric values read as 0, so a rule never fails
    because a minigame skipped a metric.
    """

    value = game_data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def rate_deploy_the_cat(game_data: Mapping[str, Any], duration: timedelta) -> int:
    """Rating from the share of deploys that got past the cat, plus a speed bonus."""

    successful = read_number(game_data, SUCCESSFUL_DEPLOYS)
    interventions = read_number(game_data, CAT_INTERVENTIONS)
    if successful == 0:
        return 1

    success_rate = successful / (successful + interventions)
    speed_bonus = 1 if duration < timedelta(minutes=5) else 0

    if success_rate >= 0.9:
        return 5
    if success_rate >= 0.7:
        return 4 + speed_bonus
    if success_rate >= 0.5:
        return 3 + speed_bonus
    if success_rate >= 0.3:
        return 2
    return 1


def rate_git_blaster(game_data: Mapping[str, Any], duration: timedelta) -> int:
    """Rating from shot accuracy, plus a bonus for command variety."""

    accuracy = read_number(game_data, AVERAGE_ACCURACY)
    commands_used = read_number(game_data, UNIQUE_COMMANDS_USED)
    if accuracy == 0:
        return 1

    variety_bonus = 1 if commands_used >= 5 else 0

    if accuracy >= 0.9:
        return 5
    if accuracy >= 0.8:
        return 4 + variety_bonus
    if accuracy >= 0.6:
        return 3 + variety_bonus
    if accuracy >= 0.4:
        return 2
    return 1


class ScoringPolicy:
    """
    Rule table mapping each game type to its performance rating rule.

    Sessions hand their game data and duration to `rate`; supporting a new
    minigame means registering another rule, not touching `GameSession`.
    Game types without a rule rate 0.
    """

    def __init__(self, rules: Optional[Dict[GameType, RatingRule]] = None) -> None:
        self._rules: Dict[GameType, RatingRule] = dict(rules or {})

    def register(self, game_type: GameType, rule: RatingRule) -> None:
        self._rules[game_type] = rule

    def supports(self, game_type: GameType) -> bool:
        return game_type in self._rules

    def rate(
        self,
        game_type: GameType,
        game_data: Mapping[str, Any],
        duration: timedelta,
    ) -> int:
        rule = self._rules.get(game_type)
        if rule is None:
            return MIN_RATING
        rating = int(rule(game_data, duration))
        return max(MIN_RATING, min(MAX_RATING, rating))


def default_scoring_policy() -> ScoringPolicy:
    return ScoringPolicy(
        {
            GameType.DEPLOY_THE_CAT: rate_deploy_the_cat,
            GameType.GIT_BLASTER: rate_git_blaster,
        }
    )


DEFAULT_SCORING_POLICY = default_scoring_policy()
