"""Scoreline parsing, classification and winner calls."""

from dataclasses import dataclass
from typing import Optional, Tuple
import math

from scorecast.constants import (
    SCORE_PATTERN,
    DEFENSIVE,
    BALANCED,
    ATTACKING,
    EXTREME,
    UNBALANCED,
    HOME,
    AWAY,
    DRAW,
    INDETERMINATE,
)
from scorecast.exceptions import ValidationError

EXTREME_SIDE_GOALS = 5
ATTACKING_TOTAL = 6
DEFENSIVE_TOTAL = 2
UNBALANCED_MARGIN = 3


@dataclass(frozen=True)
class ScoreProfile:
    home: int
    away: int
    total: int
    difference: int
    score_type: str


def parse_score(score) -> Optional[Tuple[int, int]]:
    """Return ``(home, away)`` for a "H-A" string, or None when malformed."""
    if not isinstance(score, str):
        return None
    match = SCORE_PATTERN.match(score)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def is_valid_score(score) -> bool:
    return parse_score(score) is not None


def _score_type(home: int, away: int) -> str:
    total = home + away
    if home >= EXTREME_SIDE_GOALS or away >= EXTREME_SIDE_GOALS:
        return EXTREME
    if total >= ATTACKING_TOTAL:
        return ATTACKING
    if total <= DEFENSIVE_TOTAL:
        return DEFENSIVE
    if abs(home - away) >= UNBALANCED_MARGIN:
        return UNBALANCED
    return BALANCED


def classify_score(score: str) -> ScoreProfile:
    parsed = parse_score(score)
    if parsed is None:
        raise ValidationError(f"Malformed score: {score!r}", field="score")
    home, away = parsed
    return ScoreProfile(
        home=home,
        away=away,
        total=home + away,
        difference=home - away,
        score_type=_score_type(home, away),
    )


def score_type(score: str) -> str:
    return classify_score(score).score_type


def is_extreme(score: str) -> bool:
    parsed = parse_score(score)
    return parsed is not None and _score_type(*parsed) == EXTREME


def determine_winner(score) -> str:
    """Home / Away / Draw for a well-formed score; Indeterminate otherwise."""
    parsed = parse_score(score)
    if parsed is None:
        return INDETERMINATE
    home, away = parsed
    if home > away:
        return HOME
    if away > home:
        return AWAY
    return DRAW


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_goals(goals: float, max_goals: int = 7) -> int:
    return max(0, min(max_goals, round_half_up(goals)))


def format_score(home: float, away: float, max_goals: int = 7) -> str:
    return f"{clamp_goals(home, max_goals)}-{clamp_goals(away, max_goals)}"


def goals_difference(predicted: str, actual: str) -> int:
    """Sum of per-side absolute goal differences between two scorelines."""
    left = parse_score(predicted)
    right = parse_score(actual)
    if left is None or right is None:
        raise ValidationError(f"Cannot compare {predicted!r} with {actual!r}", field="score")
    return abs(left[0] - right[0]) + abs(left[1] - right[1])
