"""In-play re-projection of a stored prediction.

Goal arrivals for the remaining minutes are modelled as Poisson with a
per-minute rate that depends on the phase of the match, the scoreline and
which side is chasing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union
import logging
import math

import numpy as np

from scorecast.config import Config
from scorecast.constants import (
    PROGRESSION_MINUTES,
    PROGRESSION_SHARES,
    STATUS_SCHEDULED,
    STATUS_LIVE,
    STATUS_FINISHED,
    STATUS_ERROR,
)
from scorecast.exceptions import ValidationError
from scorecast.models.schema import Prediction
from scorecast.normalization.scores import parse_score, round_half_up

logger = logging.getLogger(__name__)

# Defer scipy import for faster module load
_stats = None


def _get_stats():
    """Lazy import of scipy.stats."""
    global _stats
    if _stats is None:
        from scipy import stats
        _stats = stats
    return _stats


ScoreLike = Union[str, Tuple[int, int]]

HOME_SIDE = "home"
AWAY_SIDE = "away"


def _as_goals(score: ScoreLike) -> Tuple[int, int]:
    if isinstance(score, tuple):
        return int(score[0]), int(score[1])
    parsed = parse_score(score)
    if parsed is None:
        raise ValidationError(f"Malformed score: {score!r}", field="score")
    return parsed


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# =============================================================================
# MATCH STATUS
# =============================================================================

class MatchStatus(str, Enum):
    SCHEDULED = STATUS_SCHEDULED
    LIVE = STATUS_LIVE
    FINISHED = STATUS_FINISHED
    ERROR = STATUS_ERROR


_STATUS_ORDER = {MatchStatus.SCHEDULED: 0, MatchStatus.LIVE: 1, MatchStatus.FINISHED: 2}


class LiveMatchTracker:
    """
    Follows one match through scheduled -> live -> finished.

    Lookups that would move the match backwards are ignored. An error lookup
    parks the tracker in ``ERROR`` until ``reset()`` is called.
    """

    def __init__(self, prediction_id: Optional[int] = None) -> None:
        self.prediction_id = prediction_id
        self.status = MatchStatus.SCHEDULED
        self.current_score: Optional[str] = None
        self.minute: Optional[int] = None
        self._last_good = MatchStatus.SCHEDULED

    def advance(self, lookup) -> MatchStatus:
        if self.status == MatchStatus.ERROR:
            return self.status
        try:
            incoming = MatchStatus(getattr(lookup, "status", STATUS_ERROR))
        except ValueError:
            incoming = MatchStatus.ERROR

        if incoming == MatchStatus.ERROR:
            logger.warning("Match %s entered error state", self.prediction_id)
            self.status = MatchStatus.ERROR
            return self.status
        if _STATUS_ORDER[incoming] < _STATUS_ORDER[self.status]:
            logger.debug(
                "Ignoring %s -> %s for match %s", self.status.value, incoming.value, self.prediction_id
            )
            return self.status

        if incoming == MatchStatus.LIVE:
            self.current_score = getattr(lookup, "current_score", None) or self.current_score
            minute = getattr(lookup, "minute", None)
            if minute is not None and (self.minute is None or minute >= self.minute):
                self.minute = minute
        elif incoming == MatchStatus.FINISHED:
            self.current_score = getattr(lookup, "final_score", None) or self.current_score
            self.minute = 90
        self.status = incoming
        self._last_good = incoming
        return self.status

    def reset(self) -> MatchStatus:
        self.status = self._last_good
        return self.status

    @property
    def is_terminal(self) -> bool:
        return self.status == MatchStatus.FINISHED


# =============================================================================
# GOAL RATES
# =============================================================================

def base_goal_rate(minute: float, score: ScoreLike, side: str, config: Optional[Config] = None) -> float:
    """Expected goals per minute for ``side`` at ``minute`` given the scoreline."""
    config = config or Config()
    home, away = _as_goals(score)
    rate = config.live_base_goal_rate

    if minute < config.opening_phase_end or minute > config.closing_phase_start:
        rate *= config.phase_intensity_factor
    elif config.halftime_lull_start <= minute <= config.halftime_lull_end:
        rate *= config.halftime_lull_factor

    margin = abs(home - away)
    if margin >= 2:
        rate *= 0.7
    elif margin == 0 and minute > 70:
        rate *= 1.3

    if home != away:
        own, other = (home, away) if side == HOME_SIDE else (away, home)
        rate *= 1.2 if own < other else 0.9
    return rate


def remaining_minutes(minute: float, config: Optional[Config] = None) -> float:
    config = config or Config()
    return max(0.0, config.match_minutes - minute)


def goal_expectation(minute: float, score: ScoreLike, side: str, config: Optional[Config] = None) -> float:
    return base_goal_rate(minute, score, side, config) * remaining_minutes(minute, config)


def poisson_probability(k: int, lam: float) -> float:
    if k < 0:
        return 0.0
    if lam <= 0:
        return 1.0 if k == 0 else 0.0
    return float(_get_stats().poisson.pmf(k, lam))


def exact_match_probability(
    predicted: ScoreLike,
    current: ScoreLike,
    minute: float,
    config: Optional[Config] = None,
) -> float:
    """Probability that the match ends exactly on ``predicted`` from here."""
    config = config or Config()
    target_home, target_away = _as_goals(predicted)
    home, away = _as_goals(current)
    needed_home, needed_away = target_home - home, target_away - away
    if needed_home < 0 or needed_away < 0:
        return 0.0
    if minute >= config.match_minutes:
        return 1.0 if needed_home == 0 and needed_away == 0 else 0.0

    lam_home = goal_expectation(minute, (home, away), HOME_SIDE, config)
    lam_away = goal_expectation(minute, (home, away), AWAY_SIDE, config)
    interdependence = max(0.5, 1.0 - 0.1 * max(0, needed_home + needed_away - 1))
    return (
        poisson_probability(needed_home, lam_home)
        * poisson_probability(needed_away, lam_away)
        * interdependence
    )


def probability_percent(probability: float) -> int:
    return int(_clamp(round_half_up(probability * 100.0), 1, 95))


# =============================================================================
# PROGRESSION AND CONFIDENCE
# =============================================================================

@dataclass(frozen=True)
class Progression:
    share: float
    expected_home: float
    expected_away: float

    @property
    def expected_total(self) -> float:
        return self.expected_home + self.expected_away


def expected_progression(predicted: ScoreLike, minute: float) -> Progression:
    """Share of the predicted goals that should be on the board by ``minute``."""
    home, away = _as_goals(predicted)
    share = float(np.interp(minute, PROGRESSION_MINUTES, PROGRESSION_SHARES))
    return Progression(share=share, expected_home=home * share, expected_away=away * share)


def _progress_match(predicted: ScoreLike, current: ScoreLike, minute: float) -> float:
    target_total = sum(_as_goals(predicted))
    current_total = sum(_as_goals(current))
    expected = expected_progression(predicted, minute).expected_total
    return 1.0 - min(1.0, abs(current_total - expected) / max(1.0, target_total))


def adjust_live_confidence(
    original: float,
    predicted: ScoreLike,
    current: ScoreLike,
    minute: float,
    config: Optional[Config] = None,
) -> int:
    config = config or Config()
    target_home, target_away = _as_goals(predicted)
    home, away = _as_goals(current)
    target_total, current_total = target_home + target_away, home + away

    time_adjustment = 0.7 + 0.5 * _clamp(minute, 0, config.match_minutes) / config.match_minutes
    progress_adjustment = 0.5 + _progress_match(predicted, current, minute) * 0.5

    context_adjustment = 1.0
    if current_total > target_total:
        context_adjustment *= 0.9
    if current_total < target_total * 0.5 and remaining_minutes(minute, config) < 30:
        context_adjustment *= 0.8
    if abs(home - away) >= 3:
        context_adjustment *= 0.7

    value = (
        original
        * (0.4 + 0.6 * progress_adjustment)
        * (0.6 + 0.4 * time_adjustment)
        * context_adjustment
    )
    return int(_clamp(round_half_up(value), config.live_min_confidence, config.live_max_confidence))


# =============================================================================
# PROJECTIONS
# =============================================================================

def project_final_scores(
    current: ScoreLike,
    minute: float,
    limit: int = 5,
    config: Optional[Config] = None,
) -> List[Dict[str, Any]]:
    """Most likely final scores from the current state, highest first."""
    config = config or Config()
    home, away = _as_goals(current)
    lam_home = goal_expectation(minute, (home, away), HOME_SIDE, config)
    lam_away = goal_expectation(minute, (home, away), AWAY_SIDE, config)
    extra_home = np.arange(max(0, config.max_goals - home) + 1)
    extra_away = np.arange(max(0, config.max_goals - away) + 1)
    home_pmf = np.array([poisson_probability(int(k), lam_home) for k in extra_home])
    away_pmf = np.array([poisson_probability(int(k), lam_away) for k in extra_away])
    grid = np.outer(home_pmf, away_pmf)

    cells = []
    for i, extra_h in enumerate(extra_home):
        for j, extra_a in enumerate(extra_away):
            cells.append((f"{home + int(extra_h)}-{away + int(extra_a)}", float(grid[i, j])))
    cells.sort(key=lambda cell: cell[1], reverse=True)
    return [{"score": score, "probability": round(p, 4)} for score, p in cells[:limit]]


def next_goal_probability(current: ScoreLike, minute: float, config: Optional[Config] = None) -> Dict[str, float]:
    config = config or Config()
    lam_home = goal_expectation(minute, current, HOME_SIDE, config)
    lam_away = goal_expectation(minute, current, AWAY_SIDE, config)
    total = lam_home + lam_away
    if total <= 0:
        return {"home": 0.0, "away": 0.0, "none": 1.0}
    scored = 1.0 - math.exp(-total)
    return {
        "home": round(scored * lam_home / total, 4),
        "away": round(scored * lam_away / total, 4),
        "none": round(1.0 - scored, 4),
    }


def prediction_viability(predicted: ScoreLike, current: ScoreLike, minute: float,
                         config: Optional[Config] = None) -> Dict[str, Any]:
    config = config or Config()
    target_home, target_away = _as_goals(predicted)
    home, away = _as_goals(current)
    needed_home, needed_away = target_home - home, target_away - away
    if needed_home < 0 or needed_away < 0:
        state = "impossible"
    elif needed_home == 0 and needed_away == 0:
        state = "achieved"
    elif expected_progression(predicted, minute).expected_total <= home + away:
        state = "on_track"
    else:
        state = "needs_goals"
    return {
        "viable": state != "impossible",
        "state": state,
        "goals_needed_home": max(0, needed_home),
        "goals_needed_away": max(0, needed_away),
        "minutes_remaining": remaining_minutes(minute, config),
    }


@dataclass
class LiveSnapshot:
    prediction_id: Optional[int]
    predicted_score: str
    current_score: str
    minute: int
    exact_match_probability: float
    exact_match_percent: int
    adjusted_confidence: int
    progression: Progression
    projections: List[Dict[str, Any]] = field(default_factory=list)
    next_goal: Dict[str, float] = field(default_factory=dict)
    viability: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prediction_id": self.prediction_id,
            "predicted_score": self.predicted_score,
            "current_score": self.current_score,
            "minute": self.minute,
            "exact_match_probability": round(self.exact_match_probability, 4),
            "exact_match_percent": self.exact_match_percent,
            "adjusted_confidence": self.adjusted_confidence,
            "expected_share": round(self.progression.share, 3),
            "projections": self.projections,
            "next_goal": self.next_goal,
            "viability": self.viability,
        }


def build_live_snapshot(
    prediction: Prediction,
    current_score: str,
    minute: int,
    config: Optional[Config] = None,
) -> LiveSnapshot:
    config = config or Config()
    minute = int(_clamp(minute, 0, config.match_minutes))
    predicted = prediction.predicted_score
    probability = exact_match_probability(predicted, current_score, minute, config)
    return LiveSnapshot(
        prediction_id=prediction.id,
        predicted_score=predicted,
        current_score=current_score,
        minute=minute,
        exact_match_probability=probability,
        exact_match_percent=probability_percent(probability),
        adjusted_confidence=adjust_live_confidence(
            prediction.confidence, predicted, current_score, minute, config
        ),
        progression=expected_progression(predicted, minute),
        projections=project_final_scores(current_score, minute, config=config),
        next_goal=next_goal_probability(current_score, minute, config),
        viability=prediction_viability(predicted, current_score, minute, config),
    )
