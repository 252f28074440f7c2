"""Heuristic scoreline algorithms.

Each strategy is a pure function of an ``AlgorithmContext`` and returns one
``AlgorithmResult``. Strategies share no mutable state, so the bank can be
evaluated on a thread pool.
"""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional
import logging

import numpy as np

from scorecast.config import Config
from scorecast.constants import HOME, AWAY, EXTREME
from scorecast.models.features import TeamFeatures, MatchContext
from scorecast.models.schema import AlgorithmKind, AlgorithmResult, NormalizedOdds, Prediction
from scorecast.normalization.scores import determine_winner, format_score, parse_score

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class HistoryRecord:
    """Resolved prediction reduced to what pattern matching needs."""
    strength_gap: float
    actual_score: str
    predicted_score: str = ""
    correct: bool = False

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> Optional["HistoryRecord"]:
        if prediction.actual_result is None:
            return None
        return cls(
            strength_gap=prediction.strength_gap,
            actual_score=prediction.actual_result.actual_score,
            predicted_score=prediction.predicted_score,
            correct=prediction.actual_result.correct,
        )


@dataclass(frozen=True)
class AlgorithmContext:
    normalized: List[NormalizedOdds]
    home: TeamFeatures
    away: TeamFeatures
    match: MatchContext
    history: List[HistoryRecord] = field(default_factory=list)
    confrontations: List[float] = field(default_factory=list)
    odds_extreme_share: float = 0.0
    config: Config = field(default_factory=Config)

    @property
    def strength_gap(self) -> float:
        return self.home.overall - self.away.overall

    @property
    def strength_ratio(self) -> float:
        if self.away.overall <= 0:
            return 1.0
        return self.home.overall / self.away.overall

    @property
    def top(self) -> Optional[NormalizedOdds]:
        return self.normalized[0] if self.normalized else None


def _fallback(kind: AlgorithmKind, ctx: AlgorithmContext) -> AlgorithmResult:
    return AlgorithmResult(kind, ctx.config.fallback_score, 0.3)


def probability_based(ctx: AlgorithmContext) -> AlgorithmResult:
    """Top market scores re-weighted by the home/away strength ratio."""
    if not ctx.normalized:
        return _fallback(AlgorithmKind.PROBABILITY_BASED, ctx)
    ratio = ctx.strength_ratio
    tilt = ctx.config.strength_ratio_weight
    best_score, best_value = None, -1.0
    for row in ctx.normalized[:5]:
        value = row.normalized_probability
        winner = determine_winner(row.score)
        if winner == HOME:
            value *= 1 + (ratio - 1) * tilt
        elif winner == AWAY:
            value *= 1 + (1 / ratio - 1) * tilt
        if value > best_value:
            best_score, best_value = row.score, value
    confidence = _clamp(best_value / 100.0 + 0.4, 0.0, 0.95)
    return AlgorithmResult(AlgorithmKind.PROBABILITY_BASED, best_score, confidence)


def _expected_total(normalized: List[NormalizedOdds]) -> float:
    total = 0.0
    for row in normalized:
        home, away = parse_score(row.score)
        total += row.weight * (home + away)
    return total


def statistical(ctx: AlgorithmContext) -> AlgorithmResult:
    home, away = ctx.home, ctx.away
    advantage = home.home_advantage
    home_goals = home.goals_per_match * (home.attack / max(away.defense, 1.0)) * (1 + advantage)
    away_goals = away.goals_per_match * (away.attack / max(home.defense, 1.0)) * (1 - advantage * 0.5)
    if ctx.normalized and _expected_total(ctx.normalized) >= ctx.config.high_scoring_total:
        home_goals *= ctx.config.high_scoring_boost
        away_goals *= ctx.config.high_scoring_boost
    score = format_score(home_goals, away_goals, ctx.config.max_goals)
    return AlgorithmResult(AlgorithmKind.STATISTICAL, score, 0.75)


def market_sentiment(ctx: AlgorithmContext) -> AlgorithmResult:
    """The market favourite: lowest coefficient, first one on ties."""
    if not ctx.normalized:
        return _fallback(AlgorithmKind.MARKET_SENTIMENT, ctx)
    favourite = ctx.normalized[0]
    for row in ctx.normalized[1:]:
        if row.coefficient < favourite.coefficient:
            favourite = row
    return AlgorithmResult(
        AlgorithmKind.MARKET_SENTIMENT,
        favourite.score,
        min(0.9, 1.0 / favourite.coefficient),
    )


def pattern_recognition(ctx: AlgorithmContext) -> AlgorithmResult:
    """Most common actual score among recent matches with a similar strength gap."""
    gap = ctx.strength_gap
    tolerance = ctx.config.pattern_gap_tolerance
    similar = [r for r in reversed(ctx.history) if abs(r.strength_gap - gap) <= tolerance]
    similar = similar[: ctx.config.pattern_window]
    if not similar:
        result = statistical(ctx)
        return AlgorithmResult(AlgorithmKind.PATTERN_RECOGNITION, result.score, result.confidence)
    counts = Counter(r.actual_score for r in similar)
    # most_common keeps first-seen order among equal counts
    score, frequency = counts.most_common()[0]
    return AlgorithmResult(AlgorithmKind.PATTERN_RECOGNITION, score, frequency / len(similar))


def _time_factor(hours_to_kickoff: float) -> float:
    if hours_to_kickoff <= 24:
        return 1.0
    if hours_to_kickoff <= 48:
        return 0.9
    return 0.8


def real_time_context(ctx: AlgorithmContext) -> AlgorithmResult:
    top = ctx.top
    if top is None:
        return _fallback(AlgorithmKind.REAL_TIME_CONTEXT, ctx)
    home_goals, away_goals = parse_score(top.score)
    match = ctx.match
    home_goals *= (1 - match.home_injury_impact) * (1 - match.weather_impact)
    home_goals *= ctx.home.attacking_momentum / max(ctx.away.defensive_stability, 0.1)
    away_goals *= (1 - match.away_injury_impact) * (1 - match.weather_impact)
    away_goals *= ctx.away.attacking_momentum / max(ctx.home.defensive_stability, 0.1)
    confidence = 0.7 * _time_factor(match.hours_to_kickoff) * (1 - 0.3 * match.market_volatility)
    return AlgorithmResult(
        AlgorithmKind.REAL_TIME_CONTEXT,
        format_score(home_goals, away_goals, ctx.config.max_goals),
        _clamp(confidence, 0.3, 0.9),
    )


# Fixed two-layer scorer: 11 inputs -> 4 tanh units -> 2 softplus goal rates.
_HIDDEN_WEIGHTS = np.array(
    [
        [0.0, 0.0, 2.0, -2.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 2.0, -2.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        [0.5, -0.5, 0.0, 0.0, 0.0, 0.0, 1.0, -1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 0.5],
    ]
)
_HIDDEN_BIAS = np.array([0.0, 0.0, 0.0, -1.0])
_OUTPUT_WEIGHTS = np.array(
    [
        [1.0, -0.3, 0.4, 0.5],
        [-0.3, 1.0, -0.4, 0.5],
    ]
)
_OUTPUT_BIAS = np.array([0.9, 0.5])


def _feature_vector(home: TeamFeatures, away: TeamFeatures) -> np.ndarray:
    return np.array(
        [
            home.overall / 100.0,
            away.overall / 100.0,
            home.attack / 100.0,
            away.defense / 100.0,
            away.attack / 100.0,
            home.defense / 100.0,
            home.form / 10.0,
            away.form / 10.0,
            home.goals_per_match / 3.0,
            away.goals_per_match / 3.0,
            home.home_advantage,
        ]
    )


def neural_style(ctx: AlgorithmContext) -> AlgorithmResult:
    hidden = np.tanh(_HIDDEN_WEIGHTS @ _feature_vector(ctx.home, ctx.away) + _HIDDEN_BIAS)
    rates = np.logaddexp(0.0, _OUTPUT_WEIGHTS @ hidden + _OUTPUT_BIAS)
    activation = float(np.mean(np.abs(hidden)))
    confidence = _clamp(0.7 + 0.25 * activation, 0.7, 0.95)
    score = format_score(float(rates[0]), float(rates[1]), ctx.config.max_goals)
    return AlgorithmResult(AlgorithmKind.NEURAL_STYLE, score, confidence)


def extreme_probability(ctx: AlgorithmContext) -> float:
    team_share = 0.5 * (ctx.home.extreme_frequency + ctx.away.extreme_frequency)
    return _clamp(team_share + ctx.odds_extreme_share, 0.0, 1.0)


def extreme_score_detector(ctx: AlgorithmContext) -> AlgorithmResult:
    probability = extreme_probability(ctx)
    if probability >= ctx.config.extreme_probability_threshold:
        extreme_rows = [row for row in ctx.normalized if row.score_type == EXTREME]
        if extreme_rows:
            score = extreme_rows[0].score
        else:
            score = "5-1" if ctx.home.overall >= ctx.away.overall else "1-5"
        return AlgorithmResult(AlgorithmKind.EXTREME_SCORE_DETECTOR, score, min(0.95, probability * 0.8))
    top = ctx.top
    score = top.score if top is not None else ctx.config.fallback_score
    return AlgorithmResult(AlgorithmKind.EXTREME_SCORE_DETECTOR, score, (1 - probability) * 0.6)


ALGORITHMS: Dict[AlgorithmKind, Callable[[AlgorithmContext], AlgorithmResult]] = {
    AlgorithmKind.PROBABILITY_BASED: probability_based,
    AlgorithmKind.STATISTICAL: statistical,
    AlgorithmKind.MARKET_SENTIMENT: market_sentiment,
    AlgorithmKind.PATTERN_RECOGNITION: pattern_recognition,
    AlgorithmKind.REAL_TIME_CONTEXT: real_time_context,
    AlgorithmKind.NEURAL_STYLE: neural_style,
    AlgorithmKind.EXTREME_SCORE_DETECTOR: extreme_score_detector,
}


def _bounded(result: AlgorithmResult, ctx: AlgorithmContext) -> AlgorithmResult:
    """Rewrite a candidate as a canonical "H-A" with both sides in [0, max_goals]."""
    parsed = parse_score(result.score)
    if parsed is None:
        return replace(result, score=ctx.config.fallback_score)
    score = format_score(parsed[0], parsed[1], ctx.config.max_goals)
    if score == result.score:
        return result
    return replace(result, score=score)


def run_algorithm(kind: AlgorithmKind, ctx: AlgorithmContext) -> AlgorithmResult:
    return _bounded(ALGORITHMS[kind](ctx), ctx)


def run_algorithm_bank(
    ctx: AlgorithmContext,
    kinds: Optional[Iterable[AlgorithmKind]] = None,
    max_workers: Optional[int] = None,
) -> List[AlgorithmResult]:
    """Run every requested strategy; results keep the order of ``kinds``."""
    selected = list(kinds) if kinds is not None else list(AlgorithmKind)
    if max_workers and max_workers > 1 and len(selected) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda kind: run_algorithm(kind, ctx), selected))
    else:
        results = [run_algorithm(kind, ctx) for kind in selected]
    for result in results:
        logger.debug("%s -> %s (%.2f)", result.algorithm.value, result.score, result.confidence)
    return results
