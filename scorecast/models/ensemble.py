"""Weighted plurality vote over the algorithm bank."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Iterable
import logging

from scorecast.config import Config
from scorecast.exceptions import ValidationError
from scorecast.models.algorithms import AlgorithmContext
from scorecast.models.schema import AlgorithmKind, AlgorithmResult
from scorecast.normalization.odds import volatility_factor

logger = logging.getLogger(__name__)

VOLATILE_ODDS_THRESHOLD = 0.5
STRONG_FAVOURITE_PROBABILITY = 40.0
CONFRONTATION_SPREAD = 0.3
DISTANT_KICKOFF_HOURS = 48.0
THIN_HISTORY = 3


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class PerformanceState:
    """Per-algorithm multipliers learned from resolved predictions."""
    multipliers: Dict[str, float] = field(default_factory=dict)
    samples: Dict[str, int] = field(default_factory=dict)
    total_samples: int = 0

    @classmethod
    def neutral(cls) -> "PerformanceState":
        return cls()

    def multiplier(self, kind: AlgorithmKind) -> float:
        return self.multipliers.get(kind.value, 1.0)

    @classmethod
    def from_stats(cls, stats, config: Optional[Config] = None) -> "PerformanceState":
        """
        Turn per-algorithm accuracy into multipliers.

        An algorithm with fewer than ``performance_min_samples`` attributed
        predictions keeps 1.0. The others get accuracy / mean accuracy,
        clamped to the configured range.
        """
        config = config or Config()
        accuracy: Mapping[str, float] = getattr(stats, "algorithm_accuracy", {}) or {}
        samples: Mapping[str, int] = getattr(stats, "algorithm_samples", {}) or {}
        qualified = {
            name: value
            for name, value in accuracy.items()
            if samples.get(name, 0) >= config.performance_min_samples
        }
        mean = sum(qualified.values()) / len(qualified) if qualified else 0.0
        multipliers = {}
        for kind in AlgorithmKind:
            if kind.value not in qualified or mean <= 0:
                multipliers[kind.value] = 1.0
                continue
            multipliers[kind.value] = _clamp(
                qualified[kind.value] / mean,
                config.min_performance_multiplier,
                config.max_performance_multiplier,
            )
        return cls(
            multipliers=multipliers,
            samples={k: int(v) for k, v in samples.items()},
            total_samples=int(getattr(stats, "completed_predictions", 0) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "multipliers": dict(self.multipliers),
            "samples": dict(self.samples),
            "total_samples": self.total_samples,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PerformanceState":
        return cls(
            multipliers={str(k): float(v) for k, v in (data.get("multipliers") or {}).items()},
            samples={str(k): int(v) for k, v in (data.get("samples") or {}).items()},
            total_samples=int(data.get("total_samples", 0) or 0),
        )


def _confrontation_spread(confrontations: List[float]) -> float:
    implied = [1.0 / c for c in confrontations if c and c > 0]
    if len(implied) < 2:
        return 0.0
    return max(implied) - min(implied)


def context_adjustments(ctx: AlgorithmContext) -> Dict[AlgorithmKind, float]:
    """Situational nudges per algorithm, clamped to the configured band."""
    config = ctx.config
    adjustments = {kind: 1.0 for kind in AlgorithmKind}

    top = ctx.top
    if (top is not None and top.normalized_probability >= STRONG_FAVOURITE_PROBABILITY) or (
        _confrontation_spread(ctx.confrontations) >= CONFRONTATION_SPREAD
    ):
        adjustments[AlgorithmKind.MARKET_SENTIMENT] *= 1.1
    if volatility_factor(ctx.normalized) > VOLATILE_ODDS_THRESHOLD:
        adjustments[AlgorithmKind.STATISTICAL] *= 1.1
    if ctx.odds_extreme_share >= config.extreme_signal_share:
        adjustments[AlgorithmKind.EXTREME_SCORE_DETECTOR] *= 1.1
    if ctx.match.hours_to_kickoff > DISTANT_KICKOFF_HOURS:
        adjustments[AlgorithmKind.REAL_TIME_CONTEXT] *= 0.9
    if len(ctx.history) < THIN_HISTORY:
        adjustments[AlgorithmKind.PATTERN_RECOGNITION] *= 0.9

    return {
        kind: _clamp(value, config.min_context_adjustment, config.max_context_adjustment)
        for kind, value in adjustments.items()
    }


def dynamic_weights(
    performance: Optional[PerformanceState],
    adjustments: Optional[Mapping[AlgorithmKind, float]] = None,
    config: Optional[Config] = None,
    kinds: Optional[Iterable[AlgorithmKind]] = None,
) -> Dict[AlgorithmKind, float]:
    config = config or Config()
    performance = performance or PerformanceState.neutral()
    adjustments = adjustments or {}
    weights = {}
    for kind in kinds or AlgorithmKind:
        context = _clamp(
            adjustments.get(kind, 1.0),
            config.min_context_adjustment,
            config.max_context_adjustment,
        )
        weights[kind] = _clamp(
            config.base_weight(kind.value) * performance.multiplier(kind) * context,
            config.min_algorithm_weight,
            config.max_algorithm_weight,
        )
    return weights


@dataclass(frozen=True)
class EnsembleOutcome:
    score: str
    raw_confidence: float
    winning_share: float
    score_weights: Dict[str, float]
    results: List[AlgorithmResult]

    @property
    def distinct_scores(self) -> int:
        return len(self.score_weights)

    def breakdown(self) -> List[Dict[str, Any]]:
        rows = []
        for result in self.results:
            row = result.to_dict()
            row["selected"] = result.score == self.score
            rows.append(row)
        return rows


def combine(
    results: List[AlgorithmResult],
    weights: Optional[Mapping[AlgorithmKind, float]] = None,
) -> EnsembleOutcome:
    """
    Pick the score with the largest summed weight.

    Scores are grouped in first-seen order and ties go to the earliest, so
    the outcome is fully determined by the inputs.
    """
    if not results:
        raise ValidationError("No algorithm results to combine")
    weights = weights or {}
    weighted = [r.with_weight(weights.get(r.algorithm, r.weight or 0.0)) for r in results]
    if sum(r.weight for r in weighted) <= 0:
        weighted = [r.with_weight(1.0 / len(results)) for r in results]

    score_weights: Dict[str, float] = {}
    for result in weighted:
        score_weights[result.score] = score_weights.get(result.score, 0.0) + result.weight

    winner, winning_weight = None, -1.0
    for score, weight in score_weights.items():
        if weight > winning_weight:
            winner, winning_weight = score, weight

    total_weight = sum(r.weight for r in weighted)
    raw_confidence = sum(r.weight * r.confidence for r in weighted) / total_weight
    logger.debug("Ensemble picked %s with %.2f of the vote", winner, winning_weight / total_weight)
    return EnsembleOutcome(
        score=winner,
        raw_confidence=raw_confidence,
        winning_share=winning_weight / total_weight,
        score_weights=score_weights,
        results=weighted,
    )
