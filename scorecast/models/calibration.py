"""Confidence calibration and risk tiers for ensemble outcomes."""

from typing import List, Optional
import logging

from scorecast.config import Config
from scorecast.constants import RISK_LOW, RISK_MEDIUM, RISK_HIGH, SCORE_TYPES
from scorecast.models.ensemble import EnsembleOutcome
from scorecast.models.features import TeamFeatures
from scorecast.models.schema import NormalizedOdds
from scorecast.normalization.scores import round_half_up

logger = logging.getLogger(__name__)

_DEPTH_CAP = 20


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def consistency_adjustment(winning_share: float) -> float:
    """+/-10 points depending on how far the winning share sits from one half."""
    return _clamp((winning_share - 0.5) * 20.0, -10.0, 10.0)


def data_quality_adjustment(normalized: List[NormalizedOdds]) -> float:
    depth = min(len(normalized), _DEPTH_CAP) / _DEPTH_CAP
    diversity = len({row.score_type for row in normalized}) / len(SCORE_TYPES)
    return _clamp(depth * 6.0 + diversity * 4.0 - 5.0, -5.0, 5.0)


def consensus_adjustment(result_count: int, distinct_scores: int) -> float:
    if result_count <= 1:
        return 5.0
    agreement = 1.0 - (max(distinct_scores, 1) - 1) / (result_count - 1)
    return _clamp(agreement * 10.0 - 5.0, -5.0, 5.0)


def calibrate_confidence(
    outcome: EnsembleOutcome,
    normalized: List[NormalizedOdds],
    config: Optional[Config] = None,
) -> int:
    config = config or Config()
    consistency = consistency_adjustment(outcome.winning_share)
    quality = data_quality_adjustment(normalized)
    consensus = consensus_adjustment(len(outcome.results), outcome.distinct_scores)
    value = outcome.raw_confidence * 100.0 + consistency + quality + consensus
    calibrated = int(_clamp(round_half_up(value), config.min_confidence, config.max_confidence))
    logger.debug(
        "Calibrated %.1f -> %d (consistency=%.1f quality=%.1f consensus=%.1f)",
        outcome.raw_confidence * 100.0,
        calibrated,
        consistency,
        quality,
        consensus,
    )
    return calibrated


def risk_for_gap(gap: float, config: Optional[Config] = None) -> str:
    """Larger strength gaps are easier calls; small gaps carry more risk."""
    config = config or Config()
    gap = abs(gap)
    if gap > config.low_risk_gap:
        return RISK_LOW
    if gap > config.medium_risk_gap:
        return RISK_MEDIUM
    return RISK_HIGH


def assess_risk(home: TeamFeatures, away: TeamFeatures, config: Optional[Config] = None) -> str:
    return risk_for_gap(home.overall - away.overall, config)
