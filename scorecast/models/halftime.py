"""Half-time scoreline derived from the full-time candidates."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging

from scorecast.config import Config
from scorecast.models.calibration import calibrate_confidence
from scorecast.models.ensemble import combine
from scorecast.models.schema import AlgorithmKind, AlgorithmResult, NormalizedOdds, OddsEntry
from scorecast.normalization.odds import build_top_predictions, normalize_odds, parse_odds_entries
from scorecast.normalization.scores import determine_winner, format_score, parse_score, round_half_up

logger = logging.getLogger(__name__)


@dataclass
class HalftimeOutcome:
    score: str
    winner: str
    confidence: int
    fraction: float
    top_predictions: List[Dict[str, Any]] = field(default_factory=list)
    breakdown: List[Dict[str, Any]] = field(default_factory=list)


def halftime_fraction(value: float, config: Optional[Config] = None) -> float:
    config = config or Config()
    return max(config.halftime_fraction_min, min(config.halftime_fraction_max, value))


def halftime_score(score: str, fraction: float, max_goals: int = 7) -> str:
    """Scale each side by ``fraction``, rounding half up."""
    home, away = parse_score(score)
    return format_score(home * fraction, away * fraction, max_goals)


def merge_halftime_odds(halftime: Iterable[Any], confrontation_halftime: Iterable[Any]) -> List[OddsEntry]:
    """Half-time market first; confrontation quotes only fill in missing scores."""
    merged: Dict[str, OddsEntry] = {}
    for entry in parse_odds_entries(halftime) + parse_odds_entries(confrontation_halftime):
        merged.setdefault(entry.score, entry)
    return list(merged.values())


def derive_halftime(
    results: List[AlgorithmResult],
    weights: Mapping[AlgorithmKind, float],
    fraction: float,
    halftime_odds: Iterable[Any] = (),
    confrontation_halftime_odds: Iterable[Any] = (),
    config: Optional[Config] = None,
) -> HalftimeOutcome:
    config = config or Config()
    fraction = halftime_fraction(fraction, config)
    scaled = [
        AlgorithmResult(r.algorithm, halftime_score(r.score, fraction, config.max_goals), r.confidence, r.weight)
        for r in results
    ]
    outcome = combine(scaled, weights)
    normalized: List[NormalizedOdds] = normalize_odds(
        merge_halftime_odds(halftime_odds, confrontation_halftime_odds), config
    )
    calibrated = calibrate_confidence(outcome, normalized, config)
    confidence = round_half_up(calibrated * config.halftime_confidence_factor)
    logger.debug("Half-time %s at fraction %.2f, confidence %d", outcome.score, fraction, confidence)
    return HalftimeOutcome(
        score=outcome.score,
        winner=determine_winner(outcome.score),
        confidence=confidence,
        fraction=fraction,
        top_predictions=build_top_predictions(normalized, config.top_predictions),
        breakdown=outcome.breakdown(),
    )
