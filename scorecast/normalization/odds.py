"""Convert exact-score coefficients into a normalized probability table."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import logging
import math

from scorecast.config import Config
from scorecast.constants import (
    EXTREME,
    MARKET_CONFIDENCE_STEPS,
    MARKET_CONFIDENCE_FLOOR,
    RISK_LOW,
    RISK_MEDIUM,
    RISK_HIGH,
)
from scorecast.models.schema import NormalizedOdds, OddsEntry
from scorecast.normalization.scores import parse_score, is_extreme, score_type

logger = logging.getLogger(__name__)


def _coerce_coefficient(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        coefficient = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(coefficient) or math.isinf(coefficient) or coefficient <= 0:
        return None
    return coefficient


def parse_odds_entries(raw: Optional[Iterable[Any]]) -> List[OddsEntry]:
    """Keep the well-formed entries of a raw odds list, in input order."""
    entries: List[OddsEntry] = []
    dropped = 0
    for item in raw or []:
        if isinstance(item, OddsEntry):
            score, coefficient = item.score, item.coefficient
        elif isinstance(item, dict):
            score, coefficient = item.get("score"), item.get("coefficient")
        else:
            dropped += 1
            continue
        coefficient = _coerce_coefficient(coefficient)
        parsed = parse_score(score)
        if coefficient is None or parsed is None:
            dropped += 1
            continue
        entries.append(OddsEntry(score=f"{parsed[0]}-{parsed[1]}", coefficient=coefficient))
    if dropped:
        logger.debug("Dropped %d malformed odds entries", dropped)
    return entries


def market_confidence(coefficient: float) -> int:
    for ceiling, confidence in MARKET_CONFIDENCE_STEPS:
        if coefficient <= ceiling:
            return confidence
    return MARKET_CONFIDENCE_FLOOR


def extreme_share(entries: List[OddsEntry]) -> float:
    """Fraction of total implied probability sitting on extreme scorelines."""
    total = sum(1.0 / e.coefficient for e in entries)
    if total <= 0:
        return 0.0
    return sum(1.0 / e.coefficient for e in entries if is_extreme(e.score)) / total


def extreme_signal(entries: List[OddsEntry], config: Optional[Config] = None) -> bool:
    config = config or Config()
    return bool(entries) and extreme_share(entries) >= config.extreme_signal_share


def _adjustment(entry: OddsEntry, signal: bool, config: Config) -> float:
    home, away = parse_score(entry.score)
    if home >= config.noise_goal_threshold or away >= config.noise_goal_threshold:
        return config.noise_goal_penalty
    if signal and is_extreme(entry.score):
        return config.extreme_boost
    return 1.0


def normalize_odds(entries: Iterable[Any], config: Optional[Config] = None) -> List[NormalizedOdds]:
    """Normalized probabilities (percent, summing to 100), highest first."""
    config = config or Config()
    entries = parse_odds_entries(entries)
    if not entries:
        return []

    total_inverse = sum(1.0 / e.coefficient for e in entries)
    signal = extreme_signal(entries, config)
    adjusted = [
        (1.0 / e.coefficient) / total_inverse * 100.0 * _adjustment(e, signal, config)
        for e in entries
    ]
    adjusted_total = sum(adjusted)

    rows = []
    for entry, value in zip(entries, adjusted):
        rows.append(
            NormalizedOdds(
                score=entry.score,
                coefficient=entry.coefficient,
                implied_probability=entry.implied_probability,
                normalized_probability=value / adjusted_total * 100.0,
                weight=(1.0 / entry.coefficient) / total_inverse,
                market_confidence=market_confidence(entry.coefficient),
                score_type=score_type(entry.score),
            )
        )
    rows.sort(key=lambda row: row.normalized_probability, reverse=True)
    return rows


def top_prediction_risk(coefficient: float, position: int) -> str:
    if coefficient > 10 or position > 3:
        return RISK_HIGH
    if coefficient > 5 or position > 1:
        return RISK_MEDIUM
    return RISK_LOW


def build_top_predictions(normalized: List[NormalizedOdds], limit: int = 6) -> List[Dict[str, Any]]:
    return [
        {
            "rank": position + 1,
            "score": row.score,
            "probability": round(row.normalized_probability, 2),
            "coefficient": row.coefficient,
            "risk": top_prediction_risk(row.coefficient, position),
            "market_confidence": row.market_confidence,
            "score_type": row.score_type,
        }
        for position, row in enumerate(normalized[:limit])
    ]


def market_consensus(normalized: List[NormalizedOdds]) -> float:
    if not normalized:
        return 0.0
    values = [row.normalized_probability for row in normalized]
    mean = sum(values) / len(values)
    return min(1.0, max(values) / (mean * 2)) if mean > 0 else 0.0


def volatility_factor(normalized: List[NormalizedOdds]) -> float:
    """Coefficient of variation of the normalized probabilities, capped at 1."""
    if not normalized:
        return 0.0
    values = [row.normalized_probability for row in normalized]
    mean = sum(values) / len(values)
    if mean <= 0:
        return 0.0
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return min(1.0, math.sqrt(variance) / mean)


def average_coefficient(entries: List[Any]) -> float:
    if not entries:
        return 0.0
    return sum(e.coefficient for e in entries) / len(entries)


@dataclass
class OddsAnalysis:
    normalized: List[NormalizedOdds]
    top_predictions: List[Dict[str, Any]]
    most_likely_score: str
    most_likely_probability: float
    confidence: int
    market_consensus: float = 0.0
    volatility: float = 0.0
    average_coefficient: float = 0.0
    extreme_signal: bool = False
    fallback: bool = False
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "most_likely_score": self.most_likely_score,
            "most_likely_probability": round(self.most_likely_probability, 2),
            "confidence": self.confidence,
            "top_predictions": self.top_predictions,
            "market_consensus": round(self.market_consensus, 4),
            "volatility": round(self.volatility, 4),
            "average_coefficient": round(self.average_coefficient, 2),
            "extreme_signal": self.extreme_signal,
            "fallback": self.fallback,
        }


def analyze_odds(entries: Iterable[Any], config: Optional[Config] = None) -> OddsAnalysis:
    """Normalize a market and summarize it; empty markets use the fallback score."""
    config = config or Config()
    parsed = parse_odds_entries(entries)
    normalized = normalize_odds(parsed, config)
    if not normalized:
        logger.info("No usable odds; falling back to %s", config.fallback_score)
        return OddsAnalysis(
            normalized=[],
            top_predictions=[],
            most_likely_score=config.fallback_score,
            most_likely_probability=0.0,
            confidence=config.fallback_confidence,
            fallback=True,
        )
    top = normalized[0]
    confidence = max(
        config.min_confidence,
        min(config.max_confidence, int(round(top.normalized_probability))),
    )
    return OddsAnalysis(
        normalized=normalized,
        top_predictions=build_top_predictions(normalized, config.top_predictions),
        most_likely_score=top.score,
        most_likely_probability=top.normalized_probability,
        confidence=confidence,
        market_consensus=market_consensus(normalized),
        volatility=volatility_factor(normalized),
        average_coefficient=average_coefficient(parsed),
        extreme_signal=extreme_signal(parsed, config),
    )
