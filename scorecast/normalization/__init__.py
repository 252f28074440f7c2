"""Odds normalization and scoreline classification."""

from scorecast.normalization.scores import (
    ScoreProfile,
    parse_score,
    classify_score,
    determine_winner,
    format_score,
    goals_difference,
    round_half_up,
)
from scorecast.normalization.odds import (
    OddsAnalysis,
    parse_odds_entries,
    normalize_odds,
    analyze_odds,
    build_top_predictions,
    extreme_signal,
    market_confidence,
)

__all__ = [
    "ScoreProfile",
    "parse_score",
    "classify_score",
    "determine_winner",
    "format_score",
    "goals_difference",
    "round_half_up",
    "OddsAnalysis",
    "parse_odds_entries",
    "normalize_odds",
    "analyze_odds",
    "build_top_predictions",
    "extreme_signal",
    "market_confidence",
]
