"""Prediction models: records, features, algorithms and the ensemble."""

from scorecast.models.schema import (
    AlgorithmKind,
    AlgorithmResult,
    ActualResult,
    MatchInput,
    NormalizedOdds,
    OddsEntry,
    Prediction,
)

__all__ = [
    "AlgorithmKind",
    "AlgorithmResult",
    "ActualResult",
    "MatchInput",
    "NormalizedOdds",
    "OddsEntry",
    "Prediction",
]
