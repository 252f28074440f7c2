"""Post-match evaluation, statistics and learned weights."""

from scorecast.evaluation.evaluator import (
    evaluate_prediction,
    assess_confidence_accuracy,
    extract_learning_points,
)
from scorecast.evaluation.stats import AccuracyStats, compute_accuracy_stats
from scorecast.evaluation.weights import WeightStore

__all__ = [
    "evaluate_prediction",
    "assess_confidence_accuracy",
    "extract_learning_points",
    "AccuracyStats",
    "compute_accuracy_stats",
    "WeightStore",
]
