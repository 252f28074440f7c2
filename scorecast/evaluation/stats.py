"""Accuracy statistics across resolved predictions."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List
import logging

import pandas as pd

from scorecast.constants import (
    CALIBRATION_BINS,
    HIGH_CONFIDENCE_THRESHOLD,
    LOW_CONFIDENCE_THRESHOLD,
)
from scorecast.models.schema import Prediction

logger = logging.getLogger(__name__)

DEFAULT_CALIBRATION = 50
DEFAULT_AVERAGE_CONFIDENCE = 60
MIN_TEAM_SAMPLES = 2


@dataclass
class AccuracyStats:
    total_predictions: int = 0
    completed_predictions: int = 0
    correct_predictions: int = 0
    pending_predictions: int = 0
    accuracy_rate: int = 0
    exact_score_accuracy: int = 0
    alternatives_accuracy: int = 0
    winner_accuracy: int = 0
    halftime_accuracy: int = 0
    average_accuracy_score: float = 0.0
    confidence_calibration: int = DEFAULT_CALIBRATION
    average_confidence: int = DEFAULT_AVERAGE_CONFIDENCE
    high_confidence_accuracy: int = 0
    low_confidence_accuracy: int = 0
    improvement_trend: int = 0
    algorithm_accuracy: Dict[str, float] = field(default_factory=dict)
    algorithm_samples: Dict[str, int] = field(default_factory=dict)
    algorithm_hit_rate: Dict[str, float] = field(default_factory=dict)
    best_analyzed_teams: List[Dict[str, Any]] = field(default_factory=list)
    most_difficult_predictions: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _percent(numerator: float, denominator: float) -> int:
    if denominator <= 0:
        return 0
    return int(round(numerator / denominator * 100))


def _completed_frame(completed: List[Prediction]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": p.id,
                "home_team": p.home_team,
                "away_team": p.away_team,
                "timestamp": p.timestamp,
                "predicted_score": p.predicted_score,
                "actual_score": p.actual_result.actual_score,
                "confidence": float(p.confidence),
                "correct": bool(p.actual_result.correct),
                "winner_correct": bool(p.actual_result.winner_correct),
                "in_alternatives": bool(p.actual_result.in_alternatives),
                "halftime_correct": p.actual_result.halftime_correct,
                "accuracy_score": p.actual_result.accuracy_score,
            }
            for p in completed
        ]
    )


def confidence_calibration(frame: pd.DataFrame) -> int:
    """
    How closely stated confidence tracks observed accuracy.

    Predictions are binned by confidence; each non-empty bin contributes the
    gap between its hit rate and the bin midpoint. Returned as
    ``100 - mean gap`` in percent.
    """
    if frame.empty:
        return DEFAULT_CALIBRATION
    bins = pd.cut(
        frame["confidence"].clip(upper=99.9),
        bins=CALIBRATION_BINS,
        right=False,
    )
    grouped = frame.groupby(bins, observed=True)["correct"].mean()
    if grouped.empty:
        return DEFAULT_CALIBRATION
    midpoints = [(interval.left + interval.right) / 200.0 for interval in grouped.index]
    errors = [abs(observed - expected) for observed, expected in zip(grouped.values, midpoints)]
    return max(0, int(round(100 - sum(errors) / len(errors) * 100)))


def improvement_trend(frame: pd.DataFrame) -> int:
    """Accuracy of the later half of resolved predictions minus the earlier half."""
    if len(frame) < 2:
        return 0
    ordered = frame.sort_values(["timestamp", "id"], kind="stable")
    half = len(ordered) // 2
    earlier = ordered.iloc[:half]["correct"].mean()
    later = ordered.iloc[half:]["correct"].mean()
    return int(round((later - earlier) * 100))


def algorithm_performance(completed: List[Prediction]):
    """
    Per-algorithm accuracy, sample counts and hit rate.

    Accuracy credits an algorithm with every resolved prediction whose final
    score it voted for. Hit rate counts how often its own candidate was the
    actual score.
    """
    agreed: Dict[str, int] = {}
    agreed_correct: Dict[str, int] = {}
    hits: Dict[str, int] = {}
    seen: Dict[str, int] = {}
    for prediction in completed:
        actual = prediction.actual_result.actual_score
        for row in prediction.algorithm_breakdown:
            name = row.get("algorithm")
            if not name:
                continue
            seen[name] = seen.get(name, 0) + 1
            if row.get("score") == actual:
                hits[name] = hits.get(name, 0) + 1
            if row.get("score") == prediction.predicted_score:
                agreed[name] = agreed.get(name, 0) + 1
                if prediction.actual_result.correct:
                    agreed_correct[name] = agreed_correct.get(name, 0) + 1
    accuracy = {name: agreed_correct.get(name, 0) / count for name, count in agreed.items()}
    hit_rate = {name: hits.get(name, 0) / count for name, count in seen.items()}
    return accuracy, dict(agreed), hit_rate


def _team_rankings(frame: pd.DataFrame, limit: int = 5) -> List[Dict[str, Any]]:
    rows = pd.concat(
        [
            frame[["home_team", "correct"]].rename(columns={"home_team": "team"}),
            frame[["away_team", "correct"]].rename(columns={"away_team": "team"}),
        ]
    )
    summary = rows.groupby("team")["correct"].agg(["mean", "count"])
    summary = summary[summary["count"] >= MIN_TEAM_SAMPLES]
    summary = summary.sort_values(["mean", "count"], ascending=[False, False]).head(limit)
    return [
        {"team": team, "accuracy": _percent(row["mean"], 1), "predictions": int(row["count"])}
        for team, row in summary.iterrows()
    ]


def _hardest(frame: pd.DataFrame, limit: int = 5) -> List[Dict[str, Any]]:
    worst = frame.sort_values(["accuracy_score", "id"], ascending=[True, True]).head(limit)
    return [
        {
            "id": int(row["id"]) if pd.notna(row["id"]) else None,
            "match": f"{row['home_team']} vs {row['away_team']}",
            "predicted_score": row["predicted_score"],
            "actual_score": row["actual_score"],
            "accuracy_score": int(row["accuracy_score"]),
        }
        for _, row in worst.iterrows()
    ]


def compute_accuracy_stats(predictions: Iterable[Prediction]) -> AccuracyStats:
    predictions = list(predictions)
    completed = [p for p in predictions if p.actual_result is not None]
    stats = AccuracyStats(
        total_predictions=len(predictions),
        completed_predictions=len(completed),
        pending_predictions=len(predictions) - len(completed),
    )
    if not completed:
        return stats

    frame = _completed_frame(completed)
    n = len(frame)
    correct = int(frame["correct"].sum())
    stats.correct_predictions = correct
    stats.accuracy_rate = _percent(correct, n)
    stats.exact_score_accuracy = stats.accuracy_rate
    stats.alternatives_accuracy = _percent(frame["in_alternatives"].sum(), n)
    stats.winner_accuracy = _percent(frame["winner_correct"].sum(), n)

    halftime = frame["halftime_correct"].dropna()
    stats.halftime_accuracy = _percent(halftime.astype(bool).sum(), len(halftime))
    stats.average_accuracy_score = round(float(frame["accuracy_score"].mean()), 2)

    stats.confidence_calibration = confidence_calibration(frame)
    stats.average_confidence = int(round(frame["confidence"].mean()))
    high = frame[frame["confidence"] > HIGH_CONFIDENCE_THRESHOLD]
    low = frame[frame["confidence"] < LOW_CONFIDENCE_THRESHOLD]
    stats.high_confidence_accuracy = _percent(high["correct"].sum(), len(high))
    stats.low_confidence_accuracy = _percent(low["correct"].sum(), len(low))
    stats.improvement_trend = improvement_trend(frame)

    accuracy, samples, hit_rate = algorithm_performance(completed)
    stats.algorithm_accuracy = {k: round(v, 4) for k, v in accuracy.items()}
    stats.algorithm_samples = samples
    stats.algorithm_hit_rate = {k: round(v, 4) for k, v in hit_rate.items()}

    stats.best_analyzed_teams = _team_rankings(frame)
    stats.most_difficult_predictions = _hardest(frame)
    logger.debug("Computed stats over %d resolved predictions", n)
    return stats
