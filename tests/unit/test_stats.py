"""
Unit tests for scorecast.evaluation.stats.

Tests:
- Defaults with no resolved predictions
- Accuracy rates, calibration and trend over a small hand-checked set
- Per-algorithm accuracy and hit rates
"""

import pandas as pd
import pytest

from scorecast.evaluation.evaluator import evaluate_prediction
from scorecast.evaluation.stats import compute_accuracy_stats, improvement_trend
from tests.mocks import make_prediction


def resolved(prediction_id, predicted, actual, confidence, day, halftime=None, breakdown=None,
             home_team="Lyon", away_team="Nantes"):
    prediction = make_prediction(
        predicted,
        confidence=confidence,
        prediction_id=prediction_id,
        timestamp=f"2024-05-{day:02d}T12:00:00+00:00",
        breakdown=breakdown,
        home_team=home_team,
        away_team=away_team,
    )
    prediction.actual_result = evaluate_prediction(prediction, actual, halftime)
    return prediction


@pytest.fixture
def history():
    return [
        resolved(1, "2-1", "2-1", 80, 1, halftime="1-0", breakdown=[
            {"algorithm": "probability_based", "score": "2-1"},
            {"algorithm": "statistical", "score": "1-0"},
        ]),
        resolved(2, "1-0", "0-2", 80, 2, breakdown=[
            {"algorithm": "probability_based", "score": "1-0"},
            {"algorithm": "statistical", "score": "0-2"},
        ]),
        resolved(3, "1-1", "2-0", 45, 3),
        resolved(4, "0-0", "0-0", 45, 4),
    ]


class TestEmptyStats:
    """Tests for compute_accuracy_stats without resolved predictions."""

    def test_defaults(self):
        stats = compute_accuracy_stats([])
        assert stats.total_predictions == 0
        assert stats.accuracy_rate == 0
        assert stats.confidence_calibration == 50
        assert stats.average_confidence == 60

    def test_pending_only(self):
        stats = compute_accuracy_stats([make_prediction(prediction_id=1), make_prediction(prediction_id=2)])
        assert stats.total_predictions == 2
        assert stats.pending_predictions == 2
        assert stats.completed_predictions == 0


class TestComputeAccuracyStats:
    """Tests for compute_accuracy_stats over resolved predictions."""

    def test_rates(self, history):
        stats = compute_accuracy_stats(history + [make_prediction(prediction_id=5)])
        assert stats.total_predictions == 5
        assert stats.completed_predictions == 4
        assert stats.pending_predictions == 1
        assert stats.correct_predictions == 2
        assert stats.accuracy_rate == 50
        assert stats.exact_score_accuracy == 50
        assert stats.winner_accuracy == 50
        assert stats.halftime_accuracy == 100
        assert stats.average_accuracy_score == pytest.approx(56.25)

    def test_confidence_buckets(self, history):
        stats = compute_accuracy_stats(history)
        assert stats.confidence_calibration == 85
        assert stats.high_confidence_accuracy == 50
        assert stats.low_confidence_accuracy == 50
        assert 25 <= stats.average_confidence <= 95

    def test_flat_trend(self, history):
        assert compute_accuracy_stats(history).improvement_trend == 0

    def test_improving_trend(self):
        predictions = [
            resolved(1, "1-0", "0-1", 60, 1),
            resolved(2, "1-0", "0-1", 60, 2),
            resolved(3, "1-0", "1-0", 60, 3),
            resolved(4, "1-0", "1-0", 60, 4),
        ]
        assert compute_accuracy_stats(predictions).improvement_trend == 100

    def test_trend_needs_two_predictions(self):
        assert improvement_trend(pd.DataFrame()) == 0

    def test_algorithm_performance(self, history):
        stats = compute_accuracy_stats(history)
        assert stats.algorithm_accuracy == {"probability_based": 0.5}
        assert stats.algorithm_samples == {"probability_based": 2}
        assert stats.algorithm_hit_rate == {"probability_based": 0.5, "statistical": 0.5}

    def test_hardest_predictions(self, history):
        hardest = compute_accuracy_stats(history).most_difficult_predictions
        assert [row["id"] for row in hardest[:2]] == [2, 3]
        assert hardest[0]["accuracy_score"] == 10
        assert hardest[0]["match"] == "Lyon vs Nantes"

    def test_team_rankings(self):
        predictions = [
            resolved(1, "1-0", "1-0", 60, 1, home_team="Lyon", away_team="Nantes"),
            resolved(2, "1-0", "1-0", 60, 2, home_team="Nice", away_team="Lyon"),
            resolved(3, "1-0", "0-1", 60, 3, home_team="Nantes", away_team="Brest"),
        ]
        teams = compute_accuracy_stats(predictions).best_analyzed_teams
        assert teams[0] == {"team": "Lyon", "accuracy": 100, "predictions": 2}
        assert {row["team"] for row in teams} == {"Lyon", "Nantes"}

    def test_to_dict(self, history):
        payload = compute_accuracy_stats(history).to_dict()
        assert payload["accuracy_rate"] == 50
        assert isinstance(payload["best_analyzed_teams"], list)
