"""Post-match evaluation of a single prediction.

Evaluation is a pure function of the stored prediction and the final score:
re-running it yields an identical ``ActualResult``.
"""

from typing import List, Optional

from scorecast.constants import (
    CONFIDENCE_EXCELLENT,
    CONFIDENCE_GOOD,
    CONFIDENCE_APPROPRIATE,
    CONFIDENCE_OVERCONFIDENT,
    CONFIDENCE_NEEDS_IMPROVEMENT,
    HIGH_CONFIDENCE_THRESHOLD,
    LOW_CONFIDENCE_THRESHOLD,
)
from scorecast.exceptions import ValidationError
from scorecast.models.schema import ActualResult, Prediction
from scorecast.normalization.scores import determine_winner, goals_difference, parse_score

QUALITY_EXCELLENT = "excellent"
QUALITY_GOOD = "good"
QUALITY_FAIR = "fair"
QUALITY_POOR = "poor"


def canonical_score(score: str, field: str = "actual_score") -> str:
    parsed = parse_score(score)
    if parsed is None:
        raise ValidationError(f"Malformed score: {score!r}", field=field)
    return f"{parsed[0]}-{parsed[1]}"


def assess_confidence_accuracy(confidence: Optional[float], correct: bool) -> str:
    confidence = 50 if confidence is None else confidence
    if correct and confidence > HIGH_CONFIDENCE_THRESHOLD:
        return CONFIDENCE_EXCELLENT
    if correct and confidence > LOW_CONFIDENCE_THRESHOLD:
        return CONFIDENCE_GOOD
    if not correct and confidence < LOW_CONFIDENCE_THRESHOLD:
        return CONFIDENCE_APPROPRIATE
    if not correct and confidence > HIGH_CONFIDENCE_THRESHOLD:
        return CONFIDENCE_OVERCONFIDENT
    return CONFIDENCE_NEEDS_IMPROVEMENT


def extract_learning_points(prediction: Prediction, actual_score: str) -> List[str]:
    points = []
    missed = prediction.predicted_score != actual_score
    if missed:
        points.append("Score prediction missed")
        if actual_score in prediction.alternative_scores():
            points.append("Actual score was in alternatives - boost alternative weighting")
        else:
            points.append("Actual score not predicted - review team analysis")
    if missed and prediction.confidence > HIGH_CONFIDENCE_THRESHOLD:
        points.append("High confidence incorrect - review confidence calculation")
    return points


def assess_prediction_quality(predicted_score: str, actual_score: str) -> str:
    if predicted_score == actual_score:
        return QUALITY_EXCELLENT
    diff = goals_difference(predicted_score, actual_score)
    if diff <= 1:
        return QUALITY_GOOD
    if diff <= 2:
        return QUALITY_FAIR
    return QUALITY_POOR


def accuracy_score(predicted_score: str, actual_score: str) -> int:
    """100 for an exact hit, partial credit for the right winner, tapering otherwise."""
    if predicted_score == actual_score:
        return 100
    diff = goals_difference(predicted_score, actual_score)
    if determine_winner(predicted_score) == determine_winner(actual_score):
        return 75 if diff <= 1 else 50
    return max(0, 25 - 5 * diff)


def evaluate_prediction(
    prediction: Prediction,
    actual_score: str,
    actual_halftime_score: Optional[str] = None,
) -> ActualResult:
    actual = canonical_score(actual_score)
    predicted = prediction.predicted_score
    correct = predicted == actual
    actual_winner = determine_winner(actual)

    halftime_actual = None
    halftime_correct = None
    if actual_halftime_score:
        halftime_actual = canonical_score(actual_halftime_score, field="actual_halftime_score")
        halftime_correct = prediction.predicted_halftime_score == halftime_actual

    return ActualResult(
        actual_score=actual,
        actual_winner=actual_winner,
        correct=correct,
        winner_correct=determine_winner(predicted) == actual_winner,
        in_alternatives=actual in prediction.alternative_scores(),
        goals_difference=goals_difference(predicted, actual),
        accuracy_score=accuracy_score(predicted, actual),
        prediction_quality=assess_prediction_quality(predicted, actual),
        confidence_accuracy=assess_confidence_accuracy(prediction.confidence, correct),
        learning_points=extract_learning_points(prediction, actual),
        actual_halftime_score=halftime_actual,
        halftime_correct=halftime_correct,
    )
