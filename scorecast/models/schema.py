"""Record types shared by the engine, the repository and the CLI."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from scorecast.constants import SCORE_PATTERN


class AlgorithmKind(str, Enum):
    PROBABILITY_BASED = "probability_based"
    STATISTICAL = "statistical"
    MARKET_SENTIMENT = "market_sentiment"
    PATTERN_RECOGNITION = "pattern_recognition"
    REAL_TIME_CONTEXT = "real_time_context"
    NEURAL_STYLE = "neural_style"
    EXTREME_SCORE_DETECTOR = "extreme_score_detector"


def _tidy_score(raw) -> str:
    """Canonical "H-A" form of a score string; unparseable input is only stripped."""
    text = str(raw).strip()
    match = SCORE_PATTERN.match(text)
    if not match:
        return text
    return f"{int(match.group(1))}-{int(match.group(2))}"


def _pick(data: Dict, *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class OddsEntry:
    score: str
    coefficient: float

    @property
    def implied_probability(self) -> float:
        return 100.0 / self.coefficient

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "coefficient": self.coefficient}

    @classmethod
    def from_dict(cls, data: Dict) -> "OddsEntry":
        return cls(score=_tidy_score(data.get("score", "")), coefficient=float(data["coefficient"]))


@dataclass(frozen=True)
class NormalizedOdds:
    score: str
    coefficient: float
    implied_probability: float
    normalized_probability: float
    weight: float
    market_confidence: int
    score_type: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AlgorithmResult:
    algorithm: AlgorithmKind
    score: str
    confidence: float
    weight: float = 0.0

    def with_weight(self, weight: float) -> "AlgorithmResult":
        return AlgorithmResult(self.algorithm, self.score, self.confidence, weight)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm.value,
            "score": self.score,
            "confidence": round(self.confidence, 4),
            "weight": round(self.weight, 4),
        }


@dataclass
class MatchInput:
    """Form payload for one match. Accepts camelCase keys from the web form."""
    home_team: str
    away_team: str
    match_datetime: str
    score_odds: List[Dict[str, Any]] = field(default_factory=list)
    halftime_score_odds: List[Dict[str, Any]] = field(default_factory=list)
    confrontations: List[Any] = field(default_factory=list)
    confrontation_halftime_odds: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> "MatchInput":
        confrontations = []
        for item in _pick(data, "confrontations", default=[]) or []:
            if isinstance(item, dict):
                confrontations.append(item.get("coefficient"))
            else:
                confrontations.append(item)
        return cls(
            home_team=str(_pick(data, "home_team", "homeTeam", default="")).strip(),
            away_team=str(_pick(data, "away_team", "awayTeam", default="")).strip(),
            match_datetime=str(_pick(data, "match_datetime", "matchDateTime", "dateTime", default="")).strip(),
            score_odds=list(_pick(data, "score_odds", "scoreOdds", default=[]) or []),
            halftime_score_odds=list(_pick(data, "halftime_score_odds", "halftimeScoreOdds", default=[]) or []),
            confrontations=confrontations,
            confrontation_halftime_odds=list(
                _pick(
                    data,
                    "confrontation_halftime_odds",
                    "confrontationHalftimeScores",
                    default=[],
                ) or []
            ),
        )


@dataclass(frozen=True)
class ActualResult:
    actual_score: str
    actual_winner: str
    correct: bool
    winner_correct: bool
    in_alternatives: bool
    goals_difference: int
    accuracy_score: int
    prediction_quality: str
    confidence_accuracy: str
    learning_points: List[str]
    actual_halftime_score: Optional[str] = None
    halftime_correct: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["learning_points"] = list(self.learning_points)
        return payload

    @classmethod
    def from_dict(cls, data: Dict) -> "ActualResult":
        return cls(
            actual_score=data["actual_score"],
            actual_winner=data.get("actual_winner", ""),
            correct=bool(data.get("correct", False)),
            winner_correct=bool(data.get("winner_correct", False)),
            in_alternatives=bool(data.get("in_alternatives", False)),
            goals_difference=int(data.get("goals_difference", 0)),
            accuracy_score=int(data.get("accuracy_score", 0)),
            prediction_quality=data.get("prediction_quality", "poor"),
            confidence_accuracy=data.get("confidence_accuracy", "needs_improvement"),
            learning_points=list(data.get("learning_points", [])),
            actual_halftime_score=data.get("actual_halftime_score"),
            halftime_correct=data.get("halftime_correct"),
        )


@dataclass
class Prediction:
    home_team: str
    away_team: str
    match_datetime: str
    predicted_score: str
    predicted_winner: str
    confidence: int
    predicted_halftime_score: str
    predicted_halftime_winner: str
    halftime_confidence: int
    risk_level: str
    id: Optional[int] = None
    score_odds: List[OddsEntry] = field(default_factory=list)
    halftime_score_odds: List[OddsEntry] = field(default_factory=list)
    confrontations: List[float] = field(default_factory=list)
    confrontation_halftime_odds: List[OddsEntry] = field(default_factory=list)
    top_predictions: List[Dict[str, Any]] = field(default_factory=list)
    halftime_top_predictions: List[Dict[str, Any]] = field(default_factory=list)
    alternative_scenarios: List[Dict[str, Any]] = field(default_factory=list)
    algorithm_breakdown: List[Dict[str, Any]] = field(default_factory=list)
    strength_gap: float = 0.0
    fallback: bool = False
    engine_version: str = ""
    timestamp: str = ""
    actual_result: Optional[ActualResult] = None

    @property
    def is_completed(self) -> bool:
        return self.actual_result is not None

    def alternative_scores(self) -> List[str]:
        return [alt["score"] for alt in self.alternative_scenarios if alt.get("score")]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "match_datetime": self.match_datetime,
            "score_odds": [entry.to_dict() for entry in self.score_odds],
            "halftime_score_odds": [entry.to_dict() for entry in self.halftime_score_odds],
            "confrontations": list(self.confrontations),
            "confrontation_halftime_odds": [entry.to_dict() for entry in self.confrontation_halftime_odds],
            "predicted_score": self.predicted_score,
            "predicted_winner": self.predicted_winner,
            "confidence": self.confidence,
            "predicted_halftime_score": self.predicted_halftime_score,
            "predicted_halftime_winner": self.predicted_halftime_winner,
            "halftime_confidence": self.halftime_confidence,
            "risk_level": self.risk_level,
            "top_predictions": list(self.top_predictions),
            "halftime_top_predictions": list(self.halftime_top_predictions),
            "alternative_scenarios": list(self.alternative_scenarios),
            "algorithm_breakdown": list(self.algorithm_breakdown),
            "strength_gap": self.strength_gap,
            "fallback": self.fallback,
            "engine_version": self.engine_version,
            "timestamp": self.timestamp,
            "actual_result": self.actual_result.to_dict() if self.actual_result else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Prediction":
        actual = data.get("actual_result")
        return cls(
            id=data.get("id"),
            home_team=data["home_team"],
            away_team=data["away_team"],
            match_datetime=data.get("match_datetime", ""),
            score_odds=[OddsEntry.from_dict(row) for row in data.get("score_odds", [])],
            halftime_score_odds=[OddsEntry.from_dict(row) for row in data.get("halftime_score_odds", [])],
            confrontations=[float(c) for c in data.get("confrontations", [])],
            confrontation_halftime_odds=[
                OddsEntry.from_dict(row) for row in data.get("confrontation_halftime_odds", [])
            ],
            predicted_score=data["predicted_score"],
            predicted_winner=data.get("predicted_winner", ""),
            confidence=int(data.get("confidence", 0)),
            predicted_halftime_score=data.get("predicted_halftime_score", ""),
            predicted_halftime_winner=data.get("predicted_halftime_winner", ""),
            halftime_confidence=int(data.get("halftime_confidence", 0)),
            risk_level=data.get("risk_level", ""),
            top_predictions=list(data.get("top_predictions", [])),
            halftime_top_predictions=list(data.get("halftime_top_predictions", [])),
            alternative_scenarios=list(data.get("alternative_scenarios", [])),
            algorithm_breakdown=list(data.get("algorithm_breakdown", [])),
            strength_gap=float(data.get("strength_gap", 0.0)),
            fallback=bool(data.get("fallback", False)),
            engine_version=data.get("engine_version", ""),
            timestamp=data.get("timestamp", ""),
            actual_result=ActualResult.from_dict(actual) if actual else None,
        )
