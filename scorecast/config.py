"""Configuration for the prediction engine."""

from dataclasses import dataclass, asdict, field, fields
from pathlib import Path
from typing import Optional, Dict, Any
import json
import os


_ENV_PREFIX = "SCORECAST_"

# Fallback policy for empty odds
_DEFAULT_FALLBACK_SCORE = "1-1"
_DEFAULT_FALLBACK_CONFIDENCE = 45

# Input requirements
_DEFAULT_MIN_FULLTIME_ENTRIES = 3
_DEFAULT_MIN_HALFTIME_ENTRIES = 3
_DEFAULT_CONFRONTATION_COUNT = 5
_DEFAULT_MIN_CONFRONTATION_HALFTIME_ENTRIES = 4
_DEFAULT_MAX_GOALS = 7

# Odds normalization
_DEFAULT_EXTREME_BOOST = 1.3
_DEFAULT_NOISE_GOAL_PENALTY = 0.7
_DEFAULT_NOISE_GOAL_THRESHOLD = 7
_DEFAULT_EXTREME_SIGNAL_SHARE = 0.15
_DEFAULT_TOP_PREDICTIONS = 6

# Algorithm bank
_DEFAULT_BASE_WEIGHTS = {
    "probability_based": 0.25,
    "statistical": 0.20,
    "market_sentiment": 0.15,
    "pattern_recognition": 0.15,
    "real_time_context": 0.10,
    "neural_style": 0.08,
    "extreme_score_detector": 0.07,
}
_DEFAULT_STRENGTH_RATIO_WEIGHT = 0.3
_DEFAULT_HIGH_SCORING_TOTAL = 3.0
_DEFAULT_HIGH_SCORING_BOOST = 1.2
_DEFAULT_PATTERN_WINDOW = 10
_DEFAULT_PATTERN_GAP_TOLERANCE = 10.0
_DEFAULT_EXTREME_PROBABILITY_THRESHOLD = 0.35

# Ensemble weighting
_DEFAULT_MIN_ALGORITHM_WEIGHT = 0.05
_DEFAULT_MAX_ALGORITHM_WEIGHT = 0.4
_DEFAULT_MIN_CONTEXT_ADJUSTMENT = 0.9
_DEFAULT_MAX_CONTEXT_ADJUSTMENT = 1.1
_DEFAULT_MIN_PERFORMANCE_MULTIPLIER = 0.5
_DEFAULT_MAX_PERFORMANCE_MULTIPLIER = 1.5
_DEFAULT_PERFORMANCE_MIN_SAMPLES = 5

# Confidence bounds and risk tiers
_DEFAULT_MIN_CONFIDENCE = 25
_DEFAULT_MAX_CONFIDENCE = 95
_DEFAULT_LOW_RISK_GAP = 15.0
_DEFAULT_MEDIUM_RISK_GAP = 5.0

# Half-time derivation
_DEFAULT_HALFTIME_FRACTION_MIN = 0.4
_DEFAULT_HALFTIME_FRACTION_MAX = 0.7
_DEFAULT_HALFTIME_CONFIDENCE_FACTOR = 0.85

# Live tracking
_DEFAULT_MATCH_MINUTES = 90
_DEFAULT_LIVE_BASE_GOAL_RATE = 0.03
_DEFAULT_OPENING_PHASE_END = 15
_DEFAULT_CLOSING_PHASE_START = 75
_DEFAULT_PHASE_INTENSITY_FACTOR = 1.2
_DEFAULT_HALFTIME_LULL_START = 45
_DEFAULT_HALFTIME_LULL_END = 50
_DEFAULT_HALFTIME_LULL_FACTOR = 0.8
_DEFAULT_LIVE_MIN_CONFIDENCE = 5
_DEFAULT_LIVE_MAX_CONFIDENCE = 95

# Result lookup
_DEFAULT_LOOKUP_BASE_URL = ""
_DEFAULT_LOOKUP_TIMEOUT = 10.0
_DEFAULT_LOOKUP_MAX_RETRIES = 2
_DEFAULT_LOOKUP_CACHE_TTL = 120
_DEFAULT_LOOKUP_INTERVAL = 1.0
_DEFAULT_CHECK_MAX_WORKERS = 4
_DEFAULT_FALLBACK_CONFIDENCE_FACTOR = 0.8

# Storage
_DEFAULT_STORE_DIR = ".scorecast"
_DEFAULT_WEIGHTS_PATH = ""


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _coerce_float(value: Optional[str], default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _coerce_int(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _coerce_weights(value: Optional[Any], default: Dict[str, float]) -> Dict[str, float]:
    """Parse "kind:0.2,kind:0.1" (or a JSON object) over the defaults."""
    weights = dict(default)
    if value is None or value == "":
        return weights
    if isinstance(value, dict):
        items = value.items()
    else:
        items = []
        for chunk in str(value).split(","):
            if ":" not in chunk:
                continue
            key, raw = chunk.split(":", 1)
            items.append((key, raw))
    for key, raw in items:
        key = str(key).strip()
        if key not in weights:
            continue
        weights[key] = _coerce_float(raw, weights[key])
    return weights


def _parse_env_file(path: Path) -> Dict[str, str]:
    data: Dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        data[key.strip()] = _strip_quotes(value.strip())
    return data


def _load_config_data(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if path.suffix.lower() == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
        return {str(k): v for k, v in payload.items()}
    return _parse_env_file(path)


def _env_key(name: str) -> str:
    return _ENV_PREFIX + name.upper()


@dataclass
class Config:
    # Fallback policy
    fallback_score: str = _DEFAULT_FALLBACK_SCORE
    fallback_confidence: int = _DEFAULT_FALLBACK_CONFIDENCE

    # Input requirements
    min_fulltime_entries: int = _DEFAULT_MIN_FULLTIME_ENTRIES
    min_halftime_entries: int = _DEFAULT_MIN_HALFTIME_ENTRIES
    confrontation_count: int = _DEFAULT_CONFRONTATION_COUNT
    min_confrontation_halftime_entries: int = _DEFAULT_MIN_CONFRONTATION_HALFTIME_ENTRIES
    max_goals: int = _DEFAULT_MAX_GOALS

    # Odds normalization
    extreme_boost: float = _DEFAULT_EXTREME_BOOST
    noise_goal_penalty: float = _DEFAULT_NOISE_GOAL_PENALTY
    noise_goal_threshold: int = _DEFAULT_NOISE_GOAL_THRESHOLD
    extreme_signal_share: float = _DEFAULT_EXTREME_SIGNAL_SHARE
    top_predictions: int = _DEFAULT_TOP_PREDICTIONS

    # Algorithm bank
    base_weights: Dict[str, float] = field(default_factory=lambda: dict(_DEFAULT_BASE_WEIGHTS))
    strength_ratio_weight: float = _DEFAULT_STRENGTH_RATIO_WEIGHT
    high_scoring_total: float = _DEFAULT_HIGH_SCORING_TOTAL
    high_scoring_boost: float = _DEFAULT_HIGH_SCORING_BOOST
    pattern_window: int = _DEFAULT_PATTERN_WINDOW
    pattern_gap_tolerance: float = _DEFAULT_PATTERN_GAP_TOLERANCE
    extreme_probability_threshold: float = _DEFAULT_EXTREME_PROBABILITY_THRESHOLD

    # Ensemble weighting
    min_algorithm_weight: float = _DEFAULT_MIN_ALGORITHM_WEIGHT
    max_algorithm_weight: float = _DEFAULT_MAX_ALGORITHM_WEIGHT
    min_context_adjustment: float = _DEFAULT_MIN_CONTEXT_ADJUSTMENT
    max_context_adjustment: float = _DEFAULT_MAX_CONTEXT_ADJUSTMENT
    min_performance_multiplier: float = _DEFAULT_MIN_PERFORMANCE_MULTIPLIER
    max_performance_multiplier: float = _DEFAULT_MAX_PERFORMANCE_MULTIPLIER
    performance_min_samples: int = _DEFAULT_PERFORMANCE_MIN_SAMPLES

    # Confidence bounds and risk tiers
    min_confidence: int = _DEFAULT_MIN_CONFIDENCE
    max_confidence: int = _DEFAULT_MAX_CONFIDENCE
    low_risk_gap: float = _DEFAULT_LOW_RISK_GAP
    medium_risk_gap: float = _DEFAULT_MEDIUM_RISK_GAP

    # Half-time derivation
    halftime_fraction_min: float = _DEFAULT_HALFTIME_FRACTION_MIN
    halftime_fraction_max: float = _DEFAULT_HALFTIME_FRACTION_MAX
    halftime_confidence_factor: float = _DEFAULT_HALFTIME_CONFIDENCE_FACTOR

    # Live tracking
    match_minutes: int = _DEFAULT_MATCH_MINUTES
    live_base_goal_rate: float = _DEFAULT_LIVE_BASE_GOAL_RATE
    opening_phase_end: int = _DEFAULT_OPENING_PHASE_END
    closing_phase_start: int = _DEFAULT_CLOSING_PHASE_START
    phase_intensity_factor: float = _DEFAULT_PHASE_INTENSITY_FACTOR
    halftime_lull_start: int = _DEFAULT_HALFTIME_LULL_START
    halftime_lull_end: int = _DEFAULT_HALFTIME_LULL_END
    halftime_lull_factor: float = _DEFAULT_HALFTIME_LULL_FACTOR
    live_min_confidence: int = _DEFAULT_LIVE_MIN_CONFIDENCE
    live_max_confidence: int = _DEFAULT_LIVE_MAX_CONFIDENCE

    # Result lookup
    lookup_base_url: str = _DEFAULT_LOOKUP_BASE_URL
    lookup_timeout: float = _DEFAULT_LOOKUP_TIMEOUT
    lookup_max_retries: int = _DEFAULT_LOOKUP_MAX_RETRIES
    lookup_cache_ttl: int = _DEFAULT_LOOKUP_CACHE_TTL
    lookup_interval: float = _DEFAULT_LOOKUP_INTERVAL
    check_max_workers: int = _DEFAULT_CHECK_MAX_WORKERS
    fallback_confidence_factor: float = _DEFAULT_FALLBACK_CONFIDENCE_FACTOR

    # Storage
    store_dir: str = _DEFAULT_STORE_DIR
    weights_path: str = _DEFAULT_WEIGHTS_PATH

    def __post_init__(self) -> None:
        if self.halftime_fraction_min > self.halftime_fraction_max:
            self.halftime_fraction_min, self.halftime_fraction_max = (
                self.halftime_fraction_max,
                self.halftime_fraction_min,
            )
        if self.min_confidence > self.max_confidence:
            self.min_confidence, self.max_confidence = self.max_confidence, self.min_confidence

    def base_weight(self, algorithm: str) -> float:
        return self.base_weights.get(algorithm, _DEFAULT_BASE_WEIGHTS.get(algorithm, 0.1))

    def resolve_weights_path(self) -> Path:
        if self.weights_path:
            return Path(self.weights_path)
        return Path(self.store_dir) / "performance_weights.json"

    @classmethod
    def _from_mapping(cls, data: Dict[str, Any], base: "Config") -> "Config":
        values = {}
        for item in fields(cls):
            current = getattr(base, item.name)
            raw = data.get(_env_key(item.name), data.get(item.name))
            if isinstance(current, bool):
                values[item.name] = _coerce_bool(raw, current)
            elif isinstance(current, int):
                values[item.name] = _coerce_int(raw, current)
            elif isinstance(current, float):
                values[item.name] = _coerce_float(raw, current)
            elif isinstance(current, dict):
                values[item.name] = _coerce_weights(raw, current)
            else:
                values[item.name] = current if raw in (None, "") else str(raw)
        return cls(**values)

    @classmethod
    def from_env(cls) -> "Config":
        return cls._from_mapping(dict(os.environ), cls())

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        env_config = cls.from_env()
        if not config_path:
            return env_config
        file_data = _load_config_data(Path(config_path))
        return cls._from_mapping(file_data, env_config)

    def to_dict(self) -> Dict[str, str]:
        return {k: str(v) for k, v in asdict(self).items()}
