"""Shared labels and lookup tables."""

import re

ENGINE_VERSION = "2.1.0"

SCORE_PATTERN = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")

# Score types
DEFENSIVE = "defensive"
BALANCED = "balanced"
ATTACKING = "attacking"
EXTREME = "extreme"
UNBALANCED = "unbalanced"
SCORE_TYPES = [DEFENSIVE, BALANCED, ATTACKING, EXTREME, UNBALANCED]

# Winner labels
HOME = "Home"
AWAY = "Away"
DRAW = "Draw"
INDETERMINATE = "Indeterminate"

# Risk tiers
RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"

# Match status values reported by the result provider
STATUS_SCHEDULED = "scheduled"
STATUS_LIVE = "live"
STATUS_FINISHED = "finished"
STATUS_ERROR = "error"
MATCH_STATUSES = [STATUS_SCHEDULED, STATUS_LIVE, STATUS_FINISHED, STATUS_ERROR]

_STATUS_ALIASES = {
    "scheduled": STATUS_SCHEDULED,
    "upcoming": STATUS_SCHEDULED,
    "not_started": STATUS_SCHEDULED,
    "live": STATUS_LIVE,
    "in_progress": STATUS_LIVE,
    "inplay": STATUS_LIVE,
    "finished": STATUS_FINISHED,
    "ft": STATUS_FINISHED,
    "ended": STATUS_FINISHED,
    "error": STATUS_ERROR,
}

# Market confidence step function: (max coefficient, confidence)
MARKET_CONFIDENCE_STEPS = [
    (1.5, 95),
    (2.0, 85),
    (3.0, 70),
    (5.0, 55),
    (10.0, 40),
]
MARKET_CONFIDENCE_FLOOR = 25

# Share of predicted goals expected by a given minute
PROGRESSION_MINUTES = [0, 15, 30, 45, 60, 75, 90]
PROGRESSION_SHARES = [0.0, 0.10, 0.25, 0.40, 0.60, 0.80, 1.00]

# Confidence calibration bins (percent)
CALIBRATION_BINS = [0, 40, 60, 75, 85, 95, 100]

# Confidence-accuracy classes
CONFIDENCE_EXCELLENT = "excellent"
CONFIDENCE_GOOD = "good"
CONFIDENCE_APPROPRIATE = "appropriate"
CONFIDENCE_OVERCONFIDENT = "overconfident"
CONFIDENCE_NEEDS_IMPROVEMENT = "needs_improvement"

HIGH_CONFIDENCE_THRESHOLD = 70
LOW_CONFIDENCE_THRESHOLD = 50


def normalize_status(value) -> str:
    """Map provider status strings onto the four known statuses."""
    key = str(value or "").strip().lower().replace(" ", "_").replace("-", "_")
    return _STATUS_ALIASES.get(key, STATUS_ERROR)
