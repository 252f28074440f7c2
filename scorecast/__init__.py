"""Odds-based football score prediction and evaluation engine."""

__all__ = [
    "cli",
    "config",
    "constants",
    "exceptions",
    "normalization",
    "models",
    "live",
    "evaluation",
    "ingestion",
    "ops",
    "storage",
    "service",
]

__version__ = "0.1.0"
