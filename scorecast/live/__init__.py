"""Live match tracking."""

from scorecast.live.tracking import (
    MatchStatus,
    LiveMatchTracker,
    LiveSnapshot,
    build_live_snapshot,
    exact_match_probability,
)

__all__ = [
    "MatchStatus",
    "LiveMatchTracker",
    "LiveSnapshot",
    "build_live_snapshot",
    "exact_match_probability",
]
