"""Utility modules for scorecast."""

from scorecast.utils.dates import utc_now, parse_match_datetime, hours_until, isoformat

__all__ = ["utc_now", "parse_match_datetime", "hours_until", "isoformat"]
