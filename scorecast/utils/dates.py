"""Datetime helpers for match kickoff times."""

from datetime import datetime, timezone
from typing import Optional, Union

from scorecast.exceptions import ValidationError

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%Y-%m-%d",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_match_datetime(value: Union[str, datetime, None]) -> datetime:
    """
    Parse a kickoff time into an aware UTC datetime.

    Accepts ISO-8601 (with or without offset, "Z" suffix included) and a few
    form-style layouts. Naive values are taken to be UTC.

    Raises:
        ValidationError: if the value is empty or unparseable
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value or "").strip()
        if not text:
            raise ValidationError("Match datetime is required", field="match_datetime")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            for fmt in _FALLBACK_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            raise ValidationError(f"Unparseable match datetime: {value!r}", field="match_datetime")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def hours_until(match_datetime: Union[str, datetime], now: Optional[datetime] = None) -> float:
    """Hours from ``now`` to kickoff; negative once the match has started."""
    kickoff = parse_match_datetime(match_datetime)
    reference = parse_match_datetime(now) if now is not None else utc_now()
    return (kickoff - reference).total_seconds() / 3600.0


def isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()
