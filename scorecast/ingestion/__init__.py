"""Result lookup wrappers."""

from scorecast.ingestion.results import (
    LookupResult,
    ResultLookup,
    HttpResultLookup,
    CachedResultLookup,
    StaticResultLookup,
    normalize_lookup_payload,
    estimate_match_status,
)

__all__ = [
    "LookupResult",
    "ResultLookup",
    "HttpResultLookup",
    "CachedResultLookup",
    "StaticResultLookup",
    "normalize_lookup_payload",
    "estimate_match_status",
]
