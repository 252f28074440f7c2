"""Match result lookup.

The result provider is an external black box: whatever it returns is
reduced to a ``LookupResult`` by ``normalize_lookup_payload``. Transport
problems surface as ``LookupFailure``.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union
import json
import logging
import random
import time

import requests
from requests.adapters import HTTPAdapter

from scorecast.config import Config
from scorecast.constants import (
    STATUS_SCHEDULED,
    STATUS_LIVE,
    STATUS_FINISHED,
    STATUS_ERROR,
    normalize_status,
)
from scorecast.exceptions import ConfigurationError, LookupFailure, ValidationError
from scorecast.models.schema import Prediction
from scorecast.normalization.scores import parse_score
from scorecast.ops.metrics import MetricsRecorder, get_metrics_recorder
from scorecast.ops.rate_limiter import RateLimiter, get_rate_limiter
from scorecast.storage.cache import CacheStore, MemoryCache
from scorecast.utils.dates import hours_until

logger = logging.getLogger(__name__)

ESTIMATE_UPCOMING = "upcoming"
ESTIMATE_POSSIBLY_LIVE = "possibly_live"
ESTIMATE_LIKELY_FINISHED = "likely_finished"
MATCH_WINDOW_HOURS = 2.0


@dataclass(frozen=True)
class LookupResult:
    status: str
    final_score: Optional[str] = None
    current_score: Optional[str] = None
    minute: Optional[int] = None
    halftime_score: Optional[str] = None
    scheduled_time: Optional[str] = None
    source: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status == STATUS_FINISHED

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LookupResult":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def _first(payload: Dict[str, Any], *keys) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def _clean_score(value) -> Optional[str]:
    parsed = parse_score(value) if value is not None else None
    if parsed is None:
        return None
    return f"{parsed[0]}-{parsed[1]}"


def _clean_minute(value) -> Optional[int]:
    try:
        minute = int(float(value))
    except (TypeError, ValueError):
        return None
    return max(0, min(120, minute))


def normalize_lookup_payload(payload: Any, source: str = "") -> LookupResult:
    """Reduce a provider payload to a ``LookupResult``; unknown shapes become ``error``."""
    if not isinstance(payload, dict):
        logger.debug("Unrecognized lookup payload type %s", type(payload).__name__)
        return LookupResult(status=STATUS_ERROR, source=source)

    status = normalize_status(payload.get("status"))
    halftime = _clean_score(_first(payload, "halftime_score", "halftimeScore"))
    scheduled = _first(payload, "scheduled_time", "scheduledTime", "kickoff")

    if status == STATUS_FINISHED:
        final = _clean_score(_first(payload, "final_score", "finalScore", "actual_score", "score"))
        if final is None:
            logger.warning("Finished payload without a usable final score from %s", source or "provider")
            return LookupResult(status=STATUS_ERROR, source=source)
        return LookupResult(
            status=STATUS_FINISHED,
            final_score=final,
            current_score=final,
            halftime_score=halftime,
            scheduled_time=scheduled,
            source=source,
        )
    if status == STATUS_LIVE:
        current = _clean_score(_first(payload, "current_score", "currentScore", "score"))
        if current is None:
            logger.warning("Live payload without a usable current score from %s", source or "provider")
            return LookupResult(status=STATUS_ERROR, source=source)
        return LookupResult(
            status=STATUS_LIVE,
            current_score=current,
            minute=_clean_minute(payload.get("minute")),
            halftime_score=halftime,
            scheduled_time=scheduled,
            source=source,
        )
    if status == STATUS_SCHEDULED:
        return LookupResult(status=STATUS_SCHEDULED, scheduled_time=scheduled, source=source)
    return LookupResult(status=STATUS_ERROR, source=source)


def estimate_match_status(match_datetime: str, now: Optional[datetime] = None) -> str:
    """Best guess at where a match stands when the provider is unreachable."""
    try:
        hours = hours_until(match_datetime, now)
    except ValidationError:
        return ESTIMATE_UPCOMING
    if hours > 0:
        return ESTIMATE_UPCOMING
    if -hours < MATCH_WINDOW_HOURS:
        return ESTIMATE_POSSIBLY_LIVE
    return ESTIMATE_LIKELY_FINISHED


def match_key(home_team: str, away_team: str) -> str:
    return f"{home_team.strip().lower()}|{away_team.strip().lower()}"


class ResultLookup:
    """Source of match status and scores for a stored prediction."""

    name = "lookup"

    def lookup(self, prediction: Prediction) -> LookupResult:
        raise NotImplementedError


class HttpResultLookup(ResultLookup):
    """
    Queries an HTTP result provider with retries and exponential backoff.

    The provider is expected to answer ``GET <base_url>/matches`` with a
    JSON object describing one match. Connection pooling comes from a
    shared ``requests.Session``; per-source spacing from ``RateLimiter``.
    """

    name = "http"

    def __init__(
        self,
        config: Optional[Config] = None,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        metrics: Optional[MetricsRecorder] = None,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or Config()
        if not self.config.lookup_base_url:
            raise ConfigurationError("lookup_base_url", "an HTTP result provider URL is required")
        self.base_url = self.config.lookup_base_url.rstrip("/")
        self.timeout = self.config.lookup_timeout
        self.max_retries = max(0, self.config.lookup_max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep
        self._rate_limiter = rate_limiter or get_rate_limiter()
        self._rate_limiter.set_interval(self.name, self.config.lookup_interval)
        self._metrics = metrics or get_metrics_recorder()

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=4, pool_maxsize=4, max_retries=0)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self._session = session

    def _calculate_delay(self, attempt: int) -> float:
        """Exponential backoff with up to 30% jitter, capped at ``max_delay``."""
        delay = self.base_delay * (2 ** attempt)
        jitter = delay * random.uniform(0, 0.3)
        return min(delay + jitter, self.max_delay)

    def _should_retry(self, error: Exception) -> Tuple[bool, float]:
        """Returns (should_retry, delay_multiplier)."""
        if isinstance(error, requests.HTTPError) and error.response is not None:
            code = error.response.status_code
            if code == 429:
                return True, 3.0
            if code >= 500:
                return True, 1.5
            return False, 0.0
        if isinstance(error, (requests.ConnectionError, requests.Timeout)):
            return True, 1.0
        if isinstance(error, ValueError):
            # body was not JSON
            return True, 1.0
        return False, 0.0

    def _request(self, prediction: Prediction) -> Any:
        self._rate_limiter.wait(self.name)
        response = self._session.get(
            f"{self.base_url}/matches",
            params={
                "home": prediction.home_team,
                "away": prediction.away_team,
                "kickoff": prediction.match_datetime,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def lookup(self, prediction: Prediction) -> LookupResult:
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries + 1):
            try:
                with self._metrics.timed("lookup.http"):
                    payload = self._request(prediction)
                return normalize_lookup_payload(payload, source=self.name)
            except (requests.RequestException, ValueError) as e:
                last_error = e
                should_retry, multiplier = self._should_retry(e)
                if not should_retry or attempt >= self.max_retries:
                    logger.warning("Lookup for prediction %s failed after %d attempts: %s",
                                   prediction.id, attempt + 1, e)
                    break
                delay = self._calculate_delay(attempt) * multiplier
                logger.info("Lookup attempt %d failed: %s. Retrying in %.1fs", attempt + 1, e, delay)
                self._sleep(delay)
        self._metrics.increment("lookup.failures")
        raise LookupFailure(self.name, "result provider unavailable", last_error)


class CachedResultLookup(ResultLookup):
    """TTL cache in front of another lookup. Error results are never cached."""

    def __init__(self, inner: ResultLookup, cache: Optional[CacheStore] = None, ttl_seconds: int = 120) -> None:
        self.inner = inner
        self.name = f"cached:{inner.name}"
        self._cache = cache if cache is not None else MemoryCache()
        self._ttl = ttl_seconds

    @staticmethod
    def cache_key(prediction: Prediction) -> str:
        return f"{match_key(prediction.home_team, prediction.away_team)}|{prediction.match_datetime}"

    def lookup(self, prediction: Prediction) -> LookupResult:
        key = self.cache_key(prediction)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return LookupResult.from_dict(cached)
        result = self.inner.lookup(prediction)
        if result.status != STATUS_ERROR:
            self._cache.set(key, result.to_dict(), self._ttl)
        return result


class StaticResultLookup(ResultLookup):
    """Results from an in-memory table keyed by team pair; unknown matches are scheduled."""

    name = "static"

    def __init__(self, results: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self._results: Dict[str, Dict[str, Any]] = {}
        for key, payload in (results or {}).items():
            self._results[key.lower()] = dict(payload)

    def set_result(self, home_team: str, away_team: str, payload: Dict[str, Any]) -> None:
        self._results[match_key(home_team, away_team)] = dict(payload)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "StaticResultLookup":
        lookup = cls()
        for record in records:
            lookup.set_result(record["home_team"], record["away_team"], record)
        return lookup

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticResultLookup":
        """Load a JSON list of ``{home_team, away_team, status, ...}`` records."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, list):
            raise ValidationError("Results file must contain a JSON list", field="results_file")
        return cls.from_records(data)

    def lookup(self, prediction: Prediction) -> LookupResult:
        payload = self._results.get(match_key(prediction.home_team, prediction.away_team))
        if payload is None:
            return LookupResult(status=STATUS_SCHEDULED, scheduled_time=prediction.match_datetime, source=self.name)
        return normalize_lookup_payload(payload, source=self.name)
