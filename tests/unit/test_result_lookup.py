"""
Unit tests for scorecast.ingestion.results.

Tests:
- Normalization of provider payloads
- Status estimates when the provider is unreachable
- HTTP lookups with retry/backoff (using a fake session)
- TTL caching and the static lookup table
"""

import json
from datetime import datetime, timezone

import pytest
import requests

from scorecast.config import Config
from scorecast.exceptions import ConfigurationError, LookupFailure, ValidationError
from scorecast.ingestion.results import (
    CachedResultLookup,
    HttpResultLookup,
    LookupResult,
    StaticResultLookup,
    estimate_match_status,
    normalize_lookup_payload,
)
from scorecast.ops.metrics import InMemoryMetricsRecorder
from scorecast.ops.rate_limiter import RateLimiter
from scorecast.storage.cache import FileCache, MemoryCache
from tests.mocks import FakeResponse, FakeResultLookup, FakeSession, make_prediction


class TestNormalizeLookupPayload:
    """Tests for normalize_lookup_payload."""

    def test_finished(self):
        result = normalize_lookup_payload({"status": "FT", "finalScore": "2 - 1", "halftimeScore": "1-0"})
        assert result.status == "finished"
        assert result.final_score == "2-1"
        assert result.halftime_score == "1-0"
        assert result.is_terminal

    def test_finished_without_score_is_error(self):
        assert normalize_lookup_payload({"status": "finished"}).status == "error"

    def test_live(self):
        result = normalize_lookup_payload({"status": "in progress", "current_score": "1-0", "minute": "63"})
        assert result.status == "live"
        assert result.current_score == "1-0"
        assert result.minute == 63

    def test_live_minute_clamped(self):
        assert normalize_lookup_payload({"status": "live", "score": "0-0", "minute": 200}).minute == 120

    def test_scheduled(self):
        result = normalize_lookup_payload({"status": "upcoming", "kickoff": "2024-05-02T18:00:00Z"})
        assert result.status == "scheduled"
        assert result.scheduled_time == "2024-05-02T18:00:00Z"

    @pytest.mark.parametrize("payload", [None, [], "finished", {"status": "postponed"}, {}])
    def test_unknown_shapes_are_errors(self, payload):
        assert normalize_lookup_payload(payload, source="test").status == "error"


class TestEstimateMatchStatus:
    """Tests for estimate_match_status."""

    NOW = datetime(2024, 5, 2, 18, 0, tzinfo=timezone.utc)

    def test_upcoming(self):
        assert estimate_match_status("2024-05-02T20:00:00Z", self.NOW) == "upcoming"

    def test_possibly_live(self):
        assert estimate_match_status("2024-05-02T17:00:00Z", self.NOW) == "possibly_live"

    def test_likely_finished(self):
        assert estimate_match_status("2024-05-02T12:00:00Z", self.NOW) == "likely_finished"

    def test_unparseable(self):
        assert estimate_match_status("soon", self.NOW) == "upcoming"


class TestHttpResultLookup:
    """Tests for HttpResultLookup."""

    @pytest.fixture
    def config(self):
        return Config(lookup_base_url="http://results.test/api/", lookup_interval=0.0, lookup_max_retries=2)

    def _lookup(self, config, session, metrics=None, sleeps=None):
        return HttpResultLookup(
            config,
            session=session,
            rate_limiter=RateLimiter(default_interval=0.0),
            metrics=metrics or InMemoryMetricsRecorder(),
            sleep=(sleeps.append if sleeps is not None else lambda _: None),
        )

    def test_requires_base_url(self):
        with pytest.raises(ConfigurationError):
            HttpResultLookup(Config())

    def test_success(self, config):
        session = FakeSession(FakeResponse(200, {"status": "finished", "final_score": "3-0"}))
        result = self._lookup(config, session).lookup(make_prediction(prediction_id=1))
        assert result.status == "finished"
        assert result.final_score == "3-0"
        assert result.source == "http"
        request = session.requests[0]
        assert request["url"] == "http://results.test/api/matches"
        assert request["params"]["home"] == "Lyon"
        assert request["timeout"] == config.lookup_timeout

    def test_retries_server_errors(self, config):
        sleeps = []
        session = FakeSession(
            FakeResponse(503),
            FakeResponse(200, {"status": "live", "current_score": "1-1", "minute": 70}),
        )
        result = self._lookup(config, session, sleeps=sleeps).lookup(make_prediction(prediction_id=1))
        assert result.status == "live"
        assert len(session.requests) == 2
        assert len(sleeps) == 1

    def test_client_error_not_retried(self, config):
        metrics = InMemoryMetricsRecorder()
        session = FakeSession(FakeResponse(404))
        with pytest.raises(LookupFailure):
            self._lookup(config, session, metrics=metrics).lookup(make_prediction(prediction_id=1))
        assert len(session.requests) == 1
        assert metrics.counter("lookup.failures") == 1

    def test_connection_errors_exhaust_retries(self, config):
        session = FakeSession(requests.ConnectionError("refused"))
        with pytest.raises(LookupFailure) as excinfo:
            self._lookup(config, session).lookup(make_prediction(prediction_id=1))
        assert len(session.requests) == config.lookup_max_retries + 1
        assert isinstance(excinfo.value.original_error, requests.ConnectionError)

    def test_delay_capped(self, config):
        lookup = self._lookup(config, FakeSession(FakeResponse(200, {})))
        assert lookup._calculate_delay(10) == lookup.max_delay




class TestCachedResultLookup:
    """Tests for CachedResultLookup."""

    def test_second_call_served_from_cache(self):
        inner = FakeResultLookup()
        inner.script("Lyon", "Nantes", {"status": "live", "current_score": "1-0", "minute": 20})
        cached = CachedResultLookup(inner, MemoryCache(), ttl_seconds=60)
        prediction = make_prediction(prediction_id=1)
        first = cached.lookup(prediction)
        second = cached.lookup(prediction)
        assert first == second
        assert inner.calls == [1]

    def test_errors_not_cached(self):
        inner = FakeResultLookup()
        inner.script("Lyon", "Nantes", {"status": "broken"})
        cached = CachedResultLookup(inner, MemoryCache(), ttl_seconds=60)
        prediction = make_prediction(prediction_id=1)
        cached.lookup(prediction)
        cached.lookup(prediction)
        assert inner.calls == [1, 1]

    def test_entries_expire(self):
        now = [1000.0]
        inner = FakeResultLookup()
        cached = CachedResultLookup(inner, MemoryCache(clock=lambda: now[0]), ttl_seconds=60)
        prediction = make_prediction(prediction_id=1)
        cached.lookup(prediction)
        now[0] += 61
        cached.lookup(prediction)
        assert inner.calls == [1, 1]

    def test_file_cache(self, tmp_path):
        inner = FakeResultLookup()
        inner.script("Lyon", "Nantes", {"status": "finished", "final_score": "0-0"})
        prediction = make_prediction(prediction_id=1)
        CachedResultLookup(inner, FileCache(tmp_path), ttl_seconds=60).lookup(prediction)
        again = CachedResultLookup(inner, FileCache(tmp_path), ttl_seconds=60).lookup(prediction)
        assert again.final_score == "0-0"
        assert inner.calls == [1]

    def test_failures_propagate(self):
        inner = FakeResultLookup(failing=["lyon|nantes"])
        with pytest.raises(LookupFailure):
            CachedResultLookup(inner).lookup(make_prediction(prediction_id=1))


class TestStaticResultLookup:
    """Tests for StaticResultLookup."""

    def test_unknown_match_is_scheduled(self):
        result = StaticResultLookup().lookup(make_prediction())
        assert result.status == "scheduled"
        assert result.scheduled_time == "2024-05-02T18:00:00+00:00"

    def test_known_match(self):
        lookup = StaticResultLookup()
        lookup.set_result("LYON", "nantes", {"status": "finished", "final_score": "1-1"})
        assert lookup.lookup(make_prediction()).final_score == "1-1"

    def test_from_file(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text(json.dumps([
            {"home_team": "Lyon", "away_team": "Nantes", "status": "live", "current_score": "0-1", "minute": 12},
        ]), encoding="utf-8")
        result = StaticResultLookup.from_file(path).lookup(make_prediction())
        assert result.status == "live"
        assert result.current_score == "0-1"

    def test_from_file_requires_list(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text(json.dumps({"status": "finished"}), encoding="utf-8")
        with pytest.raises(ValidationError):
            StaticResultLookup.from_file(path)

    def test_lookup_result_round_trip(self):
        result = LookupResult(status="live", current_score="1-0", minute=33, source="static")
        assert LookupResult.from_dict(result.to_dict()) == result
