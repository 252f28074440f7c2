"""
Unit tests for scorecast.evaluation.weights.
"""

import json

from scorecast.evaluation.weights import STORE_VERSION, WeightStore
from scorecast.models.ensemble import PerformanceState
from scorecast.models.schema import AlgorithmKind


class TestWeightStore:
    """Tests for WeightStore."""

    def test_missing_file_is_neutral(self, tmp_path):
        store = WeightStore(tmp_path / "weights.json")
        assert store.load() is False
        assert store.load_state() == PerformanceState.neutral()
        assert store.updated_at is None

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "weights.json"
        state = PerformanceState(multipliers={"statistical": 1.25}, samples={"statistical": 8}, total_samples=10)
        assert WeightStore(path).save(state) is True

        reloaded = WeightStore(path)
        assert reloaded.load() is True
        assert reloaded.load_state().multiplier(AlgorithmKind.STATISTICAL) == 1.25
        assert reloaded.updated_at
        assert "loaded" in repr(reloaded)

    def test_invalid_json_is_neutral(self, tmp_path):
        path = tmp_path / "weights.json"
        path.write_text("{not json", encoding="utf-8")
        store = WeightStore(path)
        assert store.load() is False
        assert store.load_state() == PerformanceState.neutral()

    def test_unknown_version_is_neutral(self, tmp_path):
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({
            "version": "0.1",
            "state": {"multipliers": {"statistical": 1.4}},
        }), encoding="utf-8")
        assert WeightStore(path).load_state() == PerformanceState.neutral()

    def test_file_layout(self, tmp_path):
        path = tmp_path / "weights.json"
        WeightStore(path).save(PerformanceState.neutral())
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == STORE_VERSION
        assert set(data["state"]) == {"multipliers", "samples", "total_samples"}

    def test_clear(self, tmp_path):
        path = tmp_path / "weights.json"
        store = WeightStore(path)
        store.save(PerformanceState(multipliers={"statistical": 0.8}))
        assert store.clear() is True
        assert not path.exists()
        assert store.load_state() == PerformanceState.neutral()
