"""
Unit tests for scorecast.cli.
"""

import json

import pytest

from scorecast.cli import _build_parser, main


@pytest.fixture
def store(tmp_path):
    return str(tmp_path / "store")


@pytest.fixture
def form_path(tmp_path, match_form):
    path = tmp_path / "match.json"
    path.write_text(json.dumps(match_form), encoding="utf-8")
    return str(path)


def run(capsys, *argv):
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, (json.loads(out) if out.strip() else None)


class TestParser:
    """Tests for argument parsing."""

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])

    def test_global_options(self):
        args = _build_parser().parse_args(["--store-dir", "/tmp/x", "live", "3", "1-0", "55"])
        assert args.store_dir == "/tmp/x"
        assert (args.prediction_id, args.score, args.minute) == (3, "1-0", 55)


class TestCommands:
    """Tests for CLI commands against a temporary store."""

    def test_predict_and_record(self, capsys, store, form_path):
        code, prediction = run(capsys, "--store-dir", store, "predict", form_path, "--seed", "11")
        assert code == 0
        assert prediction["id"] == 1
        assert 25 <= prediction["confidence"] <= 95
        assert len(prediction["algorithm_breakdown"]) == 7

        code, result = run(capsys, "--store-dir", store, "record-result", "1", prediction["predicted_score"])
        assert code == 0
        assert result["correct"] is True

        code, stats = run(capsys, "--store-dir", store, "stats")
        assert code == 0
        assert stats["completed_predictions"] == 1
        assert stats["accuracy_rate"] == 100
        assert "performance" in stats

    def test_check_with_results_file(self, capsys, store, form_path, tmp_path):
        run(capsys, "--store-dir", store, "predict", form_path, "--seed", "2")
        results = tmp_path / "results.json"
        results.write_text(json.dumps([
            {"home_team": "Lyon", "away_team": "Nantes", "status": "finished", "final_score": "1-1"},
        ]), encoding="utf-8")

        code, check = run(capsys, "--store-dir", store, "check", "1", "--results-file", str(results))
        assert code == 0
        assert check["status"] == "finished"
        assert check["actual_score"] == "1-1"

        code, pending = run(capsys, "--store-dir", store, "check-pending", "--results-file", str(results))
        assert code == 0
        assert pending == []

    def test_live(self, capsys, store, form_path):
        run(capsys, "--store-dir", store, "predict", form_path, "--seed", "4")
        code, snapshot = run(capsys, "--store-dir", store, "live", "1", "0-0", "30")
        assert code == 0
        assert snapshot["minute"] == 30
        assert 1 <= snapshot["exact_match_percent"] <= 95

    def test_invalid_form(self, capsys, store, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"home_team": "Lyon"}), encoding="utf-8")
        code, payload = run(capsys, "--store-dir", store, "predict", str(path))
        assert code == 1
        assert payload is None

    def test_unknown_prediction(self, capsys, store):
        code, _ = run(capsys, "--store-dir", store, "check", "99")
        assert code == 1

    def test_malformed_score(self, capsys, store, form_path):
        run(capsys, "--store-dir", store, "predict", form_path)
        code, _ = run(capsys, "--store-dir", store, "record-result", "1", "two-one")
        assert code == 1
