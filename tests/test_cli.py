"""Tests for the stackup command-line interface."""

import csv
import json

import pytest

from stackup_analysis.cli import main


@pytest.fixture
def shaft_deck(tmp_path):
    path = str(tmp_path / "shaft.json")
    assert main(["example", "shaft", "-o", path]) == 0
    return path


@pytest.fixture
def bearing_deck(tmp_path):
    path = str(tmp_path / "bearing.json")
    assert main(["example", "bearing", "-o", path]) == 0
    return path


class TestAnalyze:
    def test_report_printed(self, shaft_deck, capsys):
        assert main(["analyze", shaft_deck, "--samples", "2000", "--seed", "1"]) == 0
        out = capsys.readouterr().out
        assert "Shaft-Housing Assembly" in out
        assert "Monte Carlo Analysis" in out
        assert "Process Capability" in out
        assert "END OF REPORT" in out

    def test_outputs(self, shaft_deck, tmp_path):
        json_path = tmp_path / "results.json"
        csv_path = tmp_path / "samples.csv"
        report_path = tmp_path / "report.txt"
        code = main([
            "analyze", shaft_deck, "--samples", "1500", "--seed", "2", "--bins", "10",
            "--confidence", "0.9", "--json", str(json_path), "--csv", str(csv_path),
            "--report", str(report_path),
        ])
        assert code == 0
        data = json.loads(json_path.read_text())
        assert data["monte_carlo"]["n_samples"] == 1500
        assert data["monte_carlo"]["seed"] == 2
        assert len(data["monte_carlo"]["histogram"]) == 10
        assert data["monte_carlo"]["confidence_level"] == 0.9
        with open(csv_path, newline="") as f:
            rows = list(csv.reader(f))
        assert len(rows) == 1501
        assert "END OF REPORT" in report_path.read_text()

    def test_deck_settings_used(self, shaft_deck, tmp_path):
        json_path = tmp_path / "results.json"
        assert main(["analyze", shaft_deck, "-m", "mc", "--json", str(json_path)]) == 0
        data = json.loads(json_path.read_text())
        assert list(data) == ["monte_carlo"]
        assert data["monte_carlo"]["seed"] == 42

    def test_method_subset(self, shaft_deck, capsys):
        assert main(["analyze", shaft_deck, "-m", "wc,rss"]) == 0
        out = capsys.readouterr().out
        assert "Worst-Case Analysis" in out
        assert "Monte Carlo Analysis" not in out

    def test_unknown_method(self, shaft_deck, capsys):
        assert main(["analyze", shaft_deck, "-m", "taguchi"]) == 1
        assert "Unknown analysis method" in capsys.readouterr().err

    def test_zero_samples(self, shaft_deck, capsys):
        assert main(["analyze", shaft_deck, "--samples", "0"]) == 1
        assert "error:" in capsys.readouterr().err

    def test_negative_seed(self, shaft_deck, capsys):
        assert main(["analyze", shaft_deck, "-m", "mc", "--seed", "-1"]) == 1
        assert "seed must be a non-negative integer" in capsys.readouterr().err

    def test_bad_deck_settings(self, shaft_deck, capsys):
        with open(shaft_deck) as f:
            data = json.load(f)
        data["monte_carlo"]["n_samples"] = "many"
        with open(shaft_deck, "w") as f:
            json.dump(data, f)
        assert main(["analyze", shaft_deck]) == 1
        assert "invalid monte_carlo settings" in capsys.readouterr().err

    def test_missing_deck(self, tmp_path, capsys):
        assert main(["analyze", str(tmp_path / "nope.json")]) == 1
        assert "error:" in capsys.readouterr().err


class TestOtherCommands:
    def test_sensitivity(self, shaft_deck, capsys):
        assert main(["sensitivity", shaft_deck, "--target-reduction", "30"]) == 0
        out = capsys.readouterr().out
        assert "Housing bore depth" in out
        assert "Feature Contribution Chart" in out
        assert "scale tolerance by" in out

    def test_fit(self, bearing_deck, capsys):
        assert main(["fit", bearing_deck]) == 0
        assert "Bearing on journal" in capsys.readouterr().out

    def test_fit_without_mates(self, shaft_deck, capsys):
        assert main(["fit", shaft_deck]) == 0
        assert "no mates" in capsys.readouterr().out

    def test_invalid_fit_exit_code(self, bearing_deck, capsys):
        with open(bearing_deck) as f:
            data = json.load(f)
        data["mates"][0]["mate_type"] = "interference"
        with open(bearing_deck, "w") as f:
            json.dump(data, f)
        assert main(["fit", bearing_deck]) == 1
        assert "INVALID" in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()
