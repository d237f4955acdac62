"""
Tests for the comparison CLI and display formatting.
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import cli
from utils.formatting import format_currency, format_percent, format_value


@pytest.fixture
def file_backed_env(monkeypatch, tmp_path):
    """Mock properties with results kept on disk between invocations."""
    monkeypatch.setenv("PROPERTY_PROVIDER", "mock")
    monkeypatch.setenv("STORAGE_BACKEND", "file")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("SIMILARITY_WEIGHTS", raising=False)
    return tmp_path


# =============================================================================
# Commands
# =============================================================================


class TestCommands:

    def test_dashboards(self, file_backed_env, capsys):
        assert cli.main(["dashboards"]) == 0

        out = capsys.readouterr().out
        assert "dashboard_standard: Standard Comparison (default, system)" in out
        assert "dashboard_adjustment" in out

    def test_compare_json(self, file_backed_env, capsys):
        assert cli.main(["compare", "property_12", "property_15", "property_31", "--json"]) == 0

        result = json.loads(capsys.readouterr().out)
        assert result["subject_property_id"] == "property_12"
        assert result["comparable_property_ids"] == ["property_15", "property_31"]

    def test_compare_table(self, file_backed_env, capsys):
        assert cli.main(["compare", "property_12", "property_15"]) == 0

        out = capsys.readouterr().out
        assert "price: subject 312,000" in out
        assert "Similarity:" in out

    def test_reconcile_across_runs(self, file_backed_env, capsys):
        cli.main(["compare", "property_12", "property_15", "--json"])
        result_id = json.loads(capsys.readouterr().out)["id"]

        assert cli.main(["reconcile", result_id, "315000", "--notes", "Single sale"]) == 0

        out = capsys.readouterr().out
        assert "Reconciled value: $315,000 (range $315,000 - $315,000)" in out
        assert "Single sale" in out

    def test_reconcile_unknown_result(self, file_backed_env, capsys):
        assert cli.main(["reconcile", "comparison_missing", "1"]) == 1
        assert "Error" in capsys.readouterr().err

    def test_unknown_dashboard(self, file_backed_env, capsys):
        assert cli.main(["compare", "property_1", "property_2", "--dashboard", "nope"]) == 1
        assert "nope" in capsys.readouterr().err


# =============================================================================
# Formatting
# =============================================================================


class TestFormatting:

    def test_currency(self):
        assert format_currency(315000) == "$315,000"
        assert format_currency(-2500.4) == "-$2,500"
        assert format_currency(1000, "GBP") == "£1,000"
        assert format_currency(1000, "CHF") == "CHF 1,000"

    def test_percent(self):
        assert format_percent(10) == "10.0%"
        assert format_percent(-4, signed=True) == "-4.0%"
        assert format_percent(2.25, decimals=2, signed=True) == "+2.25%"

    def test_value(self):
        assert format_value(None) == "-"
        assert format_value(500000.0) == "500,000"
        assert format_value(2.5) == "2.50"
        assert format_value(3) == "3"
        assert format_value("Good") == "Good"
