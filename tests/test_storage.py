"""
Tests for secure storage backends and the result store.

Tests cover:
- In-memory storage isolates callers from stored values
- JSON file storage survives reopen and tolerates a corrupt file
- A failed file write leaves the previous values in place
- Result store round-trips dashboards and results, skipping bad records
"""

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.collaborators import SecurityLevel
from core.comparison.dashboards import create_system_dashboards
from core.comparison.models import (
    ComparableValue,
    ComparisonResult,
    MetricKind,
    MetricResult,
    MetricValue,
    ValueReconciliation,
)
from core.comparison.statistics import calculate_statistics
from core.comparison.store import DASHBOARDS_KEY, RESULTS_KEY, ResultStore
from core.storage import InMemorySecureStorage, JsonFileSecureStorage


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_store_path():
    """Create a temporary file path for persistence."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield str(Path(tmpdir) / "store" / "comparison_store.json")


@pytest.fixture
def sample_result():
    price = MetricResult(
        metric=MetricKind.PRICE,
        subject_value=MetricValue.numeric(500000),
        comparable_values=[
            ComparableValue("comp_a", MetricValue.numeric(550000), 10.0, 50000),
            ComparableValue("comp_b", MetricValue.empty()),
        ],
        statistics=calculate_statistics([550000]),
    )
    condition = MetricResult(
        metric=MetricKind.CONDITION,
        subject_value=MetricValue.text("Good"),
        comparable_values=[
            ComparableValue("comp_a", MetricValue.text("Fair")),
            ComparableValue("comp_b", MetricValue.text("Good")),
        ],
    )
    return ComparisonResult(
        id="comparison_1",
        subject_property_id="subject_1",
        comparable_property_ids=["comp_a", "comp_b"],
        dashboard_id="dashboard_standard",
        timestamp=1_700_000_000_000,
        metric_results=[price, condition],
        value_reconciliation=ValueReconciliation(550000, 550000, 540000, "Single priced comp"),
    )


# =============================================================================
# In-Memory Storage
# =============================================================================


class TestInMemoryStorage:

    def test_default_for_missing_key(self):
        storage = InMemorySecureStorage()
        assert run(storage.get_data("missing", [], SecurityLevel.HIGH)) == []

    def test_values_are_copied(self):
        storage = InMemorySecureStorage()
        value = {"items": [1, 2]}

        run(storage.save_data("key", value, SecurityLevel.MEDIUM))
        value["items"].append(3)
        loaded = run(storage.get_data("key", None, SecurityLevel.MEDIUM))
        loaded["items"].append(4)

        assert run(storage.get_data("key", None, SecurityLevel.MEDIUM)) == {"items": [1, 2]}


# =============================================================================
# JSON File Storage
# =============================================================================


class TestJsonFileStorage:

    def test_round_trip_across_instances(self, temp_store_path):
        storage = JsonFileSecureStorage(temp_store_path)
        run(storage.save_data("key", {"a": 1}, SecurityLevel.HIGH))

        reopened = JsonFileSecureStorage(temp_store_path)

        assert run(reopened.get_data("key", None, SecurityLevel.HIGH)) == {"a": 1}

    def test_security_level_recorded(self, temp_store_path):
        storage = JsonFileSecureStorage(temp_store_path)
        run(storage.save_data("key", [1], SecurityLevel.HIGH))

        data = json.loads(Path(temp_store_path).read_text())

        assert data["entries"]["key"]["security_level"] == "high"
        assert "saved_at" in data

    def test_no_temp_file_left_behind(self, temp_store_path):
        storage = JsonFileSecureStorage(temp_store_path)
        run(storage.save_data("key", [1], SecurityLevel.LOW))

        assert [p.name for p in Path(temp_store_path).parent.iterdir()] == ["comparison_store.json"]

    def test_corrupt_file_starts_fresh(self, temp_store_path):
        Path(temp_store_path).parent.mkdir(parents=True)
        Path(temp_store_path).write_text("{not json")

        storage = JsonFileSecureStorage(temp_store_path)

        assert run(storage.get_data("key", "default", SecurityLevel.LOW)) == "default"

    def test_failed_write_keeps_previous_value(self, temp_store_path, monkeypatch):
        storage = JsonFileSecureStorage(temp_store_path)
        run(storage.save_data("key", {"a": 1}, SecurityLevel.HIGH))

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(OSError):
            run(storage.save_data("key", {"a": 2}, SecurityLevel.HIGH))
        with pytest.raises(OSError):
            run(storage.save_data("other", [1], SecurityLevel.HIGH))

        assert run(storage.get_data("key", None, SecurityLevel.HIGH)) == {"a": 1}
        assert run(storage.get_data("other", "default", SecurityLevel.HIGH)) == "default"
        assert json.loads(Path(temp_store_path).read_text())["entries"]["key"]["value"] == {"a": 1}

    def test_concurrent_saves_keep_every_key(self, temp_store_path):
        storage = JsonFileSecureStorage(temp_store_path)

        async def save_all():
            await asyncio.gather(*(
                storage.save_data(f"key_{i}", i, SecurityLevel.LOW) for i in range(5)
            ))

        run(save_all())
        reopened = JsonFileSecureStorage(temp_store_path)

        assert [run(reopened.get_data(f"key_{i}", None, SecurityLevel.LOW)) for i in range(5)] == [
            0, 1, 2, 3, 4,
        ]


# =============================================================================
# Result Store
# =============================================================================


class TestResultStore:

    def test_results_round_trip(self, sample_result):
        store = ResultStore(InMemorySecureStorage())

        run(store.save_results([sample_result]))
        loaded = run(store.load_results())

        assert len(loaded) == 1
        assert loaded[0].to_dict() == sample_result.to_dict()
        condition = loaded[0].metric_result(MetricKind.CONDITION)
        assert condition.subject_value.label == "Good"
        assert not loaded[0].metric_results[0].comparable_values[1].value.is_numeric

    def test_dashboards_round_trip(self):
        store = ResultStore(InMemorySecureStorage())
        dashboards = create_system_dashboards(1_700_000_000_000)

        run(store.save_dashboards(dashboards))
        loaded = run(store.load_dashboards())

        assert [d.to_dict() for d in loaded] == [d.to_dict() for d in dashboards]

    def test_bad_records_skipped(self, sample_result):
        storage = InMemorySecureStorage()
        store = ResultStore(storage)
        run(storage.save_data(
            RESULTS_KEY,
            [{"id": "broken"}, sample_result.to_dict()],
            SecurityLevel.MEDIUM,
        ))
        run(storage.save_data(
            DASHBOARDS_KEY,
            [{"name": "no id"}, {"id": "ok", "name": "OK", "visualization_mode": "bogus"}],
            SecurityLevel.MEDIUM,
        ))

        assert [r.id for r in run(store.load_results())] == ["comparison_1"]
        assert run(store.load_dashboards()) == []

    def test_empty_storage(self):
        store = ResultStore(InMemorySecureStorage())

        assert run(store.load_results()) == []
        assert run(store.load_dashboards()) == []
