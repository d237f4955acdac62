"""
Tests for property providers and comparable finders.

Tests cover:
- Mock provider determinism and not-found behaviour
- Haversine distance
- Candidate pool filtering and ranking
- HTTP provider field mapping and error handling
- Engine assembly from configuration
"""

import asyncio
import sys
from dataclasses import replace
from pathlib import Path

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.comparison.errors import PropertyNotFoundError
from core.comparison.models import PropertySnapshot
from providers.factory import build_engine
from providers.finder import PoolComparableFinder, haversine_distance
from providers.http import (
    HttpComparableFinder,
    HttpPropertyClient,
    HttpPropertyProvider,
    snapshot_from_api,
)
from providers.mock import MockPropertyProvider
from utils.config import Config


def run(coro):
    return asyncio.run(coro)


# =============================================================================
# Mock Provider
# =============================================================================


class TestMockProvider:

    def test_generated_snapshots_are_deterministic(self):
        provider = MockPropertyProvider()

        first = run(provider.get_property("property_12"))
        second = run(provider.get_property("property_12"))

        assert first == second
        assert first.id == "property_12"
        assert first.price == 312000

    def test_registered_snapshot_served(self):
        snapshot = PropertySnapshot(id="known", price=1)
        provider = MockPropertyProvider([snapshot])

        assert run(provider.get_property("known")) is snapshot
        assert provider.requested == ["known"]

    def test_unknown_id_without_generation(self):
        provider = MockPropertyProvider(generate_missing=False)

        with pytest.raises(PropertyNotFoundError) as exc_info:
            run(provider.get_property("ghost"))

        assert exc_info.value.property_id == "ghost"


# =============================================================================
# Pool Finder
# =============================================================================


class TestHaversine:

    def test_same_point(self):
        assert haversine_distance(51.5, -0.12, 51.5, -0.12) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(69.1, abs=0.1)


@pytest.fixture
def subject():
    return PropertySnapshot(
        id="subject",
        city="Austin",
        state="TX",
        zip_code="78701",
        property_type="Single Family",
        bedrooms=3,
        bathrooms=2,
        square_footage=2000,
        lot_size=8000,
        year_built=2000,
        garage_spaces=2,
        latitude=30.2672,
        longitude=-97.7431,
        condition="Good",
        quality="Good",
    )


class TestPoolComparableFinder:

    def test_filters_and_ranks(self, subject):
        candidates = [
            replace(subject, id="subject"),
            replace(subject, id="near_twin", distance=0.05),
            replace(subject, id="near_small", distance=0.05, square_footage=1000, bedrooms=1),
            replace(subject, id="far", distance=12.0),
            replace(subject, id="coords", latitude=30.2680, longitude=-97.7431),
            replace(subject, id="nowhere", latitude=None, longitude=None),
        ]
        finder = PoolComparableFinder(MockPropertyProvider([subject]), candidates)

        found = run(finder.find_comparables(
            "subject", max_results=5, similarity_threshold=0.6, max_distance=5.0,
        ))
        ids = [c.id for c in found]

        assert ids[0] == "near_twin"
        assert "subject" not in ids
        assert "far" not in ids
        assert "nowhere" not in ids
        assert "coords" in ids
        assert [c for c in found if c.id == "coords"][0].distance < 0.1

    def test_threshold_and_limit(self, subject):
        candidates = [replace(subject, id=f"twin_{n}", distance=0.05) for n in range(5)]
        candidates.append(replace(subject, id="poor", distance=4.5, year_built=1900, condition="Poor"))
        finder = PoolComparableFinder(MockPropertyProvider([subject]), candidates)

        found = run(finder.find_comparables(
            "subject", max_results=3, similarity_threshold=0.9, max_distance=5.0,
        ))

        assert len(found) == 3
        assert all(c.id.startswith("twin_") for c in found)


# =============================================================================
# HTTP Provider
# =============================================================================


class FakeResponse:

    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Records requests and replays canned responses."""

    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(("GET", url, None))
        return self.responses.pop(0)

    def post(self, url, json=None, timeout=None):
        self.calls.append(("POST", url, json))
        return self.responses.pop(0)


API_RECORD = {
    "id": 42,
    "address": "1 Elm St",
    "zipCode": "78701",
    "propertyType": "Condo",
    "squareFootage": 1200,
    "yearBuilt": 2015,
    "price": 410000,
    "pricePerSqFt": 341.67,
    "hoaFee": 300,
}


class TestSnapshotFromApi:

    def test_field_mapping(self):
        snapshot = snapshot_from_api(API_RECORD)

        assert snapshot.id == "42"
        assert snapshot.zip_code == "78701"
        assert snapshot.property_type == "Condo"
        assert snapshot.square_footage == 1200
        assert snapshot.price_per_sqft == 341.67

    def test_unmapped_fields_kept_as_extra(self):
        assert snapshot_from_api(API_RECORD).extra == {"hoaFee": 300}


class TestHttpProvider:

    def test_get_property(self):
        session = FakeSession([FakeResponse(200, API_RECORD)])
        client = HttpPropertyClient("https://api.example.com/", api_token="secret", session=session)

        snapshot = run(HttpPropertyProvider(client).get_property("42"))

        assert snapshot.price == 410000
        assert session.calls == [("GET", "https://api.example.com/properties/42", None)]
        assert session.headers["Authorization"] == "Bearer secret"

    def test_404_maps_to_not_found(self):
        session = FakeSession([FakeResponse(404)])
        provider = HttpPropertyProvider(HttpPropertyClient("https://api.example.com", session=session))

        with pytest.raises(PropertyNotFoundError):
            run(provider.get_property("missing"))

    def test_server_error_propagates(self):
        session = FakeSession([FakeResponse(503)])
        provider = HttpPropertyProvider(HttpPropertyClient("https://api.example.com", session=session))

        with pytest.raises(requests.HTTPError):
            run(provider.get_property("42"))

    def test_comparable_search(self):
        payload = {"comparables": [dict(API_RECORD, id=n) for n in range(4)]}
        session = FakeSession([FakeResponse(200, payload)])
        finder = HttpComparableFinder(HttpPropertyClient("https://api.example.com", session=session))

        found = run(finder.find_comparables("42", 3, 0.6, 2.0))

        assert [c.id for c in found] == ["0", "1", "2"]
        method, url, body = session.calls[0]
        assert (method, url) == ("POST", "https://api.example.com/comparables/search")
        assert body == {
            "subjectPropertyId": "42",
            "maxResults": 3,
            "similarityThreshold": 0.6,
            "maxDistance": 2.0,
        }


# =============================================================================
# Factory
# =============================================================================


class TestBuildEngine:

    def test_mock_engine_runs_one_click(self):
        engine = build_engine(Config(property_provider="mock", storage_backend="memory"))

        result = run(engine.one_click_comparison("property_1", similarity_threshold=0.0))

        assert result.subject_property_id == "property_1"
        assert 0 < len(result.comparable_property_ids) <= 5

    def test_file_backend(self, tmp_path):
        engine = build_engine(Config(storage_backend="file", data_dir=str(tmp_path)))

        run(engine.get_dashboards())

        assert (tmp_path / "comparison_store.json").exists()

    def test_http_requires_url(self):
        with pytest.raises(ValueError):
            build_engine(Config(property_provider="http", property_api_url=""))

    def test_unknown_backends(self):
        with pytest.raises(ValueError):
            build_engine(Config(property_provider="carrier-pigeon"))
        with pytest.raises(ValueError):
            build_engine(Config(storage_backend="floppy"))
