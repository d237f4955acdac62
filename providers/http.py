"""
HTTP property provider.

Fetches property snapshots and comparable candidates from a property data
API. Requests run on a worker thread so concurrent lookups from the engine
overlap.

Features:
- Shared requests.Session with identifying headers
- Per-request timeout
- 404 mapped to PropertyNotFoundError; other HTTP errors propagate
"""

import asyncio
from typing import Any, Dict, Final, List, Optional

import requests

from core.collaborators import ComparableFinder, PropertyProvider
from core.comparison.errors import PropertyNotFoundError
from core.comparison.models import PropertySnapshot


# =============================================================================
# Configuration
# =============================================================================

REQUEST_TIMEOUT_SECONDS = 30
USER_AGENT = "AppraisalComparisonEngine/1.0"

# API field name -> snapshot attribute
API_FIELD_MAP: Final[Dict[str, str]] = {
    "id": "id",
    "address": "address",
    "city": "city",
    "state": "state",
    "zipCode": "zip_code",
    "propertyType": "property_type",
    "bedrooms": "bedrooms",
    "bathrooms": "bathrooms",
    "squareFootage": "square_footage",
    "lotSize": "lot_size",
    "yearBuilt": "year_built",
    "garageSpaces": "garage_spaces",
    "daysOnMarket": "days_on_market",
    "price": "price",
    "pricePerSqFt": "price_per_sqft",
    "latitude": "latitude",
    "longitude": "longitude",
    "distance": "distance",
    "condition": "condition",
    "quality": "quality",
    "adjustment": "adjustment",
    "reconciledValue": "reconciled_value",
    "similarityScore": "similarity_score",
}


def snapshot_from_api(data: Dict[str, Any]) -> PropertySnapshot:
    """
    Normalise an API property record.

    Unmapped fields are kept in `extra` for custom metrics.
    """
    values: Dict[str, Any] = {}
    extra: Dict[str, Any] = {}
    for key, value in data.items():
        attribute = API_FIELD_MAP.get(key)
        if attribute:
            values[attribute] = value
        else:
            extra[key] = value

    values["id"] = str(values.get("id", ""))
    return PropertySnapshot(**values, extra=extra)


class HttpPropertyClient:
    """Thin session wrapper shared by the provider and the finder."""

    def __init__(
        self,
        base_url: str,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        api_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        })
        if api_token:
            self._session.headers["Authorization"] = f"Bearer {api_token}"

    def get_json(self, path: str) -> requests.Response:
        return self._session.get(f"{self._base_url}{path}", timeout=self._timeout)

    def post_json(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        return self._session.post(
            f"{self._base_url}{path}",
            json=payload,
            timeout=self._timeout,
        )


class HttpPropertyProvider(PropertyProvider):
    """Property lookup against GET {base_url}/properties/{id}."""

    def __init__(self, client: HttpPropertyClient):
        self._client = client

    def fetch_property(self, property_id: str) -> PropertySnapshot:
        """
        Blocking fetch of one property.

        Raises:
            PropertyNotFoundError: On HTTP 404.
            requests.RequestException: On network or other HTTP errors.
        """
        response = self._client.get_json(f"/properties/{property_id}")
        if response.status_code == 404:
            raise PropertyNotFoundError(property_id)
        response.raise_for_status()
        return snapshot_from_api(response.json())

    async def get_property(self, property_id: str) -> PropertySnapshot:
        return await asyncio.to_thread(self.fetch_property, property_id)


class HttpComparableFinder(ComparableFinder):
    """Comparable discovery against POST {base_url}/comparables/search."""

    def __init__(self, client: HttpPropertyClient):
        self._client = client

    def search(
        self,
        subject_id: str,
        max_results: int,
        similarity_threshold: float,
        max_distance: float,
    ) -> List[PropertySnapshot]:
        response = self._client.post_json(
            "/comparables/search",
            {
                "subjectPropertyId": subject_id,
                "maxResults": max_results,
                "similarityThreshold": similarity_threshold,
                "maxDistance": max_distance,
            },
        )
        response.raise_for_status()
        records = response.json().get("comparables", [])
        return [snapshot_from_api(record) for record in records][:max_results]

    async def find_comparables(
        self,
        subject_id: str,
        max_results: int,
        similarity_threshold: float,
        max_distance: float,
    ) -> List[PropertySnapshot]:
        return await asyncio.to_thread(
            self.search, subject_id, max_results, similarity_threshold, max_distance,
        )
