"""
Mock property provider for development and testing.
Generates deterministic property snapshots without external requests.
"""

import re
from typing import Dict, Iterable, Optional

from core.collaborators import PropertyProvider
from core.comparison.errors import PropertyNotFoundError
from core.comparison.models import PropertySnapshot


class MockPropertyProvider(PropertyProvider):
    """
    Property provider backed by registered snapshots.

    Unregistered ids are either synthesised from the digits in the id (the
    same id always yields the same property) or rejected, depending on
    generate_missing.
    """

    RATINGS = ["Fair", "Average", "Good", "Excellent"]

    def __init__(
        self,
        properties: Optional[Iterable[PropertySnapshot]] = None,
        generate_missing: bool = True,
    ):
        """
        Initialize mock provider.

        Args:
            properties: Snapshots to serve by id.
            generate_missing: Synthesise snapshots for unknown ids.
        """
        self._properties: Dict[str, PropertySnapshot] = {
            p.id: p for p in (properties or [])
        }
        self._generate_missing = generate_missing
        self.requested: list[str] = []

    def add(self, snapshot: PropertySnapshot) -> None:
        self._properties[snapshot.id] = snapshot

    async def get_property(self, property_id: str) -> PropertySnapshot:
        """
        Return the snapshot for an id.

        Raises:
            PropertyNotFoundError: If the id is unknown and generation is off.
        """
        self.requested.append(property_id)

        snapshot = self._properties.get(property_id)
        if snapshot is not None:
            return snapshot
        if not self._generate_missing:
            raise PropertyNotFoundError(property_id)
        return self.generate_snapshot(property_id)

    def generate_snapshot(self, property_id: str) -> PropertySnapshot:
        """Synthesise a property from the numeric part of its id."""
        digits = re.sub(r"\D", "", property_id)
        n = int(digits) if digits else 0

        return PropertySnapshot(
            id=property_id,
            address=f"{100 + (n % 900)} Main St",
            city="Anytown",
            state="CA",
            zip_code="90210",
            property_type="Single Family",
            bedrooms=3 + (n % 3),
            bathrooms=2 + (n % 2),
            square_footage=1500 + (n * 10) % 1000,
            lot_size=5000 + (n * 50) % 5000,
            year_built=1980 + (n % 40),
            garage_spaces=1 + (n % 3),
            days_on_market=10 + (n % 90),
            price=300000 + (n * 1000) % 200000,
            price_per_sqft=150 + (n % 100),
            latitude=34.0522 + n * 0.001,
            longitude=-118.2437 - n * 0.001,
            distance=(n % 10) * 0.1,
            condition=self.RATINGS[n % 4],
            quality=self.RATINGS[n % 4],
        )
