"""
Collaborator interfaces consumed by the Comparison Engine.

Property lookup, comparable discovery and secure persistence live outside
the engine. Implementations are injected when the engine is constructed.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, List

from core.comparison.models import PropertySnapshot


class SecurityLevel(Enum):
    """Protection level requested from secure storage."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PropertyProvider(ABC):
    """Abstract base class for property-by-id lookup."""

    @abstractmethod
    async def get_property(self, property_id: str) -> PropertySnapshot:
        """
        Fetch a property snapshot.

        Args:
            property_id: Unique identifier for the property.

        Returns:
            PropertySnapshot for the property.

        Raises:
            PropertyNotFoundError: If the id is unknown.
        """
        pass


class ComparableFinder(ABC):
    """Abstract base class for comparable-property discovery."""

    @abstractmethod
    async def find_comparables(
        self,
        subject_id: str,
        max_results: int,
        similarity_threshold: float,
        max_distance: float,
    ) -> List[PropertySnapshot]:
        """
        Find candidate comparables for a subject.

        Args:
            subject_id: Subject property id.
            max_results: Maximum number of candidates to return.
            similarity_threshold: Minimum similarity in [0, 1].
            max_distance: Maximum distance from the subject in miles.

        Returns:
            Candidate snapshots, best first. May be empty.
        """
        pass


class SecureStorage(ABC):
    """Abstract base class for durable key-value persistence."""

    @abstractmethod
    async def get_data(self, key: str, default: Any, security_level: SecurityLevel) -> Any:
        """Return the stored value for key, or default if absent."""
        pass

    @abstractmethod
    async def save_data(self, key: str, value: Any, security_level: SecurityLevel) -> None:
        """Store a JSON-compatible value under key."""
        pass
