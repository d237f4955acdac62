"""
Candidate-pool comparable finder.

Selects comparables for a subject from a known pool of properties:
- Excludes the subject itself
- Distance within max_distance (precomputed, else Haversine from coordinates)
- Similarity score at or above the threshold
- Best similarity first, truncated to max_results
"""

import math
from dataclasses import replace
from typing import Iterable, List, Optional

from core.collaborators import ComparableFinder, PropertyProvider
from core.comparison.models import PropertySnapshot
from core.comparison.similarity import SimilarityScorer


# Earth radius in miles
EARTH_RADIUS_MILES = 3959.0


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float,
) -> float:
    """
    Calculate distance between two points in miles using Haversine formula.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in miles
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_MILES * c


class PoolComparableFinder(ComparableFinder):
    """Comparable finder over an in-memory candidate pool."""

    def __init__(
        self,
        provider: PropertyProvider,
        candidates: Iterable[PropertySnapshot],
        scorer: Optional[SimilarityScorer] = None,
    ):
        """
        Initialize finder.

        Args:
            provider: Used to look up the subject snapshot.
            candidates: Pool of potential comparables.
            scorer: Similarity scorer (default: equal category weights).
        """
        self._provider = provider
        self._candidates = list(candidates)
        self._scorer = scorer or SimilarityScorer()

    async def find_comparables(
        self,
        subject_id: str,
        max_results: int,
        similarity_threshold: float,
        max_distance: float,
    ) -> List[PropertySnapshot]:
        subject = await self._provider.get_property(subject_id)

        scored = []
        for candidate in self._candidates:
            if candidate.id == subject_id:
                continue

            distance = self._distance_from(subject, candidate)
            if distance is None or distance > max_distance:
                continue

            located = replace(candidate, distance=distance)
            score = self._scorer.score(subject, located).score
            if score < similarity_threshold:
                continue

            scored.append((score, located))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [candidate for _, candidate in scored[:max_results]]

    @staticmethod
    def _distance_from(
        subject: PropertySnapshot,
        candidate: PropertySnapshot,
    ) -> Optional[float]:
        """Precomputed distance, else Haversine, else None."""
        if candidate.distance is not None:
            return candidate.distance
        if None in (subject.latitude, subject.longitude, candidate.latitude, candidate.longitude):
            return None
        return haversine_distance(
            subject.latitude, subject.longitude,
            candidate.latitude, candidate.longitude,
        )
