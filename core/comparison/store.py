"""
Result Store - Durable persistence of dashboards and comparison results.

Delegates to a SecureStorage collaborator under two fixed keys. Records
that fail to deserialize are skipped with a warning so one bad record does
not hide the rest.
"""

import logging
from typing import Final, Iterable

from core.collaborators import SecureStorage, SecurityLevel

from .models import ComparisonResult, Dashboard


logger = logging.getLogger(__name__)


DASHBOARDS_KEY: Final = "comparison:dashboards"
RESULTS_KEY: Final = "comparison:results"


class ResultStore:
    """Load/save boundary between the engine's in-memory state and storage."""

    def __init__(
        self,
        storage: SecureStorage,
        security_level: SecurityLevel = SecurityLevel.MEDIUM,
    ):
        self._storage = storage
        self._security_level = security_level

    async def load_dashboards(self) -> list[Dashboard]:
        raw = await self._storage.get_data(DASHBOARDS_KEY, [], self._security_level)
        dashboards = []
        for item in raw or []:
            try:
                dashboards.append(Dashboard.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable dashboard record: %s", e)
        return dashboards

    async def save_dashboards(self, dashboards: Iterable[Dashboard]) -> None:
        await self._storage.save_data(
            DASHBOARDS_KEY,
            [d.to_dict() for d in dashboards],
            self._security_level,
        )

    async def load_results(self) -> list[ComparisonResult]:
        raw = await self._storage.get_data(RESULTS_KEY, [], self._security_level)
        results = []
        for item in raw or []:
            try:
                results.append(ComparisonResult.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping unreadable comparison result: %s", e)
        return results

    async def save_results(self, results: Iterable[ComparisonResult]) -> None:
        await self._storage.save_data(
            RESULTS_KEY,
            [r.to_dict() for r in results],
            self._security_level,
        )
