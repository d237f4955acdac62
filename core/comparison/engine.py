"""
Comparison Engine - Orchestrates a property comparison run

Pipeline for compare_properties:
1. VALIDATE - Subject id and at least one comparable id
2. RESOLVE - Dashboard (explicit, else default, else first registered)
3. CACHE - Serve an unexpired result for the same fingerprint
4. FETCH - Subject and comparable snapshots, concurrently
5. MEASURE - One metric result per enabled dashboard metric
6. SCORE - Similarity of every comparable to the subject
7. PERSIST - Result store, then cache

A collaborator failure at any step propagates unchanged; nothing is
cached or persisted for that run.
"""

import asyncio
import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Final, Iterable, Mapping, Optional, Sequence

from core.collaborators import ComparableFinder, PropertyProvider, SecureStorage, SecurityLevel
from core.storage import InMemorySecureStorage

from .cache import (
    DEFAULT_EXPIRATION_MS,
    DEFAULT_MAX_CACHE_BYTES,
    ComparisonCache,
    make_cache_key,
    now_ms,
)
from .dashboards import DashboardRegistry
from .errors import ComparisonValidationError
from .models import (
    ComparableValue,
    ComparisonResult,
    Dashboard,
    DashboardLayout,
    MetricConfig,
    MetricKind,
    MetricResult,
    MetricValue,
    PropertySnapshot,
    ValueReconciliation,
    VisualizationMode,
)
from .similarity import SimilarityScorer
from .statistics import calculate_statistics
from .store import ResultStore


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

# Keys not named after a scoring category (propertyType, yearBuilt, ...)
# fall back to the default category weight.
DEFAULT_FIELD_WEIGHTS: Final[dict[str, float]] = {
    "location": 0.3,
    "size": 0.2,
    "propertyType": 0.15,
    "yearBuilt": 0.1,
    "bedrooms": 0.1,
    "bathrooms": 0.1,
    "condition": 0.05,
}

# One-click defaults
DEFAULT_MAX_COMPARABLES = 5
DEFAULT_SIMILARITY_THRESHOLD = 0.6
DEFAULT_MAX_DISTANCE_MILES = 5.0

# Snapshot attribute read for each metric kind (CUSTOM reads `extra`)
METRIC_FIELDS: Final[dict[MetricKind, Optional[str]]] = {
    MetricKind.PRICE: "price",
    MetricKind.PRICE_PER_SQFT: "price_per_sqft",
    MetricKind.SQUARE_FOOTAGE: "square_footage",
    MetricKind.LOT_SIZE: "lot_size",
    MetricKind.BEDROOMS: "bedrooms",
    MetricKind.BATHROOMS: "bathrooms",
    MetricKind.YEAR_BUILT: "year_built",
    MetricKind.GARAGE_SPACES: "garage_spaces",
    MetricKind.DAYS_ON_MARKET: "days_on_market",
    MetricKind.DISTANCE: "distance",
    MetricKind.CONDITION: "condition",
    MetricKind.QUALITY: "quality",
    MetricKind.ADJUSTMENT: "adjustment",
    MetricKind.RECONCILED_VALUE: "reconciled_value",
    MetricKind.SIMILARITY_SCORE: "similarity_score",
    MetricKind.CUSTOM: None,
}


@dataclass
class EngineOptions:
    """Tunables for the comparison engine."""
    max_cache_size: int = DEFAULT_MAX_CACHE_BYTES
    default_cache_expiration_ms: int = DEFAULT_EXPIRATION_MS
    field_weights: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_FIELD_WEIGHTS)
    )
    single_flight: bool = False
    security_level: SecurityLevel = SecurityLevel.MEDIUM


# =============================================================================
# Metric Extraction
# =============================================================================


def extract_metric_value(snapshot: PropertySnapshot, metric: MetricConfig) -> MetricValue:
    """Read the value a metric tabulates from a property snapshot."""
    attribute = METRIC_FIELDS[metric.metric]
    if attribute is None:
        if not metric.custom_field:
            return MetricValue.empty()
        return MetricValue.from_raw(snapshot.extra.get(metric.custom_field))
    return MetricValue.from_raw(getattr(snapshot, attribute))


def compare_values(
    property_id: str,
    subject_value: MetricValue,
    value: MetricValue,
) -> ComparableValue:
    """
    Difference of one comparable from the subject.

    Only computed when both readings are numeric and the subject is
    non-zero; otherwise both differences are 0.
    """
    percent_difference = 0.0
    absolute_difference = 0.0

    if subject_value.is_numeric and value.is_numeric and subject_value.number != 0:
        absolute_difference = value.number - subject_value.number
        percent_difference = absolute_difference * 100 / subject_value.number

    return ComparableValue(
        property_id=property_id,
        value=value,
        percent_difference=percent_difference,
        absolute_difference=absolute_difference,
    )


def build_metric_result(
    metric: MetricConfig,
    subject: PropertySnapshot,
    comparables: Sequence[PropertySnapshot],
) -> MetricResult:
    """Subject vs comparables for one metric, with statistics."""
    subject_value = extract_metric_value(subject, metric)
    comparable_values = [
        compare_values(comp.id, subject_value, extract_metric_value(comp, metric))
        for comp in comparables
    ]

    result = MetricResult(
        metric=metric.metric,
        subject_value=subject_value,
        comparable_values=comparable_values,
    )
    result.statistics = calculate_statistics(result.numeric_comparable_values)
    return result


# =============================================================================
# Engine
# =============================================================================


class ComparisonEngine:
    """
    Property comparison service.

    Construct once at startup and pass to consumers. State (dashboards,
    results) is loaded lazily from the result store on first use.
    """

    def __init__(
        self,
        property_provider: PropertyProvider,
        comparable_finder: Optional[ComparableFinder] = None,
        storage: Optional[SecureStorage] = None,
        options: Optional[EngineOptions] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize the engine.

        Args:
            property_provider: Property-by-id lookup
            comparable_finder: Candidate finder for one-click comparisons
            storage: Secure persistence (default: in-memory)
            options: Cache, weighting and persistence options
            clock: Millisecond clock (default: wall clock)
        """
        self._provider = property_provider
        self._finder = comparable_finder
        self._storage = storage if storage is not None else InMemorySecureStorage()
        self._clock = clock or now_ms

        self._dashboards = DashboardRegistry(clock=self._clock)
        self._results: dict[str, ComparisonResult] = {}
        self._pending: dict[str, asyncio.Future] = {}
        self._loaded = False
        self._init_lock = asyncio.Lock()

        self.configure(options or EngineOptions())

    @property
    def options(self) -> EngineOptions:
        return self._options

    def configure(self, options: EngineOptions) -> None:
        """
        Apply new options.

        Rebuilds the cache (dropping cached results) and the scorer.
        """
        self._options = options
        self._store = ResultStore(self._storage, options.security_level)
        self._cache = ComparisonCache(
            max_size_bytes=options.max_cache_size,
            default_expiration_ms=options.default_cache_expiration_ms,
            clock=self._clock,
        )
        self._scorer = SimilarityScorer(options.field_weights)

    async def initialize(self) -> None:
        """
        Load persisted state, bootstrapping system dashboards if empty.

        Concurrent first calls share one load.
        """
        if self._loaded:
            return

        async with self._init_lock:
            if self._loaded:
                return

            self._dashboards.load(await self._store.load_dashboards())
            self._results = {r.id: r for r in await self._store.load_results()}

            if self._dashboards.ensure_system_dashboards():
                await self._store.save_dashboards(self._dashboards.all())

            self._loaded = True

        logger.info(
            "Comparison engine loaded %d dashboards and %d results",
            len(self._dashboards), len(self._results),
        )

    # =========================================================================
    # Comparisons
    # =========================================================================

    async def compare_properties(
        self,
        subject_id: str,
        comparable_ids: Sequence[str],
        dashboard_id: Optional[str] = None,
    ) -> ComparisonResult:
        """
        Compare a subject property against comparables.

        Args:
            subject_id: Subject property id
            comparable_ids: Comparable property ids, in display order
            dashboard_id: Dashboard to use (default: registry default)

        Returns:
            ComparisonResult, from cache when an unexpired entry exists

        Raises:
            ComparisonValidationError: Missing subject or comparables
            DashboardNotFoundError: Dashboard cannot be resolved
        """
        if not subject_id:
            raise ComparisonValidationError("Subject property ID is required")
        if not comparable_ids:
            raise ComparisonValidationError("At least one comparable property ID is required")

        await self.initialize()

        dashboard = self._dashboards.resolve(dashboard_id)
        cache_key = make_cache_key(subject_id, comparable_ids, dashboard.id)

        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Using cached comparison result for %s", cache_key)
            return cached

        if not self._options.single_flight:
            return await self._run_comparison(subject_id, list(comparable_ids), dashboard, cache_key)

        task = self._pending.get(cache_key)
        if task is None:
            task = asyncio.ensure_future(
                self._run_comparison(subject_id, list(comparable_ids), dashboard, cache_key)
            )
            self._pending[cache_key] = task
            task.add_done_callback(lambda _: self._pending.pop(cache_key, None))
        return await task

    async def one_click_comparison(
        self,
        subject_id: str,
        max_comparables: int = DEFAULT_MAX_COMPARABLES,
        dashboard_id: Optional[str] = None,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        max_distance: float = DEFAULT_MAX_DISTANCE_MILES,
    ) -> ComparisonResult:
        """
        Find comparables for a subject and compare them in one step.

        Raises:
            ComparisonValidationError: If no comparables are found
        """
        if self._finder is None:
            raise RuntimeError("No comparable finder configured")

        comparables = await self._finder.find_comparables(
            subject_id,
            max_results=max_comparables,
            similarity_threshold=similarity_threshold,
            max_distance=max_distance,
        )
        if not comparables:
            raise ComparisonValidationError("No comparable properties found")

        logger.info("Found %d comparables for %s", len(comparables), subject_id)
        return await self.compare_properties(
            subject_id,
            [comp.id for comp in comparables],
            dashboard_id,
        )

    async def _run_comparison(
        self,
        subject_id: str,
        comparable_ids: list[str],
        dashboard: Dashboard,
        cache_key: str,
    ) -> ComparisonResult:
        subject, comparables = await self._fetch_properties(subject_id, comparable_ids)

        result = ComparisonResult(
            id=f"comparison_{uuid.uuid4()}",
            subject_property_id=subject_id,
            comparable_property_ids=comparable_ids,
            dashboard_id=dashboard.id,
            timestamp=self._clock(),
            metric_results=[
                build_metric_result(metric, subject, comparables)
                for metric in dashboard.enabled_metrics
            ],
            similarity_scores=self._scorer.score_all(subject, comparables),
        )

        self._results[result.id] = result
        try:
            await self._store.save_results(self._results.values())
        except Exception:
            del self._results[result.id]
            raise

        # The cached copy stays as computed; reconciliation only touches the stored record
        self._cache.put(cache_key, copy.deepcopy(result))

        logger.info(
            "Compared %s against %d comparables using %s",
            subject_id, len(comparable_ids), dashboard.id,
        )
        return result

    async def _fetch_properties(
        self,
        subject_id: str,
        comparable_ids: Sequence[str],
    ) -> tuple[PropertySnapshot, list[PropertySnapshot]]:
        """Fetch all snapshots concurrently; gather keeps input order."""
        snapshots = await asyncio.gather(
            self._provider.get_property(subject_id),
            *(self._provider.get_property(pid) for pid in comparable_ids),
        )
        return snapshots[0], list(snapshots[1:])

    # =========================================================================
    # Results
    # =========================================================================

    async def get_comparison_results(
        self,
        subject_id: Optional[str] = None,
    ) -> list[ComparisonResult]:
        """Stored results, newest first, optionally for one subject."""
        await self.initialize()
        results = list(self._results.values())
        if subject_id:
            results = [r for r in results if r.subject_property_id == subject_id]
        return sorted(results, key=lambda r: r.timestamp, reverse=True)

    async def get_comparison_result(self, result_id: str) -> Optional[ComparisonResult]:
        await self.initialize()
        return self._results.get(result_id)

    async def save_reconciled_value(
        self,
        result_id: str,
        reconciled_value: float,
        notes: Optional[str] = None,
    ) -> bool:
        """
        Record the appraiser's reconciled value on a stored result.

        The min/max range comes from the numeric comparable prices.

        Returns:
            True if saved; False if the result is missing, has no price
            metric or no numeric comparable prices, or could not be persisted
        """
        await self.initialize()

        result = self._results.get(result_id)
        if result is None:
            logger.info("Cannot reconcile unknown comparison result %s", result_id)
            return False

        price_metric = result.metric_result(MetricKind.PRICE)
        if price_metric is None:
            logger.info("Comparison result %s has no price metric", result_id)
            return False

        prices = price_metric.numeric_comparable_values
        if not prices:
            logger.info("Comparison result %s has no numeric comparable prices", result_id)
            return False

        previous = result.value_reconciliation
        result.value_reconciliation = ValueReconciliation(
            min_value=min(prices),
            max_value=max(prices),
            reconciled_value=reconciled_value,
            notes=notes,
        )

        try:
            await self._store.save_results(self._results.values())
        except Exception:
            result.value_reconciliation = previous
            logger.exception("Error saving reconciled value for %s", result_id)
            return False

        return True

    # =========================================================================
    # Dashboards
    # =========================================================================

    async def get_dashboards(self) -> list[Dashboard]:
        await self.initialize()
        return self._dashboards.all()

    async def get_dashboard(self, dashboard_id: str) -> Optional[Dashboard]:
        await self.initialize()
        return self._dashboards.get(dashboard_id)

    async def get_default_dashboard(self) -> Optional[Dashboard]:
        await self.initialize()
        return self._dashboards.get_default()

    async def create_dashboard(
        self,
        name: str,
        metrics: Iterable[MetricConfig],
        description: str = "",
        visualization_mode: VisualizationMode = VisualizationMode.CHART,
        layout: Optional[DashboardLayout] = None,
        is_default: bool = False,
    ) -> Dashboard:
        await self.initialize()
        previous = self._dashboards.snapshot()
        dashboard = self._dashboards.create(
            name=name,
            metrics=metrics,
            description=description,
            visualization_mode=visualization_mode,
            layout=layout,
            is_default=is_default,
        )
        await self._persist_dashboards(previous)
        return dashboard

    async def update_dashboard(self, dashboard_id: str, updates: Mapping[str, Any]) -> Dashboard:
        """
        Raises:
            DashboardNotFoundError: Unknown dashboard
            SystemDashboardError: System dashboards are immutable
        """
        await self.initialize()
        previous = self._dashboards.snapshot()
        dashboard = self._dashboards.update(dashboard_id, updates)
        await self._persist_dashboards(previous)
        return dashboard

    async def delete_dashboard(self, dashboard_id: str) -> bool:
        """
        Returns:
            True if deleted, False if not found

        Raises:
            SystemDashboardError: System dashboards cannot be deleted
        """
        await self.initialize()
        previous = self._dashboards.snapshot()
        if not self._dashboards.delete(dashboard_id):
            return False
        await self._persist_dashboards(previous)
        return True

    async def set_default_dashboard(self, dashboard_id: str) -> bool:
        await self.initialize()
        previous = self._dashboards.snapshot()
        if not self._dashboards.set_default(dashboard_id):
            return False
        await self._persist_dashboards(previous)
        return True

    async def _persist_dashboards(self, previous: list[Dashboard]) -> None:
        """Save the registry; on failure restore the previous contents."""
        try:
            await self._store.save_dashboards(self._dashboards.all())
        except Exception:
            self._dashboards.load(previous)
            raise

    # =========================================================================
    # Cache
    # =========================================================================

    def cache_stats(self) -> dict:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()
