"""
Dashboard Registry

Holds named comparison dashboards and enforces:
- At most one dashboard has is_default set
- System dashboards are never updated or deleted
- The built-in system dashboards exist whenever the registry is used empty
"""

import copy
import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Final, Iterable, Mapping, Optional

from .cache import now_ms
from .errors import DashboardNotFoundError, SystemDashboardError
from .models import (
    ChartKind,
    Dashboard,
    DashboardLayout,
    LayoutItem,
    MetricConfig,
    MetricKind,
    VisualizationMode,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Built-in Dashboards
# =============================================================================

STANDARD_DASHBOARD_ID: Final = "dashboard_standard"
DETAILED_DASHBOARD_ID: Final = "dashboard_detailed"
ADJUSTMENT_DASHBOARD_ID: Final = "dashboard_adjustment"

METRIC_DISPLAY_NAMES: Final[dict[MetricKind, str]] = {
    MetricKind.PRICE: "Price",
    MetricKind.PRICE_PER_SQFT: "Price per Sq Ft",
    MetricKind.SQUARE_FOOTAGE: "Square Footage",
    MetricKind.LOT_SIZE: "Lot Size",
    MetricKind.BEDROOMS: "Bedrooms",
    MetricKind.BATHROOMS: "Bathrooms",
    MetricKind.YEAR_BUILT: "Year Built",
    MetricKind.GARAGE_SPACES: "Garage Spaces",
    MetricKind.DAYS_ON_MARKET: "Days on Market",
    MetricKind.DISTANCE: "Distance",
    MetricKind.CONDITION: "Condition",
    MetricKind.QUALITY: "Quality",
    MetricKind.ADJUSTMENT: "Net Adjustments",
    MetricKind.RECONCILED_VALUE: "Adjusted Value",
    MetricKind.SIMILARITY_SCORE: "Similarity",
    MetricKind.CUSTOM: "Custom",
}

# Updatable dashboard attributes
UPDATABLE_FIELDS: Final = (
    "name",
    "description",
    "visualization_mode",
    "metrics",
    "layout",
    "is_default",
)

# Fields an explicit None clears; None is ignored for the rest
NULLABLE_FIELDS: Final = ("layout",)


def build_metrics(
    kinds: Iterable[MetricKind],
    chart_kind: ChartKind = ChartKind.BAR,
) -> list[MetricConfig]:
    """Enabled metric configs in the given order."""
    return [
        MetricConfig(
            metric=kind,
            display_name=METRIC_DISPLAY_NAMES[kind],
            chart_kind=chart_kind,
            enabled=True,
            position=position,
        )
        for position, kind in enumerate(kinds)
    ]


def create_system_dashboards(timestamp: int) -> list[Dashboard]:
    """The dashboards shipped with the application."""
    standard = Dashboard(
        id=STANDARD_DASHBOARD_ID,
        name="Standard Comparison",
        description="Standard property comparison dashboard showing key metrics",
        visualization_mode=VisualizationMode.CHART,
        metrics=build_metrics([
            MetricKind.PRICE,
            MetricKind.PRICE_PER_SQFT,
            MetricKind.SQUARE_FOOTAGE,
            MetricKind.BEDROOMS,
            MetricKind.BATHROOMS,
            MetricKind.YEAR_BUILT,
        ]),
        created_at=timestamp,
        updated_at=timestamp,
        is_default=True,
        is_system=True,
    )

    detailed_kinds = [
        MetricKind.PRICE,
        MetricKind.PRICE_PER_SQFT,
        MetricKind.SQUARE_FOOTAGE,
        MetricKind.LOT_SIZE,
        MetricKind.BEDROOMS,
        MetricKind.BATHROOMS,
        MetricKind.YEAR_BUILT,
        MetricKind.GARAGE_SPACES,
        MetricKind.DAYS_ON_MARKET,
        MetricKind.DISTANCE,
        MetricKind.CONDITION,
        MetricKind.QUALITY,
    ]

    # Price spans two columns of the top row; everything else is 1x1
    grid_kinds = [k for k in detailed_kinds if k is not MetricKind.DISTANCE]
    items = [LayoutItem(id="item_1", metric=MetricKind.PRICE, row=0, column=0, column_span=2)]
    for index, kind in enumerate(grid_kinds[1:], start=1):
        cell = index + 1
        items.append(LayoutItem(
            id=f"item_{index + 1}",
            metric=kind,
            row=cell // 3,
            column=cell % 3,
        ))

    detailed = Dashboard(
        id=DETAILED_DASHBOARD_ID,
        name="Detailed Comparison",
        description="Detailed property comparison with all available metrics",
        visualization_mode=VisualizationMode.GRID,
        metrics=build_metrics(detailed_kinds),
        layout=DashboardLayout(rows=4, columns=3, items=items),
        created_at=timestamp,
        updated_at=timestamp,
        is_default=False,
        is_system=True,
    )

    adjustment = Dashboard(
        id=ADJUSTMENT_DASHBOARD_ID,
        name="Adjustment Grid",
        description="Detailed adjustment grid for valuation analysis",
        visualization_mode=VisualizationMode.TABLE,
        metrics=build_metrics(
            [
                MetricKind.PRICE,
                MetricKind.SQUARE_FOOTAGE,
                MetricKind.LOT_SIZE,
                MetricKind.BEDROOMS,
                MetricKind.BATHROOMS,
                MetricKind.YEAR_BUILT,
                MetricKind.CONDITION,
                MetricKind.QUALITY,
                MetricKind.ADJUSTMENT,
                MetricKind.RECONCILED_VALUE,
            ],
            chart_kind=ChartKind.TABLE,
        ),
        created_at=timestamp,
        updated_at=timestamp,
        is_default=False,
        is_system=True,
    )

    return [standard, detailed, adjustment]


def _coerce_update(name: str, value: Any) -> Any:
    """Accept plain JSON values for typed dashboard fields."""
    if name == "visualization_mode" and not isinstance(value, VisualizationMode):
        return VisualizationMode(value)
    if name == "metrics":
        return [m if isinstance(m, MetricConfig) else MetricConfig.from_dict(m) for m in value]
    if name == "layout" and isinstance(value, Mapping):
        return DashboardLayout.from_dict(value)
    return value


# =============================================================================
# Registry
# =============================================================================


class DashboardRegistry:
    """
    In-memory registry of comparison dashboards.

    Insertion order is preserved; it decides the "first registered"
    fallback when no dashboard is marked default.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or now_ms
        self._dashboards: dict[str, Dashboard] = {}

    def __len__(self) -> int:
        return len(self._dashboards)

    def load(self, dashboards: Iterable[Dashboard]) -> None:
        """Replace registry contents with previously persisted dashboards."""
        self._dashboards = {d.id: d for d in dashboards}
        self._normalise_default()

    def ensure_system_dashboards(self) -> bool:
        """
        Bootstrap the built-in dashboards if the registry is empty.

        Returns:
            True if dashboards were created
        """
        if self._dashboards:
            return False

        for dashboard in create_system_dashboards(self._clock()):
            self._dashboards[dashboard.id] = dashboard

        logger.info("Initialised %d system dashboards", len(self._dashboards))
        return True

    def all(self) -> list[Dashboard]:
        return list(self._dashboards.values())

    def get(self, dashboard_id: str) -> Optional[Dashboard]:
        return self._dashboards.get(dashboard_id)

    def get_default(self) -> Optional[Dashboard]:
        """The default dashboard, else the first registered, else None."""
        for dashboard in self._dashboards.values():
            if dashboard.is_default:
                return dashboard
        return next(iter(self._dashboards.values()), None)

    def resolve(self, dashboard_id: Optional[str] = None) -> Dashboard:
        """
        Resolve the dashboard for a comparison.

        Raises:
            DashboardNotFoundError: If the id is unknown or registry is empty
        """
        dashboard = self.get(dashboard_id) if dashboard_id else self.get_default()
        if dashboard is None:
            raise DashboardNotFoundError(dashboard_id)
        return dashboard

    def create(
        self,
        name: str,
        metrics: Iterable[MetricConfig],
        description: str = "",
        visualization_mode: VisualizationMode = VisualizationMode.CHART,
        layout: Optional[DashboardLayout] = None,
        is_default: bool = False,
    ) -> Dashboard:
        """Register a new user dashboard."""
        timestamp = self._clock()
        dashboard = Dashboard(
            id=f"dashboard_{uuid.uuid4()}",
            name=name,
            description=description,
            visualization_mode=visualization_mode,
            metrics=list(metrics),
            layout=layout,
            created_at=timestamp,
            updated_at=timestamp,
            is_default=is_default,
            is_system=False,
        )

        if is_default:
            self._clear_default()
        self._dashboards[dashboard.id] = dashboard
        return dashboard

    def update(self, dashboard_id: str, updates: Mapping[str, Any]) -> Dashboard:
        """
        Apply updates to a user dashboard.

        id, created_at and is_system are never changed. Unknown keys are
        ignored, and so is None for any field other than layout, where it
        removes the layout.

        Raises:
            DashboardNotFoundError: If the dashboard does not exist
            SystemDashboardError: If the dashboard is a system dashboard
        """
        dashboard = self._dashboards.get(dashboard_id)
        if dashboard is None:
            raise DashboardNotFoundError(dashboard_id)
        if dashboard.is_system:
            raise SystemDashboardError(dashboard_id, "modified")

        changes = {
            name: _coerce_update(name, value)
            for name, value in updates.items()
            if name in UPDATABLE_FIELDS
            and (value is not None or name in NULLABLE_FIELDS)
        }
        updated = replace(dashboard, **changes, updated_at=self._clock())

        if updated.is_default and not dashboard.is_default:
            self._clear_default()
        self._dashboards[dashboard_id] = updated
        return updated

    def delete(self, dashboard_id: str) -> bool:
        """
        Remove a user dashboard.

        Returns:
            True if removed, False if not found

        Raises:
            SystemDashboardError: If the dashboard is a system dashboard
        """
        dashboard = self._dashboards.get(dashboard_id)
        if dashboard is None:
            return False
        if dashboard.is_system:
            raise SystemDashboardError(dashboard_id, "deleted")

        del self._dashboards[dashboard_id]
        return True

    def set_default(self, dashboard_id: str) -> bool:
        """
        Make a dashboard the only default.

        Returns:
            True if set, False if the dashboard does not exist
        """
        if dashboard_id not in self._dashboards:
            return False

        self._clear_default()
        self._dashboards[dashboard_id].is_default = True
        return True

    def snapshot(self) -> list[Dashboard]:
        """Deep copy of the registry contents for rollback."""
        return copy.deepcopy(self.all())

    def _clear_default(self) -> None:
        for dashboard in self._dashboards.values():
            dashboard.is_default = False

    def _normalise_default(self) -> None:
        """Keep only the first default flag from persisted data."""
        seen = False
        for dashboard in self._dashboards.values():
            if dashboard.is_default:
                if seen:
                    dashboard.is_default = False
                seen = True
