"""
Tests for the dashboard registry.

Tests cover:
- Bootstrap of the three system dashboards
- Exactly one default after create / update / set_default
- System dashboards cannot be modified or deleted
- Null update fields are ignored, except layout
- Dashboard resolution fallbacks
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.comparison.dashboards import (
    ADJUSTMENT_DASHBOARD_ID,
    DETAILED_DASHBOARD_ID,
    STANDARD_DASHBOARD_ID,
    DashboardRegistry,
    build_metrics,
)
from core.comparison.errors import DashboardNotFoundError, SystemDashboardError
from core.comparison.models import (
    Dashboard,
    DashboardLayout,
    LayoutItem,
    MetricKind,
    VisualizationMode,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def registry():
    registry = DashboardRegistry(clock=lambda: 1_700_000_000_000)
    registry.ensure_system_dashboards()
    return registry


@pytest.fixture
def price_metrics():
    return build_metrics([MetricKind.PRICE, MetricKind.PRICE_PER_SQFT])


def defaults(registry):
    return [d.id for d in registry.all() if d.is_default]


# =============================================================================
# Bootstrap
# =============================================================================


class TestSystemDashboards:

    def test_three_system_dashboards(self, registry):
        ids = [d.id for d in registry.all()]

        assert ids == [STANDARD_DASHBOARD_ID, DETAILED_DASHBOARD_ID, ADJUSTMENT_DASHBOARD_ID]
        assert all(d.is_system for d in registry.all())

    def test_standard_is_default(self, registry):
        assert defaults(registry) == [STANDARD_DASHBOARD_ID]
        assert registry.get_default().id == STANDARD_DASHBOARD_ID

    def test_standard_metrics_in_order(self, registry):
        standard = registry.get(STANDARD_DASHBOARD_ID)

        assert [m.metric for m in standard.enabled_metrics] == [
            MetricKind.PRICE,
            MetricKind.PRICE_PER_SQFT,
            MetricKind.SQUARE_FOOTAGE,
            MetricKind.BEDROOMS,
            MetricKind.BATHROOMS,
            MetricKind.YEAR_BUILT,
        ]

    def test_detailed_dashboard_grid_layout(self, registry):
        detailed = registry.get(DETAILED_DASHBOARD_ID)

        assert detailed.visualization_mode is VisualizationMode.GRID
        assert detailed.layout.rows == 4
        assert detailed.layout.columns == 3

        price = detailed.layout.items[0]
        assert price.metric is MetricKind.PRICE
        assert price.column_span == 2
        assert [(i.row, i.column) for i in detailed.layout.items[1:3]] == [(0, 2), (1, 0)]

    def test_adjustment_dashboard_is_table(self, registry):
        adjustment = registry.get(ADJUSTMENT_DASHBOARD_ID)

        assert adjustment.visualization_mode is VisualizationMode.TABLE
        assert MetricKind.ADJUSTMENT in [m.metric for m in adjustment.metrics]

    def test_bootstrap_only_when_empty(self, registry):
        assert not registry.ensure_system_dashboards()
        assert len(registry) == 3


# =============================================================================
# Default Invariant
# =============================================================================


class TestDefaultDashboard:

    def test_create_default_clears_others(self, registry, price_metrics):
        created = registry.create("Pricing", price_metrics, is_default=True)

        assert defaults(registry) == [created.id]
        assert not created.is_system

    def test_set_default_leaves_exactly_one(self, registry):
        assert registry.set_default(DETAILED_DASHBOARD_ID)
        assert defaults(registry) == [DETAILED_DASHBOARD_ID]

        assert registry.set_default(ADJUSTMENT_DASHBOARD_ID)
        assert defaults(registry) == [ADJUSTMENT_DASHBOARD_ID]

    def test_set_default_unknown(self, registry):
        assert not registry.set_default("dashboard_missing")
        assert defaults(registry) == [STANDARD_DASHBOARD_ID]

    def test_update_to_default_clears_others(self, registry, price_metrics):
        created = registry.create("Pricing", price_metrics)

        registry.update(created.id, {"is_default": True})

        assert defaults(registry) == [created.id]

    def test_load_keeps_first_default_only(self, price_metrics):
        registry = DashboardRegistry()
        registry.load([
            Dashboard(id="a", name="A", metrics=price_metrics, is_default=True),
            Dashboard(id="b", name="B", metrics=price_metrics, is_default=True),
        ])

        assert defaults(registry) == ["a"]


# =============================================================================
# Immutability of System Dashboards
# =============================================================================


class TestSystemDashboardProtection:

    def test_update_system_dashboard_rejected(self, registry):
        before = [d.to_dict() for d in registry.all()]

        with pytest.raises(SystemDashboardError):
            registry.update(STANDARD_DASHBOARD_ID, {"name": "Renamed"})

        assert [d.to_dict() for d in registry.all()] == before

    def test_delete_system_dashboard_rejected(self, registry):
        with pytest.raises(SystemDashboardError):
            registry.delete(DETAILED_DASHBOARD_ID)

        assert registry.get(DETAILED_DASHBOARD_ID) is not None

    def test_system_dashboard_error_is_permission_error(self, registry):
        with pytest.raises(PermissionError):
            registry.delete(ADJUSTMENT_DASHBOARD_ID)

    def test_user_dashboard_update_and_delete(self, registry, price_metrics):
        created = registry.create("Pricing", price_metrics)

        updated = registry.update(created.id, {
            "name": "Pricing v2",
            "visualization_mode": "table",
            "id": "ignored",
            "is_system": True,
        })

        assert updated.id == created.id
        assert updated.name == "Pricing v2"
        assert updated.visualization_mode is VisualizationMode.TABLE
        assert not updated.is_system
        assert updated.created_at == created.created_at

        assert registry.delete(created.id)
        assert registry.get(created.id) is None

    def test_update_ignores_null_fields(self, registry, price_metrics):
        created = registry.create("Pricing", price_metrics, description="Sale prices")

        updated = registry.update(created.id, {
            "name": None,
            "description": None,
            "visualization_mode": None,
            "metrics": None,
            "is_default": None,
        })

        assert updated.name == "Pricing"
        assert updated.description == "Sale prices"
        assert updated.visualization_mode is VisualizationMode.CHART
        assert updated.metrics == price_metrics
        assert updated.is_default is False

    def test_update_null_layout_clears_it(self, registry, price_metrics):
        layout = DashboardLayout(rows=1, columns=1, items=[
            LayoutItem(id="item_1", metric=MetricKind.PRICE, row=0, column=0),
        ])
        created = registry.create("Pricing", price_metrics, layout=layout)

        updated = registry.update(created.id, {"layout": None})

        assert updated.layout is None

    def test_update_unknown_dashboard(self, registry):
        with pytest.raises(DashboardNotFoundError):
            registry.update("dashboard_missing", {"name": "x"})

    def test_delete_unknown_dashboard(self, registry):
        assert not registry.delete("dashboard_missing")


# =============================================================================
# Resolution
# =============================================================================


class TestResolve:

    def test_explicit_id(self, registry):
        assert registry.resolve(DETAILED_DASHBOARD_ID).id == DETAILED_DASHBOARD_ID

    def test_defaults_to_default_dashboard(self, registry):
        assert registry.resolve().id == STANDARD_DASHBOARD_ID

    def test_falls_back_to_first_registered(self, price_metrics):
        registry = DashboardRegistry()
        registry.load([
            Dashboard(id="first", name="First", metrics=price_metrics),
            Dashboard(id="second", name="Second", metrics=price_metrics),
        ])

        assert registry.resolve().id == "first"

    def test_unknown_id_raises(self, registry):
        with pytest.raises(DashboardNotFoundError):
            registry.resolve("dashboard_missing")

    def test_empty_registry_raises(self):
        with pytest.raises(DashboardNotFoundError):
            DashboardRegistry().resolve()
