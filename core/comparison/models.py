"""
Data models for the Property Comparison Engine

Defines dashboards, property snapshots, metric values and comparison
results. Every model round-trips through plain dicts so it can be handed
to secure storage and cached by serialized size.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# Enums
# =============================================================================


class MetricKind(Enum):
    """Comparable attribute the engine can tabulate."""

    PRICE = "price"
    PRICE_PER_SQFT = "price_per_sqft"
    SQUARE_FOOTAGE = "square_footage"
    LOT_SIZE = "lot_size"
    BEDROOMS = "bedrooms"
    BATHROOMS = "bathrooms"
    YEAR_BUILT = "year_built"
    GARAGE_SPACES = "garage_spaces"
    DAYS_ON_MARKET = "days_on_market"
    DISTANCE = "distance"
    CONDITION = "condition"
    QUALITY = "quality"
    ADJUSTMENT = "adjustment"
    RECONCILED_VALUE = "reconciled_value"
    SIMILARITY_SCORE = "similarity_score"
    CUSTOM = "custom"

    @classmethod
    def from_string(cls, value: str) -> Optional["MetricKind"]:
        """Convert string to MetricKind, case-insensitive."""
        normalised = value.lower().strip().replace("-", "_")
        for member in cls:
            if member.value == normalised:
                return member
        return None


class ChartKind(Enum):
    """Chart hint for a single metric."""

    BAR = "bar"
    LINE = "line"
    RADAR = "radar"
    PIE = "pie"
    SCATTER = "scatter"
    BUBBLE = "bubble"
    TABLE = "table"
    HEATMAP = "heatmap"


class VisualizationMode(Enum):
    """Dashboard-level visualization hint."""

    CHART = "chart"
    MAP = "map"
    TABLE = "table"
    GRID = "grid"
    DETAIL = "detail"
    SUMMARY = "summary"


class ValueKind(Enum):
    """Tag for MetricValue."""

    NUMERIC = "numeric"
    LABEL = "label"
    EMPTY = "empty"


# =============================================================================
# Metric Values
# =============================================================================


RawValue = Union[int, float, str, None]


@dataclass(frozen=True)
class MetricValue:
    """
    A single metric reading.

    Numeric readings take part in differences and statistics. Labels
    (condition, quality, enum values) are carried through for display only.
    """
    kind: ValueKind
    number: Optional[float] = None
    label: Optional[str] = None

    @classmethod
    def numeric(cls, number: float) -> "MetricValue":
        return cls(kind=ValueKind.NUMERIC, number=number)

    @classmethod
    def text(cls, label: str) -> "MetricValue":
        return cls(kind=ValueKind.LABEL, label=label)

    @classmethod
    def empty(cls) -> "MetricValue":
        return cls(kind=ValueKind.EMPTY)

    @classmethod
    def from_raw(cls, raw: Any) -> "MetricValue":
        """Build a value from an untyped reading.

        Bools are not numbers, and NaN or infinite readings count as missing.
        """
        if isinstance(raw, bool) or raw is None:
            return cls.empty()
        if isinstance(raw, (int, float)):
            if isinstance(raw, float) and not math.isfinite(raw):
                return cls.empty()
            return cls.numeric(raw)
        if isinstance(raw, str):
            return cls.text(raw)
        return cls.empty()

    @property
    def is_numeric(self) -> bool:
        return self.kind is ValueKind.NUMERIC

    def to_raw(self) -> RawValue:
        """Plain JSON value for serialization."""
        if self.kind is ValueKind.NUMERIC:
            return self.number
        if self.kind is ValueKind.LABEL:
            return self.label
        return None


# =============================================================================
# Property Snapshot
# =============================================================================


@dataclass
class PropertySnapshot:
    """
    Point-in-time view of a property as returned by a property provider.

    All measurements are optional; scoring degrades to defaults when a
    field is missing.
    """
    id: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    property_type: str = ""

    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    square_footage: Optional[float] = None
    lot_size: Optional[float] = None
    year_built: Optional[int] = None
    garage_spaces: Optional[float] = None
    days_on_market: Optional[int] = None
    price: Optional[float] = None
    price_per_sqft: Optional[float] = None

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance: Optional[float] = None  # Miles from the subject

    condition: Optional[str] = None
    quality: Optional[str] = None

    # Valuation fields populated upstream (adjustment grid, prior scoring)
    adjustment: Optional[float] = None
    reconciled_value: Optional[float] = None
    similarity_score: Optional[float] = None

    # User-defined fields referenced by CUSTOM metrics
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "property_type": self.property_type,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "square_footage": self.square_footage,
            "lot_size": self.lot_size,
            "year_built": self.year_built,
            "garage_spaces": self.garage_spaces,
            "days_on_market": self.days_on_market,
            "price": self.price,
            "price_per_sqft": self.price_per_sqft,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "distance": self.distance,
            "condition": self.condition,
            "quality": self.quality,
            "adjustment": self.adjustment,
            "reconciled_value": self.reconciled_value,
            "similarity_score": self.similarity_score,
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PropertySnapshot":
        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        values["extra"] = dict(data.get("extra") or {})
        return cls(**values)


# =============================================================================
# Dashboards
# =============================================================================


@dataclass
class MetricConfig:
    """One metric shown on a dashboard."""
    metric: MetricKind
    display_name: str
    chart_kind: ChartKind = ChartKind.BAR
    enabled: bool = True
    position: int = 0

    # CUSTOM metrics only
    custom_field: Optional[str] = None
    custom_unit: Optional[str] = None
    custom_formula: Optional[str] = None

    value_mapping: list[dict[str, str]] = field(default_factory=list)
    color_scale: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "metric": self.metric.value,
            "display_name": self.display_name,
            "chart_kind": self.chart_kind.value,
            "enabled": self.enabled,
            "position": self.position,
            "custom_field": self.custom_field,
            "custom_unit": self.custom_unit,
            "custom_formula": self.custom_formula,
            "value_mapping": [dict(m) for m in self.value_mapping],
            "color_scale": list(self.color_scale),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MetricConfig":
        return cls(
            metric=MetricKind(data["metric"]),
            display_name=data.get("display_name", ""),
            chart_kind=ChartKind(data.get("chart_kind", ChartKind.BAR.value)),
            enabled=data.get("enabled", True),
            position=data.get("position", 0),
            custom_field=data.get("custom_field"),
            custom_unit=data.get("custom_unit"),
            custom_formula=data.get("custom_formula"),
            value_mapping=[dict(m) for m in data.get("value_mapping", [])],
            color_scale=list(data.get("color_scale", [])),
        )


@dataclass
class LayoutItem:
    """A metric tile placed on the dashboard grid."""
    id: str
    metric: MetricKind
    row: int
    column: int
    row_span: int = 1
    column_span: int = 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "metric": self.metric.value,
            "row": self.row,
            "column": self.column,
            "row_span": self.row_span,
            "column_span": self.column_span,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LayoutItem":
        return cls(
            id=data["id"],
            metric=MetricKind(data["metric"]),
            row=data["row"],
            column=data["column"],
            row_span=data.get("row_span", 1),
            column_span=data.get("column_span", 1),
        )


@dataclass
class DashboardLayout:
    """Grid layout: rows x columns with placed items."""
    rows: int
    columns: int
    items: list[LayoutItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rows": self.rows,
            "columns": self.columns,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DashboardLayout":
        return cls(
            rows=data["rows"],
            columns=data["columns"],
            items=[LayoutItem.from_dict(i) for i in data.get("items", [])],
        )


@dataclass
class Dashboard:
    """
    A named comparison dashboard configuration.

    System dashboards ship with the application and are immutable.
    """
    id: str
    name: str
    description: str = ""
    visualization_mode: VisualizationMode = VisualizationMode.CHART
    metrics: list[MetricConfig] = field(default_factory=list)
    layout: Optional[DashboardLayout] = None
    created_at: int = 0  # Epoch milliseconds
    updated_at: int = 0
    is_default: bool = False
    is_system: bool = False

    @property
    def enabled_metrics(self) -> list[MetricConfig]:
        """Enabled metrics in display order."""
        return sorted(
            (m for m in self.metrics if m.enabled),
            key=lambda m: m.position,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "visualization_mode": self.visualization_mode.value,
            "metrics": [m.to_dict() for m in self.metrics],
            "layout": self.layout.to_dict() if self.layout else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_default": self.is_default,
            "is_system": self.is_system,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Dashboard":
        layout = data.get("layout")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            visualization_mode=VisualizationMode(
                data.get("visualization_mode", VisualizationMode.CHART.value)
            ),
            metrics=[MetricConfig.from_dict(m) for m in data.get("metrics", [])],
            layout=DashboardLayout.from_dict(layout) if layout else None,
            created_at=data.get("created_at", 0),
            updated_at=data.get("updated_at", 0),
            is_default=data.get("is_default", False),
            is_system=data.get("is_system", False),
        )


# =============================================================================
# Comparison Results
# =============================================================================


@dataclass
class MetricStatistics:
    """Aggregate statistics over numeric comparable values."""
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    standard_deviation: float = 0.0

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "standard_deviation": self.standard_deviation,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MetricStatistics":
        return cls(**{k: data.get(k, 0.0) for k in cls.__dataclass_fields__})


@dataclass
class ComparableValue:
    """One comparable's reading for a metric, relative to the subject."""
    property_id: str
    value: MetricValue
    percent_difference: float = 0.0
    absolute_difference: float = 0.0

    def to_dict(self) -> dict:
        return {
            "property_id": self.property_id,
            "value": self.value.to_raw(),
            "percent_difference": self.percent_difference,
            "absolute_difference": self.absolute_difference,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComparableValue":
        return cls(
            property_id=data["property_id"],
            value=MetricValue.from_raw(data.get("value")),
            percent_difference=data.get("percent_difference", 0.0),
            absolute_difference=data.get("absolute_difference", 0.0),
        )


@dataclass
class MetricResult:
    """Subject vs comparables for a single metric."""
    metric: MetricKind
    subject_value: MetricValue
    comparable_values: list[ComparableValue] = field(default_factory=list)
    statistics: MetricStatistics = field(default_factory=MetricStatistics)

    @property
    def numeric_comparable_values(self) -> list[float]:
        return [cv.value.number for cv in self.comparable_values if cv.value.is_numeric]

    def to_dict(self) -> dict:
        return {
            "metric": self.metric.value,
            "subject_value": self.subject_value.to_raw(),
            "comparable_values": [cv.to_dict() for cv in self.comparable_values],
            "statistics": self.statistics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MetricResult":
        return cls(
            metric=MetricKind(data["metric"]),
            subject_value=MetricValue.from_raw(data.get("subject_value")),
            comparable_values=[
                ComparableValue.from_dict(cv) for cv in data.get("comparable_values", [])
            ],
            statistics=MetricStatistics.from_dict(data.get("statistics", {})),
        )


@dataclass
class CategoryScore:
    category: str
    score: float

    def to_dict(self) -> dict:
        return {"category": self.category, "score": self.score}


@dataclass
class SimilarityScore:
    """Overall and per-category similarity of one comparable to the subject."""
    property_id: str
    score: float
    category_scores: list[CategoryScore] = field(default_factory=list)

    def category(self, name: str) -> Optional[float]:
        """Score for a category by name, case-insensitive."""
        for cs in self.category_scores:
            if cs.category.lower() == name.lower():
                return cs.score
        return None

    def to_dict(self) -> dict:
        return {
            "property_id": self.property_id,
            "score": self.score,
            "category_scores": [cs.to_dict() for cs in self.category_scores],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SimilarityScore":
        return cls(
            property_id=data["property_id"],
            score=data.get("score", 0.0),
            category_scores=[
                CategoryScore(category=cs["category"], score=cs["score"])
                for cs in data.get("category_scores", [])
            ],
        )


@dataclass
class ValueReconciliation:
    """Appraiser's reconciled value within the comparable price range."""
    min_value: float
    max_value: float
    reconciled_value: float
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "min_value": self.min_value,
            "max_value": self.max_value,
            "reconciled_value": self.reconciled_value,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ValueReconciliation":
        return cls(
            min_value=data["min_value"],
            max_value=data["max_value"],
            reconciled_value=data["reconciled_value"],
            notes=data.get("notes"),
        )


@dataclass
class ComparisonResult:
    """
    Output of a comparison run.

    Immutable once created except for value_reconciliation, which is
    written after the fact by the appraiser.
    """
    id: str
    subject_property_id: str
    comparable_property_ids: list[str]
    dashboard_id: str
    timestamp: int  # Epoch milliseconds
    metric_results: list[MetricResult] = field(default_factory=list)
    similarity_scores: list[SimilarityScore] = field(default_factory=list)
    value_reconciliation: Optional[ValueReconciliation] = None
    notes: Optional[str] = None

    def metric_result(self, metric: MetricKind) -> Optional[MetricResult]:
        for mr in self.metric_results:
            if mr.metric is metric:
                return mr
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject_property_id": self.subject_property_id,
            "comparable_property_ids": list(self.comparable_property_ids),
            "dashboard_id": self.dashboard_id,
            "timestamp": self.timestamp,
            "metric_results": [mr.to_dict() for mr in self.metric_results],
            "similarity_scores": [s.to_dict() for s in self.similarity_scores],
            "value_reconciliation": (
                self.value_reconciliation.to_dict()
                if self.value_reconciliation else None
            ),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComparisonResult":
        reconciliation = data.get("value_reconciliation")
        return cls(
            id=data["id"],
            subject_property_id=data["subject_property_id"],
            comparable_property_ids=list(data.get("comparable_property_ids", [])),
            dashboard_id=data["dashboard_id"],
            timestamp=data["timestamp"],
            metric_results=[MetricResult.from_dict(m) for m in data.get("metric_results", [])],
            similarity_scores=[
                SimilarityScore.from_dict(s) for s in data.get("similarity_scores", [])
            ],
            value_reconciliation=(
                ValueReconciliation.from_dict(reconciliation) if reconciliation else None
            ),
            notes=data.get("notes"),
        )
