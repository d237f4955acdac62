"""
Property Comparison Engine v1.0

Compares a subject property with a set of comparables: per-metric
differences and statistics, weighted multi-category similarity scores,
and a bounded, time-limited result cache backed by durable storage.
"""

from .models import (
    MetricKind,
    ChartKind,
    VisualizationMode,
    ValueKind,
    MetricValue,
    PropertySnapshot,
    MetricConfig,
    LayoutItem,
    DashboardLayout,
    Dashboard,
    MetricStatistics,
    ComparableValue,
    MetricResult,
    CategoryScore,
    SimilarityScore,
    ValueReconciliation,
    ComparisonResult,
)
from .errors import (
    ComparisonValidationError,
    DashboardNotFoundError,
    SystemDashboardError,
    PropertyNotFoundError,
)
from .statistics import calculate_statistics
from .similarity import SimilarityScorer
from .cache import ComparisonCache, CacheEntry, make_cache_key
from .dashboards import DashboardRegistry
from .store import ResultStore
from .engine import ComparisonEngine, EngineOptions

__all__ = [
    # Models
    "MetricKind",
    "ChartKind",
    "VisualizationMode",
    "ValueKind",
    "MetricValue",
    "PropertySnapshot",
    "MetricConfig",
    "LayoutItem",
    "DashboardLayout",
    "Dashboard",
    "MetricStatistics",
    "ComparableValue",
    "MetricResult",
    "CategoryScore",
    "SimilarityScore",
    "ValueReconciliation",
    "ComparisonResult",
    # Errors
    "ComparisonValidationError",
    "DashboardNotFoundError",
    "SystemDashboardError",
    "PropertyNotFoundError",
    # Components
    "calculate_statistics",
    "SimilarityScorer",
    "ComparisonCache",
    "CacheEntry",
    "make_cache_key",
    "DashboardRegistry",
    "ResultStore",
    # Engine
    "ComparisonEngine",
    "EngineOptions",
]

__version__ = "1.0"
