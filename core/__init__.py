"""
Property Appraisal Comparison - Core Business Logic

This module provides the comparison pipeline:
1. Dashboard resolution (which metrics to tabulate)
2. Property snapshots (via injected provider)
3. Metric results (differences and statistics)
4. Similarity scoring (location, size, features, age, condition)
5. Result caching and persistence
6. Value reconciliation
"""

from .comparison import (
    MetricKind,
    ChartKind,
    VisualizationMode,
    MetricValue,
    PropertySnapshot,
    MetricConfig,
    DashboardLayout,
    Dashboard,
    ComparisonResult,
    ValueReconciliation,
    ComparisonValidationError,
    DashboardNotFoundError,
    SystemDashboardError,
    PropertyNotFoundError,
    ComparisonEngine,
    EngineOptions,
)

# Collaborator contracts and storage backends
from .collaborators import PropertyProvider, ComparableFinder, SecureStorage, SecurityLevel
from .storage import InMemorySecureStorage, JsonFileSecureStorage

__all__ = [
    # Comparison Engine
    "MetricKind",
    "ChartKind",
    "VisualizationMode",
    "MetricValue",
    "PropertySnapshot",
    "MetricConfig",
    "DashboardLayout",
    "Dashboard",
    "ComparisonResult",
    "ValueReconciliation",
    "ComparisonValidationError",
    "DashboardNotFoundError",
    "SystemDashboardError",
    "PropertyNotFoundError",
    "ComparisonEngine",
    "EngineOptions",
    # Collaborators
    "PropertyProvider",
    "ComparableFinder",
    "SecureStorage",
    "SecurityLevel",
    "InMemorySecureStorage",
    "JsonFileSecureStorage",
]
