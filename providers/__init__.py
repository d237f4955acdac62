"""
Property data providers for the comparison engine.
"""

from .mock import MockPropertyProvider
from .finder import PoolComparableFinder, haversine_distance
from .http import HttpPropertyClient, HttpPropertyProvider, HttpComparableFinder, snapshot_from_api

__all__ = [
    "MockPropertyProvider",
    "PoolComparableFinder",
    "haversine_distance",
    "HttpPropertyClient",
    "HttpPropertyProvider",
    "HttpComparableFinder",
    "snapshot_from_api",
]
