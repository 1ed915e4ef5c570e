"""Condition catalog loading and snapshots."""

from .loader import CatalogLoader, build_condition
from .store import CatalogSnapshot, CatalogStats, CatalogStore

__all__ = [
    "CatalogLoader",
    "CatalogSnapshot",
    "CatalogStats",
    "CatalogStore",
    "build_condition",
]
