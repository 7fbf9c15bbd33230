"""Persistence layer -- SQLite snapshots, response cache and rolling price history."""

from finder.storage.cache import TTLCache
from finder.storage.database import SnapshotDatabase
from finder.storage.history import PriceHistoryStore, derive_trend
from finder.storage.snapshot import SnapshotStore, SqliteSnapshotStore

__all__ = [
    "PriceHistoryStore",
    "SnapshotDatabase",
    "SnapshotStore",
    "SqliteSnapshotStore",
    "TTLCache",
    "derive_trend",
]
