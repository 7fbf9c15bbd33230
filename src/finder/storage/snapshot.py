"""Named JSON snapshots on top of SnapshotDatabase.

Each in-memory store (cache, price history, category stats) persists as one
row keyed by name. A save replaces the whole row inside a single
transaction, so readers only ever see the previous or the new document.

load() never raises: a missing row, an unreadable database or a corrupt
document all yield an empty dict, logged at WARNING.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

import aiosqlite

from finder.clock import Clock, SystemClock
from finder.exceptions import PersistenceError
from finder.logging import get_logger
from finder.storage.database import SnapshotDatabase

logger = get_logger(__name__)


class SnapshotStore(ABC):
    """Durable key/document store used for load-at-startup, save-after-cycle."""

    @abstractmethod
    async def load(self, name: str) -> dict[str, Any]:
        """Return the last saved document, or {} if absent or corrupt."""
        ...

    @abstractmethod
    async def save(self, name: str, document: dict[str, Any]) -> None:
        """Replace the named document. Raises PersistenceError on failure."""
        ...


class SqliteSnapshotStore(SnapshotStore):
    """SnapshotStore backed by the snapshots table."""

    def __init__(self, database: SnapshotDatabase, clock: Clock | None = None) -> None:
        self._database = database
        self._clock = clock or SystemClock()

    async def load(self, name: str) -> dict[str, Any]:
        try:
            cursor = await self._database.db.execute(
                "SELECT document FROM snapshots WHERE name = ?", (name,)
            )
            row = await cursor.fetchone()
        except (aiosqlite.Error, RuntimeError) as e:
            logger.warning("snapshot_load_failed", name=name, error=str(e))
            return {}

        if row is None:
            logger.debug("snapshot_absent", name=name)
            return {}

        try:
            document = json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning("snapshot_corrupt", name=name, error=str(e))
            return {}

        if not isinstance(document, dict):
            logger.warning("snapshot_corrupt", name=name, error="document is not an object")
            return {}
        return document

    async def save(self, name: str, document: dict[str, Any]) -> None:
        try:
            payload = json.dumps(document)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"snapshot {name!r} is not serializable: {e}") from e

        try:
            await self._database.db.execute(
                "INSERT OR REPLACE INTO snapshots (name, document, saved_at) "
                "VALUES (?, ?, ?)",
                (name, payload, self._clock.now()),
            )
            await self._database.db.commit()
        except (aiosqlite.Error, RuntimeError) as e:
            raise PersistenceError(f"snapshot {name!r} save failed: {e}") from e

        logger.debug("snapshot_saved", name=name, bytes=len(payload))
