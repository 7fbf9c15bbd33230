"""Tests for SnapshotDatabase and SqliteSnapshotStore against a real SQLite file."""

import pytest

from finder.exceptions import PersistenceError
from finder.storage.database import SnapshotDatabase
from finder.storage.snapshot import SqliteSnapshotStore


class TestSnapshotDatabase:
    """Connection lifecycle."""

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path) -> None:
        path = tmp_path / "nested" / "finder.db"
        async with SnapshotDatabase(str(path)) as database:
            assert database.is_connected
        assert path.exists()

    def test_db_access_before_connect_raises(self, tmp_path) -> None:
        database = SnapshotDatabase(str(tmp_path / "finder.db"))
        with pytest.raises(RuntimeError):
            database.db

    @pytest.mark.asyncio
    async def test_reconnect_is_idempotent(self, tmp_path) -> None:
        path = str(tmp_path / "finder.db")
        async with SnapshotDatabase(path):
            pass
        async with SnapshotDatabase(path) as database:
            cursor = await database.db.execute("SELECT COUNT(*) FROM schema_version")
            row = await cursor.fetchone()
        assert row[0] == 1


class TestSqliteSnapshotStore:
    """Named JSON documents."""

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path, clock) -> None:
        async with SnapshotDatabase(str(tmp_path / "finder.db")) as database:
            store = SqliteSnapshotStore(database, clock=clock)
            await store.save("cache", {"k": {"payload": 1, "stored_at": 2.5}})
            assert await store.load("cache") == {"k": {"payload": 1, "stored_at": 2.5}}

    @pytest.mark.asyncio
    async def test_save_replaces_previous_document(self, tmp_path, clock) -> None:
        async with SnapshotDatabase(str(tmp_path / "finder.db")) as database:
            store = SqliteSnapshotStore(database, clock=clock)
            await store.save("cache", {"a": 1})
            await store.save("cache", {"b": 2})
            assert await store.load("cache") == {"b": 2}

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path, clock) -> None:
        path = str(tmp_path / "finder.db")
        async with SnapshotDatabase(path) as database:
            await SqliteSnapshotStore(database, clock=clock).save("history", {"k": []})
        async with SnapshotDatabase(path) as database:
            assert await SqliteSnapshotStore(database, clock=clock).load("history") == {"k": []}

    @pytest.mark.asyncio
    async def test_missing_document_loads_empty(self, tmp_path, clock) -> None:
        async with SnapshotDatabase(str(tmp_path / "finder.db")) as database:
            assert await SqliteSnapshotStore(database, clock=clock).load("absent") == {}

    @pytest.mark.asyncio
    async def test_corrupt_document_loads_empty(self, tmp_path, clock) -> None:
        async with SnapshotDatabase(str(tmp_path / "finder.db")) as database:
            await database.db.execute(
                "INSERT INTO snapshots (name, document, saved_at) VALUES (?, ?, ?)",
                ("cache", "{not json", 0.0),
            )
            await database.db.commit()
            assert await SqliteSnapshotStore(database, clock=clock).load("cache") == {}

    @pytest.mark.asyncio
    async def test_non_object_document_loads_empty(self, tmp_path, clock) -> None:
        async with SnapshotDatabase(str(tmp_path / "finder.db")) as database:
            await database.db.execute(
                "INSERT INTO snapshots (name, document, saved_at) VALUES (?, ?, ?)",
                ("cache", "[1, 2, 3]", 0.0),
            )
            await database.db.commit()
            assert await SqliteSnapshotStore(database, clock=clock).load("cache") == {}

    @pytest.mark.asyncio
    async def test_load_without_connection_is_empty(self, tmp_path, clock) -> None:
        database = SnapshotDatabase(str(tmp_path / "finder.db"))
        assert await SqliteSnapshotStore(database, clock=clock).load("cache") == {}

    @pytest.mark.asyncio
    async def test_save_without_connection_raises(self, tmp_path, clock) -> None:
        database = SnapshotDatabase(str(tmp_path / "finder.db"))
        with pytest.raises(PersistenceError):
            await SqliteSnapshotStore(database, clock=clock).save("cache", {"a": 1})

    @pytest.mark.asyncio
    async def test_unserializable_document_raises(self, tmp_path, clock) -> None:
        async with SnapshotDatabase(str(tmp_path / "finder.db")) as database:
            with pytest.raises(PersistenceError):
                await SqliteSnapshotStore(database, clock=clock).save("cache", {"a": object()})
