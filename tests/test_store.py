"""Tests for local entry stores."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from snapsync.codec import FileEntry
from snapsync.store.base import LocalStore
from snapsync.store.models import EntryModel
from snapsync.store import (
    DatabaseManager,
    InMemoryStore,
    LocalStoreAdapter,
    NotFoundError,
    SQLStore,
    StoredEntry,
    StoreUnavailableError
)


MOUNT = "/data"


@pytest.fixture
def sql_store(tmp_path):
    store = SQLStore(database_url=f"sqlite:///{tmp_path / 'store' / 'entries.db'}")
    store.initialize()
    yield store
    store.close()


def by_path(entries):
    return sorted(entries, key=lambda entry: entry.path)


class TestInMemoryStore:
    """Dictionary-backed store behaviour."""

    @pytest.mark.asyncio
    async def test_missing_entry_raises_not_found(self, memory_store):
        with pytest.raises(NotFoundError) as exc_info:
            await memory_store.read_entry(MOUNT, "/nope")
        assert exc_info.value.path == "/nope"
        assert isinstance(exc_info.value, KeyError)
        assert "/nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_writes_visible_after_commit(self, memory_store, sample_entries):
        entry = sample_entries[0]
        handle = await memory_store.open_store(MOUNT)
        await memory_store.write_entry(handle, entry.path, StoredEntry.from_file_entry(entry))

        assert await memory_store.list_paths(MOUNT) == set()

        await handle.commit()
        assert handle.closed
        assert await memory_store.list_paths(MOUNT) == {entry.path}
        stored = await memory_store.read_entry(MOUNT, entry.path)
        assert stored.to_file_entry(entry.path) == entry

    @pytest.mark.asyncio
    async def test_rollback_discards_writes(self, memory_store, sample_entries):
        handle = await memory_store.open_store(MOUNT)
        for entry in sample_entries:
            await memory_store.write_entry(handle, entry.path, StoredEntry.from_file_entry(entry))
        await handle.rollback()

        assert await memory_store.list_paths(MOUNT) == set()

    @pytest.mark.asyncio
    async def test_unavailable_store(self, memory_store):
        memory_store.available = False
        with pytest.raises(StoreUnavailableError):
            await memory_store.open_store(MOUNT)
        with pytest.raises(StoreUnavailableError):
            await memory_store.list_paths(MOUNT)

    @pytest.mark.asyncio
    async def test_settle_passes_error_through(self, memory_store):
        error = RuntimeError("load failed")
        assert await memory_store.settle(MOUNT, error) is error
        assert await memory_store.settle(MOUNT, None) is None


class TestSQLStore:
    """SQLAlchemy-backed store on a temporary SQLite file."""

    @pytest.mark.asyncio
    async def test_round_trip_preserves_contents(self, sql_store, sample_entries):
        adapter = LocalStoreAdapter(sql_store)
        written = await adapter.bulk_write(MOUNT, sample_entries)

        assert written == len(sample_entries)
        assert by_path(await adapter.collect_entries(MOUNT)) == by_path(sample_entries)

    @pytest.mark.asyncio
    async def test_empty_and_absent_contents_differ(self, sql_store):
        adapter = LocalStoreAdapter(sql_store)
        await adapter.bulk_write(MOUNT, [
            FileEntry.from_millis("/dir", 1, 0o40755, None),
            FileEntry.from_millis("/empty", 1, 0o644, b""),
        ])

        assert (await sql_store.read_entry(MOUNT, "/dir")).contents is None
        assert (await sql_store.read_entry(MOUNT, "/empty")).contents == b""

    @pytest.mark.asyncio
    async def test_write_replaces_existing(self, sql_store):
        adapter = LocalStoreAdapter(sql_store)
        await adapter.bulk_write(MOUNT, [FileEntry.from_millis("/f", 1, 0o644, b"old")])
        await adapter.bulk_write(MOUNT, [FileEntry.from_millis("/f", 2, 0o600, b"new")])

        stored = await sql_store.read_entry(MOUNT, "/f")
        assert stored.contents == b"new"
        assert stored.mode == 0o600
        assert await sql_store.list_paths(MOUNT) == {"/f"}

    @pytest.mark.asyncio
    async def test_clear_is_scoped_to_mountpoint(self, sql_store, sample_entries):
        adapter = LocalStoreAdapter(sql_store)
        await adapter.bulk_write(MOUNT, sample_entries)
        await adapter.bulk_write("/other", sample_entries[:1])

        await sql_store.clear_all(MOUNT)

        assert await sql_store.list_paths(MOUNT) == set()
        assert await sql_store.list_paths("/other") == {sample_entries[0].path}

    @pytest.mark.asyncio
    async def test_missing_entry_raises_not_found(self, sql_store):
        with pytest.raises(NotFoundError):
            await sql_store.read_entry(MOUNT, "/nope")

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path, sample_entries):
        url = f"sqlite:///{tmp_path / 'shared.db'}"
        first = SQLStore(database_url=url)
        first.initialize()
        await LocalStoreAdapter(first).bulk_write(MOUNT, sample_entries)
        first.close()

        second = SQLStore(database_url=url)
        second.initialize()
        try:
            assert await second.list_paths(MOUNT) == {entry.path for entry in sample_entries}
        finally:
            second.close()

    @pytest.mark.asyncio
    async def test_database_errors_become_unavailable(self):
        db_manager = MagicMock(spec=DatabaseManager)
        db_manager.session_scope.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
        store = SQLStore(db_manager=db_manager)

        with pytest.raises(StoreUnavailableError):
            await store.list_paths(MOUNT)
        with pytest.raises(StoreUnavailableError):
            await store.read_entry(MOUNT, "/f")
        with pytest.raises(StoreUnavailableError):
            await store.clear_all(MOUNT)

    @pytest.mark.asyncio
    async def test_replace_swaps_mountpoint_contents(self, sql_store, sample_entries):
        adapter = LocalStoreAdapter(sql_store)
        await adapter.bulk_write(MOUNT, sample_entries)
        await adapter.bulk_write("/other", sample_entries[:1])
        fresh = [FileEntry.from_millis("/fresh", 5, 0o644, b"new")]

        assert await adapter.replace(MOUNT, fresh) == 1

        assert await adapter.collect_entries(MOUNT) == fresh
        assert await sql_store.list_paths("/other") == {sample_entries[0].path}

    @pytest.mark.asyncio
    async def test_failed_replace_keeps_previous_entries(self, sql_store, sample_entries):
        adapter = LocalStoreAdapter(sql_store)
        await adapter.bulk_write(MOUNT, sample_entries)
        original_write = sql_store.write_entry
        calls = []

        async def flaky_write(handle, path, entry):
            calls.append(path)
            if len(calls) == 2:
                raise StoreUnavailableError("disk full")
            await original_write(handle, path, entry)

        replacement = [FileEntry.from_millis(f"/new/{i}", 5, 0o644, b"x") for i in range(3)]
        with patch.object(sql_store, "write_entry", side_effect=flaky_write):
            with pytest.raises(StoreUnavailableError):
                await adapter.replace(MOUNT, replacement)

        assert by_path(await adapter.collect_entries(MOUNT)) == by_path(sample_entries)

    def test_initialize_fails_without_connection(self):
        db_manager = MagicMock(spec=DatabaseManager)
        db_manager.test_connection.return_value = False
        store = SQLStore(db_manager=db_manager)

        with pytest.raises(StoreUnavailableError):
            store.initialize()
        db_manager.create_tables.assert_called_once()


class TestLocalStoreAdapter:
    """Bulk helpers used by the sync engine."""

    @pytest.mark.asyncio
    async def test_collect_entries_sorted_by_path(self, memory_store, sample_entries):
        adapter = LocalStoreAdapter(memory_store)
        await adapter.bulk_write(MOUNT, sample_entries)

        collected = await adapter.collect_entries(MOUNT)

        assert [entry.path for entry in collected] == sorted(entry.path for entry in sample_entries)

    @pytest.mark.asyncio
    async def test_bulk_write_rolls_back_on_failure(self, memory_store, sample_entries):
        adapter = LocalStoreAdapter(memory_store)
        original_write = memory_store.write_entry
        calls = []

        async def flaky_write(handle, path, entry):
            calls.append(path)
            if len(calls) == 2:
                raise StoreUnavailableError("write failed")
            await original_write(handle, path, entry)

        with patch.object(memory_store, "write_entry", side_effect=flaky_write):
            with pytest.raises(StoreUnavailableError):
                await adapter.bulk_write(MOUNT, sample_entries)

        assert await memory_store.list_paths(MOUNT) == set()

    @pytest.mark.asyncio
    async def test_failed_replace_keeps_previous_entries(self, memory_store, sample_entries):
        adapter = LocalStoreAdapter(memory_store)
        await adapter.bulk_write(MOUNT, sample_entries)

        with patch.object(memory_store, "write_entry", side_effect=StoreUnavailableError("write failed")):
            with pytest.raises(StoreUnavailableError):
                await adapter.replace(MOUNT, sample_entries[:1])

        assert by_path(await adapter.collect_entries(MOUNT)) == by_path(sample_entries)

    @pytest.mark.asyncio
    async def test_replace_with_nothing_clears(self, memory_store, sample_entries):
        adapter = LocalStoreAdapter(memory_store)
        await adapter.bulk_write(MOUNT, sample_entries)

        assert await adapter.replace(MOUNT, []) == 0
        assert await memory_store.list_paths(MOUNT) == set()

    @pytest.mark.asyncio
    async def test_default_clear_through_uses_clear_all(self):
        store = MagicMock()
        handle = MagicMock(mountpoint=MOUNT)
        handle.commit = AsyncMock()
        store.open_store = AsyncMock(return_value=handle)

        async def base_clear_through(h):
            await LocalStore.clear_through(store, h)

        store.clear_through = AsyncMock(side_effect=base_clear_through)
        store.clear_all = AsyncMock()
        store.write_entry = AsyncMock()

        await LocalStoreAdapter(store).replace(MOUNT, [])

        store.clear_all.assert_awaited_once_with(MOUNT)
        handle.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_clear_delegates_to_store(self):
        store = MagicMock()
        store.clear_all = AsyncMock()

        await LocalStoreAdapter(store).clear(MOUNT)

        store.clear_all.assert_awaited_once_with(MOUNT)


class TestDatabaseManager:
    """Engine and session management."""

    def test_in_memory_database(self):
        manager = DatabaseManager("sqlite:///:memory:")
        try:
            assert manager.is_sqlite
            assert manager.sqlite_path is None
            manager.create_tables()
            assert manager.test_connection()
        finally:
            manager.close()

    def test_file_database_directory_created(self, tmp_path):
        db_file = tmp_path / "nested" / "dir" / "entries.db"
        manager = DatabaseManager(f"sqlite:///{db_file}")
        try:
            assert manager.sqlite_path == db_file
            manager.create_tables()
            assert db_file.parent.is_dir()
        finally:
            manager.close()

    def test_session_scope_rolls_back(self):
        manager = DatabaseManager("sqlite:///:memory:")
        manager.create_tables()
        try:
            with pytest.raises(RuntimeError):
                with manager.session_scope() as session:
                    session.add(EntryModel(mountpoint=MOUNT, path="/f", timestamp_ms=0, mode=0))
                    session.flush()
                    raise RuntimeError("abort")

            with manager.session_scope() as session:
                assert session.query(EntryModel).count() == 0
        finally:
            manager.close()
