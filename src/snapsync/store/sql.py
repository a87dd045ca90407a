"""SQLAlchemy-backed persistent entry store."""

from typing import Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .base import LocalStore, StoreHandle, StoredEntry
from .database import DatabaseManager
from .models import EntryModel
from ..codec import FileEntry
from ..exceptions import NotFoundError, StoreUnavailableError


class SQLStoreHandle(StoreHandle):
    """Write handle owning one database session and its transaction."""

    def __init__(self, mountpoint: str, session: Session):
        super().__init__(mountpoint)
        self.session = session

    async def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreUnavailableError(f"Failed to commit entries for {self.mountpoint}: {e}") from e
        finally:
            self.session.close()
        await super().commit()

    async def rollback(self) -> None:
        try:
            self.session.rollback()
        finally:
            self.session.close()
        await super().rollback()


class SQLStore(LocalStore):
    """Entry store persisted through SQLAlchemy.

    Entries live in a single ``file_entries`` table keyed by
    ``(mountpoint, path)``.
    """

    def __init__(self, db_manager: Optional[DatabaseManager] = None, database_url: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.db_manager = db_manager or DatabaseManager(database_url)

    def initialize(self) -> None:
        """Create tables and verify the connection."""
        try:
            self.db_manager.create_tables()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to initialize store: {e}") from e

        if not self.db_manager.test_connection():
            raise StoreUnavailableError("Failed to establish database connection")

    async def open_store(self, mountpoint: str) -> SQLStoreHandle:
        try:
            session = self.db_manager.get_session()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to open store for {mountpoint}: {e}") from e
        return SQLStoreHandle(mountpoint, session)

    async def list_paths(self, mountpoint: str) -> Set[str]:
        try:
            with self.db_manager.session_scope() as session:
                rows = session.query(EntryModel.path).filter(EntryModel.mountpoint == mountpoint).all()
                return {row.path for row in rows}
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to enumerate {mountpoint}: {e}") from e

    async def read_entry(self, mountpoint: str, path: str) -> StoredEntry:
        try:
            with self.db_manager.session_scope() as session:
                row = session.query(EntryModel).filter(
                    EntryModel.mountpoint == mountpoint,
                    EntryModel.path == path
                ).first()
                fields = None if row is None else (row.timestamp_ms, row.mode, row.contents)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to read {mountpoint}:{path}: {e}") from e

        if fields is None:
            raise NotFoundError(mountpoint, path)

        return StoredEntry.from_file_entry(FileEntry.from_millis(path, *fields))

    async def write_entry(self, handle: SQLStoreHandle, path: str, entry: StoredEntry) -> None:
        file_entry = entry.to_file_entry(path)
        try:
            row = handle.session.query(EntryModel).filter(
                EntryModel.mountpoint == handle.mountpoint,
                EntryModel.path == path
            ).first()
            if row is None:
                row = EntryModel(mountpoint=handle.mountpoint, path=path)
                handle.session.add(row)

            row.timestamp_ms = file_entry.timestamp_ms
            row.mode = file_entry.mode
            row.contents = file_entry.contents
            handle.session.flush()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to write {handle.mountpoint}:{path}: {e}") from e

    async def clear_all(self, mountpoint: str) -> None:
        try:
            with self.db_manager.session_scope() as session:
                deleted = session.query(EntryModel).filter(
                    EntryModel.mountpoint == mountpoint
                ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to clear {mountpoint}: {e}") from e

        self.logger.info("Cleared mountpoint", mountpoint=mountpoint, entries_deleted=deleted)

    async def clear_through(self, handle: SQLStoreHandle) -> None:
        try:
            deleted = handle.session.query(EntryModel).filter(
                EntryModel.mountpoint == handle.mountpoint
            ).delete(synchronize_session=False)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Failed to clear {handle.mountpoint}: {e}") from e

        self.logger.debug("Staged mountpoint clear", mountpoint=handle.mountpoint, entries_deleted=deleted)

    def close(self) -> None:
        self.db_manager.close()
