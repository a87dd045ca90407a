"""Local entry store interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Set

from ..codec import FileEntry
from ..utils.logging import get_logger


@dataclass
class StoredEntry:
    """An entry as persisted by a store, keyed externally by its path."""

    timestamp: datetime
    mode: int
    contents: Optional[bytes] = None

    @classmethod
    def from_file_entry(cls, entry: FileEntry) -> "StoredEntry":
        return cls(timestamp=entry.timestamp, mode=entry.mode, contents=entry.contents)

    def to_file_entry(self, path: str) -> FileEntry:
        return FileEntry(path=path, timestamp=self.timestamp, mode=self.mode, contents=self.contents)


class StoreHandle:
    """An open write scope on one mountpoint.

    Writes made through a handle become visible once ``commit`` returns.
    """

    def __init__(self, mountpoint: str):
        self.mountpoint = mountpoint
        self.closed = False

    async def commit(self) -> None:
        self.closed = True

    async def rollback(self) -> None:
        self.closed = True


class LocalStore(ABC):
    """Abstract base class for local file-entry stores."""

    def __init__(self, **kwargs):
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    async def open_store(self, mountpoint: str) -> StoreHandle:
        """Open a write handle for a mountpoint.

        Raises:
            StoreUnavailableError: If the backend cannot be opened
        """
        pass

    @abstractmethod
    async def list_paths(self, mountpoint: str) -> Set[str]:
        """Return every path stored under a mountpoint."""
        pass

    @abstractmethod
    async def read_entry(self, mountpoint: str, path: str) -> StoredEntry:
        """Read one entry.

        Raises:
            NotFoundError: If the path is absent
        """
        pass

    @abstractmethod
    async def write_entry(self, handle: StoreHandle, path: str, entry: StoredEntry) -> None:
        """Create or replace an entry through an open handle."""
        pass

    @abstractmethod
    async def clear_all(self, mountpoint: str) -> None:
        """Remove every entry stored under a mountpoint."""
        pass

    async def clear_through(self, handle: StoreHandle) -> None:
        """Remove every entry of the handle's mountpoint as part of its transaction.

        Entries written through the handle afterwards replace the mountpoint
        on commit, and a rollback keeps the old entries. The default clears
        immediately, so stores without transactional clears should override it.
        """
        await self.clear_all(handle.mountpoint)

    async def settle(self, mountpoint: str, error: Optional[BaseException]) -> Optional[BaseException]:
        """Readiness hook run once per sync after the load stage.

        Stores that keep their own bookkeeping finish it here. The incoming
        error-or-success value must be returned unchanged unless the
        bookkeeping itself fails.
        """
        return error
