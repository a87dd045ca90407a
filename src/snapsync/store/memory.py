"""In-process entry store."""

from typing import Dict, Set

from .base import LocalStore, StoreHandle, StoredEntry
from ..exceptions import NotFoundError, StoreUnavailableError


class MemoryStoreHandle(StoreHandle):
    """Stages writes, and an optional clear, until commit."""

    def __init__(self, store: "InMemoryStore", mountpoint: str):
        super().__init__(mountpoint)
        self.store = store
        self.staged: Dict[str, StoredEntry] = {}
        self.cleared = False

    async def commit(self) -> None:
        self.store._check_available()
        if self.cleared:
            self.store._mountpoints[self.mountpoint] = dict(self.staged)
        else:
            self.store._mountpoints.setdefault(self.mountpoint, {}).update(self.staged)
        self.staged = {}
        self.cleared = False
        await super().commit()

    async def rollback(self) -> None:
        self.staged = {}
        self.cleared = False
        await super().rollback()


class InMemoryStore(LocalStore):
    """Dictionary-backed store, one namespace per mountpoint.

    ``available`` can be switched off to simulate a backend outage.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._mountpoints: Dict[str, Dict[str, StoredEntry]] = {}
        self.available = True

    def _check_available(self) -> None:
        if not self.available:
            raise StoreUnavailableError("In-memory store is unavailable")

    async def open_store(self, mountpoint: str) -> MemoryStoreHandle:
        self._check_available()
        return MemoryStoreHandle(self, mountpoint)

    async def list_paths(self, mountpoint: str) -> Set[str]:
        self._check_available()
        return set(self._mountpoints.get(mountpoint, {}))

    async def read_entry(self, mountpoint: str, path: str) -> StoredEntry:
        self._check_available()
        try:
            return self._mountpoints[mountpoint][path]
        except KeyError:
            raise NotFoundError(mountpoint, path) from None

    async def write_entry(self, handle: StoreHandle, path: str, entry: StoredEntry) -> None:
        self._check_available()
        handle.staged[path] = entry

    async def clear_all(self, mountpoint: str) -> None:
        self._check_available()
        self._mountpoints.pop(mountpoint, None)
        self.logger.debug("Cleared mountpoint", mountpoint=mountpoint)

    async def clear_through(self, handle: MemoryStoreHandle) -> None:
        self._check_available()
        handle.staged = {}
        handle.cleared = True
