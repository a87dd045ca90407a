"""Translate sync engine intents into local store calls."""

from typing import Iterable, List

from .base import LocalStore, StoredEntry
from ..codec import FileEntry
from ..utils.logging import LoggerMixin


class LocalStoreAdapter(LoggerMixin):
    """Bulk operations the sync engine needs on top of a ``LocalStore``."""

    def __init__(self, store: LocalStore):
        self.store = store

    async def clear(self, mountpoint: str) -> None:
        """Drop every entry of a mountpoint."""
        await self.store.clear_all(mountpoint)

    async def bulk_write(self, mountpoint: str, entries: Iterable[FileEntry]) -> int:
        """Write entries through a single handle and commit them together.

        Returns:
            Number of entries written
        """
        return await self._write(mountpoint, entries, replace=False)

    async def replace(self, mountpoint: str, entries: Iterable[FileEntry]) -> int:
        """Clear a mountpoint and write entries in one transaction.

        If any write fails the mountpoint keeps its previous entries.

        Returns:
            Number of entries written
        """
        return await self._write(mountpoint, entries, replace=True)

    async def _write(self, mountpoint: str, entries: Iterable[FileEntry], replace: bool) -> int:
        handle = await self.store.open_store(mountpoint)
        written = 0
        try:
            if replace:
                await self.store.clear_through(handle)
            for entry in entries:
                await self.store.write_entry(handle, entry.path, StoredEntry.from_file_entry(entry))
                written += 1
        except Exception as e:
            self.logger.error(
                "Write failed, rolling back",
                mountpoint=mountpoint,
                entries_written=written,
                error=str(e)
            )
            await handle.rollback()
            raise

        await handle.commit()
        self.logger.debug("Entries committed", mountpoint=mountpoint, entries=written, replaced=replace)
        return written

    async def collect_entries(self, mountpoint: str) -> List[FileEntry]:
        """Enumerate the mountpoint and read every entry, ordered by path."""
        paths = await self.store.list_paths(mountpoint)

        entries = []
        for path in sorted(paths):
            stored = await self.store.read_entry(mountpoint, path)
            entries.append(stored.to_file_entry(path))

        return entries
