"""Listener that keeps snapshots as files in a local directory."""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .base import BaseRemoteListener, SnapshotAccessor, encode_mountpoint
from ..exceptions import RemoteBackendError


SNAPSHOT_SUFFIX = ".snap"


def snapshot_filename(mountpoint: str) -> str:
    """Map a mountpoint to its snapshot filename, e.g. ``/data`` to ``%2Fdata.snap``."""
    return encode_mountpoint(mountpoint) + SNAPSHOT_SUFFIX


class DirectoryListener(BaseRemoteListener):
    """Stores one snapshot file per mountpoint under ``root``.

    Useful as a backup target, and as a shared folder between hosts when
    ``root`` sits on a synced or network filesystem.
    """

    def __init__(self, root: Union[str, Path], name: Optional[str] = None, **kwargs):
        super().__init__(name=name, **kwargs)
        self.root = Path(root)

    def snapshot_path(self, mountpoint: str) -> Path:
        return self.root / snapshot_filename(mountpoint)

    async def on_load(self, mountpoint: str) -> Optional[bytes]:
        path = self.snapshot_path(mountpoint)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            self.logger.debug("No snapshot on disk", mountpoint=mountpoint, path=str(path))
            return None
        except OSError as e:
            raise RemoteBackendError(f"Failed to read snapshot {path}: {e}") from e

        self.logger.info("Loaded snapshot", mountpoint=mountpoint, path=str(path), size=len(data))
        return data

    async def on_save(self, get_snapshot: SnapshotAccessor, mountpoint: str) -> None:
        data = await get_snapshot()
        path = self.snapshot_path(mountpoint)
        try:
            await asyncio.to_thread(self._write_atomic, path, data)
        except OSError as e:
            raise RemoteBackendError(f"Failed to write snapshot {path}: {e}") from e

        self.logger.info("Saved snapshot", mountpoint=mountpoint, path=str(path), size=len(data))

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
