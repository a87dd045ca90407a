"""Listener that exchanges snapshots with an HTTP object endpoint."""

from typing import Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

from .base import BaseRemoteListener, SnapshotAccessor, encode_mountpoint
from ..exceptions import RemoteBackendError
from ..utils.logging import log_async_execution_time


class HTTPListener(BaseRemoteListener):
    """Pulls with ``GET {base_url}/{mountpoint}`` and pushes with ``PUT``.

    A 404 on pull means the remote has nothing for the mountpoint.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
        name: Optional[str] = None,
        **kwargs
    ):
        super().__init__(name=name, **kwargs)
        self.base_url = base_url.rstrip('/')
        self.headers = headers or {}
        self.timeout = ClientTimeout(total=timeout_seconds)
        self.session = session
        self._owns_session = session is None

        self.logger.info("HTTP listener initialized", base_url=self.base_url)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
            self._owns_session = True
        return self.session

    def snapshot_url(self, mountpoint: str) -> str:
        return f"{self.base_url}/{encode_mountpoint(mountpoint)}"

    @log_async_execution_time
    async def on_load(self, mountpoint: str) -> Optional[bytes]:
        url = self.snapshot_url(mountpoint)
        try:
            async with self._get_session().get(url) as response:
                if response.status == 404:
                    self.logger.debug("Remote has no snapshot", mountpoint=mountpoint, url=url)
                    return None
                elif response.status != 200:
                    error_text = await response.text()
                    raise RemoteBackendError(
                        f"Snapshot download failed: {response.status} - {error_text}",
                        status=response.status
                    )

                data = await response.read()

        except aiohttp.ClientError as e:
            raise RemoteBackendError(f"Network error: {e}") from e

        self.logger.info("Downloaded snapshot", mountpoint=mountpoint, url=url, size=len(data))
        return data

    @log_async_execution_time
    async def on_save(self, get_snapshot: SnapshotAccessor, mountpoint: str) -> None:
        data = await get_snapshot()
        url = self.snapshot_url(mountpoint)
        headers = {"Content-Type": "application/octet-stream"}
        try:
            async with self._get_session().put(url, data=data, headers=headers) as response:
                if response.status not in (200, 201, 204):
                    error_text = await response.text()
                    raise RemoteBackendError(
                        f"Snapshot upload failed: {response.status} - {error_text}",
                        status=response.status
                    )

        except aiohttp.ClientError as e:
            raise RemoteBackendError(f"Network error: {e}") from e

        self.logger.info("Uploaded snapshot", mountpoint=mountpoint, url=url, size=len(data))

    async def close(self) -> None:
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()
