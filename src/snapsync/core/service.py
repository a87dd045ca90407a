"""Service facade wiring a store, configured listeners and the sync engine."""

from typing import Any, Dict, List, Optional

from .sync_engine import ConcurrencyPolicy, SyncDirection, SyncEngine, SyncResult
from ..codec import FileEntry
from ..config import SyncConfig, get_settings, load_config
from ..listeners import BaseRemoteListener, ListenerFactory
from ..store import LocalStore, SQLStore
from ..utils.logging import get_logger, log_async_execution_time


class SyncService:
    """Owns one engine and the listeners built from a ``SyncConfig``."""

    def __init__(
        self,
        store: LocalStore,
        config: SyncConfig,
        concurrency_policy: Optional[ConcurrencyPolicy] = None
    ):
        """Initialize the sync service.

        Args:
            store: Local entry store
            config: Listener configuration, in registration order
            concurrency_policy: Overrides ``sync.concurrency_policy`` from settings
        """
        self.store = store
        self.config = config
        self.logger = get_logger(self.__class__.__name__)

        policy = concurrency_policy or ConcurrencyPolicy(get_settings().sync.concurrency_policy)
        self.engine = SyncEngine(store, concurrency_policy=policy)
        self.listeners: List[BaseRemoteListener] = []

        self._register_listeners()

    @classmethod
    def from_settings(
        cls,
        config_path: Optional[str] = None,
        database_url: Optional[str] = None
    ) -> "SyncService":
        """Build a service over the SQL store using settings and the listener file."""
        config = load_config(config_path)
        store = SQLStore(database_url=database_url)
        store.initialize()
        return cls(store, config)

    def _register_listeners(self) -> None:
        for listener_config in self.config.get_active_listeners():
            listener = ListenerFactory.create_listener(listener_config)
            self.engine.register_listener(
                on_load=listener.on_load if listener_config.load else None,
                on_save=listener.on_save if listener_config.save else None
            )
            self.listeners.append(listener)

            self.logger.info(
                "Listener registered",
                listener=listener_config.name,
                listener_type=listener_config.listener_type.value,
                load=listener_config.load,
                save=listener_config.save
            )

    def _mountpoint(self, mountpoint: Optional[str]) -> str:
        return mountpoint or self.config.default_mountpoint

    @log_async_execution_time
    async def pull(self, mountpoint: Optional[str] = None) -> SyncResult:
        """Replace the local mountpoint with the first available remote snapshot."""
        return await self.engine.sync(self._mountpoint(mountpoint), SyncDirection.REMOTE_TO_LOCAL)

    @log_async_execution_time
    async def push(self, mountpoint: Optional[str] = None) -> SyncResult:
        """Send the local mountpoint to every save listener."""
        return await self.engine.sync(self._mountpoint(mountpoint), SyncDirection.LOCAL_TO_REMOTE)

    async def list_entries(self, mountpoint: Optional[str] = None) -> List[FileEntry]:
        """Read every local entry of a mountpoint."""
        return await self.engine.adapter.collect_entries(self._mountpoint(mountpoint))

    async def get_status(self) -> Dict[str, Any]:
        """Describe the configured listeners and store."""
        return {
            "store": self.store.__class__.__name__,
            "default_mountpoint": self.config.default_mountpoint,
            "concurrency_policy": self.engine.concurrency_policy.value,
            "listeners": [await listener.get_listener_info() for listener in self.listeners]
        }

    async def close(self) -> None:
        """Release listener sessions and store connections."""
        for listener in self.listeners:
            close = getattr(listener, "close", None)
            if close is not None:
                await close()

        if isinstance(self.store, SQLStore):
            self.store.close()

        self.logger.info("Sync service closed")
