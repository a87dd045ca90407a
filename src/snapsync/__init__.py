"""Snapshot synchronization between a local file-entry store and remote listeners."""

from .codec import FileEntry, encode_entries, decode_entries
from .core import (
    SyncEngine,
    SyncResult,
    SyncDirection,
    SyncState,
    ConcurrencyPolicy,
    SyncService
)
from .listeners import ListenerRegistry, BaseRemoteListener
from .store import LocalStore, InMemoryStore, SQLStore
from .exceptions import (
    SnapSyncError,
    MalformedBufferError,
    StoreError,
    StoreUnavailableError,
    NotFoundError,
    ListenerFailure,
    SaveFanoutError,
    SyncInProgressError,
    RemoteBackendError,
    ConfigurationError
)

__version__ = "0.3.0"

__all__ = [
    "FileEntry",
    "encode_entries",
    "decode_entries",
    "SyncEngine",
    "SyncResult",
    "SyncDirection",
    "SyncState",
    "ConcurrencyPolicy",
    "SyncService",
    "ListenerRegistry",
    "BaseRemoteListener",
    "LocalStore",
    "InMemoryStore",
    "SQLStore",
    "SnapSyncError",
    "MalformedBufferError",
    "StoreError",
    "StoreUnavailableError",
    "NotFoundError",
    "ListenerFailure",
    "SaveFanoutError",
    "SyncInProgressError",
    "RemoteBackendError",
    "ConfigurationError"
]
