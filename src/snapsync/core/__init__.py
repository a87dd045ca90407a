"""Core sync logic package."""

from .sync_engine import (
    SyncEngine,
    SyncResult,
    SyncDirection,
    SyncState,
    ConcurrencyPolicy,
    SnapshotProvider
)
from .service import SyncService

__all__ = [
    "SyncEngine",
    "SyncResult",
    "SyncDirection",
    "SyncState",
    "ConcurrencyPolicy",
    "SnapshotProvider",
    "SyncService"
]
