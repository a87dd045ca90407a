"""Exception hierarchy shared by the codec, stores, listeners and engine."""

from typing import List, Optional


class SnapSyncError(Exception):
    """Base exception for snapsync errors."""
    pass


class MalformedBufferError(SnapSyncError, ValueError):
    """Raised when a snapshot buffer is structurally invalid."""

    def __init__(self, message: str, offset: Optional[int] = None, field: Optional[str] = None):
        if offset is not None:
            message = f"{message} (offset={offset}, field={field})"
        super().__init__(message)
        self.offset = offset
        self.field = field


class StoreError(SnapSyncError):
    """Base exception for local store failures."""
    pass


class StoreUnavailableError(StoreError):
    """Raised when the store backend cannot be opened or transacted."""
    pass


class NotFoundError(StoreError, KeyError):
    """Raised when reading an entry that is not present in the store."""

    def __init__(self, mountpoint: str, path: str):
        super().__init__(f"Entry not found: {mountpoint}:{path}")
        self.mountpoint = mountpoint
        self.path = path

    def __str__(self) -> str:
        return self.args[0]


class RemoteBackendError(SnapSyncError):
    """Raised by a listener when its remote backend misbehaves."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ListenerFailure(SnapSyncError):
    """Wraps any exception raised by a load or save listener."""

    def __init__(self, listener: str, phase: str, original: BaseException):
        super().__init__(f"{phase} listener {listener} failed: {original!r}")
        self.listener = listener
        self.phase = phase
        self.original = original


class SaveFanoutError(SnapSyncError):
    """Aggregate of save listener failures from one push."""

    def __init__(self, failures: List[ListenerFailure]):
        names = ", ".join(failure.listener for failure in failures)
        super().__init__(f"{len(failures)} save listener(s) failed: {names}")
        self.failures = failures


class SyncInProgressError(SnapSyncError):
    """Raised when a sync is rejected because one is already running."""

    def __init__(self, mountpoint: str):
        super().__init__(f"Sync already in progress for mountpoint {mountpoint!r}")
        self.mountpoint = mountpoint


class ConfigurationError(SnapSyncError):
    """Raised when configuration loading fails."""
    pass
