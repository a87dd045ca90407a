"""Remote listeners and their registry."""

from .base import (
    BaseRemoteListener,
    LoadListener,
    SaveListener,
    SnapshotAccessor,
    listener_name
)
from .registry import ListenerRegistry
from .directory import DirectoryListener
from .http import HTTPListener
from .factory import ListenerFactory

__all__ = [
    # Base classes and types
    "BaseRemoteListener",
    "LoadListener",
    "SaveListener",
    "SnapshotAccessor",
    "listener_name",
    "ListenerRegistry",

    # Listener implementations
    "DirectoryListener",
    "HTTPListener",

    # Factory
    "ListenerFactory"
]
