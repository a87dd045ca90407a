"""Local entry stores."""

from .base import LocalStore, StoreHandle, StoredEntry
from .adapter import LocalStoreAdapter
from .memory import InMemoryStore
from .database import DatabaseManager
from .sql import SQLStore
from ..exceptions import NotFoundError, StoreError, StoreUnavailableError

__all__ = [
    # Interface
    "LocalStore",
    "StoreHandle",
    "StoredEntry",
    "LocalStoreAdapter",

    # Implementations
    "InMemoryStore",
    "SQLStore",
    "DatabaseManager",

    # Exceptions
    "NotFoundError",
    "StoreError",
    "StoreUnavailableError"
]
