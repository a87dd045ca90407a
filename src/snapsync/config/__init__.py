"""Configuration package for snapsync."""

from .settings import (
    StoreSettings,
    SyncSettings,
    LoggingSettings,
    AppSettings,
    get_settings
)

from .schema import (
    ListenerType,
    ListenerConfig,
    SyncConfig,
    DIRECTORY_LISTENER_EXAMPLE,
    HTTP_LISTENER_EXAMPLE
)

from .loader import (
    ConfigLoader,
    load_config
)
from ..exceptions import ConfigurationError

__all__ = [
    # Settings
    "StoreSettings",
    "SyncSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",

    # Listener configuration
    "ListenerType",
    "ListenerConfig",
    "SyncConfig",
    "DIRECTORY_LISTENER_EXAMPLE",
    "HTTP_LISTENER_EXAMPLE",

    "ConfigLoader",
    "ConfigurationError",
    "load_config"
]
