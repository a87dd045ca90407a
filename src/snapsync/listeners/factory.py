"""Listener factory for building remote listeners from configuration."""

from typing import Dict, List, Type

from .base import BaseRemoteListener
from .directory import DirectoryListener
from .http import HTTPListener
from ..config.schema import ListenerConfig, ListenerType


class ListenerFactory:
    """Factory for creating remote listener instances."""

    _listener_classes: Dict[ListenerType, Type[BaseRemoteListener]] = {
        ListenerType.DIRECTORY: DirectoryListener,
        ListenerType.HTTP: HTTPListener,
    }

    @classmethod
    def create_listener(cls, config: ListenerConfig) -> BaseRemoteListener:
        """Create a listener instance.

        Args:
            config: Validated listener configuration

        Returns:
            Configured listener instance

        Raises:
            ValueError: If the listener type is not supported
        """
        if config.listener_type not in cls._listener_classes:
            raise ValueError(f"Unsupported listener type: {config.listener_type}")

        listener_class = cls._listener_classes[config.listener_type]
        return listener_class(name=config.name, **config.options)

    @classmethod
    def get_supported_types(cls) -> List[ListenerType]:
        """Get list of supported listener types."""
        return list(cls._listener_classes.keys())

    @classmethod
    def register_listener_type(cls, listener_type: ListenerType, listener_class: Type[BaseRemoteListener]):
        """Register a new listener type.

        Args:
            listener_type: Type of listener
            listener_class: Listener class to register
        """
        cls._listener_classes[listener_type] = listener_class
