"""Ordered registry of load and save listeners."""

from typing import List, Optional, Tuple

from .base import BaseRemoteListener, LoadListener, SaveListener


class ListenerRegistry:
    """Two append-only, ordered listener collections.

    Load listener order decides which remote wins a pull; save listener
    order is only the order in which pushes are started.
    """

    def __init__(self):
        self._load_listeners: List[LoadListener] = []
        self._save_listeners: List[SaveListener] = []

    def register(
        self,
        on_load: Optional[LoadListener] = None,
        on_save: Optional[SaveListener] = None
    ) -> None:
        """Append a load listener, a save listener, or both.

        Raises:
            ValueError: If neither callback is given
        """
        if on_load is None and on_save is None:
            raise ValueError("register() needs on_load, on_save or both")

        if on_load is not None:
            self._load_listeners.append(on_load)
        if on_save is not None:
            self._save_listeners.append(on_save)

    def register_listener(self, listener: BaseRemoteListener) -> None:
        """Register whichever of ``on_load`` / ``on_save`` an object defines."""
        self.register(
            on_load=getattr(listener, "on_load", None),
            on_save=getattr(listener, "on_save", None)
        )

    @property
    def load_listeners(self) -> Tuple[LoadListener, ...]:
        return tuple(self._load_listeners)

    @property
    def save_listeners(self) -> Tuple[SaveListener, ...]:
        return tuple(self._save_listeners)

    def __len__(self) -> int:
        return len(self._load_listeners) + len(self._save_listeners)
