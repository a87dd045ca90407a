"""Remote listener interface."""

from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from ..utils.logging import get_logger


SnapshotAccessor = Callable[[], Awaitable[bytes]]
LoadListener = Callable[[str], Awaitable[Optional[bytes]]]
SaveListener = Callable[[SnapshotAccessor, str], Awaitable[None]]


def encode_mountpoint(mountpoint: str) -> str:
    """Percent-encode a mountpoint into one path segment or filename stem.

    The mapping is one-to-one, so distinct mountpoints never share a
    remote snapshot. Every byte outside ``A-Za-z0-9_.-~`` is escaped,
    slashes included.

    Raises:
        ValueError: For an empty mountpoint, or one that encodes to ``.`` or ``..``
    """
    encoded = quote(mountpoint, safe="")
    if encoded in ("", ".", ".."):
        raise ValueError(f"Mountpoint {mountpoint!r} cannot name a snapshot")
    return encoded


def listener_name(listener: Callable) -> str:
    """Best-effort readable name for a listener callable, used in logs and failures."""
    owner = getattr(listener, "__self__", None)
    if isinstance(owner, BaseRemoteListener):
        return owner.name
    return getattr(listener, "__qualname__", None) or repr(listener)


class BaseRemoteListener:
    """Base class for remote backends.

    Subclasses define ``on_load``, ``on_save`` or both; the registry picks
    up whichever is present.

    ``on_load(mountpoint)`` returns the remote snapshot bytes, or ``None``
    when the backend holds nothing for that mountpoint.

    ``on_save(get_snapshot, mountpoint)`` receives a lazy accessor; awaiting
    it yields the encoded local snapshot.
    """

    def __init__(self, name: Optional[str] = None, **kwargs):
        self.name = name or self.__class__.__name__
        self.logger = get_logger(self.__class__.__name__)

    async def get_listener_info(self) -> Dict[str, Any]:
        """Describe this listener for status output."""
        return {
            "listener_type": self.__class__.__name__,
            "name": self.name,
            "loads": callable(getattr(self, "on_load", None)),
            "saves": callable(getattr(self, "on_save", None))
        }
