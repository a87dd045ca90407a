"""Snapshot wire format."""

from .entries import (
    MAX_TIMESTAMP_MS,
    FileEntry,
    encode_entries,
    decode_entries,
    iter_entries,
    encoded_size
)
from ..exceptions import MalformedBufferError

__all__ = [
    "MAX_TIMESTAMP_MS",
    "FileEntry",
    "encode_entries",
    "decode_entries",
    "iter_entries",
    "encoded_size",
    "MalformedBufferError"
]
