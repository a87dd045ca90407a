"""Binary snapshot codec for file entries.

A snapshot is a plain concatenation of records with no header, count or
trailer. Each record is laid out as::

    [path length  u32 LE][path, UTF-8]
    [mtime millis u64 LE][mode u32 LE]
    [has contents u8]
    [contents length u32 LE][contents]   only when has contents == 1

The 64-bit timestamp is stored as two little-endian 32-bit halves, low word
first, which is byte-identical to a native little-endian u64.
"""

import struct
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from ..exceptions import MalformedBufferError


U32_MAX = 0xFFFFFFFF
U64_MAX = 0xFFFFFFFFFFFFFFFF

_U32 = struct.Struct("<I")
_U8 = struct.Struct("<B")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# 9999-12-31T23:59:59.999Z, the last instant datetime can hold
MAX_TIMESTAMP_MS = 253402300799999

BufferLike = Union[bytes, bytearray, memoryview]


def _to_utc_millis(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC, truncated to whole milliseconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


@dataclass
class FileEntry:
    """One row of a filesystem snapshot.

    Timestamps are held as aware UTC datetimes, so only instants from the
    epoch up to ``MAX_TIMESTAMP_MS`` (the end of year 9999) are supported.
    The wire field is a u64 and other writers may use larger values, such
    as JavaScript's 8.64e15 ms limit. Such records decode as
    ``MalformedBufferError`` with ``field="timestamp"``.
    """

    path: str
    timestamp: datetime
    mode: int
    contents: Optional[bytes] = None

    def __post_init__(self):
        self.timestamp = _to_utc_millis(self.timestamp)
        if isinstance(self.contents, (bytearray, memoryview)):
            self.contents = bytes(self.contents)

    @classmethod
    def from_millis(
        cls,
        path: str,
        timestamp_ms: int,
        mode: int,
        contents: Optional[bytes] = None
    ) -> "FileEntry":
        """Build an entry from a millisecond epoch timestamp."""
        return cls(
            path=path,
            timestamp=EPOCH + timedelta(milliseconds=timestamp_ms),
            mode=mode,
            contents=contents
        )

    @property
    def timestamp_ms(self) -> int:
        """Modification time as milliseconds since the Unix epoch."""
        return (self.timestamp - EPOCH) // timedelta(milliseconds=1)

    @property
    def is_directory(self) -> bool:
        """True when the entry carries no payload."""
        return self.contents is None


def _record_size(encoded_path: bytes, contents: Optional[bytes]) -> int:
    size = 4 + len(encoded_path) + 8 + 4 + 1
    if contents is not None:
        size += 4 + len(contents)
    return size


def _prepare(entry: FileEntry) -> bytes:
    """Validate an entry against the wire limits and return its encoded path."""
    if not entry.path:
        raise ValueError("Entry path must not be empty")

    encoded_path = entry.path.encode("utf-8")
    if len(encoded_path) > U32_MAX:
        raise ValueError(f"Path too long to encode: {len(encoded_path)} bytes")

    if not 0 <= entry.mode <= U32_MAX:
        raise ValueError(f"Mode out of u32 range: {entry.mode}")

    if not 0 <= entry.timestamp_ms <= U64_MAX:
        raise ValueError(f"Timestamp out of range for {entry.path}: {entry.timestamp_ms}")

    if entry.contents is not None and len(entry.contents) > U32_MAX:
        raise ValueError(f"Contents too large to encode for {entry.path}")

    return encoded_path


def encoded_size(entries: Iterable[FileEntry]) -> int:
    """Return the number of bytes ``encode_entries`` will produce."""
    return sum(_record_size(_prepare(entry), entry.contents) for entry in entries)


def encode_entries(entries: Sequence[FileEntry]) -> bytes:
    """Serialize entries into a snapshot buffer.

    The buffer is sized up front and filled in a second pass.

    Raises:
        ValueError: If an entry exceeds the wire format limits
    """
    prepared = []
    total_size = 0
    for entry in entries:
        encoded_path = _prepare(entry)
        total_size += _record_size(encoded_path, entry.contents)
        prepared.append((encoded_path, entry))

    buffer = bytearray(total_size)
    offset = 0
    for encoded_path, entry in prepared:
        _U32.pack_into(buffer, offset, len(encoded_path))
        offset += 4
        buffer[offset:offset + len(encoded_path)] = encoded_path
        offset += len(encoded_path)

        millis = entry.timestamp_ms
        _U32.pack_into(buffer, offset, millis & U32_MAX)
        _U32.pack_into(buffer, offset + 4, millis >> 32)
        offset += 8

        _U32.pack_into(buffer, offset, entry.mode)
        offset += 4

        if entry.contents is None:
            _U8.pack_into(buffer, offset, 0)
            offset += 1
        else:
            _U8.pack_into(buffer, offset, 1)
            offset += 1
            _U32.pack_into(buffer, offset, len(entry.contents))
            offset += 4
            buffer[offset:offset + len(entry.contents)] = entry.contents
            offset += len(entry.contents)

    return bytes(buffer)


class _Reader:
    """Bounds-checked cursor over a snapshot buffer."""

    def __init__(self, buffer: BufferLike):
        self.view = memoryview(buffer).cast("B")
        self.length = len(self.view)
        self.offset = 0

    @property
    def exhausted(self) -> bool:
        return self.offset >= self.length

    def take(self, size: int, field: str) -> memoryview:
        if size > self.length - self.offset:
            raise MalformedBufferError(
                f"Truncated buffer: need {size} bytes, {self.length - self.offset} left",
                offset=self.offset,
                field=field
            )
        chunk = self.view[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def u8(self, field: str) -> int:
        return _U8.unpack(self.take(1, field))[0]

    def u32(self, field: str) -> int:
        return _U32.unpack(self.take(4, field))[0]

    def u64(self, field: str) -> int:
        low = self.u32(field)
        high = self.u32(field)
        return (high << 32) | low


def iter_entries(buffer: BufferLike) -> Iterator[FileEntry]:
    """Lazily decode entries from a snapshot buffer.

    Raises:
        MalformedBufferError: If a field would read past the end of the buffer
            or holds an invalid value
    """
    reader = _Reader(buffer)
    while not reader.exhausted:
        record_offset = reader.offset

        path_length = reader.u32("path_length")
        raw_path = reader.take(path_length, "path")
        if not path_length:
            raise MalformedBufferError("Empty path", offset=record_offset, field="path")
        try:
            path = bytes(raw_path).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedBufferError(
                f"Path is not valid UTF-8: {e.reason}",
                offset=record_offset,
                field="path"
            ) from e

        timestamp_ms = reader.u64("timestamp")
        mode = reader.u32("mode")

        flag_offset = reader.offset
        has_contents = reader.u8("has_contents")
        if has_contents not in (0, 1):
            raise MalformedBufferError(
                f"Invalid has_contents flag {has_contents}",
                offset=flag_offset,
                field="has_contents"
            )

        contents = None
        if has_contents:
            contents_length = reader.u32("contents_length")
            contents = bytes(reader.take(contents_length, "contents"))

        try:
            entry = FileEntry.from_millis(path, timestamp_ms, mode, contents)
        except OverflowError as e:
            raise MalformedBufferError(
                f"Timestamp {timestamp_ms} is outside the representable range",
                offset=record_offset,
                field="timestamp"
            ) from e
        yield entry


def decode_entries(buffer: BufferLike) -> List[FileEntry]:
    """Decode a snapshot buffer into an ordered list of entries."""
    return list(iter_entries(buffer))
