"""Shared fixtures for snapsync tests."""

from datetime import datetime, timezone
from typing import List

import pytest

from snapsync.codec import FileEntry
from snapsync.store import InMemoryStore


def make_entries() -> List[FileEntry]:
    """A small snapshot covering files, an empty file, a directory and a non-ASCII path."""
    return [
        FileEntry(
            path="/data/save/slot1.sav",
            timestamp=datetime(2024, 1, 2, 15, 30, 0, 125000, tzinfo=timezone.utc),
            mode=0o100644,
            contents=b"\x00\x01\x02level=7\xff"
        ),
        FileEntry(
            path="/data/save",
            timestamp=datetime(2024, 1, 2, 15, 0, 0, tzinfo=timezone.utc),
            mode=0o40755,
            contents=None
        ),
        FileEntry(
            path="/data/save/empty.cfg",
            timestamp=datetime(2023, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc),
            mode=0o100600,
            contents=b""
        ),
        FileEntry(
            path="/data/sauvegarde/é✓.txt",
            timestamp=datetime(1970, 1, 1, tzinfo=timezone.utc),
            mode=0xFFFFFFFF,
            contents=b"unicode path"
        ),
    ]


@pytest.fixture
def sample_entries() -> List[FileEntry]:
    return make_entries()


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()
