"""Data blocks that hold SSTable entries.

Each entry is laid out as: key prefix (u32 LE), key bytes, value offset
(u32 LE), creation time in milliseconds (i64 LE), tombstone flag (u8).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import BinaryIO

from velarixdb.consts import BLOCK_SIZE, SIZE_OF_U8, SIZE_OF_U32, SIZE_OF_U64

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_FIXED_ENTRY_SIZE = SIZE_OF_U32 + SIZE_OF_U32 + SIZE_OF_U64 + SIZE_OF_U8


class BlockIsFullError(Exception):
    """Raised when an entry does not fit into a block."""


def _timestamp_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def _entry_size(key: bytes) -> int:
    return len(key) + _FIXED_ENTRY_SIZE


@dataclass
class BlockEntry:
    """A single entry stored in a block."""

    key_prefix: int
    key: bytes
    value_offset: int
    creation_date: datetime
    is_tombstone: bool

    def encoded_size(self) -> int:
        """Number of bytes this entry takes once serialized."""
        return _entry_size(self.key)

    def serialize(self) -> bytes:
        """Encode the entry in its on-disk layout."""
        try:
            encoded = b"".join(
                (
                    struct.pack("<I", self.key_prefix),
                    bytes(self.key),
                    struct.pack("<I", self.value_offset),
                    struct.pack("<q", _timestamp_millis(self.creation_date)),
                    struct.pack("<B", int(bool(self.is_tombstone))),
                )
            )
        except struct.error as err:
            raise ValueError(f"invalid entry for serialization: {err}") from err
        if len(encoded) != self.encoded_size():
            raise ValueError("invalid entry for serialization")
        return encoded


@dataclass
class Block:
    """An SSTable data block with a fixed byte budget."""

    entries: list[BlockEntry] = field(default_factory=list)
    size: int = 0

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def is_full(self, entry_size: int) -> bool:
        """Return whether adding ``entry_size`` bytes would exceed the block size."""
        return self.size + entry_size > BLOCK_SIZE

    def set_entry(
        self,
        key_prefix: int,
        key: bytes,
        value_offset: int,
        creation_date: datetime,
        is_tombstone: bool,
    ) -> None:
        """Append an entry, raising BlockIsFullError when it does not fit."""
        key = bytes(key)
        entry_size = _entry_size(key)
        if self.is_full(entry_size):
            raise BlockIsFullError("block is full")
        self.entries.append(
            BlockEntry(
                key_prefix=key_prefix,
                key=key,
                value_offset=value_offset,
                creation_date=creation_date,
                is_tombstone=is_tombstone,
            )
        )
        self.size += entry_size

    def write_to_file(self, file: BinaryIO) -> int:
        """Write all entries to a binary file and return the bytes written."""
        written = 0
        for entry in self.entries:
            encoded = entry.serialize()
            file.write(encoded)
            written += len(encoded)
        return written

    def last_entry(self) -> BlockEntry:
        """Return the most recently added entry."""
        if not self.entries:
            raise IndexError("block has no entries")
        return self.entries[-1]

    def get_entry(self, key: bytes) -> BlockEntry | None:
        """Return the first entry with ``key``, or None."""
        key = bytes(key)
        return next((entry for entry in self.entries if entry.key == key), None)