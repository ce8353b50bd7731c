"""Storage engine constants and size units."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum

KB = 1024


class SizeUnit(Enum):
    """Unit in which a size is expressed."""

    BYTES = "bytes"
    KILOBYTES = "kilobytes"
    MEGABYTES = "megabytes"
    GIGABYTES = "gigabytes"

    def as_bytes(self, value: int) -> int:
        """Convert ``value`` expressed in this unit to bytes."""
        multiplier = {
            SizeUnit.BYTES: 1,
            SizeUnit.KILOBYTES: KB,
            SizeUnit.MEGABYTES: KB * KB,
            SizeUnit.GIGABYTES: KB * KB * KB,
        }[self]
        return value * multiplier


MAX_KEY_SIZE = 65536
MAX_KEY_SPACE_SIZE = 255
MAX_VALUE_SIZE = 1 << 32

DEFAULT_FLUSH_SIGNAL_CHANNEL_SIZE = 1
DEFAULT_MAX_WRITE_BUFFER_NUMBER = 2
DEFAULT_FALSE_POSITIVE_RATE = 1e-4

VALUE_LOG_DIRECTORY_NAME = "v_log"
BUCKETS_DIRECTORY_NAME = "buckets"
BUCKET_DIRECTORY_PREFIX = "bucket"
VLOG_FILE_NAME = "val_log.bin"
FILTER_FILE_NAME = "filter"
DATA_FILE_NAME = "data"
META_FILE_NAME = "meta"
SUMMARY_FILE_NAME = "summary"
INDEX_FILE_NAME = "index"
DEFAULT_DB_NAME = "velarix"
META_DIRECTORY_NAME = "meta"
TOMB_STONE_MARKER = "*"

GC_CHUNK_SIZE = SizeUnit.KILOBYTES.as_bytes(1)
WRITE_BUFFER_SIZE = SizeUnit.KILOBYTES.as_bytes(50)

DEFAULT_TOMBSTONE_COMPACTION_INTERVAL = timedelta(days=5)
DEFAULT_COMPACTION_INTERVAL = timedelta(hours=1)
DEFAULT_COMPACTION_FLUSH_LISTENER_INTERVAL = timedelta(minutes=5)
DEFAULT_ONLINE_GC_INTERVAL = timedelta(hours=10)
# Entries with TTL enabled are removed after one year.
ENTRY_TTL = timedelta(days=365)
# Tombstones live long enough that obsolete data cannot resurrect.
DEFAULT_TOMBSTONE_TTL = timedelta(days=120)
DEFAULT_ENABLE_TTL = False

BUCKET_LOW = 0.5
BUCKET_HIGH = 1.5
MIN_SSTABLE_SIZE = SizeUnit.KILOBYTES.as_bytes(4)
MIN_THRESHOLD = 4
MAX_THRESHOLD = 32

DEFAULT_ALLOW_PREFETCH = True
DEFAULT_PREFETCH_SIZE = 10

EOF = "EOF"
HEAD_ENTRY_KEY = b"head"
HEAD_KEY_SIZE = len(HEAD_ENTRY_KEY)
TAIL_ENTRY_KEY = b"tail"
HEAD_ENTRY_VALUE = b"head"
TAIL_ENTRY_VALUE = b"tail"

SIZE_OF_USIZE = 8
SIZE_OF_U32 = 4
SIZE_OF_U64 = 8
SIZE_OF_U8 = 1

FLUSH_SIGNAL = 1
BLOCK_SIZE = 4 * KB
VLOG_START_OFFSET = 0