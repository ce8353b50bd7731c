"""Data store configuration with validated builder-style setters."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from datetime import timedelta

from velarixdb.compaction import Strategy
from velarixdb.consts import (
    DEFAULT_ALLOW_PREFETCH,
    DEFAULT_COMPACTION_FLUSH_LISTENER_INTERVAL,
    DEFAULT_COMPACTION_INTERVAL,
    DEFAULT_ENABLE_TTL,
    DEFAULT_FALSE_POSITIVE_RATE,
    DEFAULT_MAX_WRITE_BUFFER_NUMBER,
    DEFAULT_ONLINE_GC_INTERVAL,
    DEFAULT_PREFETCH_SIZE,
    DEFAULT_TOMBSTONE_COMPACTION_INTERVAL,
    DEFAULT_TOMBSTONE_TTL,
    ENTRY_TTL,
    GC_CHUNK_SIZE,
    WRITE_BUFFER_SIZE,
    SizeUnit,
)

_MIN_ENTRY_TTL = timedelta(days=3)
_MIN_TOMBSTONE_TTL = timedelta(days=10)
_MIN_FLUSH_LISTENER_INTERVAL = timedelta(minutes=2)
_MIN_BACKGROUND_COMPACTION_INTERVAL = timedelta(minutes=5)
_MIN_TOMBSTONE_COMPACTION_INTERVAL = timedelta(days=10)
_MIN_ONLINE_GC_INTERVAL = timedelta(hours=1)
_MIN_BUFFER_KILOBYTES = 50


def default_open_files_limit() -> int:
    """Maximum number of files opened at once on the current platform."""
    if sys.platform.startswith("win"):
        return 400
    if sys.platform == "darwin":
        return 150
    return 900


@dataclass(frozen=True)
class Config:
    """Configuration for a data store.

    The ``with_*`` methods validate their argument and return an updated copy.
    """

    false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE
    allow_prefetch: bool = DEFAULT_ALLOW_PREFETCH
    prefetch_size: int = DEFAULT_PREFETCH_SIZE
    write_buffer_size: int = WRITE_BUFFER_SIZE
    max_buffer_write_number: int = DEFAULT_MAX_WRITE_BUFFER_NUMBER
    enable_ttl: bool = DEFAULT_ENABLE_TTL
    entry_ttl: timedelta = ENTRY_TTL
    tombstone_ttl: timedelta = DEFAULT_TOMBSTONE_TTL
    compactor_flush_listener_interval: timedelta = DEFAULT_COMPACTION_FLUSH_LISTENER_INTERVAL
    background_compaction_interval: timedelta = DEFAULT_COMPACTION_INTERVAL
    tombstone_compaction_interval: timedelta = DEFAULT_TOMBSTONE_COMPACTION_INTERVAL
    compaction_strategy: Strategy = Strategy.STCS
    online_gc_interval: timedelta = DEFAULT_ONLINE_GC_INTERVAL
    gc_chunk_size: int = GC_CHUNK_SIZE
    open_files_limit: int = field(default_factory=default_open_files_limit)

    def with_false_positive_rate(self, rate: float) -> Config:
        """Set the bloom filter false positive rate; it must be above 0."""
        if not rate > 0.0:
            raise ValueError("false_positive_rate must be greater than 0.0")
        return replace(self, false_positive_rate=rate)

    def with_allow_prefetch(self, allow: bool) -> Config:
        """Enable or disable prefetching for range queries."""
        return replace(self, allow_prefetch=allow)

    def with_prefetch_size(self, size: int) -> Config:
        """Set the prefetch size; prefetching must be allowed and size above 0."""
        if not (self.allow_prefetch and size > 0):
            raise ValueError(
                "prefetch_size should be greater than 0 if allow_prefetch is set to true"
            )
        return replace(self, prefetch_size=size)

    def with_write_buffer_size(self, size: int) -> Config:
        """Set the memtable size in kilobytes; at least 50."""
        if size < _MIN_BUFFER_KILOBYTES:
            raise ValueError("write_buffer_size should not be less than 50 Kilobytes")
        return replace(self, write_buffer_size=SizeUnit.KILOBYTES.as_bytes(size))

    def with_max_buffer_write_number(self, number: int) -> Config:
        """Set how many memtables may exist; must be above 0."""
        if number <= 0:
            raise ValueError("max_buffer_write_number should be greater zero")
        return replace(self, max_buffer_write_number=number)

    def with_enable_ttl(self, enable: bool) -> Config:
        """Enable or disable entry time-to-live."""
        return replace(self, enable_ttl=enable)

    def with_entry_ttl(self, ttl: timedelta) -> Config:
        """Set the entry TTL; TTL must be enabled and the value at least 3 days."""
        if not (self.enable_ttl and ttl >= _MIN_ENTRY_TTL):
            raise ValueError(
                "entry_ttl_millis cannot be less than 3 days if enable_ttl is set to true"
            )
        return replace(self, entry_ttl=ttl)

    def with_tombstone_ttl(self, ttl: timedelta) -> Config:
        """Set the tombstone TTL; at least 10 days."""
        if ttl < _MIN_TOMBSTONE_TTL:
            raise ValueError(
                "tombstone_ttl should not be less than 10 days to prevent "
                "resurrecting entries marked deleted"
            )
        return replace(self, tombstone_ttl=ttl)

    def with_compactor_flush_listener_interval(self, interval: timedelta) -> Config:
        """Set the flush listener interval; at least 2 minutes."""
        if interval < _MIN_FLUSH_LISTENER_INTERVAL:
            raise ValueError(
                "compactor_flush_listener_interval should not be less than 2 minutes, "
                "to prevent overloading the system"
            )
        return replace(self, compactor_flush_listener_interval=interval)

    def with_background_compaction_interval(self, interval: timedelta) -> Config:
        """Set the background compaction interval; at least 5 minutes."""
        if interval < _MIN_BACKGROUND_COMPACTION_INTERVAL:
            raise ValueError(
                "background_compaction_interval should not be less than 5 minutes "
                "to prevent overloads"
            )
        return replace(self, background_compaction_interval=interval)

    def with_tombstone_compaction_interval(self, interval: timedelta) -> Config:
        """Set the tombstone compaction interval; at least 10 days."""
        if interval < _MIN_TOMBSTONE_COMPACTION_INTERVAL:
            raise ValueError(
                "tombstone_compaction_interval should not be less than 10 days"
            )
        return replace(self, tombstone_compaction_interval=interval)

    def with_compaction_strategy(self, strategy: Strategy) -> Config:
        """Set the compaction strategy."""
        return replace(self, compaction_strategy=strategy)

    def with_online_gc_interval(self, interval: timedelta) -> Config:
        """Set the online garbage collection interval; at least 1 hour."""
        if interval < _MIN_ONLINE_GC_INTERVAL:
            raise ValueError("online_gc_interval should not be less than 1 hour")
        return replace(self, online_gc_interval=interval)

    def with_gc_chunk_size(self, size: int) -> Config:
        """Set the value log chunk scanned per GC run, in kilobytes; at least 50."""
        if size < _MIN_BUFFER_KILOBYTES:
            raise ValueError("gc_chunk_size should not be less than 50 Kilobyte")
        return replace(self, gc_chunk_size=SizeUnit.KILOBYTES.as_bytes(size))