"""Compaction settings, state and the tables that compaction produces."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Union

from velarixdb.consts import SIZE_OF_U8, SIZE_OF_U64, SIZE_OF_USIZE


class Strategy(Enum):
    """Supported compaction strategies."""

    STCS = "stcs"


class CompState(Enum):
    """Whether compaction is idle or running."""

    SLEEP = "sleep"
    ACTIVE = "active"


class CompactionReason(Enum):
    """Why a compaction was started."""

    MAX_SIZE = "max_size"
    MANUAL = "manual"


@dataclass(frozen=True)
class TtlParams:
    """Time-to-live settings for entries and tombstones."""

    entry_ttl: timedelta
    tombstone_ttl: timedelta


@dataclass(frozen=True)
class IntervalParams:
    """Intervals at which the compaction workers run."""

    background_interval: timedelta
    flush_listener_interval: timedelta
    tombstone_compaction_interval: timedelta


@dataclass(frozen=True)
class CompactorConfig:
    """Settings that drive a compaction run."""

    use_ttl: bool
    entry_ttl: timedelta
    tombstone_ttl: timedelta
    flush_listener_interval: timedelta
    background_interval: timedelta
    tombstone_compaction_interval: timedelta
    strategy: Strategy
    filter_false_positive: float

    @classmethod
    def create(
        cls,
        use_ttl: bool,
        ttl: TtlParams,
        intervals: IntervalParams,
        strategy: Strategy,
        filter_false_positive: float,
    ) -> CompactorConfig:
        """Build a config from grouped TTL and interval parameters."""
        return cls(
            use_ttl=use_ttl,
            entry_ttl=ttl.entry_ttl,
            tombstone_ttl=ttl.tombstone_ttl,
            flush_listener_interval=intervals.flush_listener_interval,
            background_interval=intervals.background_interval,
            tombstone_compaction_interval=intervals.tombstone_compaction_interval,
            strategy=strategy,
            filter_false_positive=filter_false_positive,
        )


@dataclass
class Compactor:
    """Holds compaction configuration, the reason for compacting and its state."""

    config: CompactorConfig
    reason: CompactionReason
    state: CompState = CompState.SLEEP

    @classmethod
    def create(
        cls,
        use_ttl: bool,
        ttl: TtlParams,
        intervals: IntervalParams,
        strategy: Strategy,
        reason: CompactionReason,
        filter_false_positive: float,
    ) -> Compactor:
        """Build a sleeping compactor."""
        config = CompactorConfig.create(
            use_ttl, ttl, intervals, strategy, filter_false_positive
        )
        return cls(config=config, reason=reason)

    @property
    def is_active(self) -> bool:
        return self.state is CompState.ACTIVE


@dataclass(frozen=True)
class EntryMeta:
    """What a table stores for a key: value offset, insert time, tombstone flag."""

    val_offset: int
    created_at: datetime
    is_tombstone: bool


EntriesInput = Union[Mapping[bytes, EntryMeta], Iterable[tuple[bytes, EntryMeta]]]


def _sorted_entries(entries: EntriesInput) -> dict[bytes, EntryMeta]:
    pairs = entries.items() if isinstance(entries, Mapping) else entries
    return dict(sorted((bytes(key), meta) for key, meta in pairs))


def _entries_size(entries: Mapping[bytes, EntryMeta]) -> int:
    return sum(len(key) + SIZE_OF_USIZE + SIZE_OF_U64 + SIZE_OF_U8 for key in entries)


@dataclass
class TableInsertor:
    """An in-memory table, ordered by key, ready to be written to a bucket."""

    entries: dict[bytes, EntryMeta] = field(default_factory=dict)
    size: int = 0
    filter: Any = None

    @classmethod
    def from_entries(cls, entries: EntriesInput, filter: Any) -> TableInsertor:
        """Build a table from entries, computing its size."""
        table = cls(filter=filter)
        table.set_entries(entries)
        return table

    def set_entries(self, entries: EntriesInput) -> None:
        """Replace the entries and recompute the table size."""
        self.entries = _sorted_entries(entries)
        self.size = _entries_size(self.entries)


@dataclass
class MergedSSTable:
    """A merged table waiting to be flushed to disk."""

    sstable: TableInsertor
    filter: Any
    hotness: int = 0

    def copy(self) -> MergedSSTable:
        """Return an independent copy sharing the same filter."""
        return MergedSSTable(
            sstable=TableInsertor.from_entries(self.sstable.entries, self.filter),
            filter=self.filter,
            hotness=self.hotness,
        )