"""Size-tiered merging of SSTables, dropping obsolete entries and expired tombstones."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from velarixdb.compaction import (
    CompactorConfig,
    EntryMeta,
    MergedSSTable,
    TableInsertor,
)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MergeEntry:
    """An entry taking part in a merge."""

    key: bytes
    val_offset: int
    created_at: datetime
    is_tombstone: bool

    @classmethod
    def from_meta(cls, key: bytes, meta: EntryMeta) -> MergeEntry:
        return cls(bytes(key), meta.val_offset, meta.created_at, meta.is_tombstone)

    def to_meta(self) -> EntryMeta:
        return EntryMeta(self.val_offset, self.created_at, self.is_tombstone)

    def has_expired(self, ttl: timedelta, now: Optional[datetime] = None) -> bool:
        """Return whether the entry has outlived ``ttl`` at time ``now``."""
        current = _as_utc(now) if now is not None else _utc_now()
        return current > _as_utc(self.created_at) + ttl


@dataclass
class SizedTierMerger:
    """Merges tables of similar size into one, applying tombstones and TTLs.

    Tombstones seen during a merge are remembered so that older entries for
    the same key met later are dropped; call :meth:`reset` between runs.
    """

    config: CompactorConfig
    clock: Callable[[], datetime] = _utc_now
    filter_builder: Optional[Callable[[Mapping[bytes, EntryMeta]], Any]] = None
    tombstones: dict[bytes, datetime] = field(default_factory=dict)

    def reset(self) -> None:
        """Forget every tombstone recorded so far."""
        self.tombstones.clear()

    def tombstone_check(self, entry: MergeEntry, merged: list[MergeEntry]) -> None:
        """Append ``entry`` to ``merged`` unless it is deleted or expired."""
        now = self.clock()
        tomb_time = self.tombstones.get(entry.key)
        if tomb_time is not None and not _as_utc(entry.created_at) > _as_utc(tomb_time):
            return
        if entry.is_tombstone:
            self.tombstones[entry.key] = entry.created_at
            should_insert = not entry.has_expired(self.config.tombstone_ttl, now)
        elif self.config.use_ttl:
            should_insert = not entry.has_expired(self.config.entry_ttl, now)
        else:
            should_insert = True
        if should_insert:
            merged.append(entry)

    def merge_tables(self, first: TableInsertor, second: TableInsertor) -> TableInsertor:
        """Merge two tables; for equal keys the newer entry wins, ties go to ``second``."""
        left = first.entries
        right = second.entries
        merged: list[MergeEntry] = []
        for key in sorted(left.keys() | right.keys()):
            mine = left.get(key)
            theirs = right.get(key)
            if mine is not None and theirs is not None:
                chosen = (
                    mine
                    if _as_utc(mine.created_at) > _as_utc(theirs.created_at)
                    else theirs
                )
            else:
                chosen = mine if mine is not None else theirs
            self.tombstone_check(MergeEntry.from_meta(key, chosen), merged)
        return TableInsertor.from_entries(
            ((entry.key, entry.to_meta()) for entry in merged), None
        )

    def merge_many(self, tables: Iterable[TableInsertor]) -> MergedSSTable:
        """Fold a bucket's tables into one merged table.

        Hotness is summed over every table after the first.
        """
        table_list = list(tables)
        if not table_list:
            raise ValueError("no tables to merge")
        merged = table_list[0]
        hotness = 0
        for table in table_list[1:]:
            hotness += getattr(table, "hotness", 0)
            merged = self.merge_tables(merged, table)
        bloom = self.filter_builder(merged.entries) if self.filter_builder else None
        merged.filter = bloom
        return MergedSSTable(sstable=merged, filter=bloom, hotness=hotness)