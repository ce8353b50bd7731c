"""Buckets that group SSTables of similar size for size-tiered compaction."""

from __future__ import annotations

import logging
import shutil
import time
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, TypeVar, Union

from velarixdb.consts import (
    BUCKET_DIRECTORY_PREFIX,
    BUCKET_HIGH,
    BUCKET_LOW,
    MAX_THRESHOLD,
    MIN_SSTABLE_SIZE,
    MIN_THRESHOLD,
)

logger = logging.getLogger(__name__)

SST_PREFIX = "sstable"

PathLike = Union[str, Path]


class StoredTable(Protocol):
    """What a bucket needs to know about an SSTable stored on disk."""

    directory: Path
    data_path: Path
    hotness: int

    def increase_hotness(self) -> None: ...


T = TypeVar("T", bound=StoredTable)

SSTablesToRemove = list[tuple[uuid.UUID, list[StoredTable]]]


def average_size(tables: Sequence[StoredTable]) -> int:
    """Average size in bytes of the tables' data files; 0 when there are none."""
    if not tables:
        return 0
    total = sum(Path(table.data_path).stat().st_size for table in tables)
    return total // len(tables)


@dataclass
class Bucket:
    """Groups SSTables of approximately equal size."""

    id: uuid.UUID
    directory: Path
    size: int = 0
    average_size: int = 0
    sstables: list[StoredTable] = field(default_factory=list)

    @classmethod
    def create(cls, directory: PathLike) -> Bucket:
        """Create an empty bucket with a fresh id and its own directory."""
        bucket_id = uuid.uuid4()
        bucket_dir = Path(directory) / f"{BUCKET_DIRECTORY_PREFIX}{bucket_id}"
        bucket_dir.mkdir(parents=True, exist_ok=True)
        return cls(id=bucket_id, directory=bucket_dir)

    @classmethod
    def from_tables(
        cls,
        directory: PathLike,
        bucket_id: uuid.UUID,
        tables: Iterable[StoredTable],
        avg_size: int,
    ) -> Bucket:
        """Build a bucket from existing tables; an average of 0 is computed."""
        table_list = list(tables)
        if avg_size == 0:
            avg_size = average_size(table_list)
        return cls(
            id=bucket_id,
            directory=Path(directory),
            size=len(table_list) * avg_size,
            average_size=avg_size,
            sstables=table_list,
        )

    def fits(self, table_size: int) -> bool:
        """Return whether a table of ``table_size`` bytes belongs in this bucket."""
        within_range = (
            self.average_size * BUCKET_LOW < table_size
            and table_size < int(self.average_size * BUCKET_HIGH)
        )
        both_small = (
            table_size < MIN_SSTABLE_SIZE and self.average_size < MIN_SSTABLE_SIZE
        )
        return within_range or both_small

    def extract_sstables(self) -> tuple[list[StoredTable], int]:
        """Tables due for compaction and their average size.

        Buckets below the minimum threshold yield nothing; at most the
        maximum threshold of tables is returned.
        """
        if len(self.sstables) < MIN_THRESHOLD:
            return [], 0
        extracted = list(self.sstables[:MAX_THRESHOLD])
        return extracted, average_size(extracted)

    def exceeds_threshold(self) -> bool:
        """Return whether the bucket holds enough tables to be compacted."""
        return len(self.sstables) >= MIN_THRESHOLD


def _sstable_dir(bucket_dir: Path) -> Path:
    millis = time.time_ns() // 1_000_000
    candidate = bucket_dir / f"{SST_PREFIX}_{millis}"
    while candidate.exists():
        millis += 1
        candidate = bucket_dir / f"{SST_PREFIX}_{millis}"
    return candidate


def _remove_tree(path: Path) -> bool:
    try:
        shutil.rmtree(path)
    except OSError as err:
        logger.error("could not delete directory %s: %s", path, err)
        return False
    return True


@dataclass
class BucketMap:
    """All buckets under one directory, in insertion order."""

    directory: Path
    buckets: dict[uuid.UUID, Bucket] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def insert(self, table_size: int, write_table: Callable[[Path], T]) -> T:
        """Write a table into the first bucket it fits, or into a new bucket.

        ``write_table`` receives the directory for the new SSTable, writes it
        to disk and returns the stored table.
        """
        target = next(
            (bucket for bucket in self.buckets.values() if bucket.fits(table_size)),
            None,
        )
        is_new = target is None
        bucket = Bucket.create(self.directory) if target is None else target

        table = write_table(_sstable_dir(bucket.directory))
        bucket.sstables.append(table)

        if is_new:
            bucket.average_size = Path(table.data_path).stat().st_size
        else:
            for sstable in bucket.sstables:
                sstable.increase_hotness()
            bucket.average_size = average_size(bucket.sstables)
            bucket.size = bucket.average_size * len(bucket.sstables)
        self.buckets[bucket.id] = bucket
        return table

    def extract_imbalanced_buckets(self) -> tuple[list[Bucket], SSTablesToRemove]:
        """Buckets due for compaction, and the tables to remove from each."""
        imbalanced: list[Bucket] = []
        to_remove: SSTablesToRemove = []
        for bucket_id, bucket in self.buckets.items():
            tables, avg = bucket.extract_sstables()
            if tables:
                to_remove.append((bucket_id, list(tables)))
                imbalanced.append(
                    Bucket(
                        id=bucket_id,
                        directory=bucket.directory,
                        size=avg * len(tables),
                        average_size=avg,
                        sstables=tables,
                    )
                )
        return imbalanced, to_remove

    def is_balanced(self) -> bool:
        """Return whether no bucket has reached the compaction threshold."""
        return not any(bucket.exceeds_threshold() for bucket in self.buckets.values())

    def delete_sstables(self, to_remove: SSTablesToRemove) -> bool:
        """Delete merged tables and empty buckets; call only after compaction.

        Returns whether every table directory was deleted.
        """
        all_deleted = True
        emptied: list[uuid.UUID] = []
        for bucket_id, tables in to_remove:
            bucket = self.buckets.get(bucket_id)
            if bucket is not None:
                remaining = bucket.sstables[len(tables):]
                if remaining:
                    new_average = average_size(remaining)
                    self.buckets[bucket_id] = Bucket(
                        id=bucket.id,
                        directory=bucket.directory,
                        size=new_average * len(remaining),
                        average_size=new_average,
                        sstables=list(remaining),
                    )
                else:
                    emptied.append(bucket_id)
                    _remove_tree(bucket.directory)

            for table in tables:
                table_dir = Path(table.directory)
                if table_dir.exists() and not _remove_tree(table_dir):
                    all_deleted = False

        for bucket_id in emptied:
            self.buckets.pop(bucket_id, None)
        return all_deleted

    def clear_all(self) -> None:
        """Remove every bucket and its tables from disk."""
        for bucket in self.buckets.values():
            if bucket.directory.exists():
                _remove_tree(bucket.directory)
        self.buckets = {}