# velarixdb

Storage-engine components for a log-structured merge-tree key-value store,
written in plain Python with no third-party dependencies.

## What is inside

- `velarixdb.consts` – sizes, thresholds and default intervals, plus
  `SizeUnit`, whose `as_bytes()` converts kilobytes, megabytes and gigabytes
  to bytes.
- `velarixdb.keyspace` – `is_valid_keyspace_name()` checks keyspace names
  (1 to 255 characters of ASCII letters, digits, `_` and `-`).
- `velarixdb.block` – `Block` and `BlockEntry`, the 4 KB data blocks of an
  SSTable and their little-endian on-disk encoding (key prefix, key, value
  offset, creation time in milliseconds, tombstone flag). Adding an entry to
  a block that has no room raises `BlockIsFullError`.
- `velarixdb.compaction` – compaction settings (`CompactorConfig`,
  `TtlParams`, `IntervalParams`, `Strategy`), `Compactor` with its
  `CompactionReason` and `CompState`, `EntryMeta`, `TableInsertor` (an
  in-memory table kept in key order, with its computed size) and
  `MergedSSTable`.
- `velarixdb.config` – `Config`, the store configuration. Its `with_*`
  methods validate their argument and return an updated copy.
- `velarixdb.merge` – `SizedTierMerger`, which merges tables, keeps the newest
  version of each key and drops entries shadowed by tombstones, expired
  tombstones and (when TTL is on) expired entries.
- `velarixdb.bucket` – `Bucket` and `BucketMap`, which group SSTables of
  similar sizes on disk for size-tiered compaction.

## Installation

```
pip install .
```

## Examples

Building a block and writing it out:

```python
from datetime import datetime, timezone
from velarixdb.block import Block

block = Block()
block.set_entry(3, b"abc", 1000, datetime.now(timezone.utc), False)
with open("data.bin", "wb") as fh:
    written = block.write_to_file(fh)
assert written == block.size
```

Configuring a store:

```python
from datetime import timedelta
from velarixdb.config import Config

config = (
    Config()
    .with_false_positive_rate(0.01)
    .with_write_buffer_size(100)          # kilobytes
    .with_online_gc_interval(timedelta(hours=2))
)
```

Invalid settings raise `ValueError`, for example
`Config().with_max_buffer_write_number(0)`.

Merging two tables:

```python
from datetime import datetime, timedelta, timezone
from velarixdb.compaction import (
    CompactorConfig, EntryMeta, IntervalParams, Strategy, TableInsertor, TtlParams,
)
from velarixdb.merge import SizedTierMerger

config = CompactorConfig.create(
    False,
    TtlParams(entry_ttl=timedelta(days=365), tombstone_ttl=timedelta(days=120)),
    IntervalParams(
        background_interval=timedelta(hours=1),
        flush_listener_interval=timedelta(minutes=5),
        tombstone_compaction_interval=timedelta(days=5),
    ),
    Strategy.STCS,
    1e-4,
)
now = datetime.now(timezone.utc)
older = TableInsertor.from_entries({b"a": EntryMeta(0, now - timedelta(seconds=1), False)}, None)
newer = TableInsertor.from_entries(
    {b"a": EntryMeta(40, now, False), b"b": EntryMeta(80, now, False)}, None
)
merged = SizedTierMerger(config).merge_tables(older, newer)
assert merged.entries[b"a"].val_offset == 40
```

`SizedTierMerger.merge_many()` folds a whole bucket's tables into one
`MergedSSTable`; pass `filter_builder` to the merger to attach a filter to the
result.

`BucketMap.insert(table_size, write_table)` picks the first bucket the size
fits (or creates a new one), calls `write_table` with a fresh SSTable
directory and records the table it returns. That table must have
`directory`, `data_path`, `hotness` and `increase_hotness()`.

## What this package does not do

There is no data store here: no `put`/`get`/`delete` API, no value log,
memtable, bloom filter, SSTable file writer, index or crash recovery, and no
background compaction or garbage-collection workers. Writing an SSTable to
disk is left to the `write_table` callable handed to `BucketMap.insert()`.

## Running the tests

```
pip install .[test]
pytest
```