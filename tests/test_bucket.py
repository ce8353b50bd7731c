import uuid
from dataclasses import dataclass
from pathlib import Path

import pytest

from velarixdb.bucket import Bucket, BucketMap, average_size
from velarixdb.consts import BUCKET_DIRECTORY_PREFIX, MAX_THRESHOLD, MIN_THRESHOLD


@dataclass
class FakeTable:
    directory: Path
    data_path: Path
    hotness: int = 0

    def increase_hotness(self) -> None:
        self.hotness += 1


def make_table(directory: Path, size: int) -> FakeTable:
    directory.mkdir(parents=True, exist_ok=True)
    data = directory / "data"
    data.write_bytes(b"x" * size)
    return FakeTable(directory=directory, data_path=data)


def writer(size: int):
    return lambda sst_dir: make_table(sst_dir, size)


def test_average_size_empty():
    assert average_size([]) == 0


def test_average_size_of_files(tmp_path):
    tables = [make_table(tmp_path / "a", 100), make_table(tmp_path / "b", 300)]
    assert average_size(tables) == 200


def test_bucket_create_makes_directory(tmp_path):
    bucket = Bucket.create(tmp_path)
    assert bucket.directory.is_dir()
    assert bucket.directory.name == f"{BUCKET_DIRECTORY_PREFIX}{bucket.id}"
    assert bucket.sstables == []
    assert bucket.average_size == 0


def test_from_tables_computes_average(tmp_path):
    tables = [make_table(tmp_path / "a", 100), make_table(tmp_path / "b", 300)]
    bucket_id = uuid.uuid4()
    bucket = Bucket.from_tables(tmp_path, bucket_id, tables, 0)
    assert bucket.id == bucket_id
    assert bucket.average_size == 200
    assert bucket.size == 400


def test_from_tables_keeps_given_average(tmp_path):
    tables = [make_table(tmp_path / "a", 100)]
    bucket = Bucket.from_tables(tmp_path, uuid.uuid4(), tables, 50)
    assert bucket.average_size == 50
    assert bucket.size == 50


def test_fits(tmp_path):
    small = Bucket(id=uuid.uuid4(), directory=tmp_path)
    assert small.fits(100)
    big = Bucket(id=uuid.uuid4(), directory=tmp_path, average_size=10000)
    assert big.fits(10000)
    assert not big.fits(4000)
    assert not big.fits(20000)


def test_extract_sstables_below_threshold(tmp_path):
    tables = [make_table(tmp_path / str(i), 10) for i in range(MIN_THRESHOLD - 1)]
    bucket = Bucket.from_tables(tmp_path, uuid.uuid4(), tables, 0)
    assert bucket.extract_sstables() == ([], 0)
    assert not bucket.exceeds_threshold()


def test_extract_sstables_returns_all_when_few(tmp_path):
    tables = [make_table(tmp_path / str(i), 10) for i in range(MIN_THRESHOLD + 1)]
    bucket = Bucket.from_tables(tmp_path, uuid.uuid4(), tables, 0)
    extracted, avg = bucket.extract_sstables()
    assert extracted == tables
    assert avg == 10
    assert bucket.exceeds_threshold()


def test_extract_sstables_caps_at_max(tmp_path):
    tables = [make_table(tmp_path / str(i), 10) for i in range(MAX_THRESHOLD + 8)]
    bucket = Bucket.from_tables(tmp_path, uuid.uuid4(), tables, 0)
    extracted, _ = bucket.extract_sstables()
    assert extracted == tables[:MAX_THRESHOLD]


def test_insert_creates_and_reuses_bucket(tmp_path):
    bucket_map = BucketMap(tmp_path / "buckets")
    first = bucket_map.insert(100, writer(100))
    assert len(bucket_map.buckets) == 1
    bucket = next(iter(bucket_map.buckets.values()))
    assert bucket.average_size == 100
    assert first.directory.parent == bucket.directory

    second = bucket_map.insert(100, writer(100))
    assert len(bucket_map.buckets) == 1
    assert bucket.sstables == [first, second]
    assert first.hotness == 1
    assert second.hotness == 1
    assert bucket.size == bucket.average_size * 2
    assert first.directory != second.directory


def test_insert_different_size_makes_new_bucket(tmp_path):
    bucket_map = BucketMap(tmp_path / "buckets")
    bucket_map.insert(10000, writer(10000))
    bucket_map.insert(100000, writer(100000))
    assert len(bucket_map.buckets) == 2


def test_balance_and_extraction(tmp_path):
    bucket_map = BucketMap(tmp_path / "buckets")
    for _ in range(MIN_THRESHOLD - 1):
        bucket_map.insert(50, writer(50))
    assert bucket_map.is_balanced()
    assert bucket_map.extract_imbalanced_buckets() == ([], [])

    bucket_map.insert(50, writer(50))
    assert not bucket_map.is_balanced()
    imbalanced, to_remove = bucket_map.extract_imbalanced_buckets()
    assert len(imbalanced) == 1
    assert imbalanced[0].average_size == 50
    assert imbalanced[0].size == 50 * MIN_THRESHOLD
    bucket_id, tables = to_remove[0]
    assert bucket_id == imbalanced[0].id
    assert len(tables) == MIN_THRESHOLD


def test_delete_sstables_removes_empty_bucket(tmp_path):
    bucket_map = BucketMap(tmp_path / "buckets")
    for _ in range(MIN_THRESHOLD):
        bucket_map.insert(50, writer(50))
    bucket = next(iter(bucket_map.buckets.values()))
    _, to_remove = bucket_map.extract_imbalanced_buckets()
    assert bucket_map.delete_sstables(to_remove) is True
    assert bucket_map.buckets == {}
    assert not bucket.directory.exists()


def test_delete_sstables_keeps_remaining(tmp_path):
    bucket_map = BucketMap(tmp_path / "buckets")
    tables = [bucket_map.insert(50, writer(50)) for _ in range(MIN_THRESHOLD + 1)]
    bucket_id = next(iter(bucket_map.buckets))
    to_remove = [(bucket_id, tables[:MIN_THRESHOLD])]
    assert bucket_map.delete_sstables(to_remove) is True
    bucket = bucket_map.buckets[bucket_id]
    assert bucket.sstables == [tables[-1]]
    assert bucket.average_size == 50
    assert all(not table.directory.exists() for table in tables[:MIN_THRESHOLD])
    assert tables[-1].directory.exists()


def test_clear_all(tmp_path):
    bucket_map = BucketMap(tmp_path / "buckets")
    bucket_map.insert(10000, writer(10000))
    bucket_map.insert(100000, writer(100000))
    dirs = [bucket.directory for bucket in bucket_map.buckets.values()]
    bucket_map.clear_all()
    assert bucket_map.buckets == {}
    assert all(not directory.exists() for directory in dirs)


def test_average_size_missing_file_raises(tmp_path):
    table = FakeTable(directory=tmp_path, data_path=tmp_path / "missing")
    with pytest.raises(FileNotFoundError):
        average_size([table])