"""Components of a log-structured merge-tree storage engine: blocks, configuration, merging and buckets."""

__version__ = "0.1.0"

__all__ = ["block", "bucket", "compaction", "config", "consts", "keyspace", "merge"]