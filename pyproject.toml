[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "velarixdb"
version = "0.1.0"
description = "Building blocks of a log-structured merge-tree key-value store: SSTable blocks, size-tiered merging and bucket management"
requires-python = ">=3.10"
dependencies = []
keywords = ["lsm", "key-value", "database", "sstable", "compaction", "storage-engine"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["velarixdb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
