"""Merkle Diff - Hash trees for level-by-level comparison of large datasets."""

__version__ = "0.1.0"

# Defaults
DEFAULT_BRANCHING_FACTOR = 2
DEFAULT_CHUNK_SIZE = 2 * 1024 * 1024  # 2MB
CONFIG_FILE = "mtree.json"
