"""Shared test fixtures for merkle-diff."""

import hashlib
from pathlib import Path

import pytest
from click.testing import CliRunner

from merkle_diff.tree import MerkleTree


def sha1(text: str) -> bytes:
    """Raw SHA-1 digest of a UTF-8 string."""
    return hashlib.sha1(text.encode()).digest()


def make_leaves(count: int, prefix: str = "leaf") -> list[bytes]:
    """Distinct leaf digests: sha1("<prefix> 0"), sha1("<prefix> 1"), ..."""
    return [sha1(f"{prefix} {i}") for i in range(count)]


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def four_leaves() -> list[bytes]:
    """Leaf digests of the four-leaf reference scenario."""
    return [sha1("first hash"), sha1("second hash"), sha1("third hash"), sha1("fourth hash")]


@pytest.fixture
def four_leaves_changed() -> list[bytes]:
    """Reference scenario with the fourth leaf replaced."""
    return [sha1("first hash"), sha1("second hash"), sha1("third hash"), sha1("fifth hash")]


@pytest.fixture
def four_leaf_tree(four_leaves: list[bytes]) -> MerkleTree:
    """Binary tree over the reference leaves."""
    return MerkleTree.build(four_leaves, branching_factor=2)


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """A 10,000-byte file with position-dependent content."""
    path = tmp_path / "data.bin"
    path.write_bytes(bytes(i % 251 for i in range(10_000)))
    return path


@pytest.fixture
def leaf_factory():
    """Factory for distinct leaf digests: leaf_factory(count, prefix="leaf")."""
    return make_leaves
