"""Immutable Merkle tree over an ordered sequence of leaf digests.

Leaves are grouped into consecutive runs of `branching_factor` nodes and each
run is hashed into a parent, one level at a time, until a single root remains.
Every level is kept so two parties can compare their trees level by level:

1. fetch the peer's hashes for a level, starting at the root
2. compare them with this tree's hashes via compare_hashes_at_level()
3. for each mismatch, fetch the children via get_children_hashes_of_hash()
4. repeat one level down
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from . import DEFAULT_BRANCHING_FACTOR
from .errors import (
    ConfigurationError,
    EmptySource,
    InvalidDigestLength,
    LevelOutOfRange,
    UnsupportedScheme,
)
from .hashing import HashingScheme, compose_children, hexify
from .sources import FileChunkSource, LeafSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MerkleNode:
    """A node in the Merkle tree: a leaf digest or a parent of child nodes."""

    hash: bytes
    children: tuple[MerkleNode, ...] = ()

    @property
    def type(self) -> Literal["leaf", "internal"]:
        return "internal" if self.children else "leaf"

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @classmethod
    def leaf(cls, digest: bytes) -> MerkleNode:
        """Create a leaf node holding a precomputed digest."""
        return cls(hash=digest)

    @classmethod
    def internal(cls, children: Sequence[MerkleNode], scheme: HashingScheme) -> MerkleNode:
        """Create a parent node whose digest is composed from its children."""
        digest = compose_children(scheme, [child.hash for child in children])
        return cls(hash=digest, children=tuple(children))

    def __repr__(self) -> str:
        return f"MerkleNode({self.type}, {hexify(self.hash)}, children={len(self.children)})"


class MerkleTree:
    """Hash tree built once from leaf digests and immutable afterwards."""

    def __init__(
        self,
        levels: list[list[MerkleNode]],
        node_count: int,
        hashing_scheme: HashingScheme,
        branching_factor: int,
    ):
        self._levels = [tuple(level) for level in levels]
        self._node_count = node_count
        self._hashing_scheme = hashing_scheme
        self._branching_factor = branching_factor

        # First occurrence in level order wins
        self._index: dict[bytes, MerkleNode] = {}
        for level in self._levels:
            for node in level:
                self._index.setdefault(node.hash, node)

    @classmethod
    def build(
        cls,
        leaf_hashes: Iterable[bytes],
        branching_factor: int | None = DEFAULT_BRANCHING_FACTOR,
        hashing_scheme: HashingScheme | str = HashingScheme.SHA1,
    ) -> MerkleTree:
        """
        Build a Merkle tree from leaf digests.

        Args:
            leaf_hashes: Leaf digests in order, each exactly the scheme's width
            branching_factor: Maximum number of children per parent (None means 2)
            hashing_scheme: Scheme the leaves were produced with

        Returns:
            A fully built MerkleTree

        Raises:
            ConfigurationError: On a missing scheme, a non-positive branching
                factor or a missing leaf sequence
            UnsupportedScheme: On an unknown scheme or a branching factor of 1
            InvalidDigestLength: If a leaf digest has the wrong width
            EmptySource: If there are no leaves
        """
        if hashing_scheme is None:
            raise ConfigurationError("Hashing scheme cannot be None")
        scheme = HashingScheme.parse(hashing_scheme)
        factor = _validate_branching_factor(branching_factor)

        if leaf_hashes is None:
            raise ConfigurationError("Leaf hashes cannot be None")

        width = scheme.digest_size
        leaves: list[MerkleNode] = []
        for digest in leaf_hashes:
            if not isinstance(digest, (bytes, bytearray)) or len(digest) != width:
                actual = len(digest) if isinstance(digest, (bytes, bytearray)) else 0
                raise InvalidDigestLength(width, actual)
            leaves.append(MerkleNode.leaf(bytes(digest)))

        if not leaves:
            raise EmptySource("Cannot build a Merkle tree without any leaves")

        levels, node_count = _build_levels(leaves, factor, scheme)
        tree = cls(levels, node_count, scheme, factor)

        logger.info(
            "Built Merkle tree with %d nodes, %d levels deep, %s root hash",
            tree.node_count,
            tree.depth,
            hexify(tree.root.hash),
        )
        return tree

    @classmethod
    def from_source(
        cls,
        source: LeafSource,
        branching_factor: int | None = DEFAULT_BRANCHING_FACTOR,
    ) -> MerkleTree:
        """Build a tree from a leaf source, using the source's hashing scheme."""
        if source is None:
            raise ConfigurationError("Leaf source cannot be None")
        return cls.build(
            source.stream(),
            branching_factor=branching_factor,
            hashing_scheme=source.hashing_scheme,
        )

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        chunk_size: int,
        branching_factor: int | None = DEFAULT_BRANCHING_FACTOR,
        hashing_scheme: HashingScheme | str = HashingScheme.SHA1,
    ) -> MerkleTree:
        """Build a tree over a file split into chunks of `chunk_size` bytes."""
        source = FileChunkSource(path, chunk_size, hashing_scheme=HashingScheme.parse(hashing_scheme))
        return cls.from_source(source, branching_factor=branching_factor)

    @property
    def root(self) -> MerkleNode:
        return self._levels[0][0]

    @property
    def node_count(self) -> int:
        """Total number of nodes across all levels."""
        return self._node_count

    @property
    def depth(self) -> int:
        """Number of levels, counting both the root and the leaves."""
        return len(self._levels)

    @property
    def leaf_count(self) -> int:
        return len(self._levels[-1])

    @property
    def hashing_scheme(self) -> HashingScheme:
        return self._hashing_scheme

    @property
    def branching_factor(self) -> int:
        return self._branching_factor

    def get_root(self) -> MerkleNode:
        return self.root

    def get_all_nodes(self) -> list[list[MerkleNode]]:
        """All nodes level-ordered, starting at the root."""
        return [list(level) for level in self._levels]

    def get_nodes_at_level(self, level: int) -> list[MerkleNode]:
        """Nodes at a level, left to right. Level 0 is the root."""
        return list(self._level(level))

    def get_hashes_at_level(self, level: int) -> list[bytes]:
        """Digests of the nodes at a level, left to right."""
        return [node.hash for node in self._level(level)]

    def find_node_by_hash(self, digest: bytes) -> MerkleNode | None:
        """Find the first node (root to leaves, left to right) with this digest."""
        return self._index.get(bytes(digest))

    def get_children_hashes_of_hash(self, level: int, digest: bytes) -> list[bytes]:
        """Children digests of every node at `level` whose digest matches.

        Returns an empty list if nothing matches or the matching nodes are leaves.
        """
        children_hashes: list[bytes] = []
        for node in self._level(level):
            if node.hash == digest:
                children_hashes.extend(child.hash for child in node.children)
        return children_hashes

    def compare_hashes_at_level(self, level: int, other_hashes: Sequence[bytes]) -> list[bytes]:
        """
        Compare this tree's hashes at a level with a peer's hashes at the same level.

        Hashes are compared position by position. The result holds, in this
        tree's order, this tree's hash at every position that differs from the
        peer, plus every trailing hash the peer has no counterpart for. The
        peer's hashes are never echoed back, so call this from both sides to
        see both halves of a mismatch.

        Args:
            level: Level index, 0 being the root
            other_hashes: The peer tree's hashes at the same level

        Returns:
            This tree's mismatching hashes
        """
        hashes = self.get_hashes_at_level(level)
        if other_hashes is None:
            other_hashes = []

        diffs: list[bytes] = []
        for position, digest in enumerate(hashes):
            # Past the tail of the peer's list, everything left is unmatched
            if position >= len(other_hashes) or other_hashes[position] != digest:
                diffs.append(digest)
        return diffs

    def _level(self, level: int) -> tuple[MerkleNode, ...]:
        if not isinstance(level, int) or level < 0 or level >= len(self._levels):
            raise LevelOutOfRange(level, len(self._levels))
        return self._levels[level]

    def __repr__(self) -> str:
        return (
            f"MerkleTree(nodes={self.node_count}, depth={self.depth}, "
            f"branching_factor={self.branching_factor}, root={hexify(self.root.hash)})"
        )


def _validate_branching_factor(branching_factor: int | None) -> int:
    """Resolve and check the branching factor."""
    if branching_factor is None:
        logger.info("Branching factor was None, defaulting to %d", DEFAULT_BRANCHING_FACTOR)
        return DEFAULT_BRANCHING_FACTOR
    if isinstance(branching_factor, bool) or not isinstance(branching_factor, int):
        raise ConfigurationError(f"Branching factor must be an integer, got {branching_factor!r}")
    if branching_factor < 1:
        raise ConfigurationError(f"Branching factor must be positive, got {branching_factor}")
    if branching_factor == 1:
        raise UnsupportedScheme("A branching factor of 1 cannot reduce a level to a root")
    return branching_factor


def _build_levels(
    leaves: list[MerkleNode],
    branching_factor: int,
    scheme: HashingScheme,
) -> tuple[list[list[MerkleNode]], int]:
    """Roll leaves up into parents until one root remains.

    Returns the levels root-first and the total node count.
    """
    levels: list[list[MerkleNode]] = [leaves]
    node_count = len(leaves)

    current = leaves
    while len(current) > 1:
        parents = [
            MerkleNode.internal(current[start : start + branching_factor], scheme)
            for start in range(0, len(current), branching_factor)
        ]
        node_count += len(parents)
        levels.append(parents)
        logger.debug("Hashed %d nodes into %d parents", len(current), len(parents))
        current = parents

    # Built leaves-first, queried root-first
    levels.reverse()
    return levels, node_count
