"""Level-by-level comparison of two Merkle trees."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import ConfigurationError
from .sources import FileChunk, FileChunkSource
from .tree import MerkleTree

logger = logging.getLogger(__name__)


@dataclass
class TreeDiff:
    """Result of comparing two Merkle trees position by position."""

    levels: dict[int, list[int]] = field(default_factory=dict)  # level -> mismatched positions
    leaves: list[int] = field(default_factory=list)  # Divergent leaf positions

    @property
    def has_changes(self) -> bool:
        """Check if the roots differ."""
        return bool(self.levels)

    @property
    def total_changes(self) -> int:
        """Number of divergent leaves."""
        return len(self.leaves)


def diff_trees(local: MerkleTree, remote: MerkleTree) -> TreeDiff:
    """
    Find divergent regions by descending both trees from the root.

    Only children of mismatched positions are compared at the next level, so
    identical subtrees are skipped as soon as their parent hashes agree.
    Positions are compared, not values: a leaf inserted or removed on one side
    shifts every later position and shows up as a run of differences.

    Args:
        local: This side's tree
        remote: The peer's tree

    Returns:
        TreeDiff with mismatched positions per level and divergent leaves

    Raises:
        ConfigurationError: If the trees differ in scheme, branching factor or depth
    """
    _check_alignment(local, remote)

    diff = TreeDiff()
    branching_factor = local.branching_factor
    leaf_level = local.depth - 1
    candidates = [0]

    for level in range(local.depth):
        local_hashes = local.get_hashes_at_level(level)
        remote_hashes = remote.get_hashes_at_level(level)
        width = max(len(local_hashes), len(remote_hashes))

        mismatched = [
            position
            for position in candidates
            if position < width and _differs(local_hashes, remote_hashes, position)
        ]
        if not mismatched:
            break

        diff.levels[level] = mismatched
        if level == leaf_level:
            diff.leaves = mismatched
        else:
            candidates = [
                child
                for position in mismatched
                for child in range(position * branching_factor, (position + 1) * branching_factor)
            ]

    logger.debug(
        "Compared trees: %d mismatched levels, %d divergent leaves",
        len(diff.levels),
        len(diff.leaves),
    )
    return diff


def divergent_byte_ranges(diff: TreeDiff, source: FileChunkSource) -> list[FileChunk]:
    """Map divergent leaf positions to the byte ranges of a file-backed source.

    Positions past the end of the source (leaves only the peer has) are skipped.
    """
    return [source.chunk_at(position) for position in diff.leaves if position < len(source)]


def _differs(local_hashes: list[bytes], remote_hashes: list[bytes], position: int) -> bool:
    if position >= len(local_hashes) or position >= len(remote_hashes):
        return True
    return local_hashes[position] != remote_hashes[position]


def _check_alignment(local: MerkleTree, remote: MerkleTree) -> None:
    """Raise if the two trees cannot be compared level by level."""
    if local.hashing_scheme != remote.hashing_scheme:
        raise ConfigurationError(
            f"Hashing schemes differ: {local.hashing_scheme.value} vs {remote.hashing_scheme.value}"
        )
    if local.branching_factor != remote.branching_factor:
        raise ConfigurationError(
            f"Branching factors differ: {local.branching_factor} vs {remote.branching_factor}"
        )
    if local.depth != remote.depth:
        raise ConfigurationError(
            f"Tree depths differ: {local.depth} vs {remote.depth}, levels cannot be aligned"
        )
