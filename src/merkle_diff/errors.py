"""Exception hierarchy for Merkle Diff."""


class MerkleTreeError(Exception):
    """Base class for all tree construction and query errors."""


class ConfigurationError(MerkleTreeError):
    """Missing or invalid scheme, branching factor or leaf source."""


class UnsupportedScheme(ConfigurationError):
    """Requested hashing scheme or branching factor has no implementation."""


class InvalidDigestLength(MerkleTreeError, ValueError):
    """A digest does not match the hashing scheme's fixed width."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected a {expected}-byte digest, got {actual} bytes")


class EmptySource(MerkleTreeError):
    """Construction requested with zero leaves."""


class LevelOutOfRange(MerkleTreeError, IndexError):
    """Query addressed a level outside [0, depth)."""

    def __init__(self, level: int, depth: int):
        self.level = level
        self.depth = depth
        super().__init__(f"Level {level} is out of range for a tree of depth {depth}")
