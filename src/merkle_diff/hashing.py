"""Digest primitives for building Merkle trees.

Every node digest in a tree is produced by one of two operations:
- hash_bytes(data): digest of raw bytes (used for leaves built from file chunks)
- compose_children(digests): digest of a parent computed from its children

A group with exactly one child passes that child's digest through unchanged.
Two independently built trees only agree if both sides follow this rule.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any, BinaryIO

from .errors import ConfigurationError, InvalidDigestLength, UnsupportedScheme

READ_BLOCK_SIZE = 8192


class HashingScheme(str, Enum):
    """Supported hashing schemes."""

    SHA1 = "sha1"

    @property
    def digest_size(self) -> int:
        """Fixed width in bytes of digests produced by this scheme."""
        return _digest_size(self)

    @classmethod
    def parse(cls, name: str | HashingScheme) -> HashingScheme:
        """Look up a scheme by its configuration name (case-insensitive)."""
        if isinstance(name, HashingScheme):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            raise UnsupportedScheme(f"{name} is not yet supported") from None


# Hash constructors and digest widths per scheme
_HASH_FACTORIES: dict[HashingScheme, Callable[[], Any]] = {
    HashingScheme.SHA1: hashlib.sha1,
}

_DIGEST_SIZES: dict[HashingScheme, int] = {
    HashingScheme.SHA1: 20,
}


def _new_hasher(scheme: HashingScheme) -> Any:
    factory = _HASH_FACTORIES.get(scheme)
    if factory is None:
        raise UnsupportedScheme(f"{scheme} is not yet supported")
    return factory()


def _digest_size(scheme: HashingScheme) -> int:
    size = _DIGEST_SIZES.get(scheme)
    if size is None:
        raise UnsupportedScheme(f"{scheme} is not yet supported")
    return size


def hash_bytes(scheme: HashingScheme, data: bytes) -> bytes:
    """Hash raw bytes with the given scheme.

    Args:
        scheme: Hashing scheme to apply
        data: Bytes to hash

    Returns:
        Fixed-width raw digest

    Raises:
        UnsupportedScheme: If the scheme has no implementation
    """
    hasher = _new_hasher(scheme)
    hasher.update(data)
    return hasher.digest()


def hash_stream(scheme: HashingScheme, stream: BinaryIO) -> bytes:
    """Hash an entire binary stream, reading it block by block."""
    hasher = _new_hasher(scheme)
    for block in iter(lambda: stream.read(READ_BLOCK_SIZE), b""):
        hasher.update(block)
    return hasher.digest()


def compose_children(scheme: HashingScheme, digests: Sequence[bytes]) -> bytes:
    """Compute a parent digest from its ordered child digests.

    A single child is passed through verbatim. Otherwise the child digests are
    concatenated in order and the result is hashed.

    Args:
        scheme: Hashing scheme the children were produced with
        digests: Child digests, left to right

    Returns:
        Parent digest

    Raises:
        ConfigurationError: If there are no children
        InvalidDigestLength: If a child digest is not exactly the scheme's width
        UnsupportedScheme: If the scheme has no implementation
    """
    if not digests:
        raise ConfigurationError("A parent node needs at least one child digest")

    if len(digests) == 1:
        return digests[0]

    width = _digest_size(scheme)
    buffer = bytearray()
    for digest in digests:
        if digest is None or len(digest) != width:
            raise InvalidDigestLength(width, 0 if digest is None else len(digest))
        buffer += digest
    return hash_bytes(scheme, bytes(buffer))


def hexify(digest: bytes) -> str:
    """Render a digest as uppercase hex."""
    return digest.hex().upper()
