"""Leaf digest sources for Merkle tree construction."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import ConfigurationError, InvalidDigestLength
from .hashing import HashingScheme, hash_bytes

logger = logging.getLogger(__name__)

# Files no larger than the chunk size are split with chunk_size // SMALL_FILE_DIVISOR
SMALL_FILE_DIVISOR = 4


class LeafSource(Protocol):
    """Anything that yields leaf digests in order."""

    hashing_scheme: HashingScheme

    def stream(self) -> Iterator[bytes]: ...


@dataclass(frozen=True)
class FileChunk:
    """A byte range of a file backing one leaf."""

    index: int
    start: int  # Inclusive offset
    end: int  # Exclusive offset

    @property
    def size(self) -> int:
        return self.end - self.start


class HashedSource:
    """Precomputed leaf digests, used as-is."""

    def __init__(
        self,
        hashes: Iterable[bytes],
        hashing_scheme: HashingScheme = HashingScheme.SHA1,
    ):
        if hashes is None:
            raise ConfigurationError("Leaf hashes cannot be None")
        self.hashing_scheme = HashingScheme.parse(hashing_scheme)

        width = self.hashing_scheme.digest_size
        validated: list[bytes] = []
        for digest in hashes:
            if not isinstance(digest, (bytes, bytearray)) or len(digest) != width:
                actual = len(digest) if isinstance(digest, (bytes, bytearray)) else 0
                raise InvalidDigestLength(width, actual)
            validated.append(bytes(digest))
        self._hashes = tuple(validated)

    def __len__(self) -> int:
        return len(self._hashes)

    def stream(self) -> Iterator[bytes]:
        return iter(self._hashes)


class FileChunkSource:
    """Leaf digests from splitting a file into fixed-size chunks.

    The file is read eagerly when the source is created: each chunk is read,
    hashed and discarded, so only the digests stay in memory. The last chunk
    may be shorter than the chunk size.

    Files no larger than the requested chunk size are split with a quarter of
    that size instead, so that small files still produce several leaves.
    """

    def __init__(
        self,
        path: Path | str,
        chunk_size: int,
        hashing_scheme: HashingScheme = HashingScheme.SHA1,
    ):
        if path is None:
            raise ConfigurationError("File path cannot be None")
        if chunk_size is None or chunk_size <= 0:
            raise ConfigurationError(f"Chunk size must be positive, got {chunk_size}")

        self.path = Path(path)
        self.hashing_scheme = HashingScheme.parse(hashing_scheme)
        self.requested_chunk_size = chunk_size
        self.file_size = self.path.stat().st_size

        effective = chunk_size
        if self.file_size <= chunk_size:
            effective = max(1, chunk_size // SMALL_FILE_DIVISOR)
            logger.info(
                "Input file %s (size %d <= chunk size %d), switching chunk size to %d",
                self.path,
                self.file_size,
                chunk_size,
                effective,
            )
        self.chunk_size = effective

        self._hashes: list[bytes] = []
        self._chunks: list[FileChunk] = []
        self._read_chunks()

        logger.info(
            "Prepared %d hashes from %d byte chunks of %s using %s",
            len(self._hashes),
            self.chunk_size,
            self.path,
            self.hashing_scheme.value,
        )

    def _read_chunks(self) -> None:
        offset = 0
        with open(self.path, "rb") as f:
            for block in iter(lambda: f.read(self.chunk_size), b""):
                self._hashes.append(hash_bytes(self.hashing_scheme, block))
                self._chunks.append(
                    FileChunk(index=len(self._chunks), start=offset, end=offset + len(block))
                )
                offset += len(block)

    def __len__(self) -> int:
        return len(self._hashes)

    @property
    def chunks(self) -> list[FileChunk]:
        """Byte ranges backing each leaf, in leaf order."""
        return list(self._chunks)

    def chunk_at(self, index: int) -> FileChunk:
        """Get the byte range backing the leaf at the given position."""
        return self._chunks[index]

    def stream(self) -> Iterator[bytes]:
        return iter(self._hashes)
