# romsum/op/hash.py
# Digest accumulators (SHA-1 by default) and BLAKE3 helpers for receipts

from __future__ import annotations
import hashlib
from blake3 import blake3

from romsum.config import ALGORITHMS
from romsum.errors import InvalidDigest

# Hex width of a finalized digest per algorithm
DIGEST_WIDTH = {"sha1": 40, "md5": 32, "blake3": 64}


def new_hasher(algo: str):
    """
    Create a fresh streaming hash object.

    Raises:
        ValueError: if algo is not supported
    """
    if algo not in ALGORITHMS:
        raise ValueError(f"Unsupported algorithm {algo!r}, must be one of {ALGORITHMS}")
    if algo == "blake3":
        return blake3()
    return hashlib.new(algo)


class Accumulator:
    """
    Streaming digest that can be invalidated.

    Once invalidated (after a read failure) it refuses further input and
    refuses to finalize, so a partial hash is never reported as valid.
    """

    def __init__(self, algo: str = "sha1"):
        self.algo = algo
        self._h = new_hasher(algo)
        self._valid = True
        self.consumed = 0

    @property
    def valid(self) -> bool:
        return self._valid

    def process_bytes(self, buf, length: int | None = None) -> None:
        if not self._valid:
            raise InvalidDigest(f"{self.algo} accumulator was invalidated")
        data = memoryview(buf)
        if length is not None:
            data = data[:length]
        self._h.update(data)
        self.consumed += len(data)

    def invalidate(self) -> None:
        self._valid = False
        self._h = new_hasher(self.algo)

    def finalize(self) -> str:
        if not self._valid:
            raise InvalidDigest(f"{self.algo} accumulator was invalidated")
        return self._h.hexdigest()


def empty_digest(algo: str = "sha1") -> str:
    """Digest of zero bytes."""
    return Accumulator(algo).finalize()


def hash_bytes(b: bytes) -> str:
    """
    Hash bytes with BLAKE3, return hex digest.

    Used for receipt table hashes, not for ROM fingerprints.
    """
    return blake3(b).hexdigest()
