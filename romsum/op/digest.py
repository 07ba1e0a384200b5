# romsum/op/digest.py
# Streaming digest engine: blocked reads, per-block transforms, finalize

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import BinaryIO

from romsum.config import BLOCK_SIZE
from romsum.errors import ReadFailure
from romsum.op.hash import Accumulator
from romsum.op.transforms import BlockTransform, get_transform, identity

logger = logging.getLogger("romsum.digest")

MODES = ("stream", "exact")


@dataclass(frozen=True)
class ByteRange:
    """Payload bytes of a source: start offset and length (None = to end)."""
    start: int
    length: int | None = None


@dataclass(frozen=True)
class DigestPlan:
    """
    Everything the engine needs to hash one source.

    mode "stream": blocked reads per digest(); length must be None.
    mode "exact": one read of exactly byte_range.length bytes.
    """
    byte_range: ByteRange
    block_size: int = BLOCK_SIZE
    transform: str = "identity"
    mode: str = "stream"


def read_block(stream: BinaryIO, size: int) -> bytearray:
    """
    Read up to size bytes, retrying short reads until full or EOF.

    Returns:
        bytearray: fewer than size bytes only at end of stream

    Raises:
        OSError: propagated from the underlying stream
    """
    buf = bytearray(size)
    got = 0
    with memoryview(buf) as view:
        while got < size:
            n = stream.readinto(view[got:])
            if not n:
                break
            got += n
    del buf[got:]
    return buf


def _read_or_fail(stream: BinaryIO, size: int, acc: Accumulator) -> bytearray:
    try:
        return read_block(stream, size)
    except OSError as e:
        acc.invalidate()
        raise ReadFailure(f"read failed after {acc.consumed} bytes: {e}") from e


def _seek_or_fail(stream: BinaryIO, offset: int, acc: Accumulator) -> None:
    try:
        stream.seek(offset)
    except OSError as e:
        acc.invalidate()
        raise ReadFailure(f"seek to {offset} failed: {e}") from e


def digest(
    source,
    start: int,
    block_size: int = BLOCK_SIZE,
    transform: BlockTransform = identity,
    algo: str = "sha1",
) -> str:
    """
    Hash source from start to end in blocks of block_size.

    Full blocks go through transform before hashing. A short tail block
    at end of stream is hashed as read, without the transform. A start
    past the end of the source hashes zero bytes.

    Args:
        source: RomSource (stream + length)
        start: byte offset to begin hashing at
        block_size: bytes per block; 0 hashes nothing
        transform: in-place block transform
        algo: digest algorithm name

    Returns:
        str: lower-case hex digest

    Raises:
        ReadFailure: on a non-EOF read error (accumulator is invalidated)
        ValueError: on a negative start or block size
    """
    if start < 0 or block_size < 0:
        raise ValueError(f"start and block_size must be >= 0, got {start}, {block_size}")

    acc = Accumulator(algo)
    if block_size == 0:
        return acc.finalize()

    _seek_or_fail(source.stream, start, acc)
    blocks = 0
    while True:
        block = _read_or_fail(source.stream, block_size, acc)
        if len(block) < block_size:
            acc.process_bytes(block)
            break
        transform(block)
        acc.process_bytes(block)
        blocks += 1

    logger.debug("hashed %d bytes from offset %d (%d full blocks of %d, %s)",
                 acc.consumed, start, blocks, block_size, transform.__name__)
    return acc.finalize()


def digest_whole_range(
    source,
    block_size: int = BLOCK_SIZE,
    transform: BlockTransform = identity,
    algo: str = "sha1",
) -> str:
    """Same as digest(), always from offset 0."""
    return digest(source, 0, block_size, transform, algo)


def digest_exact(source, start: int, length: int, algo: str = "sha1") -> str:
    """
    Hash exactly length bytes from start in a single read.

    Raises:
        ReadFailure: if fewer than length bytes are available, or on I/O error
    """
    acc = Accumulator(algo)
    if start + length > source.length:
        acc.invalidate()
        raise ReadFailure(f"short read: wanted {length} bytes at offset {start}, source has {source.length}")
    _seek_or_fail(source.stream, start, acc)
    data = _read_or_fail(source.stream, length, acc)
    if len(data) < length:
        acc.invalidate()
        raise ReadFailure(f"short read: wanted {length} bytes at offset {start}, got {len(data)}")
    acc.process_bytes(data)
    return acc.finalize()


def execute(source, plan: DigestPlan, algo: str = "sha1") -> str:
    """
    Run a decoder's plan against its source.

    Raises:
        ValueError: if the plan mode is unknown or inconsistent
    """
    rng = plan.byte_range
    if plan.mode == "exact":
        if rng.length is None:
            raise ValueError("exact plan needs a length")
        return digest_exact(source, rng.start, rng.length, algo)
    if plan.mode != "stream":
        raise ValueError(f"Unknown plan mode {plan.mode!r}, must be one of {MODES}")
    if rng.length is not None:
        raise ValueError("stream plan hashes to end of source, length must be None")

    transform = get_transform(plan.transform)
    if rng.start == 0:
        return digest_whole_range(source, plan.block_size, transform, algo)
    return digest(source, rng.start, plan.block_size, transform, algo)
