# romsum/op/transforms.py
# Block transforms: in-place byte reordering of one read block
# Each transform returns True if it rewrote the buffer, False for a no-op

from __future__ import annotations
from typing import Callable
import numpy as np

BlockTransform = Callable[[bytearray], bool]

# Word-swap permutations over one 4-byte group
SWAP_A_ORDER = [2, 3, 0, 1]  # (0<->2), (1<->3)
SWAP_B_ORDER = [1, 0, 3, 2]  # (0<->1), (2<->3)


def _view(buf: bytearray) -> np.ndarray:
    # Writable uint8 view sharing memory with buf
    return np.frombuffer(buf, dtype=np.uint8)


def identity(buf: bytearray) -> bool:
    """Leave the block untouched."""
    return False


def interleave_split(buf: bytearray) -> bool:
    """
    Undo a two-chip interleave dump.

    The block holds two halves of length n/2. Byte i of the first half
    moves to position 2i+1 and byte i of the second half moves to 2i,
    so the halves end up alternating odd/even.

    Args:
        buf: block to rewrite in place (length must be even)

    Returns:
        bool: False if the block is empty or of odd length (left as is)
    """
    n = len(buf)
    if n == 0 or n % 2:
        return False

    a = _view(buf)
    m = n // 2
    out = np.empty(n, dtype=np.uint8)
    out[1::2] = a[:m]
    out[0::2] = a[m:]
    a[:] = out
    return True


def _swap_words(buf: bytearray, order: list[int]) -> bool:
    n = len(buf)
    if n == 0 or n % 4:
        return False

    words = _view(buf).reshape(-1, 4)
    # Fancy indexing copies before assignment, so the swap is safe in place
    words[:] = words[:, order]
    return True


def swap_a(buf: bytearray) -> bool:
    """Word-swap A: swap bytes 0<->2 and 1<->3 of every 4-byte group."""
    return _swap_words(buf, SWAP_A_ORDER)


def swap_b(buf: bytearray) -> bool:
    """Word-swap B: swap bytes 0<->1 and 2<->3 of every 4-byte group."""
    return _swap_words(buf, SWAP_B_ORDER)


TRANSFORMS: dict[str, BlockTransform] = {
    "identity": identity,
    "interleave": interleave_split,
    "swap_a": swap_a,
    "swap_b": swap_b,
}


def get_transform(name: str) -> BlockTransform:
    """
    Look up a transform by its receipt name.

    Raises:
        ValueError: if name is not a known transform
    """
    if name not in TRANSFORMS:
        raise ValueError(f"Unknown transform {name!r}, must be one of {tuple(TRANSFORMS)}")
    return TRANSFORMS[name]
