# tilewfc/op/hash.py
# BLAKE3 hashing helpers (tile fingerprints, receipt hashes)

from __future__ import annotations
from typing import Iterable, Optional
from blake3 import blake3
import numpy as np
from .bytes import to_bytes_block, frame_params, varu


def hash_bytes(b: bytes) -> str:
    """
    Hash bytes with BLAKE3, return hex digest.

    Args:
        b: bytes to hash

    Returns:
        str: hex digest (64 hex chars = 256 bits)
    """
    return blake3(b).hexdigest()


def fingerprint_block(B: np.ndarray) -> str:
    """
    Content fingerprint of a tile's pixel block.

    Identical pixel content (shape, channels, values) gives an identical
    fingerprint; the shape header keeps a 1x4 block distinct from a 2x2 block
    with the same values.

    Args:
        B: (H, W) or (H, W, C) integer array with values in [0, 255]

    Returns:
        str: BLAKE3 hex digest of to_bytes_block(B)
    """
    return hash_bytes(to_bytes_block(B))


def hash_fingerprint_grid(cells: Iterable[Iterable[Optional[str]]]) -> str:
    """
    Hash a 2-D grid of fingerprints (row-major).

    Unresolved cells (None) hash as an empty field, so a partially
    resolved grid never collides with a resolved one.
    """
    h = blake3()
    rows = [list(row) for row in cells]
    h.update(frame_params(len(rows), len(rows[0]) if rows else 0))
    for row in rows:
        for fp in row:
            if fp is None:
                h.update(b"\x00")
            else:
                raw = fp.encode()
                h.update(b"\x01" + varu(len(raw)) + raw)
    return h.hexdigest()
