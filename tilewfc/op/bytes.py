# tilewfc/op/bytes.py
# Canonical encodings (uint8 pixel blocks, LEB128 varints)

from __future__ import annotations
import numpy as np


def varu(n: int) -> bytes:
    """
    Encode unsigned integer as LEB128 varint.

    Args:
        n: unsigned integer (must be >= 0)

    Returns:
        bytes: LEB128 varint

    Raises:
        ValueError: if n < 0
        OverflowError: if n too large for LEB128
    """
    if n < 0:
        raise ValueError("varu expects unsigned (n >= 0)")

    if n >= (1 << 63):
        raise OverflowError(f"Integer {n} too large for safe LEB128 encoding")

    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            break
    return bytes(out)


def frame_params(*ints: int) -> bytes:
    """
    Frame parameter list as <count><p1>...<pk>, each a LEB128 varint.
    """
    out = bytearray()
    out += varu(len(ints))
    for v in ints:
        out += varu(v)
    return bytes(out)


def as_block(A: np.ndarray) -> np.ndarray:
    """
    View a raster or tile as (H, W, C).

    Grayscale (H, W) arrays become single-channel (H, W, 1).

    Raises:
        ValueError: if A is not 2-D or 3-D
    """
    if A.ndim == 2:
        return A[:, :, np.newaxis]
    if A.ndim != 3:
        raise ValueError(f"Expected (H, W) or (H, W, C) array, got shape {A.shape}")
    return A


def to_bytes_block(B: np.ndarray) -> bytes:
    """
    Encode a pixel block as framed shape + uint8 row-major channel bytes.

    Layout: frame_params(h, w, c) followed by h*w*c bytes, row-major,
    every channel of a pixel before the next pixel.

    Raises:
        TypeError: if B is not integer dtype
        ValueError: if any value does not fit in uint8
    """
    if B.dtype.kind not in "iu":
        raise TypeError("Pixel block must be integer dtype")

    B = as_block(B)
    if B.size and (B.min() < 0 or B.max() > 255):
        raise ValueError("Pixel values must lie in [0, 255]")

    h, w, c = B.shape
    header = frame_params(h, w, c)
    return header + np.ascontiguousarray(B, dtype=np.uint8).tobytes(order="C")
