# tilewfc/io/render.py
# Paint a resolved fingerprint grid back into pixels

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from tilewfc.op.bytes import as_block
from tilewfc.op.catalog import TileCatalog
from tilewfc.op.errors import GenerationFailed
from tilewfc.op.hash import hash_bytes


@dataclass
class RenderRc:
    """
    Render receipt.

    output_hash: BLAKE3 over shape header + raw raster bytes
    """
    shape: Tuple[int, int, int]
    tiles_painted: int
    output_hash: str


def render_grid(fp_grid: np.ndarray, catalog: TileCatalog) -> Tuple[np.ndarray, RenderRc]:
    """
    Stitch each cell's tile block into a (rows*N, cols*N, C) raster.

    Args:
        fp_grid: (rows, cols) array of fingerprints, e.g. the SourceTileGrid
            or SuperpositionGrid.fingerprints()
        catalog: catalog owning every fingerprint in fp_grid

    Raises:
        GenerationFailed: if any cell is unresolved (None); no partial raster
        UnknownFingerprint: if a fingerprint is missing from catalog
    """
    rows, cols = fp_grid.shape
    unresolved = [
        {"x": x, "y": y} for y in range(rows) for x in range(cols) if fp_grid[y, x] is None
    ]
    if unresolved:
        raise GenerationFailed("unresolved", unresolved)

    N = catalog.tile_size
    first = as_block(catalog.lookup(fp_grid[0, 0]).block)
    out = np.zeros((rows * N, cols * N, first.shape[2]), dtype=first.dtype)

    for y in range(rows):
        for x in range(cols):
            block = as_block(catalog.lookup(fp_grid[y, x]).block)
            out[y * N:(y + 1) * N, x * N:(x + 1) * N] = block

    rc = RenderRc(
        shape=out.shape,
        tiles_painted=rows * cols,
        output_hash=hash_bytes(np.asarray(out.shape, dtype="<u4").tobytes() + out.tobytes()),
    )
    return out, rc
