#!/usr/bin/env python3
# tilewfc/op/catalog.py
# Tile catalog: content-addressed tiles cut from a source raster

"""
Cut the source raster into non-overlapping tile_size x tile_size blocks,
rows then columns, starting at the origin.

Frozen policy:
- Block counts are floor-divided: rows = H // N, cols = W // N
- Trailing partial pixels (H % N rows, W % N columns) are EXCLUDED,
  recorded in CatalogRc.excluded_px and logged as a warning
- Tile identity = BLAKE3 fingerprint of the block's pixel content
- Weight = number of source blocks with that exact content
- Catalog order = first-seen order in the row-major scan
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple
import numpy as np

from tilewfc.op.bytes import as_block, frame_params
from tilewfc.op.errors import UnknownFingerprint
from tilewfc.op.hash import fingerprint_block, hash_bytes

logger = logging.getLogger(__name__)


@dataclass
class Tile:
    """
    One distinct tile.

    index is the first-seen order, used for compact console maps.
    block is the (N, N, C) pixel content; treat it as read-only.
    """
    fingerprint: str
    weight: int
    block: np.ndarray
    index: int


class TileCatalog:
    """
    Distinct tiles keyed by fingerprint, in first-seen order.

    Built once by build_catalog(); read-only afterwards.
    """

    def __init__(self, tile_size: int):
        self.tile_size = tile_size
        self._tiles: Dict[str, Tile] = {}

    def register(self, block: np.ndarray) -> Tile:
        """Add one occurrence of block; new content starts at weight 1."""
        fp = fingerprint_block(block)
        tile = self._tiles.get(fp)
        if tile is None:
            tile = Tile(fingerprint=fp, weight=0, block=block, index=len(self._tiles))
            self._tiles[fp] = tile
        tile.weight += 1
        return tile

    def lookup(self, fingerprint: str) -> Tile:
        """
        Return the Tile for fingerprint.

        Raises:
            UnknownFingerprint: if it was never registered
        """
        tile = self._tiles.get(fingerprint)
        if tile is None:
            raise UnknownFingerprint(fingerprint, "catalog")
        return tile

    def weights(self) -> Dict[str, int]:
        return {fp: t.weight for fp, t in self._tiles.items()}

    def fingerprints(self) -> List[str]:
        return list(self._tiles)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._tiles

    def __iter__(self) -> Iterator[Tile]:
        return iter(self._tiles.values())

    def __len__(self) -> int:
        return len(self._tiles)


@dataclass
class CatalogRc:
    """
    Catalog receipt.

    raster_shape: (H, W, C) of the source
    grid_shape: (rows, cols) of the SourceTileGrid
    excluded_px: (rows, cols) of trailing pixels left out of cataloging
    weights: fingerprint -> weight, catalog order
    """
    tile_size: int
    raster_shape: Tuple[int, int, int]
    grid_shape: Tuple[int, int]
    excluded_px: Tuple[int, int]
    tile_count: int
    block_count: int
    weights: Dict[str, int] = field(default_factory=dict)
    hash: str = ""


def _catalog_hash(rc: CatalogRc) -> str:
    """BLAKE3 over framed shapes + (fingerprint, weight) in catalog order."""
    parts = [frame_params(rc.tile_size, *rc.raster_shape, *rc.grid_shape)]
    for fp, w in rc.weights.items():
        parts.append(fp.encode() + frame_params(w))
    return hash_bytes(b"".join(parts))


def build_catalog(raster: np.ndarray, tile_size: int) -> Tuple[TileCatalog, np.ndarray, CatalogRc]:
    """
    Catalog every tile_size x tile_size block of raster.

    Args:
        raster: (H, W) or (H, W, C) uint8-compatible array
        tile_size: edge length N of a square tile, in pixels

    Returns:
        (catalog, source_grid, receipt):
        - source_grid: (rows, cols) object array of fingerprints, row-major
        - receipt: CatalogRc

    Raises:
        ValueError: if tile_size < 1 or the raster holds no complete tile
    """
    if tile_size < 1:
        raise ValueError(f"tile_size must be positive, got {tile_size}")

    A = as_block(np.asarray(raster))
    H, W, C = A.shape
    rows, cols = H // tile_size, W // tile_size
    if rows == 0 or cols == 0:
        raise ValueError(
            f"Raster {W}x{H} is smaller than one {tile_size}x{tile_size} tile"
        )

    excluded = (H - rows * tile_size, W - cols * tile_size)
    if excluded != (0, 0):
        logger.warning(
            "Raster %dx%d is not a multiple of tile size %d: excluding trailing %d row(s) and %d column(s) of pixels",
            W, H, tile_size, excluded[0], excluded[1],
        )

    catalog = TileCatalog(tile_size)
    source_grid = np.empty((rows, cols), dtype=object)

    for r in range(rows):
        for c in range(cols):
            y0, x0 = r * tile_size, c * tile_size
            block = A[y0:y0 + tile_size, x0:x0 + tile_size].copy()
            tile = catalog.register(block)
            source_grid[r, c] = tile.fingerprint

    rc = CatalogRc(
        tile_size=tile_size,
        raster_shape=(H, W, C),
        grid_shape=(rows, cols),
        excluded_px=excluded,
        tile_count=len(catalog),
        block_count=rows * cols,
        weights=catalog.weights(),
    )
    rc.hash = _catalog_hash(rc)

    logger.info("Catalogued %d distinct tile(s) from %dx%d blocks", len(catalog), cols, rows)
    return catalog, source_grid, rc
