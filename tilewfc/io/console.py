# tilewfc/io/console.py
# Text maps of the source grid and the superposition grid

from __future__ import annotations

import numpy as np

from tilewfc.op.catalog import TileCatalog
from tilewfc.op.grid import SuperpositionGrid


def format_source_map(source_grid: np.ndarray, catalog: TileCatalog) -> str:
    """Catalog index of every source block, two columns per cell."""
    lines = []
    for row in source_grid:
        lines.append("".join(f"{catalog.lookup(fp).index:2d}" for fp in row))
    return "\n".join(lines)


def format_entropy_map(grid: SuperpositionGrid) -> str:
    """Entropy per cell, three columns wide; ' xx' marks a contradiction."""
    E = grid.entropy_map()
    lines = []
    for row in E:
        lines.append("".join(" xx" if e < 0 else f"{e:3d}" for e in row))
    return "\n".join(lines)


def format_collapsed_map(grid: SuperpositionGrid, catalog: TileCatalog) -> str:
    """
    Catalog index per collapsed cell.

    ' ??' undetermined, ' xx' contradiction.
    """
    lines = []
    for y in range(grid.height):
        parts = []
        for x in range(grid.width):
            cell = grid.at(x, y)
            if cell.is_contradiction():
                parts.append(" xx")
            elif not cell.is_collapsed():
                parts.append(" ??")
            else:
                parts.append(f"{catalog.lookup(cell.fingerprint).index:3d}")
        lines.append("".join(parts))
    return "\n".join(lines)
