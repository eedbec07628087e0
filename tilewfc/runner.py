#!/usr/bin/env python3
# tilewfc/runner.py
# End-to-end run: catalog -> adjacency -> engine -> render, with receipts

"""
Frozen order (no reordering):
Catalog → Adjacency → Grid seed → Engine → Render (only when done)

Determinism: every random draw comes from one numpy Generator seeded with
config.resolve_seed(); the seed is recorded in RunRc.final so any run can be
replayed. Running twice with the same seed yields identical section hashes,
table_hash and output_hash.
"""

from __future__ import annotations
import logging
from typing import Optional, Tuple

import numpy as np

from tilewfc.config import WfcConfig
from tilewfc.io.console import format_entropy_map
from tilewfc.io.render import render_grid
from tilewfc.op.adjacency import build_adjacency
from tilewfc.op.catalog import build_catalog
from tilewfc.op.engine import StepCallback, run_engine
from tilewfc.op.grid import SuperpositionGrid
from tilewfc.op.receipts import RunRc, env_fingerprint, seal

logger = logging.getLogger(__name__)


def _trace_step(step: int, x: int, y: int, fp: str, grid: SuperpositionGrid) -> None:
    print(f"step {step}: ({x}, {y}) -> {fp[:8]}")
    print(format_entropy_map(grid))


def run_wfc(
    raster: np.ndarray,
    config: WfcConfig,
    *,
    on_step: Optional[StepCallback] = None,
) -> Tuple[Optional[np.ndarray], RunRc]:
    """
    Generate a new raster from raster's tiles.

    Args:
        raster: decoded source image, (H, W) or (H, W, C)
        config: run options
        on_step: engine step callback; defaults to the entropy-map printer
            when config.trace is set

    Returns:
        (output_raster, run_rc): output_raster is None when generation failed;
        run_rc.final["status"] says why

    Raises:
        ValueError: if the raster holds no complete tile
    """
    seed = config.resolve_seed()
    rng = np.random.default_rng(seed)
    if on_step is None and config.trace:
        on_step = _trace_step

    run = RunRc(env=env_fingerprint())
    run.sections["config"] = {
        "tile_size": config.tile_size,
        "width": config.width,
        "height": config.height,
        "seed": seed,
        "max_iterations": config.max_iterations,
    }

    # ========================================================================
    # Step 1: Catalog
    # ========================================================================
    catalog, source_grid, catalog_rc = build_catalog(raster, config.tile_size)
    run.sections["catalog"] = catalog_rc

    # ========================================================================
    # Step 2: Adjacency
    # ========================================================================
    model, adjacency_rc = build_adjacency(source_grid, catalog)
    run.sections["adjacency"] = adjacency_rc

    # ========================================================================
    # Step 3: Seed grid + Engine
    # ========================================================================
    grid = SuperpositionGrid.from_catalog(catalog, config.width, config.height)
    engine_rc = run_engine(
        grid, model, rng,
        max_iterations=config.max_iterations,
        on_step=on_step,
    )
    run.sections["engine"] = engine_rc

    # ========================================================================
    # Step 4: Render (success only; never a partial raster)
    # ========================================================================
    output: Optional[np.ndarray] = None
    output_hash: Optional[str] = None
    if engine_rc.ok:
        output, render_rc = render_grid(grid.fingerprints(), catalog)
        run.sections["render"] = render_rc
        output_hash = render_rc.output_hash

    run.final = {
        "status": engine_rc.status,
        "reason": engine_rc.reason,
        "shape": list(output.shape) if output is not None else None,
        "seed": seed,
        "output_hash": output_hash,
    }
    seal(run)

    logger.info("Run %s (seed %d), table hash %s", engine_rc.status, seed, run.table_hash[:12])
    return output, run
