#!/usr/bin/env python3
# tilewfc/op/engine.py
# Generation loop: select -> collapse -> propagate, until done or failed

"""
States: running -> done | failed

Loop:
1. select_cell(); None -> done if every cell is collapsed, else failed
2. collapse the selected cell
3. propagate from it (one hop)
4. repeat

Each iteration collapses one undetermined cell and propagation never adds
candidates, so the loop runs at most width * height times. Contradicted
cells are excluded from selection, so a contradiction ends the run as
failed instead of being reselected forever.

max_iterations (optional) caps the loop; hitting it ends as failed with
reason "iteration_cap".
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Literal, Optional

import numpy as np

from tilewfc.op.adjacency import AdjacencyModel
from tilewfc.op.errors import GenerationFailed
from tilewfc.op.grid import SuperpositionGrid
from tilewfc.op.hash import hash_fingerprint_grid

logger = logging.getLogger(__name__)

EngineStatus = Literal["done", "failed"]
FailReason = Literal["contradiction", "iteration_cap"]

StepCallback = Callable[[int, int, int, str, SuperpositionGrid], None]


@dataclass
class EngineRc:
    """
    Engine receipt.

    steps: number of collapses performed
    contradictions: serialized ContradictionReport per empty cell, row-major
    grid_hash: BLAKE3 of the final fingerprint grid (None for unresolved cells)
    """
    status: EngineStatus
    reason: Optional[FailReason]
    steps: int
    width: int
    height: int
    state_counts: Dict[str, int] = field(default_factory=dict)
    contradictions: List[Dict[str, Any]] = field(default_factory=list)
    grid_hash: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "done"

    def raise_for_status(self) -> None:
        """
        Raises:
            GenerationFailed: unless status is "done"
        """
        if self.status != "done":
            raise GenerationFailed(self.reason or "contradiction", self.contradictions)


def run_engine(
    grid: SuperpositionGrid,
    model: AdjacencyModel,
    rng: np.random.Generator,
    *,
    max_iterations: Optional[int] = None,
    on_step: Optional[StepCallback] = None,
) -> EngineRc:
    """
    Drive grid to a resolved state or a reported failure.

    Args:
        grid: freshly seeded grid; mutated in place
        model: adjacency rules for the grid's fingerprints
        rng: the only randomness source (tie-break + weighted draw)
        max_iterations: optional cap on collapses
        on_step: called as on_step(step, x, y, fingerprint, grid) after
            each collapse + propagate

    Returns:
        EngineRc; contradictions are reported here, not raised
    """
    if max_iterations is not None and max_iterations < 1:
        raise ValueError(f"max_iterations must be positive, got {max_iterations}")

    steps = 0
    reason: Optional[FailReason] = None

    while True:
        picked = grid.select_cell(rng)
        if picked is None:
            break

        if max_iterations is not None and steps >= max_iterations:
            reason = "iteration_cap"
            break

        x, y = picked
        fp = grid.collapse(x, y, rng)
        prc = grid.propagate(x, y, fp, model)
        steps += 1

        logger.debug("step %d: collapsed (%d, %d) to %s", steps, x, y, fp[:8])
        for cx, cy in prc.contradicted:
            logger.debug("  contradiction at (%d, %d) from (%d, %d)", cx, cy, x, y)

        if on_step is not None:
            on_step(steps, x, y, fp, grid)

    contradictions = [asdict(c) for c in grid.contradictions()]
    if reason is None and not grid.is_resolved():
        reason = "contradiction"
    status: EngineStatus = "done" if reason is None else "failed"

    rc = EngineRc(
        status=status,
        reason=reason,
        steps=steps,
        width=grid.width,
        height=grid.height,
        state_counts=grid.state_counts(),
        contradictions=contradictions,
        grid_hash=hash_fingerprint_grid(grid.fingerprints()),
    )

    if status == "done":
        logger.info("Resolved %dx%d grid in %d step(s)", grid.width, grid.height, steps)
    else:
        logger.info(
            "Generation failed (%s) after %d step(s): %d contradicted cell(s)",
            reason, steps, len(contradictions),
        )
    return rc
