#!/usr/bin/env python3
# tilewfc/op/grid.py
# Superposition grid: entropy ranking, cell selection, collapse, propagation

"""
Each cell holds the fingerprints (with weights) still possible there.

Frozen semantics:
- Cell state: size >= 2 UNDETERMINED, size == 1 COLLAPSED, size == 0 CONTRADICTION
- Entropy = size - 1, defined only for size >= 1
- Selection: min entropy over UNDETERMINED cells, uniform tie-break via rng
  over ties in row-major order; contradicted cells are never selected
- Collapse: weighted draw (cumulative weights + one rng draw + binary search)
- Propagation: ONE HOP. Each in-bounds neighbor of the collapsed cell is
  intersected with the collapsed tile's rules in that direction; survivors
  take the rule weight (no merge with the old weight). No cascade.
- Candidate sets only ever shrink.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple
import numpy as np

from tilewfc.op.adjacency import AdjacencyModel
from tilewfc.op.catalog import TileCatalog
from tilewfc.op.direction import DIRECTIONS, Direction
from tilewfc.op.errors import ContradictionError, OutOfBounds


class CellState(str, Enum):
    UNDETERMINED = "undetermined"
    COLLAPSED = "collapsed"
    CONTRADICTION = "contradiction"


@dataclass
class ContradictionReport:
    """
    Why a cell ran out of candidates.

    (source_x, source_y) is the collapsed cell whose rules emptied (x, y);
    direction points from the source to this cell; fingerprint is the
    source's collapsed tile.
    """
    x: int
    y: int
    source_x: int
    source_y: int
    direction: str
    fingerprint: str


class SuperpositionCell:
    """Candidate fingerprints for one grid position, fingerprint -> weight."""

    __slots__ = ("candidates", "trigger")

    def __init__(self, candidates: Dict[str, int]):
        self.candidates: Dict[str, int] = dict(candidates)
        self.trigger: Optional[ContradictionReport] = None

    @property
    def size(self) -> int:
        return len(self.candidates)

    @property
    def state(self) -> CellState:
        n = len(self.candidates)
        if n == 0:
            return CellState.CONTRADICTION
        if n == 1:
            return CellState.COLLAPSED
        return CellState.UNDETERMINED

    def is_collapsed(self) -> bool:
        return len(self.candidates) == 1

    def is_contradiction(self) -> bool:
        return not self.candidates

    def entropy(self) -> int:
        """
        Candidate count minus one.

        Raises:
            ContradictionError: if the cell has no candidates
        """
        if not self.candidates:
            raise ContradictionError(detail="entropy is undefined for an empty cell")
        return len(self.candidates) - 1

    @property
    def fingerprint(self) -> Optional[str]:
        """The resolved fingerprint, or None unless collapsed."""
        if len(self.candidates) != 1:
            return None
        return next(iter(self.candidates))

    def restrict(self, allowed: Dict[str, int]) -> int:
        """
        Keep only candidates named in allowed, taking allowed's weights.

        Iteration follows the cell's own order so results do not depend on
        rule order. Returns the number of candidates removed.
        """
        before = len(self.candidates)
        self.candidates = {fp: allowed[fp] for fp in self.candidates if fp in allowed}
        return before - len(self.candidates)

    def __repr__(self) -> str:
        return f"SuperpositionCell({self.state.value}, size={self.size})"


@dataclass
class PropagateRc:
    """
    One propagation step.

    narrowed: (x, y, size_before, size_after) for every visited neighbor
    contradicted: neighbors that became empty in this step
    """
    source: Tuple[int, int]
    fingerprint: str
    narrowed: List[Tuple[int, int, int, int]] = field(default_factory=list)
    contradicted: List[Tuple[int, int]] = field(default_factory=list)


class SuperpositionGrid:
    """
    width x height cells, row-major, addressed by (x, y).
    """

    def __init__(self, width: int, height: int, candidates: Dict[str, int]):
        if width < 1 or height < 1:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self._cells = [SuperpositionCell(candidates) for _ in range(width * height)]

    @classmethod
    def from_catalog(cls, catalog: TileCatalog, width: int, height: int) -> "SuperpositionGrid":
        """Every cell starts with every catalog tile at its catalog weight."""
        return cls(width, height, catalog.weights())

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def at(self, x: int, y: int) -> SuperpositionCell:
        """
        Raises:
            OutOfBounds: outside [0, width) x [0, height)
        """
        if not self.in_bounds(x, y):
            raise OutOfBounds(x, y, self.width, self.height)
        return self._cells[y * self.width + x]

    def index_to_xy(self, i: int) -> Tuple[int, int]:
        return i % self.width, i // self.width

    def __iter__(self) -> Iterator[Tuple[int, int, SuperpositionCell]]:
        """Yield (x, y, cell) in row-major order."""
        for i, cell in enumerate(self._cells):
            x, y = self.index_to_xy(i)
            yield x, y, cell

    def neighbors(self, x: int, y: int) -> Iterator[Tuple[Direction, int, int]]:
        """In-bounds (direction, nx, ny) around (x, y)."""
        for d in DIRECTIONS:
            nx, ny = d.step(x, y)
            if self.in_bounds(nx, ny):
                yield d, nx, ny

    # ------------------------------------------------------------------
    # Selection / collapse / propagation
    # ------------------------------------------------------------------

    def select_cell(self, rng: np.random.Generator) -> Optional[Tuple[int, int]]:
        """
        Pick the lowest-entropy undetermined cell, ties uniformly at random.

        Returns:
            (x, y), or None if no undetermined cell remains
        """
        best: Optional[int] = None
        ties: List[int] = []
        for i, cell in enumerate(self._cells):
            if cell.state is not CellState.UNDETERMINED:
                continue
            e = cell.entropy()
            if best is None or e < best:
                best = e
                ties = [i]
            elif e == best:
                ties.append(i)

        if not ties:
            return None
        pick = ties[int(rng.integers(len(ties)))]
        return self.index_to_xy(pick)

    def collapse(self, x: int, y: int, rng: np.random.Generator) -> str:
        """
        Resolve (x, y) to one candidate, drawn with probability weight / total.

        Returns:
            the chosen fingerprint

        Raises:
            OutOfBounds: if (x, y) is outside the grid
            ContradictionError: if the cell has no candidates
        """
        cell = self.at(x, y)
        if cell.is_contradiction():
            raise ContradictionError(x, y, "cannot collapse an empty cell")

        fps = list(cell.candidates)
        cum = np.cumsum(np.fromiter(cell.candidates.values(), dtype=np.int64, count=len(fps)))
        total = int(cum[-1])
        if total < 1:
            raise ContradictionError(x, y, f"non-positive total weight {total}")

        r = int(rng.integers(total))
        i = int(np.searchsorted(cum, r, side="right"))
        chosen = fps[i]
        cell.candidates = {chosen: cell.candidates[chosen]}
        return chosen

    def propagate(self, x: int, y: int, fingerprint: str, model: AdjacencyModel) -> PropagateRc:
        """
        Restrict the immediate neighbors of (x, y) by fingerprint's rules.

        Collapsed neighbors are restricted too, so two incompatible collapsed
        tiles side by side surface as a contradiction. Does not cascade.

        Raises:
            UnknownFingerprint: if fingerprint is not in model
        """
        rc = PropagateRc(source=(x, y), fingerprint=fingerprint)
        for d, nx, ny in self.neighbors(x, y):
            allowed = model.allowed(fingerprint, d)
            cell = self._cells[ny * self.width + nx]
            before = cell.size
            cell.restrict(allowed)
            rc.narrowed.append((nx, ny, before, cell.size))
            if before > 0 and cell.is_contradiction():
                cell.trigger = ContradictionReport(
                    x=nx, y=ny, source_x=x, source_y=y,
                    direction=d.name, fingerprint=fingerprint,
                )
                rc.contradicted.append((nx, ny))
        return rc

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def state_counts(self) -> Dict[str, int]:
        counts = {s.value: 0 for s in CellState}
        for cell in self._cells:
            counts[cell.state.value] += 1
        return counts

    def is_resolved(self) -> bool:
        return all(cell.is_collapsed() for cell in self._cells)

    def contradictions(self) -> List[ContradictionReport]:
        """Reports for every empty cell, row-major."""
        out = []
        for x, y, cell in self:
            if cell.is_contradiction():
                out.append(cell.trigger or ContradictionReport(x, y, -1, -1, "", ""))
        return out

    def fingerprints(self) -> np.ndarray:
        """(height, width) object array of resolved fingerprints, None where unresolved."""
        out = np.empty((self.height, self.width), dtype=object)
        for x, y, cell in self:
            out[y, x] = cell.fingerprint
        return out

    def entropy_map(self) -> np.ndarray:
        """(height, width) int array of entropies, -1 for contradicted cells."""
        out = np.empty((self.height, self.width), dtype=np.int64)
        for x, y, cell in self:
            out[y, x] = -1 if cell.is_contradiction() else cell.entropy()
        return out
