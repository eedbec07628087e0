#!/usr/bin/env python3
# tilewfc/op/adjacency.py
# Adjacency rules learned from the source tile grid

"""
For every source cell and every direction whose neighbor is in bounds,
count (fingerprint, direction, neighbor_fingerprint).

Rule weights are cumulative occurrence counts and never decrease.
A (fingerprint, direction) pair with no recorded rules permits nothing
in that direction.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple
import numpy as np

from tilewfc.op.bytes import frame_params
from tilewfc.op.catalog import TileCatalog
from tilewfc.op.direction import DIRECTIONS, Direction
from tilewfc.op.errors import UnknownFingerprint
from tilewfc.op.hash import hash_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdjacencyRule:
    direction: Direction
    neighbor: str
    weight: int


class AdjacencyModel:
    """
    Rule table keyed by (fingerprint, direction) -> {neighbor: weight}.

    Only fingerprints passed at construction may be counted or queried.
    """

    def __init__(self, fingerprints: Iterable[str]):
        # dict keeps insertion order and gives O(1) membership
        self._known: Dict[str, None] = dict.fromkeys(fingerprints)
        self._rules: Dict[Tuple[str, Direction], Dict[str, int]] = {}

    def _check(self, fingerprint: str) -> None:
        if fingerprint not in self._known:
            raise UnknownFingerprint(fingerprint, "adjacency model")

    def count(self, fingerprint: str, direction: Direction, neighbor: str, n: int = 1) -> None:
        """Add n observations of neighbor lying in direction of fingerprint."""
        self._check(fingerprint)
        self._check(neighbor)
        bucket = self._rules.setdefault((fingerprint, Direction(direction)), {})
        bucket[neighbor] = bucket.get(neighbor, 0) + n

    def rules_for(self, fingerprint: str, direction: Direction) -> List[AdjacencyRule]:
        """
        Rules recorded for (fingerprint, direction), in first-observed order.

        Raises:
            UnknownFingerprint: if fingerprint is not part of the model
        """
        self._check(fingerprint)
        direction = Direction(direction)
        bucket = self._rules.get((fingerprint, direction), {})
        return [AdjacencyRule(direction, nfp, w) for nfp, w in bucket.items()]

    def allowed(self, fingerprint: str, direction: Direction) -> Dict[str, int]:
        """rules_for() as a neighbor -> weight mapping (a copy)."""
        self._check(fingerprint)
        return dict(self._rules.get((fingerprint, Direction(direction)), {}))

    def weight(self, fingerprint: str, direction: Direction, neighbor: str) -> int:
        """Observed count for one rule; 0 if never seen."""
        self._check(fingerprint)
        return self._rules.get((fingerprint, Direction(direction)), {}).get(neighbor, 0)

    @property
    def fingerprints(self) -> List[str]:
        return list(self._known)

    def rule_count(self) -> int:
        return sum(len(b) for b in self._rules.values())


@dataclass
class AdjacencyRc:
    """
    Adjacency receipt.

    rules_per_direction: direction name -> number of distinct rules
    dead_ends: (fingerprint, direction name) pairs with no rules
    """
    grid_shape: Tuple[int, int]
    rule_count: int
    observations: int
    rules_per_direction: Dict[str, int] = field(default_factory=dict)
    dead_ends: List[Tuple[str, str]] = field(default_factory=list)
    hash: str = ""


def _model_hash(model: AdjacencyModel) -> str:
    """BLAKE3 over rules in (catalog order, direction, first-observed) order."""
    parts = []
    for fp in model.fingerprints:
        for d in DIRECTIONS:
            for rule in model.rules_for(fp, d):
                parts.append(fp.encode() + frame_params(int(d), rule.weight) + rule.neighbor.encode())
    return hash_bytes(b"".join(parts))


def build_adjacency(source_grid: np.ndarray, catalog: TileCatalog) -> Tuple[AdjacencyModel, AdjacencyRc]:
    """
    Learn adjacency rules from a SourceTileGrid.

    Args:
        source_grid: (rows, cols) array of fingerprints from build_catalog
        catalog: the catalog those fingerprints belong to

    Returns:
        (model, receipt)

    Raises:
        UnknownFingerprint: if source_grid names a fingerprint missing from catalog
    """
    model = AdjacencyModel(catalog.fingerprints())
    rows, cols = source_grid.shape
    observations = 0

    for y in range(rows):
        for x in range(cols):
            fp = source_grid[y, x]
            if fp not in catalog:
                raise UnknownFingerprint(fp, "source grid")
            for d in DIRECTIONS:
                nx, ny = d.step(x, y)
                if 0 <= nx < cols and 0 <= ny < rows:
                    model.count(fp, d, source_grid[ny, nx])
                    observations += 1

    per_dir = {d.name: 0 for d in DIRECTIONS}
    dead_ends = []
    for fp in model.fingerprints:
        for d in DIRECTIONS:
            n = len(model.rules_for(fp, d))
            per_dir[d.name] += n
            if n == 0:
                dead_ends.append((fp, d.name))

    rc = AdjacencyRc(
        grid_shape=(rows, cols),
        rule_count=model.rule_count(),
        observations=observations,
        rules_per_direction=per_dir,
        dead_ends=dead_ends,
        hash=_model_hash(model),
    )

    logger.info(
        "Learned %d adjacency rule(s) from %d observation(s); %d dead end(s)",
        rc.rule_count, observations, len(dead_ends),
    )
    return model, rc
