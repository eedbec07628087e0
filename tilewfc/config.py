# tilewfc/config.py
# Run configuration

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np

DEFAULT_TILE_SIZE = 32
DEFAULT_WIDTH = 16
DEFAULT_HEIGHT = 16
DEFAULT_OUTPUT = "image.png"


@dataclass
class WfcConfig:
    """
    Options for one generation run.

    tile_size: edge length in pixels of a square tile
    width, height: output grid dimensions, in tiles
    seed: RNG seed; None draws a fresh one (see resolve_seed)
    max_iterations: optional cap on engine collapses
    output: PNG path for the rendered result
    receipts: optional JSONL path for the run receipt
    trace: print the entropy map after every engine step
    """
    tile_size: int = DEFAULT_TILE_SIZE
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    seed: Optional[int] = None
    max_iterations: Optional[int] = None
    output: str = DEFAULT_OUTPUT
    receipts: Optional[str] = None
    trace: bool = False

    def __post_init__(self):
        for name in ("tile_size", "width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.seed is not None and (isinstance(self.seed, bool) or self.seed < 0):
            raise ValueError(f"seed must be a non-negative integer, got {self.seed!r}")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations!r}")

    def resolve_seed(self) -> int:
        """The configured seed, or a fresh one that gets recorded for replay."""
        if self.seed is not None:
            return int(self.seed)
        # 63 bits keeps the seed a plain JSON-safe int
        return int(np.random.SeedSequence().entropy) & ((1 << 63) - 1)
