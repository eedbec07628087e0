# tilewfc/op/errors.py
# Error kinds raised by the catalog, adjacency, grid and boundary I/O

from __future__ import annotations
from typing import Any, List, Optional


class WfcError(Exception):
    """Base class for all tilewfc errors."""


class OutOfBounds(WfcError, IndexError):
    """Grid access outside [0, width) x [0, height). Indicates a defect."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"out of bounds ({x}, {y}) for {width}x{height} grid")
        self.x = x
        self.y = y
        self.width = width
        self.height = height


class UnknownFingerprint(WfcError, KeyError):
    """Lookup of a fingerprint that was never registered. Indicates a defect."""

    def __init__(self, fingerprint: str, where: str = "catalog"):
        super().__init__(f"unknown fingerprint {fingerprint[:12]} in {where}")
        self.fingerprint = fingerprint
        self.where = where

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class ContradictionError(WfcError):
    """A cell with no candidates was asked to collapse or report entropy."""

    def __init__(self, x: Optional[int] = None, y: Optional[int] = None, detail: str = ""):
        where = f" at ({x}, {y})" if x is not None and y is not None else ""
        super().__init__(f"contradiction{where}" + (f": {detail}" if detail else ""))
        self.x = x
        self.y = y


class GenerationFailed(WfcError):
    """
    Generation ended with contradicted cells (or hit its iteration cap).

    contradictions: serialized ContradictionReport dicts from the engine receipt.
    """

    def __init__(self, reason: str, contradictions: Optional[List[dict[str, Any]]] = None):
        self.reason = reason
        self.contradictions = list(contradictions or [])
        super().__init__(f"generation failed ({reason}): {len(self.contradictions)} contradicted cell(s)")


class SourceDecodeError(WfcError):
    """The source image could not be decoded. The original error is chained."""

    def __init__(self, path: str, detail: str = ""):
        super().__init__(f"cannot decode {path}" + (f": {detail}" if detail else ""))
        self.path = path
