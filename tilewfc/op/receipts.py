# tilewfc/op/receipts.py
# Receipts kernel and environment fingerprinting

from __future__ import annotations
import json
import platform
import sys
from dataclasses import dataclass, asdict, field
from enum import Enum
from importlib import metadata
from typing import Any, Dict, Optional

import numpy as np

from .hash import hash_bytes


def _dist_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return "unknown"


@dataclass
class EnvRc:
    """
    Environment fingerprint.

    Two runs with the same seed must match on every hash; when they do not,
    a differing EnvRc separates an environment change from real
    nondeterminism.
    """
    platform: str
    endian: str
    py_version: str
    numpy_version: str
    blake3_version: str
    pillow_version: str
    build_flags_hash: str


def env_fingerprint() -> EnvRc:
    """Capture environment fingerprint for determinism checking."""
    build_info = {
        "py_version": sys.version,
        "implementation": platform.python_implementation(),
        "version_info": list(sys.version_info),
    }
    flags = hash_bytes(json.dumps(build_info, sort_keys=True).encode())

    return EnvRc(
        platform=platform.platform(),
        endian=sys.byteorder,
        py_version=platform.python_version(),
        numpy_version=np.__version__,
        blake3_version=_dist_version("blake3"),
        pillow_version=_dist_version("Pillow"),
        build_flags_hash=flags,
    )


@dataclass
class RunRc:
    """
    Root receipt for one generation run.

    sections: {config, catalog, adjacency, engine, render} receipts as plain dicts
    hashes: per-section BLAKE3 hashes
    table_hash: BLAKE3(concat(sorted(section + ':' + hash)))
    final: {status, shape, seed, output_hash}
    No timestamps (same seed -> identical receipt).
    """
    env: EnvRc
    sections: Dict[str, Any] = field(default_factory=dict)
    hashes: Dict[str, str] = field(default_factory=dict)
    table_hash: str = ""
    final: Dict[str, Any] = field(default_factory=dict)
    notes: Optional[Dict[str, Any]] = None


def to_plain(x: Any) -> Any:
    """Recursively convert dataclasses, enums, tuples and numpy scalars to JSON types."""
    if hasattr(x, "__dataclass_fields__"):
        return {k: to_plain(v) for k, v in asdict(x).items()}
    if isinstance(x, Enum):
        return x.name
    if isinstance(x, dict):
        return {str(k): to_plain(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [to_plain(v) for v in x]
    if isinstance(x, np.integer):
        return int(x)
    if isinstance(x, np.ndarray):
        return to_plain(x.tolist())
    return x


def section_hash(section: Any) -> str:
    """BLAKE3 of a section's canonical (sorted-key, compact) JSON."""
    payload = json.dumps(to_plain(section), sort_keys=True, separators=(",", ":"))
    return hash_bytes(payload.encode())


def seal(run: RunRc) -> RunRc:
    """Fill run.hashes and run.table_hash from run.sections."""
    run.hashes = {name: section_hash(sec) for name, sec in run.sections.items()}
    table = "".join(f"{k}:{run.hashes[k]}" for k in sorted(run.hashes))
    run.table_hash = hash_bytes(table.encode())
    return run


def aggregate(run: dict | RunRc) -> dict:
    """
    Convert nested receipts (dataclasses or dicts) to JSON-serializable dict.

    Args:
        run: RunRc or dict containing receipts

    Returns:
        dict: plain representation, ready for write_jsonl
    """
    return to_plain(run)


REPLAY_KEYS = ("seed", "status", "reason", "output_hash")


def diff_run_receipts(a: dict | RunRc, b: dict | RunRc) -> list[str]:
    """
    Compare two run receipts on what a replay must reproduce.

    Checked: final seed/status/reason/output_hash, table_hash, and the hash
    of every section. env is ignored; it may differ between machines.

    Returns:
        list of difference descriptions, empty when the runs match
    """
    a, b = to_plain(a), to_plain(b)
    diffs = []

    fa, fb = a.get("final", {}), b.get("final", {})
    for key in REPLAY_KEYS:
        if fa.get(key) != fb.get(key):
            diffs.append(f"final.{key}: {fa.get(key)!r} != {fb.get(key)!r}")

    if a.get("table_hash") != b.get("table_hash"):
        diffs.append(f"table_hash: {a.get('table_hash', '')[:12]} != {b.get('table_hash', '')[:12]}")

    ha, hb = a.get("hashes", {}), b.get("hashes", {})
    for name in sorted(set(ha) | set(hb)):
        if name not in ha:
            diffs.append(f"section {name}: only in B")
        elif name not in hb:
            diffs.append(f"section {name}: only in A")
        elif ha[name] != hb[name]:
            diffs.append(f"section {name}: {ha[name][:12]} != {hb[name][:12]}")

    return diffs
