# tilewfc/io/save.py
# JSONL receipt log: write and load

from __future__ import annotations
import json
import os
from typing import Any


def write_jsonl(path: str, records: list[Any], append: bool = False) -> None:
    """
    Write list of objects as JSONL (one JSON object per line).

    append=True adds to an existing file, one run per line.
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "a" if append else "w") as f:
        for record in records:
            f.write(json.dumps(record, separators=(",", ":")) + "\n")


def load_jsonl(path: str) -> list[dict]:
    """Load JSONL file as list of records."""
    with open(path) as f:
        return [json.loads(line) for line in f if line.strip()]
