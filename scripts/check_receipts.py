#!/usr/bin/env python3
# scripts/check_receipts.py
# Compare two receipt logs written with `tilewfc --receipts`

"""
Record i of A is compared with record i of B on seed, status, reason,
output hash, table hash and every section hash. The env section is not
compared.

Usage:
    python scripts/check_receipts.py <a.jsonl> <b.jsonl>

Exit codes:
    0: receipts match
    1: receipts differ
    2: usage error
"""

from __future__ import annotations
import sys
from pathlib import Path

# Add project root to path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from tilewfc.io.save import load_jsonl
from tilewfc.op.receipts import diff_run_receipts


def main() -> int:
    if len(sys.argv) != 3:
        print("Usage: python scripts/check_receipts.py <a.jsonl> <b.jsonl>")
        return 2

    file_a, file_b = sys.argv[1], sys.argv[2]
    records_a = load_jsonl(file_a)
    records_b = load_jsonl(file_b)

    print(f"Comparing {file_a} ({len(records_a)} runs) with {file_b} ({len(records_b)} runs)")

    if len(records_a) != len(records_b):
        print(f"✗ RECEIPTS_DIFFER: run count mismatch ({len(records_a)} vs {len(records_b)})")
        return 1

    differing = 0
    for i, (rec_a, rec_b) in enumerate(zip(records_a, records_b)):
        diffs = diff_run_receipts(rec_a, rec_b)
        seed = rec_a.get("final", {}).get("seed")
        if diffs:
            differing += 1
            print(f"\n✗ run {i} (seed {seed}):")
            for diff in diffs:
                print(f"  {diff}")
        else:
            print(f"✓ run {i} (seed {seed}): {rec_a.get('final', {}).get('status')}")

    if differing:
        print(f"\n✗ RECEIPTS_DIFFER ({differing}/{len(records_a)} runs)")
        return 1

    print(f"\n✓ RECEIPTS_MATCH ({len(records_a)} runs)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
