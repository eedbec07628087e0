#!/usr/bin/env python3
# tilewfc/cli.py
# Command-line entry point: tilewfc <input.png> [options]

"""
Exit codes:
    0: output written
    1: generation failed (contradiction or iteration cap); no output written
    2: I/O, decode or configuration error
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from tilewfc.config import DEFAULT_HEIGHT, DEFAULT_OUTPUT, DEFAULT_TILE_SIZE, DEFAULT_WIDTH, WfcConfig
from tilewfc.io.image import load_raster, save_raster
from tilewfc.io.save import write_jsonl
from tilewfc.op.errors import GenerationFailed, SourceDecodeError
from tilewfc.op.receipts import aggregate
from tilewfc.runner import run_wfc

EXIT_OK = 0
EXIT_GENERATION_FAILED = 1
EXIT_IO = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tilewfc",
        description="Generate a tiled image that locally resembles INPUT (Wave Function Collapse)",
    )
    parser.add_argument("input", help="Source image (PNG or anything Pillow decodes)")
    parser.add_argument("-N", "--tile-size", type=int, default=DEFAULT_TILE_SIZE,
                        help="Size of each tile in input (NxN pixels)")
    parser.add_argument("-W", "--width", type=int, default=DEFAULT_WIDTH,
                        help="Output width in tiles")
    parser.add_argument("-H", "--height", type=int, default=DEFAULT_HEIGHT,
                        help="Output height in tiles")
    parser.add_argument("-s", "--seed", type=int, default=None,
                        help="Random seed for a reproducible run")
    parser.add_argument("--max-iterations", type=int, default=None,
                        help="Stop after this many collapses")
    parser.add_argument("-o", "--output", default=DEFAULT_OUTPUT, help="Output image path")
    parser.add_argument("--receipts", default=None, help="Append the run receipt to this JSONL file")
    parser.add_argument("--trace", action="store_true", help="Print the entropy map after every step")
    parser.add_argument("--log-level", default="warning",
                        choices=["debug", "info", "warning", "error"])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = WfcConfig(
            tile_size=args.tile_size,
            width=args.width,
            height=args.height,
            seed=args.seed,
            max_iterations=args.max_iterations,
            output=args.output,
            receipts=args.receipts,
            trace=args.trace,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_IO

    try:
        raster = load_raster(args.input)
    except (OSError, SourceDecodeError) as e:
        print(f"Cannot read {args.input}: {e}", file=sys.stderr)
        return EXIT_IO

    try:
        output, run_rc = run_wfc(raster, config)
    except ValueError as e:
        print(f"Cannot generate from {args.input}: {e}", file=sys.stderr)
        return EXIT_IO

    catalog = run_rc.sections["catalog"]
    print(f"Tiles: {catalog.tile_count} distinct from {catalog.block_count} block(s) of {config.tile_size}px")
    if catalog.excluded_px != (0, 0):
        rows, cols = catalog.excluded_px
        print(f"Note: excluded trailing {rows} pixel row(s) and {cols} pixel column(s) (not a multiple of {config.tile_size})")
    print(f"Seed: {run_rc.final['seed']}")

    if config.receipts:
        try:
            write_jsonl(config.receipts, [aggregate(run_rc)], append=True)
        except OSError as e:
            print(f"Cannot write receipts {config.receipts}: {e}", file=sys.stderr)
            return EXIT_IO

    engine = run_rc.sections["engine"]
    try:
        engine.raise_for_status()
    except GenerationFailed as e:
        print(f"✗ {e} after {engine.steps} step(s)", file=sys.stderr)
        for c in e.contradictions:
            if c.get("fingerprint"):
                print(
                    f"  contradiction at ({c['x']}, {c['y']}): tile {c['fingerprint'][:8]} "
                    f"collapsed at ({c['source_x']}, {c['source_y']}) allows nothing {c['direction']}",
                    file=sys.stderr,
                )
            else:
                print(f"  contradiction at ({c['x']}, {c['y']})", file=sys.stderr)
        print("Retry with a different --seed.", file=sys.stderr)
        return EXIT_GENERATION_FAILED

    try:
        save_raster(config.output, output)
    except (OSError, ValueError) as e:
        print(f"Cannot write {config.output}: {e}", file=sys.stderr)
        return EXIT_IO

    print(f"✓ Resolved {config.width}x{config.height} grid in {engine.steps} step(s) -> {config.output}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
