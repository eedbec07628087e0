#!/usr/bin/env python3
"""
Render, I/O, Runner and CLI Tests

Tests:
1. Rendering the source grid reproduces the raster (minus excluded pixels)
2. Rendering an unresolved grid fails without producing pixels
3. Pillow load/save round-trip; decode and file errors
4. run_wfc: determinism of receipts; failed runs produce no raster
5. Console maps
6. Config validation
7. CLI exit codes: 0 success, 1 generation failure or iteration cap, 2 I/O
8. Receipt log and receipt diff
"""

import os
import tempfile
from pathlib import Path

import numpy as np
import pytest

from tilewfc.cli import main
from tilewfc.config import WfcConfig
from tilewfc.io.console import format_collapsed_map, format_entropy_map, format_source_map
from tilewfc.io.image import load_raster, save_raster
from tilewfc.io.render import render_grid
from tilewfc.io.save import load_jsonl, write_jsonl
from tilewfc.op.catalog import build_catalog
from tilewfc.op.errors import GenerationFailed, SourceDecodeError
from tilewfc.op.grid import SuperpositionGrid
from tilewfc.op.receipts import aggregate, diff_run_receipts
from tilewfc.runner import run_wfc

RED = [255, 0, 0, 255]
BLUE = [0, 0, 255, 255]


def checkerboard_raster(n: int = 2) -> np.ndarray:
    return np.array([[RED if (r + c) % 2 == 0 else BLUE for c in range(n)] for r in range(n)],
                    dtype=np.uint8)


def stripe_raster() -> np.ndarray:
    """One row, RED then BLUE: no vertical rules at all."""
    return np.array([[RED, BLUE]], dtype=np.uint8)


def test_render_source_grid_roundtrip():
    """render(source_grid) == raster cropped to the tiled area."""
    print("Testing source grid render round-trip...")

    rng = np.random.default_rng(11)
    raster = rng.integers(0, 256, size=(7, 9, 3), dtype=np.uint8)
    raster[0:2, 0:2] = raster[2:4, 4:6]  # one repeated tile

    catalog, source_grid, rc = build_catalog(raster, 2)
    out, render_rc = render_grid(source_grid, catalog)

    assert rc.excluded_px == (1, 1)
    assert out.shape == (6, 8, 3), f"Expected (6,8,3), got {out.shape}"
    assert np.array_equal(out, raster[:6, :8]), "Source render must reproduce the raster"
    assert render_rc.tiles_painted == 12

    print("  ✓ Source grid render reproduces the raster")


def test_render_unresolved_fails():
    """Any None cell -> GenerationFailed; nothing painted."""
    print("Testing unresolved render...")

    catalog, source_grid, _ = build_catalog(checkerboard_raster(), 1)
    partial = source_grid.copy()
    partial[1, 0] = None
    with pytest.raises(GenerationFailed) as excinfo:
        render_grid(partial, catalog)
    assert excinfo.value.contradictions == [{"x": 0, "y": 1}]

    print("  ✓ Unresolved grid not rendered")


def test_image_roundtrip(tmp_path):
    """save_raster then load_raster gives back RGBA pixels."""
    print("Testing image round-trip...")

    raster = checkerboard_raster(4)
    path = str(tmp_path / "nested" / "board.png")
    save_raster(path, raster)
    loaded = load_raster(path)

    assert loaded.shape == (4, 4, 4) and loaded.dtype == np.uint8
    assert np.array_equal(loaded, raster)

    gray = np.array([[0, 128], [255, 64]], dtype=np.uint8)
    gpath = str(tmp_path / "gray.png")
    save_raster(gpath, gray[:, :, np.newaxis])
    assert load_raster(gpath)[:, :, 0].tolist() == gray.tolist(), "Grayscale expands to RGBA"

    print("  ✓ Image round-trip works")


def test_image_errors(tmp_path):
    """Undecodable file -> SourceDecodeError with cause; missing file -> OSError."""
    print("Testing image errors...")

    bad = tmp_path / "bad.png"
    bad.write_bytes(b"definitely not an image")
    with pytest.raises(SourceDecodeError) as excinfo:
        load_raster(str(bad))
    assert excinfo.value.__cause__ is not None, "Original decode error must be chained"

    with pytest.raises(FileNotFoundError):
        load_raster(str(tmp_path / "missing.png"))

    print("  ✓ Image errors surfaced")


def test_run_wfc_determinism():
    """Same seed -> same hashes and output."""
    print("Testing run_wfc determinism...")

    config = WfcConfig(tile_size=1, width=4, height=3, seed=3)
    out1, rc1 = run_wfc(checkerboard_raster(4), config)
    out2, rc2 = run_wfc(checkerboard_raster(4), config)

    assert rc1.hashes == rc2.hashes, "Section hashes must match"
    assert rc1.table_hash == rc2.table_hash
    assert rc1.final == rc2.final
    assert rc1.final["seed"] == 3
    assert set(rc1.hashes) >= {"config", "catalog", "adjacency", "engine"}
    if out1 is not None:
        assert np.array_equal(out1, out2)
        assert out1.shape == (3, 4, 4)
        assert rc1.final["output_hash"] == rc1.sections["render"].output_hash

    plain = aggregate(rc1)
    assert plain["final"]["status"] == rc1.final["status"]
    assert isinstance(plain["sections"]["catalog"]["excluded_px"], list)

    print("  ✓ run_wfc is deterministic")


def test_run_wfc_failure_no_output():
    """Guaranteed contradiction -> output None, no render section."""
    print("Testing run_wfc failure...")

    config = WfcConfig(tile_size=1, width=2, height=2, seed=0)
    out, rc = run_wfc(stripe_raster(), config)

    assert out is None, "A failed run must not produce a raster"
    assert rc.final["status"] == "failed" and rc.final["reason"] == "contradiction"
    assert rc.final["output_hash"] is None
    assert "render" not in rc.sections
    assert rc.sections["engine"].contradictions

    print("  ✓ Failed run produces no raster")


def test_run_wfc_fresh_seed_recorded():
    """seed=None draws a seed and records it for replay."""
    print("Testing fresh seed recording...")

    raster = np.full((2, 2, 4), 7, dtype=np.uint8)
    out, rc = run_wfc(raster, WfcConfig(tile_size=1, width=2, height=2))
    seed = rc.final["seed"]
    assert isinstance(seed, int) and seed >= 0

    _, replay = run_wfc(raster, WfcConfig(tile_size=1, width=2, height=2, seed=seed))
    assert replay.table_hash == rc.table_hash, "Recorded seed must replay the run"

    print("  ✓ Fresh seed recorded")


def test_receipt_log_append(tmp_path):
    """write_jsonl appends one record per run; load_jsonl reads them back in order."""
    print("Testing receipt log...")

    path = str(tmp_path / "logs" / "runs.jsonl")
    write_jsonl(path, [{"run": 0}])
    write_jsonl(path, [{"run": 1}, {"run": 2}], append=True)
    assert [r["run"] for r in load_jsonl(path)] == [0, 1, 2]

    write_jsonl(path, [{"run": 9}])
    assert load_jsonl(path) == [{"run": 9}], "Without append the log is replaced"

    print("  ✓ Receipt log appends")


def test_diff_run_receipts():
    """Same seed -> no differences; another seed names the differing fields and sections."""
    print("Testing receipt diff...")

    raster = checkerboard_raster(4)
    _, rc1 = run_wfc(raster, WfcConfig(tile_size=1, width=4, height=3, seed=3))
    _, rc2 = run_wfc(raster, WfcConfig(tile_size=1, width=4, height=3, seed=3))
    _, rc3 = run_wfc(raster, WfcConfig(tile_size=1, width=4, height=3, seed=4))

    assert diff_run_receipts(rc1, rc2) == []
    assert diff_run_receipts(aggregate(rc1), aggregate(rc2)) == [], "Plain records compare the same"

    diffs = diff_run_receipts(rc1, rc3)
    assert "final.seed: 3 != 4" in diffs
    assert any(d.startswith("table_hash:") for d in diffs)
    assert any(d.startswith("section config:") for d in diffs), "Seed lives in the config section"
    assert not any(d.startswith("section catalog:") for d in diffs), "Same raster, same catalog"

    edited = aggregate(rc1)
    edited["env"] = {"platform": "elsewhere"}
    assert diff_run_receipts(aggregate(rc1), edited) == [], "env is not compared"
    del edited["hashes"]["engine"]
    assert "section engine: only in A" in diff_run_receipts(aggregate(rc1), edited)

    print("  ✓ Receipt diff names what changed")


def test_console_maps():
    """Source, entropy and collapsed maps."""
    print("Testing console maps...")

    catalog, source_grid, _ = build_catalog(checkerboard_raster(), 1)
    assert format_source_map(source_grid, catalog) == " 0 1\n 1 0"

    a, b = catalog.fingerprints()
    grid = SuperpositionGrid.from_catalog(catalog, 3, 1)
    grid.at(0, 0).restrict({b: 1})
    grid.at(2, 0).restrict({})
    assert format_entropy_map(grid) == "  0  1 xx"
    assert format_collapsed_map(grid, catalog) == "  1 ?? xx"

    print("  ✓ Console maps formatted")


def test_config_validation():
    """Non-positive sizes and bad seeds rejected."""
    print("Testing config validation...")

    assert WfcConfig().tile_size == 32
    assert (WfcConfig().width, WfcConfig().height) == (16, 16)
    for kwargs in [{"tile_size": 0}, {"width": -1}, {"height": 0}, {"seed": -5},
                   {"max_iterations": 0}, {"tile_size": True}]:
        with pytest.raises(ValueError):
            WfcConfig(**kwargs)
    assert WfcConfig(seed=9).resolve_seed() == 9

    print("  ✓ Config validation works")


def test_cli_success(tmp_path, capsys):
    """Single-tile source always resolves: exit 0, output written, receipt appended."""
    print("Testing CLI success...")

    src = str(tmp_path / "red.png")
    save_raster(src, np.full((5, 4, 4), 200, dtype=np.uint8))
    out = str(tmp_path / "out.png")
    receipts = str(tmp_path / "rc" / "run.jsonl")

    code = main([src, "-N", "2", "-W", "3", "-H", "2", "-s", "1", "-o", out, "--receipts", receipts])

    assert code == 0, f"Expected exit 0, got {code}"
    assert os.path.exists(out)
    assert load_raster(out).shape == (4, 6, 4)
    records = load_jsonl(receipts)
    assert len(records) == 1 and records[0]["final"]["status"] == "done"
    captured = capsys.readouterr()
    assert "excluded trailing 1 pixel row(s)" in captured.out

    print("  ✓ CLI success path works")


def test_cli_generation_failure(tmp_path, capsys):
    """Guaranteed contradiction: exit 1, no output, contradictions listed."""
    print("Testing CLI generation failure...")

    src = str(tmp_path / "stripe.png")
    save_raster(src, stripe_raster())
    out = str(tmp_path / "never.png")

    code = main([src, "-N", "1", "-W", "2", "-H", "2", "-s", "4", "-o", out])

    assert code == 1, f"Expected exit 1, got {code}"
    assert not os.path.exists(out), "No partial output on failure"
    err = capsys.readouterr().err
    assert "generation failed (contradiction)" in err
    assert "contradiction at" in err

    print("  ✓ CLI reports generation failure")


def test_cli_iteration_cap(tmp_path, capsys):
    """--max-iterations reached before the grid resolves: exit 1 with the cap named."""
    print("Testing CLI iteration cap...")

    src = str(tmp_path / "stripe.png")
    save_raster(src, stripe_raster())
    out = str(tmp_path / "never.png")

    code = main([src, "-N", "1", "-W", "2", "-H", "2", "-s", "0", "--max-iterations", "1", "-o", out])

    assert code == 1, f"Expected exit 1, got {code}"
    assert not os.path.exists(out)
    assert "generation failed (iteration_cap)" in capsys.readouterr().err

    print("  ✓ CLI reports the iteration cap")


def test_cli_io_errors(tmp_path):
    """Missing file, undecodable file, bad config, undersized raster: exit 2."""
    print("Testing CLI I/O errors...")

    assert main([str(tmp_path / "missing.png")]) == 2

    bad = tmp_path / "bad.png"
    bad.write_bytes(b"garbage")
    assert main([str(bad)]) == 2

    src = str(tmp_path / "tiny.png")
    save_raster(src, checkerboard_raster(2))
    assert main([src, "-N", "0"]) == 2
    assert main([src, "-N", "8"]) == 2, "Raster smaller than a tile"

    print("  ✓ CLI I/O errors exit 2")


def run_tests():
    print("\n" + "="*60)
    print("Render / I/O / Runner / CLI Tests")
    print("="*60 + "\n")

    test_render_source_grid_roundtrip()
    test_render_unresolved_fails()
    test_run_wfc_determinism()
    test_run_wfc_failure_no_output()
    test_run_wfc_fresh_seed_recorded()
    test_diff_run_receipts()
    test_console_maps()
    test_config_validation()
    with tempfile.TemporaryDirectory() as d:
        test_image_roundtrip(Path(d))
        test_image_errors(Path(d))
        test_receipt_log_append(Path(d))

    print("\n" + "="*60)
    print("✓ All render/io tests passed (run CLI tests under pytest)")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_tests()
