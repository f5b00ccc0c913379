# tileprofile/core/runner.py
"""
CLI entrypoint: load GeoJSON, run every layer over it, render one tile,
post-process per layer, export tile.json, run_metadata.json and optionally a debug PNG.

    python -m tileprofile.core.runner --input data/alps.geojson --tile 12/2138/1447 \
        --arg mountain_peak_radius=40 --png
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from tileprofile.core.config import MAX_ZOOM, Arguments, TileConfig
from tileprofile.core.io import load_source
from tileprofile.core.profile import Profile
from tileprofile.core.reporting import ensure_report_dir, write_run_metadata_json, write_tile_json

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Render one vector tile through the layer profile.")
    p.add_argument("--input", type=str, required=True, help="GeoJSON FeatureCollection (repo-relative)")
    p.add_argument("--tile", type=str, default=None, help="Tile as z/x/y (overrides --zoom/--x/--y)")
    p.add_argument("--zoom", type=int, default=MAX_ZOOM, help="Tile zoom")
    p.add_argument("--x", type=int, default=0, help="Tile column")
    p.add_argument("--y", type=int, default=0, help="Tile row")
    p.add_argument("--max-zoom", type=int, default=MAX_ZOOM, dest="max_zoom", help="Deepest zoom of the tileset")
    p.add_argument("--arg", action="append", default=[], dest="layer_args", help="Layer override key=value (repeatable)")
    p.add_argument("--workers", type=int, default=1, help="Threads used to process source features")
    p.add_argument("--run-name", type=str, default="run", dest="run_name", help="Reports subdir name")
    p.add_argument("--output-dir", type=str, default="reports", dest="output_dir", help="Output directory (repo-relative)")
    p.add_argument("--repo-root", type=str, default=None, dest="repo_root", help="Repo root (default: cwd)")
    p.add_argument("--png", action="store_true", help="Also write a debug PNG of the tile")
    return p.parse_args(argv)


def parse_tile(text: str) -> tuple[int, int, int]:
    """'z/x/y' -> (z, x, y); raises ValueError on anything else."""
    parts = text.strip().split("/")
    if len(parts) != 3:
        raise ValueError(f"Tile must be z/x/y, got {text!r}")
    z, x, y = (int(p) for p in parts)
    n = 2 ** z
    if z < 0 or not (0 <= x < n and 0 <= y < n):
        raise ValueError(f"Tile {text!r} is outside the z{z} grid")
    return z, x, y


def run(argv: list[str] | None = None) -> dict[str, Path]:
    """Run the CLI; returns the written artifact paths by name."""
    args = _parse_args(argv)
    repo_root = Path(args.repo_root).resolve() if args.repo_root else Path.cwd().resolve()
    zoom, x, y = parse_tile(args.tile) if args.tile else parse_tile(f"{args.zoom}/{args.x}/{args.y}")

    records, relations = load_source(args.input, repo_root)
    layer_args = Arguments.parse(args.layer_args)
    profile = Profile(config=TileConfig(max_zoom=args.max_zoom), args=layer_args)
    try:
        profile.preprocess_relations(relations)
        drafts = profile.process_all(records, workers=args.workers)
        logger.info("processed %d records into %d drafts", len(records), len(drafts))
        layers = profile.render(drafts, zoom, x, y)
    finally:
        profile.release()

    report_dir = ensure_report_dir(repo_root, args.run_name, output_dir=args.output_dir)
    out = {"tile": write_tile_json(report_dir, zoom, x, y, layers)}
    out["metadata"] = write_run_metadata_json(
        report_dir,
        args.run_name,
        args.input,
        (zoom, x, y),
        dict(layer_args.values),
        profile.stats.data_errors(),
        {name: len(features) for name, features in layers.items()},
    )
    if args.png:
        from tileprofile.core.render import render_tile_png
        out["png"] = report_dir / "tile.png"
        render_tile_png(layers, out["png"])
    return out


def main() -> None:
    # Configure logging from env (e.g. LOG_LEVEL=DEBUG for development)
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO))
    for path in run().values():
        print(path)


if __name__ == "__main__":
    main()
