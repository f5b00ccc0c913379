#!/usr/bin/env python3
"""
Generate a synthetic GeoJSON source for exercising the tile profile.

Contents (around 7.75E 45.95N, centred near z12 tile 2136/1457):
- Peak clusters: dense groups of named and unnamed peaks with random elevations
- Landcover: wood/grass/farmland patches with low and high vertex counts, a glacier
- Landuse: residential blocks and a named quarry
- Route: one hiking relation over three member ways
"""

from __future__ import annotations

import json
import math
from pathlib import Path

import numpy as np
from shapely.geometry import LineString, Point, Polygon, mapping

OUTPUT_DIR = Path(__file__).parent.parent / "docs" / "assets" / "sources"

BASE_LON = 7.75
BASE_LAT = 45.95
# ~ 1 km in degrees at this latitude
KM_LON = 1.0 / (111.32 * math.cos(math.radians(BASE_LAT)))
KM_LAT = 1.0 / 110.57


def _lonlat(dx_km: float, dy_km: float) -> tuple[float, float]:
    return BASE_LON + dx_km * KM_LON, BASE_LAT + dy_km * KM_LAT


def _feature(fid: int, geom, tags: dict, **props) -> dict:
    return {
        "type": "Feature",
        "geometry": mapping(geom),
        "properties": {"id": fid, "tags": tags, **props},
    }


def blob(cx_km: float, cy_km: float, radius_km: float, n_vertices: int, rng: np.random.Generator) -> Polygon:
    """Irregular closed ring with n_vertices points."""
    angles = np.linspace(0, 2 * math.pi, n_vertices, endpoint=False)
    radii = radius_km * rng.uniform(0.85, 1.15, size=n_vertices)
    pts = [_lonlat(cx_km + r * math.cos(a), cy_km + r * math.sin(a)) for a, r in zip(angles, radii)]
    poly = Polygon(pts)
    return poly if poly.is_valid else poly.buffer(0)


def generate_peaks(rng: np.random.Generator, start_id: int) -> list[dict]:
    out = []
    fid = start_id
    for cluster in range(4):
        cx, cy = rng.uniform(-6, 6), rng.uniform(-6, 6)
        for i in range(12):
            dx, dy = rng.normal(0, 0.6, size=2)
            ele = int(rng.uniform(1800, 4600))
            tags = {"natural": "peak", "ele": str(ele)}
            if i % 3 == 0:
                tags["name"] = f"Punta {cluster}-{i}"
            if i == 5:
                tags["natural"] = "volcano"
            out.append(_feature(fid, Point(_lonlat(cx + dx, cy + dy)), tags))
            fid += 1
    return out


def generate_landcover(rng: np.random.Generator, start_id: int) -> list[dict]:
    out = []
    fid = start_id
    patches = [
        ({"natural": "wood"}, 40), ({"natural": "wood"}, 450), ({"landuse": "forest"}, 120),
        ({"landuse": "meadow"}, 60), ({"natural": "heath"}, 500), ({"landuse": "farmland"}, 30),
        ({"natural": "bare_rock"}, 80), ({"natural": "wetland", "wetland": "bog"}, 50),
    ]
    for i, (tags, n) in enumerate(patches):
        cx, cy = -5 + (i % 4) * 3.0, -3 + (i // 4) * 4.0
        out.append(_feature(fid, blob(cx, cy, 1.6, n, rng), tags))
        fid += 1
    out.append(_feature(fid, blob(2, 5, 2.5, 200, rng), {"natural": "glacier", "name": "Ghiacciaio"}))
    return out


def generate_landuse(rng: np.random.Generator, start_id: int) -> list[dict]:
    out = []
    fid = start_id
    for i in range(6):
        cx, cy = -7 + i * 0.9, -7 + rng.uniform(-0.2, 0.2)
        out.append(_feature(fid, blob(cx, cy, 0.45, 12, rng), {"landuse": "residential"}))
        fid += 1
    out.append(_feature(fid, blob(6, -6, 0.8, 20, rng), {"landuse": "quarry", "name": "Cava Grande"}))
    return out


def generate_route(start_id: int, relation_id: int) -> tuple[list[dict], dict]:
    ways = []
    members = []
    for i in range(3):
        pts = [_lonlat(-8 + i * 5 + t, math.sin(i + t) * 1.5) for t in np.linspace(0, 5, 12)]
        ways.append(_feature(start_id + i, LineString(pts), {"highway": "path"}))
        members.append(start_id + i)
    relation = {
        "id": relation_id,
        "tags": {
            "type": "route", "route": "hiking", "network": "rwn", "name": "Tour Monte Rosa",
            "ref": "TMR", "osmc:symbol": "red:red:white_bar", "ascent": "1,250 m",
        },
        "members": members,
    }
    return ways, relation


def main():
    rng = np.random.default_rng(1234)
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    features = []
    features += generate_peaks(rng, 1_000)
    features += generate_landcover(rng, 2_000)
    features += generate_landuse(rng, 3_000)
    ways, relation = generate_route(4_000, 9_000)
    features += ways
    data = {"type": "FeatureCollection", "features": features, "relations": [relation]}
    path = OUTPUT_DIR / "alps_sample.geojson"
    path.write_text(json.dumps(data), encoding="utf-8")
    print(f"Created: {path} ({len(features)} features, 1 relation)")


if __name__ == "__main__":
    main()
