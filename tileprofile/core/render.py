# tileprofile/core/render.py
"""
Matplotlib debug PNG of one rendered tile: polygons filled per layer, lines
stroked, points marked with their rank. The tile square and buffer are outlined.
"""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Mapping

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
from shapely.geometry.base import BaseGeometry

from tileprofile.core.config import TILE_EXTENT_PX
from tileprofile.core.types import CandidateFeature, GeometryKind

RENDER_SIZE_PX = 768
DEFAULT_VIEW_BUFFER_PX = 64

LAYER_COLORS = {
    "landcover": "#9bc59d",
    "landuse": "#e0c9a6",
    "mountain_peak": "#7a4b2a",
    "route": "#c2185b",
    "landcover_name": "#2e7d32",
    "landuse_name": "#8d6e63",
}


def _new_fig(width_px: int, height_px: int) -> tuple[plt.Figure, plt.Axes]:
    fig = plt.figure(
        figsize=(width_px / 100.0, height_px / 100.0),
        dpi=100,
        constrained_layout=False,
    )
    ax = fig.add_axes([0, 0, 1, 1])
    ax.axis("off")
    return fig, ax


def _parts(geom: BaseGeometry) -> list[BaseGeometry]:
    if geom is None or geom.is_empty:
        return []
    if hasattr(geom, "geoms"):
        return [p for g in geom.geoms for p in _parts(g)]
    return [geom]


def _draw_feature(ax: plt.Axes, feature: CandidateFeature, color: str) -> None:
    for part in _parts(feature.geometry):
        if feature.kind is GeometryKind.POLYGON and part.geom_type == "Polygon":
            xy = np.array(part.exterior.coords)
            ax.fill(xy[:, 0], xy[:, 1], facecolor=color, edgecolor="#333333", linewidth=0.5, alpha=0.6)
        elif feature.kind is GeometryKind.LINE and part.geom_type == "LineString":
            xy = np.array(part.coords)
            ax.plot(xy[:, 0], xy[:, 1], color=color, linewidth=1.5)
        elif part.geom_type == "Point":
            ax.plot(part.x, part.y, marker="^", color=color, markersize=6)
            label = feature.attrs.get("name") or ""
            rank = feature.attrs.get("rank")
            if rank is not None:
                label = f"{label} #{rank}".strip()
            if label:
                ax.annotate(label, (part.x, part.y), xytext=(3, 3), textcoords="offset points", fontsize=6)


def render_tile_png(
    layers: Mapping[str, list[CandidateFeature]],
    output_path: str | Path,
    size_px: int = RENDER_SIZE_PX,
    view_buffer_px: float = DEFAULT_VIEW_BUFFER_PX,
) -> None:
    """Draw every layer in insertion order; y axis points down like tile pixels."""
    fig, ax = _new_fig(size_px, size_px)
    for name, features in layers.items():
        color = LAYER_COLORS.get(name, "#555555")
        for feature in features:
            _draw_feature(ax, feature, color)
    e = TILE_EXTENT_PX
    ax.plot([0, e, e, 0, 0], [0, 0, e, e, 0], color="black", linewidth=1)
    b = view_buffer_px
    ax.plot([-b, e + b, e + b, -b, -b], [-b, -b, e + b, e + b, -b], color="grey", linewidth=0.5, linestyle="--")
    ax.set_xlim(-b, e + b)
    ax.set_ylim(e + b, -b)
    ax.set_aspect("equal", adjustable="box")
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", message=".*constrained_layout.*", category=UserWarning)
        fig.savefig(output_path, dpi=100, facecolor="white")
    plt.close(fig)
