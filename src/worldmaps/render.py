"""Choropleth rendering.

Each indicator gets one panel. A panel stacks three layers in a single
equal-area projection:

1. every land mass in a neutral fill,
2. countries colored by their indicator bucket,
3. country-code labels sized by polygon area, with overlapping labels
   suppressed.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import geopandas as gpd
import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np

from worldmaps.classify import BreakScheme
from worldmaps.constants import (
    BORDER_COLOR,
    INDICATORS,
    LABEL_MAX_SIZE,
    LABEL_MIN_SIZE,
    LAND_COLOR,
    MISSING_COLOR,
)
from worldmaps.exceptions import SchemaMismatchError
from worldmaps.geometry import DEFAULT_CRS
from worldmaps.logging_config import create_logger

logger = create_logger(__name__)

PANEL_SIZE = (12, 6.5)


@dataclass(frozen=True)
class MapLayer:
    """One classified indicator panel."""

    column: str
    title: str
    scheme: BreakScheme


def build_layers(config: Mapping[str, Dict] = INDICATORS) -> List[MapLayer]:
    """Turn indicator configuration into validated map layers.

    :raises ClassificationError: If any break/label/palette entry is malformed
    """
    return [
        MapLayer(
            column=column,
            title=entry["title"],
            scheme=BreakScheme(entry["breaks"], entry["labels"], entry["palette"]),
        )
        for column, entry in config.items()
    ]


def project(frame: gpd.GeoDataFrame, projection: str) -> gpd.GeoDataFrame:
    if frame.crs is None:
        frame = frame.set_crs(DEFAULT_CRS)
    return frame.to_crs(projection)


def label_font_sizes(
    areas: Sequence[float],
    min_size: float = LABEL_MIN_SIZE,
    max_size: float = LABEL_MAX_SIZE,
) -> np.ndarray:
    """Scale font sizes with the square root of polygon area."""
    areas = np.clip(np.asarray(areas, dtype=float), 0.0, None)
    if areas.size == 0:
        return areas
    largest = np.sqrt(areas.max())
    if largest == 0:
        return np.full(areas.shape, min_size)
    return min_size + (max_size - min_size) * np.sqrt(areas) / largest


def place_labels(
    ax,
    frame: gpd.GeoDataFrame,
    label_column: str = "code",
    min_size: float = LABEL_MIN_SIZE,
    max_size: float = LABEL_MAX_SIZE,
) -> List:
    """Draw one label per polygon, largest first, skipping overlaps.

    Axis limits must already be set, since overlap is judged on the
    rendered text extents.

    Returns:
        The Text artists that were kept
    """
    if frame.empty:
        return []

    # Fixed aspect moves the axes box; measure in the drawn layout
    ax.apply_aspect()
    renderer = ax.figure.canvas.get_renderer()
    areas = frame.geometry.area.to_numpy()
    sizes = label_font_sizes(areas, min_size, max_size)
    points = frame.geometry.representative_point()

    placed = []
    boxes = []
    for i in np.argsort(-areas, kind="stable"):
        point = points.iloc[i]
        text = ax.text(
            point.x,
            point.y,
            str(frame[label_column].iloc[i]),
            fontsize=sizes[i],
            ha="center",
            va="center",
            color="#333333",
        )
        box = text.get_window_extent(renderer=renderer)
        if any(box.overlaps(other) for other in boxes):
            text.remove()
            continue
        boxes.append(box)
        placed.append(text)

    suppressed = len(frame) - len(placed)
    if suppressed:
        logger.debug(f"Suppressed {suppressed} overlapping labels")
    return placed


def _legend_handles(scheme: BreakScheme, show_missing: bool) -> List[mpatches.Patch]:
    handles = [
        mpatches.Patch(facecolor=color, edgecolor="#666666", linewidth=0.3, label=label)
        for label, color in zip(scheme.labels, scheme.colors)
    ]
    if show_missing:
        handles.append(
            mpatches.Patch(facecolor=MISSING_COLOR, edgecolor="#666666", linewidth=0.3, label="Missing")
        )
    return handles


def _draw_panel(ax, countries: gpd.GeoDataFrame, land: gpd.GeoDataFrame, layer: MapLayer) -> None:
    if layer.column not in countries.columns:
        raise SchemaMismatchError(f"Country table has no '{layer.column}' column")

    ax.set_facecolor("white")
    ax.set_aspect("equal")
    ax.set_axis_off()

    if not land.empty:
        land.plot(ax=ax, color=LAND_COLOR, edgecolor="none")

    classes = layer.scheme.classify_series(countries[layer.column])
    colors = [layer.scheme.color_for(c, MISSING_COLOR) for c in classes]
    if not countries.empty:
        countries.plot(ax=ax, color=colors, edgecolor=BORDER_COLOR, linewidth=0.2)

    bounds = [f.total_bounds for f in (land, countries) if not f.empty]
    if bounds:
        bounds = np.vstack(bounds)
        ax.set_xlim(bounds[:, 0].min(), bounds[:, 2].max())
        ax.set_ylim(bounds[:, 1].min(), bounds[:, 3].max())

    place_labels(ax, countries)

    ax.legend(
        handles=_legend_handles(layer.scheme, show_missing=bool(classes.isna().any())),
        title=layer.title,
        loc="lower left",
        fontsize=6,
        title_fontsize=7,
        frameon=False,
    )


def render_map(
    countries: gpd.GeoDataFrame,
    land: gpd.GeoDataFrame,
    layers: Sequence[MapLayer],
    output_path: str,
    projection: str,
    dpi: int = 200,
    title: Optional[str] = None,
) -> str:
    """Render one panel per layer and write the figure to output_path.

    Args:
        countries: Composed country table
        land: All land masses, drawn underneath
        layers: Panels to draw, top to bottom
        output_path: Image path; the format follows the extension
        projection: Equal-area projection applied to every layer
        dpi: Output resolution
        title: Optional figure title

    Returns:
        output_path
    """
    if not layers:
        raise ValueError("render_map needs at least one layer")

    countries = project(countries, projection)
    land = project(land, projection)

    fig, axes = plt.subplots(
        len(layers), 1, figsize=(PANEL_SIZE[0], PANEL_SIZE[1] * len(layers)), squeeze=False
    )
    try:
        for ax, layer in zip(axes[:, 0], layers):
            _draw_panel(ax, countries, land, layer)
        if title:
            fig.suptitle(title, fontsize=12)

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(fig)

    logger.info(f"🖼️ Wrote {len(layers)}-panel map to {output_path}")
    return output_path
