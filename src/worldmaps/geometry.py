"""Geometry loader for zipped boundary shapefiles.

Extracts a shapefile from its archive into a scratch directory, reads it
with geopandas, repairs known country-code defects and simplifies polygon
outlines so the rendered map stays light.
"""

import contextlib
import os
import tempfile
import zipfile
from typing import Dict, Iterator, Mapping, Optional

import geopandas as gpd

from worldmaps.exceptions import GeometryLoadError
from worldmaps.logging_config import create_logger

logger = create_logger(__name__)

DEFAULT_CRS = "EPSG:4326"

# Natural Earth ships "-99" as the ISO_A3 of these countries
CODE_CORRECTIONS: Dict[str, str] = {
    "French Republic": "FRA",
    "Kingdom of Norway": "NOR",
}


@contextlib.contextmanager
def extracted_archive(zip_path: str) -> Iterator[str]:
    """Extract a zip archive into a temporary directory.

    The directory and everything extracted into it are removed when the
    context exits, whether or not the body raised.

    :param zip_path: Path to the zip archive
    :raises GeometryLoadError: If the archive is missing or corrupt
    """
    if not os.path.isfile(zip_path):
        raise GeometryLoadError(f"Boundary archive not found: {zip_path}")

    with tempfile.TemporaryDirectory(prefix="worldmaps_") as tmpdir:
        try:
            with zipfile.ZipFile(zip_path, "r") as zf:
                zf.extractall(tmpdir)
        except zipfile.BadZipFile as e:
            raise GeometryLoadError(f"Corrupt boundary archive {zip_path}: {e}") from e
        logger.debug(f"Extracted {zip_path} into {tmpdir}")
        yield tmpdir


def find_shapefile(directory: str) -> str:
    """Return the path of the .shp member under directory.

    :raises GeometryLoadError: If no shapefile is present
    """
    matches = []
    for root, _, files in os.walk(directory):
        for file in files:
            if file.lower().endswith(".shp"):
                matches.append(os.path.join(root, file))

    if not matches:
        raise GeometryLoadError(f"No .shp file found in {directory}")

    matches.sort()
    if len(matches) > 1:
        logger.warning(
            f"Found {len(matches)} shapefiles, using {os.path.basename(matches[0])}"
        )
    return matches[0]


def apply_code_corrections(
    frame: gpd.GeoDataFrame,
    corrections: Mapping[str, str],
    name_field: str,
    code_field: str,
) -> gpd.GeoDataFrame:
    """Remap country codes through an exact-match lookup on a name field.

    Only records whose name equals a key of corrections are touched; all
    other records keep their code.

    Args:
        frame: Boundary records
        corrections: Formal name -> correct ISO3 code
        name_field: Attribute holding the formal name
        code_field: Attribute holding the ISO3 code

    Returns:
        A corrected copy of frame
    """
    for field in (name_field, code_field):
        if field not in frame.columns:
            raise GeometryLoadError(f"Boundary layer has no '{field}' attribute")

    corrected = frame.copy()
    names = corrected[name_field]
    mask = names.isin(list(corrections))
    corrected.loc[mask, code_field] = names[mask].map(corrections)

    for name in corrections:
        if not (names == name).any():
            logger.warning(f"Code correction for '{name}' matched no record")
    logger.info(f"Applied {int(mask.sum())} country-code correction(s)")
    return corrected


def simplify_geometries(frame: gpd.GeoDataFrame, tolerance: float) -> gpd.GeoDataFrame:
    """Reduce polygon vertex counts with topology-preserving Douglas-Peucker.

    :param tolerance: Maximum deviation in layer units; 0 leaves shapes as-is
    """
    if tolerance < 0:
        raise ValueError(f"Simplification tolerance must be non-negative, got {tolerance}")
    if tolerance == 0:
        return frame

    simplified = frame.copy()
    simplified["geometry"] = frame.geometry.simplify(tolerance, preserve_topology=True)
    logger.info(f"Simplified {len(frame)} geometries with tolerance {tolerance}")
    return simplified


def load_geometries(
    zip_path: str,
    tolerance: Optional[float] = None,
    corrections: Optional[Mapping[str, str]] = None,
    name_field: str = "FORMAL_EN",
    code_field: str = "ISO_A3",
) -> gpd.GeoDataFrame:
    """Load a zipped shapefile as a GeoDataFrame.

    Args:
        zip_path: Archive containing one shapefile
        tolerance: Simplification tolerance, skipped when None
        corrections: Name -> code lookup applied before simplification,
            skipped when None
        name_field: Formal-name attribute used by corrections
        code_field: Code attribute rewritten by corrections

    Returns:
        Boundary records; geometries may be null or empty

    Raises:
        GeometryLoadError: If the archive or shapefile cannot be read
    """
    logger.info(f"🗺️ Loading boundaries from {zip_path}")
    with extracted_archive(zip_path) as tmpdir:
        shp_path = find_shapefile(tmpdir)
        try:
            frame = gpd.read_file(shp_path)
        except Exception as e:
            raise GeometryLoadError(f"Unable to read shapefile {shp_path}: {e}") from e

    if frame.crs is None:
        logger.warning(f"No CRS in {os.path.basename(zip_path)}, assuming {DEFAULT_CRS}")
        frame = frame.set_crs(DEFAULT_CRS)

    if corrections:
        frame = apply_code_corrections(frame, corrections, name_field, code_field)

    if tolerance is not None:
        frame = simplify_geometries(frame, tolerance)

    logger.info(f"   Loaded {len(frame)} boundary records")
    return frame
