"""Map composer: joins boundaries to indicators for a single year."""

from typing import Sequence

import geopandas as gpd
import pandas as pd

from worldmaps.constants import GDP_PER_CAP, LIFE_EXP
from worldmaps.exceptions import CompositionError, SchemaMismatchError
from worldmaps.logging_config import create_logger

logger = create_logger(__name__)

ENTITY_COLUMNS = ["name", "code", GDP_PER_CAP, LIFE_EXP, "geometry"]


def empty_geometry_mask(frame: gpd.GeoDataFrame) -> pd.Series:
    """True where a row has a null or empty geometry."""
    return frame.geometry.isna() | frame.geometry.is_empty


def drop_empty_geometries(frame: gpd.GeoDataFrame, label: str = "layer") -> gpd.GeoDataFrame:
    """Return frame without null/empty geometries, logging what was dropped."""
    mask = empty_geometry_mask(frame)
    if mask.any():
        logger.info(f"Dropping {int(mask.sum())} empty geometries from {label}")
    return frame.loc[~mask].reset_index(drop=True)


def compose_countries(
    geometries: gpd.GeoDataFrame,
    merged: pd.DataFrame,
    year: int,
    code_field: str = "ISO_A3",
    value_columns: Sequence[str] = (GDP_PER_CAP, LIFE_EXP),
) -> gpd.GeoDataFrame:
    """Build the per-country table that gets drawn.

    Args:
        geometries: Boundary records with a country-code attribute
        merged: Merged indicator table from merge_indicators
        year: The single year to keep
        code_field: Country-code attribute of geometries
        value_columns: Indicator columns to carry into the output

    Returns:
        GeoDataFrame with name, code, the value columns and geometry; no row
        has an empty geometry

    Raises:
        SchemaMismatchError: If an input lacks a required column
        CompositionError: If an empty geometry survives the filter
    """
    if code_field not in geometries.columns:
        raise SchemaMismatchError(f"Boundary layer has no '{code_field}' attribute")
    required = ["country_name", "country_code", "year", *value_columns]
    missing = [c for c in required if c not in merged.columns]
    if missing:
        raise SchemaMismatchError(f"Merged indicator table is missing columns: {missing}")

    year_rows = merged.loc[merged["year"] == year]
    if year_rows.empty:
        logger.warning(f"No indicator rows for year {year}")

    joined = geometries[[code_field, "geometry"]].merge(
        year_rows, left_on=code_field, right_on="country_code", how="inner"
    )
    countries = joined.rename(columns={"country_name": "name", "country_code": "code"})
    countries = countries[["name", "code", *value_columns, "geometry"]]
    countries = gpd.GeoDataFrame(countries, geometry="geometry", crs=geometries.crs)

    if countries["code"].duplicated().any():
        duplicated = sorted(countries.loc[countries["code"].duplicated(), "code"].unique())
        logger.warning(f"Dissolving multi-part boundary records for {duplicated}")
        countries = countries.dissolve(by="code", aggfunc="first", as_index=False)
        countries = countries[["name", "code", *value_columns, "geometry"]]

    unmatched = len(year_rows) - countries["code"].nunique()
    if unmatched > 0:
        logger.info(f"{unmatched} indicator row(s) for {year} have no boundary record")

    countries = drop_empty_geometries(countries, label=f"countries {year}")
    if empty_geometry_mask(countries).any():
        raise CompositionError("Empty geometries remain after filtering")

    logger.info(f"🧩 Composed {len(countries)} countries for {year}")
    return countries
