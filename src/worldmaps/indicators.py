"""Indicator loader for World Bank spreadsheet exports.

World Bank indicator downloads carry a few metadata rows above the header
and one column per year. This module reads those exports and reshapes them
into long format with one row per country and year.
"""

import os
import re
from typing import List

import pandas as pd

from worldmaps.exceptions import SchemaMismatchError, SourceFileError
from worldmaps.logging_config import create_logger
from worldmaps.quality_metrics import assert_unique_grain

logger = create_logger(__name__)

YEAR_PATTERN = re.compile(r"^\d{4}$")

# World Bank export column -> long-format column
KEY_COLUMNS = {
    "Country Name": "country_name",
    "Country Code": "country_code",
}

EXCEL_SHEET = "Data"


def _normalize_header(column) -> str:
    # Excel readers may hand back year headers as numbers
    if isinstance(column, float) and column.is_integer():
        column = int(column)
    return str(column).strip()


def read_indicator_source(path: str, skiprows: int = 3) -> pd.DataFrame:
    """Read a World Bank indicator export.

    Args:
        path: Path to a .csv, .xls or .xlsx export
        skiprows: Metadata rows above the header row

    Returns:
        The raw wide table with normalized string headers

    Raises:
        SourceFileError: If the file is missing, unreadable or of an
            unsupported type
    """
    if not os.path.isfile(path):
        raise SourceFileError(f"Indicator source not found: {path}")

    extension = os.path.splitext(path)[1].lower()
    try:
        if extension == ".csv":
            frame = pd.read_csv(path, skiprows=skiprows)
        elif extension in (".xls", ".xlsx"):
            frame = pd.read_excel(path, sheet_name=EXCEL_SHEET, skiprows=skiprows)
        else:
            raise SourceFileError(
                f"Unsupported indicator source type '{extension}': {path}"
            )
    except SourceFileError:
        raise
    except Exception as e:
        raise SourceFileError(f"Unable to read indicator source {path}: {e}") from e

    frame.columns = [_normalize_header(c) for c in frame.columns]
    logger.info(f"Read {len(frame)} rows x {len(frame.columns)} columns from {path}")
    return frame


def year_columns(frame: pd.DataFrame) -> List[str]:
    """Return the columns whose header is a 4-digit year."""
    return [c for c in frame.columns if YEAR_PATTERN.match(str(c))]


def reshape_wide_to_long(frame: pd.DataFrame, value_name: str = "value") -> pd.DataFrame:
    """Reshape a wide export to one row per (country, year).

    Columns that are neither a join key nor a 4-digit year are metadata
    (indicator name/code, trailing blanks) and are dropped.

    Args:
        frame: Wide table as returned by read_indicator_source
        value_name: Name of the value column in the output

    Returns:
        DataFrame with country_name, country_code, year and value_name

    Raises:
        SchemaMismatchError: If key columns or year columns are missing
        DuplicateKeyError: If a (country_code, year) pair repeats
    """
    missing = [c for c in KEY_COLUMNS if c not in frame.columns]
    if missing:
        raise SchemaMismatchError(f"Indicator source is missing key columns: {missing}")

    years = year_columns(frame)
    if not years:
        raise SchemaMismatchError("Indicator source has no 4-digit year columns")

    dropped = [c for c in frame.columns if c not in KEY_COLUMNS and c not in years]
    if dropped:
        logger.debug(f"Dropping metadata columns: {dropped}")

    long = (
        frame[list(KEY_COLUMNS) + years]
        .rename(columns=KEY_COLUMNS)
        .melt(
            id_vars=list(KEY_COLUMNS.values()),
            var_name="year",
            value_name=value_name,
        )
    )
    long[value_name] = pd.to_numeric(long[value_name], errors="coerce")
    long = long.dropna(subset=[value_name, "country_code"])
    long["year"] = long["year"].astype(int)
    long["country_code"] = long["country_code"].astype(str).str.strip().str.upper()
    long = long.sort_values(["country_code", "year"]).reset_index(drop=True)

    assert_unique_grain(long, dataset_name=value_name)
    return long


def load_indicator(path: str, value_name: str, skiprows: int = 3) -> pd.DataFrame:
    """Read one indicator export and return it in long format."""
    logger.info(f"📥 Loading indicator '{value_name}' from {path}")
    long = reshape_wide_to_long(read_indicator_source(path, skiprows), value_name)
    logger.info(
        f"   {value_name}: {len(long)} records for "
        f"{long['country_code'].nunique()} countries"
    )
    return long
