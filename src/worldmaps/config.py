"""Configuration module for project settings and environment variables.

This module manages input locations, run parameters and output paths for
the worldmaps pipeline. Every setting can be overridden through an
environment variable of the same name.
"""

import math
import os

from worldmaps.exceptions import ConfigurationError
from worldmaps.logging_config import create_logger

logger = create_logger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


# get the local root directory
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))

DATALAKE_DIR = os.path.join(ROOT_DIR, "data")
RAW_DATA_DIR = os.getenv("RAW_DATA_DIR", os.path.join(DATALAKE_DIR, "raw"))
OUTPUT_DIR = os.getenv("OUTPUT_DIR", os.path.join(ROOT_DIR, "output"))

# World Bank indicator exports (Excel download, "Data" sheet)
GDP_SOURCE = os.getenv(
    "GDP_SOURCE", os.path.join(RAW_DATA_DIR, "API_NY.GDP.PCAP.CD_DS2_en_excel_v2.xls")
)
LIFE_EXP_SOURCE = os.getenv(
    "LIFE_EXP_SOURCE", os.path.join(RAW_DATA_DIR, "API_SP.DYN.LE00.IN_DS2_en_excel_v2.xls")
)

# Natural Earth boundary archives
COUNTRIES_ARCHIVE = os.getenv(
    "COUNTRIES_ARCHIVE", os.path.join(RAW_DATA_DIR, "ne_50m_admin_0_countries.zip")
)
LAND_ARCHIVE = os.getenv("LAND_ARCHIVE", os.path.join(RAW_DATA_DIR, "ne_50m_land.zip"))

# Attribute fields in the countries shapefile
COUNTRY_CODE_FIELD = os.getenv("COUNTRY_CODE_FIELD", "ISO_A3")
FORMAL_NAME_FIELD = os.getenv("FORMAL_NAME_FIELD", "FORMAL_EN")

# Run parameters
HEADER_SKIP_ROWS = _env_int("HEADER_SKIP_ROWS", 3)
TARGET_YEAR = _env_int("TARGET_YEAR", 2015)
SIMPLIFY_TOLERANCE = _env_float("SIMPLIFY_TOLERANCE", 0.05)

# Eckert IV
EQUAL_AREA_PROJECTION = os.getenv(
    "EQUAL_AREA_PROJECTION",
    "+proj=eck4 +lon_0=0 +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs",
)

OUTPUT_MAP_PATH = os.getenv(
    "OUTPUT_MAP_PATH", os.path.join(OUTPUT_DIR, f"world_indicators_{TARGET_YEAR}.png")
)
OUTPUT_DPI = _env_int("OUTPUT_DPI", 200)


def validate_config():
    """
    Validate run parameters and prepare the output directory.

    :raises ConfigurationError: If configuration is invalid
    """
    if HEADER_SKIP_ROWS < 0:
        raise ConfigurationError(
            f"HEADER_SKIP_ROWS must be non-negative, got {HEADER_SKIP_ROWS}"
        )

    if not 1000 <= TARGET_YEAR <= 9999:
        raise ConfigurationError(f"TARGET_YEAR must be a 4-digit year, got {TARGET_YEAR}")

    if not math.isfinite(SIMPLIFY_TOLERANCE) or SIMPLIFY_TOLERANCE < 0:
        raise ConfigurationError(
            f"SIMPLIFY_TOLERANCE must be a non-negative number, got {SIMPLIFY_TOLERANCE}"
        )

    if OUTPUT_DPI <= 0:
        raise ConfigurationError(f"OUTPUT_DPI must be positive, got {OUTPUT_DPI}")

    if not EQUAL_AREA_PROJECTION:
        raise ConfigurationError("EQUAL_AREA_PROJECTION is not configured")

    output_dir = os.path.dirname(OUTPUT_MAP_PATH) or "."
    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(
            f"Unable to create output directory at {output_dir}: {e}"
        )

    logger.info("Configuration validation successful")
