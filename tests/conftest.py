"""Pytest configuration and shared fixtures for the worldmaps tests.

This module provides fixtures for:
- Synthetic World Bank indicator exports
- In-memory boundary GeoDataFrames
- Zipped shapefile archives
- Temporary file management
"""

import math
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, Generator

import geopandas as gpd
import matplotlib
import pandas as pd
import pytest
from shapely.geometry import Polygon, box

# Tests render to files only
matplotlib.use("Agg")


# ============================================================================
# Temporary File Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for testing.

    Yields:
        Path to temporary directory
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Indicator Fixtures
# ============================================================================

WB_METADATA_LINES = [
    '"Data Source","World Development Indicators"',
    '"Last Updated Date","2016-07-01"',
    '"Note","synthetic test export"',
]


@pytest.fixture(scope="function")
def write_indicator_csv() -> Callable[[Path, pd.DataFrame], Path]:
    """Return a writer that saves a frame in World Bank CSV export layout.

    The file carries three metadata lines above the header row.
    """

    def _write(path: Path, frame: pd.DataFrame) -> Path:
        with open(path, "w", newline="") as fh:
            fh.write("\n".join(WB_METADATA_LINES) + "\n")
            frame.to_csv(fh, index=False)
        return path

    return _write


def _wide_frame(indicator_name: str, indicator_code: str, values: dict) -> pd.DataFrame:
    rows = []
    for (name, code), by_year in values.items():
        row = {
            "Country Name": name,
            "Country Code": code,
            "Indicator Name": indicator_name,
            "Indicator Code": indicator_code,
        }
        row.update(by_year)
        rows.append(row)
    frame = pd.DataFrame(rows)
    # World Bank CSVs end every row with a comma
    frame["Unnamed: 6"] = None
    return frame


@pytest.fixture(scope="function")
def sample_gdp_wide() -> pd.DataFrame:
    """Wide GDP per capita export for France, Germany, Antarctica and World."""
    return _wide_frame(
        "GDP per capita (current US$)",
        "NY.GDP.PCAP.CD",
        {
            ("France", "FRA"): {"2014": 42955.2, "2015": 36526.8},
            ("Germany", "DEU"): {"2014": 47902.6, "2015": 41176.9},
            ("Antarctica", "ATA"): {"2014": 500.0, "2015": 510.0},
            ("World", "WLD"): {"2014": 10950.1, "2015": 10158.3},
        },
    )


@pytest.fixture(scope="function")
def sample_life_exp_wide() -> pd.DataFrame:
    """Wide life expectancy export; Germany has no 2014 value."""
    return _wide_frame(
        "Life expectancy at birth, total (years)",
        "SP.DYN.LE00.IN",
        {
            ("France", "FRA"): {"2014": 82.6, "2015": 82.3},
            ("Germany", "DEU"): {"2014": math.nan, "2015": 80.6},
            ("Antarctica", "ATA"): {"2014": 60.0, "2015": 61.0},
            ("World", "WLD"): {"2014": 71.6, "2015": 71.9},
        },
    )


@pytest.fixture(scope="function")
def indicator_sources(
    temp_dir: Path, write_indicator_csv, sample_gdp_wide, sample_life_exp_wide
) -> dict:
    """Write both sample exports and return their paths."""
    return {
        "gdp": write_indicator_csv(temp_dir / "gdp.csv", sample_gdp_wide),
        "life_exp": write_indicator_csv(temp_dir / "life_exp.csv", sample_life_exp_wide),
    }


@pytest.fixture(scope="function")
def long_gdp() -> pd.DataFrame:
    return pd.DataFrame({
        "country_name": ["France", "France", "Germany", "World"],
        "country_code": ["FRA", "FRA", "DEU", "WLD"],
        "year": [2014, 2015, 2015, 2015],
        "gdp_per_cap": [42955.2, 36526.8, 41176.9, 10158.3],
    })


@pytest.fixture(scope="function")
def long_life_exp() -> pd.DataFrame:
    return pd.DataFrame({
        "country_name": ["France", "France", "World"],
        "country_code": ["FRA", "FRA", "WLD"],
        "year": [2014, 2015, 2015],
        "life_exp": [82.6, 82.3, 71.9],
    })


# ============================================================================
# Geometry Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def sample_boundaries() -> gpd.GeoDataFrame:
    """Country boundaries in Natural Earth layout.

    France carries the "-99" code Natural Earth ships, and Antarctica has
    no geometry.
    """
    return gpd.GeoDataFrame(
        {
            "ISO_A3": ["-99", "DEU", "ATA", "-99"],
            "FORMAL_EN": [
                "French Republic",
                "Federal Republic of Germany",
                "Antarctica",
                "Republic of Somaliland",
            ],
            "NAME": ["France", "Germany", "Antarctica", "Somaliland"],
        },
        geometry=[box(-4, 43, 7, 51), box(6, 47, 15, 55), None, box(43, 8, 49, 11)],
        crs="EPSG:4326",
    )


@pytest.fixture(scope="function")
def sample_land() -> gpd.GeoDataFrame:
    """A single land mass covering the sample countries."""
    return gpd.GeoDataFrame(
        {"featurecla": ["Land"]},
        geometry=[box(-10, 0, 50, 70)],
        crs="EPSG:4326",
    )


@pytest.fixture(scope="function")
def zip_shapefile(temp_dir: Path) -> Callable[[gpd.GeoDataFrame, str], Path]:
    """Return a writer that saves a GeoDataFrame as a zipped shapefile.

    Members are stored under a subfolder, as in Natural Earth downloads.
    """

    def _zip(frame: gpd.GeoDataFrame, name: str) -> Path:
        shp_dir = temp_dir / f"{name}_shp"
        shp_dir.mkdir()
        frame.to_file(shp_dir / f"{name}.shp")

        zip_path = temp_dir / f"{name}.zip"
        with zipfile.ZipFile(zip_path, "w") as zf:
            for member in sorted(shp_dir.iterdir()):
                zf.write(member, arcname=f"{name}/{member.name}")
        return zip_path

    return _zip


@pytest.fixture(scope="function")
def dense_circle() -> Polygon:
    """A circle approximated with many vertices."""
    return Polygon(
        [
            (10 * math.cos(2 * math.pi * i / 720), 10 * math.sin(2 * math.pi * i / 720))
            for i in range(720)
        ]
    )
