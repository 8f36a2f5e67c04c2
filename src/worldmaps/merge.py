"""Indicator merger.

Joins any number of long-format indicator tables on their shared keys and
restricts the result to ISO 3166-1 alpha-3 country codes. World Bank exports
mix countries with regional and income aggregates ("WLD", "EAS", "HIC", ...);
those codes are not in the ISO table and fall out here.
"""

from typing import Iterable, List, Optional, Sequence

import duckdb
import pandas as pd
import pycountry

from worldmaps.exceptions import SchemaMismatchError
from worldmaps.logging_config import create_logger
from worldmaps.quality_metrics import assert_unique_grain

logger = create_logger(__name__)

JOIN_KEYS = ("country_name", "country_code", "year")

# Number of dropped codes echoed in the log
DROPPED_SAMPLE_SIZE = 10


def iso3166_reference() -> pd.DataFrame:
    """Return the ISO 3166-1 code table (alpha_2, alpha_3, numeric, name)."""
    return pd.DataFrame(
        [
            {
                "alpha_2": country.alpha_2,
                "alpha_3": country.alpha_3,
                "numeric": country.numeric,
                "name": country.name,
            }
            for country in pycountry.countries
        ]
    )


def _value_columns(table: pd.DataFrame) -> List[str]:
    return [c for c in table.columns if c not in JOIN_KEYS]


def _quote(column: str) -> str:
    return '"' + column.replace('"', '""') + '"'


def _build_join_sql(tables: Sequence[pd.DataFrame]) -> str:
    seen = set()
    select = [f't0."{key}"' for key in JOIN_KEYS]
    joins = []
    for i, table in enumerate(tables):
        for column in _value_columns(table):
            if column in seen:
                raise SchemaMismatchError(
                    f"Value column '{column}' appears in more than one indicator table"
                )
            seen.add(column)
            select.append(f"t{i}.{_quote(column)}")
        if i > 0:
            on = " AND ".join(f't0."{key}" = t{i}."{key}"' for key in JOIN_KEYS)
            joins.append(f"LEFT JOIN t{i} ON {on}")

    return f"SELECT {', '.join(select)} FROM t0 {' '.join(joins)}"


def merge_indicators(
    tables: Sequence[pd.DataFrame],
    reference_codes: Optional[Iterable[str]] = None,
) -> pd.DataFrame:
    """Left-join-reduce indicator tables and keep ISO alpha-3 countries only.

    Args:
        tables: Long-format tables keyed on (country_name, country_code, year),
            each with its own value column(s)
        reference_codes: Alpha-3 codes to keep; defaults to the full
            ISO 3166-1 table

    Returns:
        One row per (country_code, year) with a column per indicator

    Raises:
        ValueError: If no tables are given
        SchemaMismatchError: If a table lacks a join key or two tables
            share a value column name
    """
    if not tables:
        raise ValueError("merge_indicators needs at least one table")

    for i, table in enumerate(tables):
        missing = [key for key in JOIN_KEYS if key not in table.columns]
        if missing:
            raise SchemaMismatchError(f"Indicator table {i} is missing join keys: {missing}")

    if reference_codes is None:
        reference_codes = iso3166_reference()["alpha_3"]
    iso_codes = pd.DataFrame({"alpha_3": sorted(set(reference_codes))})

    con = duckdb.connect()
    try:
        for i, table in enumerate(tables):
            con.register(f"t{i}", table)
        con.register("iso_codes", iso_codes)

        joined = con.execute(_build_join_sql(tables)).df()
        con.register("joined", joined)

        merged = con.execute(
            """
            SELECT *
            FROM joined
            WHERE country_code IN (SELECT alpha_3 FROM iso_codes)
            ORDER BY country_code, "year"
            """
        ).df()
        dropped = [
            row[0]
            for row in con.execute(
                """
                SELECT DISTINCT country_code
                FROM joined
                WHERE country_code NOT IN (SELECT alpha_3 FROM iso_codes)
                ORDER BY country_code
                """
            ).fetchall()
        ]
    finally:
        con.close()

    if dropped:
        logger.info(
            f"Dropped {len(dropped)} non-ISO code(s) from merged indicators, "
            f"e.g. {dropped[:DROPPED_SAMPLE_SIZE]}"
        )

    assert_unique_grain(merged, dataset_name="merged indicators")
    logger.info(
        f"🔗 Merged {len(tables)} indicator table(s): {len(merged)} rows, "
        f"{merged['country_code'].nunique()} countries"
    )
    return merged
