"""Data quality metrics for indicator tables.

This module runs grain and completeness checks over pandas DataFrames
through an in-memory DuckDB connection. Loader and merger call
assert_unique_grain so that a repeated (country_code, year) key is fatal.
"""

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence

import duckdb
import pandas as pd

from worldmaps.exceptions import DuplicateKeyError
from worldmaps.logging_config import create_logger

logger = create_logger(__name__)

INDICATOR_GRAIN = ("country_code", "year")


@dataclass
class DatasetMetrics:
    """Data quality metrics for a single indicator table."""

    dataset_name: str
    total_records: int
    total_countries: int
    total_years: int
    year_range_min: Optional[int]
    year_range_max: Optional[int]
    null_rate_percentage: Dict[str, float]
    duplicate_count: int

    def to_dict(self) -> dict:
        return asdict(self)


def _quote(column: str) -> str:
    return '"' + column.replace('"', '""') + '"'


def _connect(frame: pd.DataFrame) -> duckdb.DuckDBPyConnection:
    con = duckdb.connect()
    con.register("frame", frame)
    return con


def count_duplicates(frame: pd.DataFrame, grain: Sequence[str] = INDICATOR_GRAIN) -> int:
    """Count grain keys that appear more than once.

    Args:
        frame: Table to check
        grain: Columns that together must identify a row

    Returns:
        Number of duplicated keys
    """
    if frame.empty:
        return 0

    grain_str = ", ".join(_quote(c) for c in grain)
    con = _connect(frame)
    try:
        result = con.execute(
            f"""
            SELECT COUNT(*) AS duplicate_count
            FROM (
                SELECT {grain_str}, COUNT(*) AS cnt
                FROM frame
                GROUP BY {grain_str}
                HAVING COUNT(*) > 1
            )
            """
        ).fetchone()
    finally:
        con.close()
    return int(result[0]) if result else 0


def assert_unique_grain(
    frame: pd.DataFrame,
    grain: Sequence[str] = INDICATOR_GRAIN,
    dataset_name: str = "table",
) -> None:
    """Raise DuplicateKeyError if any grain key repeats.

    :raises DuplicateKeyError: If the grain is not unique
    """
    duplicates = count_duplicates(frame, grain)
    if duplicates:
        raise DuplicateKeyError(
            f"{dataset_name}: {duplicates} duplicated key(s) on ({', '.join(grain)})"
        )


def calculate_metrics(
    frame: pd.DataFrame,
    dataset_name: str,
    value_columns: List[str],
) -> DatasetMetrics:
    """Collect record, coverage and null-rate metrics for an indicator table.

    Args:
        frame: Long-format table with country_code and year columns
        dataset_name: Name used in log output
        value_columns: Columns whose null rate is reported

    Returns:
        DatasetMetrics for the table
    """
    if frame.empty:
        metrics = DatasetMetrics(
            dataset_name=dataset_name,
            total_records=0,
            total_countries=0,
            total_years=0,
            year_range_min=None,
            year_range_max=None,
            null_rate_percentage={c: 0.0 for c in value_columns},
            duplicate_count=0,
        )
        logger.warning(f"{dataset_name}: table is empty")
        return metrics

    null_exprs = ", ".join(
        f"100.0 * SUM(CASE WHEN {_quote(c)} IS NULL THEN 1 ELSE 0 END) / COUNT(*)"
        for c in value_columns
    )
    select_nulls = f", {null_exprs}" if value_columns else ""

    con = _connect(frame)
    try:
        row = con.execute(
            f"""
            SELECT
                COUNT(*),
                COUNT(DISTINCT country_code),
                COUNT(DISTINCT "year"),
                MIN("year"),
                MAX("year")
                {select_nulls}
            FROM frame
            """
        ).fetchone()
    finally:
        con.close()

    null_rates = {c: float(v or 0.0) for c, v in zip(value_columns, row[5:])}
    metrics = DatasetMetrics(
        dataset_name=dataset_name,
        total_records=int(row[0]),
        total_countries=int(row[1]),
        total_years=int(row[2]),
        year_range_min=int(row[3]),
        year_range_max=int(row[4]),
        null_rate_percentage=null_rates,
        duplicate_count=count_duplicates(frame),
    )

    logger.info(
        f"{dataset_name}: {metrics.total_records} records, "
        f"{metrics.total_countries} countries, "
        f"years {metrics.year_range_min}-{metrics.year_range_max}"
    )
    for column, rate in null_rates.items():
        logger.info(f"   {column} null rate: {rate:.2f}%")

    return metrics
