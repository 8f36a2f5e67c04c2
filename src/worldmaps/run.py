"""Pipeline entry point.

Runs the four stages once: load indicators, merge them, load boundaries,
compose and render the map. Run with ``python -m worldmaps.run``.
"""

import sys
import time
from typing import Dict, Optional

import matplotlib

from worldmaps import config
from worldmaps.compose import compose_countries, drop_empty_geometries
from worldmaps.constants import GDP_PER_CAP, INDICATORS, LIFE_EXP
from worldmaps.exceptions import ConfigurationError, PipelineRunError, WorldMapsBaseError
from worldmaps.geometry import CODE_CORRECTIONS, load_geometries
from worldmaps.indicators import load_indicator
from worldmaps.logging_config import create_logger, log_exception
from worldmaps.merge import merge_indicators
from worldmaps.quality_metrics import calculate_metrics
from worldmaps.render import build_layers, render_map

logger = create_logger(__name__)


class MapPipeline:
    """Produce the indicator choropleth for one year.

    Every input defaults to the matching setting in worldmaps.config.
    """

    def __init__(
        self,
        gdp_source: Optional[str] = None,
        life_exp_source: Optional[str] = None,
        countries_archive: Optional[str] = None,
        land_archive: Optional[str] = None,
        output_path: Optional[str] = None,
        year: Optional[int] = None,
        tolerance: Optional[float] = None,
        skiprows: Optional[int] = None,
        projection: Optional[str] = None,
        indicator_config: Optional[Dict] = None,
    ) -> None:
        self.sources = {
            GDP_PER_CAP: gdp_source or config.GDP_SOURCE,
            LIFE_EXP: life_exp_source or config.LIFE_EXP_SOURCE,
        }
        self.countries_archive = countries_archive or config.COUNTRIES_ARCHIVE
        self.land_archive = land_archive or config.LAND_ARCHIVE
        self.output_path = output_path or config.OUTPUT_MAP_PATH
        self.year = config.TARGET_YEAR if year is None else year
        self.tolerance = config.SIMPLIFY_TOLERANCE if tolerance is None else tolerance
        self.skiprows = config.HEADER_SKIP_ROWS if skiprows is None else skiprows
        self.projection = projection or config.EQUAL_AREA_PROJECTION
        self.indicator_config = indicator_config or INDICATORS
        self.metrics = {}

    def run(self) -> str:
        """Run every stage and return the path of the rendered map.

        :raises WorldMapsBaseError: If any stage fails
        """
        start_time = time.time()
        logger.info(f"🚀 Starting map pipeline for {self.year}")

        try:
            # Fail on a bad break configuration before any data is read
            layers = build_layers(self.indicator_config)

            tables = []
            for value_name, path in self.sources.items():
                table = load_indicator(path, value_name, self.skiprows)
                self.metrics[value_name] = calculate_metrics(table, value_name, [value_name])
                tables.append(table)

            merged = merge_indicators(tables)
            self.metrics["merged"] = calculate_metrics(
                merged, "merged", list(self.sources)
            )

            countries = load_geometries(
                self.countries_archive,
                tolerance=self.tolerance,
                corrections=CODE_CORRECTIONS,
                name_field=config.FORMAL_NAME_FIELD,
                code_field=config.COUNTRY_CODE_FIELD,
            )
            land = drop_empty_geometries(
                load_geometries(self.land_archive, tolerance=self.tolerance),
                label="land",
            )

            entities = compose_countries(
                countries, merged, self.year, code_field=config.COUNTRY_CODE_FIELD
            )
            output = render_map(
                entities,
                land,
                layers,
                self.output_path,
                self.projection,
                dpi=config.OUTPUT_DPI,
            )

        except WorldMapsBaseError as e:
            log_exception(logger, e, {"context": "Map pipeline", "year": self.year})
            raise
        except Exception as e:
            log_exception(logger, e, {"context": "Map pipeline", "year": self.year})
            raise PipelineRunError(f"Map pipeline failed: {e}") from e

        duration = time.time() - start_time
        logger.info(f"✅ Map pipeline completed in {duration:.2f}s: {output}")
        return output


def main() -> int:
    # Headless backend for file output
    matplotlib.use("Agg")

    try:
        config.validate_config()
    except ConfigurationError as e:
        log_exception(logger, e, {"context": "Configuration"})
        return 1

    try:
        MapPipeline().run()
    except WorldMapsBaseError:
        # MapPipeline.run has already reported the failure
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
