"""End-to-end integration tests for a complete pipeline run.

Tests the full workflow:
1. World Bank exports in a raw data directory
2. Reshape and merge of both indicators
3. Zipped country and land shapefiles
4. Composition and rendering of the map
"""

import math

import pytest

from worldmaps.compose import compose_countries
from worldmaps.exceptions import (
    ClassificationError,
    ConfigurationError,
    GeometryLoadError,
    SourceFileError,
)
from worldmaps.geometry import CODE_CORRECTIONS, load_geometries
from worldmaps.indicators import load_indicator
from worldmaps.merge import iso3166_reference, merge_indicators
from worldmaps.run import MapPipeline, main

EQUAL_AREA = "+proj=eck4 +lon_0=0 +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"


@pytest.fixture
def pipeline_inputs(indicator_sources, zip_shapefile, sample_boundaries, sample_land, temp_dir):
    return {
        "gdp_source": str(indicator_sources["gdp"]),
        "life_exp_source": str(indicator_sources["life_exp"]),
        "countries_archive": str(zip_shapefile(sample_boundaries, "countries")),
        "land_archive": str(zip_shapefile(sample_land, "land")),
        "output_path": str(temp_dir / "output" / "world_2015.png"),
        "year": 2015,
        "tolerance": 0.01,
        "skiprows": 3,
        "projection": EQUAL_AREA,
    }


@pytest.mark.integration
class TestStagesE2E:
    """Run the stages by hand and check the data between them."""

    def test_country_entities(self, pipeline_inputs):
        tables = [
            load_indicator(pipeline_inputs["gdp_source"], "gdp_per_cap"),
            load_indicator(pipeline_inputs["life_exp_source"], "life_exp"),
        ]
        merged = merge_indicators(tables)
        boundaries = load_geometries(
            pipeline_inputs["countries_archive"],
            tolerance=0.01,
            corrections=CODE_CORRECTIONS,
        )

        countries = compose_countries(boundaries, merged, 2015)

        # No aggregates survive the merge
        assert set(merged["country_code"]) <= set(iso3166_reference()["alpha_3"])
        # Antarctica has indicators but no polygon
        assert "ATA" in set(merged["country_code"])
        assert "ATA" not in set(countries["code"])
        # France is only matched through the code correction
        assert sorted(countries["code"]) == ["DEU", "FRA"]
        assert not any(g is None or g.is_empty for g in countries.geometry)

        france = countries[countries["code"] == "FRA"].iloc[0]
        assert france["gdp_per_cap"] == pytest.approx(36526.8)
        assert france["life_exp"] == pytest.approx(82.3)


@pytest.mark.integration
@pytest.mark.slow
class TestMapPipelineE2E:
    """Run the pipeline class end to end."""

    def test_run_writes_map(self, pipeline_inputs):
        pipeline = MapPipeline(**pipeline_inputs)

        output = pipeline.run()

        assert output == pipeline_inputs["output_path"]
        with open(output, "rb") as fh:
            assert fh.read(8) == b"\x89PNG\r\n\x1a\n"
        assert pipeline.metrics["merged"].total_countries == 3
        assert pipeline.metrics["gdp_per_cap"].duplicate_count == 0

    def test_missing_indicator_source(self, pipeline_inputs, temp_dir):
        pipeline_inputs["gdp_source"] = str(temp_dir / "missing.csv")

        with pytest.raises(SourceFileError):
            MapPipeline(**pipeline_inputs).run()

    def test_missing_archive(self, pipeline_inputs, temp_dir):
        pipeline_inputs["land_archive"] = str(temp_dir / "missing.zip")

        with pytest.raises(GeometryLoadError):
            MapPipeline(**pipeline_inputs).run()

    def test_bad_breaks_fail_before_loading(self, pipeline_inputs, temp_dir):
        pipeline_inputs["gdp_source"] = str(temp_dir / "missing.csv")
        indicator_config = {
            "gdp_per_cap": {
                "title": "GDP",
                "breaks": [-math.inf, 1000, 2000, math.inf],
                "labels": ["only one label"],
                "palette": "YlGn",
            }
        }

        with pytest.raises(ClassificationError):
            MapPipeline(indicator_config=indicator_config, **pipeline_inputs).run()

    def test_main_exit_code(self, monkeypatch, temp_dir):
        import worldmaps.config as config_module

        monkeypatch.setattr(config_module, "OUTPUT_MAP_PATH", str(temp_dir / "map.png"))
        monkeypatch.setattr(config_module, "GDP_SOURCE", str(temp_dir / "missing.csv"))

        assert main() == 1

    def test_main_reports_failure_once(self, monkeypatch, temp_dir):
        import worldmaps.config as config_module
        import worldmaps.run as run_module

        monkeypatch.setattr(config_module, "OUTPUT_MAP_PATH", str(temp_dir / "map.png"))
        monkeypatch.setattr(config_module, "GDP_SOURCE", str(temp_dir / "missing.csv"))
        reports = []
        monkeypatch.setattr(run_module, "log_exception", lambda *args: reports.append(args))

        assert main() == 1
        assert len(reports) == 1
        assert isinstance(reports[0][1], SourceFileError)

    def test_main_reports_bad_configuration(self, monkeypatch):
        import worldmaps.config as config_module
        import worldmaps.run as run_module

        monkeypatch.setattr(config_module, "TARGET_YEAR", 15)
        reports = []
        monkeypatch.setattr(run_module, "log_exception", lambda *args: reports.append(args))

        assert main() == 1
        assert len(reports) == 1
        assert isinstance(reports[0][1], ConfigurationError)

    def test_main_selects_file_backend(self, monkeypatch, temp_dir):
        import matplotlib

        import worldmaps.config as config_module

        monkeypatch.setattr(config_module, "OUTPUT_MAP_PATH", str(temp_dir / "map.png"))
        monkeypatch.setattr(config_module, "GDP_SOURCE", str(temp_dir / "missing.csv"))
        backends = []
        monkeypatch.setattr(matplotlib, "use", lambda backend, *args, **kwargs: backends.append(backend))

        main()

        assert backends == ["Agg"]
