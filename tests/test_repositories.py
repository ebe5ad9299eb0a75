"""Tests for file-backed repositories."""

import json
import math
import pandas as pd
import pytest
from src.domain.entities.yield_ceiling import YieldCeilingProvenance
from src.domain.entities.yield_class import YieldClass
from src.domain.entities.yield_gap_record import YieldGapRecord
from src.domain.exceptions import DataError
from src.domain.use_cases.resolve_yield_ceiling import ResolveYieldCeilingUseCase
from src.infrastructure.repositories.csv_survey_repository import CsvSurveyRepository
from src.infrastructure.repositories.file_gap_report_repository import FileGapReportRepository
from src.infrastructure.repositories.gyga_yield_ceiling_repository import GygaYieldCeilingRepository


@pytest.fixture
def survey_file(tmp_path):
    path = tmp_path / "survey.csv"
    pd.DataFrame(
        {
            "household_id": ["H1", "H1", "H2"],
            "plot_id": [1, 1, 2],
            "subplot_id": [1, 1, 1],
            "year": [2013, 2015, 2013],
            "yield_t_ha": [2.1, None, 3.4],
            "n_rate": [46.0, 30.0, None],
            "soil_fertility": ["poor", "poor", "good"],
            "country": ["Ethiopia"] * 3,
            "climate_zone": ["CZ5", "CZ5", "CZ6"],
            "latitude": [7.1, 7.1, None],
            "longitude": [38.5, 38.5, 39.0],
            "zone": ["Arsi", "Arsi", "Bale"],
        }
    ).to_csv(path, index=False)
    return path


def test_csv_survey_repository(survey_file):
    """Test survey rows become observations with missing values as None."""
    repo = CsvSurveyRepository(
        str(survey_file), continuous=["n_rate"], categorical=["soil_fertility"], attribute_columns=["zone"]
    )
    observations = repo.get_observations()

    assert len(observations) == 3
    first = observations[0]
    assert first.obs_id == "H1_1_1_2013"
    assert first.covariates == {"n_rate": 46.0}
    assert first.factors == {"soil_fertility": "poor"}
    assert first.attributes == {"zone": "Arsi"}
    assert observations[1].yield_t_ha is None
    assert observations[2].covariates["n_rate"] is None
    assert not observations[2].site.has_coordinates

    assert [o.obs_id for o in repo.get_observations(year=2015)] == ["H1_1_1_2015"]


def test_csv_survey_repository_missing_column(survey_file):
    repo = CsvSurveyRepository(str(survey_file), continuous=["p_rate"], categorical=["soil_fertility"])
    with pytest.raises(DataError):
        repo.get_observations()


def test_csv_survey_repository_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CsvSurveyRepository(str(tmp_path / "none.csv"), continuous=[], categorical=[])


def test_gyga_repository(tmp_path):
    """Wide yw_<year> columns are read into per-year series."""
    candidates_file = tmp_path / "candidates.csv"
    pd.DataFrame(
        {
            "field_id": ["H1_1_1", "H1_1_1", "H2_2_1"],
            "source_id": ["CZ5-u", "ST-3", "ST-3"],
            "climate_zone": ["CZ5", None, None],
            "distance_km": [None, 12.5, 40.0],
            "yw_2013": [6.2, 5.9, 5.9],
            "yw_2015": [None, 7.1, 7.1],
        }
    ).to_csv(candidates_file, index=False)
    country_file = tmp_path / "country.csv"
    pd.DataFrame({"country": ["Ethiopia"], "yw_2013": [5.0], "yw_2015": [None]}).to_csv(
        country_file, index=False
    )

    repo = GygaYieldCeilingRepository(str(candidates_file), str(country_file))
    candidates = repo.get_candidates()

    assert set(candidates) == {"H1_1_1", "H2_2_1"}
    zone_unit = next(c for c in candidates["H1_1_1"] if c.source_id == "CZ5-u")
    assert zone_unit.climate_zone == "CZ5"
    assert zone_unit.distance_km is None
    assert zone_unit.usable_yields == {2013: 6.2}
    station = next(c for c in candidates["H1_1_1"] if c.source_id == "ST-3")
    assert station.climate_zone is None
    assert station.distance_km == 12.5
    assert station.usable_yields == {2013: 5.9, 2015: 7.1}

    assert repo.get_country_averages() == {"Ethiopia": {2013: 5.0}}


def test_gyga_repository_without_country_file(tmp_path):
    candidates_file = tmp_path / "candidates.csv"
    pd.DataFrame({"field_id": ["f"], "source_id": ["s"], "climate_zone": ["CZ1"], "distance_km": [1.0], "yw_2013": [6.0]}).to_csv(
        candidates_file, index=False
    )
    assert GygaYieldCeilingRepository(str(candidates_file)).get_country_averages() == {}


def test_gap_report_round_trip(tmp_path):
    """Persisted records keep every field, full precision and string enums."""
    repo = FileGapReportRepository(str(tmp_path))
    record = YieldGapRecord(
        obs_id="0012_1_1_2013",
        field_id="0012_1_1",
        year=2013,
        ya=2.0 / 3.0,
        yw=6.123456789012345,
        y_hf=4.0,
        y_tex=1.0,
        stratum="2013|CZ5|poor",
        yield_class=YieldClass.HIGHEST,
        provenance=YieldCeilingProvenance.COUNTRY_AVERAGE,
        attributes={"zone": "Arsi"},
    )
    path = repo.save_records([record])

    raw = pd.read_csv(path)
    assert raw.loc[0, "provenance"] == "country_average"

    restored = repo.load_records()[0]
    assert restored.obs_id == "0012_1_1_2013"
    assert restored.ya == 2.0 / 3.0
    assert restored.yw == 6.123456789012345
    assert restored.provenance == YieldCeilingProvenance.COUNTRY_AVERAGE
    assert restored.yield_class == YieldClass.HIGHEST
    assert restored.stratum == "2013|CZ5|poor"
    assert math.isnan(restored.total_gap)
    assert restored.attributes == {"zone": "Arsi"}


def test_save_table_and_metadata(tmp_path):
    repo = FileGapReportRepository(str(tmp_path))
    summary = pd.DataFrame({"total_gap": [1.0, 2.0]}, index=pd.Index(["Arsi", "Bale"], name="zone"))
    path = repo.save_table(summary, "summary_zone")
    assert list(pd.read_csv(path).columns) == ["zone", "total_gap"]

    meta_path = repo.save_metadata({"n_records": 2})
    with open(meta_path, encoding="utf-8") as f:
        assert json.load(f) == {"n_records": 2}


def test_load_records_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        FileGapReportRepository(str(tmp_path)).load_records()


def test_numeric_climate_zones_match_across_repositories(tmp_path):
    """Numeric zone codes from both tables resolve through the same-zone tier."""
    survey_file = tmp_path / "survey.csv"
    pd.DataFrame(
        {
            "household_id": ["H1", "H2"],
            "plot_id": [1, 1],
            "subplot_id": [1, 1],
            "year": [2013, 2013],
            "yield_t_ha": [2.1, 3.4],
            "country": ["Ethiopia"] * 2,
            "climate_zone": [7003, None],
            "latitude": [7.1, 7.3],
            "longitude": [38.5, 38.6],
        }
    ).to_csv(survey_file, index=False)
    candidates_file = tmp_path / "candidates.csv"
    pd.DataFrame(
        {
            "field_id": ["H1_1_1"],
            "source_id": ["7003-unit"],
            "climate_zone": [7003],
            "distance_km": [55.0],
            "yw_2013": [7.0],
        }
    ).to_csv(candidates_file, index=False)
    country_file = tmp_path / "country.csv"
    pd.DataFrame({"country": ["Ethiopia"], "yw_2013": [5.0]}).to_csv(country_file, index=False)

    observations = CsvSurveyRepository(str(survey_file), continuous=[], categorical=[]).get_observations()
    ceiling_repo = GygaYieldCeilingRepository(str(candidates_file), str(country_file))
    candidates = ceiling_repo.get_candidates()

    site = observations[0].site
    assert site.climate_zone == "7003"
    assert candidates["H1_1_1"][0].climate_zone == "7003"
    assert observations[1].site.climate_zone is None

    resolved = ResolveYieldCeilingUseCase().resolve_field(
        site, candidates["H1_1_1"], ceiling_repo.get_country_averages()
    )
    assert resolved.provenance == YieldCeilingProvenance.SAME_CZ
    assert resolved.yields == {2013: 7.0}
