"""Tests for domain entities."""

import math
import numpy as np
import pytest
from src.domain.entities.field_observation import FieldObservation
from src.domain.entities.field_site import FieldSite, climate_zone_code
from src.domain.entities.stage_report import StageReport
from src.domain.entities.stratum import StratumSummary
from src.domain.entities.yield_ceiling import (
    ResolvedYieldCeiling,
    YieldCeilingCandidate,
    YieldCeilingProvenance,
    clean_yield_series,
)
from src.domain.entities.yield_class import YieldClass
from src.domain.entities.yield_gap_record import YieldGapRecord
from src.domain.exceptions import DataError, ModelFitError, StratumError


def test_field_observation_ids():
    """Test FieldObservation identifiers and flattening."""
    obs = FieldObservation(
        household_id="H1",
        plot_id="2",
        subplot_id="3",
        year=2013,
        yield_t_ha=2.5,
        covariates={"n_rate": 46.0},
        factors={"soil_fertility": "poor"},
        country="Ethiopia",
        climate_zone="CZ5",
        latitude=7.1,
        longitude=38.5,
        attributes={"zone": "Arsi"},
    )
    assert obs.field_id == "H1_2_3"
    assert obs.obs_id == "H1_2_3_2013"
    assert str(obs) == "H1_2_3_2013"

    row = obs.to_dict()
    assert row["n_rate"] == 46.0
    assert row["soil_fertility"] == "poor"
    assert row["zone"] == "Arsi"
    assert obs.site == FieldSite("H1_2_3", "Ethiopia", "CZ5", 7.1, 38.5)


def test_field_site_coordinates():
    """Test FieldSite coordinate check."""
    assert FieldSite("f", latitude=7.0, longitude=38.0).has_coordinates
    assert not FieldSite("f", latitude=None, longitude=38.0).has_coordinates
    assert not FieldSite("f", latitude=float("nan"), longitude=38.0).has_coordinates


def test_climate_zone_code():
    """Numeric and string zone codes share one form."""
    assert climate_zone_code(7003) == "7003"
    assert climate_zone_code(np.int64(7003)) == "7003"
    assert climate_zone_code(7003.0) == "7003"
    assert climate_zone_code(" CZ5 ") == "CZ5"
    assert climate_zone_code(float("nan")) is None
    assert climate_zone_code(None) is None
    obs = FieldObservation("H1", "1", "1", 2013, 2.0, climate_zone=7003)
    assert obs.site.climate_zone == "7003"


def test_yield_class():
    """Test YieldClass enum."""
    assert YieldClass.HIGHEST.value == "highest"
    classes = YieldClass.classify(np.array([4.6, 1.4, 3.0, 5.0]), lower=1.4, upper=4.6)
    assert list(classes) == ["highest", "lowest", "average", "highest"]


def test_clean_yield_series():
    """Missing-year sentinels are dropped."""
    series = {2009: 6.0, 2010: None, 2011: float("nan"), 2012: 0.0, 2013: -99.0, 2014: 7.0}
    assert clean_yield_series(series) == {2009: 6.0, 2014: 7.0}


def test_candidate_usable_yields():
    """Test YieldCeilingCandidate usable yields."""
    candidate = YieldCeilingCandidate("f", "s", "CZ1", 10.0, {2013: None, 2015: 8.0})
    assert candidate.usable_yields == {2015: 8.0}


def test_resolved_yield_ceiling():
    """Test ResolvedYieldCeiling lookups."""
    ceiling = ResolvedYieldCeiling(
        field_id="f",
        provenance=YieldCeilingProvenance.SAME_CZ,
        source_id="CZ1",
        yields={2013: 6.0, 2015: 8.0},
    )
    assert ceiling.long_run_mean == pytest.approx(7.0)
    assert ceiling.yw_for(2015) == 8.0
    assert math.isnan(ceiling.yw_for(2014))


def test_yield_gap_record_round_trip():
    """Test YieldGapRecord serialisation keeps enums as strings."""
    record = YieldGapRecord(
        obs_id="H1_1_1_2013",
        field_id="H1_1_1",
        year=2013,
        ya=2.0,
        yw=6.0,
        y_hf=4.0,
        y_tex=4.0,
        yield_class=YieldClass.AVERAGE,
        provenance=YieldCeilingProvenance.CZ_STATION,
        total_gap=4.0,
        efficiency_gap=2.0,
        resource_gap=0.0,
        technology_gap=2.0,
        attributes={"zone": "Arsi"},
    )
    row = record.to_dict()
    assert row["provenance"] == "cz_station"
    assert row["yield_class"] == "average"
    assert row["zone"] == "Arsi"

    restored = YieldGapRecord.from_dict(row)
    assert restored.provenance == YieldCeilingProvenance.CZ_STATION
    assert restored.yield_class == YieldClass.AVERAGE
    assert restored.attributes == {"zone": "Arsi"}
    assert restored.is_complete
    assert restored.is_additive()


def test_incomplete_record():
    """A record without Yw is incomplete."""
    record = YieldGapRecord(obs_id="o", field_id="f", year=2013, ya=2.0, y_hf=4.0, y_tex=4.0)
    assert not record.is_complete


def test_stage_report():
    """Test StageReport counting."""
    report = StageReport(stage="classification", n_rows=4)
    assert report.ok
    report.add("a", StratumError("stratum too small"))
    report.add("a", DataError("missing key"))
    report.add("b", StratumError("stratum too small"))

    assert report.n_affected == 2
    assert report.failure_rate == pytest.approx(0.5)
    assert report.counts_by_kind() == {"StratumError": 2, "DataError": 1}
    assert "2 of 4 rows affected" in report.summary()
    assert report.issues[0].error.stage == "classification"
    assert "(row a)" in report.issues[0].message

    report.fatal = ModelFitError("did not converge")
    assert report.failure_rate == 1.0
    assert "FAILED" in report.summary()
    assert report.to_dict()["fatal"] == "did not converge"


def test_stratum_summary():
    """Test StratumSummary label."""
    summary = StratumSummary(
        key=(2013, "CZ5", "poor"),
        size=12,
        lower_threshold=1.0,
        upper_threshold=3.0,
        y_hf=3.2,
        n_highest=2,
        n_average=8,
        n_lowest=2,
    )
    assert summary.label == "2013|CZ5|poor"
    row = summary.to_dict(["year", "climate_zone", "soil_fertility"])
    assert row["climate_zone"] == "CZ5"
    assert row["stratum"] == "2013|CZ5|poor"
