"""Shared fixtures: simulated frontier data and an in-memory survey."""

from typing import Dict, List, Optional
import numpy as np
import pandas as pd
import pytest
from src.domain.entities.field_observation import FieldObservation
from src.domain.entities.yield_ceiling import YieldCeilingCandidate
from src.domain.repositories.survey_repository import SurveyRepository
from src.domain.repositories.yield_ceiling_repository import YieldCeilingRepository
from src.application.services.yield_gap_service import YieldGapService
from src.infrastructure.repositories.file_gap_report_repository import FileGapReportRepository

CONTINUOUS = ["n_rate", "seed_rate"]
CATEGORICAL = ["soil_fertility", "variety_type"]
STRATUM_COLUMNS = ["year", "climate_zone", "soil_fertility"]
GROUP_COLUMNS = ["zone", "farming_system"]
YEARS = [2013, 2015]
YW = {2013: 7.5, 2015: 8.5}


class InMemorySurveyRepository(SurveyRepository):
    def __init__(self, observations: List[FieldObservation]):
        self.observations = observations

    def get_observations(self, year: Optional[int] = None, country: Optional[str] = None):
        return [
            o
            for o in self.observations
            if (year is None or o.year == year) and (country is None or o.country == country)
        ]


class InMemoryYieldCeilingRepository(YieldCeilingRepository):
    def __init__(self, candidates: Dict[str, List[YieldCeilingCandidate]], country_averages: Dict):
        self.candidates = candidates
        self.country_averages = country_averages

    def get_candidates(self):
        return self.candidates

    def get_country_averages(self):
        return self.country_averages


@pytest.fixture
def simulated_frontier():
    """1000 draws from y = 1 + 0.4 x1 + 0.3 x2 + v - u with sigma_u=0.3, sigma_v=0.1."""
    rng = np.random.default_rng(42)
    n = 1000
    x1 = rng.uniform(0.0, 3.0, n)
    x2 = rng.uniform(0.0, 3.0, n)
    u = np.abs(rng.normal(0.0, 0.3, n))
    v = rng.normal(0.0, 0.1, n)
    table = pd.DataFrame(
        {
            "log_x1": x1,
            "log_x2": x2,
            "log_yield": 1.0 + 0.4 * x1 + 0.3 * x2 + v - u,
        }
    )
    truth = {"const": 1.0, "log_x1": 0.4, "log_x2": 0.3, "sigma_u": 0.3, "sigma_v": 0.1}
    return table, truth


def make_observations(seed: int = 7, per_stratum: int = 40) -> List[FieldObservation]:
    """Households across 2 years x 2 climate zones x 2 fertility classes."""
    rng = np.random.default_rng(seed)
    observations = []
    h = 0
    for year in YEARS:
        for cz, lat in (("CZ1", 7.0), ("CZ2", 9.0)):
            for fertility, shift in (("poor", -0.2), ("good", 0.0)):
                for _ in range(per_stratum):
                    h += 1
                    n_rate = rng.uniform(5.0, 150.0)
                    seed_rate = rng.uniform(20.0, 200.0)
                    variety = "improved" if rng.random() < 0.6 else "local"
                    log_y = (
                        -0.5
                        + 0.2 * np.log(n_rate)
                        + 0.15 * np.log(seed_rate)
                        + shift
                        + (0.1 if variety == "improved" else 0.0)
                        + rng.normal(0.0, 0.08)
                        - abs(rng.normal(0.0, 0.25))
                    )
                    observations.append(
                        FieldObservation(
                            household_id=f"H{h:04d}",
                            plot_id="1",
                            subplot_id="1",
                            year=year,
                            yield_t_ha=float(np.exp(log_y)),
                            covariates={"n_rate": n_rate, "seed_rate": seed_rate},
                            factors={"soil_fertility": fertility, "variety_type": variety},
                            country="Ethiopia",
                            climate_zone=cz,
                            latitude=lat + rng.uniform(-0.5, 0.5),
                            longitude=38.0 + rng.uniform(-0.5, 0.5),
                            attributes={
                                "zone": "Arsi" if h % 2 else "Bale",
                                "farming_system": "cereal" if h % 3 else "mixed",
                            },
                        )
                    )
    return observations


def make_ceiling_data(observations: List[FieldObservation]):
    """CZ1 fields get a same-zone unit, CZ2 fields a nearby station, one field nothing."""
    candidates: Dict[str, List[YieldCeilingCandidate]] = {}
    sites = {o.field_id: o for o in observations}
    for i, (field_id, obs) in enumerate(sorted(sites.items())):
        if i == 0:
            continue  # country-average fallback
        if obs.climate_zone == "CZ1":
            candidates[field_id] = [
                YieldCeilingCandidate(field_id, "CZ1-unit", "CZ1", 55.0, dict(YW)),
            ]
        else:
            candidates[field_id] = [
                YieldCeilingCandidate(field_id, "ST-07", "CZ3", 12.0, {y: v + 0.5 for y, v in YW.items()}),
            ]
    country_averages = {"Ethiopia": {2013: 6.0, 2015: 6.5}}
    return candidates, country_averages


@pytest.fixture
def observations():
    return make_observations()


@pytest.fixture
def survey_repo(observations):
    return InMemorySurveyRepository(observations)


@pytest.fixture
def ceiling_repo(observations):
    candidates, country_averages = make_ceiling_data(observations)
    return InMemoryYieldCeilingRepository(candidates, country_averages)


@pytest.fixture
def service_factory(survey_repo, ceiling_repo, tmp_path):
    """Build a YieldGapService over the in-memory survey with files under tmp_path."""

    def build(**frontier_settings):
        settings = {"functional_forms": ["cobb_douglas", "translog"], "screen_collinearity": True}
        settings.update(frontier_settings)
        return YieldGapService(
            survey_repo=survey_repo,
            yield_ceiling_repo=ceiling_repo,
            report_repo=FileGapReportRepository(str(tmp_path / "output")),
            continuous=CONTINUOUS,
            categorical=CATEGORICAL,
            stratum_columns=STRATUM_COLUMNS,
            group_columns=GROUP_COLUMNS,
            frontier_settings=settings,
            classifier_settings={"lower_percentile": 10, "upper_percentile": 90, "min_stratum_size": 5},
        )

    return build


@pytest.fixture
def service(service_factory):
    return service_factory()
