"""Yield ceiling (Yw) entities."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional


class YieldCeilingProvenance(str, Enum):
    """Which fallback tier resolved a field's Yw source."""

    SAME_CZ = "same_cz"
    CZ_STATION = "cz_station"
    COUNTRY_AVERAGE = "country_average"


def clean_yield_series(values: Mapping[int, Optional[float]]) -> Dict[int, float]:
    """Drop missing-year sentinels (None, NaN, non-positive) from a year -> Yw mapping."""
    return {
        int(year): float(value)
        for year, value in values.items()
        if value is not None and math.isfinite(value) and value > 0
    }


@dataclass
class YieldCeilingCandidate:
    """A candidate Yw source for a field, as delivered by the spatial join."""

    field_id: str
    source_id: str
    climate_zone: Optional[str]
    distance_km: Optional[float]
    yields: Dict[int, Optional[float]] = field(default_factory=dict)

    @property
    def usable_yields(self) -> Dict[int, float]:
        return clean_yield_series(self.yields)


@dataclass(frozen=True)
class ResolvedYieldCeiling:
    """The single Yw source selected for a field."""

    field_id: str
    provenance: YieldCeilingProvenance
    source_id: str
    yields: Dict[int, float]
    distance_km: Optional[float] = None

    @property
    def long_run_mean(self) -> float:
        """Average Yw over all years with data."""
        if not self.yields:
            return float("nan")
        return sum(self.yields.values()) / len(self.yields)

    def yw_for(self, year: int) -> float:
        """Yw for a harvest year, NaN when that year has no data."""
        return self.yields.get(int(year), float("nan"))
