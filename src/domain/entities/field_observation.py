"""Field observation entity."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from .field_site import FieldSite, climate_zone_code


@dataclass
class FieldObservation:
    """Represents one surveyed (household, plot, subplot) field in one harvest year."""

    household_id: str
    plot_id: str
    subplot_id: str
    year: int
    yield_t_ha: Optional[float]  # actual yield, t/ha
    covariates: Dict[str, Optional[float]] = field(default_factory=dict)
    factors: Dict[str, Optional[str]] = field(default_factory=dict)
    country: Optional[str] = None
    climate_zone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    attributes: Dict[str, Any] = field(default_factory=dict)  # zone, farming system, ...

    @property
    def field_id(self) -> str:
        return f"{self.household_id}_{self.plot_id}_{self.subplot_id}"

    @property
    def obs_id(self) -> str:
        return f"{self.field_id}_{self.year}"

    @property
    def site(self) -> FieldSite:
        return FieldSite(
            field_id=self.field_id,
            country=self.country,
            climate_zone=climate_zone_code(self.climate_zone),
            latitude=self.latitude,
            longitude=self.longitude,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into a single table row."""
        row = {
            "obs_id": self.obs_id,
            "field_id": self.field_id,
            "household_id": self.household_id,
            "plot_id": self.plot_id,
            "subplot_id": self.subplot_id,
            "year": self.year,
            "yield_t_ha": self.yield_t_ha,
            "country": self.country,
            "climate_zone": self.climate_zone,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
        row.update(self.attributes)
        row.update(self.covariates)
        row.update(self.factors)
        return row

    def __str__(self) -> str:
        return self.obs_id
