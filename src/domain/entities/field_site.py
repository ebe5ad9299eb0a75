"""Field site entity."""

import math
import numbers
from dataclasses import dataclass
from typing import Any, Optional


def climate_zone_code(value: Any) -> Optional[str]:
    """
    Normalise a climate-zone code to its string form.

    Numeric codes read from a column with gaps arrive as floats, so 7003.0
    and 7003 both map to "7003". Missing values map to None.
    """
    if value is None:
        return None
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        if not math.isfinite(value):
            return None
        if float(value).is_integer():
            return str(int(value))
        return str(value)
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class FieldSite:
    """Represents the location and biophysical context of a surveyed field."""

    field_id: str
    country: Optional[str] = None
    climate_zone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        """True when both coordinates are present and finite."""
        return all(
            value is not None and math.isfinite(value)
            for value in (self.latitude, self.longitude)
        )

    def __str__(self) -> str:
        return self.field_id
