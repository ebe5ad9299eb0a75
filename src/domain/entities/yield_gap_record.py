"""Yield gap record entity."""

import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional
from .yield_ceiling import YieldCeilingProvenance
from .yield_class import YieldClass

NAN = float("nan")

ABSOLUTE_GAP_COLUMNS = ["total_gap", "efficiency_gap", "resource_gap", "technology_gap"]
RELATIVE_GAP_COLUMNS = [
    "total_gap_pct",
    "efficiency_gap_pct",
    "resource_gap_pct",
    "technology_gap_pct",
]
YIELD_LEVEL_COLUMNS = ["yw", "y_hf", "y_tex", "ya"]


@dataclass
class YieldGapRecord:
    """Yield levels and gap components for one field observation (t/ha and % of Yw)."""

    obs_id: str
    field_id: str
    year: int
    ya: float
    yw: float = NAN
    yw_long_run: float = NAN
    y_hf: float = NAN
    y_tex: float = NAN
    technical_efficiency: float = NAN
    technical_efficiency_translog: float = NAN
    stratum: Optional[str] = None
    yield_class: Optional[YieldClass] = None
    provenance: Optional[YieldCeilingProvenance] = None
    total_gap: float = NAN
    efficiency_gap: float = NAN
    resource_gap: float = NAN
    technology_gap: float = NAN
    total_gap_pct: float = NAN
    efficiency_gap_pct: float = NAN
    resource_gap_pct: float = NAN
    technology_gap_pct: float = NAN
    yield_gap_closure_pct: float = NAN
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_complete(self) -> bool:
        """All four yield levels are defined and Yw is positive."""
        levels = (self.yw, self.y_hf, self.y_tex, self.ya)
        return all(math.isfinite(v) for v in levels) and self.yw > 0

    def is_additive(self, rel_tol: float = 1e-6) -> bool:
        """Efficiency + resource + technology gaps reproduce the total gap."""
        if not self.is_complete:
            return True
        parts = self.efficiency_gap + self.resource_gap + self.technology_gap
        return math.isclose(parts, self.total_gap, rel_tol=rel_tol, abs_tol=rel_tol)

    def to_dict(self) -> Dict[str, Any]:
        row = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "attributes"}
        row["yield_class"] = self.yield_class.value if self.yield_class else None
        row["provenance"] = self.provenance.value if self.provenance else None
        row.update(self.attributes)
        return row

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "YieldGapRecord":
        """Rebuild a record from a persisted row; unknown columns become attributes."""
        names = {f.name for f in fields(cls)} - {"attributes"}
        values = {k: v for k, v in row.items() if k in names}
        values["year"] = int(values["year"])
        values["obs_id"] = str(values["obs_id"])
        values["field_id"] = str(values["field_id"])
        for key in ("stratum", "yield_class", "provenance"):
            value = values.get(key)
            if value is None or (isinstance(value, float) and math.isnan(value)):
                values[key] = None
        if values.get("yield_class") is not None:
            values["yield_class"] = YieldClass(values["yield_class"])
        if values.get("provenance") is not None:
            values["provenance"] = YieldCeilingProvenance(values["provenance"])
        if values.get("stratum") is not None:
            values["stratum"] = str(values["stratum"])
        attributes = {k: v for k, v in row.items() if k not in names}
        return cls(attributes=attributes, **values)

    def __str__(self) -> str:
        return self.obs_id
