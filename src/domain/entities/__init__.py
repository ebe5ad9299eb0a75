"""Domain entities."""

from .field_site import FieldSite
from .field_observation import FieldObservation
from .yield_class import YieldClass
from .yield_ceiling import (
    YieldCeilingProvenance,
    YieldCeilingCandidate,
    ResolvedYieldCeiling,
)
from .frontier_result import FunctionalForm, FrontierModelResult
from .stratum import StratumSummary
from .stage_report import RowIssue, StageReport
from .yield_gap_record import YieldGapRecord

__all__ = [
    "FieldSite",
    "FieldObservation",
    "YieldClass",
    "YieldCeilingProvenance",
    "YieldCeilingCandidate",
    "ResolvedYieldCeiling",
    "FunctionalForm",
    "FrontierModelResult",
    "StratumSummary",
    "RowIssue",
    "StageReport",
    "YieldGapRecord",
]
