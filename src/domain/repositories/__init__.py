"""Repository interfaces."""

from .survey_repository import SurveyRepository
from .yield_ceiling_repository import YieldCeilingRepository
from .gap_report_repository import GapReportRepository

__all__ = [
    "SurveyRepository",
    "YieldCeilingRepository",
    "GapReportRepository",
]
