"""Concrete repository implementations."""

from .csv_survey_repository import CsvSurveyRepository
from .gyga_yield_ceiling_repository import GygaYieldCeilingRepository
from .file_gap_report_repository import FileGapReportRepository

__all__ = [
    "CsvSurveyRepository",
    "GygaYieldCeilingRepository",
    "FileGapReportRepository",
]
