"""Use cases - core business operations."""

from .collect_survey_data import CollectSurveyDataUseCase
from .collect_yield_ceiling_data import CollectYieldCeilingDataUseCase
from .prepare_survey_data import PrepareSurveyDataUseCase
from .screen_collinearity import ScreenCollinearityUseCase
from .fit_frontier_model import FitFrontierModelUseCase
from .classify_fields import ClassifyFieldsUseCase
from .resolve_yield_ceiling import ResolveYieldCeilingUseCase
from .decompose_yield_gap import DecomposeYieldGapUseCase
from .aggregate_yield_gaps import AggregateYieldGapsUseCase

__all__ = [
    "CollectSurveyDataUseCase",
    "CollectYieldCeilingDataUseCase",
    "PrepareSurveyDataUseCase",
    "ScreenCollinearityUseCase",
    "FitFrontierModelUseCase",
    "ClassifyFieldsUseCase",
    "ResolveYieldCeilingUseCase",
    "DecomposeYieldGapUseCase",
    "AggregateYieldGapsUseCase",
]
