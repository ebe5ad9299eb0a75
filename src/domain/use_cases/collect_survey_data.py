"""Use case for collecting farm-survey data."""

import logging
from typing import List, Optional
from ..entities.field_observation import FieldObservation
from ..repositories.survey_repository import SurveyRepository

logger = logging.getLogger(__name__)


class CollectSurveyDataUseCase:
    """Use case to collect field observations from repository."""

    def __init__(self, repository: SurveyRepository):
        """
        Initialize use case.

        Args:
            repository: Repository for survey data access
        """
        self.repository = repository

    def execute(
        self,
        year: Optional[int] = None,
        country: Optional[str] = None,
    ) -> List[FieldObservation]:
        """
        Execute the use case.

        Args:
            year: Optional harvest-year filter
            country: Optional country filter

        Returns:
            List of FieldObservation entities
        """
        logger.info(f"Collecting survey data: year={year}, country={country}")
        data = self.repository.get_observations(year=year, country=country)
        logger.info(f"Collected {len(data)} field observations")
        return data
