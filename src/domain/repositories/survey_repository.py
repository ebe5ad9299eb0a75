"""Survey repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional
from ..entities.field_observation import FieldObservation


class SurveyRepository(ABC):
    """Abstract repository for farm-survey data access."""

    @abstractmethod
    def get_observations(
        self,
        year: Optional[int] = None,
        country: Optional[str] = None,
    ) -> List[FieldObservation]:
        """
        Retrieve field observations.

        Args:
            year: Filter by harvest year (optional)
            country: Filter by country (optional)

        Returns:
            List of FieldObservation entities
        """
        pass
