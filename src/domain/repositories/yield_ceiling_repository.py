"""Yield ceiling repository interface."""

from abc import ABC, abstractmethod
from typing import Dict, List
from ..entities.yield_ceiling import YieldCeilingCandidate


class YieldCeilingRepository(ABC):
    """Abstract repository for water-limited yield (Yw) benchmarks."""

    @abstractmethod
    def get_candidates(self) -> Dict[str, List[YieldCeilingCandidate]]:
        """
        Retrieve candidate Yw sources per field.

        Returns:
            Mapping of field_id to the candidates matched by the spatial join
        """
        pass

    @abstractmethod
    def get_country_averages(self) -> Dict[str, Dict[int, float]]:
        """
        Retrieve national-average Yw series.

        Returns:
            Mapping of country to a year -> Yw mapping
        """
        pass
