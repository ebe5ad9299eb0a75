"""Use case for collecting yield ceiling (Yw) benchmarks."""

import logging
from typing import Dict, List, Tuple
from ..entities.yield_ceiling import YieldCeilingCandidate
from ..repositories.yield_ceiling_repository import YieldCeilingRepository

logger = logging.getLogger(__name__)


class CollectYieldCeilingDataUseCase:
    """Use case to collect Yw candidates and country averages from repository."""

    def __init__(self, repository: YieldCeilingRepository):
        self.repository = repository

    def execute(self) -> Tuple[Dict[str, List[YieldCeilingCandidate]], Dict[str, Dict[int, float]]]:
        candidates = self.repository.get_candidates()
        country_averages = self.repository.get_country_averages()
        logger.info(
            f"Collected Yw candidates for {len(candidates)} fields "
            f"and country averages for {len(country_averages)} countries"
        )
        return candidates, country_averages
