"""Gap report repository interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List
import pandas as pd
from ..entities.yield_gap_record import YieldGapRecord


class GapReportRepository(ABC):
    """Abstract repository for persisting decomposition results."""

    @abstractmethod
    def save_records(self, records: List[YieldGapRecord]) -> str:
        """
        Save per-observation yield gap records.

        Args:
            records: Records to save

        Returns:
            Path or identifier where records were saved
        """
        pass

    @abstractmethod
    def load_records(self) -> List[YieldGapRecord]:
        """Load previously saved yield gap records."""
        pass

    @abstractmethod
    def save_table(self, table: pd.DataFrame, name: str) -> str:
        """
        Save a summary table (strata, grouped gaps).

        Args:
            table: Table to save
            name: Table name

        Returns:
            Path or identifier where the table was saved
        """
        pass

    @abstractmethod
    def save_metadata(self, metadata: Dict[str, Any]) -> str:
        """Save run metadata (frontier summaries, stage reports)."""
        pass
