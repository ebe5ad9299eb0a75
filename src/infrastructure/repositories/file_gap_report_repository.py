"""File-based gap report repository implementation."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List
import pandas as pd
from ...domain.entities.yield_gap_record import YieldGapRecord
from ...domain.repositories.gap_report_repository import GapReportRepository

logger = logging.getLogger(__name__)


class FileGapReportRepository(GapReportRepository):
    """Repository writing decomposition results as CSV and JSON files."""

    RECORDS_FILE = "yield_gap_records.csv"
    METADATA_FILE = "run_metadata.json"

    def __init__(self, output_dir: str = "output"):
        """
        Initialize repository.

        Args:
            output_dir: Directory to store results
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def save_records(self, records: List[YieldGapRecord]) -> str:
        """Save records; floats are written with full round-trip precision."""
        path = self.output_dir / self.RECORDS_FILE
        logger.info(f"Saving {len(records)} yield gap records to {path}")
        pd.DataFrame([r.to_dict() for r in records]).to_csv(path, index=False)
        return str(path)

    def load_records(self) -> List[YieldGapRecord]:
        path = self.output_dir / self.RECORDS_FILE
        if not path.exists():
            raise FileNotFoundError(f"Yield gap records not found: {path}")
        logger.info(f"Loading yield gap records from {path}")
        df = pd.read_csv(
            path, dtype={"obs_id": str, "field_id": str, "stratum": str}, float_precision="round_trip"
        )
        return [YieldGapRecord.from_dict(row) for row in df.to_dict("records")]

    def save_table(self, table: pd.DataFrame, name: str) -> str:
        path = self.output_dir / f"{name}.csv"
        keep_index = not isinstance(table.index, pd.RangeIndex)
        table.to_csv(path, index=keep_index)
        logger.info(f"Saved table '{name}' ({len(table)} rows) to {path}")
        return str(path)

    def save_metadata(self, metadata: Dict[str, Any]) -> str:
        path = self.output_dir / self.METADATA_FILE
        with open(path, "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2, default=str)
        logger.info(f"Run metadata saved: {path}")
        return str(path)
