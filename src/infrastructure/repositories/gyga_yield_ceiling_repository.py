"""GYGA yield ceiling repository reading pre-joined candidate tables."""

import logging
from pathlib import Path
from typing import Dict, List, Optional
import pandas as pd
from ...domain.entities.field_site import climate_zone_code
from ...domain.entities.yield_ceiling import YieldCeilingCandidate
from ...domain.exceptions import DataError
from ...domain.repositories.yield_ceiling_repository import YieldCeilingRepository
from .csv_survey_repository import read_table

logger = logging.getLogger(__name__)

YW_STUB = "yw"


def _to_long(df: pd.DataFrame, id_columns: List[str]) -> pd.DataFrame:
    """Convert wide yw_<year> columns into narrow (..., year, yw) rows."""
    if not any(c.startswith(f"{YW_STUB}_") for c in df.columns):
        raise DataError(f"Yield ceiling table has no '{YW_STUB}_<year>' columns", stage="collection")
    df_long = pd.wide_to_long(
        df, stubnames=YW_STUB, i=id_columns, j="year", sep="_", suffix=r"\d+"
    ).reset_index()
    df_long["year"] = df_long["year"].astype(int)
    return df_long


class GygaYieldCeilingRepository(YieldCeilingRepository):
    """
    Repository for Yw candidates per field and national Yw averages.

    Candidate table columns: field_id, source_id, climate_zone, distance_km, yw_<year>...
    Country table columns: country, yw_<year>...
    """

    def __init__(self, candidates_file: str, country_average_file: Optional[str] = None):
        self.candidates_file = Path(candidates_file)
        if not self.candidates_file.exists():
            raise FileNotFoundError(f"Yield ceiling file not found: {candidates_file}")
        self.country_average_file = Path(country_average_file) if country_average_file else None
        if self.country_average_file and not self.country_average_file.exists():
            raise FileNotFoundError(f"Country average file not found: {country_average_file}")

    def get_candidates(self) -> Dict[str, List[YieldCeilingCandidate]]:
        """Retrieve Yw candidates grouped by field."""
        logger.info(f"Loading Yw candidates from {self.candidates_file}")
        df = read_table(self.candidates_file)
        df["field_id"] = df["field_id"].astype(str)
        df["source_id"] = df["source_id"].astype(str)
        df_long = _to_long(df, ["field_id", "source_id"])

        result: Dict[str, List[YieldCeilingCandidate]] = {}
        for (field_id, source_id), group in df_long.groupby(["field_id", "source_id"], sort=True):
            first = group.iloc[0]
            candidate = YieldCeilingCandidate(
                field_id=field_id,
                source_id=source_id,
                climate_zone=None if pd.isna(first.get("climate_zone")) else climate_zone_code(first["climate_zone"]),
                distance_km=None if pd.isna(first.get("distance_km")) else float(first["distance_km"]),
                yields={
                    int(year): (None if pd.isna(yw) else float(yw))
                    for year, yw in zip(group["year"], group[YW_STUB])
                },
            )
            result.setdefault(field_id, []).append(candidate)

        logger.info(f"Loaded Yw candidates for {len(result)} fields")
        return result

    def get_country_averages(self) -> Dict[str, Dict[int, float]]:
        """Retrieve national-average Yw series."""
        if self.country_average_file is None:
            logger.warning("No country average file configured; the country tier is unavailable")
            return {}
        df = read_table(self.country_average_file)
        df["country"] = df["country"].astype(str)
        df_long = _to_long(df, ["country"]).dropna(subset=[YW_STUB])
        return {
            country: {int(y): float(v) for y, v in zip(group["year"], group[YW_STUB])}
            for country, group in df_long.groupby("country", sort=True)
        }
