"""Farm-survey repository backed by a CSV or Excel table."""

import logging
from pathlib import Path
from typing import Any, List, Optional
import pandas as pd
from ...domain.entities.field_observation import FieldObservation
from ...domain.entities.field_site import climate_zone_code
from ...domain.exceptions import DataError
from ...domain.repositories.survey_repository import SurveyRepository

logger = logging.getLogger(__name__)


def _value(value: Any) -> Any:
    return None if pd.isna(value) else value


def read_table(path: Path) -> pd.DataFrame:
    """Read a CSV or .xlsx table."""
    if path.suffix == ".xlsx":
        return pd.read_excel(path, engine="openpyxl")
    return pd.read_csv(path)


class CsvSurveyRepository(SurveyRepository):
    """Repository for one-row-per-subplot-year survey tables."""

    ID_COLUMNS = ["household_id", "plot_id", "subplot_id", "year"]

    def __init__(
        self,
        data_file: str,
        continuous: List[str],
        categorical: List[str],
        yield_column: str = "yield_t_ha",
        attribute_columns: Optional[List[str]] = None,
    ):
        """
        Initialize repository.

        Args:
            data_file: Path to CSV/XLSX survey table
            continuous: Continuous covariate columns
            categorical: Categorical covariate columns
            yield_column: Actual-yield column (t/ha)
            attribute_columns: Extra grouping columns kept on each observation
        """
        self.data_file = Path(data_file)
        if not self.data_file.exists():
            raise FileNotFoundError(f"Survey data file not found: {data_file}")
        self.continuous = list(continuous)
        self.categorical = list(categorical)
        self.yield_column = yield_column
        self.attribute_columns = list(attribute_columns or [])

    def get_observations(
        self,
        year: Optional[int] = None,
        country: Optional[str] = None,
    ) -> List[FieldObservation]:
        """Retrieve field observations from the survey table."""
        logger.info(f"Loading survey data from {self.data_file}")
        df = read_table(self.data_file)

        required = self.ID_COLUMNS + [self.yield_column] + self.continuous + self.categorical
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise DataError(f"Survey table is missing columns: {missing}", stage="collection")

        if year is not None:
            df = df[df["year"] == year]
        if country is not None and "country" in df.columns:
            df = df[df["country"] == country]

        attributes = [c for c in self.attribute_columns if c in df.columns]
        result = []
        for _, row in df.iterrows():
            result.append(
                FieldObservation(
                    household_id=str(row["household_id"]),
                    plot_id=str(row["plot_id"]),
                    subplot_id=str(row["subplot_id"]),
                    year=int(row["year"]),
                    yield_t_ha=_value(row[self.yield_column]),
                    covariates={c: _value(row[c]) for c in self.continuous},
                    factors={c: _value(row[c]) for c in self.categorical},
                    country=_value(row.get("country")),
                    climate_zone=climate_zone_code(_value(row.get("climate_zone"))),
                    latitude=_value(row.get("latitude")),
                    longitude=_value(row.get("longitude")),
                    attributes={c: _value(row[c]) for c in attributes},
                )
            )

        logger.info(f"Loaded {len(result)} field observations")
        return result
