"""Use case for turning raw survey observations into an analysis-ready table."""

import logging
from typing import List, Optional, Tuple
import numpy as np
import pandas as pd
from ..entities.field_observation import FieldObservation
from ..entities.stage_report import StageReport
from ..exceptions import DataError

logger = logging.getLogger(__name__)

STAGE = "preparation"


def log_column(name: str) -> str:
    return f"log_{name}"


class PrepareSurveyDataUseCase:
    """Filter, impute, log-transform and type-cast field observations."""

    def __init__(
        self,
        continuous: List[str],
        categorical: List[str],
        epsilon: float = 1e-3,
        impute: Optional[str] = None,
        max_yield: Optional[float] = None,
    ):
        """
        Initialize use case.

        Args:
            continuous: Continuous covariates to log-transform
            categorical: Categorical covariates to cast to labels
            epsilon: Positive value replacing zeros before the log transform
            impute: None, or "median" to fill missing continuous values with the year median
            max_yield: Optional upper plausibility bound on actual yield (t/ha)
        """
        if epsilon <= 0:
            raise ValueError("epsilon must be positive")
        if impute not in (None, "median"):
            raise ValueError(f"Unknown imputation strategy: {impute}")
        self.continuous = list(continuous)
        self.categorical = list(categorical)
        self.epsilon = epsilon
        self.impute = impute
        self.max_yield = max_yield

    def _drop(self, df: pd.DataFrame, mask: pd.Series, report: StageReport, reason: str) -> pd.DataFrame:
        for obs_id in df.loc[mask, "obs_id"]:
            report.add(obs_id, DataError(reason))
        if mask.any():
            logger.warning(f"Dropping {int(mask.sum())} observations: {reason}")
        return df.loc[~mask]

    def execute(self, observations: List[FieldObservation]) -> Tuple[pd.DataFrame, StageReport]:
        """
        Execute data preparation.

        Args:
            observations: Raw field observations

        Returns:
            Tuple of (analysis table, stage report)
        """
        logger.info(f"Preparing {len(observations)} field observations")
        report = StageReport(stage=STAGE, n_rows=len(observations))

        df = pd.DataFrame([o.to_dict() for o in observations])
        if df.empty:
            raise DataError("No observations to prepare", stage=STAGE)

        missing_cols = [c for c in self.continuous + self.categorical if c not in df.columns]
        if missing_cols:
            raise DataError(f"Missing required covariates: {missing_cols}", stage=STAGE)

        # Duplicate observation keys
        df = self._drop(df, df["obs_id"].duplicated(keep="first"), report, "duplicate observation key")

        # Actual yield must be a finite positive number
        ya = pd.to_numeric(df["yield_t_ha"], errors="coerce")
        df = df.assign(yield_t_ha=ya)
        bad_yield = ~np.isfinite(ya) | (ya <= 0)
        df = self._drop(df, bad_yield, report, "missing or non-positive actual yield")
        if self.max_yield is not None:
            df = self._drop(df, df["yield_t_ha"] > self.max_yield, report, f"actual yield above {self.max_yield}")

        # Continuous covariates
        cont = df[self.continuous].apply(pd.to_numeric, errors="coerce")
        if self.impute == "median":
            medians = cont.groupby(df["year"]).transform("median")
            n_filled = int((cont.isna() & medians.notna()).sum().sum())
            cont = cont.fillna(medians)
            if n_filled:
                logger.info(f"Imputed {n_filled} missing covariate values with year medians")
        df = df.assign(**{c: cont[c] for c in self.continuous})
        df = self._drop(df, ~np.isfinite(cont).all(axis=1), report, "missing continuous covariate")
        df = self._drop(df, (df[self.continuous] < 0).any(axis=1), report, "negative continuous covariate")

        # Categorical covariates
        df = self._drop(df, df[self.categorical].isna().any(axis=1), report, "missing categorical covariate")

        df = df.copy()
        for col in self.continuous:
            df[log_column(col)] = np.log(df[col].where(df[col] > 0, self.epsilon))
        for col in self.categorical:
            df[col] = df[col].astype(str).astype("category")
        df["year"] = df["year"].astype(int)
        df["log_yield"] = np.log(df["yield_t_ha"])
        df = df.reset_index(drop=True)

        logger.info(f"Prepared {len(df)} observations ({report.n_affected} dropped)")
        return df, report
