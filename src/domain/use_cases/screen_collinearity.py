"""Use case for screening frontier covariates for collinearity (variance-inflation factors)."""

import logging
from typing import List, Optional
import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression
from .fit_frontier_model import build_design_matrix

logger = logging.getLogger(__name__)


class ScreenCollinearityUseCase:
    """OLS-based VIF pre-check on the frontier design matrix."""

    def __init__(self, threshold: float = 10.0):
        self.threshold = threshold

    def execute(
        self,
        table: pd.DataFrame,
        continuous: List[str],
        categorical: Optional[List[str]] = None,
        functional_form: str = "cobb_douglas",
    ) -> pd.DataFrame:
        """
        Compute the VIF of every non-constant design column.

        Returns:
            DataFrame with columns term, r_squared, vif, flagged; sorted by VIF descending
        """
        design = build_design_matrix(table, continuous, categorical, functional_form)
        design = design.drop(columns=["const"])

        rows = []
        for term in design.columns:
            others = design.drop(columns=[term])
            target = design[term]
            if others.empty or target.nunique() < 2:
                r2 = 0.0 if others.empty else 1.0
            else:
                r2 = LinearRegression().fit(others, target).score(others, target)
            vif = np.inf if r2 >= 1.0 - 1e-12 else 1.0 / (1.0 - r2)
            rows.append({"term": term, "r_squared": r2, "vif": vif})

        result = pd.DataFrame(rows, columns=["term", "r_squared", "vif"])
        result["flagged"] = result["vif"] > self.threshold
        result = result.sort_values("vif", ascending=False).reset_index(drop=True)

        flagged = result.loc[result["flagged"], "term"].tolist()
        if flagged:
            logger.warning(f"{len(flagged)} terms exceed VIF {self.threshold}: {', '.join(flagged)}")
        else:
            logger.info(f"No term exceeds VIF {self.threshold} ({len(result)} terms screened)")
        return result
