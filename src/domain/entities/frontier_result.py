"""Stochastic frontier model result entity."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List
import pandas as pd


class FunctionalForm(str, Enum):
    """Production function form."""

    COBB_DOUGLAS = "cobb_douglas"
    TRANSLOG = "translog"


@dataclass
class FrontierModelResult:
    """Fitted stochastic production frontier with per-row technical efficiency."""

    functional_form: FunctionalForm
    coefficients: Dict[str, float]
    sigma_u: float
    sigma_v: float
    log_likelihood: float
    n_iter: int
    technical_efficiency: pd.Series  # indexed like the fitted table
    design_columns: List[str] = field(default_factory=list)

    @property
    def n_obs(self) -> int:
        return int(self.technical_efficiency.notna().sum())

    @property
    def n_params(self) -> int:
        """Slope coefficients plus the two variance components."""
        return len(self.coefficients) + 2

    @property
    def lambda_(self) -> float:
        """Ratio of inefficiency to noise standard deviation."""
        return self.sigma_u / self.sigma_v

    @property
    def gamma(self) -> float:
        """Share of composed-error variance due to inefficiency."""
        return self.sigma_u ** 2 / (self.sigma_u ** 2 + self.sigma_v ** 2)

    @property
    def mean_efficiency(self) -> float:
        return float(self.technical_efficiency.mean())

    def summary(self) -> Dict[str, Any]:
        return {
            "functional_form": self.functional_form.value,
            "n_obs": self.n_obs,
            "n_params": self.n_params,
            "log_likelihood": self.log_likelihood,
            "sigma_u": self.sigma_u,
            "sigma_v": self.sigma_v,
            "lambda": self.lambda_,
            "gamma": self.gamma,
            "mean_efficiency": self.mean_efficiency,
            "n_iter": self.n_iter,
        }
