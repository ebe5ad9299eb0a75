"""
Yield gap decomposition - custom exceptions

Defines exception hierarchy for the pipeline:
- YieldGapError: Base exception
- DataError: Malformed or missing required input
- ModelFitError: Frontier optimisation failure
- StratumError: Stratum too small or without a highest-yield class
- ResolutionError: Field resolvable by no yield-ceiling tier
"""

from typing import Optional


class YieldGapError(Exception):
    """
    Base exception for the yield gap pipeline.

    Attributes:
        stage: Pipeline stage that raised the error, if known
        row_id: Observation or field identifier, if the error concerns one row
    """

    def __init__(self, message: str, stage: Optional[str] = None, row_id: Optional[str] = None):
        super().__init__(message)
        self.stage = stage
        self.row_id = row_id

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            message = f"[{self.stage}] {message}"
        if self.row_id:
            message = f"{message} (row {self.row_id})"
        return message


class DataError(YieldGapError):
    """
    Data validation errors.

    Raised when:
    - A required column is missing
    - A required covariate is non-finite after transformation
    - Actual yield is missing or non-positive
    """
    pass


class ModelFitError(YieldGapError):
    """
    Frontier model fitting errors.

    Raised when:
    - The design matrix is rank-deficient
    - There are no residual degrees of freedom
    - The optimiser does not converge within its iteration budget
    """
    pass


class StratumError(YieldGapError):
    """Stratum too small or missing a highest-yield class, leaving Y_HF undefined."""
    pass


class ResolutionError(YieldGapError):
    """Field resolvable by none of the yield-ceiling tiers (e.g. missing coordinates)."""
    pass
