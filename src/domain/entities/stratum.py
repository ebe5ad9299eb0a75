"""Stratum summary entity."""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class StratumSummary:
    """Percentile thresholds and Y_HF for one biophysical stratum."""

    key: Tuple[Any, ...]
    size: int
    lower_threshold: float  # P10 of actual yield
    upper_threshold: float  # P90 of actual yield
    y_hf: float
    n_highest: int
    n_average: int
    n_lowest: int

    @property
    def label(self) -> str:
        return stratum_label(self.key)

    def to_dict(self, columns) -> Dict[str, Any]:
        row = dict(zip(columns, self.key))
        row.update(
            {
                "stratum": self.label,
                "size": self.size,
                "lower_threshold": self.lower_threshold,
                "upper_threshold": self.upper_threshold,
                "y_hf": self.y_hf,
                "n_highest": self.n_highest,
                "n_average": self.n_average,
                "n_lowest": self.n_lowest,
            }
        )
        return row

    def __str__(self) -> str:
        return self.label


def stratum_label(key: Tuple[Any, ...]) -> str:
    """Stable text label for a composite stratum key, e.g. '2013|CZ5|poor'."""
    return "|".join(str(part) for part in key)
