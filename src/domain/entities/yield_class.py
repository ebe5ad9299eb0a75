"""Yield class enumeration."""

from enum import Enum
import numpy as np


class YieldClass(str, Enum):
    """Enumeration for field yield classification within a stratum."""

    HIGHEST = "highest"
    AVERAGE = "average"
    LOWEST = "lowest"

    @classmethod
    def classify(cls, values, lower, upper) -> np.ndarray:
        """
        Classify yields against their stratum's lower and upper percentiles.

        A yield equal to the upper percentile is "highest"; one equal to the
        lower percentile is "lowest". Works element-wise on arrays or Series.

        Returns:
            Array of class values
        """
        return np.select(
            [np.asarray(values >= upper), np.asarray(values <= lower)],
            [cls.HIGHEST.value, cls.LOWEST.value],
            default=cls.AVERAGE.value,
        )
