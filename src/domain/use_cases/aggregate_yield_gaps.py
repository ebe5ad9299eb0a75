"""Use case for summarising yield gaps by grouping keys."""

import logging
from typing import List, Union
import pandas as pd
from ..entities.yield_gap_record import (
    ABSOLUTE_GAP_COLUMNS,
    RELATIVE_GAP_COLUMNS,
    YIELD_LEVEL_COLUMNS,
    YieldGapRecord,
)
from ..exceptions import DataError

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = (
    YIELD_LEVEL_COLUMNS + ABSOLUTE_GAP_COLUMNS + RELATIVE_GAP_COLUMNS + ["yield_gap_closure_pct"]
)


def records_to_frame(records: List[YieldGapRecord]) -> pd.DataFrame:
    return pd.DataFrame([r.to_dict() for r in records])


class AggregateYieldGapsUseCase:
    """Mean yield levels and gap components per group, missing values ignored."""

    def execute(
        self,
        records: Union[List[YieldGapRecord], pd.DataFrame],
        group_by: Union[str, List[str]],
    ) -> pd.DataFrame:
        """
        Execute aggregation.

        Args:
            records: Yield gap records, or their tabular form
            group_by: Grouping column(s), e.g. "zone" or ["zone", "year"]

        Returns:
            DataFrame indexed by the group key(s) with n_observations and one
            column per yield level and gap component
        """
        keys = [group_by] if isinstance(group_by, str) else list(group_by)
        df = records if isinstance(records, pd.DataFrame) else records_to_frame(records)
        if df.empty:
            return pd.DataFrame(columns=["n_observations"] + SUMMARY_COLUMNS)

        missing = [k for k in keys if k not in df.columns]
        if missing:
            raise DataError(f"Unknown grouping columns: {missing}", stage="aggregation")

        grouped = df.groupby(keys, observed=True, sort=True)
        summary = grouped[SUMMARY_COLUMNS].mean()
        summary.insert(0, "n_observations", grouped.size())

        logger.info(f"Aggregated {len(df)} records into {len(summary)} groups by {keys}")
        return summary
