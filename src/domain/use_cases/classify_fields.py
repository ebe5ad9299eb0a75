"""Use case for percentile-based yield classification within biophysical strata."""

import logging
from typing import List, Tuple
import pandas as pd
from ..entities.stage_report import StageReport
from ..entities.stratum import StratumSummary, stratum_label
from ..entities.yield_class import YieldClass
from ..exceptions import DataError, StratumError

logger = logging.getLogger(__name__)

STAGE = "classification"

# Strata smaller than this give unstable decile thresholds
SMALL_STRATUM_SIZE = 10


class ClassifyFieldsUseCase:
    """Classify fields as highest/average/lowest yielding per stratum and derive Y_HF."""

    def __init__(
        self,
        stratum_columns: List[str],
        lower_percentile: float = 10,
        upper_percentile: float = 90,
        min_stratum_size: int = 1,
        yield_column: str = "yield_t_ha",
    ):
        """
        Initialize use case.

        Args:
            stratum_columns: Columns forming the composite stratum key
            lower_percentile: Percentile at or below which a field is "lowest"
            upper_percentile: Percentile at or above which a field is "highest"
            min_stratum_size: Strata with fewer members get an undefined Y_HF
            yield_column: Actual-yield column
        """
        if not stratum_columns:
            raise ValueError("At least one stratum column is required")
        if not 0 <= lower_percentile < upper_percentile <= 100:
            raise ValueError("Percentiles must satisfy 0 <= lower < upper <= 100")
        self.stratum_columns = list(stratum_columns)
        self.lower_q = lower_percentile / 100.0
        self.upper_q = upper_percentile / 100.0
        self.min_stratum_size = min_stratum_size
        self.yield_column = yield_column

    def execute(self, table: pd.DataFrame) -> Tuple[pd.DataFrame, List[StratumSummary], StageReport]:
        """
        Execute classification.

        Percentiles use linear interpolation between closest ranks, so a
        threshold is defined for every non-empty stratum.

        Args:
            table: Analysis table (not modified)

        Returns:
            Tuple of (classified copy of the table, per-stratum summaries, stage report)
        """
        missing = [c for c in self.stratum_columns + [self.yield_column] if c not in table.columns]
        if missing:
            raise DataError(f"Missing columns for classification: {missing}", stage=STAGE)

        logger.info(f"Classifying {len(table)} fields within strata {self.stratum_columns}")
        report = StageReport(stage=STAGE, n_rows=len(table))
        df = table.copy()
        cols = self.stratum_columns
        ya = df[self.yield_column].astype(float)

        unkeyed = df[cols].isna().any(axis=1)
        for obs_id in df.loc[unkeyed, "obs_id"]:
            report.add(obs_id, DataError("missing stratum key"))

        grouped = df.assign(_ya=ya).groupby(cols, observed=True, sort=True)["_ya"]
        lower = grouped.transform(lambda s: s.quantile(self.lower_q, interpolation="linear"))
        upper = grouped.transform(lambda s: s.quantile(self.upper_q, interpolation="linear"))
        size = grouped.transform("size")

        labels = YieldClass.classify(ya, lower, upper)
        yield_class = pd.Series(labels, index=df.index, dtype=object).where(upper.notna(), None)

        highest_ya = ya.where(yield_class == YieldClass.HIGHEST.value)
        y_hf = df.assign(_hf=highest_ya).groupby(cols, observed=True)["_hf"].transform("mean")

        too_small = size < self.min_stratum_size
        y_hf = y_hf.mask(too_small)
        for obs_id in df.loc[too_small, "obs_id"]:
            report.add(obs_id, StratumError(f"stratum has fewer than {self.min_stratum_size} members"))
        no_highest = upper.notna() & ~too_small & y_hf.isna()
        for obs_id in df.loc[no_highest, "obs_id"]:
            report.add(obs_id, StratumError("stratum has no highest-yield members"))

        keyed = df.loc[~unkeyed, cols]
        stratum_labels = [stratum_label(key) for key in keyed.itertuples(index=False, name=None)]
        df["stratum"] = pd.Series(stratum_labels, index=keyed.index, dtype=object).reindex(df.index)
        df["stratum_size"] = size
        df["p_lower"] = lower
        df["p_upper"] = upper
        df["yield_class"] = yield_class
        df["y_hf"] = y_hf

        summaries = []
        for key, group in df.groupby(cols, observed=True, sort=True):
            key = key if isinstance(key, tuple) else (key,)
            counts = group["yield_class"].value_counts()
            summaries.append(
                StratumSummary(
                    key=key,
                    size=len(group),
                    lower_threshold=float(group["p_lower"].iloc[0]),
                    upper_threshold=float(group["p_upper"].iloc[0]),
                    y_hf=float(group["y_hf"].iloc[0]),
                    n_highest=int(counts.get(YieldClass.HIGHEST.value, 0)),
                    n_average=int(counts.get(YieldClass.AVERAGE.value, 0)),
                    n_lowest=int(counts.get(YieldClass.LOWEST.value, 0)),
                )
            )

        n_small = sum(1 for s in summaries if s.size < SMALL_STRATUM_SIZE)
        if n_small:
            logger.warning(
                f"{n_small} of {len(summaries)} strata have fewer than {SMALL_STRATUM_SIZE} fields; "
                "decile thresholds there rest on very few observations"
            )
        logger.info(f"Classified fields into {len(summaries)} strata ({report.n_affected} rows with issues)")
        return df, summaries, report


def strata_table(summaries: List[StratumSummary], stratum_columns: List[str]) -> pd.DataFrame:
    """Tabulate stratum summaries for export."""
    return pd.DataFrame([s.to_dict(stratum_columns) for s in summaries])
