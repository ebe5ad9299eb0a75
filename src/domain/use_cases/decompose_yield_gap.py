"""Use case for decomposing the total yield gap into efficiency, resource and technology gaps."""

import logging
from typing import Dict, List, Mapping, Optional, Tuple
import numpy as np
import pandas as pd
from ..entities.stage_report import StageReport
from ..entities.yield_ceiling import ResolvedYieldCeiling
from ..entities.yield_class import YieldClass
from ..entities.yield_gap_record import YieldGapRecord
from ..exceptions import DataError, ResolutionError, StratumError

logger = logging.getLogger(__name__)

STAGE = "decomposition"
YW_BASES = ("annual", "long_run")


def compute_gaps(ya, y_tex, y_hf, yw) -> Dict[str, np.ndarray]:
    """
    Absolute (t/ha) and relative (% of Yw) gaps from the four yield levels.

    total = Yw - Ya = (Y_TEx - Ya) + (Y_HF - Y_TEx) + (Yw - Y_HF)

    A missing or non-positive Yw leaves every Yw-dependent value NaN.
    Accepts scalars or arrays.
    """
    ya, y_tex, y_hf, yw = (np.asarray(v, dtype=float) for v in (ya, y_tex, y_hf, yw))
    with np.errstate(invalid="ignore", divide="ignore"):
        yw = np.where(np.isfinite(yw) & (yw > 0), yw, np.nan)
        ya_pct = 100.0 * ya / yw
        tex_pct = 100.0 * y_tex / yw
        hf_pct = 100.0 * y_hf / yw

    return {
        "total_gap": yw - ya,
        "efficiency_gap": y_tex - ya,
        "resource_gap": y_hf - y_tex,
        "technology_gap": yw - y_hf,
        "yield_gap_closure_pct": ya_pct,
        "total_gap_pct": 100.0 - ya_pct,
        "efficiency_gap_pct": tex_pct - ya_pct,
        "resource_gap_pct": hf_pct - tex_pct,
        "technology_gap_pct": 100.0 - hf_pct,
    }


def check_additivity(records: List[YieldGapRecord], rel_tol: float = 1e-6) -> List[str]:
    """Observation ids whose gap components do not sum to the total gap."""
    return [r.obs_id for r in records if not r.is_additive(rel_tol)]


def _optional(value):
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    return value


class DecomposeYieldGapUseCase:
    """Combine Ya, Y_TEx, Y_HF and Yw into per-observation yield gap records."""

    def __init__(
        self,
        yw_basis: str = "annual",
        tolerance: float = 1e-6,
        efficiency_column: str = "te_cobb_douglas",
        translog_column: str = "te_translog",
        attribute_columns: Optional[List[str]] = None,
    ):
        """
        Initialize use case.

        Args:
            yw_basis: "annual" uses the harvest-year Yw, "long_run" the field's long-run mean
            tolerance: Relative tolerance of the additivity check
            efficiency_column: Technical-efficiency column feeding Y_TEx
            translog_column: Optional translog efficiency column carried for reporting
            attribute_columns: Table columns copied onto each record (grouping keys)
        """
        if yw_basis not in YW_BASES:
            raise ValueError(f"Unknown Yw basis: {yw_basis}")
        self.yw_basis = yw_basis
        self.tolerance = tolerance
        self.efficiency_column = efficiency_column
        self.translog_column = translog_column
        self.attribute_columns = list(attribute_columns or [])

    def _yw(self, ceiling: Optional[ResolvedYieldCeiling], year: int) -> float:
        if ceiling is None:
            return np.nan
        if self.yw_basis == "long_run":
            return ceiling.long_run_mean
        return ceiling.yw_for(year)

    def execute(
        self,
        table: pd.DataFrame,
        resolved: Mapping[str, ResolvedYieldCeiling],
    ) -> Tuple[List[YieldGapRecord], StageReport]:
        """
        Execute decomposition.

        Observations of fields without a resolved Yw source are excluded.

        Args:
            table: Classified table with efficiency scores
            resolved: field_id -> resolved Yw source

        Returns:
            Tuple of (yield gap records, stage report)
        """
        report = StageReport(stage=STAGE, n_rows=len(table))
        in_scope = table["field_id"].isin(list(resolved.keys()))
        for obs_id in table.loc[~in_scope, "obs_id"]:
            report.add(obs_id, ResolutionError("field has no Yw source; excluded"))
        df = table.loc[in_scope]
        logger.info(f"Decomposing yield gaps for {len(df)} observations (Yw basis: {self.yw_basis})")

        nan = pd.Series(np.nan, index=df.index)
        ya = df["yield_t_ha"].astype(float)
        te = df[self.efficiency_column].astype(float) if self.efficiency_column in df else nan
        te_tl = df[self.translog_column].astype(float) if self.translog_column in df else nan
        y_hf = df["y_hf"].astype(float) if "y_hf" in df else nan
        y_tex = ya / te

        ceilings = [resolved[f] for f in df["field_id"]]
        yw = np.array([self._yw(c, year) for c, year in zip(ceilings, df["year"])], dtype=float)
        yw_long_run = np.array([c.long_run_mean for c in ceilings], dtype=float)

        gaps = compute_gaps(ya, y_tex, y_hf, yw)
        with np.errstate(invalid="ignore"):
            yw_defined = np.isfinite(yw) & (yw > 0)
        yw = np.where(yw_defined, yw, np.nan)

        for obs_id in df.loc[te.isna(), "obs_id"]:
            report.add(obs_id, DataError("technical efficiency undefined; Y_TEx missing"))
        for obs_id in df.loc[y_hf.isna(), "obs_id"]:
            report.add(obs_id, StratumError("Y_HF undefined for stratum"))
        for obs_id in df.loc[~yw_defined, "obs_id"]:
            report.add(obs_id, ResolutionError("Yw undefined for harvest year"))

        attribute_columns = [c for c in self.attribute_columns if c in df.columns]
        stratum = df["stratum"] if "stratum" in df else pd.Series(None, index=df.index, dtype=object)
        yield_class = df["yield_class"] if "yield_class" in df else pd.Series(None, index=df.index, dtype=object)

        records = []
        for i, (idx, row) in enumerate(df.iterrows()):
            label = _optional(yield_class.loc[idx])
            records.append(
                YieldGapRecord(
                    obs_id=str(row["obs_id"]),
                    field_id=str(row["field_id"]),
                    year=int(row["year"]),
                    ya=float(ya.loc[idx]),
                    yw=float(yw[i]),
                    yw_long_run=float(yw_long_run[i]),
                    y_hf=float(y_hf.loc[idx]),
                    y_tex=float(y_tex.loc[idx]),
                    technical_efficiency=float(te.loc[idx]),
                    technical_efficiency_translog=float(te_tl.loc[idx]),
                    stratum=_optional(stratum.loc[idx]),
                    yield_class=YieldClass(label) if label is not None else None,
                    provenance=ceilings[i].provenance,
                    attributes={c: _optional(row[c]) for c in attribute_columns},
                    **{name: float(values[i]) for name, values in gaps.items()},
                )
            )

        violations = check_additivity(records, self.tolerance)
        if violations:
            logger.error(f"{len(violations)} records violate gap additivity: {violations[:5]}")

        n_complete = sum(r.is_complete for r in records)
        logger.info(f"Decomposed {len(records)} observations ({n_complete} complete)")
        return records, report
