"""Main service orchestrating the yield gap decomposition workflow."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import pandas as pd

from ...domain.entities.frontier_result import FrontierModelResult, FunctionalForm
from ...domain.entities.stage_report import StageReport
from ...domain.entities.stratum import StratumSummary
from ...domain.entities.yield_gap_record import YieldGapRecord
from ...domain.exceptions import ModelFitError
from ...domain.repositories.gap_report_repository import GapReportRepository
from ...domain.repositories.survey_repository import SurveyRepository
from ...domain.repositories.yield_ceiling_repository import YieldCeilingRepository

# Use cases
from ...domain.use_cases.collect_survey_data import CollectSurveyDataUseCase
from ...domain.use_cases.collect_yield_ceiling_data import CollectYieldCeilingDataUseCase
from ...domain.use_cases.prepare_survey_data import PrepareSurveyDataUseCase, log_column
from ...domain.use_cases.screen_collinearity import ScreenCollinearityUseCase
from ...domain.use_cases.fit_frontier_model import FitFrontierModelUseCase, likelihood_ratio_test
from ...domain.use_cases.classify_fields import ClassifyFieldsUseCase, strata_table
from ...domain.use_cases.resolve_yield_ceiling import ResolveYieldCeilingUseCase
from ...domain.use_cases.decompose_yield_gap import DecomposeYieldGapUseCase
from ...domain.use_cases.aggregate_yield_gaps import AggregateYieldGapsUseCase, records_to_frame

logger = logging.getLogger(__name__)


@dataclass
class YieldGapAnalysis:
    """Everything one decomposition run produces."""

    records: List[YieldGapRecord]
    summaries: Dict[str, pd.DataFrame]
    strata: List[StratumSummary]
    frontier_results: Dict[str, FrontierModelResult]
    reports: List[StageReport]
    collinearity: Optional[pd.DataFrame] = None
    likelihood_ratio: Optional[Dict[str, float]] = None
    exports: Dict[str, str] = field(default_factory=dict)

    @property
    def records_frame(self) -> pd.DataFrame:
        return records_to_frame(self.records)

    @property
    def failed_stages(self) -> List[str]:
        return [r.stage for r in self.reports if r.fatal is not None]

    def metadata(self) -> Dict[str, Any]:
        return {
            "run_date": pd.Timestamp.now().isoformat(),
            "n_records": len(self.records),
            "n_complete": sum(r.is_complete for r in self.records),
            "n_strata": len(self.strata),
            "frontier": {name: res.summary() for name, res in self.frontier_results.items()},
            "likelihood_ratio_test": self.likelihood_ratio,
            "stages": [r.to_dict() for r in self.reports],
        }


class YieldGapService:
    """Orchestrates the yield gap decomposition pipeline."""

    def __init__(
        self,
        survey_repo: SurveyRepository,
        yield_ceiling_repo: YieldCeilingRepository,
        report_repo: Optional[GapReportRepository],
        continuous: List[str],
        categorical: List[str],
        stratum_columns: List[str],
        group_columns: Optional[List[str]] = None,
        preparation_settings: Optional[Dict[str, Any]] = None,
        frontier_settings: Optional[Dict[str, Any]] = None,
        classifier_settings: Optional[Dict[str, Any]] = None,
        resolver_settings: Optional[Dict[str, Any]] = None,
        decomposition_settings: Optional[Dict[str, Any]] = None,
    ):
        self.report_repo = report_repo
        self.continuous = list(continuous)
        self.categorical = list(categorical)
        self.stratum_columns = list(stratum_columns)
        self.group_columns = list(group_columns or [])

        preparation_settings = preparation_settings or {}
        frontier_settings = dict(frontier_settings or {})
        classifier_settings = classifier_settings or {}
        resolver_settings = resolver_settings or {}
        decomposition_settings = decomposition_settings or {}

        self.functional_forms = [
            FunctionalForm(f) for f in frontier_settings.pop("functional_forms", ["cobb_douglas"])
        ]
        if FunctionalForm.COBB_DOUGLAS not in self.functional_forms:
            # Cobb-Douglas efficiency is the canonical Y_TEx source
            self.functional_forms.insert(0, FunctionalForm.COBB_DOUGLAS)
        self.screen_collinearity = frontier_settings.pop("screen_collinearity", False)
        vif_threshold = frontier_settings.pop("vif_threshold", 10.0)

        # Use cases
        self.collect_survey_uc = CollectSurveyDataUseCase(survey_repo)
        self.collect_ceiling_uc = CollectYieldCeilingDataUseCase(yield_ceiling_repo)
        self.prepare_uc = PrepareSurveyDataUseCase(
            continuous=self.continuous, categorical=self.categorical, **preparation_settings
        )
        self.screen_uc = ScreenCollinearityUseCase(threshold=vif_threshold)
        self.frontier_ucs = {
            form: FitFrontierModelUseCase(functional_form=form, **frontier_settings)
            for form in self.functional_forms
        }
        self.classify_uc = ClassifyFieldsUseCase(self.stratum_columns, **classifier_settings)
        self.resolve_uc = ResolveYieldCeilingUseCase(**resolver_settings)
        attribute_columns = list(dict.fromkeys(self.group_columns + self.stratum_columns))
        self.decompose_uc = DecomposeYieldGapUseCase(
            attribute_columns=[c for c in attribute_columns if c != "year"], **decomposition_settings
        )
        self.aggregate_uc = AggregateYieldGapsUseCase()

    @property
    def log_covariates(self) -> List[str]:
        return [log_column(c) for c in self.continuous]

    def fit_frontier(self, table: pd.DataFrame, form: FunctionalForm) -> FrontierModelResult:
        return self.frontier_ucs[FunctionalForm(form)].execute(
            table, response="log_yield", continuous=self.log_covariates, categorical=self.categorical
        )

    def run(
        self,
        group_by: Optional[List[Union[str, List[str]]]] = None,
        year: Optional[int] = None,
        country: Optional[str] = None,
    ) -> YieldGapAnalysis:
        """
        Run the full decomposition.

        Args:
            group_by: Grouping keys to summarise by (defaults to each configured group column)
            year: Optional harvest-year filter
            country: Optional country filter

        Returns:
            YieldGapAnalysis with records, summaries and per-stage reports
        """
        logger.info("=== Starting yield gap decomposition ===")
        reports: List[StageReport] = []

        # Step 1: Survey data
        observations = self.collect_survey_uc.execute(year=year, country=country)
        table, prep_report = self.prepare_uc.execute(observations)
        reports.append(prep_report)

        # Step 2: Frontier
        collinearity = None
        if self.screen_collinearity:
            collinearity = self.screen_uc.execute(table, self.log_covariates, self.categorical)

        frontier_results: Dict[str, FrontierModelResult] = {}
        likelihood_ratio = None
        for form in self.functional_forms:
            frontier_report = StageReport(stage=f"frontier_{form.value}", n_rows=len(table))
            try:
                frontier_results[form.value] = self.fit_frontier(table, form)
            except ModelFitError as e:
                frontier_report.fatal = e
                logger.error(f"{form.value} frontier aborted, its efficiency scores are unavailable: {e}")
            reports.append(frontier_report)

        for name, result in frontier_results.items():
            table[f"te_{name}"] = result.technical_efficiency
        if {FunctionalForm.COBB_DOUGLAS.value, FunctionalForm.TRANSLOG.value} <= set(frontier_results):
            likelihood_ratio = likelihood_ratio_test(
                frontier_results[FunctionalForm.COBB_DOUGLAS.value],
                frontier_results[FunctionalForm.TRANSLOG.value],
            )
            logger.info(
                f"LR test Cobb-Douglas vs translog: stat={likelihood_ratio['statistic']:.2f}, "
                f"df={likelihood_ratio['df']}, p={likelihood_ratio['p_value']:.4f}"
            )

        # Step 3: Stratified classification
        classified, strata, classify_report = self.classify_uc.execute(table)
        reports.append(classify_report)

        # Step 4: Yield ceiling
        candidates, country_averages = self.collect_ceiling_uc.execute()
        sites = [o.site for o in observations]
        resolved, resolve_report = self.resolve_uc.execute(sites, candidates, country_averages)
        reports.append(resolve_report)

        # Step 5: Decomposition
        records, decompose_report = self.decompose_uc.execute(classified, resolved)
        reports.append(decompose_report)

        # Step 6: Aggregation
        if group_by is not None:
            keys = group_by
        else:
            available = set(records_to_frame(records).columns)
            keys = [c for c in self.group_columns if c in available]
        summaries = {}
        for key in keys:
            name = key if isinstance(key, str) else "_".join(key)
            summaries[name] = self.aggregate_uc.execute(records, key)

        for report in reports:
            log = logger.warning if not report.ok else logger.info
            log(report.summary())

        analysis = YieldGapAnalysis(
            records=records,
            summaries=summaries,
            strata=strata,
            frontier_results=frontier_results,
            reports=reports,
            collinearity=collinearity,
            likelihood_ratio=likelihood_ratio,
        )

        if self.report_repo is not None:
            analysis.exports = self.export(analysis)

        logger.info("=== Yield gap decomposition completed ===")
        return analysis

    def export(self, analysis: YieldGapAnalysis) -> Dict[str, str]:
        """Persist records, summary tables and run metadata."""
        exports = {"records": self.report_repo.save_records(analysis.records)}
        exports["strata"] = self.report_repo.save_table(
            strata_table(analysis.strata, self.stratum_columns), "strata"
        )
        for name, summary in analysis.summaries.items():
            exports[f"summary_{name}"] = self.report_repo.save_table(summary, f"summary_{name}")
        if analysis.collinearity is not None:
            exports["collinearity"] = self.report_repo.save_table(analysis.collinearity, "collinearity")
        exports["metadata"] = self.report_repo.save_metadata(analysis.metadata())
        return exports

    def summarize(self, group_by: Union[str, List[str]]) -> pd.DataFrame:
        """Aggregate previously exported records."""
        if self.report_repo is None:
            raise RuntimeError("No report repository configured")
        records = self.report_repo.load_records()
        return self.aggregate_uc.execute(records, group_by)
