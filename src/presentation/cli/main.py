"""CLI interface for yield gap decomposition."""

import argparse
import logging
import sys

from ...application.services.yield_gap_service import YieldGapService
from ...domain.use_cases.aggregate_yield_gaps import AggregateYieldGapsUseCase
from ...domain.use_cases.fit_frontier_model import FitFrontierModelUseCase
from ...infrastructure.repositories.csv_survey_repository import CsvSurveyRepository
from ...infrastructure.repositories.gyga_yield_ceiling_repository import GygaYieldCeilingRepository
from ...infrastructure.repositories.file_gap_report_repository import FileGapReportRepository

from config.settings import (
    SURVEY_DATA_FILE,
    YIELD_CEILING_FILE,
    COUNTRY_AVERAGE_FILE,
    OUTPUT_DIR,
    YIELD_COLUMN,
    CONTINUOUS_COVARIATES,
    CATEGORICAL_COVARIATES,
    STRATUM_COLUMNS,
    GROUP_COLUMNS,
    PREPARATION_SETTINGS,
    FRONTIER_SETTINGS,
    CLASSIFIER_SETTINGS,
    RESOLVER_SETTINGS,
    DECOMPOSITION_SETTINGS,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def build_service(args: argparse.Namespace) -> YieldGapService:
    """Wire repositories and settings into the service."""
    survey_repo = CsvSurveyRepository(
        args.survey,
        continuous=CONTINUOUS_COVARIATES,
        categorical=CATEGORICAL_COVARIATES,
        yield_column=YIELD_COLUMN,
        attribute_columns=GROUP_COLUMNS,
    )
    ceiling_repo = GygaYieldCeilingRepository(args.yield_ceiling, args.country_average)
    report_repo = FileGapReportRepository(args.output_dir)

    frontier_settings = dict(FRONTIER_SETTINGS)
    if args.command == "decompose" and args.functional_form:
        frontier_settings["functional_forms"] = args.functional_form
    resolver_settings = dict(RESOLVER_SETTINGS)
    if getattr(args, "max_distance_km", None) is not None:
        resolver_settings["max_distance_km"] = args.max_distance_km
    decomposition_settings = dict(DECOMPOSITION_SETTINGS)
    if getattr(args, "yw_basis", None):
        decomposition_settings["yw_basis"] = args.yw_basis

    return YieldGapService(
        survey_repo=survey_repo,
        yield_ceiling_repo=ceiling_repo,
        report_repo=report_repo,
        continuous=CONTINUOUS_COVARIATES,
        categorical=CATEGORICAL_COVARIATES,
        stratum_columns=STRATUM_COLUMNS,
        group_columns=GROUP_COLUMNS,
        preparation_settings=PREPARATION_SETTINGS,
        frontier_settings=frontier_settings,
        classifier_settings=CLASSIFIER_SETTINGS,
        resolver_settings=resolver_settings,
        decomposition_settings=decomposition_settings,
    )


def main():
    parser = argparse.ArgumentParser(description="Yield gap decomposition (Yw, Y_HF, Y_TEx, Ya)")
    parser.add_argument("--survey", type=str, default=str(SURVEY_DATA_FILE), help="Survey CSV/XLSX")
    parser.add_argument(
        "--yield-ceiling", type=str, default=str(YIELD_CEILING_FILE), help="Yw candidates CSV/XLSX"
    )
    parser.add_argument(
        "--country-average", type=str, default=str(COUNTRY_AVERAGE_FILE), help="Country Yw CSV/XLSX"
    )
    parser.add_argument("--output-dir", type=str, default=str(OUTPUT_DIR), help="Output directory")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # === decompose: full pipeline + exports ===
    decompose_parser = subparsers.add_parser(
        "decompose",
        help="Run full pipeline: prepare → frontier → classify → resolve Yw → decompose → aggregate",
    )
    decompose_parser.add_argument("--year", type=int, default=None, help="Harvest year filter")
    decompose_parser.add_argument(
        "--group-by", type=str, nargs="+", default=None, help="Grouping columns, e.g. zone farming_system"
    )
    decompose_parser.add_argument(
        "--functional-form",
        type=str,
        nargs="+",
        choices=["cobb_douglas", "translog"],
        default=None,
        help="Frontier functional forms to fit (Cobb-Douglas always feeds Y_TEx)",
    )
    decompose_parser.add_argument("--max-distance-km", type=float, default=None)
    decompose_parser.add_argument("--yw-basis", type=str, choices=["annual", "long_run"], default=None)

    # === fit-frontier: frontier only ===
    frontier_parser = subparsers.add_parser("fit-frontier", help="Fit the stochastic frontier only")
    frontier_parser.add_argument(
        "--functional-form", type=str, choices=["cobb_douglas", "translog"], default="cobb_douglas"
    )

    # === summarize: aggregate exported records ===
    summarize_parser = subparsers.add_parser("summarize", help="Aggregate previously exported records")
    summarize_parser.add_argument("--group-by", type=str, nargs="+", required=True)

    args = parser.parse_args()

    # === Command: summarize (needs exported records only) ===
    if args.command == "summarize":
        try:
            records = FileGapReportRepository(args.output_dir).load_records()
            summary = AggregateYieldGapsUseCase().execute(records, args.group_by)
            print(summary.round(2).to_string())
        except Exception as e:
            logger.error(f"Summary failed: {e}", exc_info=True)
            sys.exit(1)
        return

    try:
        service = build_service(args)
    except Exception as e:
        logger.error(f"Failed to initialize service: {e}")
        sys.exit(1)

    # === Command: decompose ===
    if args.command == "decompose":
        try:
            group_by = [args.group_by] if args.group_by else None
            analysis = service.run(group_by=group_by, year=args.year)

            print("\n" + "=" * 60)
            print(" YIELD GAP DECOMPOSITION ")
            print("=" * 60)
            print(f" Records:       {len(analysis.records)}")
            print(f" Strata:        {len(analysis.strata)}")
            for name, result in analysis.frontier_results.items():
                print(f" {name:<14} mean TE {result.mean_efficiency:.3f} | logLik {result.log_likelihood:.2f}")
            for report in analysis.reports:
                print(f" {report.summary()}")
            for name, summary in analysis.summaries.items():
                print(f"\n Mean gaps by {name}:")
                print(summary.round(2).to_string())
            print("=" * 60)
            print(f" Outputs in: {service.report_repo.output_dir.resolve()}")

            if analysis.failed_stages:
                sys.exit(2)
        except Exception as e:
            logger.error(f"Decomposition failed: {e}", exc_info=True)
            sys.exit(1)

    # === Command: fit-frontier ===
    elif args.command == "fit-frontier":
        try:
            observations = service.collect_survey_uc.execute()
            table, _ = service.prepare_uc.execute(observations)
            frontier_uc = FitFrontierModelUseCase(
                functional_form=args.functional_form,
                max_iter=FRONTIER_SETTINGS["max_iter"],
                efficiency_estimator=FRONTIER_SETTINGS["efficiency_estimator"],
            )
            result = frontier_uc.execute(table, "log_yield", service.log_covariates, service.categorical)

            print("\n" + "=" * 60)
            print(f" {args.functional_form.upper()} STOCHASTIC FRONTIER ")
            print("=" * 60)
            for key, value in result.summary().items():
                print(f" {key:<18} {value}")
            print("-" * 60)
            for term, coef in result.coefficients.items():
                print(f"  {term:<40} {coef:+.4f}")
            print("=" * 60)
        except Exception as e:
            logger.error(f"Frontier fit failed: {e}", exc_info=True)
            sys.exit(1)


if __name__ == "__main__":
    main()
