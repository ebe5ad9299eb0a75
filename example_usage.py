"""Example usage of the yield gap decomposition system."""

import logging
from src.application.services.yield_gap_service import YieldGapService
from src.infrastructure.repositories.csv_survey_repository import CsvSurveyRepository
from src.infrastructure.repositories.gyga_yield_ceiling_repository import GygaYieldCeilingRepository
from src.infrastructure.repositories.file_gap_report_repository import FileGapReportRepository
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
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Example usage."""
    # Initialize repositories
    survey_repo = CsvSurveyRepository(
        str(SURVEY_DATA_FILE),
        continuous=CONTINUOUS_COVARIATES,
        categorical=CATEGORICAL_COVARIATES,
        yield_column=YIELD_COLUMN,
        attribute_columns=GROUP_COLUMNS,
    )
    ceiling_repo = GygaYieldCeilingRepository(str(YIELD_CEILING_FILE), str(COUNTRY_AVERAGE_FILE))
    report_repo = FileGapReportRepository(str(OUTPUT_DIR))

    # Initialize service
    service = YieldGapService(
        survey_repo=survey_repo,
        yield_ceiling_repo=ceiling_repo,
        report_repo=report_repo,
        continuous=CONTINUOUS_COVARIATES,
        categorical=CATEGORICAL_COVARIATES,
        stratum_columns=STRATUM_COLUMNS,
        group_columns=GROUP_COLUMNS,
        preparation_settings=PREPARATION_SETTINGS,
        frontier_settings=FRONTIER_SETTINGS,
        classifier_settings=CLASSIFIER_SETTINGS,
        resolver_settings=RESOLVER_SETTINGS,
        decomposition_settings=DECOMPOSITION_SETTINGS,
    )

    # Example 1: Full decomposition
    print("=" * 60)
    print("Example 1: Decomposing yield gaps")
    print("=" * 60)
    try:
        analysis = service.run()

        print(f"\nDecomposition completed!")
        print(f"Records: {len(analysis.records)}")
        for name, result in analysis.frontier_results.items():
            print(f"{name}: mean technical efficiency {result.mean_efficiency:.3f}")
        if analysis.likelihood_ratio:
            print(f"LR test Cobb-Douglas vs translog: p = {analysis.likelihood_ratio['p_value']:.4f}")
        for report in analysis.reports:
            print(f"  {report.summary()}")
    except Exception as e:
        logger.error(f"Decomposition failed: {e}", exc_info=True)
        return

    # Example 2: Summaries by zone and farming system
    print("\n" + "=" * 60)
    print("Example 2: Mean gaps by group")
    print("=" * 60)
    try:
        for key in ("zone", ["zone", "farming_system"]):
            summary = service.summarize(key)
            print(f"\nBy {key}:")
            print(summary[["n_observations", "total_gap", "efficiency_gap", "resource_gap", "technology_gap"]].round(2))
    except Exception as e:
        logger.error(f"Summary failed: {e}", exc_info=True)


if __name__ == "__main__":
    main()
