"""FastAPI main application."""

import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional
import pandas as pd
from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from ...application.services.yield_gap_service import YieldGapService
from ...domain.exceptions import DataError, YieldGapError
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
    API_SETTINGS,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=API_SETTINGS["title"],
    description=API_SETTINGS["description"],
    version=API_SETTINGS["version"],
)


@lru_cache(maxsize=1)
def get_service() -> YieldGapService:
    """Build the service from configured files on first use."""
    return YieldGapService(
        survey_repo=CsvSurveyRepository(
            str(SURVEY_DATA_FILE),
            continuous=CONTINUOUS_COVARIATES,
            categorical=CATEGORICAL_COVARIATES,
            yield_column=YIELD_COLUMN,
            attribute_columns=GROUP_COLUMNS,
        ),
        yield_ceiling_repo=GygaYieldCeilingRepository(str(YIELD_CEILING_FILE), str(COUNTRY_AVERAGE_FILE)),
        report_repo=FileGapReportRepository(str(OUTPUT_DIR)),
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


def frame_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """JSON-safe rows; NaN becomes null."""
    flat = df.reset_index() if not isinstance(df.index, pd.RangeIndex) else df
    return json.loads(flat.to_json(orient="records"))


# Request/Response models
class DecompositionRequest(BaseModel):
    """Request model for a decomposition run."""

    group_by: Optional[List[str]] = Field(
        None, description="Grouping columns for the summary (e.g. ['zone']); defaults to configured columns"
    )
    year: Optional[int] = Field(None, description="Harvest year filter")


class StageSummary(BaseModel):
    stage: str
    n_rows: int
    n_affected: int
    failure_rate: float
    counts_by_kind: Dict[str, int]
    fatal: Optional[str] = None


class DecompositionResponse(BaseModel):
    """Response model for a decomposition run."""

    status: str
    n_records: int
    n_complete: int
    stages: List[StageSummary]
    frontier: Dict[str, Dict[str, Any]]
    summaries: Dict[str, List[Dict[str, Any]]]


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Yield Gap Decomposition API",
        "version": API_SETTINGS["version"],
        "endpoints": {
            "decompose": "/decompose",
            "summary": "/summary",
            "health": "/health",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/decompose", response_model=DecompositionResponse)
def decompose(
    request: DecompositionRequest, service: YieldGapService = Depends(get_service)
) -> DecompositionResponse:
    """
    Run the yield gap decomposition on the configured survey and Yw tables.

    Returns:
        Record counts, per-stage reports, frontier summaries and grouped gap means
    """
    try:
        group_by = [request.group_by] if request.group_by else None
        analysis = service.run(group_by=group_by, year=request.year)
    except DataError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except YieldGapError as e:
        logger.error(f"Decomposition error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))

    return DecompositionResponse(
        status="partial" if analysis.failed_stages else "success",
        n_records=len(analysis.records),
        n_complete=sum(r.is_complete for r in analysis.records),
        stages=[StageSummary(**r.to_dict()) for r in analysis.reports],
        frontier={name: res.summary() for name, res in analysis.frontier_results.items()},
        summaries={name: frame_to_records(df) for name, df in analysis.summaries.items()},
    )


@app.get("/summary")
def summary(
    group_by: List[str] = Query(..., description="Grouping columns"),
    service: YieldGapService = Depends(get_service),
) -> List[Dict[str, Any]]:
    """Aggregate the most recently exported yield gap records."""
    try:
        return frame_to_records(service.summarize(group_by))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DataError as e:
        raise HTTPException(status_code=422, detail=str(e))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
