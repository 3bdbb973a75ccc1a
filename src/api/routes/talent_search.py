"""Talent search API route.

POST /v1/talent-search runs the configured pipeline for one request and
returns the per-stage outputs with camelCase keys.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from src.pipelines.orchestrator import TalentSearchPipeline, WorkflowResult


logger = logging.getLogger(__name__)


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/v1/talent-search",
    tags=["Talent Search"],
)


# =============================================================================
# Request Models
# =============================================================================

class TalentSearchRequest(BaseModel):
    """Request model for a talent search."""

    input_text: str = Field(
        ...,
        description="Natural-language description of the people sought",
        examples=["Find a senior backend developer with Kafka experience and 3+ years in the order domain"],
    )


# =============================================================================
# Dependencies
# =============================================================================

def get_pipeline(request: Request) -> TalentSearchPipeline:
    """Return the pipeline created by the application lifespan.

    Raises:
        HTTPException: 503 when the pipeline is not initialized
    """
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Talent search pipeline not initialized")
    return pipeline


# =============================================================================
# API Endpoints
# =============================================================================

@router.post(
    "",
    response_model=WorkflowResult,
    summary="Run a talent search",
    description="Plans, queries, gathers evidence and ranks candidates for a request.",
    responses={
        422: {"description": "Blank or malformed request"},
        502: {"description": "A pipeline stage failed"},
        503: {"description": "Pipeline not initialized"},
    },
)
async def run_talent_search(
    body: TalentSearchRequest,
    pipeline: TalentSearchPipeline = Depends(get_pipeline),
) -> WorkflowResult:
    """Execute the talent search pipeline.

    Raises:
        AgentValidationError: If input_text is blank
        PipelineExecutionError: If a stage fails
    """
    start_time = time.perf_counter()
    result = await pipeline.run_workflow(body.input_text)
    logger.info(
        "Talent search completed",
        extra={
            "stages": list(pipeline.stage_order),
            "processing_time_ms": (time.perf_counter() - start_time) * 1000,
        },
    )
    return result


__all__ = [
    "TalentSearchRequest",
    "get_pipeline",
    "router",
]
