"""
FastAPI router module for the prospect pipeline funnel.

Thin glue over the PipelineOrchestrator; all computation lives in
backend/services.

Key Endpoints:
- GET /pipeline/funnel: Current PipelineView (schedules a background
  statistics refresh when stale, never waits for it)
- GET /pipeline/stages/{stage_key}: Title, metrics, insights and
  recommendations for one stage
- GET /pipeline/status: Availability badge payload
- POST /pipeline/refresh: Schedule a campaign-statistics refresh (202)
- POST /pipeline/reload: Reload all three channels and return the new view
"""

import logging

from fastapi import APIRouter, HTTPException

from backend.core.dependencies import PipelineOrchestratorDep
from backend.models import (
    FunnelStageKey,
    PipelineStatusResponse,
    PipelineView,
    RefreshResponse,
    StageDetail,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.get(
    "/funnel",
    response_model=PipelineView,
    summary="Get Pipeline Funnel",
)
async def get_funnel(orchestrator: PipelineOrchestratorDep) -> PipelineView:
    """
    Return the five-stage funnel with per-stage details and freshness.

    When campaign statistics are older than their freshness window a
    background refresh is scheduled; the response carries the current view.
    """
    try:
        if orchestrator.refresh_if_stale():
            logger.info("Campaign statistics stale; background refresh scheduled")
        return orchestrator.view
    except Exception as e:
        logger.error(f"Error building pipeline funnel: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build pipeline funnel: {str(e)}"
        )


@router.get(
    "/stages/{stage_key}",
    response_model=StageDetail,
    summary="Get Stage Detail",
)
async def get_stage_detail(
    stage_key: str,
    orchestrator: PipelineOrchestratorDep,
) -> StageDetail:
    """
    Return the detail bundle for one funnel stage.

    Raises:
        HTTPException 404: If stage_key is not one of the five stage keys.
    """
    try:
        key = FunnelStageKey(stage_key)
    except ValueError:
        logger.warning(f"Unknown funnel stage requested: {stage_key}")
        raise HTTPException(
            status_code=404,
            detail=f"Unknown funnel stage '{stage_key}'"
        )

    try:
        return orchestrator.stage(key)
    except KeyError:
        raise HTTPException(
            status_code=404,
            detail=f"Stage '{stage_key}' is not available"
        )


@router.get(
    "/status",
    response_model=PipelineStatusResponse,
    summary="Get Data Availability Status",
)
async def get_status(orchestrator: PipelineOrchestratorDep) -> PipelineStatusResponse:
    view = orchestrator.view
    return PipelineStatusResponse(
        status=view.status,
        selection=view.selection,
        fetchState=view.fetchState,
        dataLevel=view.dataLevel,
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    status_code=202,
    summary="Refresh Campaign Statistics",
)
async def refresh_campaign_statistics(orchestrator: PipelineOrchestratorDep) -> RefreshResponse:
    """Schedule a campaign-statistics fetch; in-flight fetches are not cancelled."""
    orchestrator.refresh()
    return RefreshResponse(
        scheduled=True,
        message="Campaign statistics refresh scheduled",
    )


@router.post(
    "/reload",
    response_model=PipelineView,
    summary="Reload All Pipeline Data",
)
async def reload_pipeline(orchestrator: PipelineOrchestratorDep) -> PipelineView:
    """Fetch prospects, campaign statistics and configuration, then return the new view."""
    logger.info("Reloading all pipeline channels")
    try:
        return await orchestrator.load_all()
    except Exception as e:
        logger.error(f"Error reloading pipeline data: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to reload pipeline data: {str(e)}"
        )
