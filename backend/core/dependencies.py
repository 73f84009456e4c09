"""
FastAPI dependency injection module for the pipeline analytics backend.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_orchestrator: Returns the PipelineOrchestrator composed at startup
- SettingsDep: Type alias for injecting Settings into endpoints
- PipelineOrchestratorDep: Type alias for injecting the orchestrator

Both are thin wrappers so tests can swap them through
app.dependency_overrides.

Usage Examples:
    @router.get("/funnel")
    async def get_funnel(orchestrator: PipelineOrchestratorDep) -> PipelineView:
        return orchestrator.view
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from backend.core.config import Settings, get_settings
from backend.services.orchestrator import PipelineOrchestrator


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    In tests:
        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    """
    return get_settings()


# =============================================================================
# Orchestrator Dependency
# =============================================================================

def get_orchestrator(request: Request) -> PipelineOrchestrator:
    """
    Return the orchestrator stored on app.state by the lifespan handler.

    Raises:
        HTTPException 503: If the application has not finished starting.
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Pipeline engine is not initialized")
    return orchestrator


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

PipelineOrchestratorDep = Annotated[PipelineOrchestrator, Depends(get_orchestrator)]
