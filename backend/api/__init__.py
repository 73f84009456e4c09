"""
Backend API package initialization.

Router modules:
- pipeline: funnel, stage details, availability status and refresh
"""

from fastapi import APIRouter

from backend.api.pipeline import router as pipeline_router

# Main API router
api_router = APIRouter()

api_router.include_router(pipeline_router)  # pipeline router has its own prefix

__all__ = [
    "api_router",
    "pipeline_router",
]
