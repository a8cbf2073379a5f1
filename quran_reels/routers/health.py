"""
Health check endpoints for the reel service.
"""

from fastapi import APIRouter, Request

from quran_reels import __version__
from quran_reels.schemas.responses import HealthResponse, ReadinessResponse
from quran_reels.services.workspace import is_provisioned

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Ready when ffmpeg and ffprobe were found at startup and the workspace
    directories exist.
    """
    tools = getattr(request.app.state, "tools", None) or {}
    workspace = getattr(request.app.state, "workspace", None)

    ffmpeg_ready = bool(tools.get("ffmpeg"))
    ffprobe_ready = bool(tools.get("ffprobe"))
    workspace_ready = workspace is not None and is_provisioned(workspace)

    return ReadinessResponse(
        ready=ffmpeg_ready and ffprobe_ready and workspace_ready,
        ffmpeg="available" if ffmpeg_ready else "not_found",
        ffprobe="available" if ffprobe_ready else "not_found",
        workspace="ready" if workspace_ready else "not_provisioned",
    )
