"""
Response schemas for the reel API.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class Reciter(BaseModel):
    """A selectable reciter."""

    id: str = Field(..., description="Reciter folder on the recitation host")
    name: str = Field(..., description="Arabic display name")
    name_en: str = Field(..., description="English display name")


class InitialDataResponse(BaseModel):
    """Data the web client needs to build its selectors."""

    reciters: list[Reciter]
    surahs: list[dict[str, Any]] = Field(..., description="Surah catalog as returned by the text API")


class TextPresetInfo(BaseModel):
    """Metadata about a text preset."""

    id: str
    name: str
    description: str
    preview_colors: dict[str, str]


class GenerateVideoResponse(BaseModel):
    """Result of a completed reel generation."""

    success: bool = Field(..., description="Whether a reel was produced")
    video_url: str = Field(..., alias="videoUrl", description="Public URL of the reel")
    job_id: Optional[str] = Field(default=None, alias="jobId")
    processing_time_seconds: Optional[float] = Field(default=None, alias="processingTimeSeconds")

    class Config:
        populate_by_name = True


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service is ready to accept requests")
    ffmpeg: str = Field(..., description="ffmpeg availability")
    ffprobe: str = Field(..., description="ffprobe availability")
    workspace: str = Field(..., description="Whether output/temp/cache directories exist")
