"""
Pydantic schemas for request/response models.
"""

from quran_reels.schemas.requests import GenerateVideoRequest
from quran_reels.schemas.responses import (
    GenerateVideoResponse,
    HealthResponse,
    InitialDataResponse,
    ReadinessResponse,
    Reciter,
    TextPresetInfo,
)

__all__ = [
    "GenerateVideoRequest",
    "GenerateVideoResponse",
    "InitialDataResponse",
    "Reciter",
    "TextPresetInfo",
    "HealthResponse",
    "ReadinessResponse",
]
