"""
Request schemas for the reel API.

Field aliases follow the camelCase JSON used by the web client.
"""

from typing import Optional

from pydantic import BaseModel, Field


class GenerateVideoRequest(BaseModel):
    """Request body for POST /api/generate-video."""

    reciter_id: str = Field(
        ..., alias="reciterId", min_length=1, description="Reciter folder on the recitation host"
    )
    surah_number: int = Field(..., alias="surahNumber", ge=1, le=114, description="Surah number")
    from_ayah: int = Field(..., alias="fromAyah", ge=1, description="First verse (inclusive)")
    to_ayah: int = Field(..., alias="toAyah", ge=1, description="Last verse (inclusive)")
    background_data: Optional[str] = Field(
        default=None,
        alias="backgroundData",
        description="Optional custom background as a data:image/<ext>;base64,... URL",
    )
    text_preset: Optional[str] = Field(
        default=None,
        alias="textPreset",
        description="Text preset ID: 'classic', 'golden', 'soft'",
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "reciterId": "Alafasy_128kbps",
                "surahNumber": 1,
                "fromAyah": 1,
                "toAyah": 7,
                "textPreset": "classic",
            }
        }
