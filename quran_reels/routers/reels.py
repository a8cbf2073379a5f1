"""
Reels API Router - catalog data and synchronous reel generation.
"""

import base64
import binascii
import logging
import os
import re
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from quran_reels.config import Settings, get_available_presets, get_settings, get_text_preset
from quran_reels.exceptions import VerseTextUnavailable
from quran_reels.models import RenderJob
from quran_reels.schemas.requests import GenerateVideoRequest
from quran_reels.schemas.responses import (
    GenerateVideoResponse,
    InitialDataResponse,
    TextPresetInfo,
)
from quran_reels.services.reel_pipeline import JobStatus, ReelPipeline
from quran_reels.services.verse_provider import RECITERS, VerseTextClient, get_reciter_ids
from quran_reels.services.workspace import Workspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# data:image/<ext>;base64,<payload>
DATA_URL_PATTERN = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)

# Files picked from the background library, in priority of appearance
LIBRARY_EXTENSIONS = (".mp4", ".jpg", ".png")


# ============================================================================
# Dependencies
# ============================================================================


def get_workspace(request: Request) -> Workspace:
    workspace = getattr(request.app.state, "workspace", None)
    if workspace is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Workspace not provisioned")
    return workspace


def get_pipeline(request: Request) -> ReelPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Reel pipeline not initialized")
    return pipeline


def get_verse_client(request: Request) -> VerseTextClient:
    client = getattr(request.app.state, "verse_client", None)
    return client or VerseTextClient()


# ============================================================================
# Helpers
# ============================================================================


def save_background_upload(data_url: str, workspace: Workspace, timestamp_ms: int) -> str:
    """
    Decode a base64 data URL into the temp directory.

    Raises:
        ValueError: If the data URL is malformed
    """
    match = DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        raise ValueError("backgroundData must be a data:image/<type>;base64 URL")

    ext = match.group(1).lower()
    try:
        payload = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"backgroundData is not valid base64: {e}") from e
    if not payload:
        raise ValueError("backgroundData is empty")

    path = workspace.temp_path(f"upload_bg_{timestamp_ms}.{ext}")
    with open(path, "wb") as f:
        f.write(payload)

    logger.info(f"Saved uploaded background: {path} ({len(payload)} bytes)")
    return path


def find_library_background(directory: Optional[str]) -> Optional[str]:
    """First usable file of the background library, or None."""
    if not directory or not os.path.isdir(directory):
        return None
    for name in sorted(os.listdir(directory)):
        if name.lower().endswith(LIBRARY_EXTENSIONS):
            return os.path.join(directory, name)
    return None


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/initial-data", response_model=InitialDataResponse)
async def get_initial_data(
    verse_client: VerseTextClient = Depends(get_verse_client),
):
    """Reciter catalog and surah list for the web client."""
    try:
        surahs = await verse_client.get_surahs()
    except VerseTextUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch initial data: {e.message}",
        )

    return InitialDataResponse(reciters=RECITERS, surahs=surahs)


@router.get("/presets", response_model=list[TextPresetInfo])
async def list_text_presets():
    """Available text presets for the overlay styling selector."""
    return get_available_presets()


@router.post("/generate-video", response_model=GenerateVideoResponse)
async def generate_video(
    request: GenerateVideoRequest,
    pipeline: ReelPipeline = Depends(get_pipeline),
    verse_client: VerseTextClient = Depends(get_verse_client),
    workspace: Workspace = Depends(get_workspace),
    settings: Settings = Depends(get_settings),
):
    """
    Generate a reel for a verse range and return its public URL.

    The request blocks until the reel is encoded.
    """
    if request.reciter_id not in get_reciter_ids():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown reciter: {request.reciter_id}",
        )

    if request.from_ayah > request.to_ayah:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="fromAyah must not be greater than toAyah",
        )

    if request.text_preset:
        try:
            get_text_preset(request.text_preset)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        verses = await verse_client.get_ayahs(
            request.surah_number, request.from_ayah, request.to_ayah
        )
    except VerseTextUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to generate video: {e.message}",
        )

    if not verses:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No verses {request.from_ayah}-{request.to_ayah} in surah {request.surah_number}",
        )

    timestamp_ms = int(time.time() * 1000)
    uploaded_path: Optional[str] = None

    try:
        if request.background_data:
            try:
                uploaded_path = save_background_upload(request.background_data, workspace, timestamp_ms)
            except ValueError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
            background_path = uploaded_path
        else:
            background_path = find_library_background(settings.background_library_directory)

        job = RenderJob(
            reciter_id=request.reciter_id,
            surah=request.surah_number,
            from_verse=request.from_ayah,
            to_verse=request.to_ayah,
            verses=verses,
            background_path=background_path,
            text_preset=request.text_preset,
            created_at_ms=timestamp_ms,
        )

        result = await pipeline.generate_reel(job)

    finally:
        if uploaded_path and os.path.exists(uploaded_path):
            try:
                os.remove(uploaded_path)
            except OSError as e:
                logger.warning(f"Failed to remove uploaded background: {e}")

    if result.status != JobStatus.COMPLETED or not result.output_path:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate video: {result.error}",
        )

    return GenerateVideoResponse(
        success=True,
        video_url=f"/output/{os.path.basename(result.output_path)}",
        job_id=result.job_id,
        processing_time_seconds=round(result.processing_time_seconds, 2),
    )
