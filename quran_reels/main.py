"""
FastAPI application entry point for Quran Reels.

Quran Reels turns a range of verses into a vertical 9:16 video:
1. Per-verse recitation audio, cached on disk
2. Verse text shaped for right-to-left display and rendered as timed overlays
3. A still (with Ken Burns motion) or video background
4. ffmpeg composition into reel_<timestamp>.mp4, served from /output
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from quran_reels import __version__
from quran_reels.config import get_settings
from quran_reels.routers import health, reels
from quran_reels.services.media_tools import verify_external_tools
from quran_reels.services.reel_pipeline import ReelPipeline
from quran_reels.services.verse_provider import VerseTextClient
from quran_reels.services.workspace import provision_workspace

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.
    Provisions directories and wires the pipeline on startup.
    """
    settings = get_settings()
    logger.info("Starting Quran Reels...")

    workspace = provision_workspace(settings)
    tools = verify_external_tools()

    # Store in app state for dependency injection
    app.state.workspace = workspace
    app.state.tools = tools
    app.state.pipeline = ReelPipeline(workspace, settings=settings)
    app.state.verse_client = VerseTextClient(settings=settings)

    logger.info("Quran Reels ready to accept requests.")

    yield

    logger.info("Shutting down Quran Reels...")
    app.state.pipeline = None
    app.state.verse_client = None
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Quran Reels",
    description="""
Narrated verse reels for vertical video platforms.

## Usage

1. Load reciters and surahs: `GET /api/initial-data`
2. Generate a reel: `POST /api/generate-video`
3. Download it from the returned `videoUrl` (served under `/output`)
    """,
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(reels.router, tags=["Reels"])

# Finished reels; the directory itself is created during startup
app.mount(
    "/output",
    StaticFiles(directory=get_settings().output_directory, check_dir=False),
    name="output",
)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {
        "service": "quran-reels",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }
