"""
Thin async wrappers around the ffmpeg and ffprobe executables.
"""

import asyncio
import json
import logging
import shutil
import subprocess

from quran_reels.exceptions import EncodeFailure

logger = logging.getLogger(__name__)


# Tail of stderr kept in EncodeFailure diagnostics
DIAGNOSTIC_TAIL_CHARS = 4000


def _run_sync(cmd: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, capture_output=True)


async def run_command(cmd: list[str], description: str = "ffmpeg") -> None:
    """
    Run an external media command without blocking the event loop.

    Raises:
        EncodeFailure: If the process exits non-zero or cannot be started.
    """
    logger.debug(f"Running: {' '.join(cmd)}")

    # Use run_in_executor for Windows compatibility
    loop = asyncio.get_event_loop()
    try:
        result = await loop.run_in_executor(None, _run_sync, cmd)
    except OSError as e:
        raise EncodeFailure(f"{description} could not be started: {e}", diagnostics=str(e))

    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace") if result.stderr else ""
        diagnostics = stderr[-DIAGNOSTIC_TAIL_CHARS:] or "Unknown error"
        logger.error(f"{description} failed (exit {result.returncode}): {diagnostics[-500:]}")
        raise EncodeFailure(
            f"{description} failed with exit code {result.returncode}",
            diagnostics=diagnostics,
        )


async def probe_duration(path: str) -> float:
    """
    Measure a media file's duration in seconds with ffprobe.

    Reads the container duration reported after demuxing, at microsecond
    precision, rather than trusting any estimate.

    Raises:
        EncodeFailure: If ffprobe fails or reports no usable duration.
    """
    cmd = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "json",
        path,
    ]

    loop = asyncio.get_event_loop()
    try:
        result = await loop.run_in_executor(None, _run_sync, cmd)
    except OSError as e:
        raise EncodeFailure(f"ffprobe could not be started: {e}", diagnostics=str(e))

    if result.returncode != 0:
        stderr = result.stderr.decode(errors="replace") if result.stderr else ""
        raise EncodeFailure(f"ffprobe failed for {path}", diagnostics=stderr[-DIAGNOSTIC_TAIL_CHARS:])

    try:
        info = json.loads(result.stdout.decode())
        duration = float(info["format"]["duration"])
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise EncodeFailure(f"ffprobe returned no duration for {path}", diagnostics=str(e))

    if duration <= 0:
        raise EncodeFailure(f"ffprobe reported non-positive duration {duration} for {path}")

    return duration


def verify_external_tools() -> dict[str, bool]:
    """Check that ffmpeg and ffprobe are on PATH, logging the outcome."""
    tools = {
        "ffmpeg": "FFmpeg for video rendering",
        "ffprobe": "FFprobe for audio duration measurement",
    }

    available: dict[str, bool] = {}
    for tool, description in tools.items():
        available[tool] = shutil.which(tool) is not None
        if available[tool]:
            logger.info(f"✓ {description} available")
        else:
            logger.warning(f"✗ {description} NOT FOUND - video generation will fail")

    return available
