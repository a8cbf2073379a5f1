"""
Workspace provisioning - creates the output, scratch and cache directories once
at startup and hands them to the pipeline as configuration.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from quran_reels.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    """Absolute directories used by reel generation."""

    output_dir: str  # Final artifacts, served publicly
    temp_dir: str  # Per-job scratch files
    cache_dir: str  # Persistent audio cache

    def output_path(self, timestamp_ms: int) -> str:
        """Deterministic final artifact path for a job timestamp."""
        return os.path.join(self.output_dir, f"reel_{timestamp_ms}.mp4")

    def temp_path(self, filename: str) -> str:
        return os.path.join(self.temp_dir, filename)


def provision_workspace(settings: Optional[Settings] = None) -> Workspace:
    """
    Create the output/temp/cache directories if missing.

    Args:
        settings: Settings to read directory locations from (defaults to cached settings)

    Returns:
        Workspace with absolute directory paths
    """
    settings = settings or get_settings()

    workspace = Workspace(
        output_dir=os.path.abspath(settings.output_directory),
        temp_dir=os.path.abspath(settings.temp_directory),
        cache_dir=os.path.abspath(settings.audio_cache_directory),
    )

    for directory in (workspace.output_dir, workspace.temp_dir, workspace.cache_dir):
        os.makedirs(directory, exist_ok=True)
        logger.info(f"Directory ready: {directory}")

    return workspace


def is_provisioned(workspace: Workspace) -> bool:
    """Whether all workspace directories exist."""
    return all(
        os.path.isdir(d)
        for d in (workspace.output_dir, workspace.temp_dir, workspace.cache_dir)
    )
