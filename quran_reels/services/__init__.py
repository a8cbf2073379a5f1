"""
Services for reel generation.

Includes:
- Asset acquisition (audio cache, downloads, backgrounds) and verse text lookup
- Text shaping and overlay rendering
- Timeline, background preparation and ffmpeg composition
"""

from quran_reels.services.asset_acquirer import AssetAcquirerService
from quran_reels.services.audio_cache import AudioCache
from quran_reels.services.background_preparer import BackgroundPreparerService
from quran_reels.services.compositor import CompositorService
from quran_reels.services.overlay_renderer import FontResolver, OverlayRendererService
from quran_reels.services.reel_pipeline import ReelPipeline
from quran_reels.services.text_shaper import TextShaper
from quran_reels.services.timeline import build_timeline
from quran_reels.services.verse_provider import VerseTextClient
from quran_reels.services.workspace import Workspace, provision_workspace

__all__ = [
    # Assets
    "AssetAcquirerService",
    "AudioCache",
    "VerseTextClient",
    # Text
    "TextShaper",
    "FontResolver",
    "OverlayRendererService",
    # Video
    "build_timeline",
    "BackgroundPreparerService",
    "CompositorService",
    "ReelPipeline",
    # Workspace
    "Workspace",
    "provision_workspace",
]
