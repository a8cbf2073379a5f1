"""
Configuration module using Pydantic Settings for environment variable management.

Only essential environment variables are exposed. All other settings are hardcoded
for consistency and simplicity.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class TextStyle:
    """Verse overlay styling configuration (hardcoded)."""

    font_path: Optional[str] = None  # None = use Settings.font_path
    font_size: int = 70
    text_color: str = "#FFFFFF"
    stroke_color: str = "#000000"
    stroke_width: int = 0
    backdrop_color: str = "#000000"
    backdrop_opacity: float = 0.4
    backdrop_padding: int = 60
    backdrop_radius: int = 0
    line_spacing: float = 1.5  # Line height as a multiple of font size
    max_width_ratio: float = 0.8  # Text block width relative to frame width
    backdrop_width_ratio: float = 0.9


# ============================================================
# TEXT PRESETS
# ============================================================

class TextPreset:
    """
    Available text preset identifiers.

    Callers select one of these instead of configuring every style field.
    """
    CLASSIC = "classic"
    GOLDEN = "golden"
    SOFT = "soft"


def get_text_preset(preset_id: str) -> TextStyle:
    """
    Get a TextStyle configuration for a given preset ID.

    Args:
        preset_id: One of the TextPreset constants

    Returns:
        Configured TextStyle for the preset

    Raises:
        ValueError: If preset_id is not recognized
    """
    presets = {
        TextPreset.CLASSIC: _create_classic_style(),
        TextPreset.GOLDEN: _create_golden_style(),
        TextPreset.SOFT: _create_soft_style(),
    }

    if preset_id not in presets:
        valid_presets = list(presets.keys())
        raise ValueError(f"Unknown text preset: {preset_id}. Valid presets: {valid_presets}")

    return presets[preset_id]


def get_available_presets() -> list[dict]:
    """
    Get list of available text presets with metadata.

    Returns:
        List of preset info dicts with id, name, description
    """
    return [
        {
            "id": TextPreset.CLASSIC,
            "name": "Classic",
            "description": "White text on a translucent black band",
            "preview_colors": {"text": "#FFFFFF", "backdrop": "#000000"},
        },
        {
            "id": TextPreset.GOLDEN,
            "name": "Golden",
            "description": "Warm gold text with a thin outline, for bright backgrounds",
            "preview_colors": {"text": "#F5D67B", "backdrop": "#1A1405"},
        },
        {
            "id": TextPreset.SOFT,
            "name": "Soft",
            "description": "Slightly smaller cream text on a rounded dark panel",
            "preview_colors": {"text": "#FFF8E7", "backdrop": "#101820"},
        },
    ]


def _create_classic_style() -> TextStyle:
    """Classic: white on a 40% black band."""
    return TextStyle()


def _create_golden_style() -> TextStyle:
    """Golden: gold text with outline over a darker band."""
    style = TextStyle()
    style.text_color = "#F5D67B"
    style.stroke_color = "#000000"
    style.stroke_width = 2
    style.backdrop_color = "#1A1405"
    style.backdrop_opacity = 0.5
    return style


def _create_soft_style() -> TextStyle:
    """Soft: cream text on a rounded panel."""
    style = TextStyle()
    style.font_size = 62
    style.text_color = "#FFF8E7"
    style.backdrop_color = "#101820"
    style.backdrop_opacity = 0.45
    style.backdrop_radius = 40
    style.line_spacing = 1.6
    return style


class Settings(BaseSettings):
    """
    Application settings.

    Only essential configuration is loaded from environment variables.
    All processing/rendering settings are hardcoded for consistency.
    """

    # ============================================================
    # ENVIRONMENT VARIABLES (minimal set)
    # ============================================================

    # Application
    app_name: str = "quran-reels"
    debug: bool = False
    log_level: str = "INFO"

    # Directories (provisioned at startup, see services.workspace)
    output_directory: str = "output"
    temp_directory: str = "uploads"
    audio_cache_directory: str = "audio_cache"
    background_library_directory: Optional[str] = "public/assets/backgrounds"

    # Remote sources
    audio_base_url: str = "https://everyayah.com/data"
    text_api_base_url: str = "https://api.alquran.cloud/v1"

    # Fonts
    font_path: Optional[str] = None  # Preferred Arabic-capable font file

    # Performance tuning
    max_render_workers: int = 4  # Max overlay images rasterized concurrently

    # ============================================================
    # HARDCODED SETTINGS (not configurable via env vars)
    # ============================================================

    # Rendering Configuration
    @property
    def target_output_width(self) -> int:
        return 1080

    @property
    def target_output_height(self) -> int:
        return 1920

    @property
    def output_fps(self) -> int:
        return 30  # Shared by the still-image background path and the final encode

    @property
    def ffmpeg_preset(self) -> str:
        return "ultrafast"  # Fast turnaround over compression efficiency

    @property
    def ffmpeg_crf(self) -> int:
        return 23

    @property
    def audio_bitrate(self) -> str:
        return "192k"

    @property
    def audio_sample_rate(self) -> int:
        return 44100

    # Background Configuration
    @property
    def background_pad_seconds(self) -> float:
        return 1.0

    @property
    def ken_burns_canvas_scale(self) -> float:
        return 1.5  # Oversized canvas the zoom operates on

    @property
    def background_source_urls(self) -> list[str]:
        return [
            "https://loremflickr.com/1080/1920/nature,landscape,sky/all",
            "https://picsum.photos/1080/1920",
        ]

    # Network Configuration
    @property
    def download_timeout_seconds(self) -> float:
        return 120.0

    @property
    def text_api_timeout_seconds(self) -> float:
        return 15.0

    @property
    def user_agent(self) -> str:
        return (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        )

    # Font fallback chain (after font_path, before Pillow's built-in font)
    @property
    def fallback_font_paths(self) -> list[str]:
        return [
            "/System/Library/Fonts/Supplemental/Arial.ttf",
            "/usr/share/fonts/truetype/noto/NotoNaskhArabic-Regular.ttf",
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/dejavu/DejaVuSans.ttf",
            "C:/Windows/Fonts/arial.ttf",
        ]

    @property
    def default_text_preset(self) -> str:
        return TextPreset.CLASSIC

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def get_text_style(self, preset_id: Optional[str] = None) -> TextStyle:
        """Build TextStyle for a preset, defaulting to the configured preset."""
        return get_text_preset(preset_id or self.default_text_preset)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
