"""
Overlay Renderer Service - rasterizes each verse into a transparent 9:16 PNG.

Each overlay holds the verse's wrapped lines, centered as a block, drawn over a
semi-transparent backdrop for legibility on arbitrary backgrounds. Overlays are
produced one per verse so the compositor can time and fade them independently.
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from typing import Optional, Union

from PIL import Image, ImageColor, ImageDraw, ImageFont

from quran_reels.config import Settings, TextStyle, get_settings
from quran_reels.exceptions import FontLoadFailed
from quran_reels.models import OverlayImage, VerseRequest
from quran_reels.services.text_shaper import TextShaper
from quran_reels.services.workspace import Workspace

logger = logging.getLogger(__name__)


# Identifier of the last link in the font chain (Pillow's bundled font)
GENERIC_SANS_SERIF = "sans-serif"

AnyFont = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


@dataclass
class ResolvedFont:
    """A loaded font and where it came from."""

    font: AnyFont
    source: str  # Font file path, or GENERIC_SANS_SERIF


class FontResolver:
    """
    Resilient font loading.

    Order: preferred font -> configured font -> system fallbacks -> generic
    sans-serif. The winning source is remembered per (preferred, size) so the
    fallback is only reported once.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._chosen: dict[tuple[Optional[str], int], str] = {}
        self._lock = threading.Lock()

    def candidate_paths(self, preferred: Optional[str] = None) -> list[str]:
        paths = [p for p in (preferred, self.settings.font_path) if p]
        paths.extend(self.settings.fallback_font_paths)
        # Preserve order, drop duplicates
        return list(dict.fromkeys(paths))

    def resolve(self, size: int, preferred: Optional[str] = None) -> ResolvedFont:
        """Load a font of the given size, never raising."""
        with self._lock:
            chosen = self._chosen.get((preferred, size))

        if chosen is not None:
            try:
                return ResolvedFont(self._load(chosen, size), chosen)
            except FontLoadFailed as e:
                logger.warning(f"{e}; re-resolving font")

        configured = {p for p in (preferred, self.settings.font_path) if p}
        for path in self.candidate_paths(preferred):
            try:
                font = self._load(path, size)
            except FontLoadFailed as e:
                if path in configured:
                    logger.warning(f"{e}; falling back")
                else:
                    logger.debug(str(e))
                continue
            self._remember(preferred, size, path)
            return ResolvedFont(font, path)

        logger.warning(f"No font file could be loaded, using generic {GENERIC_SANS_SERIF}")
        self._remember(preferred, size, GENERIC_SANS_SERIF)
        return ResolvedFont(self._load(GENERIC_SANS_SERIF, size), GENERIC_SANS_SERIF)

    def _remember(self, preferred: Optional[str], size: int, source: str) -> None:
        with self._lock:
            if (preferred, size) not in self._chosen:
                logger.info(f"Overlay font: {source} ({size}px)")
            self._chosen[(preferred, size)] = source

    def _load(self, source: str, size: int) -> AnyFont:
        if source == GENERIC_SANS_SERIF:
            return ImageFont.load_default(size=size)

        if not os.path.isfile(source):
            raise FontLoadFailed(source, "file not found")
        try:
            # BASIC layout: text arrives already reshaped and in visual order
            return ImageFont.truetype(source, size, layout_engine=ImageFont.Layout.BASIC)
        except (OSError, ValueError) as e:
            raise FontLoadFailed(source, str(e)) from e


def _rgba(color: str, opacity: float = 1.0) -> tuple[int, int, int, int]:
    r, g, b = ImageColor.getrgb(color)[:3]
    return r, g, b, int(round(255 * max(0.0, min(1.0, opacity))))


class OverlayRendererService:
    """
    Service for rendering verse overlays.

    Features:
    - Arabic reshaping, bidi reordering and width-aware wrapping
    - Translucent backdrop sized to the text block
    - Font fallback chain that never aborts the job
    - Concurrent per-verse rendering, results returned in verse order
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        font_resolver: Optional[FontResolver] = None,
    ):
        self.settings = settings or get_settings()
        self.font_resolver = font_resolver or FontResolver(self.settings)

    def render_overlay(self, text: str, output_path: str, style: TextStyle) -> str:
        """
        Render one overlay PNG.

        Args:
            text: Logical verse text (several verses may be joined by blank lines)
            output_path: PNG destination
            style: Text styling

        Returns:
            output_path
        """
        width = self.settings.target_output_width
        height = self.settings.target_output_height

        resolved = self.font_resolver.resolve(style.font_size, preferred=style.font_path)
        font = resolved.font

        img = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(img)

        shaper = TextShaper(measure=lambda s: draw.textlength(s, font=font))
        lines = shaper.layout(text, width * style.max_width_ratio)

        line_height = style.font_size * style.line_spacing
        block_height = len(lines) * line_height
        top = (height - block_height) / 2

        # Backdrop for readability
        margin_x = width * (1 - style.backdrop_width_ratio) / 2
        box = (
            margin_x,
            top - style.backdrop_padding,
            width - margin_x,
            top + block_height + style.backdrop_padding,
        )
        fill = _rgba(style.backdrop_color, style.backdrop_opacity)
        if style.backdrop_radius > 0:
            draw.rounded_rectangle(box, radius=style.backdrop_radius, fill=fill)
        else:
            draw.rectangle(box, fill=fill)

        stroke_width = 0
        text_kwargs = {"font": font, "fill": _rgba(style.text_color)}
        if style.stroke_width > 0 and isinstance(font, ImageFont.FreeTypeFont):
            stroke_width = style.stroke_width
            text_kwargs["stroke_width"] = stroke_width
            text_kwargs["stroke_fill"] = _rgba(style.stroke_color)

        for i, line in enumerate(lines):
            if not line.strip():
                continue
            # Measured with the stroke so the outlined glyphs are what gets centered
            bbox = draw.textbbox((0, 0), line, font=font, stroke_width=stroke_width)
            line_width = bbox[2] - bbox[0]
            text_height = bbox[3] - bbox[1]
            x = (width - line_width) / 2 - bbox[0]
            y = top + i * line_height + (line_height - text_height) / 2 - bbox[1]
            draw.text((x, y), line, **text_kwargs)

        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        img.save(output_path, "PNG")

        logger.debug(f"Overlay rendered: {output_path} ({len(lines)} lines, font={resolved.source})")
        return output_path

    async def render_overlays(
        self,
        verses: list[VerseRequest],
        workspace: Workspace,
        run_stamp: int,
        style: TextStyle,
    ) -> list[OverlayImage]:
        """
        Render one overlay per verse concurrently.

        Returns:
            OverlayImages in verse order
        """
        semaphore = asyncio.Semaphore(self.settings.max_render_workers)
        loop = asyncio.get_event_loop()

        async def render_single(i: int, verse: VerseRequest) -> OverlayImage:
            async with semaphore:
                output_path = workspace.temp_path(f"overlay_{run_stamp}_{i:03d}.png")
                await loop.run_in_executor(
                    None, self.render_overlay, verse.text, output_path, style
                )
                return OverlayImage(verse_index=i, file_path=output_path)

        overlays = await asyncio.gather(
            *(render_single(i, verse) for i, verse in enumerate(verses))
        )

        # Sort by index to maintain order
        overlays = sorted(overlays, key=lambda o: o.verse_index)
        logger.info(f"Rendered {len(overlays)} verse overlays")
        return overlays
