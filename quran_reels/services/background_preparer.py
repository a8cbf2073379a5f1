"""
Background Preparer Service - normalizes a still image or video into a 9:16
background clip that outlasts the narration.
"""

import logging
import os
from typing import Optional

from quran_reels.config import Settings, get_settings
from quran_reels.exceptions import BackgroundProcessingFailed, EncodeFailure
from quran_reels.models import BackgroundSpec
from quran_reels.services.filter_graph import Filter, FilterGraph, format_number
from quran_reels.services.media_tools import run_command
from quran_reels.services.workspace import Workspace

logger = logging.getLogger(__name__)


# Slow oscillating zoom applied to stills (frame index = zoompan output frame "on")
KEN_BURNS_ZOOM = "1.35+0.2*sin(on/35)"
KEN_BURNS_X = "iw/2-(iw/zoom/2)"
KEN_BURNS_Y = "ih/2-(ih/zoom/2)"


def _even(value: float) -> int:
    """Round down to an even pixel count (required by yuv420p)."""
    return int(value) // 2 * 2


class BackgroundPreparerService:
    """
    Service for preparing background clips.

    - Animated sources are looped, scaled to fill and center-cropped.
    - Stills are looped at the output frame rate, cropped onto an oversized
      canvas and given a Ken Burns zoom before the final crop to target size.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def padded_duration(self, total_duration: float) -> float:
        """Clip length: narration plus a pad absorbed by the final -shortest trim."""
        return total_duration + self.settings.background_pad_seconds

    def build_graph(self, spec: BackgroundSpec) -> tuple[FilterGraph, str]:
        """Filter graph normalizing the background; returns (graph, output label)."""
        width = self.settings.target_output_width
        height = self.settings.target_output_height
        fps = self.settings.output_fps

        graph = FilterGraph()

        if spec.is_animated:
            source = graph.add_input(spec.source_path, "-stream_loop", "-1")
            out = graph.chain(
                source.video,
                Filter.of("scale", width, height, force_original_aspect_ratio="increase"),
                Filter.of("crop", width, height),
                Filter.of("setsar", 1),
                Filter.of("fps", fps),
                Filter.of("format", "yuv420p"),
                label="bg",
            )
            return graph, out.spec

        scale = self.settings.ken_burns_canvas_scale
        canvas_w = _even(width * scale)
        canvas_h = _even(height * scale)

        source = graph.add_input(spec.source_path, "-loop", "1", "-framerate", str(fps))
        out = graph.chain(
            source.video,
            Filter.of("scale", canvas_w, canvas_h, force_original_aspect_ratio="increase"),
            Filter.of("crop", canvas_w, canvas_h),
            Filter.of("setsar", 1),
            Filter.of(
                "zoompan",
                z=KEN_BURNS_ZOOM,
                x=KEN_BURNS_X,
                y=KEN_BURNS_Y,
                d=1,
                s=f"{width}x{height}",
                fps=fps,
            ),
            Filter.of("format", "yuv420p"),
            label="bg",
        )
        return graph, out.spec

    def build_command(self, spec: BackgroundSpec, total_duration: float, output_path: str) -> list[str]:
        graph, label = self.build_graph(spec)
        return [
            "ffmpeg", "-y",
            *graph.input_args(),
            "-filter_complex", graph.render(),
            "-map", f"[{label}]",
            "-t", format_number(self.padded_duration(total_duration)),
            "-r", str(self.settings.output_fps),
            "-an",
            "-c:v", "libx264",
            "-preset", self.settings.ffmpeg_preset,
            "-crf", str(self.settings.ffmpeg_crf),
            "-pix_fmt", "yuv420p",
            output_path,
        ]

    async def prepare(
        self,
        spec: BackgroundSpec,
        total_duration: float,
        workspace: Workspace,
        run_stamp: int,
    ) -> str:
        """
        Produce the background clip.

        Returns:
            Path of the prepared clip

        Raises:
            BackgroundProcessingFailed: On any failure; there is no further fallback
        """
        if not spec.source_path or not os.path.isfile(spec.source_path):
            raise BackgroundProcessingFailed(f"Background source missing: {spec.source_path}")

        output_path = workspace.temp_path(f"bg_vid_{run_stamp}.mp4")
        kind = "video" if spec.is_animated else "still"
        logger.info(
            f"Preparing {kind} background {spec.source_path} "
            f"for {self.padded_duration(total_duration):.2f}s"
        )

        cmd = self.build_command(spec, total_duration, output_path)
        try:
            await run_command(cmd, description="Background preparation")
        except EncodeFailure as e:
            if os.path.exists(output_path):
                os.remove(output_path)
            raise BackgroundProcessingFailed(
                f"Background could not be processed: {e.message}. {e.diagnostics[-300:]}"
            ) from e

        if not os.path.isfile(output_path) or os.path.getsize(output_path) == 0:
            raise BackgroundProcessingFailed("Background preparation produced no output")

        return output_path
