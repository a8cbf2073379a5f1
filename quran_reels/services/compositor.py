"""
Compositor Service - assembles background, narration and verse overlays into the
final reel with a single ffmpeg filter graph.

Graph layout (input order is fixed):
    0: prepared background clip  -> scaled once            -> [base]
    1: combined narration track  -> mapped as the audio stream
    2+i: overlay PNG for verse i -> scale, fade in/out      -> [ovl<i>]
    [base][ovl0] overlay (enabled in window 0) -> [v0]
    [v0][ovl1]   overlay (enabled in window 1) -> [v1] ...
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from quran_reels.config import Settings, get_settings
from quran_reels.exceptions import EncodeFailure
from quran_reels.models import AudioClip, OverlayImage
from quran_reels.services.filter_graph import Filter, FilterGraph, format_number
from quran_reels.services.media_tools import run_command
from quran_reels.services.timeline import Timeline

logger = logging.getLogger(__name__)


# Input slots ahead of the overlays
BACKGROUND_INPUT = 0
AUDIO_INPUT = 1


@dataclass(frozen=True)
class OverlayWindow:
    """Timing of one overlay: visible in [start, end), faded at both edges."""

    verse_index: int
    start_seconds: float
    end_seconds: float
    fade_seconds: float

    @property
    def fade_out_start(self) -> float:
        return self.end_seconds - self.fade_seconds

    @property
    def enable_expression(self) -> str:
        """Half-open window predicate for the overlay filter's timeline support."""
        return f"gte(t,{format_number(self.start_seconds)})*lt(t,{format_number(self.end_seconds)})"


def plan_overlay_windows(timeline: Timeline) -> list[OverlayWindow]:
    """One window per timeline entry, in verse order."""
    return [
        OverlayWindow(
            verse_index=entry.verse_index,
            start_seconds=entry.start_seconds,
            end_seconds=entry.end_seconds,
            fade_seconds=entry.fade_seconds,
        )
        for entry in timeline
    ]


@dataclass
class CompositeResult:
    """Result of the final encode."""

    output_path: str
    file_size_bytes: int
    duration_seconds: float


class CompositorService:
    """
    Service for the final assembly.

    Features:
    - Narration concatenation into one lossless track
    - Per-verse overlay fades and time-gated compositing
    - H.264/AAC output clamped to the shorter stream
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Narration
    # ------------------------------------------------------------------

    def build_audio_graph(self, clips: list[AudioClip]) -> tuple[FilterGraph, str]:
        """Concatenate clips in order after normalizing their sample format."""
        if not clips:
            raise ValueError("At least one audio clip is required")

        graph = FilterGraph()
        normalized = []
        for i, clip in enumerate(clips):
            source = graph.add_input(clip.file_path)
            normalized.append(graph.chain(
                source.audio,
                Filter.of("aresample", self.settings.audio_sample_rate),
                Filter.of("aformat", sample_fmts="fltp", channel_layouts="stereo"),
                label=f"a{i}",
            ))

        out = graph.chain(
            normalized,
            Filter.of("concat", n=len(clips), v=0, a=1),
            label="aout",
        )
        return graph, out.spec

    async def combine_audio(self, clips: list[AudioClip], output_path: str) -> str:
        """
        Join verse recitations into one track.

        The intermediate is PCM WAV so no encoder priming delay shifts the
        narration against the timeline.
        """
        graph, label = self.build_audio_graph(clips)
        cmd = [
            "ffmpeg", "-y",
            *graph.input_args(),
            "-filter_complex", graph.render(),
            "-map", f"[{label}]",
            "-c:a", "pcm_s16le",
            output_path,
        ]

        logger.info(f"Combining {len(clips)} audio clips")
        await run_command(cmd, description="Audio concatenation")
        return output_path

    # ------------------------------------------------------------------
    # Final assembly
    # ------------------------------------------------------------------

    def build_graph(
        self,
        background_path: str,
        audio_path: str,
        overlays: list[OverlayImage],
        timeline: Timeline,
    ) -> tuple[FilterGraph, str]:
        """
        Build the composition graph.

        Returns:
            (graph, label of the final video stream)

        Raises:
            ValueError: If overlays and timeline entries do not pair up in order
        """
        if len(overlays) != len(timeline):
            raise ValueError(
                f"{len(overlays)} overlays for {len(timeline)} timeline entries"
            )
        for i, overlay in enumerate(overlays):
            if overlay.verse_index != i:
                raise ValueError(f"Overlay at position {i} belongs to verse {overlay.verse_index}")

        width = self.settings.target_output_width
        height = self.settings.target_output_height
        fps = self.settings.output_fps
        still_length = format_number(timeline.total_duration + self.settings.background_pad_seconds)

        graph = FilterGraph()
        background = graph.add_input(background_path)
        graph.add_input(audio_path)
        overlay_inputs = [
            graph.add_input(
                overlay.file_path,
                "-loop", "1",
                "-framerate", str(fps),
                "-t", still_length,
            )
            for overlay in overlays
        ]

        current = graph.chain(
            background.video,
            Filter.of("scale", width, height),
            Filter.of("setsar", 1),
            Filter.of("fps", fps),
            label="base",
        )

        for window, overlay_input in zip(plan_overlay_windows(timeline), overlay_inputs):
            i = window.verse_index
            faded = graph.chain(
                overlay_input.video,
                Filter.of("format", "rgba"),
                Filter.of("scale", width, height),
                Filter.of("fade", t="in", st=window.start_seconds, d=window.fade_seconds, alpha=1),
                Filter.of("fade", t="out", st=window.fade_out_start, d=window.fade_seconds, alpha=1),
                label=f"ovl{i}",
            )
            current = graph.chain(
                [current, faded],
                Filter.of("overlay", 0, 0, enable=window.enable_expression),
                label=f"v{i}",
            )

        return graph, current.spec

    def build_command(
        self,
        background_path: str,
        audio_path: str,
        overlays: list[OverlayImage],
        timeline: Timeline,
        output_path: str,
    ) -> list[str]:
        graph, video_label = self.build_graph(background_path, audio_path, overlays, timeline)
        return [
            "ffmpeg", "-y",
            *graph.input_args(),
            "-filter_complex", graph.render(),
            "-map", f"[{video_label}]",
            "-map", f"{AUDIO_INPUT}:a",
            "-c:v", "libx264",
            "-preset", self.settings.ffmpeg_preset,
            "-crf", str(self.settings.ffmpeg_crf),
            "-pix_fmt", "yuv420p",
            "-r", str(self.settings.output_fps),
            "-c:a", "aac",
            "-b:a", self.settings.audio_bitrate,
            "-shortest",
            "-movflags", "+faststart",
            output_path,
        ]

    async def compose(
        self,
        background_path: str,
        audio_path: str,
        overlays: list[OverlayImage],
        timeline: Timeline,
        output_path: str,
    ) -> CompositeResult:
        """
        Encode the final reel.

        Raises:
            EncodeFailure: ffmpeg failed; the partial output is removed
        """
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        cmd = self.build_command(background_path, audio_path, overlays, timeline, output_path)

        logger.info(
            f"Compositing {len(overlays)} overlays over {timeline.total_duration:.2f}s -> {output_path}"
        )
        try:
            await run_command(cmd, description="Final encode")
        except EncodeFailure:
            if os.path.exists(output_path):
                os.remove(output_path)
            raise

        if not os.path.isfile(output_path):
            raise EncodeFailure("Final encode finished but no output file was written")

        file_size = os.path.getsize(output_path)
        logger.info(f"Reel encoded: {output_path} ({file_size / 1024 / 1024:.1f} MB)")

        return CompositeResult(
            output_path=output_path,
            file_size_bytes=file_size,
            duration_seconds=timeline.total_duration,
        )
