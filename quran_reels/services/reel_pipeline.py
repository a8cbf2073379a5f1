"""
Reel Pipeline - orchestrator for the complete reel composition workflow.

This service runs one job through its stages in strict order:
1. Audio acquisition (cache, download, local recovery) with measured durations
2. Background resolution (custom file or remote still)
3. Timeline derivation from the measured durations
4. Narration concatenation
5. Overlay rendering and background preparation (concurrently)
6. Final composition into reel_<timestamp>.mp4
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from quran_reels.config import Settings, TextStyle, get_settings
from quran_reels.exceptions import ReelError
from quran_reels.models import AudioKey, BackgroundSpec, RenderJob
from quran_reels.services.asset_acquirer import AssetAcquirerService
from quran_reels.services.background_preparer import BackgroundPreparerService
from quran_reels.services.compositor import CompositorService
from quran_reels.services.overlay_renderer import OverlayRendererService
from quran_reels.services.timeline import build_timeline
from quran_reels.services.workspace import Workspace

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Status of a reel generation job."""

    PENDING = "pending"
    ACQUIRING_AUDIO = "acquiring_audio"
    RESOLVING_BACKGROUND = "resolving_background"
    BUILDING_TIMELINE = "building_timeline"
    MIXING_AUDIO = "mixing_audio"
    RENDERING_OVERLAYS = "rendering_overlays"
    PREPARING_BACKGROUND = "preparing_background"
    COMPOSITING = "compositing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ReelJobProgress:
    """Progress update for a reel job."""

    job_id: str
    status: JobStatus
    progress_percent: float
    current_step: str
    error: Optional[str] = None


@dataclass
class ReelJobResult:
    """Final result of a reel job."""

    job_id: str
    status: JobStatus
    output_path: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    processing_time_seconds: float = 0


class ReelPipeline:
    """
    Unified pipeline for reel generation.

    Stage services are injectable so the orchestration can be exercised
    without ffmpeg or network access.
    """

    def __init__(
        self,
        workspace: Workspace,
        settings: Optional[Settings] = None,
        acquirer: Optional[AssetAcquirerService] = None,
        renderer: Optional[OverlayRendererService] = None,
        preparer: Optional[BackgroundPreparerService] = None,
        compositor: Optional[CompositorService] = None,
        progress_callback: Optional[Callable[[ReelJobProgress], None]] = None,
    ):
        self.settings = settings or get_settings()
        self.workspace = workspace
        self.acquirer = acquirer or AssetAcquirerService(workspace, settings=self.settings)
        self.renderer = renderer or OverlayRendererService(settings=self.settings)
        self.preparer = preparer or BackgroundPreparerService(settings=self.settings)
        self.compositor = compositor or CompositorService(settings=self.settings)
        self.progress_callback = progress_callback

    async def generate_reel(self, job: RenderJob) -> ReelJobResult:
        """
        Generate one reel.

        Args:
            job: RenderJob with reciter, verse range, verse texts and options

        Returns:
            ReelJobResult with the output path, or the error and its code
        """
        start_time = time.time()
        job_id = job.job_id
        run_stamp = job.created_at_ms or int(time.time() * 1000)
        output_path = self.workspace.output_path(run_stamp)
        scratch_files: list[str] = []

        try:
            logger.info(f"Starting reel job: {job_id}")
            logger.info(
                f"Reciter: {job.reciter_id}, surah {job.surah}, "
                f"verses {job.from_verse}-{job.to_verse} ({len(job.verses)} verses)"
            )

            if not job.verses:
                raise ValueError("Job has no verses to render")
            style = self.settings.get_text_style(job.text_preset)

            # Per-run paths are known up front so cleanup covers partial stages
            scratch_files.extend(
                self.acquirer.run_audio_path(
                    AudioKey(job.reciter_id, v.surah, v.verse_number), run_stamp
                )
                for v in job.verses
            )
            scratch_files.extend(
                self.workspace.temp_path(f"overlay_{run_stamp}_{i:03d}.png")
                for i in range(len(job.verses))
            )
            combined_audio_path = self.workspace.temp_path(f"combined_{run_stamp}.wav")
            prepared_bg_path = self.workspace.temp_path(f"bg_vid_{run_stamp}.mp4")
            scratch_files.extend([combined_audio_path, prepared_bg_path])

            # Step 1: Audio
            self._update_progress(job_id, JobStatus.ACQUIRING_AUDIO, 5, "Acquiring verse audio...")
            clips = await self.acquirer.acquire_audio(job, run_stamp)

            # Step 2: Background source
            self._update_progress(job_id, JobStatus.RESOLVING_BACKGROUND, 25, "Resolving background...")
            background = await self.acquirer.resolve_background(job, run_stamp)
            if background.is_downloaded:
                scratch_files.append(background.source_path)

            # Step 3: Timeline
            self._update_progress(job_id, JobStatus.BUILDING_TIMELINE, 35, "Building timeline...")
            timeline = build_timeline([c.duration_seconds for c in clips])
            logger.info(f"Timeline: {len(timeline)} entries, {timeline.total_duration:.2f}s total")

            # Step 4: Narration track
            self._update_progress(job_id, JobStatus.MIXING_AUDIO, 40, "Combining audio...")
            await self.compositor.combine_audio(clips, combined_audio_path)

            # Step 5: Overlays and background clip in parallel
            self._update_progress(
                job_id, JobStatus.RENDERING_OVERLAYS, 50,
                f"Rendering {len(job.verses)} overlays and preparing background...",
            )
            overlays, prepared_bg = await self._render_and_prepare(
                job, background, timeline.total_duration, run_stamp, style,
            )

            # Step 6: Final composition
            self._update_progress(job_id, JobStatus.COMPOSITING, 75, "Compositing reel...")
            result = await self.compositor.compose(
                background_path=prepared_bg,
                audio_path=combined_audio_path,
                overlays=overlays,
                timeline=timeline,
                output_path=output_path,
            )

            processing_time = time.time() - start_time
            self._update_progress(job_id, JobStatus.COMPLETED, 100, "Reel complete!")
            logger.info(f"Job {job_id} completed in {processing_time:.1f}s: {result.output_path}")

            return ReelJobResult(
                job_id=job_id,
                status=JobStatus.COMPLETED,
                output_path=result.output_path,
                processing_time_seconds=processing_time,
            )

        except Exception as e:
            logger.exception(f"Job {job_id} failed: {e}")

            if os.path.exists(output_path):
                self._remove_file(output_path)

            error_code = e.code if isinstance(e, ReelError) else "INTERNAL_ERROR"
            message = e.message if isinstance(e, ReelError) else str(e)
            self._update_progress(job_id, JobStatus.FAILED, 0, "Processing failed", error=message)

            return ReelJobResult(
                job_id=job_id,
                status=JobStatus.FAILED,
                error=message,
                error_code=error_code,
                processing_time_seconds=time.time() - start_time,
            )

        finally:
            # Cache entries and caller-supplied backgrounds are never in scratch_files
            for path in scratch_files:
                if os.path.exists(path):
                    self._remove_file(path)

    async def _render_and_prepare(
        self,
        job: RenderJob,
        background: BackgroundSpec,
        total_duration: float,
        run_stamp: int,
        style: TextStyle,
    ):
        """Run overlay rendering and background preparation together; both finish before returning."""
        self._update_progress(job.job_id, JobStatus.PREPARING_BACKGROUND, 55, "Preparing background...")
        overlays, prepared_bg = await asyncio.gather(
            self.renderer.render_overlays(job.verses, self.workspace, run_stamp, style),
            self.preparer.prepare(background, total_duration, self.workspace, run_stamp),
            return_exceptions=True,
        )
        for outcome in (overlays, prepared_bg):
            if isinstance(outcome, BaseException):
                raise outcome

        if len(overlays) != len(job.verses):
            raise ValueError(f"Rendered {len(overlays)} overlays for {len(job.verses)} verses")
        return overlays, prepared_bg

    def _remove_file(self, path: str) -> None:
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Failed to remove {path}: {e}")

    def _update_progress(
        self,
        job_id: str,
        status: JobStatus,
        progress: float,
        step: str,
        error: Optional[str] = None,
    ) -> None:
        """Report job progress via callback."""
        if self.progress_callback:
            try:
                self.progress_callback(ReelJobProgress(
                    job_id=job_id,
                    status=status,
                    progress_percent=progress,
                    current_step=step,
                    error=error,
                ))
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")
