"""
Asset Acquirer Service - Resolves per-verse recitation audio and the reel background.

Audio is served from the persistent cache when possible, otherwise downloaded
from the recitation host with a browser-like User-Agent (some hosts reject
default clients). Backgrounds come from a caller-supplied file or, failing that,
from public random-image endpoints tried in priority order.
"""

import asyncio
import glob
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import httpx
from PIL import Image

from quran_reels.config import Settings, get_settings
from quran_reels.exceptions import AudioUnavailable, BackgroundUnavailable, EncodeFailure
from quran_reels.models import (
    VIDEO_EXTENSIONS,
    AudioClip,
    AudioKey,
    BackgroundSpec,
    RenderJob,
)
from quran_reels.services.audio_cache import AudioCache
from quran_reels.services.media_tools import probe_duration
from quran_reels.services.workspace import Workspace

logger = logging.getLogger(__name__)


def build_audio_url(base_url: str, key: AudioKey) -> str:
    """Recitation URL: <base>/<reciter>/<surah:3><verse:3>.mp3"""
    return f"{base_url.rstrip('/')}/{key.reciter_id}/{key.code}.mp3"


def _verify_image(path: str) -> None:
    """Raise if the file is not a decodable image (e.g. an HTML error page)."""
    with Image.open(path) as img:
        img.verify()


class AssetAcquirerService:
    """
    Service for acquiring the raw assets of a reel.

    Features:
    - Per-verse audio with on-disk caching (atomic writes, per-key locks)
    - Last-resort recovery from earlier runs' scratch files
    - Duration measured from each file with ffprobe
    - Background resolution with ordered remote fallbacks
    """

    def __init__(
        self,
        workspace: Workspace,
        settings: Optional[Settings] = None,
        cache: Optional[AudioCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        background_urls: Optional[list[str]] = None,
    ):
        self.settings = settings or get_settings()
        self.workspace = workspace
        self.cache = cache or AudioCache(workspace.cache_dir)
        self._transport = transport
        self.background_urls = (
            background_urls if background_urls is not None
            else self.settings.background_source_urls
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.download_timeout_seconds,
            headers={
                "User-Agent": self.settings.user_agent,
                "Accept": "*/*",
            },
            follow_redirects=True,
            transport=self._transport,
        )

    def run_audio_path(self, key: AudioKey, run_stamp: int) -> str:
        """Per-run scratch path for a verse's audio."""
        return self.workspace.temp_path(f"audio_{run_stamp}_{key.reciter_id}_{key.code}.mp3")

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    async def acquire_audio(self, job: RenderJob, run_stamp: int) -> list[AudioClip]:
        """
        Produce one measured AudioClip per verse, in request order.

        Args:
            job: Render job with reciter and verses
            run_stamp: Per-job millisecond timestamp used in scratch filenames

        Returns:
            AudioClips aligned with job.verses

        Raises:
            AudioUnavailable: Naming the first verse that could not be resolved
        """
        clips: list[AudioClip] = []

        async with self._client() as client:
            for verse in job.verses:
                key = AudioKey(job.reciter_id, verse.surah, verse.verse_number)
                clip = await self._acquire_clip(client, key, run_stamp)
                clips.append(clip)

        total = sum(c.duration_seconds for c in clips)
        logger.info(f"Acquired {len(clips)} audio clips ({total:.2f}s total)")
        return clips

    async def _acquire_clip(
        self,
        client: httpx.AsyncClient,
        key: AudioKey,
        run_stamp: int,
    ) -> AudioClip:
        run_path = self.run_audio_path(key, run_stamp)
        loop = asyncio.get_event_loop()

        async with self.cache.lock_for(key):
            cached = self.cache.get(key)
            if cached:
                logger.debug(f"Audio cache hit: {key.reciter_id}/{key.code}")
                await loop.run_in_executor(None, shutil.copyfile, cached, run_path)
            else:
                url = build_audio_url(self.settings.audio_base_url, key)
                logger.info(f"Audio cache miss, downloading {url}")
                try:
                    await self._download_file(client, url, run_path)
                except (httpx.HTTPError, OSError) as e:
                    logger.warning(f"Audio download failed for {key.code}: {e}")
                    fallback = self._find_local_fallback(key, exclude=run_path)
                    if fallback is None:
                        raise AudioUnavailable(key.surah, key.verse_number, reason=str(e)) from e
                    logger.info(f"Recovered audio for {key.code} from {fallback}")
                    await loop.run_in_executor(None, shutil.copyfile, fallback, run_path)
                else:
                    try:
                        await loop.run_in_executor(None, self.cache.put, key, run_path)
                    except OSError as e:
                        logger.warning(f"Could not cache audio {key.code}: {e}")

        try:
            duration = await probe_duration(run_path)
        except EncodeFailure as e:
            raise AudioUnavailable(
                key.surah, key.verse_number, reason=f"unreadable audio file ({e.message})"
            ) from e

        return AudioClip(source_key=key, file_path=run_path, duration_seconds=duration)

    def _find_local_fallback(self, key: AudioKey, exclude: str) -> Optional[str]:
        """Most recent non-empty scratch copy of the same verse from an earlier run."""
        pattern = self.workspace.temp_path(f"audio_*_{glob.escape(key.reciter_id)}_{key.code}.mp3")
        candidates = [
            path for path in glob.glob(pattern)
            if os.path.abspath(path) != os.path.abspath(exclude) and os.path.getsize(path) > 0
        ]
        if not candidates:
            return None
        return max(candidates, key=os.path.getmtime)

    async def _download_file(self, client: httpx.AsyncClient, url: str, dest: str) -> None:
        """Stream url to dest via a .part file; nothing is left behind on failure."""
        part_path = f"{dest}.part"
        try:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(part_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
            if os.path.getsize(part_path) == 0:
                raise OSError(f"Empty response body from {url}")
            os.replace(part_path, dest)
        finally:
            if os.path.exists(part_path):
                os.remove(part_path)

    # ------------------------------------------------------------------
    # Background
    # ------------------------------------------------------------------

    async def resolve_background(self, job: RenderJob, run_stamp: int) -> BackgroundSpec:
        """
        Resolve the background asset for a job.

        Raises:
            BackgroundUnavailable: No usable custom file and every remote source failed
        """
        custom = job.background_path
        if custom and os.path.isfile(custom):
            is_animated = Path(custom).suffix.lower() in VIDEO_EXTENSIONS
            logger.info(f"Using custom background: {custom} (animated={is_animated})")
            return BackgroundSpec(source_path=custom, is_animated=is_animated)

        if custom:
            logger.warning(f"Custom background not found on disk: {custom}")

        loop = asyncio.get_event_loop()
        async with self._client() as client:
            for i, url in enumerate(self.background_urls):
                dest = self.workspace.temp_path(f"random_bg_{run_stamp}_{i}.jpg")
                logger.info(f"Fetching random background from {url}")
                try:
                    await self._download_file(client, url, dest)
                    await loop.run_in_executor(None, _verify_image, dest)
                except (httpx.HTTPError, OSError, SyntaxError, ValueError) as e:
                    logger.warning(f"Background source failed ({url}): {e}")
                    if os.path.exists(dest):
                        os.remove(dest)
                    continue

                logger.info(f"Random background fetched: {dest}")
                return BackgroundSpec(source_path=dest, is_animated=False, is_downloaded=True)

        raise BackgroundUnavailable()
