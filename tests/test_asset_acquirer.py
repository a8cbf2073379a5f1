"""
Tests for audio and background acquisition.
"""

import asyncio
import os

import httpx
import pytest

from quran_reels.exceptions import AudioUnavailable, BackgroundUnavailable
from quran_reels.models import AudioKey, RenderJob
from quran_reels.services.asset_acquirer import AssetAcquirerService, build_audio_url


RECITER = "Alafasy_128kbps"


class CountingTransport:
    """Builds an httpx.MockTransport that records requested URLs."""

    def __init__(self, failing_codes=(), fail_all=False):
        self.failing_codes = set(failing_codes)
        self.fail_all = fail_all
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if self.fail_all or any(url.endswith(f"/{code}.mp3") for code in self.failing_codes):
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, content=b"ID3" + url.encode())

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def probe(mocker):
    """Every audio file measures 2.5 seconds."""
    return mocker.patch(
        "quran_reels.services.asset_acquirer.probe_duration",
        new_callable=mocker.AsyncMock,
        return_value=2.5,
    )


def make_acquirer(workspace, settings, transport, **kwargs):
    return AssetAcquirerService(workspace, settings=settings, transport=transport, **kwargs)


class TestAudioUrl:
    """Tests for build_audio_url."""

    def test_zero_padded_code(self):
        url = build_audio_url("https://everyayah.com/data/", AudioKey(RECITER, 2, 7))
        assert url == "https://everyayah.com/data/Alafasy_128kbps/002007.mp3"


class TestAcquireAudio:
    """Tests for acquire_audio."""

    def test_clips_in_verse_order(self, workspace, settings, render_job, probe):
        counter = CountingTransport()
        acquirer = make_acquirer(workspace, settings, counter.transport())

        clips = asyncio.run(acquirer.acquire_audio(render_job, 100))

        assert [c.source_key.verse_number for c in clips] == [1, 2, 3]
        assert all(c.duration_seconds == 2.5 for c in clips)
        assert all(os.path.getsize(c.file_path) > 0 for c in clips)
        assert clips[0].file_path == workspace.temp_path(f"audio_100_{RECITER}_001001.mp3")

    def test_second_request_served_from_cache(self, workspace, settings, render_job, probe):
        counter = CountingTransport()
        acquirer = make_acquirer(workspace, settings, counter.transport())

        asyncio.run(acquirer.acquire_audio(render_job, 100))
        asyncio.run(acquirer.acquire_audio(render_job, 200))

        assert len(counter.requests) == 3
        assert os.path.isfile(acquirer.cache.path_for(AudioKey(RECITER, 1, 2)))

    def test_concurrent_requests_download_once(self, workspace, settings, render_job, probe):
        counter = CountingTransport()
        acquirer = make_acquirer(workspace, settings, counter.transport())

        async def run_both():
            return await asyncio.gather(
                acquirer.acquire_audio(render_job, 100),
                acquirer.acquire_audio(render_job, 200),
            )

        first, second = asyncio.run(run_both())

        assert len(counter.requests) == 3
        assert [c.source_key for c in first] == [c.source_key for c in second]

    def test_failure_names_the_verse(self, workspace, settings, render_job, probe):
        counter = CountingTransport(failing_codes=["001002"])
        acquirer = make_acquirer(workspace, settings, counter.transport())

        with pytest.raises(AudioUnavailable) as exc_info:
            asyncio.run(acquirer.acquire_audio(render_job, 100))

        assert exc_info.value.surah == 1
        assert exc_info.value.verse == 2
        assert "verse 2" in exc_info.value.message
        # Verse 3 is never attempted
        assert not any(url.endswith("001003.mp3") for url in counter.requests)

    def test_local_fallback_recovers_audio(self, workspace, settings, render_job, probe):
        earlier = workspace.temp_path(f"audio_50_{RECITER}_001002.mp3")
        with open(earlier, "wb") as f:
            f.write(b"earlier run")

        counter = CountingTransport(failing_codes=["001002"])
        acquirer = make_acquirer(workspace, settings, counter.transport())

        clips = asyncio.run(acquirer.acquire_audio(render_job, 100))

        with open(clips[1].file_path, "rb") as f:
            assert f.read() == b"earlier run"

    def test_fallback_ignores_other_reciters(self, workspace, settings, render_job, probe):
        other = workspace.temp_path("audio_50_Husary_64kbps_001002.mp3")
        with open(other, "wb") as f:
            f.write(b"other reciter")

        counter = CountingTransport(failing_codes=["001002"])
        acquirer = make_acquirer(workspace, settings, counter.transport())

        with pytest.raises(AudioUnavailable):
            asyncio.run(acquirer.acquire_audio(render_job, 100))

    def test_unprobeable_audio_is_unavailable(self, workspace, settings, render_job, mocker):
        from quran_reels.exceptions import EncodeFailure

        mocker.patch(
            "quran_reels.services.asset_acquirer.probe_duration",
            side_effect=EncodeFailure("ffprobe failed"),
        )
        acquirer = make_acquirer(workspace, settings, CountingTransport().transport())

        with pytest.raises(AudioUnavailable) as exc_info:
            asyncio.run(acquirer.acquire_audio(render_job, 100))
        assert exc_info.value.verse == 1

    def test_no_partial_files_after_failed_download(self, workspace, settings, render_job, probe):
        acquirer = make_acquirer(workspace, settings, CountingTransport(fail_all=True).transport())

        with pytest.raises(AudioUnavailable):
            asyncio.run(acquirer.acquire_audio(render_job, 100))

        assert not [n for n in os.listdir(workspace.temp_dir) if n.endswith(".part")]


class TestResolveBackground:
    """Tests for resolve_background."""

    def test_custom_video_is_animated(self, workspace, settings, render_job):
        custom = workspace.temp_path("upload.mp4")
        with open(custom, "wb") as f:
            f.write(b"video")
        render_job.background_path = custom
        acquirer = make_acquirer(workspace, settings, CountingTransport().transport())

        spec = asyncio.run(acquirer.resolve_background(render_job, 100))

        assert spec.source_path == custom
        assert spec.is_animated
        assert not spec.is_downloaded

    def test_custom_image_is_still(self, workspace, settings, render_job, png_bytes):
        custom = workspace.temp_path("upload.PNG")
        with open(custom, "wb") as f:
            f.write(png_bytes)
        render_job.background_path = custom
        acquirer = make_acquirer(workspace, settings, CountingTransport().transport())

        spec = asyncio.run(acquirer.resolve_background(render_job, 100))

        assert not spec.is_animated

    def test_remote_sources_tried_in_order(self, workspace, settings, render_job, png_bytes):
        requested = []

        def handler(request):
            requested.append(request.url.host)
            if request.url.host == "first.example":
                return httpx.Response(503)
            return httpx.Response(200, content=png_bytes)

        acquirer = make_acquirer(
            workspace, settings, httpx.MockTransport(handler),
            background_urls=["https://first.example/img", "https://second.example/img"],
        )

        spec = asyncio.run(acquirer.resolve_background(render_job, 100))

        assert requested == ["first.example", "second.example"]
        assert spec.source_path == workspace.temp_path("random_bg_100_1.jpg")
        assert spec.is_downloaded
        assert not spec.is_animated

    def test_non_image_response_skipped(self, workspace, settings, render_job, png_bytes):
        def handler(request):
            if request.url.host == "html.example":
                return httpx.Response(200, text="<html>rate limited</html>")
            return httpx.Response(200, content=png_bytes)

        acquirer = make_acquirer(
            workspace, settings, httpx.MockTransport(handler),
            background_urls=["https://html.example/img", "https://ok.example/img"],
        )

        spec = asyncio.run(acquirer.resolve_background(render_job, 100))

        assert spec.source_path.endswith("random_bg_100_1.jpg")
        assert not os.path.exists(workspace.temp_path("random_bg_100_0.jpg"))

    def test_all_sources_failing(self, workspace, settings, render_job):
        acquirer = make_acquirer(
            workspace, settings, httpx.MockTransport(lambda request: httpx.Response(500)),
            background_urls=["https://a.example/img", "https://b.example/img"],
        )

        with pytest.raises(BackgroundUnavailable):
            asyncio.run(acquirer.resolve_background(render_job, 100))

    def test_missing_custom_file_falls_back_to_remote(self, workspace, settings, png_bytes):
        job = RenderJob(
            reciter_id=RECITER, surah=1, from_verse=1, to_verse=1, verses=[],
            background_path=workspace.temp_path("gone.jpg"),
        )
        acquirer = make_acquirer(
            workspace, settings,
            httpx.MockTransport(lambda request: httpx.Response(200, content=png_bytes)),
            background_urls=["https://ok.example/img"],
        )

        spec = asyncio.run(acquirer.resolve_background(job, 100))

        assert spec.is_downloaded
