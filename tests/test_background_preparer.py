"""
Tests for background clip preparation.
"""

import asyncio

import pytest

from quran_reels.exceptions import BackgroundProcessingFailed, EncodeFailure
from quran_reels.models import BackgroundSpec
from quran_reels.services.background_preparer import BackgroundPreparerService


@pytest.fixture
def preparer(settings):
    return BackgroundPreparerService(settings=settings)


class TestBuildCommand:
    """Tests for the ffmpeg command of each background kind."""

    def test_still_gets_ken_burns(self, preparer):
        cmd = preparer.build_command(BackgroundSpec("bg.jpg"), 9.5, "out.mp4")
        graph = cmd[cmd.index("-filter_complex") + 1]

        assert cmd[:8] == ["ffmpeg", "-y", "-loop", "1", "-framerate", "30", "-i", "bg.jpg"]
        assert "scale=1620:2880:force_original_aspect_ratio=increase,crop=1620:2880" in graph
        assert "zoompan=z=1.35+0.2*sin(on/35)" in graph
        assert "s=1080x1920" in graph
        assert cmd[cmd.index("-t") + 1] == "10.5"
        assert cmd[cmd.index("-r") + 1] == "30"

    def test_video_is_looped_and_cropped(self, preparer):
        cmd = preparer.build_command(BackgroundSpec("bg.mp4", is_animated=True), 4.0, "out.mp4")
        graph = cmd[cmd.index("-filter_complex") + 1]

        assert cmd[2:6] == ["-stream_loop", "-1", "-i", "bg.mp4"]
        assert graph.startswith(
            "[0:v]scale=1080:1920:force_original_aspect_ratio=increase,crop=1080:1920"
        )
        assert "zoompan" not in graph
        assert cmd[cmd.index("-t") + 1] == "5"

    def test_output_outlasts_narration(self, preparer):
        assert preparer.padded_duration(9.5) == 10.5


class TestPrepare:
    """Tests for prepare()."""

    def test_missing_source_fails(self, preparer, workspace):
        spec = BackgroundSpec(workspace.temp_path("missing.jpg"))
        with pytest.raises(BackgroundProcessingFailed):
            asyncio.run(preparer.prepare(spec, 5.0, workspace, 1))

    def test_encode_failure_is_wrapped(self, preparer, workspace, png_bytes, mocker):
        source = workspace.temp_path("bg.png")
        with open(source, "wb") as f:
            f.write(png_bytes)
        mocker.patch(
            "quran_reels.services.background_preparer.run_command",
            side_effect=EncodeFailure("Background preparation failed", diagnostics="bad input"),
        )

        with pytest.raises(BackgroundProcessingFailed):
            asyncio.run(preparer.prepare(BackgroundSpec(source), 5.0, workspace, 1))

    def test_prepared_clip_path(self, preparer, workspace, png_bytes, mocker):
        source = workspace.temp_path("bg.png")
        with open(source, "wb") as f:
            f.write(png_bytes)

        async def encode(cmd, description="ffmpeg"):
            with open(cmd[-1], "wb") as f:
                f.write(b"clip")

        mocker.patch("quran_reels.services.background_preparer.run_command", side_effect=encode)

        result = asyncio.run(preparer.prepare(BackgroundSpec(source), 5.0, workspace, 42))
        assert result == workspace.temp_path("bg_vid_42.mp4")
