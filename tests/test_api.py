"""
Tests for the HTTP surface.
"""

import base64
import os

import pytest
from fastapi.testclient import TestClient

from quran_reels.config import get_settings
from quran_reels.exceptions import VerseTextUnavailable
from quran_reels.main import app
from quran_reels.routers.reels import get_pipeline, get_verse_client, get_workspace
from quran_reels.services.reel_pipeline import JobStatus, ReelJobResult


class FakePipeline:
    """Records jobs and returns a canned result."""

    def __init__(self, status=JobStatus.COMPLETED, error=None):
        self.status = status
        self.error = error
        self.jobs = []
        self.background_existed = None

    async def generate_reel(self, job):
        self.jobs.append(job)
        self.background_existed = bool(job.background_path) and os.path.isfile(job.background_path)
        if self.status == JobStatus.COMPLETED:
            return ReelJobResult(
                job_id=job.job_id,
                status=JobStatus.COMPLETED,
                output_path=f"/srv/output/reel_{job.created_at_ms}.mp4",
                processing_time_seconds=12.3,
            )
        return ReelJobResult(job_id=job.job_id, status=self.status, error=self.error, error_code="ENCODE_FAILURE")


class FakeVerseClient:
    def __init__(self, verses=None, fail=False):
        self.verses = verses or []
        self.fail = fail

    async def get_surahs(self):
        if self.fail:
            raise VerseTextUnavailable()
        return [{"number": 1, "englishName": "Al-Faatiha", "numberOfAyahs": 7}]

    async def get_ayahs(self, surah, from_verse, to_verse):
        if self.fail:
            raise VerseTextUnavailable()
        return [v for v in self.verses if from_verse <= v.verse_number <= to_verse]


@pytest.fixture
def pipeline():
    return FakePipeline()


@pytest.fixture
def verse_client(sample_verses):
    return FakeVerseClient(verses=sample_verses)


@pytest.fixture
def client(pipeline, verse_client, workspace, settings):
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_verse_client] = lambda: verse_client
    app.dependency_overrides[get_workspace] = lambda: workspace
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


def _payload(**overrides):
    payload = {"reciterId": "Alafasy_128kbps", "surahNumber": 1, "fromAyah": 1, "toAyah": 3}
    payload.update(overrides)
    return payload


class TestHealth:
    """Tests for health endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_not_ready_before_startup(self, client):
        app.state.tools = {}
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is False


class TestInitialData:
    """Tests for GET /api/initial-data."""

    def test_reciters_and_surahs(self, client):
        response = client.get("/api/initial-data")

        assert response.status_code == 200
        data = response.json()
        assert len(data["reciters"]) == 7
        assert data["reciters"][2]["id"] == "Alafasy_128kbps"
        assert data["surahs"][0]["englishName"] == "Al-Faatiha"

    def test_text_service_down(self, client, verse_client):
        verse_client.fail = True
        response = client.get("/api/initial-data")
        assert response.status_code == 500

    def test_presets(self, client):
        response = client.get("/api/presets")
        assert [p["id"] for p in response.json()] == ["classic", "golden", "soft"]


class TestGenerateVideo:
    """Tests for POST /api/generate-video."""

    def test_success_returns_public_url(self, client, pipeline):
        response = client.post("/api/generate-video", json=_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["videoUrl"] == f"/output/reel_{pipeline.jobs[0].created_at_ms}.mp4"
        assert body["processingTimeSeconds"] == 12.3

        job = pipeline.jobs[0]
        assert job.reciter_id == "Alafasy_128kbps"
        assert [v.verse_number for v in job.verses] == [1, 2, 3]

    def test_reversed_range_rejected(self, client, pipeline):
        response = client.post("/api/generate-video", json=_payload(fromAyah=5, toAyah=2))

        assert response.status_code == 400
        assert pipeline.jobs == []

    @pytest.mark.parametrize("reciter_id", ["Unknown_Reciter_64kbps", "../../escape"])
    def test_unknown_reciter_rejected(self, client, pipeline, reciter_id):
        response = client.post("/api/generate-video", json=_payload(reciterId=reciter_id))

        assert response.status_code == 400
        assert "Unknown reciter" in response.json()["detail"]
        assert pipeline.jobs == []

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/generate-video", json={"reciterId": "Alafasy_128kbps"})
        assert response.status_code == 422

    def test_unknown_preset_rejected(self, client):
        response = client.post("/api/generate-video", json=_payload(textPreset="comic"))
        assert response.status_code == 400

    def test_empty_range_rejected(self, client):
        response = client.post("/api/generate-video", json=_payload(fromAyah=50, toAyah=60))
        assert response.status_code == 400

    def test_library_background_used(self, client, pipeline, settings):
        library = settings.background_library_directory
        os.makedirs(library)
        for name in ("notes.txt", "b_dunes.jpg", "a_sea.png"):
            open(os.path.join(library, name), "wb").close()

        client.post("/api/generate-video", json=_payload())

        assert pipeline.jobs[0].background_path == os.path.join(library, "a_sea.png")

    def test_no_library_means_no_background(self, client, pipeline):
        client.post("/api/generate-video", json=_payload())
        assert pipeline.jobs[0].background_path is None

    def test_uploaded_background_saved_then_removed(self, client, pipeline, png_bytes):
        data_url = "data:image/png;base64," + base64.b64encode(png_bytes).decode()

        response = client.post("/api/generate-video", json=_payload(backgroundData=data_url))

        assert response.status_code == 200
        job = pipeline.jobs[0]
        assert job.background_path.endswith(".png")
        assert pipeline.background_existed is True
        assert not os.path.exists(job.background_path)

    def test_malformed_background_rejected(self, client, pipeline):
        response = client.post("/api/generate-video", json=_payload(backgroundData="not a data url"))

        assert response.status_code == 400
        assert pipeline.jobs == []

    def test_pipeline_failure(self, client, pipeline):
        pipeline.status = JobStatus.FAILED
        pipeline.error = "Final encode failed with exit code 1"

        response = client.post("/api/generate-video", json=_payload())

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to generate video: Final encode failed with exit code 1"

    def test_text_service_failure(self, client, verse_client):
        verse_client.fail = True
        response = client.post("/api/generate-video", json=_payload())
        assert response.status_code == 502
