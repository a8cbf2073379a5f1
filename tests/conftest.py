"""
Pytest configuration and fixtures.
"""

import io
import os
import sys

import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from quran_reels.config import Settings
from quran_reels.models import RenderJob, VerseRequest
from quran_reels.services.workspace import provision_workspace


@pytest.fixture
def settings(tmp_path):
    """Settings with every directory under tmp_path."""
    return Settings(
        output_directory=str(tmp_path / "output"),
        temp_directory=str(tmp_path / "uploads"),
        audio_cache_directory=str(tmp_path / "audio_cache"),
        background_library_directory=str(tmp_path / "backgrounds"),
    )


@pytest.fixture
def workspace(settings):
    """Provisioned workspace for the test settings."""
    return provision_workspace(settings)


@pytest.fixture(scope="session")
def sample_verses():
    """First three verses of Al-Fatiha."""
    return [
        VerseRequest(surah=1, verse_number=1, text="بِسْمِ ٱللَّهِ ٱلرَّحْمَٰنِ ٱلرَّحِيمِ"),
        VerseRequest(surah=1, verse_number=2, text="ٱلْحَمْدُ لِلَّهِ رَبِّ ٱلْعَٰلَمِينَ"),
        VerseRequest(surah=1, verse_number=3, text="ٱلرَّحْمَٰنِ ٱلرَّحِيمِ"),
    ]


@pytest.fixture
def render_job(sample_verses):
    """Job for verses 1-3 of surah 1 with a fixed timestamp."""
    return RenderJob(
        reciter_id="Alafasy_128kbps",
        surah=1,
        from_verse=1,
        to_verse=3,
        verses=list(sample_verses),
        created_at_ms=1700000000000,
    )


@pytest.fixture(scope="session")
def png_bytes():
    """A small valid PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (32, 48), (30, 90, 140)).save(buffer, "PNG")
    return buffer.getvalue()
