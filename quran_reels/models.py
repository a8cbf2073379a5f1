"""
Data models shared by the reel composition stages.
"""

import uuid
from dataclasses import dataclass
from typing import Optional


# Extensions treated as video containers when classifying a background
VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".webm", ".mkv", ".m4v", ".avi"})


@dataclass(frozen=True)
class VerseRequest:
    """One verse (ayah) of the requested range, in canonical order."""

    surah: int
    verse_number: int
    text: str


@dataclass(frozen=True)
class AudioKey:
    """Cache key and source identity of one verse recitation."""

    reciter_id: str
    surah: int
    verse_number: int

    def __post_init__(self):
        # reciter_id names a directory under the cache and part of scratch filenames
        if (
            not self.reciter_id
            or "/" in self.reciter_id
            or "\\" in self.reciter_id
            or ".." in self.reciter_id
            or self.reciter_id == "."
        ):
            raise ValueError(f"Invalid reciter id: {self.reciter_id!r}")

    @property
    def code(self) -> str:
        """Zero-padded surah+verse code used by the audio host, e.g. 002255."""
        return f"{self.surah:03d}{self.verse_number:03d}"


@dataclass(frozen=True)
class AudioClip:
    """A per-run audio file with its measured duration."""

    source_key: AudioKey
    file_path: str
    duration_seconds: float


@dataclass(frozen=True)
class OverlayImage:
    """Transparent text raster for one verse."""

    verse_index: int
    file_path: str


@dataclass(frozen=True)
class BackgroundSpec:
    """Background asset to normalize. source_path None means it must be substituted."""

    source_path: Optional[str]
    is_animated: bool = False
    is_downloaded: bool = False  # Fetched for this run; removed during cleanup


@dataclass
class RenderJob:
    """Everything one reel generation needs, threaded through every stage."""

    reciter_id: str
    surah: int
    from_verse: int
    to_verse: int
    verses: list[VerseRequest]
    background_path: Optional[str] = None
    text_preset: Optional[str] = None
    job_id: Optional[str] = None
    created_at_ms: Optional[int] = None

    def __post_init__(self):
        if self.job_id is None:
            self.job_id = str(uuid.uuid4())
