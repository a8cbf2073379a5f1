"""
Exceptions raised by the reel composition pipeline.

Every fatal condition carries a machine-readable code so the HTTP layer and
the job result can report it without inspecting exception types.
"""

from typing import Optional


class ReelError(Exception):
    """Base exception for all reel generation errors."""

    code: str = "REEL_ERROR"
    status_code: int = 500
    message: str = "Reel generation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.__class__.message
        super().__init__(self.message)


class AudioUnavailable(ReelError):
    """Verse audio could not be taken from cache, downloaded, or recovered locally."""

    code = "AUDIO_UNAVAILABLE"
    status_code = 502

    def __init__(self, surah: int, verse: int, reason: Optional[str] = None):
        self.surah = surah
        self.verse = verse
        message = f"Audio unavailable for surah {surah}, verse {verse}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class BackgroundUnavailable(ReelError):
    """No custom background was supplied and every remote source failed."""

    code = "BACKGROUND_UNAVAILABLE"
    status_code = 502
    message = "No background could be resolved: all remote background sources failed"


class BackgroundProcessingFailed(ReelError):
    """The background asset exists but could not be normalized into a clip."""

    code = "BACKGROUND_PROCESSING_FAILED"
    message = "Background could not be processed"


class FontLoadFailed(ReelError):
    """A font could not be loaded. Absorbed by the overlay font fallback chain."""

    code = "FONT_LOAD_FAILED"

    def __init__(self, font_path: str, reason: Optional[str] = None):
        self.font_path = font_path
        message = f"Failed to load font {font_path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class EncodeFailure(ReelError):
    """ffmpeg (or ffprobe) exited with an error. Diagnostics keep its stderr."""

    code = "ENCODE_FAILURE"

    def __init__(self, message: str, diagnostics: str = ""):
        self.diagnostics = diagnostics
        super().__init__(message)


class VerseTextUnavailable(ReelError):
    """The verse text service could not be reached or returned an unusable payload."""

    code = "VERSE_TEXT_UNAVAILABLE"
    status_code = 502
    message = "Verse text could not be fetched"
