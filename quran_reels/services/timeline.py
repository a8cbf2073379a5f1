"""
Timeline Builder - derives verse display windows from measured audio durations.
"""

from dataclasses import dataclass
from typing import Sequence


# Longest fade applied to an overlay edge
MAX_FADE_SECONDS = 0.5


@dataclass(frozen=True)
class TimelineEntry:
    """Half-open [start, end) display window of one verse."""

    verse_index: int
    start_seconds: float
    end_seconds: float

    @property
    def duration_seconds(self) -> float:
        return self.end_seconds - self.start_seconds

    @property
    def fade_seconds(self) -> float:
        """Fade length for both edges, capped so it never exceeds a third of the verse."""
        return min(MAX_FADE_SECONDS, self.duration_seconds / 3)


@dataclass(frozen=True)
class Timeline:
    """Contiguous verse windows covering the whole reel."""

    entries: tuple[TimelineEntry, ...]
    total_duration: float

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, index: int) -> TimelineEntry:
        return self.entries[index]


def build_timeline(durations: Sequence[float]) -> Timeline:
    """
    Build a timeline from per-verse audio durations.

    entries[i] spans [sum(durations[:i]), sum(durations[:i+1])). Each boundary is
    computed once and shared by the adjacent entries, so consecutive windows
    meet exactly.

    Raises:
        ValueError: If durations is empty or contains a non-positive value
    """
    if not durations:
        raise ValueError("Cannot build a timeline without at least one verse")

    entries: list[TimelineEntry] = []
    cursor = 0.0

    for i, duration in enumerate(durations):
        if duration <= 0:
            raise ValueError(f"Verse {i} has non-positive duration {duration}")
        end = cursor + duration
        entries.append(TimelineEntry(verse_index=i, start_seconds=cursor, end_seconds=end))
        cursor = end

    return Timeline(entries=tuple(entries), total_duration=cursor)
