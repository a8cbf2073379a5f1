"""
Text Shaper - turns logical right-to-left verse text into display-ready lines.

Arabic letters are reshaped into their contextual presentation forms and the
result is bidi-reordered into visual order, so a left-to-right rasterizer draws
them correctly. Wrapping measures the shaped form of every candidate line,
because reshaping changes glyph widths.
"""

import logging
from typing import Callable

import arabic_reshaper
from bidi.algorithm import get_display

logger = logging.getLogger(__name__)


# Separator placed between verses when several are laid out together
PARAGRAPH_SEPARATOR = "\n\n"


def shape_text(text: str) -> str:
    """Reshape Arabic letters and reorder to visual (display) order."""
    reshaped = arabic_reshaper.reshape(text)
    return get_display(reshaped)


class TextShaper:
    """
    Width-aware line breaking for right-to-left text.

    Args:
        measure: Returns the rendered pixel width of an already shaped string
    """

    def __init__(self, measure: Callable[[str], float]):
        self.measure = measure

    def wrap(self, text: str, max_width: float) -> list[str]:
        """
        Greedy word wrap in logical order.

        Each candidate "current + ' ' + word" is shaped and measured on its own.
        When the candidate is wider than max_width the current line is committed
        and the word starts a new line. A single word wider than max_width stays
        on its own line.

        Returns:
            Logical (unshaped) lines
        """
        words = text.split()
        if not words:
            return []

        lines: list[str] = []
        current = words[0]

        for word in words[1:]:
            candidate = f"{current} {word}"
            if self.measure(shape_text(candidate)) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate

        lines.append(current)
        return lines

    def wrap_paragraphs(self, text: str, max_width: float) -> list[str]:
        """
        Wrap blank-line separated paragraphs, keeping one empty line between them.

        The separator after the last paragraph is dropped.
        """
        all_lines: list[str] = []

        for paragraph in text.split(PARAGRAPH_SEPARATOR):
            wrapped = self.wrap(paragraph.strip(), max_width)
            if not wrapped:
                continue
            all_lines.extend(wrapped)
            all_lines.append("")  # Spacer between verses

        if all_lines and all_lines[-1] == "":
            all_lines.pop()

        return all_lines

    def layout(self, text: str, max_width: float) -> list[str]:
        """
        Display-ready lines for text: wrapped, then shaped line by line.

        Empty spacer lines are kept as "" so the renderer reserves their height.
        """
        return [shape_text(line) if line else "" for line in self.wrap_paragraphs(text, max_width)]
