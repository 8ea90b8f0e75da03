"""Text width measurement for label backgrounds."""
from __future__ import annotations

from typing import Dict, List, Optional

from PIL import ImageFont

FONT_CANDIDATES: List[str] = [
    "DejaVuSans-Bold.ttf",
    "DejaVuSans.ttf",
    "Arial Bold.ttf",
    "Arial.ttf",
    "LiberationSans-Bold.ttf",
    "LiberationSans-Regular.ttf",
    "Helvetica.ttc",
]


class TextMeasurer:
    """Caches Pillow fonts per size and measures label widths."""

    def __init__(self, candidates: Optional[List[str]] = None) -> None:
        self._candidates = list(candidates) if candidates is not None else FONT_CANDIDATES
        self._font_cache: Dict[int, Optional["ImageFont.ImageFont"]] = {}

    def font(self, size: float) -> Optional["ImageFont.ImageFont"]:
        key_size = max(1, int(round(size)))
        if key_size in self._font_cache:
            return self._font_cache[key_size]

        font: Optional["ImageFont.ImageFont"] = None
        for candidate in self._candidates:
            try:
                font = ImageFont.truetype(candidate, key_size)
                break
            except OSError:
                continue
        if font is None:
            try:
                font = ImageFont.load_default(key_size)
            except (OSError, TypeError, ValueError):
                font = None

        self._font_cache[key_size] = font
        return font

    def measure(self, text: str, size: float) -> float:
        font = self.font(size)
        if font is None:
            return heuristic_width(text, size)
        try:
            length = font.getlength(text)
        except AttributeError:
            length = font.getbbox(text)[2]
        return float(length)


def heuristic_width(text: str, font_size: float) -> float:
    width = 0.0
    for ch in text:
        if ch.isspace():
            width += font_size * 0.33
        elif ch in "il":
            width += font_size * 0.3
        elif ch in "mwMW@#":
            width += font_size * 0.9
        else:
            width += font_size * 0.6
    return width


TEXT_MEASURER = TextMeasurer()
