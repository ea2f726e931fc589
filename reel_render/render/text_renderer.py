"""Text card rendering for labelled segments.

Features:
- Label sanitising (markup, attribute-like tokens, ``broll:`` prefix)
- Centred, boxed white text rasterised to a transparent PNG with Pillow
- Font lookup over a list of candidate paths
"""

import logging
import re
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from reel_render.config import get_settings
from reel_render.exceptions import TextRenderError

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_ATTR_RE = re.compile(r"""\b[\w:-]+\s*=\s*(?:"[^"]*"|'[^']*'|\S+)""")
_PREFIX_RE = re.compile(r"^\s*broll:", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")


def sanitize_label(text: str | None, fallback: str, max_chars: int = 60) -> str:
    """Make arbitrary user text safe to draw.

    Strips angle-bracket markup (and stray brackets), ``key=value`` tokens
    and the ``broll:`` marker, collapses whitespace and caps the length.
    Empty results become ``fallback``.
    """
    if not text:
        return fallback
    cleaned = _PREFIX_RE.sub("", text)
    cleaned = _TAG_RE.sub(" ", cleaned)
    cleaned = _ATTR_RE.sub(" ", cleaned)
    cleaned = cleaned.replace("<", " ").replace(">", " ")
    cleaned = _WS_RE.sub(" ", cleaned).strip()
    cleaned = cleaned[:max_chars].strip()
    return cleaned or fallback


class TextCardRenderer:
    """Rasterise a label into a boxed, centred text PNG."""

    BOX_RGBA = (0, 0, 0, 136)  # 0x00000088
    TEXT_RGBA = (255, 255, 255, 255)
    PADDING = 16
    LINE_HEIGHT = 1.3

    def __init__(
        self,
        font_candidates: list[str] | None = None,
        font_size: int | None = None,
    ):
        settings = get_settings()
        self.font_candidates = font_candidates if font_candidates is not None else settings.font_candidates
        self.font_size = font_size or settings.text_font_size

    def load_font(self) -> ImageFont.FreeTypeFont:
        """Load the first usable candidate font.

        Raises:
            TextRenderError: if no candidate can be opened
        """
        for candidate_path in self.font_candidates:
            try:
                font = ImageFont.truetype(candidate_path, self.font_size)
                logger.debug(f"[TEXT] Loaded font: {candidate_path}")
                return font
            except OSError:
                continue
        raise TextRenderError(f"No usable font among {len(self.font_candidates)} candidates")

    def _wrap(self, text: str, font: ImageFont.FreeTypeFont, max_width: int) -> list[str]:
        words = text.split(" ")
        lines: list[str] = []
        current = ""
        for word in words:
            probe = f"{current} {word}".strip()
            bbox = font.getbbox(probe)
            if current and bbox[2] - bbox[0] > max_width:
                lines.append(current)
                current = word
            else:
                current = probe
        if current:
            lines.append(current)
        return lines or [text]

    def render(self, text: str, output_path: Path, max_width: int) -> Path:
        """Render ``text`` to ``output_path`` (PNG with alpha).

        Raises:
            TextRenderError: font unavailable or drawing failed
        """
        font = self.load_font()
        try:
            lines = self._wrap(text, font, max(1, max_width - self.PADDING * 2))
            line_height_px = int(self.font_size * self.LINE_HEIGHT)

            widths = []
            for line in lines:
                bbox = font.getbbox(line or " ")
                widths.append(bbox[2] - bbox[0])

            img_width = max(widths) + self.PADDING * 2
            img_height = line_height_px * len(lines) + self.PADDING * 2

            img = Image.new("RGBA", (int(img_width), int(img_height)), (0, 0, 0, 0))
            draw = ImageDraw.Draw(img)
            draw.rectangle([(0, 0), (img_width - 1, img_height - 1)], fill=self.BOX_RGBA)

            y_offset = self.PADDING
            for line, line_width in zip(lines, widths):
                x_offset = (img_width - line_width) / 2
                draw.text((x_offset, y_offset), line, font=font, fill=self.TEXT_RGBA)
                y_offset += line_height_px

            img.save(output_path, "PNG")
        except (OSError, ValueError) as e:
            raise TextRenderError(f"Failed to generate text image: {e}") from e

        logger.debug(f"[TEXT] Generated PNG: {output_path} ({img.size[0]}x{img.size[1]})")
        return output_path
