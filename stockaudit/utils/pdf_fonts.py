"""Unicode font registration for ReportLab audit reports."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

FONT_NAME: str = "AuditUnicode"
FONT_CANDIDATES: tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
    "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
    r"C:\\Windows\\Fonts\\arial.ttf",
)

_FALLBACK_WARNING_EMITTED = False


def find_unicode_ttf() -> str | None:
    for candidate in FONT_CANDIDATES:
        if Path(candidate).exists():
            return candidate
    return None


def register_pdf_font() -> str:
    """Register a Unicode font for ReportLab and return the font name to use."""
    global _FALLBACK_WARNING_EMITTED

    font_path = find_unicode_ttf()
    if font_path:
        from reportlab.pdfbase import pdfmetrics
        from reportlab.pdfbase.ttfonts import TTFont

        if FONT_NAME not in set(pdfmetrics.getRegisteredFontNames()):
            pdfmetrics.registerFont(TTFont(FONT_NAME, font_path))
        return FONT_NAME

    if not _FALLBACK_WARNING_EMITTED:
        logger.warning("No Unicode TTF font found; item names with accents may render incorrectly.")
        _FALLBACK_WARNING_EMITTED = True
    return "Helvetica"
