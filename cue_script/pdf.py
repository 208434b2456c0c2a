"""
PDF Script Adapter
==================

Reads script pages with pdfplumber and feeds them to the ZoneExtractor.

Words are extracted with keep_blank_chars so that a run of words set in the
same font stays one text run, as in a PDF text layer.
"""

from typing import Any, Callable, List, Optional

import pdfplumber

from cue_sync.logging import StructuredLogger
from cue_sync.schemas import Half
from cue_script.geometry import DEFAULT_SCALE, PageGeometry, ScriptZone, TextRun, ZoneExtractor


class PdfScript:
    """
    Open script PDF.

    Usage:
        with PdfScript("hamlet.pdf") as script:
            zones = script.extract_page(3, half="L")
    """

    def __init__(
        self,
        path: str,
        pdf_open: Callable[..., Any] = pdfplumber.open,
        logger: Optional[StructuredLogger] = None,
    ):
        self.path = path
        self.logger = logger
        self._pdf = pdf_open(path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        self._pdf.close()

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    def _page(self, page_number: int):
        if page_number < 1 or page_number > self.page_count:
            raise ValueError(f"Page {page_number} out of range 1..{self.page_count}")
        return self._pdf.pages[page_number - 1]

    def text_runs(self, page_number: int) -> List[TextRun]:
        """Text runs of a 1-based page, baseline origin in PDF user space."""
        page = self._page(page_number)
        words = page.extract_words(keep_blank_chars=True, extra_attrs=["fontname", "size"])
        return [
            TextRun.from_box(
                text=w['text'],
                x0=float(w['x0']),
                top=float(w['top']),
                x1=float(w['x1']),
                bottom=float(w['bottom']),
                page_height=float(page.height),
                font_name=w.get('fontname', ''),
                size=w.get('size'),
            )
            for w in words
        ]

    def geometry(self, page_number: int, scale: float = DEFAULT_SCALE, half: Optional[str] = None) -> PageGeometry:
        page = self._page(page_number)
        return PageGeometry.from_points(
            float(page.width), float(page.height), scale=scale, half=Half(half or ""),
        )

    def extract_page(
        self,
        page_number: int,
        half: Optional[str] = None,
        scale: float = DEFAULT_SCALE,
    ) -> List[ScriptZone]:
        return ZoneExtractor.extract(
            self.text_runs(page_number),
            self.geometry(page_number, scale=scale, half=half),
            logger=self.logger,
        )
