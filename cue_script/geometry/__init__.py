"""
Geometry Layer
==============

Bounded Context: Script-page text geometry and zone extraction.

Responsibilities:
- Text run and zone representation (immutable)
- Line clustering and character-name detection
- NO storage, NO PDF I/O

Design Philosophy:
- Pure functions where possible
- Immutable data structures
- Fail-fast validation on records, graceful fallback in extraction
"""

from cue_script.geometry.shapes import (
    DEFAULT_SCALE,
    LineRun,
    PageGeometry,
    ScriptZone,
    TextLine,
    TextRun,
    zones_to_list,
)
from cue_script.geometry.extractor import ZoneExtractor

__all__ = [
    "DEFAULT_SCALE",
    "LineRun",
    "PageGeometry",
    "ScriptZone",
    "TextLine",
    "TextRun",
    "zones_to_list",
    "ZoneExtractor",
]
