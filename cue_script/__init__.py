"""
Cue Script
==========

Bounded Context: Script pages as click targets.

Architecture:

    cue_script/
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   ├── shapes.py      # TextRun, PageGeometry, TextLine, ScriptZone
    │   └── extractor.py   # ZoneExtractor (text runs -> zones)
    │
    ├── pdf.py             # PdfScript (pdfplumber adapter)
    ├── pages.py           # Page keys, split-mode navigation, script labels
    └── registry.py        # PageZoneRegistry (stored + curated zones)

Usage:

    from cue_script import PdfScript, PageZoneRegistry

    with PdfScript("hamlet.pdf") as script:
        registry = PageZoneRegistry(repo, uid="u1", split_mode=False)
        zones = registry.get_or_extract(
            3, "", lambda page, half: script.extract_page(page, half),
        )

    for zone in zones:
        if zone.is_char_name:
            print("name:", zone.text)
"""

from cue_script.geometry import (
    DEFAULT_SCALE,
    LineRun,
    PageGeometry,
    ScriptZone,
    TextLine,
    TextRun,
    ZoneExtractor,
    zones_to_list,
)
from cue_script.pages import (
    ScriptOffset,
    next_position,
    page_key,
    parse_script_label,
    previous_position,
    script_offset,
    script_page_label,
)
from cue_script.pdf import PdfScript
from cue_script.registry import PageZoneRegistry

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_SCALE",
    "LineRun",
    "PageGeometry",
    "ScriptZone",
    "TextLine",
    "TextRun",
    "ZoneExtractor",
    "zones_to_list",
    "ScriptOffset",
    "next_position",
    "page_key",
    "parse_script_label",
    "previous_position",
    "script_offset",
    "script_page_label",
    "PdfScript",
    "PageZoneRegistry",
]
