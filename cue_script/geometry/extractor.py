"""
Zone Extractor Module
=====================

Stateless script-page analysis - turns PDF text runs into click zones.

Pipeline:
1. map_runs: PDF user space -> canvas pixels (split-mode half filtering)
2. group_lines: cluster runs into lines on their vertical center
3. detect_character_names: heading lines by shape and column position
4. merge_dialogue: consecutive dialogue lines merged into one block
5. fallback_zones: evenly spaced synthetic rows when the page has no text

Design:
- All methods are static (no instance state)
- extract() never raises; failures degrade to the fallback layout
- numpy for the height median and column-position modes
"""

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

import numpy as np

from cue_sync.logging import LogEvent, StructuredLogger
from cue_sync.schemas import Half
from cue_script.geometry.shapes import LineRun, PageGeometry, ScriptZone, TextLine, TextRun


# Runs needed before text analysis is attempted
MIN_TEXT_RUNS = 3

# Vertical clustering distance, px at scale 1.0
LINE_THRESHOLD_PX = 8

# Clusters narrower than this (px) are noise
MIN_LINE_WIDTH_PX = 4

# Fallback line pitch, px at scale 1.4
FALLBACK_PITCH_PX = 40

NAME_MAX_LENGTH = 50
NAME_MAX_WIDTH_PCT = 62
NAME_MIN_HEIGHT_RATIO = 0.65
NAME_BUCKET_SIZE = 4
NAME_TOLERANCE_PCT = 8
NAME_STRICT_TOLERANCE_PCT = 4
NAME_MAX_SHARE = 0.4

_ITALIC_FONT = re.compile(r"italic|oblique|[-,_]it[-,_A-Z]", re.IGNORECASE)
_NAME_IGNORED = re.compile(r"[&'\-.!?,\s\d]")
_UPPER_ONLY = re.compile(r"^[A-Z]+$")
_LOWER = re.compile(r"[a-z]")
_LETTERS = re.compile(r"[a-zA-Z]")


@dataclass
class _Cluster:
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    runs: List[LineRun] = field(default_factory=list)

    @property
    def center_y(self) -> float:
        return (self.min_y + self.max_y) / 2

    def add(self, run: LineRun) -> None:
        self.runs.append(run)
        self.min_x = min(self.min_x, run.x)
        self.max_x = max(self.max_x, run.x + run.w)
        self.min_y = min(self.min_y, run.top)
        self.max_y = max(self.max_y, run.bottom)


def _mode_bucket(values: Sequence[float], size: float) -> float:
    """Most common round-half-up bucket; ties resolve to the smallest."""
    buckets = np.floor(np.asarray(values, dtype=float) / size + 0.5) * size
    unique, counts = np.unique(buckets, return_counts=True)
    return float(unique[int(np.argmax(counts))])


class ZoneExtractor:
    """
    Stateless extractor for script-page zones.

    Design Philosophy:
    - All methods are static (no instance state)
    - Each pipeline stage callable on its own (testable in isolation)
    - Output in percent of the (half-)page, top to bottom
    """

    @staticmethod
    def extract(
        runs: Sequence[TextRun],
        geometry: PageGeometry,
        logger: Optional[StructuredLogger] = None,
    ) -> List[ScriptZone]:
        """
        Run the full pipeline for one page (or one half in split mode).

        Args:
            runs: Text runs of the whole PDF page
            geometry: Rendered viewport and split-mode half

        Returns:
            Zones in percent space. Pages with fewer than three non-blank
            runs get the synthetic fallback layout.
        """
        usable = [r for r in runs if not r.is_blank]
        if len(usable) < MIN_TEXT_RUNS:
            if logger:
                logger.info(
                    LogEvent.ZONE_EXTRACTION_FALLBACK,
                    "Too little text for line analysis, using synthetic rows",
                    metadata={'runs': len(usable), 'half': geometry.half.value},
                )
            return ZoneExtractor.fallback_zones(geometry)

        try:
            mapped = ZoneExtractor.map_runs(usable, geometry)
            lines = ZoneExtractor.group_lines(mapped, geometry)
            names = ZoneExtractor.detect_character_names(lines)
            zones = ZoneExtractor.merge_dialogue(lines, names)
        except Exception as e:
            if logger:
                logger.warning(
                    LogEvent.ZONE_EXTRACTION_FALLBACK,
                    f"Zone extraction failed, using synthetic rows: {e}",
                    metadata={'runs': len(usable), 'half': geometry.half.value},
                )
            return ZoneExtractor.fallback_zones(geometry)

        if logger:
            logger.debug(
                LogEvent.ZONE_EXTRACTED,
                "Extracted script zones",
                metadata={
                    'runs': len(usable),
                    'lines': len(lines),
                    'names': len(names),
                    'zones': len(zones),
                    'half': geometry.half.value,
                },
            )
        return zones

    @staticmethod
    def map_runs(runs: Sequence[TextRun], geometry: PageGeometry) -> List[LineRun]:
        """
        Map runs to canvas pixels (top-left origin).

        In split mode only runs whose left edge falls in the requested half
        are kept, and right-half runs are shifted so the half starts at x=0.
        """
        scale = geometry.scale
        half_w = geometry.half_width
        mapped = []
        for run in runs:
            _, _, _, d, e, f = run.transform
            x = e * scale
            if geometry.half is Half.LEFT and x >= half_w:
                continue
            if geometry.half is Half.RIGHT:
                if x < half_w:
                    continue
                x -= half_w
            mapped.append(LineRun(
                x=x,
                baseline=geometry.height - f * scale,
                w=run.width * scale,
                h=abs(d) * scale,
                text=run.text,
                font_name=run.font_name,
            ))
        return mapped

    @staticmethod
    def group_lines(mapped: Sequence[LineRun], geometry: PageGeometry) -> List[TextLine]:
        """
        Cluster runs into lines.

        A run joins the first cluster whose vertical center is closer than
        8px * scale to its own; cluster bounds grow with every run.
        """
        threshold = LINE_THRESHOLD_PX * geometry.scale
        clusters: List[_Cluster] = []

        for run in sorted(mapped, key=lambda r: r.baseline):
            for cluster in clusters:
                if abs(run.center_y - cluster.center_y) < threshold:
                    cluster.add(run)
                    break
            else:
                cluster = _Cluster(
                    min_x=run.x, max_x=run.x + run.w, min_y=run.top, max_y=run.bottom,
                )
                cluster.runs.append(run)
                clusters.append(cluster)

        canvas_w = geometry.canvas_width
        canvas_h = geometry.height
        lines = []
        for cluster in clusters:
            if cluster.max_x - cluster.min_x < MIN_LINE_WIDTH_PX:
                continue

            ordered = sorted(cluster.runs, key=lambda r: r.x)
            text = " ".join(r.text for r in ordered)
            fonts = " ".join(r.font_name for r in ordered)
            letters = _LETTERS.findall(text)

            lines.append(TextLine(
                x=max(0.0, cluster.min_x / canvas_w * 100),
                y=max(0.0, cluster.min_y / canvas_h * 100),
                w=min(100.0, (cluster.max_x - cluster.min_x) / canvas_w * 100),
                h=max(1.2, min(10.0, (cluster.max_y - cluster.min_y) / canvas_h * 100)),
                text=text,
                avg_h=float(np.mean([r.h for r in ordered])),
                center_x=(cluster.min_x + cluster.max_x) / 2 / canvas_w * 100,
                left_x=cluster.min_x / canvas_w * 100,
                is_italic=bool(_ITALIC_FONT.search(fonts)),
                is_all_caps=len(letters) > 2 and all(c.isupper() for c in letters),
            ))

        lines.sort(key=lambda line: line.y)
        return lines

    @staticmethod
    def median_height(lines: Sequence[TextLine]) -> float:
        heights = np.sort(np.array([l.avg_h for l in lines if l.avg_h > 0], dtype=float))
        if heights.size == 0:
            return 0.0
        return float(heights[heights.size // 2])

    @staticmethod
    def is_name_candidate(line: TextLine, median_h: float) -> bool:
        """Shape test for a character-name heading (column position not checked)."""
        text = line.text.strip()
        if not text or len(text) > NAME_MAX_LENGTH:
            return False
        if text.startswith("(") and text.endswith(")"):
            return False
        if line.is_italic:
            return False
        if _LOWER.search(text) and len(text.split()) > 4:
            return False
        stripped = _NAME_IGNORED.sub("", text)
        if not stripped or not _UPPER_ONLY.match(stripped):
            return False
        if line.w > NAME_MAX_WIDTH_PCT:
            return False
        if median_h > 0 and (line.avg_h or median_h) < median_h * NAME_MIN_HEIGHT_RATIO:
            return False
        return True

    @staticmethod
    def detect_character_names(lines: Sequence[TextLine]) -> Set[int]:
        """
        Indices of lines that are character-name headings.

        Candidates must sit in the dominant name column: within 8% of the
        modal left edge or modal center. When that accepts more than 40% of
        all lines the page is not screenplay-shaped and the test repeats at 4%.
        """
        median_h = ZoneExtractor.median_height(lines)
        candidates = [
            (idx, line) for idx, line in enumerate(lines)
            if ZoneExtractor.is_name_candidate(line, median_h)
        ]
        if not candidates:
            return set()

        modal_left = _mode_bucket([l.left_x for _, l in candidates], NAME_BUCKET_SIZE)
        modal_center = _mode_bucket([l.center_x for _, l in candidates], NAME_BUCKET_SIZE)

        def in_column(tolerance: float) -> Set[int]:
            return {
                idx for idx, line in candidates
                if abs(line.left_x - modal_left) <= tolerance
                or abs(line.center_x - modal_center) <= tolerance
            }

        names = in_column(NAME_TOLERANCE_PCT)
        if len(names) > len(lines) * NAME_MAX_SHARE:
            names = in_column(NAME_STRICT_TOLERANCE_PCT)
        return names

    @staticmethod
    def merge_dialogue(lines: Sequence[TextLine], names: Set[int]) -> List[ScriptZone]:
        """
        Build zones: names, stage directions and all-caps lines stand alone;
        runs of other lines merge into one dialogue block.
        """
        zones: List[ScriptZone] = []
        block = None

        def flush():
            nonlocal block
            if block is not None:
                zones.append(ScriptZone(
                    x=block[0], y=block[1], w=block[2] - block[0], h=block[3] - block[1],
                    text=block[4],
                ))
                block = None

        for idx, line in enumerate(lines):
            if idx in names:
                flush()
                zones.append(ScriptZone(line.x, line.y, line.w, line.h, line.text, is_char_name=True))
            elif line.is_italic:
                flush()
                zones.append(ScriptZone(line.x, line.y, line.w, line.h, line.text, is_stage_direction=True))
            elif line.is_all_caps:
                flush()
                zones.append(ScriptZone(line.x, line.y, line.w, line.h, line.text))
            elif block is None:
                # [left, top, right, bottom, text]
                block = [line.x, line.y, line.x + line.w, line.y + line.h, line.text]
            else:
                block[0] = min(block[0], line.x)
                block[1] = min(block[1], line.y)
                block[2] = max(block[2], line.x + line.w)
                block[3] = max(block[3], line.y + line.h)
                extra = line.text.strip()
                if extra:
                    block[4] = f"{block[4]} {extra}" if block[4] else extra
        flush()
        return zones

    @staticmethod
    def fallback_zones(geometry: PageGeometry) -> List[ScriptZone]:
        """Evenly spaced full-width rows for pages without usable text."""
        pitch = FALLBACK_PITCH_PX * (geometry.scale / 1.4)
        if geometry.height:
            count = max(10, math.floor(geometry.height / pitch))
        else:
            count = 30
        spacing = 90 / count
        height = max(1.5, spacing * 0.85)
        return [
            ScriptZone(x=5, y=5 + i * spacing, w=85, h=height)
            for i in range(count)
        ]
