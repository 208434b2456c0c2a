"""
Script Geometry Module
======================

Pure page-geometry records - NO state, NO side effects.

Coordinate spaces:
- PDF user space: points, origin bottom-left (TextRun.transform)
- Canvas space: pixels at the render scale, origin top-left (LineRun)
- Percent space: 0-100 of the (half-)page width/height (TextLine, ScriptZone)

Design:
- Immutable records (frozen dataclass pattern)
- Validation in __post_init__ (fail fast)
- ScriptZone serializes with the persisted camelCase flag keys
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from cue_sync.schemas import Half


DEFAULT_SCALE = 1.4


@dataclass(frozen=True)
class TextRun:
    """
    One positioned text item from a PDF page text layer.

    Attributes:
        text: String content
        transform: Text matrix [a, b, c, d, e, f]; (e, f) is the baseline
                   origin in PDF points, |d| the glyph height
        width: Advance width in PDF points
        font_name: Font resource name (used for italic detection)
    """

    text: str
    transform: Tuple[float, float, float, float, float, float]
    width: float
    font_name: str = ""

    def __post_init__(self):
        if len(self.transform) != 6:
            raise ValueError(f"transform must have 6 elements, got {len(self.transform)}")
        if self.width < 0:
            raise ValueError(f"width must be >= 0, got {self.width}")

    @classmethod
    def from_box(
        cls,
        text: str,
        x0: float,
        top: float,
        x1: float,
        bottom: float,
        page_height: float,
        font_name: str = "",
        size: Optional[float] = None,
    ) -> 'TextRun':
        """
        Build a run from a top-down bounding box (pdfplumber word layout).

        The box bottom is taken as the baseline; size defaults to box height.
        """
        height = size if size else bottom - top
        return cls(
            text=text,
            transform=(height, 0.0, 0.0, height, x0, page_height - bottom),
            width=x1 - x0,
            font_name=font_name,
        )

    @property
    def is_blank(self) -> bool:
        return not self.text or not self.text.strip()


@dataclass(frozen=True)
class PageGeometry:
    """
    Rendered page viewport.

    Attributes:
        width: Viewport width in pixels (full page, at scale)
        height: Viewport height in pixels (at scale); 0 when unknown
        scale: Render scale (PDF points -> pixels)
        half: Split-mode half being extracted ("" for the full page)
    """

    width: float
    height: float
    scale: float = DEFAULT_SCALE
    half: Half = Half.NONE

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Page dimensions must be >= 0, got {self.width}x{self.height}")
        if self.scale <= 0:
            raise ValueError(f"scale must be > 0, got {self.scale}")
        if not isinstance(self.half, Half):
            object.__setattr__(self, 'half', Half(self.half or ""))

    @classmethod
    def from_points(
        cls,
        width_pt: float,
        height_pt: float,
        scale: float = DEFAULT_SCALE,
        half: Half = Half.NONE,
    ) -> 'PageGeometry':
        return cls(width=width_pt * scale, height=height_pt * scale, scale=scale, half=half)

    @property
    def split(self) -> bool:
        return self.half is not Half.NONE

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def canvas_width(self) -> float:
        """Width of the area zones are expressed against."""
        return self.half_width if self.split else self.width


@dataclass(frozen=True)
class LineRun:
    """
    Text run in canvas pixels.

    Attributes:
        x: Left edge
        baseline: Baseline y (top-down)
        w: Width
        h: Glyph height
        text: String content
        font_name: Font resource name
    """

    x: float
    baseline: float
    w: float
    h: float
    text: str
    font_name: str = ""

    @property
    def top(self) -> float:
        return self.baseline - self.h

    @property
    def bottom(self) -> float:
        return self.baseline + self.h * 0.1

    @property
    def center_y(self) -> float:
        return (self.top + self.bottom) / 2


@dataclass(frozen=True)
class TextLine:
    """
    One clustered line of text in percent space.

    Attributes:
        x, y, w, h: Percent box (clamped: x,y >= 0, w <= 100, 1.2 <= h <= 10)
        text: Runs joined left to right with single spaces
        avg_h: Mean glyph height in pixels
        center_x: Horizontal center (percent)
        left_x: Left edge (percent, unclamped)
        is_italic: Any run uses an italic/oblique font
        is_all_caps: More than two letters, all upper case
    """

    x: float
    y: float
    w: float
    h: float
    text: str
    avg_h: float
    center_x: float
    left_x: float
    is_italic: bool = False
    is_all_caps: bool = False


@dataclass(frozen=True)
class ScriptZone:
    """
    Click-target region on a script page.

    Attributes:
        x, y, w, h: Percent box
        text: Text inside the zone ("" for synthetic or hand-drawn zones)
        is_char_name: Line is a character-name heading
        is_stage_direction: Line is an (italic) stage direction

    Invariants:
        - w >= 0, h >= 0
        - not (is_char_name and is_stage_direction)
    """

    x: float
    y: float
    w: float
    h: float
    text: str = ""
    is_char_name: bool = False
    is_stage_direction: bool = False

    def __post_init__(self):
        if self.w < 0 or self.h < 0:
            raise ValueError(f"Zone size must be >= 0, got w={self.w}, h={self.h}")
        if self.is_char_name and self.is_stage_direction:
            raise ValueError("Zone cannot be both a character name and a stage direction")

    @property
    def is_dialogue(self) -> bool:
        return not self.is_char_name and not self.is_stage_direction

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'x': self.x,
            'y': self.y,
            'w': self.w,
            'h': self.h,
            'text': self.text,
        }
        if self.is_char_name:
            data['isCharName'] = True
        if self.is_stage_direction:
            data['isStageDirection'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScriptZone':
        try:
            return cls(
                x=float(data['x']),
                y=float(data['y']),
                w=float(data['w']),
                h=float(data['h']),
                text=data.get('text') or '',
                is_char_name=bool(data.get('isCharName', False)),
                is_stage_direction=bool(data.get('isStageDirection', False)),
            )
        except KeyError as e:
            raise ValueError(f"Missing required ScriptZone field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid ScriptZone data: {e}")


def zones_to_list(zones: Sequence[ScriptZone]):
    return [z.to_dict() for z in zones]
