"""
Script Page Positions
=====================

A reading position is (pdf_page, half). In split (2-up) mode every PDF page
carries two script pages, left then right; otherwise the half is ignored.

Script page labels are calibrated against the production's first script
page: positions before it are front matter and labelled "i-1", "i-2", ...
"""

from dataclasses import dataclass
from typing import Tuple

from cue_sync.schemas import Half


Position = Tuple[int, Half]


def page_key(page: int, half: str, split_mode: bool) -> str:
    """Zone cache key: "12L" / "12R" in split mode, "12" otherwise."""
    if split_mode:
        return f"{page}{Half(half or 'L').value}"
    return str(page)


def next_position(page: int, half: str, total_pages: int, split_mode: bool) -> Position:
    """Advance one script page; the last page stays put."""
    if split_mode:
        if Half(half or 'L') is Half.LEFT:
            return page, Half.RIGHT
        if page >= total_pages:
            return page, Half.RIGHT
        return page + 1, Half.LEFT
    if page + 1 > total_pages:
        return page, Half.LEFT
    return page + 1, Half.LEFT


def previous_position(page: int, half: str, total_pages: int, split_mode: bool) -> Position:
    """Go back one script page; the first page stays put."""
    if split_mode:
        if Half(half or 'L') is Half.RIGHT:
            return page, Half.LEFT
        if page <= 1:
            return page, Half.LEFT
        return page - 1, Half.RIGHT
    if page - 1 < 1:
        return page, Half.LEFT
    return min(page - 1, total_pages), Half.LEFT


@dataclass(frozen=True)
class ScriptOffset:
    """
    Where the script proper begins.

    Attributes:
        start_page: PDF page holding script page 1
        start_half: Half holding script page 1 ("" when not split)
    """

    start_page: int = 1
    start_half: str = ""

    def __post_init__(self):
        if self.start_page < 1:
            raise ValueError(f"start_page must be >= 1, got {self.start_page}")
        object.__setattr__(self, 'start_half', Half(self.start_half or ""))

    @property
    def is_default(self) -> bool:
        return self.start_page == 1 and self.start_half is Half.NONE

    def badge(self) -> str:
        """Calibration hint shown next to the page number, e.g. "PDF p.3R = p.1"."""
        return f"PDF p.{self.start_page}{self.start_half.value} = p.1"


def _half_position(page: int, half: str) -> int:
    return (page - 1) * 2 + (1 if half == Half.RIGHT.value else 0)


def script_offset(page: int, half: str, offset: ScriptOffset, split_mode: bool) -> int:
    """Signed distance from script page 1 (0 on the first script page)."""
    if split_mode:
        return (
            _half_position(page, half or Half.LEFT.value)
            - _half_position(offset.start_page, offset.start_half.value or Half.LEFT.value)
        )
    return page - offset.start_page


def script_page_label(page: int, half: str, offset: ScriptOffset, split_mode: bool) -> str:
    n = script_offset(page, half, offset, split_mode)
    return f"i{n}" if n < 0 else str(n + 1)


def parse_script_label(
    label: str,
    offset: ScriptOffset,
    total_pages: int,
    split_mode: bool,
) -> Position:
    """
    Resolve a typed page label ("42", "i-1") to a clamped position.

    Raises:
        ValueError: label is not a number or "i"-prefixed number
    """
    raw = label.strip()
    try:
        n = int(raw[1:]) if raw.startswith("i") else int(raw) - 1
    except ValueError:
        raise ValueError(f"Not a script page label: {label!r}")

    if split_mode:
        target = _half_position(offset.start_page, offset.start_half.value or Half.LEFT.value) + n
        target = max(0, target)
        page = target // 2 + 1
        half = Half.LEFT if target % 2 == 0 else Half.RIGHT
    else:
        page = offset.start_page + n
        half = Half.LEFT

    return max(1, min(total_pages, page)), half
