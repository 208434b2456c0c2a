"""
Stage Columns
=============

Groups every prop into Stage Left / ON Stage / Stage Right at a page, the
data behind the run-show stage board and the props tracker view.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .model import Prop
from .status import Crossover, get_prop_status, in_warning_window


_SL_NAMES = {"SL", "STAGE LEFT"}
_ON_NAMES = {"ON", "ONSTAGE", "ON STAGE"}
_SR_NAMES = {"SR", "STAGE RIGHT"}


@dataclass(frozen=True)
class BoardItem:
    name: str
    location: str
    carrier: str = ""
    crossover: Optional[Crossover] = None
    warn: bool = False
    upcoming_enter: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'location': self.location,
            'carrier': self.carrier,
            'crossover': self.crossover.to_dict() if self.crossover else None,
            'warn': self.warn,
            'upcomingEnter': self.upcoming_enter,
        }


@dataclass
class StageColumns:
    page: int
    stage_left: List[BoardItem] = field(default_factory=list)
    on_stage: List[BoardItem] = field(default_factory=list)
    stage_right: List[BoardItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'page': self.page,
            'SL': [i.to_dict() for i in self.stage_left],
            'ON': [i.to_dict() for i in self.on_stage],
            'SR': [i.to_dict() for i in self.stage_right],
        }


def build_stage_columns(
    props: Iterable[Prop],
    page: int,
    warn_pages: int = 5,
    show_warnings: bool = False,
) -> StageColumns:
    """
    Place each prop in a column for page.

    Unknown location strings land in Stage Left.
    """
    columns = StageColumns(page=page)
    for prop in props:
        status = get_prop_status(prop, page)
        if not status.location:
            continue
        item = BoardItem(
            name=prop.name,
            location=status.location,
            carrier=status.carrier,
            crossover=status.crossover,
            warn=show_warnings and in_warning_window(status, page, warn_pages),
            upcoming_enter=status.upcoming_enter,
        )
        loc = status.location.upper()
        if loc in _ON_NAMES:
            columns.on_stage.append(item)
        elif loc in _SR_NAMES:
            columns.stage_right.append(item)
        else:
            columns.stage_left.append(item)
    return columns
