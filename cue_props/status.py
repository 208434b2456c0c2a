"""
Prop Status Engine
==================

Bounded Context: Prop Tracking (pure logic)

Computes where a prop is at a given script page and what needs to happen
before its next entrance.

Design:
- Pure functions over immutable records (no store access)
- Cues are scanned in order; the last cue whose exit page is behind the
  target page decides the resting wing
- Crossover advisories come only from structured cues

Example:
    >>> skull = Prop(id="p1", name="Skull", start="SL", cues=(
    ...     Cue(3, 3, exit_location="SR", carrier_on="Hamlet"),
    ...     Cue(10, 10, enter_location="SL", exit_location="SL", mover="Stagehand"),
    ... ))
    >>> get_prop_status(skull, 9).crossover
    Crossover(from_location='SR', to_location='SL', mover='Stagehand', cue_index=1)
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .model import DEFAULT_WING, OFF_STAGE, ON_STAGE, Cue, Prop


LEGACY_OPEN_EXIT = 9999


@dataclass(frozen=True)
class Crossover:
    """
    Offstage move needed before the next entrance.

    Attributes:
        from_location: Wing the prop is resting in
        to_location: Wing the next cue enters from
        mover: Person assigned to move it ("" when unassigned)
        cue_index: Index of the upcoming cue in prop.cues
    """
    from_location: str
    to_location: str
    mover: str
    cue_index: int

    def describe(self) -> str:
        return f"MOVE {self.from_location}→{self.to_location} by {self.mover or 'unassigned'}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from': self.from_location,
            'to': self.to_location,
            'mover': self.mover,
            'cueIndex': self.cue_index,
        }


@dataclass(frozen=True)
class PropStatus:
    """
    Status of one prop at one page.

    Attributes:
        location: "ON" or the wing it rests in
        status: "ON" or "Off Stage"
        active_cue: Cue currently on stage (None when off)
        upcoming_enter: Enter page of the next cue ahead (None when on or none)
        crossover: Advisory for the upcoming cue (None when not needed)
    """
    location: str
    status: str
    active_cue: Optional[Cue] = None
    upcoming_enter: Optional[int] = None
    crossover: Optional[Crossover] = None

    @property
    def is_on(self) -> bool:
        return self.status == ON_STAGE

    @property
    def carrier(self) -> str:
        return self.active_cue.carrier_on if self.active_cue else ""

    def pages_away(self, page: int) -> Optional[int]:
        if self.upcoming_enter is None:
            return None
        return self.upcoming_enter - page


def get_prop_status(prop: Prop, page: int) -> PropStatus:
    """
    Compute on/off state, resting wing, next entrance and crossover at page.

    A prop without cues (and without legacy arrays) stays in its start wing.
    """
    location = prop.start or DEFAULT_WING
    status = OFF_STAGE
    active_cue = None
    upcoming_enter = None
    crossover = None

    if prop.cues:
        for cue in prop.cues:
            if cue.enter_page <= page <= cue.exit_page:
                status = ON_STAGE
                location = ON_STAGE
                active_cue = cue
                break
            elif page > cue.exit_page:
                location = cue.exit_location or DEFAULT_WING
                status = OFF_STAGE

        if status != ON_STAGE:
            for i, cue in enumerate(prop.cues):
                if cue.enter_page > page:
                    upcoming_enter = cue.enter_page
                    enter_location = cue.enter_location or location
                    if enter_location != location:
                        crossover = Crossover(
                            from_location=location,
                            to_location=enter_location,
                            mover=cue.mover,
                            cue_index=i,
                        )
                    break
    else:
        for i, enter in enumerate(prop.enters):
            exit_page = prop.exits[i] if i < len(prop.exits) and prop.exits[i] else LEGACY_OPEN_EXIT
            if enter <= page <= exit_page:
                status = ON_STAGE
                location = ON_STAGE
                break
            elif page > exit_page:
                location = prop.end_location or DEFAULT_WING

        if status != ON_STAGE:
            upcoming_enter = next((p for p in prop.enters if p > page), None)

    return PropStatus(
        location=location,
        status=status,
        active_cue=active_cue,
        upcoming_enter=upcoming_enter,
        crossover=crossover,
    )


def in_warning_window(status: PropStatus, page: int, warn_pages: int) -> bool:
    """True when the next entrance is 1..warn_pages pages ahead."""
    away = status.pages_away(page)
    return away is not None and 0 < away <= warn_pages


def props_in_warning_window(
    props: Iterable[Prop],
    page: int,
    warn_pages: int,
) -> List[Tuple[Prop, PropStatus]]:
    """Props whose next entrance falls inside the warning window, soonest first."""
    hits = []
    for prop in props:
        status = get_prop_status(prop, page)
        if in_warning_window(status, page, warn_pages):
            hits.append((prop, status))
    hits.sort(key=lambda item: (item[1].upcoming_enter, item[0].name))
    return hits
