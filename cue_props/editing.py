"""
Cue Editing Helpers
===================

Form-input validation for props and cues before they reach the store.

Design:
- validate_cue turns raw field values into a Cue or raises CueValidationError
- build_prop fills blank enter wings from the previous cue's exit wing (the
  start wing for the first cue) and derives the end location
- Names are sanitized (control characters stripped, trimmed, capped)
"""

import dataclasses
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .model import DEFAULT_WING, Cue, CueValidationError, Prop, Wing


MAX_NAME_LENGTH = 200

_CONTROL_CHARS = re.compile(r"[\x00-\x1f]")


def sanitize_name(value: Any) -> str:
    if not value:
        return ""
    return _CONTROL_CHARS.sub("", str(value)).strip()[:MAX_NAME_LENGTH]


def _to_page(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def validate_cue(fields: Dict[str, Any], index: int = 0) -> Cue:
    """
    Build a Cue from raw form fields (camelCase keys, pages may be strings).

    Raises:
        CueValidationError: missing pages or exit before enter; the message
            names the 1-based cue number
    """
    enter_page = _to_page(fields.get('enterPage'))
    exit_page = _to_page(fields.get('exitPage'))
    if enter_page < 1 or exit_page < 1:
        raise CueValidationError(f"Cue #{index + 1}: enter and exit pages required.")
    if exit_page < enter_page:
        raise CueValidationError(f"Cue #{index + 1}: exit must be >= enter.")

    return Cue(
        enter_page=enter_page,
        exit_page=exit_page,
        enter_location=fields.get('enterLocation') or '',
        exit_location=fields.get('exitLocation') or DEFAULT_WING,
        carrier_on=sanitize_name(fields.get('carrierOn')),
        carrier_off=sanitize_name(fields.get('carrierOff')),
        mover=sanitize_name(fields.get('mover')),
        carrier_on_cast_id=fields.get('carrierOnCastId') or '',
        carrier_off_cast_id=fields.get('carrierOffCastId') or '',
        mover_cast_id=fields.get('moverCastId') or '',
    )


def fill_enter_locations(start: str, cues: Sequence[Cue]) -> List[Cue]:
    """Default each blank enter wing to where the prop was left before it."""
    filled = []
    previous_exit = start
    for cue in cues:
        if not cue.enter_location:
            cue = dataclasses.replace(cue, enter_location=previous_exit)
        filled.append(cue)
        previous_exit = cue.exit_location or DEFAULT_WING
    return filled


def sort_cues(cues: Iterable[Cue]) -> List[Cue]:
    return sorted(cues, key=lambda c: (c.enter_page, c.exit_page))


def build_prop(
    name: Any,
    start: str,
    cue_rows: Sequence[Dict[str, Any]],
    prop_id: str = "",
    created_at: Optional[float] = None,
) -> Prop:
    """
    Validate a prop form (name, start wing, cue rows) into a Prop.

    Zero cues are allowed; such a prop rests in its start wing all show.
    """
    clean_name = sanitize_name(name)
    if not clean_name:
        raise CueValidationError("Prop name is required.")
    if start not in (Wing.SL.value, Wing.SR.value):
        raise CueValidationError("Start must be SL or SR.")

    cues = [validate_cue(row, i) for i, row in enumerate(cue_rows)]
    cues = fill_enter_locations(start, cues)

    return Prop(
        id=prop_id,
        name=clean_name,
        start=start,
        cues=tuple(cues),
        enters=tuple(c.enter_page for c in cues),
        exits=tuple(c.exit_page for c in cues),
        end_location=cues[-1].exit_location if cues else start,
        created_at=created_at,
    )
