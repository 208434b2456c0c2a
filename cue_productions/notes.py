"""
Line Notes and Prop Notes
=========================

Bounded Context: Productions (annotation)

A line note records how an actor's delivery departed from the script: a
skipped line, a paraphrase, a called line, added words, or a general note.
Notes taken on the script view are anchored to a zone (index plus the box at
the time); notes taken during a run are free-standing and carry the session
id.

Design:
- Notes need a cast to attribute them to; an empty roster is a missing
  prerequisite, not a validation error
- Authors may delete their own notes; owners may delete any note
- Prop notes are one document per prop name, overwritten on save

Example:
    >>> note = create_line_note(repo, uid="sm1", cast_id=hamlet.id,
    ...                         character_name="HAMLET", note_type="para",
    ...                         page=12, zone_idx=3, bounds={'x': 10, 'y': 20, 'w': 60, 'h': 4})
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from cue_sync.errors import MissingPrerequisiteError, PermissionDeniedError, SchemaValidationError
from cue_sync.logging import LogEvent, StructuredLogger, create_logger
from cue_sync.repository import ProductionRepository
from cue_sync.schemas import Bounds, Half, LineNote, NoteType, PropNote

from .roles import is_owner


_logger = create_logger("notes")

BoundsLike = Union[Bounds, Mapping[str, float], None]


@dataclass(frozen=True)
class NoteCounts:
    total: int
    by_type: Dict[str, int] = field(default_factory=dict)
    by_character: Dict[str, int] = field(default_factory=dict)


def _bounds(value: BoundsLike) -> Optional[Bounds]:
    if value is None or isinstance(value, Bounds):
        return value
    return Bounds.from_dict(dict(value))


def _note_type(value: Union[NoteType, str]) -> NoteType:
    try:
        return NoteType(value)
    except ValueError:
        raise SchemaValidationError(
            f"Unknown note type {value!r}. Must be one of {[t.value for t in NoteType]}"
        )


def create_line_note(
    repo: ProductionRepository,
    uid: str,
    cast_id: str,
    character_name: str,
    note_type: Union[NoteType, str],
    page: int,
    half: Union[Half, str] = Half.NONE,
    zone_idx: Optional[int] = None,
    bounds: BoundsLike = None,
    line_text: str = "",
    session_id: Optional[str] = None,
    clock: Callable[[], float] = time.time,
    logger: Optional[StructuredLogger] = None,
) -> LineNote:
    """
    Validate and store a new line note.

    Raises:
        MissingPrerequisiteError: The production has no cast members
        SchemaValidationError: Unknown cast member, type, page, half or zone
    """
    cast = {member.id: member for member in repo.cast.list()}
    if not cast:
        raise MissingPrerequisiteError("Add cast members before taking notes.")

    member = cast.get(cast_id)
    if member is None:
        raise SchemaValidationError(f"Unknown cast member: {cast_id!r}")

    try:
        half = Half(half)
    except ValueError:
        raise SchemaValidationError(f"Invalid half {half!r}. Must be '', 'L' or 'R'")

    if (zone_idx is None) != (bounds is None):
        raise SchemaValidationError("zone_idx and bounds must be given together")

    now = clock()
    note = repo.line_notes.add(LineNote(
        id="",
        uid=uid,
        cast_id=cast_id,
        character_name=character_name,
        type=_note_type(note_type),
        page=page,
        production_id=repo.production_id,
        half=half,
        zone_idx=zone_idx,
        bounds=_bounds(bounds),
        line_text=line_text or "",
        session_id=session_id,
        char_color=member.color,
        created_at=now,
        updated_at=now,
    ))
    (logger or _logger).info(
        LogEvent.NOTE_SAVED,
        f"{note.type.label} note on page {page}",
        metadata={'note_id': note.id, 'cast_id': cast_id, 'session_id': session_id},
    )
    return note


def update_line_note(
    repo: ProductionRepository,
    note_id: str,
    clock: Callable[[], float] = time.time,
    **changes: Any,
) -> LineNote:
    """Change the type, character or text of an existing note."""
    allowed = {
        'note_type': 'type',
        'cast_id': 'castId',
        'character_name': 'characterName',
        'line_text': 'lineText',
    }
    unknown = set(changes) - set(allowed)
    if unknown:
        raise SchemaValidationError(f"Cannot change note fields: {sorted(unknown)}")

    update: Dict[str, Any] = {'updatedAt': clock()}
    for name, value in changes.items():
        if name == 'note_type':
            value = _note_type(value).value
        update[allowed[name]] = value

    repo.line_notes.require(note_id)
    repo.line_notes.update(note_id, update)
    return repo.line_notes.require(note_id)


def delete_line_note(
    repo: ProductionRepository,
    note_id: str,
    uid: str,
    is_superadmin: bool = False,
) -> None:
    """
    Raises:
        PermissionDeniedError: Caller is neither the author nor an owner
    """
    note = repo.line_notes.require(note_id)
    if note.uid != uid and not is_owner(repo.role_of(uid), is_superadmin):
        raise PermissionDeniedError("Can only delete your own notes.")
    repo.line_notes.delete(note_id)


def notes_for_page(
    notes: Iterable[LineNote],
    page: int,
    half: Optional[Union[Half, str]] = None,
) -> List[LineNote]:
    """Notes on one page; `half=None` matches both halves."""
    wanted = Half(half) if half is not None else None
    return [
        n for n in notes
        if n.page == page and (wanted is None or n.half == wanted)
    ]


def note_for_zone(notes: Iterable[LineNote], page: int, half: Union[Half, str], zone_idx: int) -> Optional[LineNote]:
    for note in notes_for_page(notes, page, half):
        if note.zone_idx == zone_idx:
            return note
    return None


def note_counts(notes: Iterable[LineNote]) -> NoteCounts:
    notes = list(notes)
    return NoteCounts(
        total=len(notes),
        by_type=dict(Counter(n.type.value for n in notes)),
        by_character=dict(Counter(n.character_name for n in notes)),
    )


def set_prop_note(
    repo: ProductionRepository,
    prop_name: str,
    text: str,
    uid: str,
    clock: Callable[[], float] = time.time,
    logger: Optional[StructuredLogger] = None,
) -> PropNote:
    """Create or overwrite the notes for a prop."""
    existing = repo.prop_notes.list(where={'propName': prop_name})
    note = PropNote(
        id=existing[0].id if existing else "",
        prop_name=prop_name,
        notes=text or "",
        updated_by=uid,
        updated_at=clock(),
    )
    note = repo.prop_notes.save(note) if existing else repo.prop_notes.add(note)
    (logger or _logger).info(
        LogEvent.NOTE_SAVED,
        f"Prop notes saved for {prop_name}",
        metadata={'note_id': note.id},
    )
    return note


def prop_notes_by_name(repo: ProductionRepository) -> Dict[str, PropNote]:
    return {note.prop_name: note for note in repo.prop_notes.list()}
