"""
Note Schemas
============

Bounded Context: Annotation Records

Design:
- NoteType: line-note tags (skip, paraphrase, called line, added words, general)
- LineNote: a note anchored to a script zone (or free-standing during a run)
- PropNote: free-text notes attached to a prop by name

Storage:
    productions/<productionId>/lineNotes/<noteId>
    productions/<productionId>/propNotes/<noteId>
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import SchemaValidationError
from .common import Bounds, Half, optional_float, require_page, require_text


class NoteType(str, Enum):
    """Line-note tag."""
    SKIP = "skp"
    PARAPHRASE = "para"
    LINE = "line"
    ADD = "add"
    GENERAL = "gen"

    @property
    def label(self) -> str:
        return _NOTE_LABELS[self]


_NOTE_LABELS = {
    NoteType.SKIP: "Skip",
    NoteType.PARAPHRASE: "Para",
    NoteType.LINE: "Line",
    NoteType.ADD: "Add",
    NoteType.GENERAL: "Gen",
}


@dataclass(frozen=True)
class LineNote:
    """
    Line note.

    Attributes:
        id: Document id
        uid: Author uid
        cast_id: Cast member the note is for
        character_name: Character the line belongs to
        type: NoteType
        page: Script page (PDF page number)
        half: Split-mode half ("" when not split)
        zone_idx: Index of the zone on that page (None for free notes)
        bounds: Zone box at the time of the note (None for free notes)
        line_text: Zone text, or free text for run-show notes
        production_id: Owning production
        session_id: Run session the note was taken in (None outside runs)
        char_color: Display color of the character
        created_at, updated_at: Epoch seconds
    """
    id: str
    uid: str
    cast_id: str
    character_name: str
    type: NoteType
    page: int
    production_id: str
    half: Half = Half.NONE
    zone_idx: Optional[int] = None
    bounds: Optional[Bounds] = None
    line_text: str = ""
    session_id: Optional[str] = None
    char_color: str = ""
    created_at: Optional[float] = None
    updated_at: Optional[float] = None

    def __post_init__(self):
        require_text(self.cast_id, "LineNote cast_id")
        require_text(self.character_name, "LineNote character_name")
        require_page(self.page, "LineNote page")
        if self.zone_idx is not None and self.zone_idx < 0:
            raise SchemaValidationError(f"zone_idx must be >= 0, got {self.zone_idx}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'uid': self.uid,
            'castId': self.cast_id,
            'characterName': self.character_name,
            'charColor': self.char_color,
            'type': self.type.value,
            'page': self.page,
            'half': self.half.value,
            'zoneIdx': self.zone_idx,
            'bounds': self.bounds.to_dict() if self.bounds else None,
            'lineText': self.line_text,
            'productionId': self.production_id,
            'sessionId': self.session_id,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineNote':
        try:
            bounds = data.get('bounds')
            return cls(
                id=data.get('id', ''),
                uid=data.get('uid', ''),
                cast_id=data['castId'],
                character_name=data['characterName'],
                type=NoteType(data['type']),
                page=data['page'],
                production_id=data.get('productionId', ''),
                half=Half(data.get('half') or ''),
                zone_idx=data.get('zoneIdx'),
                bounds=Bounds.from_dict(bounds) if bounds else None,
                line_text=data.get('lineText') or '',
                session_id=data.get('sessionId'),
                char_color=data.get('charColor') or '',
                created_at=optional_float(data.get('createdAt')),
                updated_at=optional_float(data.get('updatedAt')),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required LineNote field: {e}")
        except SchemaValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise SchemaValidationError(f"Invalid LineNote data: {e}")


@dataclass(frozen=True)
class PropNote:
    """Free-text notes for one prop, keyed by prop name."""
    id: str
    prop_name: str
    notes: str = ""
    updated_by: str = ""
    updated_at: Optional[float] = None

    def __post_init__(self):
        require_text(self.prop_name, "PropNote prop_name")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'propName': self.prop_name,
            'notes': self.notes,
            'updatedBy': self.updated_by,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PropNote':
        try:
            return cls(
                id=data.get('id', ''),
                prop_name=data['propName'],
                notes=data.get('notes') or '',
                updated_by=data.get('updatedBy') or '',
                updated_at=optional_float(data.get('updatedAt')),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required PropNote field: {e}")
