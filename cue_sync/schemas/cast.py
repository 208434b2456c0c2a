"""
Cast Schemas
============

Bounded Context: Company Roster Records

Design:
- CastType: roster categories in display order
- CastMember: one person, optionally playing several characters
- CheckStateRecord: a user's pre/post-show checklist ticks

Storage:
    productions/<productionId>/cast/<castId>
    productions/<productionId>/checkState/<uid>
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..errors import SchemaValidationError
from .common import optional_float, require_text


class CastType(str, Enum):
    """Roster category, declared in display order."""
    ACTOR = "Actor"
    DIRECTOR = "Director"
    STAGE_MANAGER = "Stage Manager"
    CREW = "Crew"
    OTHER = "Other"

    @property
    def order(self) -> int:
        return list(CastType).index(self)


@dataclass(frozen=True)
class CastMember:
    """
    Roster entry.

    Attributes:
        id: Document id
        name: Person's name (sanitized, <= 200 chars)
        type: CastType
        characters: Character names this person plays
        email: Contact e-mail
        color: Display color used for their notes
        added_by: Uid that added the entry
    """
    id: str
    name: str
    type: CastType = CastType.ACTOR
    characters: Tuple[str, ...] = ()
    email: str = ""
    color: str = ""
    added_by: str = ""
    added_at: Optional[float] = None

    def __post_init__(self):
        require_text(self.name, "CastMember name")
        if len(self.name) > 200:
            raise SchemaValidationError("CastMember name exceeds 200 characters")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type.value,
            'characters': list(self.characters),
            'email': self.email,
            'color': self.color,
            'addedBy': self.added_by,
            'addedAt': self.added_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CastMember':
        try:
            return cls(
                id=data.get('id', ''),
                name=data['name'],
                type=CastType(data.get('type') or 'Actor'),
                characters=tuple(data.get('characters') or ()),
                email=data.get('email') or '',
                color=data.get('color') or '',
                added_by=data.get('addedBy') or '',
                added_at=optional_float(data.get('addedAt')),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required CastMember field: {e}")
        except SchemaValidationError:
            raise
        except ValueError as e:
            raise SchemaValidationError(f"Invalid CastMember data: {e}")


@dataclass(frozen=True)
class CheckStateRecord:
    """
    Pre/post-show checklist state for one user (document id is the uid).

    Attributes:
        pre_checked: item key -> ticked
        post_checked: item key -> ticked
    """
    id: str
    pre_checked: Dict[str, bool] = field(default_factory=dict)
    post_checked: Dict[str, bool] = field(default_factory=dict)
    updated_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'preChecked': dict(self.pre_checked),
            'postChecked': dict(self.post_checked),
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CheckStateRecord':
        return cls(
            id=data.get('id', ''),
            pre_checked={str(k): bool(v) for k, v in (data.get('preChecked') or {}).items()},
            post_checked={str(k): bool(v) for k, v in (data.get('postChecked') or {}).items()},
            updated_at=optional_float(data.get('updatedAt')),
        )
