"""
Cue Record Schemas
==================

Bounded Context: Data Structures

Immutable, typed records for the documents kept in the production store.

Design:
- Frozen dataclasses (immutability)
- Validation in __post_init__ (SchemaValidationError, a ValueError)
- to_dict() for storage, from_dict() for reads (camelCase document keys)
- The document id travels as the `id` attribute and is not stored in the body

Public API
----------
Common:
    Half, Bounds

Production:
    Role, Production, Member, JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH

Sessions:
    SessionStatus, HoldEntry, RunSession

Notes:
    NoteType, LineNote, PropNote

Cast:
    CastType, CastMember, CheckStateRecord

Prop and cue records live in cue_props.model; page zones in cue_script.
"""

from .common import Half, Bounds
from .production import Role, Production, Member, JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH
from .session import SessionStatus, HoldEntry, RunSession
from .notes import NoteType, LineNote, PropNote
from .cast import CastType, CastMember, CheckStateRecord

__all__ = [
    'Half',
    'Bounds',
    'Role',
    'Production',
    'Member',
    'JOIN_CODE_ALPHABET',
    'JOIN_CODE_LENGTH',
    'SessionStatus',
    'HoldEntry',
    'RunSession',
    'NoteType',
    'LineNote',
    'PropNote',
    'CastType',
    'CastMember',
    'CheckStateRecord',
]
