"""
Cast roster helpers.

Roster order is by category (Actor, Director, Stage Manager, Crew, Other) and
then by name. Line notes address characters through flat_characters(), whose
keys combine the cast document id with the character name.
"""

import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from cue_props.editing import sanitize_name
from cue_sync.errors import SchemaValidationError
from cue_sync.repository import ProductionRepository
from cue_sync.schemas import CastMember, CastType


CAST_COLORS = (
    '#c45c4a', '#d4844a', '#c8a96e', '#7ab87a', '#5b9bd4',
    '#8b6cc4', '#c46ca4', '#6ab4b4', '#d4b44a', '#7a9ab4',
)

CHARACTER_KEY_SEPARATOR = "::"


@dataclass(frozen=True)
class CharacterRef:
    key: str
    character: str
    member: CastMember


def sort_cast(members: Iterable[CastMember]) -> List[CastMember]:
    return sorted(members, key=lambda m: (m.type.order, m.name.casefold()))


def flat_characters(cast: Iterable[CastMember]) -> List[CharacterRef]:
    """One entry per character played, in roster order."""
    return [
        CharacterRef(f"{member.id}{CHARACTER_KEY_SEPARATOR}{character}", character, member)
        for member in sort_cast(cast)
        for character in member.characters
    ]


def split_character_key(key: str):
    cast_id, sep, character = key.partition(CHARACTER_KEY_SEPARATOR)
    if not sep or not cast_id or not character:
        raise ValueError(f"Invalid character key: {key!r}")
    return cast_id, character


def next_color(cast: Sequence[CastMember]) -> str:
    """First palette color no cast member uses yet."""
    used = {m.color for m in cast if m.color}
    return next((c for c in CAST_COLORS if c not in used), CAST_COLORS[0])


def save_cast_member(
    repo: ProductionRepository,
    uid: str,
    name: str,
    type: str = CastType.ACTOR.value,
    characters: Iterable[str] = (),
    email: str = "",
    color: Optional[str] = None,
    member_id: Optional[str] = None,
    clock: Callable[[], float] = time.time,
) -> CastMember:
    """Add a roster entry, or replace the one with `member_id`."""
    name = sanitize_name(name)
    if not name:
        raise SchemaValidationError("Name is required.")
    try:
        cast_type = CastType(type)
    except ValueError:
        raise SchemaValidationError(f"Unknown cast type: {type!r}")

    chars = tuple(dict.fromkeys(c for c in (sanitize_name(c) for c in characters) if c))
    member = CastMember(
        id=member_id or "",
        name=name,
        type=cast_type,
        characters=chars,
        email=email.strip(),
        color=color or next_color(repo.cast.list()),
        added_by=uid,
        added_at=clock(),
    )
    if member_id:
        return repo.cast.save(member)
    return repo.cast.add(member)
