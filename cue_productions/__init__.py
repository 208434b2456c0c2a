"""
Cue Productions
===============

Bounded Context: Productions, membership, roster and notes.

Architecture:

    cue_productions/
    ├── membership.py  # create_production, join_production, join-code admin
    ├── roles.py       # owner/member checks (superadmins pass owner checks)
    ├── cast.py        # roster ordering, character keys, palette colors
    └── notes.py       # line notes and prop notes

Usage:

    from cue_productions import AuthContext, join_production, JoinError

    try:
        result = join_production(store, AuthContext(uid="u1"), {"code": "hamlet4"})
    except JoinError as e:
        print(e.code, e.message)
"""

from .roles import (
    is_owner,
    is_member,
    can_edit_zones,
    can_edit_props,
    can_upload_script,
    require_owner,
)
from .membership import (
    AuthContext,
    JoinError,
    JoinResult,
    generate_join_code,
    normalize_join_code,
    create_production,
    join_production,
    set_join_code_active,
    regenerate_join_code,
)
from .cast import (
    CAST_COLORS,
    CharacterRef,
    sort_cast,
    flat_characters,
    split_character_key,
    next_color,
    save_cast_member,
)
from .notes import (
    NoteCounts,
    create_line_note,
    update_line_note,
    delete_line_note,
    notes_for_page,
    note_for_zone,
    note_counts,
    set_prop_note,
    prop_notes_by_name,
)

__version__ = "1.0.0"

__all__ = [
    # Roles
    "is_owner",
    "is_member",
    "can_edit_zones",
    "can_edit_props",
    "can_upload_script",
    "require_owner",
    # Membership
    "AuthContext",
    "JoinError",
    "JoinResult",
    "generate_join_code",
    "normalize_join_code",
    "create_production",
    "join_production",
    "set_join_code_active",
    "regenerate_join_code",
    # Cast
    "CAST_COLORS",
    "CharacterRef",
    "sort_cast",
    "flat_characters",
    "split_character_key",
    "next_color",
    "save_cast_member",
    # Notes
    "NoteCounts",
    "create_line_note",
    "update_line_note",
    "delete_line_note",
    "notes_for_page",
    "note_for_zone",
    "note_counts",
    "set_prop_note",
    "prop_notes_by_name",
]
