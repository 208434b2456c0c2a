"""
Role checks.

Owners (and superadmins, who bypass per-production roles) may edit zones and
props and upload the script; any member may read and take notes.
"""

from typing import Optional, Union

from cue_sync.errors import PermissionDeniedError
from cue_sync.schemas import Role


RoleLike = Union[Role, str, None]


def _value(role: RoleLike) -> Optional[str]:
    if isinstance(role, Role):
        return role.value
    return role or None


def is_owner(role: RoleLike, is_superadmin: bool = False) -> bool:
    return is_superadmin or _value(role) == Role.OWNER.value


def is_member(role: RoleLike) -> bool:
    return _value(role) is not None


def can_edit_zones(role: RoleLike, is_superadmin: bool = False) -> bool:
    return is_owner(role, is_superadmin)


def can_edit_props(role: RoleLike, is_superadmin: bool = False) -> bool:
    return is_owner(role, is_superadmin)


def can_upload_script(role: RoleLike, is_superadmin: bool = False) -> bool:
    return is_owner(role, is_superadmin)


def require_owner(role: RoleLike, is_superadmin: bool = False, action: str = "this") -> None:
    """Raise PermissionDeniedError unless the caller owns the production."""
    if not is_owner(role, is_superadmin):
        raise PermissionDeniedError(f"Only production owners can {action}.")
