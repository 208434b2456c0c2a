"""
Production and Membership Schemas
=================================

Bounded Context: Production Records

Design:
- Production: top-level record (title, join code, script, page calibration)
- Member: one user's role within a production (doc id = user id)

Storage:
    productions/<productionId>
    productions/<productionId>/members/<uid>
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import SchemaValidationError
from .common import Half, optional_float, require_text


JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
JOIN_CODE_LENGTH = 7


class Role(str, Enum):
    """Membership role within a production."""
    OWNER = "owner"
    MEMBER = "member"


@dataclass(frozen=True)
class Production:
    """
    Production record.

    Attributes:
        id: Document id
        title: Production title
        created_by: Uid of the creating user
        join_code: Code redeemed by joinProduction
        join_code_active: Whether the code currently admits members
        script_path: Storage path of the script PDF (None until uploaded)
        script_page_count: Page count of the script PDF
        script_page_start_page: PDF page where script page 1 begins
        script_page_start_half: Half of that page in split mode ("", "L", "R")
        created_at: Epoch seconds
    """
    id: str
    title: str
    created_by: str = ""
    join_code: str = ""
    join_code_active: bool = True
    script_path: Optional[str] = None
    script_page_count: Optional[int] = None
    script_page_start_page: int = 1
    script_page_start_half: Half = Half.NONE
    created_at: Optional[float] = None

    def __post_init__(self):
        require_text(self.title, "Production title")
        if self.join_code:
            if len(self.join_code) != JOIN_CODE_LENGTH:
                raise SchemaValidationError(
                    f"Join code must be {JOIN_CODE_LENGTH} characters, got {self.join_code!r}"
                )
            bad = set(self.join_code) - set(JOIN_CODE_ALPHABET)
            if bad:
                raise SchemaValidationError(
                    f"Join code contains invalid characters: {''.join(sorted(bad))}"
                )
        if self.script_page_count is not None and self.script_page_count < 1:
            raise SchemaValidationError(
                f"script_page_count must be >= 1, got {self.script_page_count}"
            )
        if self.script_page_start_page < 1:
            raise SchemaValidationError(
                f"script_page_start_page must be >= 1, got {self.script_page_start_page}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'createdBy': self.created_by,
            'joinCode': self.join_code,
            'joinCodeActive': self.join_code_active,
            'scriptPath': self.script_path,
            'scriptPageCount': self.script_page_count,
            'scriptPageStartPage': self.script_page_start_page,
            'scriptPageStartHalf': self.script_page_start_half.value,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Production':
        try:
            return cls(
                id=data.get('id', ''),
                title=data['title'],
                created_by=data.get('createdBy', ''),
                join_code=data.get('joinCode') or '',
                join_code_active=bool(data.get('joinCodeActive', False)),
                script_path=data.get('scriptPath'),
                script_page_count=data.get('scriptPageCount'),
                script_page_start_page=int(data.get('scriptPageStartPage') or 1),
                script_page_start_half=Half(data.get('scriptPageStartHalf') or ''),
                created_at=optional_float(data.get('createdAt')),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required Production field: {e}")
        except SchemaValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise SchemaValidationError(f"Invalid Production data: {e}")


@dataclass(frozen=True)
class Member:
    """
    Membership record (document id is the member's uid).

    Attributes:
        id: User id
        role: owner or member
        display_name: Name shown in rosters
        email: Contact e-mail
        added_at: Epoch seconds
    """
    id: str
    role: Role
    display_name: str = ""
    email: str = ""
    added_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'role': self.role.value,
            'displayName': self.display_name,
            'email': self.email,
            'addedAt': self.added_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Member':
        try:
            return cls(
                id=data.get('id', ''),
                role=Role(data['role']),
                display_name=data.get('displayName') or '',
                email=data.get('email') or '',
                added_at=optional_float(data.get('addedAt')),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required Member field: {e}")
        except SchemaValidationError:
            raise
        except ValueError as e:
            raise SchemaValidationError(f"Invalid Member data: {e}")
