"""
Production Membership
=====================

Bounded Context: Productions (access)

Creating productions, redeeming join codes, and managing the code.

Design:
- join_production is the callable endpoint: it takes the caller's auth
  context and the request data, and either returns a JoinResult or raises
  JoinError carrying a callable-function error code
- Join codes use an alphabet without confusable glyphs (no 0/O, 1/I)
- Codes are matched upper-cased and trimmed

Example:
    >>> production = create_production(store, owner_auth, "Hamlet")
    >>> result = join_production(store, member_auth, {"code": production.join_code})
    >>> result.to_dict()
    {'productionId': '...', 'title': 'Hamlet', 'alreadyMember': False}
"""

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from cue_props.editing import sanitize_name
from cue_sync.errors import SchemaValidationError
from cue_sync.logging import LogEvent, StructuredLogger, create_logger
from cue_sync.repository import PRODUCTIONS, ProductionRepository
from cue_sync.schemas import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH, Member, Production, Role
from cue_sync.store import DocumentStore

from .roles import require_owner


_logger = create_logger("productions")


@dataclass(frozen=True)
class AuthContext:
    """
    Signed-in caller.

    Attributes:
        uid: User id
        email: Account e-mail
        display_name: Profile name (may be empty)
        is_superadmin: Custom claim bypassing per-production roles
    """
    uid: str
    email: str = ""
    display_name: str = ""
    is_superadmin: bool = False

    def __post_init__(self):
        if not self.uid:
            raise ValueError("AuthContext uid cannot be empty")

    @property
    def name(self) -> str:
        return self.display_name or self.email


class JoinError(Exception):
    """
    Endpoint failure.

    Attributes:
        code: "unauthenticated", "invalid-argument" or "not-found"
        message: Message shown to the caller
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

    def to_dict(self) -> Dict[str, str]:
        return {'code': self.code, 'message': self.message}


@dataclass(frozen=True)
class JoinResult:
    production_id: str
    title: str
    already_member: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productionId': self.production_id,
            'title': self.title,
            'alreadyMember': self.already_member,
        }


def generate_join_code(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.SystemRandom()
    return ''.join(rng.choice(JOIN_CODE_ALPHABET) for _ in range(JOIN_CODE_LENGTH))


def normalize_join_code(code: str) -> str:
    return code.strip().upper()


def create_production(
    store: DocumentStore,
    owner: AuthContext,
    title: str,
    script_path: Optional[str] = None,
    script_page_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
    clock: Callable[[], float] = time.time,
    logger: Optional[StructuredLogger] = None,
) -> Production:
    """
    Create a production with an active join code and make `owner` its owner.

    Raises:
        SchemaValidationError: Empty title
    """
    logger = logger or _logger
    title = sanitize_name(title)
    if not title:
        raise SchemaValidationError("Please enter a production title.")

    now = clock()
    draft = Production(
        id="",
        title=title,
        created_by=owner.uid,
        join_code=generate_join_code(rng),
        join_code_active=True,
        script_path=script_path,
        script_page_count=script_page_count,
        created_at=now,
    )
    production_id = store.add(PRODUCTIONS, draft.to_dict())

    repo = ProductionRepository(store, production_id)
    repo.members.save(Member(
        id=owner.uid,
        role=Role.OWNER,
        display_name=owner.name,
        email=owner.email,
        added_at=now,
    ))

    logger.info(
        LogEvent.PRODUCTION_CREATED,
        f"Production '{title}' created",
        metadata={'production_id': production_id, 'owner': owner.uid},
    )
    return repo.production()


def join_production(
    store: DocumentStore,
    auth: Optional[AuthContext],
    data: Optional[Dict[str, Any]],
    clock: Callable[[], float] = time.time,
    logger: Optional[StructuredLogger] = None,
) -> JoinResult:
    """
    Redeem a join code for the calling user.

    Raises:
        JoinError: unauthenticated, invalid-argument or not-found
    """
    logger = logger or _logger

    if auth is None:
        _reject(logger, "unauthenticated", "Must be signed in.")

    code = (data or {}).get('code')
    if not code or not isinstance(code, str):
        _reject(logger, "invalid-argument", "Code required.", uid=auth.uid)

    code = normalize_join_code(code)
    matches = store.list(PRODUCTIONS, where={'joinCode': code, 'joinCodeActive': True})
    if not matches:
        _reject(logger, "not-found", "Invalid or expired join code.", uid=auth.uid)

    production_id, production_data = matches[0]
    title = production_data.get('title', '')
    repo = ProductionRepository(store, production_id)

    if repo.members.get(auth.uid) is not None:
        return JoinResult(production_id=production_id, title=title, already_member=True)

    repo.members.save(Member(
        id=auth.uid,
        role=Role.MEMBER,
        display_name=auth.name,
        email=auth.email,
        added_at=clock(),
    ))
    logger.info(
        LogEvent.PRODUCTION_JOINED,
        f"User joined '{title}'",
        metadata={'production_id': production_id, 'uid': auth.uid},
    )
    return JoinResult(production_id=production_id, title=title, already_member=False)


def _reject(logger: StructuredLogger, code: str, message: str, uid: Optional[str] = None):
    logger.warning(
        LogEvent.PRODUCTION_JOIN_REJECTED,
        message,
        metadata={'code': code, 'uid': uid},
    )
    raise JoinError(code, message)


def set_join_code_active(
    repo: ProductionRepository,
    auth: AuthContext,
    active: bool,
    logger: Optional[StructuredLogger] = None,
) -> Production:
    """Activate or deactivate the join code (owner only)."""
    require_owner(repo.role_of(auth.uid), auth.is_superadmin, "change the join code")
    repo.store.update(PRODUCTIONS, repo.production_id, {'joinCodeActive': bool(active)})
    (logger or _logger).info(
        LogEvent.PRODUCTION_JOIN_CODE_CHANGED,
        "Join code activated" if active else "Join code deactivated",
        metadata={'production_id': repo.production_id},
    )
    return repo.production()


def regenerate_join_code(
    repo: ProductionRepository,
    auth: AuthContext,
    rng: Optional[random.Random] = None,
    logger: Optional[StructuredLogger] = None,
) -> Production:
    """Replace the join code; the old code stops working (owner only)."""
    require_owner(repo.role_of(auth.uid), auth.is_superadmin, "change the join code")
    code = generate_join_code(rng)
    repo.store.update(PRODUCTIONS, repo.production_id, {'joinCode': code})
    (logger or _logger).info(
        LogEvent.PRODUCTION_JOIN_CODE_CHANGED,
        "Join code regenerated",
        metadata={'production_id': repo.production_id},
    )
    return repo.production()
