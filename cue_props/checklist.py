"""
Pre/Post-Show Checklists
========================

Each user ticks props off before the show (is it in its start wing?) and
after it (is it back where the last cue left it?). Ticks are persisted per
user at checkState/<uid>.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from cue_sync.repository import ProductionRepository
from cue_sync.schemas import CheckStateRecord

from .model import Prop


class CheckPhase(str, Enum):
    PRE = "pre"
    POST = "post"


@dataclass(frozen=True)
class ChecklistItem:
    key: str
    prop_name: str
    location: str


@dataclass(frozen=True)
class CheckProgress:
    count: int
    total: int
    pct: int


def check_progress(checked: Dict[str, bool], total: int) -> CheckProgress:
    count = sum(1 for v in checked.values() if v)
    pct = int(count * 100 / total + 0.5) if total > 0 else 0
    return CheckProgress(count=count, total=total, pct=pct)


def build_checklist(props: Iterable[Prop], phase: CheckPhase) -> List[ChecklistItem]:
    """Pre-show items use the start wing, post-show items the end location."""
    items = []
    for prop in props:
        location = prop.start if phase is CheckPhase.PRE else prop.resolved_end_location
        items.append(ChecklistItem(key=prop.id or prop.name, prop_name=prop.name, location=location))
    return items


def load_check_state(repo: ProductionRepository, uid: str) -> CheckStateRecord:
    record = repo.check_state.get(uid)
    return record if record is not None else CheckStateRecord(id=uid)


def save_check_state(
    repo: ProductionRepository,
    uid: str,
    pre_checked: Dict[str, bool],
    post_checked: Dict[str, bool],
    now: Optional[float] = None,
) -> CheckStateRecord:
    record = CheckStateRecord(
        id=uid,
        pre_checked=dict(pre_checked),
        post_checked=dict(post_checked),
        updated_at=now,
    )
    return repo.check_state.save(record)
