"""
Run Session Schema
==================

Bounded Context: Run Show Records

Design:
- HoldEntry: one closed hold interval (start/end/duration)
- RunSession: a timed pass through the script plus its live checkpoint fields

The live_* fields are the periodic checkpoint of the show timer; they are
what crash recovery reads back.

Storage:
    productions/<productionId>/sessions/<sessionId>
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import SchemaValidationError
from .common import optional_float, require_text


class SessionStatus(str, Enum):
    """Lifecycle status of a run session."""
    ACTIVE = "active"
    ENDED = "ended"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class HoldEntry:
    """
    Closed hold interval.

    Attributes:
        started_at: Epoch seconds when the hold began
        ended_at: Epoch seconds when the timer resumed
        duration_seconds: ended_at - started_at

    Invariants:
        - ended_at >= started_at
    """
    started_at: float
    ended_at: float
    duration_seconds: float

    def __post_init__(self):
        if self.ended_at < self.started_at:
            raise SchemaValidationError(
                f"Hold ended_at ({self.ended_at}) precedes started_at ({self.started_at})"
            )

    @classmethod
    def closing(cls, started_at: float, ended_at: float) -> 'HoldEntry':
        return cls(started_at=started_at, ended_at=ended_at, duration_seconds=ended_at - started_at)

    def to_dict(self) -> Dict[str, float]:
        return {
            'startedAt': self.started_at,
            'endedAt': self.ended_at,
            'durationSeconds': self.duration_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HoldEntry':
        try:
            return cls(
                started_at=float(data['startedAt']),
                ended_at=float(data['endedAt']),
                duration_seconds=float(data['durationSeconds']),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required HoldEntry field: {e}")
        except SchemaValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise SchemaValidationError(f"Invalid HoldEntry data: {e}")


def holds_from_list(items: Optional[List[Dict[str, Any]]]) -> Tuple[HoldEntry, ...]:
    return tuple(HoldEntry.from_dict(item) for item in (items or []))


@dataclass(frozen=True)
class RunSession:
    """
    Run session record.

    Attributes:
        id: Document id
        production_id: Owning production
        title: Session title ("Tech Run 2")
        status: active / ended / abandoned
        started_at, ended_at: Epoch seconds
        duration_seconds: Elapsed show time when ended
        hold_log: Closed hold intervals (final)
        total_hold_seconds: Sum of hold durations (final)
        total_pages, target_duration_minutes, warn_pages: Timer settings
        created_by: Uid of the stage manager running the session
        scratchpad_notes: Free-text scratchpad (final)
        live_*: Last checkpoint of the running timer
        last_sync_timestamp: Epoch seconds of the last checkpoint
        note_count, notes_by_actor: Line-note tallies written at end
    """
    id: str
    production_id: str
    title: str
    status: SessionStatus = SessionStatus.ACTIVE
    started_at: Optional[float] = None
    ended_at: Optional[float] = None
    duration_seconds: float = 0.0
    hold_log: Tuple[HoldEntry, ...] = ()
    total_hold_seconds: float = 0.0
    total_pages: int = 100
    target_duration_minutes: float = 120
    warn_pages: int = 5
    created_by: str = ""
    scratchpad_notes: str = ""
    live_elapsed_seconds: float = 0.0
    live_current_page: int = 1
    live_hold_log: Tuple[HoldEntry, ...] = ()
    live_scratchpad: str = ""
    live_timer_running: bool = False
    live_timer_held: bool = False
    last_sync_timestamp: Optional[float] = None
    note_count: int = 0
    notes_by_actor: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        require_text(self.title, "Session title")
        if self.total_pages < 1:
            raise SchemaValidationError(f"total_pages must be >= 1, got {self.total_pages}")
        if self.target_duration_minutes <= 0:
            raise SchemaValidationError(
                f"target_duration_minutes must be > 0, got {self.target_duration_minutes}"
            )
        if self.warn_pages < 0:
            raise SchemaValidationError(f"warn_pages must be >= 0, got {self.warn_pages}")
        if self.live_timer_running and self.live_timer_held:
            raise SchemaValidationError("Timer cannot be both running and held")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productionId': self.production_id,
            'title': self.title,
            'status': self.status.value,
            'startedAt': self.started_at,
            'endedAt': self.ended_at,
            'durationSeconds': self.duration_seconds,
            'holdLog': [h.to_dict() for h in self.hold_log],
            'totalHoldSeconds': self.total_hold_seconds,
            'totalPages': self.total_pages,
            'targetDurationMinutes': self.target_duration_minutes,
            'warnPages': self.warn_pages,
            'createdBy': self.created_by,
            'scratchpadNotes': self.scratchpad_notes,
            'liveElapsedSeconds': self.live_elapsed_seconds,
            'liveCurrentPage': self.live_current_page,
            'liveHoldLog': [h.to_dict() for h in self.live_hold_log],
            'liveScratchpad': self.live_scratchpad,
            'liveTimerRunning': self.live_timer_running,
            'liveTimerHeld': self.live_timer_held,
            'lastSyncTimestamp': self.last_sync_timestamp,
            'noteCount': self.note_count,
            'notesByActor': dict(self.notes_by_actor),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunSession':
        try:
            return cls(
                id=data.get('id', ''),
                production_id=data['productionId'],
                title=data.get('title') or 'Untitled Session',
                status=SessionStatus(data.get('status', 'active')),
                started_at=optional_float(data.get('startedAt')),
                ended_at=optional_float(data.get('endedAt')),
                duration_seconds=float(data.get('durationSeconds') or 0),
                hold_log=holds_from_list(data.get('holdLog')),
                total_hold_seconds=float(data.get('totalHoldSeconds') or 0),
                total_pages=int(data.get('totalPages') or 100),
                target_duration_minutes=float(data.get('targetDurationMinutes') or 120),
                warn_pages=int(data.get('warnPages', 5)),
                created_by=data.get('createdBy') or '',
                scratchpad_notes=data.get('scratchpadNotes') or '',
                live_elapsed_seconds=float(data.get('liveElapsedSeconds') or 0),
                live_current_page=int(data.get('liveCurrentPage') or 1),
                live_hold_log=holds_from_list(data.get('liveHoldLog')),
                live_scratchpad=data.get('liveScratchpad') or '',
                live_timer_running=bool(data.get('liveTimerRunning', False)),
                live_timer_held=bool(data.get('liveTimerHeld', False)),
                last_sync_timestamp=optional_float(data.get('lastSyncTimestamp')),
                note_count=int(data.get('noteCount') or 0),
                notes_by_actor=dict(data.get('notesByActor') or {}),
            )
        except KeyError as e:
            raise SchemaValidationError(f"Missing required RunSession field: {e}")
        except SchemaValidationError:
            raise
        except (TypeError, ValueError) as e:
            raise SchemaValidationError(f"Invalid RunSession data: {e}")
