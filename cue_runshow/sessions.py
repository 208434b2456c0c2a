"""
Run Sessions and Recovery
=========================

Bounded Context: Run Show (durability)

A run session is one timed pass through the script. While it runs, the
timer's live state is checkpointed to the session document every few
seconds; after a crash the newest active session is detected and the timer
is rebuilt from its last checkpoint.

Design:
- SessionManager: session lifecycle against the production repository
- Checkpointer: daemon thread writing checkpoints on a fixed interval
- Checkpoint failures are logged and reported, never raised
- Recovery never resumes a running timer by itself; the caller decides

Example:
    >>> manager = SessionManager(repo, uid="sm1")
    >>> session = manager.start_session("Tech Run 2", timer.snapshot())
    >>> checkpointer = Checkpointer(manager, session.id, service.live_state)
    >>> checkpointer.start()
"""

import dataclasses
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from cue_sync.logging import LogEvent, StructuredLogger, create_logger
from cue_sync.repository import ProductionRepository
from cue_sync.schemas import LineNote, RunSession, SessionStatus

from .timer import TimerPhase, TimerState, page_for_elapsed


CHECKPOINT_INTERVAL = 10.0

LiveState = Tuple[TimerState, str]


def live_elapsed(state: TimerState, now: float) -> float:
    """Elapsed show time at `now` (a running timer keeps counting between ticks)."""
    if state.is_running and state.start_ref is not None:
        return now - state.start_ref
    return state.elapsed


@dataclass(frozen=True)
class SessionSummary:
    """Figures for a session report."""
    session_id: str
    title: str
    duration_seconds: float
    hold_count: int
    total_hold_seconds: float
    total_pages: int
    note_count: int
    notes_by_type: Dict[str, int] = field(default_factory=dict)
    notes_by_actor: Dict[str, int] = field(default_factory=dict)
    scratchpad: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sessionId': self.session_id,
            'title': self.title,
            'durationSeconds': self.duration_seconds,
            'holdCount': self.hold_count,
            'totalHoldSeconds': self.total_hold_seconds,
            'totalPages': self.total_pages,
            'noteCount': self.note_count,
            'notesByType': dict(self.notes_by_type),
            'notesByActor': dict(self.notes_by_actor),
            'scratchpad': self.scratchpad,
        }


def summarize_session(session: RunSession, notes: Iterable[LineNote]) -> SessionSummary:
    """Report figures for an ended session from its line notes."""
    notes = list(notes)
    return SessionSummary(
        session_id=session.id,
        title=session.title,
        duration_seconds=session.duration_seconds,
        hold_count=len(session.hold_log),
        total_hold_seconds=session.total_hold_seconds,
        total_pages=session.total_pages,
        note_count=len(notes),
        notes_by_type=dict(Counter(n.type.value for n in notes)),
        notes_by_actor=dict(Counter(n.cast_id for n in notes)),
        scratchpad=session.scratchpad_notes,
    )


class SessionManager:
    """
    Run-session lifecycle for one production.

    Attributes:
        repo: Production repository
        uid: Stage manager running the sessions
        clock: Wall clock (epoch seconds)
    """

    def __init__(
        self,
        repo: ProductionRepository,
        uid: str,
        clock: Callable[[], float] = time.time,
        logger: Optional[StructuredLogger] = None,
    ):
        self.repo = repo
        self.uid = uid
        self.clock = clock
        self.logger = logger or create_logger("sessions")

    def start_session(self, title: str, timer_state: TimerState) -> RunSession:
        now = self.clock()
        session = self.repo.sessions.add(RunSession(
            id="",
            production_id=self.repo.production_id,
            title=title,
            status=SessionStatus.ACTIVE,
            started_at=now,
            total_pages=timer_state.total_pages,
            target_duration_minutes=timer_state.duration_minutes,
            warn_pages=timer_state.warn_pages,
            created_by=self.uid,
            last_sync_timestamp=now,
        ))
        self.logger.info(
            LogEvent.SESSION_STARTED,
            f"Session '{title}' started",
            metadata={'session_id': session.id, 'production_id': self.repo.production_id},
        )
        return session

    def _live_fields(self, timer_state: TimerState, scratchpad: str) -> Dict[str, Any]:
        now = self.clock()
        return {
            'liveElapsedSeconds': live_elapsed(timer_state, now),
            'liveCurrentPage': timer_state.current_page,
            'liveHoldLog': [h.to_dict() for h in timer_state.hold_log],
            'liveScratchpad': scratchpad or '',
            'liveTimerRunning': timer_state.is_running,
            'liveTimerHeld': timer_state.is_held,
            'lastSyncTimestamp': now,
        }

    def checkpoint(self, session_id: str, timer_state: TimerState, scratchpad: str = "") -> bool:
        """Write the live timer fields. Returns False (and logs) on failure."""
        try:
            self.repo.sessions.update(session_id, self._live_fields(timer_state, scratchpad))
        except Exception as e:
            self.logger.error(
                LogEvent.SESSION_CHECKPOINT_FAILED,
                f"Session checkpoint failed: {e}",
                metadata={'session_id': session_id},
                exc_info=e,
            )
            return False

        self.logger.debug(
            LogEvent.SESSION_CHECKPOINT,
            "Session checkpoint written",
            metadata={'session_id': session_id, 'page': timer_state.current_page},
        )
        return True

    def end_session(self, session_id: str, timer_state: TimerState, scratchpad: str = "") -> RunSession:
        """
        Close a session with its final figures and note tallies.

        timer_state is the state before the timer was stopped, so the
        recorded duration is the show time actually run.
        """
        now = self.clock()
        self.checkpoint(session_id, timer_state, scratchpad)

        notes = self.repo.line_notes.list(where={'sessionId': session_id})
        hold_log = timer_state.hold_log
        self.repo.sessions.update(session_id, {
            'status': SessionStatus.ENDED.value,
            'endedAt': now,
            'durationSeconds': live_elapsed(timer_state, now),
            'holdLog': [h.to_dict() for h in hold_log],
            'totalHoldSeconds': sum(h.duration_seconds for h in hold_log),
            'scratchpadNotes': scratchpad or '',
            'noteCount': len(notes),
            'notesByActor': dict(Counter(n.cast_id for n in notes)),
        })
        self.logger.info(
            LogEvent.SESSION_ENDED,
            "Session ended",
            metadata={'session_id': session_id, 'notes': len(notes)},
        )
        return self.repo.sessions.require(session_id)

    def detect_active_session(self) -> Optional[RunSession]:
        """Newest session still marked active, or None."""
        try:
            sessions = self.repo.sessions.list(where={'status': SessionStatus.ACTIVE.value})
        except Exception as e:
            self.logger.error(
                LogEvent.STORE_ERROR,
                f"Active session lookup failed: {e}",
                exc_info=e,
            )
            return None
        if not sessions:
            return None
        return max(sessions, key=lambda s: s.started_at or 0)

    def hydrate(self, session: RunSession, now: Optional[float] = None) -> TimerState:
        """
        Rebuild the timer from the last checkpoint.

        A timer that was running at the crash gains the time since the last
        checkpoint. The result is held when there is show time to resume
        (so start() continues from it) and idle otherwise.
        """
        now = self.clock() if now is None else now
        last_sync = session.last_sync_timestamp if session.last_sync_timestamp is not None else now
        elapsed = session.live_elapsed_seconds
        if session.live_timer_running:
            elapsed += max(0.0, now - last_sync)

        resumable = session.live_timer_running or session.live_timer_held
        state = TimerState(
            phase=TimerPhase.HELD if resumable else TimerPhase.IDLE,
            elapsed=elapsed,
            total_pages=session.total_pages or 100,
            duration_minutes=session.target_duration_minutes or 120,
            warn_pages=session.warn_pages,
            hold_log=session.live_hold_log,
        )
        page = page_for_elapsed(elapsed, state) if session.live_timer_running else session.live_current_page
        state = dataclasses.replace(state, current_page=max(1, min(state.total_pages, page or 1)))
        self.logger.info(
            LogEvent.SESSION_RECOVERED,
            f"Session '{session.title}' recovered",
            metadata={
                'session_id': session.id,
                'elapsed': elapsed,
                'page': state.current_page,
                'phase': state.phase.value,
            },
        )
        return state

    def abandon(self, session_id: str) -> bool:
        """Discard an interrupted session."""
        try:
            self.repo.sessions.update(session_id, {
                'status': SessionStatus.ABANDONED.value,
                'endedAt': self.clock(),
            })
        except Exception as e:
            self.logger.error(
                LogEvent.STORE_ERROR,
                f"Could not abandon session: {e}",
                metadata={'session_id': session_id},
                exc_info=e,
            )
            return False
        self.logger.info(
            LogEvent.SESSION_ABANDONED,
            "Session abandoned",
            metadata={'session_id': session_id},
        )
        return True


class Checkpointer:
    """
    Periodic checkpoint writer.

    Writes once on start, then every `interval` seconds until stopped.
    `healthy` reflects the outcome of the most recent write.

    Usage:
        checkpointer = Checkpointer(manager, session.id, lambda: (timer.snapshot(), pad))
        checkpointer.start()
        ...
        checkpointer.stop()
    """

    def __init__(
        self,
        manager: SessionManager,
        session_id: str,
        snapshot_fn: Callable[[], LiveState],
        interval: float = CHECKPOINT_INTERVAL,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self.manager = manager
        self.session_id = session_id
        self.snapshot_fn = snapshot_fn
        self.interval = interval

        self._healthy = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def healthy(self) -> bool:
        return self._healthy

    def write_now(self) -> bool:
        timer_state, scratchpad = self.snapshot_fn()
        self._healthy = self.manager.checkpoint(self.session_id, timer_state, scratchpad)
        return self._healthy

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="SessionCheckpointThread",
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        self.write_now()
        while not self._stop_event.wait(self.interval):
            self.write_now()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
