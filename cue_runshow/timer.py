"""
Show Timer
==========

Bounded Context: Run Show (page playhead)

A page-driven show clock: wall time since the start reference maps linearly
onto script pages, and every tick re-checks which props enter soon.

Design:
- TimerState is an immutable snapshot; start/hold/stop/tick/goto_page are
  pure functions returning a new snapshot
- Elapsed is always now - start_ref (never accumulated per tick)
- ShowTimer owns the current snapshot, a 1 Hz daemon thread and listener
  callbacks; callbacks run outside the lock

State machine:

    IDLE --start--> RUNNING --hold--> HELD --start--> RUNNING
      ^                |                |
      +------stop------+-------stop-----+

Example:
    >>> state = TimerState(total_pages=90, duration_minutes=90)
    >>> state = start(state, now=0.0)
    >>> state, warnings, completed = tick(state, now=125.0, props=props)
    >>> state.current_page
    3
"""

import dataclasses
import math
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from cue_props import Crossover, Prop, get_prop_status, in_warning_window
from cue_sync.logging import LogEvent, StructuredLogger, create_logger
from cue_sync.schemas import HoldEntry


class TimerPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    HELD = "held"


@dataclass(frozen=True)
class TimerState:
    """
    Show timer snapshot.

    Attributes:
        phase: idle / running / held
        elapsed: Show seconds elapsed (excludes holds)
        current_page: Playhead page, 1..total_pages
        total_pages: Pages in the script
        duration_minutes: Planned running time
        warn_pages: Warning window for upcoming entrances
        start_ref: Wall time at which elapsed was 0 (valid while running)
        hold_started_at: Wall time the open hold began (None when not held)
        hold_log: Closed hold intervals
        warned: "<prop_id>:<enter_page>" keys already warned on this page
    """
    phase: TimerPhase = TimerPhase.IDLE
    elapsed: float = 0.0
    current_page: int = 1
    total_pages: int = 100
    duration_minutes: float = 120
    warn_pages: int = 5
    start_ref: Optional[float] = None
    hold_started_at: Optional[float] = None
    hold_log: Tuple[HoldEntry, ...] = ()
    warned: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.total_pages < 1:
            raise ValueError(f"total_pages must be >= 1, got {self.total_pages}")
        if self.duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be > 0, got {self.duration_minutes}")
        if self.warn_pages < 0:
            raise ValueError(f"warn_pages must be >= 0, got {self.warn_pages}")
        if not 1 <= self.current_page <= self.total_pages:
            raise ValueError(
                f"current_page must be in [1, {self.total_pages}], got {self.current_page}"
            )

    @property
    def is_running(self) -> bool:
        return self.phase is TimerPhase.RUNNING

    @property
    def is_held(self) -> bool:
        return self.phase is TimerPhase.HELD

    @property
    def total_seconds(self) -> float:
        return self.duration_minutes * 60

    @property
    def total_hold_seconds(self) -> float:
        return sum(h.duration_seconds for h in self.hold_log)

    def to_dict(self):
        return {
            'phase': self.phase.value,
            'elapsed': self.elapsed,
            'currentPage': self.current_page,
            'totalPages': self.total_pages,
            'durationMinutes': self.duration_minutes,
            'warnPages': self.warn_pages,
            'remainingSeconds': remaining_seconds(self),
            'secondsToNextPage': seconds_to_next_page(self),
            'holdLog': [h.to_dict() for h in self.hold_log],
        }


@dataclass(frozen=True)
class PropWarning:
    """Upcoming entrance inside the warning window."""
    prop_id: str
    prop_name: str
    upcoming_enter: int
    pages_away: int
    crossover: Optional[Crossover] = None

    @property
    def key(self) -> str:
        return f"{self.prop_id}:{self.upcoming_enter}"

    def message(self) -> str:
        text = f"{self.prop_name}: {self.pages_away} pages (pg {self.upcoming_enter})"
        if self.crossover:
            text += f" | {self.crossover.describe()}"
        return text

    def to_dict(self):
        return {
            'propId': self.prop_id,
            'propName': self.prop_name,
            'upcomingEnter': self.upcoming_enter,
            'pagesAway': self.pages_away,
            'crossover': self.crossover.to_dict() if self.crossover else None,
            'message': self.message(),
        }


def seconds_per_page(state: TimerState) -> float:
    return state.total_seconds / state.total_pages


def page_for_elapsed(elapsed: float, state: TimerState) -> int:
    return min(state.total_pages, math.floor(elapsed / seconds_per_page(state)) + 1)


def remaining_seconds(state: TimerState) -> float:
    return max(0.0, state.total_seconds - state.elapsed)


def seconds_to_next_page(state: TimerState) -> float:
    """Seconds until the playhead turns the page (0 on the last page)."""
    if state.current_page >= state.total_pages:
        return 0.0
    boundary = state.current_page * seconds_per_page(state)
    return max(0.0, boundary - state.elapsed)


def start(
    state: TimerState,
    now: float,
    total_pages: Optional[int] = None,
    duration_minutes: Optional[float] = None,
) -> TimerState:
    """
    Start fresh from idle, or resume from a hold.

    Resuming keeps elapsed and closes the open hold into the hold log; a
    fresh start begins with an empty hold log.
    Starting while already running changes nothing.
    """
    if state.is_running:
        return state

    changes = {}
    if total_pages is not None:
        changes['total_pages'] = total_pages
    if duration_minutes is not None:
        changes['duration_minutes'] = duration_minutes

    if state.is_held:
        hold_log = state.hold_log
        if state.hold_started_at is not None:
            hold_log = hold_log + (HoldEntry.closing(state.hold_started_at, now),)
        return dataclasses.replace(
            state,
            phase=TimerPhase.RUNNING,
            start_ref=now - state.elapsed,
            hold_started_at=None,
            hold_log=hold_log,
            **changes,
        )

    return dataclasses.replace(
        state,
        phase=TimerPhase.RUNNING,
        elapsed=0.0,
        current_page=1,
        start_ref=now,
        hold_started_at=None,
        warned=frozenset(),
        hold_log=(),
        **changes,
    )


def hold(state: TimerState, now: float) -> TimerState:
    """Freeze the playhead and open a hold interval. No-op unless running."""
    if not state.is_running:
        return state
    return dataclasses.replace(
        state,
        phase=TimerPhase.HELD,
        elapsed=now - state.start_ref,
        start_ref=None,
        hold_started_at=now,
    )


def stop(state: TimerState) -> TimerState:
    """Back to idle from any phase; elapsed, page and warnings reset."""
    return dataclasses.replace(
        state,
        phase=TimerPhase.IDLE,
        elapsed=0.0,
        current_page=1,
        start_ref=None,
        hold_started_at=None,
        warned=frozenset(),
    )


def goto_page(state: TimerState, page: int, now: float) -> TimerState:
    """Jump the playhead to the start of a page."""
    page = max(1, min(state.total_pages, page))
    elapsed = (page - 1) * seconds_per_page(state)
    return dataclasses.replace(
        state,
        elapsed=elapsed,
        current_page=page,
        start_ref=now - elapsed if state.is_running else state.start_ref,
        warned=frozenset(),
    )


def tick(
    state: TimerState,
    now: float,
    props: Iterable[Prop],
) -> Tuple[TimerState, List[PropWarning], Optional[TimerState]]:
    """
    Advance a running timer to wall time `now`.

    Returns:
        (new_state, warnings, completed) where completed is the final
        pre-reset snapshot when the show ran to its full duration, else None
    """
    if not state.is_running:
        return state, [], None

    elapsed = now - state.start_ref
    page = page_for_elapsed(elapsed, state)
    warned = state.warned if page == state.current_page else frozenset()

    warnings = []
    for prop in props:
        status = get_prop_status(prop, page)
        if not in_warning_window(status, page, state.warn_pages):
            continue
        warning = PropWarning(
            prop_id=prop.id,
            prop_name=prop.name,
            upcoming_enter=status.upcoming_enter,
            pages_away=status.upcoming_enter - page,
            crossover=status.crossover,
        )
        if warning.key in warned:
            continue
        warned = warned | {warning.key}
        warnings.append(warning)

    new_state = dataclasses.replace(state, elapsed=elapsed, current_page=page, warned=warned)
    if elapsed >= state.total_seconds:
        return stop(new_state), warnings, new_state
    return new_state, warnings, None


class ShowTimer:
    """
    Threaded show-timer controller.

    Attributes:
        props_fn: Returns the current prop list (called every tick)
        clock: Wall clock (epoch seconds), injectable for tests
        tick_interval: Seconds between ticks

    Thread Safety:
    - State guarded by a lock; listeners are invoked outside it
    - Listener exceptions are logged, the tick thread keeps running

    Usage:
        timer = ShowTimer(props_fn=lambda: props, on_warning=print)
        timer.start()
        ...
        timer.shutdown()
    """

    def __init__(
        self,
        state: Optional[TimerState] = None,
        props_fn: Callable[[], Iterable[Prop]] = list,
        clock: Callable[[], float] = time.time,
        tick_interval: float = 1.0,
        on_tick: Optional[Callable[[TimerState], None]] = None,
        on_warning: Optional[Callable[[PropWarning], None]] = None,
        on_complete: Optional[Callable[[TimerState], None]] = None,
        logger: Optional[StructuredLogger] = None,
    ):
        self._state = state or TimerState()
        self.props_fn = props_fn
        self.clock = clock
        self.tick_interval = tick_interval
        self.on_tick = on_tick
        self.on_warning = on_warning
        self.on_complete = on_complete
        self.logger = logger or create_logger("timer")

        self._lock = threading.Lock()
        self._shutdown_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def snapshot(self) -> TimerState:
        with self._lock:
            return self._state

    def restore(self, state: TimerState) -> None:
        """Replace the state (session recovery)."""
        with self._lock:
            self._state = state
        self._notify_tick(state)

    def _ensure_thread(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._shutdown_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="ShowTimerThread",
                daemon=True,
            )
            self._thread.start()

    def start(self, total_pages: Optional[int] = None, duration_minutes: Optional[float] = None) -> TimerState:
        with self._lock:
            previous = self._state
            self._state = start(previous, self.clock(), total_pages, duration_minutes)
            state = self._state
        if previous is not state:
            self.logger.info(
                LogEvent.TIMER_STARTED,
                "Timer resumed" if previous.is_held else "Timer started",
                metadata={'elapsed': state.elapsed, 'page': state.current_page},
            )
        self._ensure_thread()
        self._notify_tick(state)
        return state

    def hold(self) -> TimerState:
        with self._lock:
            previous = self._state
            self._state = hold(previous, self.clock())
            state = self._state
        if previous is not state:
            self.logger.info(
                LogEvent.TIMER_HELD,
                "Timer held",
                metadata={'elapsed': state.elapsed, 'page': state.current_page},
            )
        self._notify_tick(state)
        return state

    def stop(self) -> TimerState:
        with self._lock:
            previous = self._state
            self._state = stop(previous)
            state = self._state
        self.logger.info(
            LogEvent.TIMER_STOPPED,
            "Timer stopped",
            metadata={'elapsed': previous.elapsed, 'page': previous.current_page},
        )
        self._notify_tick(state)
        return state

    def goto_page(self, page: int) -> TimerState:
        with self._lock:
            self._state = goto_page(self._state, page, self.clock())
            state = self._state
        self.logger.info(
            LogEvent.TIMER_PAGE_CHANGED,
            f"Playhead moved to page {state.current_page}",
            metadata={'page': state.current_page, 'elapsed': state.elapsed},
        )
        self._notify_tick(state)
        return state

    def tick_once(self) -> TimerState:
        """Run one tick now (the thread calls this every tick_interval)."""
        props = list(self.props_fn())
        with self._lock:
            previous = self._state
            state, warnings, completed = tick(previous, self.clock(), props)
            self._state = state

        if not previous.is_running:
            return state

        if completed is None and state.current_page != previous.current_page:
            self.logger.debug(
                LogEvent.TIMER_PAGE_CHANGED,
                f"Page {state.current_page}",
                metadata={'page': state.current_page, 'elapsed': state.elapsed},
            )

        for warning in warnings:
            self.logger.info(
                LogEvent.TIMER_PROP_WARNING,
                warning.message(),
                metadata=warning.to_dict(),
            )
            self._call(self.on_warning, warning)

        self._notify_tick(state)

        if completed is not None:
            self.logger.info(
                LogEvent.TIMER_COMPLETED,
                "Show complete",
                metadata={'elapsed': completed.elapsed, 'page': completed.current_page},
            )
            self._call(self.on_complete, completed)
        return state

    def _run(self) -> None:
        while not self._shutdown_event.wait(self.tick_interval):
            try:
                self.tick_once()
            except Exception as e:
                self.logger.error(
                    LogEvent.LISTENER_ERROR,
                    f"Timer tick failed: {e}",
                    exc_info=e,
                )

    def _notify_tick(self, state: TimerState) -> None:
        self._call(self.on_tick, state)

    def _call(self, callback, arg) -> None:
        if callback is None:
            return
        try:
            callback(arg)
        except Exception as e:
            self.logger.error(
                LogEvent.LISTENER_ERROR,
                f"Timer listener failed: {e}",
                exc_info=e,
            )

    def shutdown(self, timeout: float = 2.0) -> None:
        """Stop the tick thread (state is kept)."""
        self._shutdown_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
