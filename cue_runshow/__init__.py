"""
Cue Run Show
============

Bounded Context: Live show timing.

Architecture:

    cue_runshow/
    ├── timer.py      # Pure timer transitions + threaded ShowTimer controller
    ├── sessions.py   # Run sessions, checkpoints, crash recovery, summaries
    ├── config.py     # ShowConfig (YAML)
    └── service.py    # RunShowService: timer + sessions + control plane

The timer maps wall-clock time to a script page by linear interpolation:

    seconds_per_page = duration_minutes * 60 / total_pages
    page = min(total_pages, floor(elapsed / seconds_per_page) + 1)

and elapsed is always recomputed as `now - start_ref`, never accumulated.

Usage:

    from cue_runshow import ShowTimer

    timer = ShowTimer(props_fn=lambda: props, on_warning=print)
    timer.start(total_pages=96, duration_minutes=130)
"""

from .timer import (
    TimerPhase,
    TimerState,
    PropWarning,
    ShowTimer,
    seconds_per_page,
    page_for_elapsed,
    remaining_seconds,
    seconds_to_next_page,
    start,
    hold,
    stop,
    goto_page,
    tick,
)
from .sessions import (
    CHECKPOINT_INTERVAL,
    Checkpointer,
    SessionManager,
    SessionSummary,
    live_elapsed,
    summarize_session,
)
from .config import ConfigError, MQTTConfig, ScriptConfig, ShowConfig
from .service import RunShowService

__version__ = "1.0.0"

__all__ = [
    # Timer
    "TimerPhase",
    "TimerState",
    "PropWarning",
    "ShowTimer",
    "seconds_per_page",
    "page_for_elapsed",
    "remaining_seconds",
    "seconds_to_next_page",
    "start",
    "hold",
    "stop",
    "goto_page",
    "tick",
    # Sessions
    "CHECKPOINT_INTERVAL",
    "Checkpointer",
    "SessionManager",
    "SessionSummary",
    "live_elapsed",
    "summarize_session",
    # Config
    "ConfigError",
    "MQTTConfig",
    "ScriptConfig",
    "ShowConfig",
    # Service
    "RunShowService",
]
