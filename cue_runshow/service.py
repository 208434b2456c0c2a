"""
Run Show Service - Live show timer orchestrator.

This module provides the RunShowService class which drives one run of a
show: the page timer, prop entrance warnings, the run session with its
periodic checkpoints, and the MQTT control plane a stage manager uses to
start, hold and stop the run from another terminal.

Architecture:
- ShowTimer owns the playhead (1 Hz tick thread)
- The prop list is kept current by a store subscription
- SessionManager + Checkpointer persist live state every few seconds
- MQTTControlPlane receives commands and publishes retained status
- Optional ChangePublisher/ChangeSubscriber relay store changes

Threading Model:
- Timer Thread (ShowTimer, calls on_tick / on_warning / on_complete)
- Checkpoint Thread (Checkpointer)
- Control Plane Thread (paho-mqtt internal, command handlers)
- Store listener callbacks run on whichever thread wrote the change
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from cue_props import Prop, add_props, import_props_json, prop_collection
from cue_sync.repository import ProductionRepository
from cue_sync.schemas import RunSession
from cue_sync.store import ChangeEvent, ChangeKind, Subscription

from .config import ShowConfig
from .sessions import Checkpointer, LiveState, SessionManager, summarize_session
from .timer import PropWarning, ShowTimer, TimerState

logger = logging.getLogger(__name__)


class RunShowService:
    """
    Live run-show service.

    Thread Safety:
    - props: guarded by _props_lock (written by store listeners)
    - session/checkpointer: guarded by _session_lock (control plane thread
      and timer thread both end sessions)
    - timer: internally locked

    Usage:
        config = ShowConfig.from_yaml("show.yaml")
        service = RunShowService(config, repo, control_plane, uid="sm1")
        service.setup()
        service.start()
        service.wait()  # Blocks until stopped
    """

    def __init__(
        self,
        config: ShowConfig,
        repo: ProductionRepository,
        control_plane,  # MQTTControlPlane
        uid: str,
        session_manager: Optional[SessionManager] = None,
        clock: Callable[[], float] = time.time,
        tick_interval: float = 1.0,
        change_publisher=None,  # ChangePublisher
        change_subscriber=None,  # ChangeSubscriber
    ):
        self.config = config
        self.repo = repo
        self.control_plane = control_plane
        self.uid = uid
        self.clock = clock
        self.change_publisher = change_publisher
        self.change_subscriber = change_subscriber

        self.session_manager = session_manager or SessionManager(repo, uid, clock=clock)
        self.props_collection = prop_collection(repo)

        self.timer = ShowTimer(
            state=TimerState(
                total_pages=config.total_pages,
                duration_minutes=config.duration_minutes,
                warn_pages=config.warn_pages,
            ),
            props_fn=self.props,
            clock=clock,
            tick_interval=tick_interval,
            on_tick=self._on_tick,
            on_warning=self._on_warning,
            on_complete=self._on_complete,
        )

        # Props (kept current by the store subscription)
        self._props: Dict[str, Prop] = {}
        self._props_lock = threading.Lock()
        self._props_subscription: Optional[Subscription] = None

        # Run session
        self.session: Optional[RunSession] = None
        self.checkpointer: Optional[Checkpointer] = None
        self.scratchpad = ""
        self._session_lock = threading.RLock()

        # Last (phase, page) published, so ticks only publish on change
        self._last_published = None

        # Lifecycle state
        self._running = False
        self._stopped_event = threading.Event()

        logger.info(
            f"RunShowService initialized for show_id={config.show_id} "
            f"production_id={repo.production_id}"
        )

    # ─────────────────────────────────────────────────────────────────────
    # Props
    # ─────────────────────────────────────────────────────────────────────

    def props(self) -> List[Prop]:
        with self._props_lock:
            return list(self._props.values())

    def _on_prop_change(self, event: ChangeEvent, prop: Optional[Prop]) -> None:
        with self._props_lock:
            if event.kind is ChangeKind.REMOVED or prop is None:
                self._props.pop(event.doc_id, None)
            else:
                self._props[event.doc_id] = prop

    def _load_props_file(self) -> None:
        """Seed the props collection from the configured JSON export."""
        if self.config.props_file is None:
            return
        if self.props_collection.list():
            logger.info("Props already stored, skipping props_file import")
            return
        text = self.config.props_file.read_text(encoding="utf-8")
        added = add_props(self.props_collection, import_props_json(text))
        logger.info(f"Imported {len(added)} props from {self.config.props_file}")

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def setup(self):
        """
        Load props, subscribe to prop changes and register commands.

        Must be called before start().
        """
        self._load_props_file()
        self._props_subscription = self.props_collection.subscribe(self._on_prop_change)
        self._setup_control_handlers()
        logger.info(f"Setup complete ({len(self.props())} props)")

    def _setup_control_handlers(self):
        """Register run-show commands with the control plane registry."""
        registry = self.control_plane.command_registry

        registry.register("start", self._handle_start, "Start or resume the show timer")
        registry.register("hold", self._handle_hold, "Hold the show timer")
        registry.register("stop", self._handle_stop, "Stop the timer and end the session")
        registry.register("status", self._handle_status, "Publish current timer status")
        registry.register(
            "goto_page",
            self._handle_goto_page,
            "Move the playhead to a page",
            required=("page",),
        )
        registry.register(
            "scratchpad",
            self._handle_scratchpad,
            "Replace the session scratchpad text",
            required=("text",),
        )
        registry.register("list_commands", self._handle_list_commands, "List available commands")

        logger.info("Control handlers registered")

    def recover(self, session: RunSession, resume: bool) -> Optional[TimerState]:
        """
        Resume or discard an interrupted session.

        Resuming restores the timer held at the recovered playhead; the next
        `start` continues from there.
        """
        if not resume:
            self.session_manager.abandon(session.id)
            logger.info(f"Discarded interrupted session {session.id}")
            return None

        state = self.session_manager.hydrate(session, self.clock())
        with self._session_lock:
            self.session = session
            self.scratchpad = session.live_scratchpad
            self.timer.restore(state)
            self._start_checkpointer(session.id)
        logger.info(
            f"Resumed session {session.id} at page {state.current_page} "
            f"({state.elapsed:.0f}s elapsed)"
        )
        return state

    def start(self):
        """
        Start the service (non-blocking).

        Lifecycle:
        1. Connect control plane
        2. Connect change relay (if configured)
        3. Publish current status
        """
        if self._running:
            logger.warning("Service already running")
            return

        logger.info("Starting run-show service")

        if not self.control_plane.connect(timeout=5.0):
            raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        if self.change_publisher is not None:
            if self.change_publisher.connect():
                self.change_publisher.attach(self.repo.store)
            else:
                logger.warning("Change relay unavailable, running without outbound sync")

        if self.change_subscriber is not None and not self.change_subscriber.connect():
            logger.warning("Change relay unavailable, running without inbound sync")

        self._running = True
        self._stopped_event.clear()
        self._publish(self.timer.snapshot(), force=True)
        logger.info("✅ Run-show service started")

    def wait(self):
        """Block until stop() is called."""
        if not self._running:
            logger.warning("Service not running")
            return

        try:
            while not self._stopped_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Received KeyboardInterrupt, stopping...")
            self.stop()

    def stop(self):
        """
        Stop the service gracefully.

        An active session is ended with the current timer state; the timer
        thread, checkpointer, subscriptions and MQTT clients are shut down.
        """
        if not self._running:
            logger.warning("Service not running")
            self._stopped_event.set()
            return

        logger.info("Stopping run-show service")

        self._end_session(self.timer.snapshot())
        self.timer.shutdown()

        if self._props_subscription is not None:
            self._props_subscription.unsubscribe()
            self._props_subscription = None

        if self.change_publisher is not None:
            self.change_publisher.detach()
            self.change_publisher.disconnect()
        if self.change_subscriber is not None:
            self.change_subscriber.stop()

        self.control_plane.publish_status("stopped")
        self.control_plane.disconnect()

        self._running = False
        self._stopped_event.set()
        logger.info("✅ Run-show service stopped")

    def live_state(self) -> LiveState:
        """(timer snapshot, scratchpad) for checkpoints."""
        with self._session_lock:
            return self.timer.snapshot(), self.scratchpad

    # ─────────────────────────────────────────────────────────────────────
    # Sessions
    # ─────────────────────────────────────────────────────────────────────

    def _start_checkpointer(self, session_id: str) -> None:
        self.checkpointer = Checkpointer(
            self.session_manager,
            session_id,
            self.live_state,
            interval=self.config.checkpoint_interval,
        )
        self.checkpointer.start()

    def _ensure_session(self) -> RunSession:
        with self._session_lock:
            if self.session is None:
                self.session = self.session_manager.start_session(
                    self.config.title, self.timer.snapshot()
                )
                self._start_checkpointer(self.session.id)
            return self.session

    def _end_session(self, final_state: TimerState) -> Optional[Dict[str, Any]]:
        """End the active session (if any) and return its summary."""
        with self._session_lock:
            session, checkpointer = self.session, self.checkpointer
            self.session, self.checkpointer = None, None
            scratchpad, self.scratchpad = self.scratchpad, ""

        if session is None:
            return None
        if checkpointer is not None:
            checkpointer.stop()

        ended = self.session_manager.end_session(session.id, final_state, scratchpad)
        notes = self.repo.line_notes.list(where={'sessionId': session.id})
        summary = summarize_session(ended, notes).to_dict()
        logger.info(
            f"Session {session.id} ended: {summary['durationSeconds']:.0f}s, "
            f"{summary['holdCount']} holds, {summary['noteCount']} notes"
        )
        return summary

    # ─────────────────────────────────────────────────────────────────────
    # Timer listeners (Timer Thread or Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    def _status_payload(self, state: TimerState) -> Dict[str, Any]:
        with self._session_lock:
            session_id = self.session.id if self.session else None
            healthy = self.checkpointer.healthy if self.checkpointer else None
        return {
            'showId': self.config.show_id,
            'sessionId': session_id,
            'checkpointHealthy': healthy,
            'timer': state.to_dict(),
        }

    def _publish(self, state: TimerState, force: bool = False, **extra) -> None:
        marker = (state.phase, state.current_page)
        if not force and marker == self._last_published:
            return
        self._last_published = marker
        payload = self._status_payload(state)
        payload.update(extra)
        self.control_plane.publish_status(state.phase.value, payload)

    def _on_tick(self, state: TimerState) -> None:
        if self._running:
            self._publish(state)

    def _on_warning(self, warning: PropWarning) -> None:
        logger.info(f"⚠️ {warning.message()}")
        if self._running:
            self._publish(self.timer.snapshot(), force=True, warning=warning.to_dict())

    def _on_complete(self, completed: TimerState) -> None:
        summary = self._end_session(completed)
        self.control_plane.publish_status(
            "completed",
            {'showId': self.config.show_id, 'timer': completed.to_dict(), 'summary': summary},
        )

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    def _handle_start(self, command: Dict):
        total_pages = command.get("total_pages")
        duration_minutes = command.get("duration_minutes")
        state = self.timer.start(
            int(total_pages) if total_pages is not None else None,
            float(duration_minutes) if duration_minutes is not None else None,
        )
        self._ensure_session()
        self._publish(state, force=True)
        logger.info(f"Timer running from page {state.current_page}")

    def _handle_hold(self, command: Dict):
        state = self.timer.hold()
        with self._session_lock:
            checkpointer = self.checkpointer
        if checkpointer is not None:
            checkpointer.write_now()
        self._publish(state, force=True)

    def _handle_stop(self, command: Dict):
        final_state = self.timer.snapshot()
        state = self.timer.stop()
        summary = self._end_session(final_state)
        self._publish(state, force=True, summary=summary)

    def _handle_status(self, command: Dict):
        self._publish(self.timer.snapshot(), force=True)

    def _handle_goto_page(self, command: Dict):
        try:
            page = int(command["page"])
        except (TypeError, ValueError):
            raise ValueError(f"page must be an integer, got {command['page']!r}")
        state = self.timer.goto_page(page)
        self._publish(state, force=True)

    def _handle_scratchpad(self, command: Dict):
        with self._session_lock:
            self.scratchpad = str(command["text"])
        self._publish(self.timer.snapshot(), force=True)
        logger.info("Scratchpad updated")

    def _handle_list_commands(self, command: Dict):
        help_text = self.control_plane.command_registry.get_help()
        self.control_plane.publish_status("commands", {'commands': help_text})
