#!/usr/bin/env python3
"""
Run Show - Entry Point
======================

Runs one live performance (or rehearsal) of a production:
- Keeps the production's props current from the document store
- Advances the page timer and warns about upcoming prop entrances
- Checkpoints the run session every few seconds
- Offers to resume or discard a session interrupted by a crash
- Takes start / hold / stop / goto_page commands over MQTT

Usage:
    python run_show.py --config config/show.yaml

Components:
    - RunShowService (cue_runshow): timer, sessions, command handlers
    - MQTTControlPlane (cue_control): commands in, retained status out
    - JsonFileDocumentStore / MemoryDocumentStore (cue_sync): production data
    - ChangePublisher / ChangeSubscriber (cue_sync): optional store relay

Startup:
    config → logging → store + repository → control plane (+ relay)
    → service.setup() → session recovery → service.start() → wait

Signals:
    SIGTERM and SIGINT end the active session and shut down cleanly.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Callable, Optional, Tuple

from cue_control import MQTTControlPlane
from cue_runshow import RunShowService, ShowConfig
from cue_script import ScriptOffset, script_page_label
from cue_sync import (
    ChangePublisher,
    ChangeSubscriber,
    DocumentStore,
    JsonFileDocumentStore,
    MemoryDocumentStore,
    create_logger,
)
from cue_sync.repository import ProductionRepository
from cue_sync.schemas import RunSession


logger = logging.getLogger("run_show")


def setup_logging(log_file: Optional[Path] = None) -> None:
    """Console logging plus an optional log file."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def open_store(config: ShowConfig) -> DocumentStore:
    store_logger = create_logger("store", production_id=config.production_id)
    if config.store_file:
        logger.info(f"💾 Store file: {config.store_file}")
        return JsonFileDocumentStore(config.store_file, logger=store_logger)
    logger.warning("⚠️  No store_file configured, data is kept in memory only")
    return MemoryDocumentStore(logger=store_logger)


def build_control_plane(config: ShowConfig) -> MQTTControlPlane:
    mqtt = config.mqtt_config
    logger.info(f"🔌 Control plane for show '{config.show_id}' on {mqtt.broker}:{mqtt.port}")
    return MQTTControlPlane(
        broker_host=mqtt.broker,
        broker_port=mqtt.port,
        show_id=config.show_id,
        username=mqtt.username,
        password=mqtt.password,
    )


def build_relay(
    config: ShowConfig,
    store: DocumentStore,
) -> Tuple[Optional[ChangePublisher], Optional[ChangeSubscriber]]:
    """Publisher/subscriber pair when sync_changes is on, else (None, None)."""
    mqtt = config.mqtt_config
    if not mqtt.sync_changes:
        return None, None

    topic = mqtt.change_topic_for(config.production_id)
    sync_logger = create_logger("sync", production_id=config.production_id)
    connection = dict(
        broker_host=mqtt.broker,
        broker_port=mqtt.port,
        topic=topic,
        logger=sync_logger,
        username=mqtt.username,
        password=mqtt.password,
        qos=mqtt.qos,
    )
    publisher = ChangePublisher(
        production_id=config.production_id,
        client_id=f"cue_pub_{store.origin}",
        **connection,
    )
    subscriber = ChangeSubscriber(store=store, **connection)
    logger.info(f"🔁 Change relay enabled on {topic}")
    return publisher, subscriber


def prompt_resume(session: RunSession) -> bool:
    """Ask whether to resume an interrupted session."""
    print(
        f"\nInterrupted session found: '{session.title}' "
        f"(page {session.live_current_page}, {session.live_elapsed_seconds:.0f}s elapsed)"
    )
    while True:
        answer = input("Resume it? [r]esume / [d]iscard: ").strip().lower()
        if answer in ("r", "resume", "y", "yes"):
            return True
        if answer in ("d", "discard", "n", "no"):
            return False


class RunShowApp:
    """
    Application wrapper for RunShowService.

    Owns component wiring, session recovery, signal handling and shutdown.
    """

    def __init__(
        self,
        config_path: Path,
        recovery: Optional[str] = None,
        prompt: Callable[[RunSession], bool] = prompt_resume,
    ):
        """
        Args:
            config_path: Show configuration YAML
            recovery: "resume" or "discard" to skip the prompt
            prompt: Asks the operator whether to resume a session
        """
        self.config_path = config_path
        self.recovery = recovery
        self.prompt = prompt

        self.config: Optional[ShowConfig] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.service: Optional[RunShowService] = None
        self._shutdown_requested = False

    def setup(self):
        logger.info("=" * 80)
        logger.info("🎭 Cue Run Show - Starting")
        logger.info("=" * 80)

        self.config = ShowConfig.from_yaml(self.config_path)
        logger.info(
            f"✅ Configuration loaded from {self.config_path} "
            f"(show_id={self.config.show_id}, production_id={self.config.production_id})"
        )

        store = open_store(self.config)
        repo = ProductionRepository(store, self.config.production_id)
        self.control_plane = build_control_plane(self.config)
        change_publisher, change_subscriber = build_relay(self.config, store)

        self.service = RunShowService(
            config=self.config,
            repo=repo,
            control_plane=self.control_plane,
            uid=self.config.user_id,
            change_publisher=change_publisher,
            change_subscriber=change_subscriber,
        )
        self.service.setup()
        self._recover_session()

    def _recover_session(self):
        session = self.service.session_manager.detect_active_session()
        if session is None:
            return

        if self.recovery is not None:
            resume = self.recovery == "resume"
        else:
            resume = self.prompt(session)

        state = self.service.recover(session, resume)
        if state is None:
            return
        script = self.config.script_config
        offset = ScriptOffset(script.start_page, script.start_half)
        label = script_page_label(state.current_page, "", offset, script.split_mode)
        logger.info(f"⏸️  Session held at script page {label}; send 'start' to resume")

    def run(self):
        """Start the service and block until a signal or `stop` ends it."""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self.service.start()
            logger.info(f"✅ Listening on {self.control_plane.command_topic} (Ctrl+C to stop)")
            self.service.wait()
        except Exception as e:
            logger.error(f"❌ Service error: {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        """End the active session and disconnect. Runs once."""
        if self._shutdown_requested:
            return
        self._shutdown_requested = True

        logger.info("🛑 Shutting down run-show service")
        if self.service:
            try:
                self.service.stop()
            except Exception as e:
                logger.error(f"❌ Error stopping service: {e}")
        logger.info("✅ Shutdown complete")

    def _signal_handler(self, signum, frame):
        logger.info(f"⚠️  Received {signal.Signals(signum).name}")
        self.shutdown()
        sys.exit(0)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Cue Run Show - live show timer with prop warnings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_show.py --config config/show.yaml
  python run_show.py --config config/show.yaml --resume
  python run_show.py --config config/show.yaml --no-log-file
        """
    )
    parser.add_argument('--config', type=Path, required=True,
                        help='Show configuration YAML')
    parser.add_argument('--log-file', type=Path, default=Path('logs/runshow.log'),
                        help='Log file (default: logs/runshow.log)')
    parser.add_argument('--no-log-file', action='store_true',
                        help='Console logging only')

    recovery = parser.add_mutually_exclusive_group()
    recovery.add_argument('--resume', dest='recovery', action='store_const', const='resume',
                          help='Resume an interrupted session without prompting')
    recovery.add_argument('--discard', dest='recovery', action='store_const', const='discard',
                          help='Discard an interrupted session without prompting')

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    setup_logging(None if args.no_log_file else args.log_file)
    app = RunShowApp(config_path=args.config, recovery=args.recovery)

    try:
        app.setup()
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)
    app.run()


if __name__ == '__main__':
    main()
