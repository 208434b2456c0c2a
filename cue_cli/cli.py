"""
Cue CLI - Main entry point.

Provides a command-line interface for driving a RunShowService over MQTT.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from cue_control.plane import command_topic, status_topic

from .mqtt_client import MQTTCommandClient


SIMPLE_COMMANDS = {
    'start': 'start',
    'hold': 'hold',
    'stop': 'stop',
    'status': 'status',
    'list-commands': 'list_commands',
}


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML command file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the YAML is invalid or has no `command` key
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(config, dict) or not config.get('command'):
        raise ValueError(f"{config_path} must define a 'command' key")
    return config


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed arguments into a command payload."""
    if args.command in SIMPLE_COMMANDS:
        command: Dict[str, Any] = {'command': SIMPLE_COMMANDS[args.command]}
        if args.command == 'start':
            if args.total_pages is not None:
                command['total_pages'] = args.total_pages
            if args.duration is not None:
                command['duration_minutes'] = args.duration
        return command

    if args.command == 'goto-page':
        return {'command': 'goto_page', 'page': args.page}

    if args.command == 'scratchpad':
        return {'command': 'scratchpad', 'text': args.text}

    if args.command == 'send':
        return load_yaml_config(args.config)

    raise ValueError(f"Unknown command: {args.command}")


def send_command(
    command: Dict[str, Any],
    show_id: str,
    broker: str = "localhost",
    port: int = 1883
) -> None:
    client = MQTTCommandClient(broker=broker, port=port)
    client.send_command(command_topic(show_id), command, qos=1)


def read_status(
    show_id: str,
    broker: str = "localhost",
    port: int = 1883,
    timeout: float = 3.0
) -> Optional[Dict[str, Any]]:
    client = MQTTCommandClient(broker=broker, port=port)
    return client.read_status(status_topic(show_id), timeout=timeout)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cue-cli",
        description="Cue CLI - Send run-show commands over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Timer control
  cue-cli --show-id hamlet_tech start
  cue-cli --show-id hamlet_tech start --total-pages 96 --duration 130
  cue-cli --show-id hamlet_tech hold
  cue-cli --show-id hamlet_tech stop

  # Move the playhead
  cue-cli --show-id hamlet_tech goto-page 42

  # Session scratchpad
  cue-cli --show-id hamlet_tech scratchpad "Act 2 fight call ran long"

  # Status (print the retained status after sending)
  cue-cli --show-id hamlet_tech status --wait 3

  # Raw command from YAML
  cue-cli --show-id hamlet_tech send config/commands/goto_page.yaml
"""
    )

    parser.add_argument(
        "--show-id",
        default="default",
        help="Target show ID (default: default)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    start = subparsers.add_parser('start', help='Start or resume the show timer')
    start.add_argument('--total-pages', type=int, default=None, help='Override script length')
    start.add_argument('--duration', type=float, default=None, help='Override running time (minutes)')

    subparsers.add_parser('hold', help='Hold the show timer')
    subparsers.add_parser('stop', help='Stop the timer and end the session')

    status = subparsers.add_parser('status', help='Ask the service to publish its status')
    status.add_argument('--wait', type=float, default=0.0,
                        help='Seconds to wait for the status reply (0 = do not wait)')

    subparsers.add_parser('list-commands', help='List commands the service accepts')

    goto_page = subparsers.add_parser('goto-page', help='Move the playhead to a page')
    goto_page.add_argument('page', type=int, help='Script page')

    scratchpad = subparsers.add_parser('scratchpad', help='Replace the session scratchpad')
    scratchpad.add_argument('text', help='Scratchpad text')

    send = subparsers.add_parser('send', help='Send a raw command from YAML')
    send.add_argument('config', help='Path to command YAML')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        command = build_command(args)
        send_command(command, args.show_id, args.broker, args.port)

        if args.command == 'status' and args.wait > 0:
            status = read_status(args.show_id, args.broker, args.port, timeout=args.wait)
            if status is None:
                print("⚠️ No status received", file=sys.stderr)
                sys.exit(2)
            print(json.dumps(status, indent=2))

    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
