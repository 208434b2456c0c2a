"""
CommandRegistry - Explicit command registration for the run-show service

Bounded Context: Command registration and validation
Responsibilities:
  - Register command names with handlers and help text
  - Reject unknown commands before anything runs
  - Validate required payload fields
  - Introspection for the `list_commands` command

Threading: registration takes a lock; lookups read a snapshot
"""

import threading
from typing import Any, Callable, Dict, Optional, Set, Tuple


Handler = Callable[[Dict[str, Any]], Any]


class CommandNotAvailableError(Exception):
    """Raised when a command name has no registered handler."""
    pass


class CommandArgumentError(ValueError):
    """Raised when a command payload lacks a required field."""
    pass


class CommandRegistry:
    """
    Registry of control commands.

    Every handler receives the full command payload (a dict, possibly
    containing only `command`).

    Example:
        registry = CommandRegistry()
        registry.register('hold', lambda data: timer.hold(), "Hold the show")
        registry.register('goto_page', service.goto_page, "Jump to page",
                          required=('page',))
        registry.execute('goto_page', {'command': 'goto_page', 'page': 12})
    """

    def __init__(self):
        self._commands: Dict[str, Handler] = {}
        self._descriptions: Dict[str, str] = {}
        self._required: Dict[str, Tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def register(
        self,
        command: str,
        handler: Handler,
        description: str,
        required: Tuple[str, ...] = (),
    ) -> None:
        """
        Register a command.

        Raises:
            ValueError: If the name is empty, contains spaces, or is taken
        """
        if not command or command != command.strip().lower() or ' ' in command:
            raise ValueError(f"Invalid command name: {command!r}")

        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            self._commands[command] = handler
            self._descriptions[command] = description
            self._required[command] = tuple(required)

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a command's handler and return its result.

        Raises:
            CommandNotAvailableError: Unknown command
            CommandArgumentError: A required payload field is missing
        """
        with self._lock:
            handler = self._commands.get(command)
            required = self._required.get(command, ())

        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )

        data = dict(command_data or {})
        data.setdefault('command', command)
        missing = [name for name in required if data.get(name) is None]
        if missing:
            raise CommandArgumentError(
                f"Command '{command}' requires: {', '.join(missing)}"
            )

        return handler(data)

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        with self._lock:
            return set(self._commands)

    def get_help(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._descriptions)

    def count(self) -> int:
        return len(self._commands)
