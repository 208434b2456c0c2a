"""
Structured JSON Logger
======================

Bounded Context: Observability Infrastructure

Every cue component logs through a StructuredLogger: a typed LogEvent, a
human message and a metadata dict. JSONFormatter renders each record as one
JSON object per line.

Design:
- The structured entry rides on the stdlib LogRecord (`record.cue`) and is
  rendered by JSONFormatter, so handlers added by entry scripts keep working
- bind() returns a child logger whose context is merged into every entry
  (production id, session id)
- Thread-safe via the standard logging module

Example:
    >>> logger = create_logger("sessions").bind(production_id="prod_123")
    >>> logger.info(
    ...     event=LogEvent.SESSION_STARTED,
    ...     message="Session 'Tech Run' started",
    ...     metadata={'session_id': "s1"}
    ... )

Output:
    {
        "timestamp": "2026-03-14T19:30:45.123456+00:00",
        "level": "INFO",
        "component": "sessions",
        "event": "session.started",
        "message": "Session 'Tech Run' started",
        "context": {"production_id": "prod_123"},
        "metadata": {"session_id": "s1"}
    }
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent


ENTRY_ATTR = "cue"


def _exception_fields(exc: BaseException) -> Dict[str, str]:
    return {'type': type(exc).__name__, 'message': str(exc)}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Records logged through StructuredLogger carry their entry; plain stdlib
    records are rendered with level, logger name and message.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = getattr(record, ENTRY_ATTR, None)
        if entry is None:
            entry = {
                'level': record.levelname,
                'component': record.name,
                'message': record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                entry['exception'] = _exception_fields(record.exc_info[1])

        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        return json.dumps({'timestamp': timestamp, **entry}, default=str)


class StructuredLogger:
    """
    JSON structured logger.

    Attributes:
        component: Component name (e.g., "store", "timer")
        context: Fields merged into every entry (see bind())
        logger: Underlying stdlib logger, "cue.<component>"
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.component = component
        self.context = dict(context or {})
        self.logger = logging.getLogger(logger_name or f"cue.{component}")
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context: Any) -> 'StructuredLogger':
        """Child logger sharing the stdlib logger, with extra context."""
        return StructuredLogger(
            component=self.component,
            level=self.logger.level,
            logger_name=self.logger.name,
            context={**self.context, **context},
        )

    def log(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        entry: Dict[str, Any] = {
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        if self.context:
            entry['context'] = dict(self.context)
        if metadata:
            entry['metadata'] = dict(metadata)
        if exc_info is not None:
            entry['exception'] = _exception_fields(exc_info)

        # Tracebacks only for errors; warnings keep the one-line summary
        self.logger.log(
            level,
            message,
            extra={ENTRY_ATTR: entry},
            exc_info=exc_info if level >= logging.ERROR else None,
        )

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log(logging.INFO, event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        self.log(logging.WARNING, event, message, metadata, exc_info)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        """
        Example:
            >>> try:
            ...     store.update("sessions", sid, fields)
            ... except DocumentNotFoundError as e:
            ...     logger.error(
            ...         event=LogEvent.SESSION_CHECKPOINT_FAILED,
            ...         message="Session document missing",
            ...         exc_info=e,
            ...         metadata={'session_id': sid}
            ...     )
        """
        self.log(logging.ERROR, event, message, metadata, exc_info)


def create_logger(component: str, level: int = logging.INFO, **context: Any) -> StructuredLogger:
    """
    Example:
        >>> logger = create_logger("store", level=logging.DEBUG)
        >>> relay = create_logger("sync", production_id="prod_123")
    """
    return StructuredLogger(component=component, level=level, context=context)
