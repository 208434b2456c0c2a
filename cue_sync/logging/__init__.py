"""
Structured Logging for Cue
==========================

Bounded Context: Observability

JSON-structured logging shared by the store, zone registry, show timer and
session checkpointing.

Design:
- JSON output (parseable by ELK, CloudWatch, Loki)
- Typed events (enums prevent typos)
- Contextual metadata (session_id, page_key, prop_id, etc.)
- Thread-safe

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from cue_sync.logging import StructuredLogger, LogEvent
    >>> logger = StructuredLogger(component="runshow")
    >>> logger.info(
    ...     event=LogEvent.TIMER_STARTED,
    ...     message="Timer started",
    ...     metadata={'total_pages': 96, 'duration_minutes': 130}
    ... )
"""

from .events import LogEvent
from .structured import StructuredLogger, JSONFormatter, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'JSONFormatter',
    'create_logger',
]
