"""
Structured JSON Logger
=====================

Bounded Context: Diagnostic Sink

Every node component reports through one append-only stream of JSON
entries: discarded frames, decode failures, reconnect attempts, commands
and status reports. Nothing here ever raises back into the caller.

Design:
- One JSON object per line (pipe through `jq`)
- Typed events (LogEvent enum) carried on the record as `record.event`,
  so pytest's caplog can assert on them without parsing JSON
- Bound context: `bind(identity=..., role=...)` returns a logger whose
  entries all carry that context next to their own metadata

Example:
    >>> logger = create_logger("led_node").bind(identity="ledNode07")
    >>> logger.info(
    ...     event=LogEvent.COMMAND_RECEIVED,
    ...     message="cmd = on from btnNode07",
    ...     metadata={'sender_id': 'btnNode07', 'cmd': 'on'}
    ... )

Output:
    {"timestamp": "2026-10-19T15:30:45.123456+00:00", "level": "INFO",
     "component": "led_node", "event": "node.command_received",
     "message": "cmd = on from btnNode07",
     "context": {"identity": "ledNode07"},
     "metadata": {"sender_id": "btnNode07", "cmd": "on"}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent


class StructuredLogger:
    """
    JSON diagnostic logger for one component.

    Attributes:
        component: Component name (e.g. "button_node", "watch")
        context: Key/values attached to every entry
        logger: Underlying `logging.Logger` (named `ledlink.<component>`)
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.component = component
        self.context: Dict[str, Any] = dict(context or {})
        self.logger_name = logger_name or f"ledlink.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        # Nothing configured upstream (library use): write JSON to stderr
        if not self.logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context: Any) -> "StructuredLogger":
        """Return a logger for the same component with extra bound context."""
        return StructuredLogger(
            component=self.component,
            level=self.logger.level,
            logger_name=self.logger_name,
            context={**self.context, **context},
        )

    def _log(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        if self.context:
            entry['context'] = self.context
        if metadata:
            entry['metadata'] = metadata
        if exc_info is not None:
            entry['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info),
            }

        # default=str: metadata may carry enums, paths or bytes
        self.logger.log(level, json.dumps(entry, default=str), extra={'event': event.value})

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """Frame-level detail (received frames, handler registration, raw edges)."""
        self._log(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log(logging.INFO, event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Recoverable condition: a retry is scheduled or a frame was discarded.

        Args:
            event: Typed log event
            message: Human-readable message
            metadata: Additional context
            exc_info: Exception that caused the condition, summarized in the entry
        """
        self._log(logging.WARNING, event, message, metadata, exc_info)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Failure the node survives but an operator should look at.

        Example:
            >>> try:
            ...     codec.encode_status(status)
            ... except PayloadTooLargeError as e:
            ...     logger.error(
            ...         event=LogEvent.ENCODE_FAILED,
            ...         message="Status payload exceeds the maximum payload size",
            ...         exc_info=e,
            ...     )
        """
        self._log(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """Emit the record message untouched: StructuredLogger already wrote JSON."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_logger(
    component: str,
    level: int = logging.INFO,
    **context: Any
) -> StructuredLogger:
    """
    Build a StructuredLogger, optionally with bound context.

    Example:
        >>> logger = create_logger("button_node", identity="btnNode07", role="button")
    """
    return StructuredLogger(component=component, level=level, context=context)
