"""
Structured Logging for LedLink nodes
====================================

Bounded Context: Diagnostics

Every node component reports through one append-only JSON event stream. The
stream is never read back by the nodes.

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from ledlink_mqtt.logging import create_logger, LogEvent
    >>> logger = create_logger("led_node")
    >>> logger.warning(
    ...     event=LogEvent.COMMAND_UNKNOWN,
    ...     message="Unknown command received (blink)",
    ...     metadata={'topic': 'ledNode07/ledCommand'}
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
