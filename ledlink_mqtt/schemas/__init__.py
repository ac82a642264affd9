"""
LedLink MQTT Schemas
====================

Bounded Context: Data Structures

Immutable, typed payloads exchanged between button and LED nodes.

Public API
----------
    LedState: Enum (ON, OFF)
    CommandMessage: Button → LED command
    StatusMessage: LED → Button status report
    InboundFrame: Raw (topic, payload) pair drained from the transport

Example:
    >>> from ledlink_mqtt.schemas import CommandMessage, LedState
    >>> msg = CommandMessage(sender_id="btnNode07", cmd=LedState.ON)
"""

from .frame import InboundFrame
from .messages import LedState, CommandMessage, StatusMessage

__all__ = [
    'InboundFrame',
    'LedState',
    'CommandMessage',
    'StatusMessage',
]
