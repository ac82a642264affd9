"""
LED Command / Status Message Schemas
====================================

Bounded Context: Wire Data Structures

Design:
- Frozen dataclasses (immutability)
- Wire key names kept in to_dict()/from_dict() only
- from_dict() validates and raises DecodeError

Message Flow:
    ButtonController → CommandMessage → <led>/ledCommand → LedController
    LedController → StatusMessage → <button>/ledStatus → ButtonController

Wire format:
    Command: {"senderID": "btnNode07", "cmd": "on"}
    Status:  {"status": "on", "message": "I've seen the light!"}
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any

from ..errors import DecodeError


class LedState(str, Enum):
    """Binary output state, also the closed set of command values."""
    ON = "on"
    OFF = "off"

    @classmethod
    def parse(cls, value: Any, field: str) -> 'LedState':
        """
        Map a wire value onto the enum.

        Raises:
            DecodeError: If value is not exactly "on" or "off"
        """
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(
                f"Unrecognized {field} value: {value!r}",
                field=field,
                value=value
            )


def _require_str(data: Dict[str, Any], key: str) -> str:
    if key not in data:
        raise DecodeError(f"Missing required field: {key}", field=key)
    value = data[key]
    if not isinstance(value, str):
        raise DecodeError(
            f"Field {key} must be a string, got {type(value).__name__}",
            field=key,
            value=value
        )
    return value


@dataclass(frozen=True)
class CommandMessage:
    """
    Command sent by a button node to an LED node.

    Attributes:
        sender_id: Identity of the commanding node (status replies go there)
        cmd: Requested LED state

    Example:
        >>> msg = CommandMessage(sender_id="btnNode07", cmd=LedState.ON)
        >>> msg.to_dict()
        {'senderID': 'btnNode07', 'cmd': 'on'}
    """
    sender_id: str
    cmd: LedState

    def __post_init__(self):
        """Validate invariants."""
        if not self.sender_id:
            raise ValueError("sender_id cannot be empty")

    def to_dict(self) -> Dict[str, str]:
        """Serialize to wire dict (key order is part of the format)."""
        return {
            'senderID': self.sender_id,
            'cmd': self.cmd.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CommandMessage':
        """
        Deserialize from wire dict.

        Raises:
            DecodeError: Missing/non-string fields, empty senderID or an
                unrecognized cmd value
        """
        sender_id = _require_str(data, 'senderID')
        cmd = LedState.parse(_require_str(data, 'cmd'), 'cmd')
        if not sender_id:
            raise DecodeError("senderID cannot be empty", field='senderID', value=sender_id)
        return cls(sender_id=sender_id, cmd=cmd)


@dataclass(frozen=True)
class StatusMessage:
    """
    Status report sent by an LED node after acting on a command.

    Attributes:
        status: Resulting LED state
        message: Human-readable confirmation text
    """
    status: LedState
    message: str

    def to_dict(self) -> Dict[str, str]:
        """Serialize to wire dict (key order is part of the format)."""
        return {
            'status': self.status.value,
            'message': self.message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StatusMessage':
        """
        Deserialize from wire dict.

        Raises:
            DecodeError: Missing/non-string fields or unrecognized status
        """
        status = LedState.parse(_require_str(data, 'status'), 'status')
        message = _require_str(data, 'message')
        return cls(status=status, message=message)
