"""
Topic naming for LedLink nodes.

Every topic is `<recipientIdentity>/<messageKind>`: the identity segment always
names the node that should receive the message. A node subscribes to topics
built from its own identity and publishes to topics built from its peer's.

    ledNode07/ledCommand   button → LED
    btnNode07/ledStatus    LED → button
"""

from enum import Enum

_RESERVED = ('/', '+', '#')


class MessageKind(str, Enum):
    """Closed set of message kinds (last topic segment)."""
    LED_COMMAND = "ledCommand"
    LED_STATUS = "ledStatus"


def validate_identity(identity: str) -> str:
    """
    Check that a node identity is usable as a client id and topic segment.

    Raises:
        ValueError: If empty or containing a topic separator or wildcard
    """
    if not identity:
        raise ValueError("Node identity cannot be empty")
    for ch in _RESERVED:
        if ch in identity:
            raise ValueError(f"Node identity {identity!r} must not contain {ch!r}")
    return identity


def node_topic(identity: str, kind: MessageKind) -> str:
    """Build `<identity>/<kind>`."""
    return f"{validate_identity(identity)}/{MessageKind(kind).value}"


def command_topic(identity: str) -> str:
    """Topic on which `identity` receives LED commands."""
    return node_topic(identity, MessageKind.LED_COMMAND)


def status_topic(identity: str) -> str:
    """Topic on which `identity` receives LED status reports."""
    return node_topic(identity, MessageKind.LED_STATUS)
