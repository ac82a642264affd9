"""
LedLink MQTT Communication Package
==================================

Bounded Context: Command/Status Protocol between Button and LED nodes

This package provides the broker session, topic routing, payload codec and
reconnect policy shared by both node roles.

Architecture:
- schemas/: Immutable message types (CommandMessage, StatusMessage)
- codec: JSON wire encoding bounded by a maximum payload size
- router: Topic → handler registry
- session: paho-mqtt connection state machine
- reconnect: Fixed-interval recovery
- logging/: Structured JSON diagnostics

Public API
----------
Schemas:
    LedState, CommandMessage, StatusMessage, InboundFrame

Protocol:
    CommandCodec, TopicRouter, BrokerSession, ConnectionState, ReconnectPolicy
    MessageKind, command_topic, status_topic

Errors:
    LedLinkError, ConnectError, SubscribeError, PublishError,
    PayloadTooLargeError, DecodeError

Logging:
    LogEvent, StructuredLogger, create_logger

Example (LED node):
    >>> from ledlink_mqtt import (
    ...     BrokerSession, TopicRouter, CommandCodec, ReconnectPolicy,
    ...     command_topic, create_logger,
    ... )
    >>> logger = create_logger("led_node")
    >>> router = TopicRouter(logger)
    >>> router.register(command_topic("ledNode07"), handle_command)
    >>> session = BrokerSession("ledNode07", "localhost", router, logger)
    >>> ReconnectPolicy(logger).connect_forever(
    ...     session, lambda s: s.subscribe(command_topic("ledNode07"))
    ... )
"""

# Version
__version__ = "1.0.0"

# Schemas
from .schemas import (
    InboundFrame,
    LedState,
    CommandMessage,
    StatusMessage,
)

# Errors
from .errors import (
    LedLinkError,
    ConnectError,
    SubscribeError,
    PublishError,
    PayloadTooLargeError,
    DecodeError,
)

# Protocol
from .topics import MessageKind, command_topic, status_topic, validate_identity
from .codec import CommandCodec, DEFAULT_MAX_PAYLOAD_SIZE
from .router import TopicRouter
from .session import BrokerSession, ConnectionState
from .reconnect import ReconnectPolicy, DEFAULT_RETRY_INTERVAL

# Logging
from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    # Version
    '__version__',
    # Schemas
    'InboundFrame',
    'LedState',
    'CommandMessage',
    'StatusMessage',
    # Errors
    'LedLinkError',
    'ConnectError',
    'SubscribeError',
    'PublishError',
    'PayloadTooLargeError',
    'DecodeError',
    # Protocol
    'MessageKind',
    'command_topic',
    'status_topic',
    'validate_identity',
    'CommandCodec',
    'DEFAULT_MAX_PAYLOAD_SIZE',
    'TopicRouter',
    'BrokerSession',
    'ConnectionState',
    'ReconnectPolicy',
    'DEFAULT_RETRY_INTERVAL',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
