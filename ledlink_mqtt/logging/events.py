"""
Structured Log Event Types
==========================

Bounded Context: Diagnostic Event Taxonomy

This module defines typed event names for the node's diagnostic stream.

Design:
- Enum-based (prevents typos, enables autocomplete)
- Hierarchical naming (component.category.action)
- Searchable in log aggregators

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, session, router, codec, node, button
    category: connected, publish, reconnect
    action: success, failed, dropped

Example Log Query (jq):
    cat node.log | jq 'select(.event == "node.command_unknown")'
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: Broker interactions
    - session.*: Connection state machine
    - router.*: Inbound frame dispatch
    - codec.*: Payload encoding/decoding
    - node.*, button.*: Role-specific behaviour
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """CONNACK accepted by the broker."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """Broker connection lost or closed."""

    MQTT_SUBSCRIBED = "mqtt.subscribed"
    """Subscription acknowledged by the broker."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Frame handed to the transport."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Frame rejected (not ready, oversize or transport error)."""

    MQTT_FRAME_RECEIVED = "mqtt.frame.received"
    """Inbound frame buffered from the transport."""

    # ========== Session Events ==========
    SESSION_STATE_CHANGED = "session.state_changed"
    """ConnectionState transition."""

    SESSION_READY = "session.ready"
    """Connected and all subscriptions acknowledged."""

    RECONNECT_ATTEMPT = "session.reconnect.attempt"
    """Starting a connect attempt."""

    RECONNECT_FAILED = "session.reconnect.failed"
    """Connect attempt failed, will retry after the fixed interval."""

    # ========== Router Events ==========
    TOPIC_UNHANDLED = "router.topic_unhandled"
    """Frame arrived on a topic with no registered handler."""

    HANDLER_REGISTERED = "router.handler_registered"
    """Handler registered (or replaced) for a topic."""

    HANDLER_FAILED = "router.handler_failed"
    """Handler raised something other than a decode failure."""

    # ========== Codec Events ==========
    DECODE_FAILED = "codec.decode_failed"
    """Payload is malformed or violates the schema."""

    ENCODE_FAILED = "codec.encode_failed"
    """Encoded payload exceeds the configured maximum size."""

    # ========== Node Events ==========
    NODE_STARTED = "node.started"
    """Control loop started."""

    NODE_STOPPED = "node.stopped"
    """Control loop stopped."""

    COMMAND_SENT = "node.command_sent"
    """Button node published a command."""

    COMMAND_RECEIVED = "node.command_received"
    """LED node accepted a command."""

    COMMAND_UNKNOWN = "node.command_unknown"
    """LED node received a command value outside the enum."""

    STATUS_SENT = "node.status_sent"
    """LED node published its status."""

    STATUS_RECEIVED = "node.status_received"
    """Button node received a status report."""

    OUTPUT_CHANGED = "node.output_changed"
    """Local binary output set on or off."""

    PRESS_DROPPED = "button.press_dropped"
    """Button edge ignored because the session is not ready."""

    BUTTON_EDGE = "button.edge"
    """Debounced input edge detected."""

