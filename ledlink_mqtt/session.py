"""
Broker Session
==============

Bounded Context: MQTT connection lifecycle

This module owns the single broker connection of a node.

Design:
- One paho-mqtt client per session, driven synchronously with loop(timeout)
  (no background thread: every callback runs on the caller's thread)
- Explicit state machine:
      DISCONNECTED → CONNECTING → SUBSCRIBING → READY
  any transport error or disconnect returns to DISCONNECTED
- publish() only succeeds in READY; subscribe() only before READY
- Inbound frames are buffered by on_message and dispatched to the
  TopicRouter from poll(), in broker-delivery order
- Every wait is bounded (connect_timeout, poll_timeout)

Example:
    >>> session = BrokerSession(
    ...     identity="ledNode07",
    ...     broker_host="localhost",
    ...     router=router,
    ...     logger=logger,
    ... )
    >>> session.connect(register=controller.register_myself)
    >>> while True:
    ...     session.pump()
"""

import time
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional

import paho.mqtt.client as mqtt

from .codec import DEFAULT_MAX_PAYLOAD_SIZE
from .errors import ConnectError, SubscribeError, PublishError, PayloadTooLargeError
from .logging import StructuredLogger, LogEvent
from .router import TopicRouter
from .schemas import InboundFrame
from .topics import validate_identity

# Granted QoS value a broker returns in SUBACK for a refused subscription
SUBACK_FAILURE = 0x80

# Upper bound for a single network-loop wait while a handshake is pending
_HANDSHAKE_STEP = 0.1


class ConnectionState(str, Enum):
    """Broker session state (owned exclusively by BrokerSession)."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBING = "subscribing"
    READY = "ready"


RegisterHook = Callable[['BrokerSession'], None]
StateObserver = Callable[[ConnectionState, ConnectionState], None]


class BrokerSession:
    """
    Single logical connection to the MQTT broker.

    Attributes:
        identity: Node identity, used as MQTT client id
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        router: TopicRouter receiving inbound frames
        logger: Structured logger
        qos: QoS for publish and subscribe (0 = broker best effort)
        max_payload_size: Largest payload accepted by publish()

    Thread Safety:
        None required. The owning control loop is the only caller and paho's
        network loop runs inside poll()/connect().
    """

    def __init__(
        self,
        identity: str,
        broker_host: str,
        router: TopicRouter,
        logger: StructuredLogger,
        broker_port: int = 1883,
        keepalive: int = 60,
        connect_timeout: float = 5.0,
        poll_timeout: float = 0.01,
        max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
        qos: int = 0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client: Optional[Any] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the session (no network activity yet).

        Args:
            identity: Unique node identity (MQTT client id)
            broker_host: MQTT broker hostname or IP
            router: Router for inbound frames
            logger: Structured logger for observability
            broker_port: MQTT broker port (default: 1883)
            keepalive: MQTT keepalive in seconds
            connect_timeout: Bound on CONNACK and each SUBACK wait
            poll_timeout: Bound on one network-loop iteration in poll()
            max_payload_size: Largest payload publish() accepts
            qos: Quality of Service for publish/subscribe
            username: Broker username (optional)
            password: Broker password (optional)
            client: Pre-built paho-compatible client (tests)
            clock: Monotonic time source
        """
        self.identity = validate_identity(identity)
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.router = router
        self.logger = logger
        self.keepalive = keepalive
        self.connect_timeout = connect_timeout
        self.poll_timeout = poll_timeout
        self.max_payload_size = max_payload_size
        self.qos = qos
        self._clock = clock

        if client is None:
            client = mqtt.Client(
                client_id=identity,
                clean_session=True,
                protocol=mqtt.MQTTv311
            )
            if username and password:
                client.username_pw_set(username, password)
        self.client = client

        # Callbacks
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_subscribe = self._on_subscribe
        self.client.on_message = self._on_message

        # State
        self._state = ConnectionState.DISCONNECTED
        self._observers: List[StateObserver] = []
        self._connack_rc: Optional[int] = None
        self._link_lost = False
        self._suback: Dict[int, tuple] = {}
        self._subscriptions: List[str] = []
        self._inbox: Deque[InboundFrame] = deque()
        self._published = 0
        self._received = 0

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    # ===== State =====

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_ready(self) -> bool:
        """True only when connected and all subscriptions acknowledged."""
        return self._state is ConnectionState.READY

    @property
    def subscriptions(self) -> List[str]:
        """Topics acknowledged during the current connection."""
        return list(self._subscriptions)

    def add_state_observer(self, observer: StateObserver) -> None:
        """Register a callable invoked as observer(old_state, new_state)."""
        self._observers.append(observer)

    def _set_state(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        self.logger.info(
            event=LogEvent.SESSION_STATE_CHANGED,
            message=f"Session {old_state.value} -> {new_state.value}",
            metadata={'identity': self.identity, 'from': old_state.value, 'to': new_state.value}
        )
        for observer in self._observers:
            observer(old_state, new_state)

    def _mark_lost(self, rc: int) -> None:
        """Transport error or broker disconnect: back to DISCONNECTED."""
        if self._state is ConnectionState.DISCONNECTED:
            return
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={
                'broker': self.broker,
                'reason_code': rc,
                'reason': mqtt.error_string(rc)
            }
        )
        self._set_state(ConnectionState.DISCONNECTED)

    # ===== MQTT Callbacks (run inside client.loop) =====

    def _on_connect(self, client, userdata, flags, rc) -> None:
        self._connack_rc = rc

    def _on_disconnect(self, client, userdata, rc) -> None:
        self._link_lost = True
        self._mark_lost(rc if rc else mqtt.MQTT_ERR_CONN_LOST)

    def _on_subscribe(self, client, userdata, mid, granted_qos) -> None:
        self._suback[mid] = tuple(granted_qos)

    def _on_message(self, client, userdata, msg) -> None:
        frame = InboundFrame(topic=msg.topic, payload=bytes(msg.payload))
        self._inbox.append(frame)
        self._received += 1
        self.logger.debug(
            event=LogEvent.MQTT_FRAME_RECEIVED,
            message=f"Frame received on {frame.topic}",
            metadata={'topic': frame.topic, 'size': frame.size}
        )

    # ===== Lifecycle =====

    def connect(self, register: Optional[RegisterHook] = None) -> None:
        """
        Open the session and complete subscription.

        Args:
            register: Hook called in SUBSCRIBING state; it must subscribe()
                to every topic the node needs. READY is entered only after it
                returns without error.

        Raises:
            ConnectError: Broker unreachable, CONNACK timeout or refusal
            SubscribeError: A required subscription failed

        On any failure the session is left DISCONNECTED.
        """
        if self.is_ready():
            return

        self._connack_rc = None
        self._link_lost = False
        self._suback.clear()
        self._subscriptions = []
        self._set_state(ConnectionState.CONNECTING)

        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=self.keepalive)
        except (OSError, ValueError) as e:
            self._abort()
            self.logger.error(
                event=LogEvent.MQTT_DISCONNECTED,
                message="Failed to reach MQTT broker",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            raise ConnectError(f"Broker {self.broker} unreachable: {e}") from e

        try:
            self._loop_until(lambda: self._connack_rc is not None, ConnectError, "CONNACK")
        except ConnectError:
            self._abort()
            raise

        if self._connack_rc != 0:
            rc = self._connack_rc
            self._abort()
            raise ConnectError(
                f"Broker refused {self.identity}: {mqtt.connack_string(rc)}", rc=rc
            )

        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker",
            metadata={'broker': self.broker, 'client_id': self.identity}
        )
        self._set_state(ConnectionState.SUBSCRIBING)

        if register is not None:
            try:
                register(self)
            except Exception:
                self._abort()
                raise

        if self._state is not ConnectionState.SUBSCRIBING:
            raise ConnectError("Connection lost before subscriptions completed")

        self._set_state(ConnectionState.READY)
        self.logger.info(
            event=LogEvent.SESSION_READY,
            message="MQTT initialization complete, ready",
            metadata={'identity': self.identity, 'subscriptions': self.subscriptions}
        )

    def disconnect(self) -> None:
        """Close the session gracefully (safe to call in any state)."""
        if self._state is ConnectionState.DISCONNECTED:
            return
        self.client.disconnect()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from broker",
            metadata={'broker': self.broker, 'published': self._published}
        )
        self._set_state(ConnectionState.DISCONNECTED)

    def _abort(self) -> None:
        if self._state is not ConnectionState.DISCONNECTED:
            self.client.disconnect()
        self._set_state(ConnectionState.DISCONNECTED)

    def _loop_until(self, predicate: Callable[[], bool], error_cls, what: str) -> None:
        """Run the network loop until predicate() holds, bounded by connect_timeout."""
        deadline = self._clock() + self.connect_timeout
        while not predicate():
            if self._link_lost:
                raise error_cls(f"Connection lost while waiting for {what}")
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise error_cls(f"Timed out after {self.connect_timeout}s waiting for {what}")
            rc = self.client.loop(timeout=min(remaining, _HANDSHAKE_STEP))
            if rc != mqtt.MQTT_ERR_SUCCESS:
                raise error_cls(f"Transport error waiting for {what}: {mqtt.error_string(rc)}", rc=rc)

    # ===== Primitives =====

    def subscribe(self, topic: str) -> None:
        """
        Subscribe to a topic and wait for the broker's acknowledgement.

        Raises:
            SubscribeError: Called outside CONNECTING/SUBSCRIBING, refused,
                or not acknowledged within connect_timeout
        """
        if self._state not in (ConnectionState.CONNECTING, ConnectionState.SUBSCRIBING):
            raise SubscribeError(f"Cannot subscribe to {topic} in state {self._state.value}")

        rc, mid = self.client.subscribe(topic, qos=self.qos)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            raise SubscribeError(f"Subscribe to {topic} failed: {mqtt.error_string(rc)}", rc=rc)

        self._loop_until(lambda: mid in self._suback, SubscribeError, f"SUBACK for {topic}")
        granted = self._suback.pop(mid)
        if any(q >= SUBACK_FAILURE for q in granted):
            raise SubscribeError(f"Broker refused subscription to {topic}")

        self._subscriptions.append(topic)
        self.logger.info(
            event=LogEvent.MQTT_SUBSCRIBED,
            message=f"Subscribed to {topic}",
            metadata={'topic': topic, 'qos': self.qos}
        )

    def publish(self, topic: str, payload: bytes) -> None:
        """
        Publish a payload.

        Raises:
            PublishError: Session not READY (transport untouched) or the
                transport rejected the frame
            PayloadTooLargeError: Payload longer than max_payload_size
        """
        if not self.is_ready():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: session not ready",
                metadata={'topic': topic, 'state': self._state.value}
            )
            raise PublishError(f"Cannot publish to {topic} in state {self._state.value}")

        if len(payload) > self.max_payload_size:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: payload too large",
                metadata={'topic': topic, 'size': len(payload), 'limit': self.max_payload_size}
            )
            raise PayloadTooLargeError(len(payload), self.max_payload_size)

        result = self.client.publish(topic, payload, qos=self.qos)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Publish failed (rc={result.rc})",
                metadata={'topic': topic, 'reason': mqtt.error_string(result.rc)}
            )
            if result.rc in (mqtt.MQTT_ERR_NO_CONN, mqtt.MQTT_ERR_CONN_LOST):
                self._mark_lost(result.rc)
            raise PublishError(f"Publish to {topic} failed: {mqtt.error_string(result.rc)}")

        self._published += 1
        self.logger.info(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message="Published message",
            metadata={'topic': topic, 'size': len(payload), 'qos': self.qos}
        )

    def poll(self) -> Iterator[InboundFrame]:
        """
        Drain the transport once and dispatch buffered frames.

        Runs one network-loop iteration bounded by poll_timeout, then yields
        every buffered frame in delivery order, dispatching each to the
        router just before it is yielded. Lazy: frames are dispatched only
        as the caller iterates.
        """
        if self._state is not ConnectionState.DISCONNECTED:
            rc = self.client.loop(timeout=self.poll_timeout)
            if rc != mqtt.MQTT_ERR_SUCCESS:
                self._mark_lost(rc)

        while self._inbox:
            frame = self._inbox.popleft()
            self.router.dispatch(frame.topic, frame.payload)
            yield frame

    def pump(self) -> int:
        """Consume one poll() completely; returns the number of frames dispatched."""
        count = 0
        for _ in self.poll():
            count += 1
        return count

    def get_stats(self) -> Dict[str, Any]:
        """
        Get session statistics.

        Example:
            >>> stats = session.get_stats()
            >>> print(f"Published {stats['published']} messages")
        """
        return {
            'identity': self.identity,
            'state': self._state.value,
            'broker': self.broker,
            'subscriptions': self.subscriptions,
            'published': self._published,
            'received': self._received,
            'discarded': self.router.discarded_count,
        }
