"""Pytest configuration: in-memory broker standing in for mosquitto."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

import paho.mqtt.client as mqtt
import pytest

from ledlink_mqtt import BrokerSession, CommandCodec, TopicRouter, create_logger


class FakeMessage:
    """Minimal paho MQTTMessage."""

    def __init__(self, topic: str, payload: bytes) -> None:
        self.topic = topic
        self.payload = payload


class FakeMessageInfo:
    """Minimal paho MQTTMessageInfo."""

    def __init__(self, rc: int) -> None:
        self.rc = rc


class FakeBroker:
    """Routes publishes to subscribed FakeClients by exact topic match."""

    def __init__(self, clock: Optional["FakeClock"] = None) -> None:
        self.clock = clock
        self.reachable = True
        self.refused_ids: Set[str] = set()
        self.refused_topics: Set[str] = set()
        self.drop_subacks = False
        self.silent = False  # accept TCP but never send CONNACK
        self.clients: Dict[str, "FakeClient"] = {}
        self.published: List[Tuple[str, str, bytes]] = []
        self.connect_calls = 0

    def client(self, client_id: str) -> "FakeClient":
        return FakeClient(self, client_id)

    def route(self, sender: "FakeClient", topic: str, payload: bytes) -> None:
        self.published.append((sender.client_id, topic, payload))
        for client in list(self.clients.values()):
            if topic in client.subscriptions:
                client.pending.append(("message", FakeMessage(topic, payload)))

    def inject(self, topic: str, payload: bytes) -> None:
        """Publish from outside any session (like an MQTT sniffer)."""
        for client in list(self.clients.values()):
            if topic in client.subscriptions:
                client.pending.append(("message", FakeMessage(topic, payload)))

    def drop(self, client_id: str) -> None:
        """Sever a client's connection; noticed at its next loop()."""
        self.clients[client_id].severed = True


class FakeClient:
    """Implements the slice of paho.mqtt.client.Client used by BrokerSession."""

    def __init__(self, broker: FakeBroker, client_id: str) -> None:
        self.broker = broker
        self.client_id = client_id
        self.on_connect = None
        self.on_disconnect = None
        self.on_subscribe = None
        self.on_message = None
        self.pending: List[Tuple[Any, ...]] = []
        self.subscriptions: Set[str] = set()
        self.socket_open = False
        self.connected = False
        self.severed = False
        self.publish_calls = 0
        self.loop_calls = 0
        self._mid = 0

    def connect(self, host: str, port: int = 1883, keepalive: int = 60) -> int:
        self.broker.connect_calls += 1
        if not self.broker.reachable:
            raise ConnectionRefusedError(111, "Connection refused")
        self.pending = []
        self.subscriptions = set()
        self.socket_open = True
        self.severed = False
        if not self.broker.silent:
            rc = 2 if self.client_id in self.broker.refused_ids else 0
            self.pending.append(("connack", rc))
        return mqtt.MQTT_ERR_SUCCESS

    def loop(self, timeout: float = 1.0) -> int:
        self.loop_calls += 1
        if self.broker.clock is not None:
            self.broker.clock.advance(timeout)
        if not self.socket_open:
            return mqtt.MQTT_ERR_NO_CONN
        if self.severed:
            self.socket_open = False
            self.connected = False
            self.broker.clients.pop(self.client_id, None)
            if self.on_disconnect:
                self.on_disconnect(self, None, mqtt.MQTT_ERR_CONN_LOST)
            return mqtt.MQTT_ERR_CONN_LOST

        events, self.pending = self.pending, []
        for event in events:
            if event[0] == "connack":
                rc = event[1]
                if rc == 0:
                    self.connected = True
                    self.broker.clients[self.client_id] = self
                if self.on_connect:
                    self.on_connect(self, None, {}, rc)
            elif event[0] == "suback":
                if self.on_subscribe:
                    self.on_subscribe(self, None, event[1], event[2])
            elif event[0] == "message":
                if self.on_message:
                    self.on_message(self, None, event[1])
        return mqtt.MQTT_ERR_SUCCESS

    def subscribe(self, topic: str, qos: int = 0) -> Tuple[int, Optional[int]]:
        if not self.connected:
            return mqtt.MQTT_ERR_NO_CONN, None
        self._mid += 1
        granted = 0x80 if topic in self.broker.refused_topics else qos
        if granted < 0x80:
            self.subscriptions.add(topic)
        if not self.broker.drop_subacks:
            self.pending.append(("suback", self._mid, (granted,)))
        return mqtt.MQTT_ERR_SUCCESS, self._mid

    def publish(self, topic: str, payload: bytes, qos: int = 0) -> FakeMessageInfo:
        self.publish_calls += 1
        if not self.connected:
            return FakeMessageInfo(mqtt.MQTT_ERR_NO_CONN)
        self.broker.route(self, topic, payload)
        return FakeMessageInfo(mqtt.MQTT_ERR_SUCCESS)

    def disconnect(self) -> int:
        self.socket_open = False
        self.connected = False
        self.broker.clients.pop(self.client_id, None)
        return mqtt.MQTT_ERR_SUCCESS


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def logged_events(caplog) -> List[str]:
    """Structured event names captured so far, in order."""
    return [r.event for r in caplog.records if hasattr(r, "event")]


@pytest.fixture
def broker(clock) -> FakeBroker:
    return FakeBroker(clock)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def diagnostics():
    return create_logger("test")


@pytest.fixture
def codec() -> CommandCodec:
    return CommandCodec(max_payload_size=512)


@pytest.fixture
def make_session(broker, clock, diagnostics):
    """Factory for sessions wired to the fake broker."""

    def _make(identity: str, **kwargs) -> BrokerSession:
        router = kwargs.pop("router", None) or TopicRouter(diagnostics)
        return BrokerSession(
            identity=identity,
            broker_host="broker.test",
            router=router,
            logger=diagnostics,
            client=broker.client(identity),
            clock=clock,
            **kwargs,
        )

    return _make
