"""Tests for the BrokerSession state machine."""

from __future__ import annotations

from typing import List

import pytest

from conftest import logged_events
from ledlink_mqtt import (
    BrokerSession,
    ConnectError,
    ConnectionState,
    LogEvent,
    PayloadTooLargeError,
    PublishError,
    SubscribeError,
)

TOPIC = "ledNode07/ledCommand"


def subscribe_to(*topics: str):
    def register(session: BrokerSession) -> None:
        for topic in topics:
            session.subscribe(topic)
    return register


def test_starts_disconnected(make_session) -> None:
    session = make_session("ledNode07")
    assert session.state is ConnectionState.DISCONNECTED
    assert not session.is_ready()


def test_connect_walks_state_machine(make_session) -> None:
    """DISCONNECTED → CONNECTING → SUBSCRIBING → READY, in that order."""
    session = make_session("ledNode07")
    transitions: List[tuple] = []
    session.add_state_observer(lambda old, new: transitions.append((old, new)))

    session.connect(subscribe_to(TOPIC))

    assert transitions == [
        (ConnectionState.DISCONNECTED, ConnectionState.CONNECTING),
        (ConnectionState.CONNECTING, ConnectionState.SUBSCRIBING),
        (ConnectionState.SUBSCRIBING, ConnectionState.READY),
    ]
    assert session.is_ready()
    assert session.subscriptions == [TOPIC]


def test_ready_only_after_all_subscriptions(make_session) -> None:
    session = make_session("btnNode07")
    seen_states: List[ConnectionState] = []

    def register(s: BrokerSession) -> None:
        s.subscribe("btnNode07/ledStatus")
        seen_states.append(s.state)
        s.subscribe("btnNode07/extra")
        seen_states.append(s.state)

    session.connect(register)

    assert seen_states == [ConnectionState.SUBSCRIBING, ConnectionState.SUBSCRIBING]
    assert session.is_ready()


def test_unreachable_broker(make_session, broker) -> None:
    broker.reachable = False
    session = make_session("ledNode07")

    with pytest.raises(ConnectError):
        session.connect()

    assert session.state is ConnectionState.DISCONNECTED


def test_identity_rejected(make_session, broker) -> None:
    """A refused CONNACK (e.g. duplicate client id) is a ConnectError."""
    broker.refused_ids.add("ledNode07")
    session = make_session("ledNode07")

    with pytest.raises(ConnectError) as info:
        session.connect()

    assert info.value.rc == 2
    assert session.state is ConnectionState.DISCONNECTED


def test_connack_timeout_is_bounded(make_session, broker, clock) -> None:
    broker.silent = True
    session = make_session("ledNode07", connect_timeout=2.0)
    started = clock()

    with pytest.raises(ConnectError):
        session.connect()

    assert clock() - started <= 2.0 + 0.1
    assert session.state is ConnectionState.DISCONNECTED


def test_failed_subscription_never_reaches_ready(make_session, broker) -> None:
    broker.refused_topics.add(TOPIC)
    session = make_session("ledNode07")

    with pytest.raises(SubscribeError):
        session.connect(subscribe_to(TOPIC))

    assert session.state is ConnectionState.DISCONNECTED


def test_unacknowledged_subscription_times_out(make_session, broker) -> None:
    broker.drop_subacks = True
    session = make_session("ledNode07", connect_timeout=1.0)

    with pytest.raises(SubscribeError):
        session.connect(subscribe_to(TOPIC))

    assert not session.is_ready()


def test_subscribe_error_is_a_connect_error() -> None:
    """Subscription failures take the same retry path as connect failures."""
    assert issubclass(SubscribeError, ConnectError)


def test_subscribe_outside_handshake_rejected(make_session) -> None:
    session = make_session("ledNode07")
    with pytest.raises(SubscribeError):
        session.subscribe(TOPIC)

    session.connect()
    with pytest.raises(SubscribeError):
        session.subscribe(TOPIC)


def test_publish_when_not_ready_never_reaches_transport(make_session) -> None:
    session = make_session("btnNode07")

    with pytest.raises(PublishError):
        session.publish(TOPIC, b"{}")

    assert session.client.publish_calls == 0


def test_publish_during_handshake_rejected(make_session) -> None:
    session = make_session("btnNode07")
    errors: List[Exception] = []

    def register(s: BrokerSession) -> None:
        try:
            s.publish(TOPIC, b"{}")
        except PublishError as e:
            errors.append(e)

    session.connect(register)

    assert len(errors) == 1
    assert session.client.publish_calls == 0


def test_publish_oversize_rejected(make_session) -> None:
    session = make_session("btnNode07", max_payload_size=16)
    session.connect()

    with pytest.raises(PayloadTooLargeError):
        session.publish(TOPIC, b"x" * 17)

    assert session.client.publish_calls == 0


def test_publish_when_ready(make_session, broker) -> None:
    session = make_session("btnNode07")
    session.connect()

    session.publish(TOPIC, b'{"senderID":"btnNode07","cmd":"on"}')

    assert broker.published == [("btnNode07", TOPIC, b'{"senderID":"btnNode07","cmd":"on"}')]
    assert session.get_stats()["published"] == 1


def test_poll_dispatches_in_delivery_order(make_session, broker) -> None:
    session = make_session("ledNode07")
    received: List[bytes] = []
    session.router.register(TOPIC, received.append)
    session.connect(subscribe_to(TOPIC))

    for i in range(5):
        broker.inject(TOPIC, str(i).encode())

    frames = list(session.poll())

    assert [f.payload for f in frames] == [b"0", b"1", b"2", b"3", b"4"]
    assert received == [b"0", b"1", b"2", b"3", b"4"]


def test_poll_is_lazy(make_session, broker) -> None:
    """Frames are dispatched only as the caller iterates."""
    session = make_session("ledNode07")
    received: List[bytes] = []
    session.router.register(TOPIC, received.append)
    session.connect(subscribe_to(TOPIC))
    broker.inject(TOPIC, b"a")
    broker.inject(TOPIC, b"b")

    frames = session.poll()
    assert received == []
    next(frames)
    assert received == [b"a"]
    assert sum(1 for _ in frames) == 1
    assert received == [b"a", b"b"]


def test_pump_with_nothing_buffered(make_session) -> None:
    session = make_session("ledNode07")
    session.connect()
    assert session.pump() == 0


def test_transport_loss_detected_by_poll(make_session, broker, caplog) -> None:
    session = make_session("ledNode07")
    session.connect(subscribe_to(TOPIC))

    broker.drop("ledNode07")
    session.pump()

    assert session.state is ConnectionState.DISCONNECTED
    assert logged_events(caplog).count(LogEvent.MQTT_DISCONNECTED.value) == 1
    with pytest.raises(PublishError):
        session.publish(TOPIC, b"{}")


def test_reconnect_after_loss_resubscribes(make_session, broker) -> None:
    session = make_session("ledNode07")
    session.connect(subscribe_to(TOPIC))
    broker.drop("ledNode07")
    session.pump()

    session.connect(subscribe_to(TOPIC))

    assert session.is_ready()
    assert session.subscriptions == [TOPIC]
    assert TOPIC in broker.clients["ledNode07"].subscriptions


def test_disconnect(make_session, broker) -> None:
    session = make_session("ledNode07")
    session.connect()
    session.disconnect()
    session.disconnect()

    assert session.state is ConnectionState.DISCONNECTED
    assert "ledNode07" not in broker.clients


def test_identity_must_be_topic_safe(make_session) -> None:
    with pytest.raises(ValueError):
        make_session("led/Node07")
