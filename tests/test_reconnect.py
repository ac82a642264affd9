"""Tests for the fixed-interval ReconnectPolicy."""

from __future__ import annotations

from typing import List

import pytest

from conftest import logged_events
from ledlink_mqtt import (
    ConnectError,
    ConnectionState,
    DEFAULT_RETRY_INTERVAL,
    LogEvent,
    ReconnectPolicy,
)

TOPIC = "ledNode07/ledCommand"


def register(session) -> None:
    session.subscribe(TOPIC)


@pytest.fixture
def policy(diagnostics, clock) -> ReconnectPolicy:
    return ReconnectPolicy(diagnostics, clock=clock, sleep=clock.advance)


def test_default_interval_is_five_seconds() -> None:
    assert DEFAULT_RETRY_INTERVAL == 5.0


def test_invalid_interval(diagnostics) -> None:
    with pytest.raises(ValueError):
        ReconnectPolicy(diagnostics, interval=0)


def test_first_attempt_is_immediate(policy: ReconnectPolicy, make_session) -> None:
    session = make_session("ledNode07")
    assert policy.due()
    assert policy.ensure_connected(session, register) is True
    assert session.is_ready()


def test_fixed_interval_between_failures(policy, make_session, broker, clock) -> None:
    broker.reachable = False
    session = make_session("ledNode07")
    start = clock()

    assert policy.ensure_connected(session, register, now=start) is False
    assert broker.connect_calls == 1

    # not due yet: no attempt, returns immediately
    assert policy.ensure_connected(session, register, now=start + 4.9) is False
    assert broker.connect_calls == 1

    assert policy.ensure_connected(session, register, now=start + 5.0) is False
    assert broker.connect_calls == 2
    assert policy.next_attempt_at == start + 10.0
    assert policy.current_delay == 5.0  # no backoff


def test_never_gives_up(policy, make_session, broker, clock, caplog) -> None:
    broker.reachable = False
    session = make_session("ledNode07")
    now = clock()

    for _ in range(50):
        policy.ensure_connected(session, register, now=now)
        now += 5.0

    assert broker.connect_calls == 50
    assert policy.attempts == 50
    assert logged_events(caplog).count(LogEvent.RECONNECT_FAILED.value) == 50

    broker.reachable = True
    assert policy.ensure_connected(session, register, now=now) is True
    assert policy.attempts == 0
    assert policy.total_failures == 50
    assert policy.next_attempt_at is None


def test_ready_session_is_left_alone(policy, make_session, broker) -> None:
    session = make_session("ledNode07")
    session.connect(register)
    calls = broker.connect_calls

    assert policy.ensure_connected(session, register) is True
    assert broker.connect_calls == calls


def test_subscription_failure_is_retried(policy, make_session, broker, clock) -> None:
    broker.refused_topics.add(TOPIC)
    session = make_session("ledNode07")

    assert policy.ensure_connected(session, register, now=clock()) is False
    assert session.state is ConnectionState.DISCONNECTED
    assert policy.attempts == 1


def test_connect_forever_sleeps_the_interval(policy, make_session, broker, clock) -> None:
    """Blocking start-up: fails twice, then the broker comes up."""
    session = make_session("ledNode07")
    broker.refused_ids.add("ledNode07")
    start = clock()
    sleeps: List[float] = []

    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)
        if len(sleeps) == 2:
            broker.refused_ids.clear()

    policy._sleep = sleep
    policy.connect_forever(session, register)

    assert session.is_ready()
    assert broker.connect_calls == 3
    assert sleeps and max(sleeps) < 5.0 + 1e-6
    assert clock() - start >= 10.0


def test_dropped_session_retried_on_next_tick(policy, make_session, broker, clock) -> None:
    """READY → broker gone → DISCONNECTED → CONNECTING at the very next attempt."""
    session = make_session("ledNode07")
    policy.ensure_connected(session, register)
    transitions: List[ConnectionState] = []
    session.add_state_observer(lambda old, new: transitions.append(new))

    broker.drop("ledNode07")
    broker.reachable = False
    session.pump()
    assert transitions == [ConnectionState.DISCONNECTED]

    assert policy.ensure_connected(session, register, now=clock()) is False
    assert transitions[1] is ConnectionState.CONNECTING
    assert session.state is ConnectionState.DISCONNECTED


def test_record_failure_logs_recoverable(policy, caplog) -> None:
    policy.record_failure(ConnectError("nope"), now=0.0)
    assert logged_events(caplog) == [LogEvent.RECONNECT_FAILED.value]
    assert caplog.records[-1].levelname == "WARNING"
    assert policy.seconds_until_due(now=1.0) == pytest.approx(4.0)


def test_interval_counts_from_end_of_slow_attempt(policy, make_session, broker, clock) -> None:
    """A handshake that times out does not eat into the retry interval."""
    broker.silent = True
    session = make_session("ledNode07", connect_timeout=5.0)
    start = clock()

    assert policy.ensure_connected(session, register, now=start) is False
    ended = clock()
    assert ended - start > 4.9
    assert policy.next_attempt_at == pytest.approx(ended + 5.0)

    # the attempt ended right when a start-based deadline would have expired
    assert policy.ensure_connected(session, register, now=ended) is False
    assert broker.connect_calls == 1

    assert policy.ensure_connected(session, register, now=ended + 5.0 + 1e-6) is False
    assert broker.connect_calls == 2
