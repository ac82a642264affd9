"""
ReconnectPolicy - fixed-interval retry of connect → subscribe → ready

Bounded Context: Connection recovery
Responsibilities:
  - Decide when the next connect attempt may run
  - Log every failed attempt as a recoverable condition
  - Never give up (no attempt limit)

Timing:
  - Fixed interval between attempts (default 5 s), no jitter, no backoff
  - A session that drops out of READY is retried on the very next tick
  - Non-blocking: ensure_connected() returns immediately when no attempt
    is due, so the control loop keeps sampling local input

TODO: add jitter and exponential backoff once more than a handful of
nodes share one broker.
"""

import time
from typing import Callable, Optional

from .errors import ConnectError
from .logging import StructuredLogger, LogEvent
from .session import BrokerSession, RegisterHook

DEFAULT_RETRY_INTERVAL = 5.0


class ReconnectPolicy:
    """
    Fixed-interval reconnect schedule shared by both node roles.

    Attributes:
        base_interval: Delay between failed attempts, in seconds
        attempts: Consecutive failed attempts since the last READY
        total_failures: Failed attempts over the process lifetime

    Example:
        policy = ReconnectPolicy(logger, interval=5.0)

        # start-up: block until READY
        policy.connect_forever(session, controller.register_myself)

        # control loop: one guarded attempt per tick
        while True:
            policy.ensure_connected(session, controller.register_myself)
            session.pump()
    """

    def __init__(
        self,
        logger: StructuredLogger,
        interval: float = DEFAULT_RETRY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if interval <= 0:
            raise ValueError(f"Retry interval must be > 0, got {interval}")
        self.logger = logger
        self.base_interval = interval
        self._delay = interval
        self._clock = clock
        self._sleep = sleep
        self._next_attempt_at: Optional[float] = None
        self.attempts = 0
        self.total_failures = 0

    @property
    def current_delay(self) -> float:
        """Pending retry delay (held constant by this policy)."""
        return self._delay

    @property
    def next_attempt_at(self) -> Optional[float]:
        """Clock value at which the next attempt is allowed (None = now)."""
        return self._next_attempt_at

    def due(self, now: Optional[float] = None) -> bool:
        """True when a connect attempt may run."""
        if self._next_attempt_at is None:
            return True
        now = self._clock() if now is None else now
        return now >= self._next_attempt_at

    def seconds_until_due(self, now: Optional[float] = None) -> float:
        if self._next_attempt_at is None:
            return 0.0
        now = self._clock() if now is None else now
        return max(0.0, self._next_attempt_at - now)

    def record_failure(self, error: Exception, now: Optional[float] = None) -> None:
        """Schedule the next attempt one interval from now."""
        now = self._clock() if now is None else now
        self.attempts += 1
        self.total_failures += 1
        self._next_attempt_at = now + self._delay
        self.logger.warning(
            event=LogEvent.RECONNECT_FAILED,
            message=f"Connect failed, trying again in {self._delay:g} sec.",
            exc_info=error,
            metadata={'attempt': self.attempts, 'retry_in': self._delay}
        )

    def record_success(self) -> None:
        """Reset the pending retry on entering READY."""
        self.attempts = 0
        self._delay = self.base_interval
        self._next_attempt_at = None

    def ensure_connected(
        self,
        session: BrokerSession,
        register: Optional[RegisterHook] = None,
        now: Optional[float] = None,
    ) -> bool:
        """
        Make at most one connect attempt if the session is not READY.

        Args:
            now: Current time in the caller's time base (default: clock());
                a failed attempt schedules the next one `interval` after it ended

        Returns:
            True if the session is READY after the call
        """
        if session.is_ready():
            return True
        now = self._clock() if now is None else now
        if not self.due(now):
            return False

        self.logger.info(
            event=LogEvent.RECONNECT_ATTEMPT,
            message=f"Connecting to MQTT broker ({session.broker}) as {session.identity}",
            metadata={'attempt': self.attempts + 1}
        )
        started = self._clock()
        try:
            session.connect(register)
        except ConnectError as e:
            # interval counts from the end of the attempt (up to connect_timeout long)
            self.record_failure(e, now + (self._clock() - started))
            return False

        self.record_success()
        return True

    def connect_forever(
        self,
        session: BrokerSession,
        register: Optional[RegisterHook] = None,
    ) -> None:
        """Block until the session is READY, sleeping the interval between failures."""
        while not self.ensure_connected(session, register):
            self._sleep(self.seconds_until_due())
