"""
NodeRunner - single-threaded cooperative control loop

Each tick, in order:
  1. If the session is not READY and a retry is due, make one connect
     attempt (ReconnectPolicy); announce READY to the controller
  2. Drain and dispatch inbound frames (BrokerSession.pump)
  3. Sample local buttons through their debouncers (button role)

Every step is bounded (connect_timeout, poll_timeout, non-blocking input),
so local input keeps being sampled while the broker is unreachable.
"""

import time
from typing import Callable, Dict, Optional

from ledlink_mqtt import BrokerSession, ReconnectPolicy, StructuredLogger, LogEvent

from .controllers import NodeController
from .debounce import Debouncer
from .hardware import ButtonPanel


class NodeRunner:
    """
    Owns the control loop of one node process.

    Example:
        runner = NodeRunner(controller, session, policy, logger, panel=panel)
        runner.run_forever()     # until stop() or a signal
    """

    def __init__(
        self,
        controller: NodeController,
        session: BrokerSession,
        policy: ReconnectPolicy,
        logger: StructuredLogger,
        panel: Optional[ButtonPanel] = None,
        debounce_interval: float = 0.01,
        loop_interval: float = 0.01,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.controller = controller
        self.session = session
        self.policy = policy
        self.logger = logger
        self.panel = panel
        self.loop_interval = loop_interval
        self._clock = clock
        self._sleep = sleep
        self._debouncers: Dict[str, Debouncer] = {}
        self._debounce_interval = debounce_interval
        self._running = False
        self.ticks = 0

    def tick(self, now: Optional[float] = None) -> int:
        """
        Run one loop iteration.

        Returns:
            Number of inbound frames dispatched
        """
        now = self._clock() if now is None else now
        started = self._clock()
        self.ticks += 1

        was_ready = self.session.is_ready()
        if self.policy.ensure_connected(self.session, self.controller.register_myself, now):
            if not was_ready:
                self.controller.on_ready()

        dispatched = self.session.pump()

        if self.panel is not None:
            # connect and pump may have blocked: timestamp the sample when taken
            self._sample(now + (self._clock() - started))

        return dispatched

    def _sample(self, now: float) -> None:
        for name, level in self.panel.read().items():
            debouncer = self._debouncers.get(name)
            if debouncer is None:
                debouncer = self._debouncers[name] = Debouncer(self._debounce_interval)
            edge = debouncer.update(level, now)
            if edge is not None:
                self.controller.on_edge(name, edge)

    def run_forever(self) -> None:
        """Tick until stop() is called."""
        self._running = True
        self.logger.info(
            event=LogEvent.NODE_STARTED,
            message=f"{self.controller.role} node {self.controller.identity} running",
            metadata={'role': self.controller.role, 'identity': self.controller.identity}
        )
        try:
            while self._running:
                self.tick()
                self._sleep(self.loop_interval)
        finally:
            self._running = False
            self.session.disconnect()
            if self.panel is not None:
                self.panel.close()
            self.logger.info(
                event=LogEvent.NODE_STOPPED,
                message="Control loop stopped",
                metadata=self.session.get_stats()
            )

    def stop(self) -> None:
        """Request the loop to exit after the current tick."""
        self._running = False

    def is_running(self) -> bool:
        return self._running
