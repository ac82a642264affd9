"""
Local input/output collaborators.

The nodes only need two narrow interfaces from their board:
  - LedOutput: a binary output that can be set on/off (and blinked)
  - ButtonPanel: raw levels of the "on" and "off" push-buttons

The console implementations stand in for GPIO when running on a desktop:
ConsoleLed logs its state, ConsoleButtonPanel turns typed lines ("on",
"off") into short simulated presses.
"""

import logging
import select
import sys
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, TextIO

from ledlink_mqtt.schemas import LedState

logger = logging.getLogger(__name__)

BUTTON_NAMES = (LedState.ON.value, LedState.OFF.value)


class LedOutput(ABC):
    """Binary physical output."""

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        self._state = LedState.OFF
        self._sleep = sleep

    @property
    def state(self) -> LedState:
        return self._state

    def set(self, state: LedState) -> None:
        """Drive the output to `state`."""
        self._state = LedState(state)
        self._write(self._state)

    @abstractmethod
    def _write(self, state: LedState) -> None:
        raise NotImplementedError("Subclasses must implement _write()")

    def blink(self, times: int = 5, on_time: float = 0.2, off_time: float = 0.15) -> None:
        """Flash the output `times` times, leaving it off."""
        for _ in range(times):
            self.set(LedState.ON)
            self._sleep(on_time)
            self.set(LedState.OFF)
            self._sleep(off_time)


class ConsoleLed(LedOutput):
    """LED stand-in that logs every change."""

    def __init__(self, name: str = "LED", sleep: Callable[[float], None] = time.sleep):
        super().__init__(sleep=sleep)
        self.name = name
        self.writes = 0

    def _write(self, state: LedState) -> None:
        self.writes += 1
        icon = "💡" if state is LedState.ON else "⚫"
        logger.info(f"{icon} {self.name} {state.value.upper()}")


class ButtonPanel(ABC):
    """Source of raw (undebounced) push-button levels."""

    @abstractmethod
    def read(self) -> Dict[str, bool]:
        """Return {button name: pressed} for every button on the panel."""
        raise NotImplementedError("Subclasses must implement read()")

    def close(self) -> None:
        pass


class ConsoleButtonPanel(ButtonPanel):
    """
    Keyboard-driven panel: typing `on` or `off` + Enter holds that button
    down for `hold_time` seconds.

    Reads are non-blocking (select with zero timeout), so the control loop
    is never stalled by the terminal. POSIX only.
    """

    def __init__(
        self,
        hold_time: float = 0.05,
        stream: Optional[TextIO] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.hold_time = hold_time
        self.stream = stream or sys.stdin
        self._clock = clock
        self._held_until: Dict[str, float] = {name: 0.0 for name in BUTTON_NAMES}
        self._closed = False

    def _poll_stream(self) -> None:
        while not self._closed:
            ready, _, _ = select.select([self.stream], [], [], 0)
            if not ready:
                return
            line = self.stream.readline()
            if not line:
                # EOF: stop polling stdin
                self._closed = True
                return
            name = line.strip().lower()
            if name in self._held_until:
                self._held_until[name] = self._clock() + self.hold_time
            elif name:
                logger.warning(f"⚠️ Unknown button '{name}' (type 'on' or 'off')")

    def read(self) -> Dict[str, bool]:
        self._poll_stream()
        now = self._clock()
        return {name: now < until for name, until in self._held_until.items()}

    def close(self) -> None:
        self._closed = True
