"""
Push-button debouncing.

A mechanical contact bounces for a few milliseconds after every transition.
The Debouncer reports an edge only once the sampled level has held steady
for `interval` seconds, and reports each transition exactly once: an input
that stays held never fires again until it is released.
"""

from enum import Enum
from typing import Optional


class Edge(str, Enum):
    """Debounced transition of a digital input."""
    PRESSED = "pressed"
    RELEASED = "released"


class Debouncer:
    """
    Stability-window debouncer for one digital input.

    Example:
        >>> d = Debouncer(interval=0.01)
        >>> d.update(True, now=0.000)   # first sample of a press
        >>> d.update(True, now=0.012)
        <Edge.PRESSED: 'pressed'>
        >>> d.update(True, now=0.500)   # still held: no new edge
    """

    def __init__(self, interval: float, initial: bool = False):
        if interval < 0:
            raise ValueError(f"Debounce interval must be >= 0, got {interval}")
        self.interval = interval
        self._stable = initial
        self._candidate = initial
        self._changed_at = 0.0

    @property
    def level(self) -> bool:
        """Last debounced level."""
        return self._stable

    def update(self, level: bool, now: float) -> Optional[Edge]:
        """
        Feed one raw sample.

        Args:
            level: Raw input level (True = pressed)
            now: Sample time in seconds

        Returns:
            The edge recognized by this sample, if any
        """
        level = bool(level)
        if level != self._candidate:
            self._candidate = level
            self._changed_at = now

        if self._candidate != self._stable and now - self._changed_at >= self.interval:
            self._stable = self._candidate
            return Edge.PRESSED if self._stable else Edge.RELEASED
        return None
