"""Raw inbound frame as buffered from the transport."""

from dataclasses import dataclass


@dataclass(frozen=True)
class InboundFrame:
    """
    One message delivered by the broker.

    Attributes:
        topic: Concrete topic the frame was published on
        payload: Undecoded payload bytes
    """
    topic: str
    payload: bytes

    @property
    def size(self) -> int:
        """Payload length in bytes."""
        return len(self.payload)
