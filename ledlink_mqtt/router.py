"""
TopicRouter - Explicit topic → handler registration

Bounded Context: Inbound frame dispatch
Responsibilities:
  - Associate each subscribed topic with exactly one decode+handle function
  - Dispatch inbound frames by exact topic match (no wildcards)
  - Contain decode failures: log, discard, never propagate

Pattern: Registry with explicit registration (one handler per topic)
Threading: Single-threaded, called synchronously from BrokerSession.poll()
"""

from typing import Callable, Dict, Set

from .errors import DecodeError
from .logging import StructuredLogger, LogEvent

FrameHandler = Callable[[bytes], None]


class TopicRouter:
    """
    Registry mapping concrete topics to payload handlers.

    A handler receives the raw payload bytes, decodes them with the
    CommandCodec and acts on the result. Raising DecodeError from a handler
    is the normal way to reject a malformed frame.

    Example:
        router = TopicRouter(logger)
        router.register("ledNode07/ledCommand", controller.handle_command)
        router.dispatch("ledNode07/ledCommand", b'{"senderID":"btnNode07","cmd":"on"}')
    """

    def __init__(self, logger: StructuredLogger):
        self.logger = logger
        self._handlers: Dict[str, FrameHandler] = {}
        self._discarded = 0

    def register(self, topic: str, handler: FrameHandler) -> None:
        """
        Register (or replace) the handler for a topic.

        Args:
            topic: Concrete topic string
            handler: Callable taking the raw payload bytes
        """
        replaced = topic in self._handlers
        self._handlers[topic] = handler
        self.logger.debug(
            event=LogEvent.HANDLER_REGISTERED,
            message=f"Handler {'replaced' if replaced else 'registered'} for {topic}",
            metadata={'topic': topic}
        )

    def unregister(self, topic: str) -> None:
        """Remove the handler for a topic (no-op if absent)."""
        self._handlers.pop(topic, None)

    def is_registered(self, topic: str) -> bool:
        return topic in self._handlers

    @property
    def topics(self) -> Set[str]:
        """Snapshot of registered topics."""
        return set(self._handlers.keys())

    @property
    def discarded_count(self) -> int:
        """Number of frames discarded since creation."""
        return self._discarded

    def dispatch(self, topic: str, payload: bytes) -> bool:
        """
        Invoke the handler registered for `topic`.

        Args:
            topic: Topic the frame arrived on
            payload: Raw payload bytes

        Returns:
            True if a handler consumed the frame, False if it was discarded
        """
        handler = self._handlers.get(topic)
        if handler is None:
            self._discarded += 1
            self.logger.warning(
                event=LogEvent.TOPIC_UNHANDLED,
                message=f'Topic: "{topic}" unhandled',
                metadata={'topic': topic, 'size': len(payload)}
            )
            return False

        try:
            handler(payload)
            return True

        except DecodeError as e:
            self._discarded += 1
            self.logger.warning(
                event=LogEvent.DECODE_FAILED,
                message=f"Failed to parse payload (topic: {topic})",
                exc_info=e,
                metadata={'topic': topic, 'field': e.field}
            )
        except Exception as e:
            self._discarded += 1
            self.logger.error(
                event=LogEvent.HANDLER_FAILED,
                message=f"Error handling frame (topic: {topic})",
                exc_info=e,
                metadata={'topic': topic}
            )
        return False
