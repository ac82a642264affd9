"""
Node Controllers
================

Bounded Context: Role-specific behaviour

Two roles share one design and differ only in which topic they subscribe to,
which they publish to, and what a received message triggers:

    ButtonController                       LedController
    ----------------                       -------------
    debounced edge                         <self>/ledCommand
      → CommandMessage                       → set LedOutput
      → <peer>/ledCommand                    → StatusMessage
    <self>/ledStatus                         → <senderID>/ledStatus
      → diagnostic only

Handlers are registered with the session's TopicRouter at construction and
subscribed by register_myself(), which the BrokerSession calls in the
SUBSCRIBING state on every (re)connect.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from ledlink_mqtt import (
    BrokerSession,
    CommandCodec,
    CommandMessage,
    DecodeError,
    LedState,
    PayloadTooLargeError,
    PublishError,
    StatusMessage,
    StructuredLogger,
    LogEvent,
    command_topic,
    status_topic,
)
from ledlink_mqtt.router import FrameHandler

from .debounce import Edge
from .hardware import LedOutput

# Fixed confirmation text sent back with every status report
CONFIRMATIONS: Dict[LedState, str] = {
    LedState.ON: "I've seen the light!",
    LedState.OFF: "And darkness fell upon the land...",
}


class NodeController(ABC):
    """
    Common controller plumbing.

    Attributes:
        identity: This node's identity
        session: Owned broker session
        codec: Payload codec
        logger: Diagnostic sink
        indicator: Optional on-board LED blinked once the node is first ready
    """

    role = "node"

    def __init__(
        self,
        identity: str,
        session: BrokerSession,
        codec: CommandCodec,
        logger: StructuredLogger,
        indicator: Optional[LedOutput] = None,
    ):
        self.identity = identity
        self.session = session
        self.codec = codec
        self.logger = logger
        self.indicator = indicator
        self._announced = False

        for topic, handler in self.subscriptions().items():
            self.session.router.register(topic, handler)

    @abstractmethod
    def subscriptions(self) -> Dict[str, FrameHandler]:
        """Topics this node needs, with their handlers."""
        raise NotImplementedError("Subclasses must implement subscriptions()")

    def register_myself(self, session: BrokerSession) -> None:
        """Subscribe to every topic of interest (called in SUBSCRIBING)."""
        for topic in self.subscriptions():
            session.subscribe(topic)

    def on_ready(self) -> None:
        """Called by the runner each time the session becomes READY."""
        if self.indicator is not None and not self._announced:
            self._announced = True
            self.indicator.blink(times=5, on_time=0.2, off_time=0.15)

    def on_edge(self, button: str, edge: Edge) -> None:
        """Debounced local input edge (ignored by roles without inputs)."""
        pass


class ButtonController(NodeController):
    """
    Button role: turns debounced presses into commands for the peer LED node
    and reports the LED node's status replies.

    Presses while the session is not READY are dropped, not queued.
    """

    role = "button"

    def __init__(
        self,
        identity: str,
        peer_identity: str,
        session: BrokerSession,
        codec: CommandCodec,
        logger: StructuredLogger,
        indicator: Optional[LedOutput] = None,
    ):
        self.peer_identity = peer_identity
        self.last_status: Optional[StatusMessage] = None
        self.sent = 0
        super().__init__(identity, session, codec, logger, indicator)

    def subscriptions(self) -> Dict[str, FrameHandler]:
        return {status_topic(self.identity): self.handle_status}

    def press(self, state: LedState) -> bool:
        """
        Send an on/off command to the peer LED node.

        Returns:
            True if the command was published
        """
        state = LedState(state)
        topic = command_topic(self.peer_identity)

        if not self.session.is_ready():
            self.logger.warning(
                event=LogEvent.PRESS_DROPPED,
                message=f"'{state.value}' press dropped: not connected",
                metadata={'state': self.session.state.value}
            )
            return False

        try:
            payload = self.codec.encode_command(
                CommandMessage(sender_id=self.identity, cmd=state)
            )
        except PayloadTooLargeError as e:
            self.logger.error(
                event=LogEvent.ENCODE_FAILED,
                message="Command payload exceeds the maximum payload size",
                exc_info=e,
                metadata={'topic': topic}
            )
            return False

        try:
            self.session.publish(topic, payload)
        except PublishError:
            # already reported by the session
            return False

        self.sent += 1
        self.logger.info(
            event=LogEvent.COMMAND_SENT,
            message=f"Sent '{state.value}' to {self.peer_identity}",
            metadata={'topic': topic, 'cmd': state.value}
        )
        return True

    def on_edge(self, button: str, edge: Edge) -> None:
        """Only the pressed edge of the ON or OFF button sends a command."""
        self.logger.debug(
            event=LogEvent.BUTTON_EDGE,
            message=f"Button '{button}' {edge.value}",
            metadata={'button': button, 'edge': edge.value}
        )
        if edge is Edge.PRESSED:
            self.press(LedState(button))

    def handle_status(self, payload: bytes) -> None:
        """Surface an LED status report; no other action."""
        msg = self.codec.decode_status(payload)
        self.last_status = msg
        self.logger.info(
            event=LogEvent.STATUS_RECEIVED,
            message=f"LED is {msg.status.value}: {msg.message}",
            metadata={'status': msg.status.value, 'message': msg.message}
        )


class LedController(NodeController):
    """
    Actuator role: executes commands on the LED output and reports the
    resulting state to the commanding node.
    """

    role = "led"

    def __init__(
        self,
        identity: str,
        session: BrokerSession,
        codec: CommandCodec,
        logger: StructuredLogger,
        output: LedOutput,
        indicator: Optional[LedOutput] = None,
    ):
        self.output = output
        self.handled = 0
        super().__init__(identity, session, codec, logger, indicator)

    def subscriptions(self) -> Dict[str, FrameHandler]:
        return {command_topic(self.identity): self.handle_command}

    def handle_command(self, payload: bytes) -> None:
        """
        Set the output and reply with a status report.

        Raises:
            DecodeError: Malformed payload (the router logs and discards it)
        """
        try:
            msg = self.codec.decode_command(payload)
        except DecodeError as e:
            if e.field != 'cmd' or e.value is None:
                raise
            self.logger.warning(
                event=LogEvent.COMMAND_UNKNOWN,
                message=f"Unknown command received ({e.value})",
                metadata={'cmd': e.value, 'topic': command_topic(self.identity)}
            )
            return

        try:
            reply_topic = status_topic(msg.sender_id)
        except ValueError as e:
            raise DecodeError(str(e), field='senderID', value=msg.sender_id) from e

        self.logger.info(
            event=LogEvent.COMMAND_RECEIVED,
            message=f"cmd = {msg.cmd.value} from {msg.sender_id}",
            metadata={'sender_id': msg.sender_id, 'cmd': msg.cmd.value}
        )
        self.output.set(msg.cmd)
        self.handled += 1
        self.logger.info(
            event=LogEvent.OUTPUT_CHANGED,
            message=f"Turning LED {msg.cmd.value.upper()}.",
            metadata={'state': msg.cmd.value}
        )

        self.send_status(reply_topic, msg.cmd)

    def send_status(self, topic: str, state: LedState) -> bool:
        """Publish the LED status with its fixed confirmation text."""
        status = StatusMessage(status=state, message=CONFIRMATIONS[state])
        try:
            payload = self.codec.encode_status(status)
        except PayloadTooLargeError as e:
            self.logger.error(
                event=LogEvent.ENCODE_FAILED,
                message="Status payload exceeds the maximum payload size",
                exc_info=e,
                metadata={'topic': topic}
            )
            return False

        try:
            self.session.publish(topic, payload)
        except PublishError:
            # already reported by the session; the output change stands
            return False

        self.logger.info(
            event=LogEvent.STATUS_SENT,
            message=f"Status '{state.value}' sent",
            metadata={'topic': topic, 'status': state.value}
        )
        return True
