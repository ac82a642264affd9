"""
MQTT client wrapper for sending one-shot LED commands.

Handles MQTT connection, publishing, and disconnection for a single command,
the way an MQTT sniffer would drive an LED node by hand.
"""

import paho.mqtt.client as mqtt
from typing import Optional

from ledlink_mqtt import CommandCodec, CommandMessage, LedState, command_topic


class MQTTCommandClient:
    """
    One-shot publisher of CommandMessages to `<target>/ledCommand`.

    Uses its own paho client (empty client id: broker assigned) so it never
    collides with a running node. The reply goes to `<sender_id>/ledStatus`;
    run `ledlink-cli watch <sender_id>` to see it.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "",
        codec: Optional[CommandCodec] = None,
    ):
        self.broker = broker
        self.port = port
        self.codec = codec or CommandCodec()

        self.client = mqtt.Client(client_id=client_id)

        if username and password:
            self.client.username_pw_set(username, password)

    def send_command(
        self,
        target: str,
        state: LedState,
        sender_id: str,
        qos: int = 0,
        timeout: float = 5.0,
    ) -> str:
        """
        Send one command to the LED node `target`.

        Args:
            target: LED node identity (recipient)
            state: LedState.ON or LedState.OFF
            sender_id: Identity status replies will be addressed to
            qos: Quality of Service (default: 0)
            timeout: Seconds to wait for the publish to complete

        Returns:
            Topic the command was published to

        Raises:
            ConnectionError: If unable to connect to MQTT broker
            RuntimeError: If the publish does not complete
        """
        topic = command_topic(target)
        payload = self.codec.encode_command(
            CommandMessage(sender_id=sender_id, cmd=LedState(state))
        )

        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except OSError as e:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            ) from e

        self.client.loop_start()
        try:
            result = self.client.publish(topic, payload, qos=qos)
            result.wait_for_publish(timeout=timeout)
            if not result.is_published():
                raise RuntimeError(f"Failed to send command to {topic} (rc={result.rc})")
        finally:
            self.client.disconnect()
            self.client.loop_stop()

        return topic
