"""
Configuration schema for LedLink nodes.

This module defines the configuration of one node process: its role and
identity, the broker it talks to, reconnect timing and button sampling.
Broker settings can be given directly or picked from named profiles (e.g. a
campus Wi-Fi broker, a wired lab broker and a home broker).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

from ledlink_mqtt.codec import DEFAULT_MAX_PAYLOAD_SIZE
from ledlink_mqtt.reconnect import DEFAULT_RETRY_INTERVAL
from ledlink_mqtt.topics import validate_identity

ROLE_BUTTON = "button"
ROLE_LED = "led"
VALID_ROLES = {ROLE_BUTTON, ROLE_LED}


@dataclass(frozen=True)
class BrokerConfig:
    """MQTT broker configuration."""

    host: str
    port: int = 1883
    keepalive: int = 60
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 0  # broker best effort, no acknowledgement

    connect_timeout: float = 5.0
    poll_timeout: float = 0.01
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE

    def __post_init__(self):
        """Validate broker configuration."""
        if not self.host:
            raise ValueError("Broker host cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

        if self.keepalive <= 0:
            raise ValueError(f"keepalive must be > 0, got {self.keepalive}")

        if self.connect_timeout <= 0:
            raise ValueError(
                f"connect_timeout must be > 0, got {self.connect_timeout}"
            )

        if self.poll_timeout < 0:
            raise ValueError(
                f"poll_timeout must be >= 0, got {self.poll_timeout}"
            )

        # Below this even a command for a short identity does not fit
        if self.max_payload_size < 64:
            raise ValueError(
                f"max_payload_size must be >= 64, got {self.max_payload_size}"
            )


@dataclass(frozen=True)
class ReconnectConfig:
    """Reconnect timing."""

    interval: float = DEFAULT_RETRY_INTERVAL

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError(f"Reconnect interval must be > 0, got {self.interval}")


@dataclass(frozen=True)
class ButtonConfig:
    """Push-button sampling (button role only)."""

    debounce_interval: float = 0.01  # input must be stable this long
    sample_interval: float = 0.008   # delay between control loop ticks
    hold_time: float = 0.05          # console panel: simulated press length

    def __post_init__(self):
        if self.debounce_interval < 0:
            raise ValueError(
                f"debounce_interval must be >= 0, got {self.debounce_interval}"
            )
        if self.sample_interval <= 0:
            raise ValueError(
                f"sample_interval must be > 0, got {self.sample_interval}"
            )
        if self.hold_time <= self.debounce_interval:
            raise ValueError(
                "hold_time must exceed debounce_interval, "
                f"got {self.hold_time} <= {self.debounce_interval}"
            )


@dataclass(frozen=True)
class NodeConfig:
    """
    Main configuration for one node process.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    role: str
    identity: str
    broker: BrokerConfig
    peer_identity: Optional[str] = None

    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    button: ButtonConfig = field(default_factory=ButtonConfig)

    startup_blink: bool = True
    loop_interval: float = 0.01

    def __post_init__(self):
        """Validate node configuration."""
        if self.role not in VALID_ROLES:
            raise ValueError(
                f"Invalid role: {self.role}. Must be one of {sorted(VALID_ROLES)}"
            )

        validate_identity(self.identity)

        if self.role == ROLE_BUTTON:
            if not self.peer_identity:
                raise ValueError("Button node requires peer_identity (the LED node)")
            validate_identity(self.peer_identity)
            if self.peer_identity == self.identity:
                raise ValueError("peer_identity must differ from identity")

        if self.loop_interval <= 0:
            raise ValueError(f"loop_interval must be > 0, got {self.loop_interval}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeConfig":
        """
        Build configuration from a parsed YAML mapping.

        The broker section is either given directly under `broker`, or picked
        from `profiles` by `active_profile`.
        """
        if not isinstance(data, dict):
            raise ValueError("Node configuration must be a mapping")

        broker_data = data.get("broker")
        profiles = data.get("profiles") or {}
        active = data.get("active_profile")
        if active is not None:
            if active not in profiles:
                raise ValueError(
                    f"active_profile '{active}' not found. "
                    f"Available profiles: {', '.join(sorted(profiles)) or 'none'}"
                )
            broker_data = {**profiles[active], **(broker_data or {})}
        if not broker_data:
            raise ValueError("Missing broker configuration (broker or active_profile)")

        role = data.get("role")
        button_data = data.get("button", {})
        return cls(
            role=role,
            identity=data.get("identity"),
            peer_identity=data.get("peer_identity"),
            broker=BrokerConfig(**broker_data),
            reconnect=ReconnectConfig(**data.get("reconnect", {})),
            button=ButtonConfig(**button_data),
            startup_blink=data.get("startup_blink", True),
            loop_interval=data.get(
                "loop_interval",
                ButtonConfig(**button_data).sample_interval if role == ROLE_BUTTON else 0.01
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "NodeConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            role: "button"
            identity: "btnNode07"
            peer_identity: "ledNode07"

            active_profile: "lab"
            profiles:
              lab:
                host: "10.51.97.101"
              home:
                host: "192.168.0.251"

            reconnect:
              interval: 5.0

            button:
              debounce_interval: 0.01
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)
