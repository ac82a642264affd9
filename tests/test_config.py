"""Tests for YAML node configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from ledlink_node.config import BrokerConfig, ButtonConfig, NodeConfig, ROLE_BUTTON, ROLE_LED

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def write_yaml(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "node.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_shipped_button_config_loads() -> None:
    config = NodeConfig.from_yaml(CONFIG_DIR / "button_node.yaml")

    assert config.role == ROLE_BUTTON
    assert config.identity == "btnNode07"
    assert config.peer_identity == "ledNode07"
    assert config.broker.host == "localhost"
    assert config.broker.port == 1883
    assert config.reconnect.interval == 5.0
    assert config.loop_interval == config.button.sample_interval


def test_shipped_led_config_loads() -> None:
    config = NodeConfig.from_yaml(CONFIG_DIR / "led_node.yaml")

    assert config.role == ROLE_LED
    assert config.identity == "ledNode07"
    assert config.peer_identity is None
    assert config.broker.max_payload_size == 512


def test_profile_selection(tmp_path: Path) -> None:
    path = write_yaml(tmp_path, {
        "role": "led",
        "identity": "ledNode07",
        "active_profile": "home",
        "profiles": {
            "lab_wifi": {"host": "10.51.97.101"},
            "home": {"host": "192.168.0.251", "port": 1884},
        },
    })

    config = NodeConfig.from_yaml(path)

    assert config.broker == BrokerConfig(host="192.168.0.251", port=1884)


def test_broker_section_overrides_profile(tmp_path: Path) -> None:
    path = write_yaml(tmp_path, {
        "role": "led",
        "identity": "ledNode07",
        "active_profile": "lab",
        "profiles": {"lab": {"host": "10.200.97.100", "port": 1883}},
        "broker": {"port": 8883, "qos": 1},
    })

    broker = NodeConfig.from_yaml(path).broker

    assert (broker.host, broker.port, broker.qos) == ("10.200.97.100", 8883, 1)


def test_unknown_profile(tmp_path: Path) -> None:
    path = write_yaml(tmp_path, {
        "role": "led",
        "identity": "ledNode07",
        "active_profile": "office",
        "profiles": {"home": {"host": "192.168.0.251"}},
    })

    with pytest.raises(ValueError, match="office"):
        NodeConfig.from_yaml(path)


def test_missing_broker(tmp_path: Path) -> None:
    path = write_yaml(tmp_path, {"role": "led", "identity": "ledNode07"})
    with pytest.raises(ValueError, match="broker"):
        NodeConfig.from_yaml(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        NodeConfig.from_yaml(tmp_path / "absent.yaml")


def test_defaults() -> None:
    config = NodeConfig.from_dict({
        "role": "led",
        "identity": "ledNode07",
        "broker": {"host": "localhost"},
    })

    assert config.broker.keepalive == 60
    assert config.broker.connect_timeout == 5.0
    assert config.broker.qos == 0
    assert config.reconnect.interval == 5.0
    assert config.startup_blink is True
    assert config.loop_interval == 0.01


@pytest.mark.parametrize(
    "data, match",
    [
        ({"role": "switch", "identity": "x"}, "role"),
        ({"role": "led", "identity": ""}, "empty"),
        ({"role": "led"}, "empty"),
        ({"role": "led", "identity": "led#07"}, "#"),
        ({"role": "button", "identity": "btnNode07"}, "peer_identity"),
        ({"role": "button", "identity": "btnNode07", "peer_identity": "btnNode07"}, "differ"),
        ({"role": "led", "identity": "ledNode07", "loop_interval": 0}, "loop_interval"),
    ],
)
def test_invalid_node(data: dict, match: str) -> None:
    with pytest.raises(ValueError, match=match):
        NodeConfig.from_dict({**data, "broker": {"host": "localhost"}})


@pytest.mark.parametrize(
    "broker",
    [
        {"host": ""},
        {"host": "localhost", "port": 0},
        {"host": "localhost", "qos": 3},
        {"host": "localhost", "keepalive": 0},
        {"host": "localhost", "connect_timeout": 0},
        {"host": "localhost", "max_payload_size": 32},
    ],
)
def test_invalid_broker(broker: dict) -> None:
    with pytest.raises(ValueError):
        BrokerConfig(**broker)


def test_hold_time_must_outlast_debounce() -> None:
    with pytest.raises(ValueError):
        ButtonConfig(debounce_interval=0.05, hold_time=0.05)


def test_reconnect_interval_validated() -> None:
    with pytest.raises(ValueError):
        NodeConfig.from_dict({
            "role": "led",
            "identity": "ledNode07",
            "broker": {"host": "localhost"},
            "reconnect": {"interval": -1},
        })


def test_not_a_mapping(tmp_path: Path) -> None:
    path = tmp_path / "node.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        NodeConfig.from_yaml(path)
