"""
ledlink_node - Button and LED node roles

Bounded Context: Node behaviour on top of the ledlink_mqtt protocol
Responsibilities:
  - Role controllers (ButtonController, LedController)
  - Push-button debouncing
  - Local I/O collaborators (LED output, button panel)
  - YAML configuration and the cooperative control loop

Architecture:
  - NodeConfig: frozen dataclasses loaded from YAML
  - NodeController: role logic, handlers registered with the TopicRouter
  - NodeRunner: connect/retry → pump → sample, once per tick
  - NodeApp: wiring + signal handling
"""

from .config import NodeConfig, BrokerConfig, ReconnectConfig, ButtonConfig
from .controllers import NodeController, ButtonController, LedController, CONFIRMATIONS
from .debounce import Debouncer, Edge
from .hardware import LedOutput, ConsoleLed, ButtonPanel, ConsoleButtonPanel
from .runner import NodeRunner
from .app import NodeApp, build_session, build_controller

__all__ = [
    "NodeConfig",
    "BrokerConfig",
    "ReconnectConfig",
    "ButtonConfig",
    "NodeController",
    "ButtonController",
    "LedController",
    "CONFIRMATIONS",
    "Debouncer",
    "Edge",
    "LedOutput",
    "ConsoleLed",
    "ButtonPanel",
    "ConsoleButtonPanel",
    "NodeRunner",
    "NodeApp",
    "build_session",
    "build_controller",
]
