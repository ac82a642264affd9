"""
NodeApp - wires one node process together from its configuration.

Lifecycle:
    1. Load configuration from YAML
    2. Create logger, router, codec, session, reconnect policy
    3. Create the role controller (button or LED) and its local I/O
    4. Run the control loop until SIGINT/SIGTERM
    5. Graceful shutdown (disconnect from broker)
"""

import logging
import signal
from pathlib import Path
from typing import Optional

from ledlink_mqtt import (
    BrokerSession,
    CommandCodec,
    ReconnectPolicy,
    TopicRouter,
    create_logger,
)

from .config import NodeConfig, ROLE_BUTTON
from .controllers import ButtonController, LedController, NodeController
from .hardware import ButtonPanel, ConsoleButtonPanel, ConsoleLed, LedOutput
from .runner import NodeRunner

logger = logging.getLogger(__name__)


def build_session(config: NodeConfig, router: TopicRouter, diagnostics, client=None) -> BrokerSession:
    """Create the (not yet connected) broker session described by config."""
    broker = config.broker
    return BrokerSession(
        identity=config.identity,
        broker_host=broker.host,
        broker_port=broker.port,
        router=router,
        logger=diagnostics,
        keepalive=broker.keepalive,
        connect_timeout=broker.connect_timeout,
        poll_timeout=broker.poll_timeout,
        max_payload_size=broker.max_payload_size,
        qos=broker.qos,
        username=broker.username,
        password=broker.password,
        client=client,
    )


def build_controller(
    config: NodeConfig,
    session: BrokerSession,
    codec: CommandCodec,
    diagnostics,
    output: Optional[LedOutput] = None,
    indicator: Optional[LedOutput] = None,
) -> NodeController:
    """Create the role controller for config.role."""
    if config.role == ROLE_BUTTON:
        return ButtonController(
            identity=config.identity,
            peer_identity=config.peer_identity,
            session=session,
            codec=codec,
            logger=diagnostics,
            indicator=indicator,
        )
    return LedController(
        identity=config.identity,
        session=session,
        codec=codec,
        logger=diagnostics,
        output=output or ConsoleLed("LED"),
        indicator=indicator,
    )


class NodeApp:
    """
    Application wrapper for one node.

    Handles:
    - Configuration loading
    - Component initialization
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[NodeConfig] = None,
        panel: Optional[ButtonPanel] = None,
        client=None,
        log_level: int = logging.INFO,
    ):
        if config is None and config_path is None:
            raise ValueError("Either config_path or config is required")
        self.config_path = config_path
        self.config = config
        self.panel = panel
        self.client = client
        self.log_level = log_level

        # Components (initialized in setup())
        self.session: Optional[BrokerSession] = None
        self.controller: Optional[NodeController] = None
        self.runner: Optional[NodeRunner] = None

        self._shutdown_requested = False

    def setup(self) -> None:
        """Build every component (no network activity)."""
        if self.config is None:
            logger.info(f"📄 Loading configuration: {self.config_path}")
            self.config = NodeConfig.from_yaml(self.config_path)
        config = self.config
        logger.info(f"✅ Configuration loaded ({config.role} node {config.identity})")

        diagnostics = create_logger(
            f"{config.role}_node", level=self.log_level, identity=config.identity, role=config.role
        )
        router = TopicRouter(diagnostics)
        codec = CommandCodec(max_payload_size=config.broker.max_payload_size)
        self.session = build_session(config, router, diagnostics, client=self.client)

        indicator = ConsoleLed("on-board LED") if config.startup_blink else None
        self.controller = build_controller(config, self.session, codec, diagnostics, indicator=indicator)

        if config.role == ROLE_BUTTON and self.panel is None:
            self.panel = ConsoleButtonPanel(hold_time=config.button.hold_time)

        policy = ReconnectPolicy(diagnostics, interval=config.reconnect.interval)
        self.runner = NodeRunner(
            controller=self.controller,
            session=self.session,
            policy=policy,
            logger=diagnostics,
            panel=self.panel,
            debounce_interval=config.button.debounce_interval,
            loop_interval=config.loop_interval,
        )
        logger.info(f"🔌 Broker: {self.session.broker}, subscriptions: "
                    f"{', '.join(self.controller.subscriptions())}")

    def run(self) -> None:
        """Run the control loop; blocks until shutdown is requested."""
        if not self.runner:
            raise RuntimeError("Node not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        if self.config.role == ROLE_BUTTON:
            logger.info("Type 'on' or 'off' + Enter to press a button, Ctrl+C to stop")
        try:
            self.runner.run_forever()
        except KeyboardInterrupt:
            logger.info("⚠️  KeyboardInterrupt received")
            self.shutdown()

    def shutdown(self) -> None:
        """Stop the loop; the runner disconnects from the broker on exit."""
        if self._shutdown_requested:
            logger.warning("⚠️  Shutdown already in progress")
            return
        self._shutdown_requested = True
        logger.info("🛑 Shutting down node")
        if self.runner:
            self.runner.stop()

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        logger.info(f"⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()
