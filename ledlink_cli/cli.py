"""
LedLink CLI - Main entry point.

Provides a command-line interface for driving LED nodes by hand:
  - send: publish one on/off command to an LED node
  - watch: print the commands and status reports addressed to a node
"""

import argparse
import sys
import time
import uuid
from pathlib import Path

from ledlink_mqtt import (
    BrokerSession,
    CommandCodec,
    DecodeError,
    LedState,
    ReconnectPolicy,
    TopicRouter,
    command_topic,
    create_logger,
    status_topic,
)
from ledlink_node.config import BrokerConfig, NodeConfig

from .mqtt_client import MQTTCommandClient


def load_broker(args: argparse.Namespace) -> BrokerConfig:
    """
    Broker settings: --config file first, then --broker/--port overrides.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config is invalid
    """
    if args.config:
        broker = NodeConfig.from_yaml(args.config).broker
        host = args.broker or broker.host
        port = args.port or broker.port
        return BrokerConfig(
            host=host,
            port=port,
            keepalive=broker.keepalive,
            username=broker.username,
            password=broker.password,
            qos=broker.qos,
            connect_timeout=broker.connect_timeout,
            poll_timeout=broker.poll_timeout,
            max_payload_size=broker.max_payload_size,
        )
    return BrokerConfig(host=args.broker or "localhost", port=args.port or 1883)


def send(args: argparse.Namespace) -> None:
    """Send one command and report where it went."""
    broker = load_broker(args)
    client = MQTTCommandClient(
        broker=broker.host,
        port=broker.port,
        username=broker.username,
        password=broker.password,
        codec=CommandCodec(max_payload_size=broker.max_payload_size),
    )
    topic = client.send_command(
        target=args.target,
        state=LedState(args.state),
        sender_id=args.sender,
        qos=broker.qos,
    )
    print(f"✅ Command sent: {args.state} → {topic}")


def watch(args: argparse.Namespace) -> int:
    """
    Print every command/status frame addressed to `args.node` until Ctrl+C.

    Returns:
        Number of frames printed
    """
    broker = load_broker(args)
    codec = CommandCodec(max_payload_size=broker.max_payload_size)
    diagnostics = create_logger("watch", node=args.node)
    router = TopicRouter(diagnostics)
    printed = 0

    def show_command(payload: bytes) -> None:
        nonlocal printed
        msg = codec.decode_command(payload)
        printed += 1
        print(f"📥 {command_topic(args.node)}  {msg.sender_id} → {msg.cmd.value}")

    def show_status(payload: bytes) -> None:
        nonlocal printed
        msg = codec.decode_status(payload)
        printed += 1
        print(f"📥 {status_topic(args.node)}  {msg.status.value}: {msg.message}")

    router.register(command_topic(args.node), show_command)
    router.register(status_topic(args.node), show_status)

    session = BrokerSession(
        identity=f"ledlink-watch-{uuid.uuid4().hex[:8]}",
        broker_host=broker.host,
        broker_port=broker.port,
        router=router,
        logger=diagnostics,
        keepalive=broker.keepalive,
        connect_timeout=broker.connect_timeout,
        poll_timeout=0.1,
        max_payload_size=broker.max_payload_size,
        qos=broker.qos,
        username=broker.username,
        password=broker.password,
    )

    def register(s: BrokerSession) -> None:
        for topic in sorted(router.topics):
            s.subscribe(topic)

    policy = ReconnectPolicy(diagnostics, interval=5.0)
    try:
        while True:
            if not policy.ensure_connected(session, register):
                time.sleep(min(0.1, policy.seconds_until_due()))
                continue
            session.pump()
    except KeyboardInterrupt:
        pass
    finally:
        session.disconnect()
    return printed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledlink-cli",
        description="LedLink CLI - Drive LedLink nodes over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Turn ledNode07's LED on, replies go to btnNode07
  ledlink-cli send on --target ledNode07 --sender btnNode07

  # Same, broker settings taken from a node config
  ledlink-cli --config config/button_node.yaml send off --target ledNode07 --sender btnNode07

  # Watch the status reports arriving for btnNode07
  ledlink-cli watch btnNode07
"""
    )

    # Global arguments
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Node config YAML to take broker settings from"
    )
    parser.add_argument(
        "--broker",
        default=None,
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="MQTT broker port (default: 1883)"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    send_cmd = subparsers.add_parser('send', help='Send one on/off command')
    send_cmd.add_argument('state', choices=[s.value for s in LedState], help='LED state')
    send_cmd.add_argument('--target', required=True, help='LED node identity')
    send_cmd.add_argument('--sender', required=True, help='Identity to address the status reply to')

    watch_cmd = subparsers.add_parser('watch', help='Print commands/status addressed to a node')
    watch_cmd.add_argument('node', help='Node identity to watch')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == 'send':
            send(args)
        elif args.command == 'watch':
            watch(args)

    except (ValueError, DecodeError) as e:
        print(f"❌ Invalid input: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
