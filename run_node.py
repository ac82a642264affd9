#!/usr/bin/env python3
"""
LedLink Node - Entry Point
==========================

Starts one node process. The role comes from the config file:

- button: sends `on`/`off` to its peer LED node when a button is pressed
  (on a desktop: type `on` or `off` + Enter) and prints the status replies
- led: switches its LED on command and replies with the new state

Usage:
    python run_node.py --config config/led_node.yaml
    python run_node.py --config config/button_node.yaml --log-file logs/button_node.log

Stops on Ctrl+C or SIGTERM after disconnecting from the broker. A broker
that is down or goes away is retried every `reconnect.interval` seconds;
the process never exits because of it.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ledlink_node import NodeApp


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    """
    Route app messages and JSON diagnostics to stdout (and log_file if given).

    With `verbose`, frame-level diagnostics (every received frame, every raw
    button edge) are included.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )
    return logging.getLogger("run_node")


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="LedLink Node - MQTT button / LED node",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # LED node against the broker picked by active_profile
  python run_node.py --config config/led_node.yaml

  # Button node, with a copy of the log on disk
  python run_node.py --config config/button_node.yaml --log-file logs/button_node.log
        """
    )
    parser.add_argument('--config', type=Path, required=True, help='Node configuration YAML')
    parser.add_argument('--log-file', type=Path, default=None, help='Also log to this file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Include frame-level diagnostics')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logger = setup_logging(args.log_file, args.verbose)

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = NodeApp(
        config_path=args.config,
        log_level=logging.DEBUG if args.verbose else logging.INFO,
    )

    try:
        app.setup()
    except (ValueError, TypeError) as e:
        # TypeError: unknown key in a config section
        logger.error(f"❌ Invalid configuration {args.config}: {e}")
        sys.exit(2)

    try:
        app.run()
    except Exception as e:
        logger.error(f"❌ Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
