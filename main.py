"""
PLC Poll Controller — Entry Point
==================================
Connect to an S7 CPU, scan the monitored bit and optionally open
the operator console.

Usage:
  python main.py --simulate              # Simulator + CLI console
  python main.py --plc 192.168.0.1       # Real PLC + CLI console
  python main.py --plc 192.168.0.1 --headless
"""

import argparse
import logging
import signal
import sys

from plcpoll.config.settings import PollSettings
from plcpoll.core.controller import PollController
from plcpoll.drivers.simulator import PLCSimulator


def parse_args():
    parser = argparse.ArgumentParser(
        description="S7 PLC Poll Controller"
    )
    parser.add_argument(
        "--plc",
        help="PLC IP address (overrides settings)"
    )
    parser.add_argument(
        "--rack", type=int,
        help="CPU rack number (overrides settings)"
    )
    parser.add_argument(
        "--slot", type=int,
        help="CPU slot number (overrides settings)"
    )
    parser.add_argument(
        "--simulate", action="store_true",
        help="Use the in-memory PLC simulator instead of a real CPU"
    )
    parser.add_argument(
        "--headless", action="store_true",
        help="Run without console (headless mode)"
    )
    parser.add_argument(
        "--settings",
        help="Path to settings JSON file"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--log-file",
        help="Log to file instead of stderr"
    )
    return parser.parse_args()


def create_client(args, settings: PollSettings):
    """Create the appropriate device client based on arguments."""
    if args.simulate:
        return PLCSimulator()

    from plcpoll.drivers.snap7_driver import Snap7Driver
    return Snap7Driver(tcp_port=settings.tcp_port)


def main():
    args = parse_args()

    # Configure logging
    log_kwargs = {
        "level": getattr(logging, args.log_level),
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        "datefmt": "%H:%M:%S",
    }
    if args.log_file:
        log_kwargs["filename"] = args.log_file
    logging.basicConfig(**log_kwargs)

    # Load configuration
    settings = PollSettings.load(args.settings) if args.settings else PollSettings()
    if args.plc:
        settings.plc_address = args.plc
    if args.rack is not None:
        settings.rack = args.rack
    if args.slot is not None:
        settings.slot = args.slot

    controller = PollController(
        client=create_client(args, settings),
        settings=settings,
    )

    # Handle SIGINT/SIGTERM gracefully
    def signal_handler(sig, frame):
        controller.close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    controller.connect()

    try:
        if args.headless:
            print("PLC poll controller running (headless mode). Press Ctrl+C to stop.")
            signal.pause()
        else:
            from console.cli import run_cli
            run_cli(controller)
    finally:
        controller.close()


if __name__ == "__main__":
    main()
