#!/usr/bin/env python3
"""
xGen CLI - Command-line interface for Reliance XR (xGen) alarm panels.

Usage:
    python -m xgen_client.cli --host 192.168.1.50 --username admin --pin 1234 status
    xgen-cli --host 192.168.1.50 --username admin --pin 1234 arm away
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import httpx

from .client import XGenClient, XGenConfig
from .errors import XGenError
from .monitor import ChangeEvent, XGenMonitor
from .pulse import PulseEvent


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag or LOG_LEVEL env var."""
    level = logging.DEBUG if debug or os.environ.get("LOG_LEVEL") == "debug" else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from config.json if it exists."""
    paths_to_try = []
    if config_path:
        paths_to_try.append(config_path)
    paths_to_try.extend([
        Path.cwd() / "config.json",
        Path.home() / ".xgen" / "config.json",
    ])

    for path in paths_to_try:
        if path.exists():
            try:
                return json.loads(path.read_text())
            except (json.JSONDecodeError, OSError):
                pass
    return {}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="xgen-cli",
        description="CLI for Reliance XR (xGen) alarm panels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  xgen-cli --host 192.168.1.50 --username admin --pin 1234 status
  xgen-cli arm away
  xgen-cli arm stay --area 1
  xgen-cli disarm
  xgen-cli monitor --door-zone 5
""",
    )

    # Connection options
    parser.add_argument("--host", help="Panel IP address or host name")
    parser.add_argument("--username", help="Panel user name")
    parser.add_argument("--pin", help="User PIN code")
    parser.add_argument("--area", type=int, help="Area index (default: 0)")
    parser.add_argument("--door-zone", type=int, help="Door zone number to report")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # status
    subparsers.add_parser("status", help="Show area mode and door state")

    # arm
    arm_parser = subparsers.add_parser("arm", help="Arm the area")
    arm_parser.add_argument(
        "mode",
        nargs="?",
        default="away",
        choices=["away", "stay"],
        help="Arm mode (default: away)",
    )

    # disarm
    subparsers.add_parser("disarm", help="Disarm the area")

    # monitor
    subparsers.add_parser("monitor", help="Poll the panel and print changes")

    return parser


async def cmd_status(client: XGenClient, debug: bool = False) -> None:
    """Show area mode and door state."""
    config = client.config
    status = await client.status(config.area_index)

    print(f"\nArea {config.area_index}:")
    print(f"  Mode: {status.area_mode}")
    if status.is_exiting:
        print("  Exit delay in progress")

    if config.door_zone > 0:
        is_open = status.is_zone_open(
            config.door_zone, config.zone_open_bank, config.zone_open_when_set
        )
        print(f"\nZone {config.door_zone}: {'OPEN' if is_open else 'CLOSED'}")

    if debug:
        print(f"\nRaw bankstates: {status.bankstates}")


async def cmd_arm(client: XGenClient, mode: str) -> int:
    """Arm the area. Returns the exit code."""
    area = client.config.area_index
    print(f"\nArming area {area} ({mode})...")
    try:
        if mode == "stay":
            await client.arm_stay(area)
        else:
            await client.arm_away(area)
        print(f"✓ Area {area} arm command sent")
        return 0
    except XGenError as e:
        print(f"✗ Arm failed: {e}")
        return 1


async def cmd_disarm(client: XGenClient) -> int:
    """Disarm the area. Returns the exit code."""
    area = client.config.area_index
    print(f"\nDisarming area {area}...")
    try:
        await client.disarm(area)
        print(f"✓ Area {area} disarm command sent")
        return 0
    except XGenError as e:
        print(f"✗ Disarm failed: {e}")
        return 1


async def cmd_monitor(client: XGenClient, debug: bool = False) -> None:
    """Start monitoring mode."""
    monitor = XGenMonitor(client)

    def on_change(event: ChangeEvent) -> None:
        if event.field == "door_open":
            old = "unknown" if event.old_value is None else ("OPEN" if event.old_value else "CLOSED")
            new = "OPEN" if event.new_value else "CLOSED"
            print(f"\U0001F6AA Zone {client.config.door_zone}: {old} → {new}")
        else:
            print(f"\U0001F3E0 Area {client.config.area_index}: {event.old_value} → {event.new_value}")

    def on_pulse(event: PulseEvent) -> None:
        if debug:
            print(f"   pulse '{event.key}' {'on' if event.active else 'off'}")

    def on_error(err: Exception) -> None:
        print(f"\n❌ Poll error: {err}")

    def on_fault_changed(faulted: bool) -> None:
        print("⚠ Panel fault" if faulted else "✓ Panel reachable again")

    # Register event handlers
    monitor.on_change(on_change)
    monitor.on_pulse(on_pulse)
    monitor.on_error(on_error)
    monitor.on_fault_changed(on_fault_changed)

    # Start monitoring
    await monitor.start()

    print(f"Polling every {monitor.poll_interval:g}s... (Ctrl+C to stop)\n")

    # Keep running until interrupted
    try:
        while monitor.running:
            await asyncio.sleep(1)
    except asyncio.CancelledError:
        pass
    finally:
        await monitor.stop()
        print("\n✓ Monitor stopped")


async def run_command(args: argparse.Namespace) -> int:
    """Run the specified command."""
    # Load config from file and merge with CLI args
    config_data = load_config(args.config)

    # CLI args override config file
    overrides = {
        "host": args.host,
        "username": args.username,
        "pin": args.pin,
        "area_index": args.area,
        "door_zone": args.door_zone,
    }
    config_data.update({key: value for key, value in overrides.items() if value is not None})
    config = XGenConfig.from_dict(config_data)

    # Validate required fields
    missing = [name for name in ("host", "username", "pin") if not getattr(config, name)]
    if missing:
        print(f"Error: Missing required configuration: {', '.join(missing)}")
        print("\nProvide via CLI args or config.json:")
        print("  --host <ip> --username <name> --pin <pin>")
        return 1

    debug = args.debug

    try:
        async with XGenClient(config) as client:
            # Run command
            if args.command == "status":
                await cmd_status(client, debug)
            elif args.command == "arm":
                return await cmd_arm(client, args.mode)
            elif args.command == "disarm":
                return await cmd_disarm(client)
            elif args.command == "monitor":
                await cmd_monitor(client, debug)
            else:
                print(f"Unknown command: {args.command}")
                return 1

        return 0

    except XGenError as e:
        print(f"\nError: {e}")
        return 1
    except httpx.HTTPError as e:
        print(f"\nError: {e}")
        return 1


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    # Setup logging before running commands
    setup_logging(getattr(args, "debug", False))

    try:
        exit_code = asyncio.run(run_command(args))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
