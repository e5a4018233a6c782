"""
CLI interface for desk control.

Provides command-line tools for scanning BLE devices and controlling the desk.
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

from deskdrive.config import FEEDBACK_NOTIFY, DeskConfig
from deskdrive.desk import Desk
from deskdrive.errors import (
    ConnectionExhaustedError,
    DeskError,
    DeviceNotFoundError,
    SafetyAbortError,
)
from deskdrive.locator import DeviceLocator
from deskdrive.protocol import Direction
from deskdrive.scanner import print_devices, scan_devices

console = Console()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_SAFETY = 2  # desk backed off an obstacle

COMMANDS = ("toggle", "height", "sit", "stand", "goto", "up", "down", "stop", "describe", "locate")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
    )


def parse_target(value: str) -> float:
    """Parse a target height; whole numbers above 10 are centimeters (``74`` -> 0.74m)."""
    height = float(value)
    return height / 100.0 if height > 10 else height


def format_height(height: float) -> str:
    return f'{height * 100:.1f}cm ({height / 0.0254:.1f}")'


async def run_command(desk: Desk, command: str, value: str | None = None) -> None:
    """Run one desk command on a connected desk."""
    if command == "height":
        console.print(f"📏 Height: {format_height(await desk.get_height())}")

    elif command == "describe":
        console.print(desk.describe(), markup=False)

    elif command in ("sit", "stand", "toggle", "goto"):
        if command == "goto":
            if value is None:
                raise ValueError("Usage: goto <height>  (meters, or centimeters e.g. 74)")
            final = await desk.move_to_target(parse_target(value))
        else:
            final = await getattr(desk, command)()
        console.print(f"✅ Done: {format_height(final)}")

    elif command in ("up", "down"):
        await desk.move_direction(Direction(command))
        console.print(f"{'⬆️' if command == 'up' else '⬇️'}  Moving {command}")

    elif command == "stop":
        await desk.stop()
        console.print("🛑 Stopped")

    else:
        raise ValueError(f"Unknown command: {command}")


async def run_locate(config: DeskConfig) -> None:
    """Find the desk without connecting to it."""
    link = await DeviceLocator(config).locate_and_connect(connect=False)
    console.print(link.describe(), markup=False)


async def run_control(args: argparse.Namespace) -> int:
    """Run a desk command. Returns the process exit code."""
    try:
        config = DeskConfig.from_env(
            address=args.address,
            adapter=args.adapter,
            feedback=FEEDBACK_NOTIFY if args.notify else None,
        )
    except ValueError as e:
        console.print(f"❌ {e}")
        return EXIT_ERROR

    if args.command == "locate":
        try:
            await run_locate(config)
        except DeskError as e:
            console.print(f"❌ {e}")
            return EXIT_ERROR
        return EXIT_OK

    desk = Desk(config)
    try:
        await desk.connect()
        await run_command(desk, args.command, args.value)

    except SafetyAbortError as e:
        console.print(f"⚠️  Collision detected: {e}")
        return EXIT_SAFETY
    except DeviceNotFoundError as e:
        console.print(f"❌ {e}")
        return EXIT_ERROR
    except ConnectionExhaustedError as e:
        console.print(f"❌ Connection failed: {e}")
        return EXIT_ERROR
    except DeskError as e:
        console.print(f"❌ Desk error: {e}")
        return EXIT_ERROR
    except ValueError as e:
        console.print(f"❌ {e}")
        return EXIT_ERROR
    finally:
        await desk.disconnect()

    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="desk-control",
        description="Move a Linak / IKEA Idåsen desk to a height over Bluetooth.",
        epilog="Examples:\n"
        "  desk-control                 # toggle between sitting and standing\n"
        "  desk-control goto 74         # move to 74cm\n"
        "  desk-control goto 1.12       # move to 1.12m\n"
        "  desk-control height          # show current height",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", nargs="?", default="toggle", choices=COMMANDS)
    parser.add_argument("value", nargs="?", help="target height for goto")
    parser.add_argument("--address", "-a", help="desk address (default: $DESK_ADDRESS)")
    parser.add_argument("--adapter", help="Bluetooth adapter, e.g. hci0 (default: first adapter)")
    parser.add_argument("--notify", action="store_true", help="use height notifications instead of polling")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    return parser


def main_scan():
    """Entry point for desk-scan command."""
    configure_logging(verbose=False)
    console.print("🔍 Scanning for BLE devices (10 seconds)...\n")
    devices = asyncio.run(scan_devices(timeout=10.0))
    print_devices(devices)

    desks = [d for d in devices if d.is_desk]
    if desks:
        console.print(f"\n✅ Found {len(desks)} desk(s):")
        for desk in desks:
            console.print(f"   • {desk.name} ({desk.address})")
    else:
        console.print("\n⚠️  No desks found. Make sure your desk is powered on.")


def main_control(argv: list[str] | None = None):
    """Entry point for desk-control command."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    logger.debug("input arguments %s", args)
    try:
        code = asyncio.run(run_control(args))
    except KeyboardInterrupt:
        console.print("\n🛑 Interrupted")
        code = EXIT_ERROR
    sys.exit(code)


if __name__ == "__main__":
    main_control()
