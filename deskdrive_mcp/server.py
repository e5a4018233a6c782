"""
MCP Server for Standing Desk Control.

Exposes desk control as tools that LLMs can call via the Model Context Protocol.
The desk address and tuning come from ``DESK_*`` environment variables.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastmcp import Context, FastMCP

from deskdrive import (
    ConnectionExhaustedError,
    Desk,
    DeskConfig,
    DeskError,
    DeviceNotFoundError,
    Direction,
    SafetyAbortError,
    TargetOutOfRangeError,
)

mcp = FastMCP(
    "Standing Desk Controller",
    instructions="Control your IKEA Idåsen / Linak standing desk via BLE. "
    "Tools: get_height (check position), move_to_height (absolute positioning in cm), "
    "sit/stand (configured presets), nudge (short raw move up or down), "
    "stop_desk (emergency stop).",
)


@asynccontextmanager
async def get_desk() -> AsyncIterator[Desk]:
    """Context manager for desk connection with automatic cleanup."""
    desk = Desk(DeskConfig.from_env())
    try:
        await desk.connect()
        yield desk
    finally:
        await desk.disconnect()


def describe_error(e: Exception) -> str:
    if isinstance(e, DeviceNotFoundError):
        return "Error: Desk not found. Is it powered on?"
    if isinstance(e, ConnectionExhaustedError):
        return f"Error: Could not connect to desk - {e}"
    if isinstance(e, SafetyAbortError):
        return f"Collision detected! The desk backed off at {e.height * 100:.1f}cm and was stopped."
    if isinstance(e, TargetOutOfRangeError):
        return f"Error: {e}"
    if isinstance(e, DeskError):
        return f"Error: Communication failed - {e}"
    return f"Error: {e}"


@mcp.tool()
async def get_height(ctx: Context) -> str:
    """
    Get the current desk height.

    Returns the height in centimeters and inches.
    """
    try:
        async with get_desk() as desk:
            height = await desk.get_height()
            return f"Current height: {height * 100:.1f}cm ({height / 0.0254:.1f} inches)"
    except (DeskError, ValueError) as e:
        return describe_error(e)


@mcp.tool()
async def move_to_height(ctx: Context, height_cm: float) -> str:
    """
    Move the desk to a specific height in centimeters.

    Args:
        height_cm: Target height in centimeters (valid range: 62-127cm)

    Returns:
        Result of the movement including final height.
    """
    try:
        async with get_desk() as desk:
            final = await desk.move_to_target(height_cm / 100.0)
            return f"Moved to {final * 100:.1f}cm. Target was {height_cm:.1f}cm"
    except (DeskError, ValueError) as e:
        return describe_error(e)


@mcp.tool()
async def sit(ctx: Context) -> str:
    """Move the desk to the configured sitting height."""
    try:
        async with get_desk() as desk:
            final = await desk.sit()
            return f"Sitting height reached: {final * 100:.1f}cm"
    except (DeskError, ValueError) as e:
        return describe_error(e)


@mcp.tool()
async def stand(ctx: Context) -> str:
    """Move the desk to the configured standing height."""
    try:
        async with get_desk() as desk:
            final = await desk.stand()
            return f"Standing height reached: {final * 100:.1f}cm"
    except (DeskError, ValueError) as e:
        return describe_error(e)


@mcp.tool()
async def nudge(ctx: Context, direction: str = "up") -> str:
    """
    Send a single move command; the desk travels for about one second.

    Args:
        direction: "up" or "down"
    """
    if direction not in ("up", "down"):
        return 'Error: direction must be "up" or "down"'

    try:
        async with get_desk() as desk:
            await desk.move_direction(Direction(direction))
            return f"Nudged desk {direction}"
    except (DeskError, ValueError) as e:
        return describe_error(e)


@mcp.tool()
async def stop_desk(ctx: Context) -> str:
    """
    Emergency stop - immediately halt desk movement.

    Use this if the desk is moving and you need to stop it immediately.
    """
    try:
        async with get_desk() as desk:
            await desk.stop()
            height = await desk.get_height()
            return f"Desk stopped at {height * 100:.1f}cm"
    except (DeskError, ValueError) as e:
        return describe_error(e)


def run_server():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    run_server()
