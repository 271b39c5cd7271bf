"""MCP server entry point for the TekPower TP4000ZC multimeter.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import SourceExhausted
from .models.reading import Reading
from .protocol.attributes import attribute_table
from .protocol.digits import LCD_SEGMENTS, Symbol
from .protocol.framing import FramingError, PowerOnSignal
from .protocol.parser import MeterEvent, decode_packet, parse_hex_packet
from .protocol.parser import read_reading as next_valid_reading
from .transport.serial_connection import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_S,
    SerialConnection,
    SerialSettings,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "tp4000zc",
    instructions="MCP server for the TekPower TP4000ZC serial multimeter",
)

# Global connection state
_connection: SerialConnection | None = None
_last_reading: Reading | None = None


def _get_connection() -> SerialConnection:
    """Get the active serial connection, raising if not connected."""
    if _connection is None or not _connection.connected:
        raise RuntimeError(
            "Not connected to meter. Use the 'connect' tool first."
        )
    return _connection


def _event_to_dict(event: MeterEvent) -> dict[str, Any]:
    if isinstance(event, Reading):
        return {"event": "reading", **event.to_dict()}
    if isinstance(event, PowerOnSignal):
        return {"event": "power_on"}
    if isinstance(event, FramingError):
        return {"event": "framing_error", "reason": event.reason.value, "detail": str(event)}
    raise TypeError(f"Unknown event: {event!r}")


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(port: str = DEFAULT_PORT, timeout_s: float = DEFAULT_TIMEOUT_S) -> dict[str, Any]:
    """Open the serial port the meter is attached to.

    The meter must be switched on with RS232 mode enabled; it then
    streams a sample about once per second.

    Args:
        port: Serial device path, e.g. /dev/ttyUSB0 or COM3.
        timeout_s: Seconds to wait for a byte before giving up on a read.
    """
    global _connection
    if _connection is not None and _connection.connected:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _connection.settings.port,
        }

    connection = SerialConnection(SerialSettings(port=port, timeout=timeout_s))
    connection.open()
    _connection = connection
    return {
        "connected": True,
        "port": port,
        "baudrate": connection.settings.baudrate,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial port."""
    global _connection
    if _connection is None:
        return {"disconnected": True}
    _connection.close()
    _connection = None
    return {"disconnected": True}


@mcp.tool()
def list_serial_ports() -> dict[str, Any]:
    """List serial ports that could have the meter attached."""
    return {"ports": SerialConnection.list_ports()}


# ─── READING TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def read_reading(max_attempts: int = 10) -> dict[str, Any]:
    """Read the next valid sample from the meter.

    Power-on signals, corrupt frames and undecodable digits are skipped.

    Args:
        max_attempts: Packets to try before giving up (default 10).
    """
    global _last_reading
    conn = _get_connection()
    conn.reset_input()
    try:
        reading = next_valid_reading(conn.read_events(), max_attempts)
    except SourceExhausted as e:
        return {"error": str(e)}

    if reading is None:
        return {"error": f"No valid reading in {max_attempts} packets"}
    _last_reading = reading
    return reading.to_dict()


@mcp.tool()
def read_samples(count: int = 5) -> dict[str, Any]:
    """Read several consecutive packets, reporting every event.

    Unlike read_reading this keeps power-on signals, framing errors and
    undecodable readings, which helps when diagnosing a bad cable.

    Args:
        count: Number of packets to read (1-100).
    """
    global _last_reading
    if not 1 <= count <= 100:
        return {"error": "count must be 1-100"}

    conn = _get_connection()
    events = conn.read_events()
    samples = []
    try:
        for _ in range(count):
            event = next(events)
            if isinstance(event, Reading) and event.valid:
                _last_reading = event
            samples.append(_event_to_dict(event))
    except SourceExhausted as e:
        return {"samples": samples, "error": str(e)}

    return {"samples": samples}


@mcp.tool()
def decode_packet_hex(hex_bytes: str) -> dict[str, Any]:
    """Decode a captured packet without a meter attached.

    Args:
        hex_bytes: Packet bytes as hex, e.g.
                   "27 3D 42 57 69 75 80 95 A2 B0 C4 D0 E8".
    """
    try:
        event = decode_packet(parse_hex_packet(hex_bytes))
    except ValueError as e:
        return {"error": str(e)}
    return _event_to_dict(event)


# ─── RESOURCES ────────────────────────────────────────────────────────

@mcp.resource("tp4000zc://device/status")
def resource_device_status() -> str:
    """Connection state and the last valid reading."""
    connected = _connection is not None and _connection.connected
    status: dict[str, Any] = {"connected": connected}
    if connected:
        status["port"] = _connection.settings.port
    if _last_reading is not None:
        status["last_reading"] = _last_reading.to_dict()
    return json.dumps(status)


@mcp.resource("tp4000zc://protocol/attributes")
def resource_attribute_table() -> str:
    """The 24 mode flags with their protocol labels."""
    return json.dumps({"attributes": attribute_table()})


@mcp.resource("tp4000zc://protocol/digits")
def resource_digit_table() -> str:
    """Seven-segment codes and the symbols they display."""
    digits = [
        {"code": f"0x{code:02X}", "symbol": Symbol(i).name, "char": Symbol(i).char}
        for i, code in enumerate(LCD_SEGMENTS)
    ]
    return json.dumps({"digits": digits})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
