"""Tests for the MCP server tools and resources."""

from __future__ import annotations

import json
import sys
from unittest.mock import MagicMock, patch

import pytest
import serial.tools.list_ports

from tp4000zc_mcp.protocol.attributes import ATTRIBUTE_COUNT
from tp4000zc_mcp.transport.serial_connection import DEFAULT_PORT

EXAMPLE_HEX = "27 3D 42 57 69 75 80 95 A2 B0 C4 D0 E8"
EXAMPLE_PACKET = bytes.fromhex(EXAMPLE_HEX)


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("tp4000zc_mcp.server", None)
            import tp4000zc_mcp.server as server_mod

    return server_mod


def _mock_port(data: bytes) -> MagicMock:
    port = MagicMock()
    port.is_open = True
    port.read.side_effect = [bytes([b]) for b in data] + [b""]
    return port


def _connected_server(data: bytes):
    server = _get_server_module()
    with patch("serial.Serial", return_value=_mock_port(data)):
        result = server.connect(port="/dev/ttyUSB0", timeout_s=1.0)
    assert result["connected"] is True
    return server


def test_decode_packet_hex():
    server = _get_server_module()
    result = server.decode_packet_hex(EXAMPLE_HEX)
    assert result["event"] == "reading"
    assert result["text"] == "04.71"
    assert result["attributes"] == ["kilo", "Ohms", "(unknown E8)"]
    assert result["scaled_value"] == pytest.approx(4710.0)


def test_decode_packet_hex_events():
    server = _get_server_module()
    assert server.decode_packet_hex("00") == {"event": "power_on"}
    result = server.decode_packet_hex("A2 B0 C4 D0 E8")
    assert result["event"] == "framing_error"
    assert result["reason"] == "short frame"


def test_decode_packet_hex_bad_input():
    server = _get_server_module()
    assert "error" in server.decode_packet_hex("not hex")
    assert "error" in server.decode_packet_hex("27 3D")


def test_read_requires_connection():
    server = _get_server_module()
    with pytest.raises(RuntimeError, match="connect"):
        server.read_reading()
    with pytest.raises(RuntimeError):
        server.read_samples()


def test_connect_twice_reports_existing():
    server = _connected_server(b"")
    result = server.connect(port="/dev/ttyUSB1")
    assert result["message"] == "Already connected"
    assert result["port"] == "/dev/ttyUSB0"


def test_read_reading_skips_noise():
    server = _connected_server(b"\x00\xF1" + EXAMPLE_PACKET)
    result = server.read_reading(max_attempts=5)
    assert result["text"] == "04.71"
    assert result["valid"] is True

    status = json.loads(server.resource_device_status())
    assert status["connected"] is True
    assert status["port"] == "/dev/ttyUSB0"
    assert status["last_reading"]["text"] == "04.71"


def test_read_reading_reports_exhaustion():
    server = _connected_server(EXAMPLE_PACKET[:5])
    assert "error" in server.read_reading()


def test_read_reading_gives_up():
    server = _connected_server(b"\x00\x00" + EXAMPLE_PACKET)
    result = server.read_reading(max_attempts=2)
    assert result == {"error": "No valid reading in 2 packets"}


def test_read_samples_keeps_every_event():
    server = _connected_server(b"\x00" + EXAMPLE_PACKET)
    result = server.read_samples(count=3)
    events = [s["event"] for s in result["samples"]]
    assert events == ["power_on", "reading"]
    assert "error" in result


def test_read_samples_bounds():
    server = _connected_server(b"")
    assert "error" in server.read_samples(count=0)
    assert "error" in server.read_samples(count=101)


def test_disconnect():
    server = _connected_server(b"")
    assert server.disconnect() == {"disconnected": True}
    assert json.loads(server.resource_device_status()) == {"connected": False}
    assert server.disconnect() == {"disconnected": True}


def test_protocol_resources():
    server = _get_server_module()
    attributes = json.loads(server.resource_attribute_table())["attributes"]
    assert len(attributes) == ATTRIBUTE_COUNT
    assert attributes[14]["name"] == "Ohms"
    digits = json.loads(server.resource_digit_table())["digits"]
    assert digits[0] == {"code": "0x7D", "symbol": "ZERO", "char": "0"}
    assert digits[10]["char"] == "L"


def test_list_serial_ports():
    server = _get_server_module()
    with patch("serial.tools.list_ports.comports", return_value=[]):
        assert server.list_serial_ports() == {"ports": []}


def test_connect_default_port():
    server = _get_server_module()
    with patch("serial.Serial", return_value=_mock_port(b"")) as serial_cls:
        result = server.connect()
    assert result["port"] == DEFAULT_PORT
    assert result["baudrate"] == 2400
    assert serial_cls.call_args.kwargs["port"] == DEFAULT_PORT
