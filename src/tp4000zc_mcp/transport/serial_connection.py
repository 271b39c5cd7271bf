"""Serial connection to the TP4000ZC.

The meter only talks, never listens: once RS232 mode is enabled it sends
a packet roughly every second (slower on the capacitance range) at
2400 baud, 8 data bits, no parity, 1 stop bit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

import serial
from serial.tools import list_ports

from ..errors import SourceExhausted
from ..protocol.parser import MeterEvent, read_events

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyS0"
BAUD_RATE = 2400
# Capacitance readings can take up to ~15 s per sample
DEFAULT_TIMEOUT_S = 20.0


@dataclass
class SerialSettings:
    """Serial line parameters for the meter."""

    port: str = DEFAULT_PORT
    baudrate: int = BAUD_RATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE
    timeout: float | None = DEFAULT_TIMEOUT_S


class SerialConnection:
    """Byte source reading the meter's serial line.

    Usage::

        conn = SerialConnection(SerialSettings(port="/dev/ttyUSB0"))
        conn.open()
        for event in conn.read_events():
            ...
        conn.close()

    An empty read (end of file or timeout) raises ``SourceExhausted``.
    """

    def __init__(self, settings: SerialSettings | None = None) -> None:
        self._settings = settings or SerialSettings()
        self._serial: serial.Serial | None = None

    @property
    def settings(self) -> SerialSettings:
        return self._settings

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open and configure the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        s = self._settings
        try:
            self._serial = serial.Serial(
                port=s.port,
                baudrate=s.baudrate,
                bytesize=s.bytesize,
                parity=s.parity,
                stopbits=s.stopbits,
                timeout=s.timeout,
            )
        except (serial.SerialException, ValueError) as e:
            raise ConnectionError(
                f"Could not open serial port {s.port!r}. "
                f"Check the device path and your permissions. "
                f"Last error: {e}"
            ) from e

        logger.info("Opened %s at %d baud", s.port, s.baudrate)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return

        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._settings.port, e)
        finally:
            self._serial = None
            logger.info("Disconnected")

    def read_byte(self) -> int:
        """Read one byte, blocking up to the configured timeout.

        Raises:
            ConnectionError: If not connected.
            SourceExhausted: On end of file, read error or timeout.
        """
        if not self.connected:
            raise ConnectionError("Not connected to meter")

        try:
            data = self._serial.read(1)
        except serial.SerialException as e:
            raise SourceExhausted(f"Read from {self._settings.port} failed: {e}") from e

        if not data:
            raise SourceExhausted(
                f"No data from {self._settings.port} "
                f"within {self._settings.timeout} s"
            )
        return data[0]

    def iter_bytes(self) -> Iterator[int]:
        """Yield bytes forever; ends only by raising ``SourceExhausted``."""
        while True:
            yield self.read_byte()

    def read_events(self) -> Iterator[MeterEvent]:
        """Decoded events from the live byte stream."""
        return read_events(self.iter_bytes())

    def reset_input(self) -> None:
        """Drop buffered bytes so the next frame starts fresh."""
        if self.connected:
            self._serial.reset_input_buffer()

    @staticmethod
    def list_ports() -> list[dict[str, str]]:
        """Serial ports visible on this machine."""
        return [
            {"device": p.device, "description": p.description or ""}
            for p in list_ports.comports()
        ]
