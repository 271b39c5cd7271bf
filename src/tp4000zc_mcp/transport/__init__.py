"""Transport layer: serial byte source for the meter."""

from .serial_connection import SerialConnection, SerialSettings
