"""Console monitor: print each reading as the meter sends it."""

from __future__ import annotations

import argparse
import logging
import sys

from .errors import SourceExhausted
from .models.reading import Reading
from .protocol.framing import FramingError, PowerOnSignal
from .protocol.parser import decode_frame, read_frames
from .transport.serial_connection import DEFAULT_PORT, SerialConnection, SerialSettings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tp4000zc-monitor",
        description="Read measurements from a TekPower TP4000ZC via its serial port.",
    )
    parser.add_argument(
        "port", nargs="?", default=DEFAULT_PORT,
        help=f"serial device to read from (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "-n", "--count", type=int, default=0,
        help="stop after this many readings (default: run until end of stream)",
    )
    parser.add_argument(
        "-r", "--raw", action="store_true",
        help="also print the frame nibbles of each packet",
    )
    parser.add_argument(
        "-t", "--timeout", type=float, default=None,
        help="seconds to wait for data before giving up (default: wait forever)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def format_reading(reading: Reading) -> str:
    """One output line: the display text followed by the mode names."""
    return str(reading)


def format_nibbles(nibbles: tuple[int, ...]) -> str:
    return " ".join(f"{i + 1:X}={n:02X}" for i, n in enumerate(nibbles))


def monitor(conn: SerialConnection, count: int = 0, raw: bool = False, out=None) -> int:
    """Print readings until ``count`` is reached or the source ends.

    Returns the number of readings printed.
    """
    out = out or sys.stdout
    printed = 0
    try:
        for event in read_frames(conn.iter_bytes()):
            if isinstance(event, PowerOnSignal):
                print("Meter ON.", file=out)
                continue
            if isinstance(event, FramingError):
                logger.info("Skipped packet: %s", event)
                continue

            if raw:
                print(format_nibbles(event.frame.nibbles), file=out)
            reading = decode_frame(event.frame)
            if not reading.valid:
                logger.info(
                    "Unknown digit: %s", ", ".join(str(e) for e in reading.errors)
                )
                continue

            print(format_reading(reading), file=out, flush=True)
            printed += 1
            if count and printed >= count:
                break
    except SourceExhausted as e:
        logger.info("Read EOF: %s", e)

    return printed


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    conn = SerialConnection(SerialSettings(port=args.port, timeout=args.timeout))
    try:
        conn.open()
    except ConnectionError as e:
        print(e, file=sys.stderr)
        return 1

    try:
        monitor(conn, count=args.count, raw=args.raw)
    except KeyboardInterrupt:
        pass
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
