"""Turn frames into readings, and byte streams into reading events."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Union

from ..errors import SourceExhausted
from ..models.reading import Reading
from .attributes import decode_attributes
from .digits import decode_display
from .framing import (
    CompleteFrame,
    Frame,
    FrameAssembler,
    FramingError,
    FramingEvent,
    PowerOnSignal,
    assemble_frame,
)

logger = logging.getLogger(__name__)

MeterEvent = Union[Reading, PowerOnSignal, FramingError]


def decode_frame(frame: Frame) -> Reading:
    """Decode a complete frame into a Reading.

    Unknown digit patterns do not raise; they show up as
    ``Symbol.INVALID`` digits and entries in ``Reading.errors``.
    """
    display = decode_display(frame)
    return Reading(
        digits=display.digits,
        sign=display.sign,
        decimal_after=display.decimal_after,
        attributes=decode_attributes(frame),
        errors=display.errors,
    )


def parse_hex_packet(text: str) -> bytes:
    """Parse a captured packet written as hex, e.g. ``"27 3D 42 ..."``."""
    cleaned = text.replace(",", " ").replace("0x", "").replace("0X", "")
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise ValueError(f"Not a hex byte string: {text!r}") from e


def decode_packet(data: bytes | list[int]) -> MeterEvent:
    """Frame and decode a single captured packet.

    Raises:
        ValueError: If the data ends before the packet is complete.
    """
    event = assemble_frame(data)
    if event is None:
        raise ValueError(f"Incomplete packet ({len(data)} bytes, no terminal byte)")
    if isinstance(event, CompleteFrame):
        return decode_frame(event.frame)
    return event


def read_frames(source: Iterable[int]) -> Iterator[FramingEvent]:
    """Yield the terminal event of each framing attempt.

    Each attempt starts with a fresh assembler, so an error only costs
    the bytes up to it.

    Raises:
        SourceExhausted: When the source ends, including mid-frame.
    """
    it = iter(source)
    while True:
        assembler = FrameAssembler()
        event = None
        while event is None:
            try:
                byte = next(it)
            except StopIteration:
                raise SourceExhausted(
                    f"Byte source ended after {assembler.byte_count} bytes of a frame"
                ) from None
            event = assembler.feed(byte)

        if isinstance(event, PowerOnSignal):
            logger.info("Meter ON")
        elif isinstance(event, FramingError):
            logger.debug("Dropped frame: %s", event)
        yield event


def read_events(source: Iterable[int]) -> Iterator[MeterEvent]:
    """Like ``read_frames``, with complete frames decoded into Readings."""
    for event in read_frames(source):
        if not isinstance(event, CompleteFrame):
            yield event
            continue

        reading = decode_frame(event.frame)
        if not reading.valid:
            logger.debug(
                "Undecodable digits in %r: %s",
                event.frame,
                ", ".join(str(e) for e in reading.errors),
            )
        yield reading


def read_reading(events: Iterator[MeterEvent], max_attempts: int = 10) -> Reading | None:
    """Pull events until a valid Reading arrives.

    Args:
        events: An event iterator from ``read_events``.
        max_attempts: Framing attempts to allow before giving up.

    Returns:
        The first valid Reading, or None if none arrived in time.

    Raises:
        SourceExhausted: If the source ends first.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    for _ in range(max_attempts):
        event = next(events)
        if isinstance(event, Reading) and event.valid:
            return event
    return None
