"""Frame reassembly for the tagged-nibble packet stream.

Each byte the meter sends carries its position in the upper nibble and a
data nibble in the lower one::

    +-------------------+-------------------+
    | Tag (bits 7-4)    | Data (bits 3-0)   |
    | 1..14             | segment/attribute |
    +-------------------+-------------------+

A packet is 13 or 14 bytes with tags 1..14 in order. The tag-1 byte is
sometimes not sent, so a packet counts as complete once the tag-14 byte
arrives after at least 13 bytes. A lone zero byte is sent when the meter
is switched on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

FRAME_SIZE = 14
MIN_FRAME_BYTES = 13
MAX_FRAME_BYTES = 15
TERMINAL_TAG = 0xE
POWER_ON_BYTE = 0x00


@dataclass(frozen=True)
class Frame:
    """A reassembled packet: 14 data nibbles indexed by ``tag - 1``."""

    nibbles: tuple[int, ...]
    byte_count: int = FRAME_SIZE
    raw: bytes = b""

    def __post_init__(self) -> None:
        if len(self.nibbles) != FRAME_SIZE:
            raise ValueError(
                f"Frame needs {FRAME_SIZE} nibbles, got {len(self.nibbles)}"
            )
        if any(not 0 <= n <= 0xF for n in self.nibbles):
            raise ValueError("Frame nibbles must be in range 0-15")

    def __getitem__(self, index: int) -> int:
        return self.nibbles[index]

    def __repr__(self) -> str:
        return (
            f"Frame(nibbles={' '.join(f'{n:X}' for n in self.nibbles)}, "
            f"bytes={self.byte_count})"
        )

    @classmethod
    def from_nibbles(cls, nibbles: list[int] | tuple[int, ...]) -> Frame:
        """Build a frame directly from 14 nibble values."""
        return cls(nibbles=tuple(nibbles))


class FramingErrorReason(Enum):
    """Why a framing attempt was abandoned."""

    INVALID_TAG = "invalid tag byte"
    SHORT_FRAME = "short frame"
    FRAME_TOO_LONG = "frame too long"


@dataclass(frozen=True)
class PowerOnSignal:
    """The meter sent its power-on zero byte."""


@dataclass(frozen=True)
class FramingError:
    """The in-progress frame was corrupt and has been discarded."""

    reason: FramingErrorReason
    byte: int | None = None
    byte_count: int = 0

    def __str__(self) -> str:
        detail = f" 0x{self.byte:02X}" if self.byte is not None else ""
        return f"{self.reason.value}{detail} after {self.byte_count} bytes"


@dataclass(frozen=True)
class CompleteFrame:
    """A framing attempt that produced a usable frame."""

    frame: Frame


FramingEvent = Union[PowerOnSignal, FramingError, CompleteFrame]


class FrameAssembler:
    """State machine for a single framing attempt.

    Usage::

        assembler = FrameAssembler()
        for byte in source:
            event = assembler.feed(byte)
            if event is not None:
                break

    ``feed`` returns ``None`` until the attempt ends, then exactly one
    terminal event. A finished assembler must be replaced, not reused.
    """

    def __init__(self) -> None:
        self._nibbles = [0] * FRAME_SIZE
        self._raw = bytearray()
        self._count = 0
        self._result: FramingEvent | None = None

    @property
    def byte_count(self) -> int:
        return self._count

    @property
    def done(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> FramingEvent | None:
        return self._result

    def feed(self, byte: int) -> FramingEvent | None:
        """Consume one byte from the meter.

        Args:
            byte: Raw byte value 0-255.

        Returns:
            ``None`` while the frame is still being assembled, otherwise
            the terminal ``PowerOnSignal``, ``FramingError`` or
            ``CompleteFrame``.

        Raises:
            RuntimeError: If the attempt has already finished.
            ValueError: If ``byte`` is outside 0-255.
        """
        if self._result is not None:
            raise RuntimeError("Framing attempt already finished")
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"Byte out of range: {byte}")

        if byte == POWER_ON_BYTE:
            return self._finish(PowerOnSignal())

        tag = (byte >> 4) & 0xF
        if tag == 0 or tag == 0xF:
            return self._finish(
                FramingError(FramingErrorReason.INVALID_TAG, byte, self._count)
            )

        self._nibbles[tag - 1] = byte & 0xF
        self._raw.append(byte)
        self._count += 1

        if tag == TERMINAL_TAG:
            if self._count < MIN_FRAME_BYTES:
                return self._finish(
                    FramingError(FramingErrorReason.SHORT_FRAME, byte, self._count)
                )
            frame = Frame(
                nibbles=tuple(self._nibbles),
                byte_count=self._count,
                raw=bytes(self._raw),
            )
            return self._finish(CompleteFrame(frame))

        if self._count >= MAX_FRAME_BYTES:
            return self._finish(
                FramingError(FramingErrorReason.FRAME_TOO_LONG, byte, self._count)
            )

        return None

    def _finish(self, event: FramingEvent) -> FramingEvent:
        self._result = event
        return event


def assemble_frame(data: bytes | list[int]) -> FramingEvent | None:
    """Run one framing attempt over a captured byte sequence.

    Bytes after the terminal event are ignored. Returns ``None`` if the
    data runs out before the attempt ends.
    """
    assembler = FrameAssembler()
    for byte in data:
        event = assembler.feed(byte)
        if event is not None:
            return event
    return None
