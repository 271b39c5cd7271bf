"""Seven-segment digit decoding.

Two frame nibbles make one digit. Bit 3 of the first nibble is the
decimal point (or the minus sign on the first digit); the remaining
seven bits light the LCD segments::

     -        A
    | |     F   B
     -        G
    | |     E   C
  .  -        D

    bit:  7   6   5   4   3   2   1   0
          .   E   F   A   D   C   G   B
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .framing import Frame

SEGMENT_MASK = 0x7F
POINT_BIT = 0x8

# Frame indices of the (byte1, byte2) pair for each displayed digit
DIGIT_PAIRS: tuple[tuple[int, int], ...] = ((1, 2), (3, 4), (5, 6), (7, 8))
DIGIT_COUNT = len(DIGIT_PAIRS)


class Symbol(IntEnum):
    """What a single LCD digit shows."""

    ZERO = 0
    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    OVERFLOW = 10
    BLANK = 11
    INVALID = -1

    @property
    def is_digit(self) -> bool:
        return 0 <= self.value <= 9

    @property
    def char(self) -> str:
        """The character shown on the display."""
        if self.is_digit:
            return str(self.value)
        return _SYMBOL_CHARS[self]


_SYMBOL_CHARS = {
    Symbol.OVERFLOW: "L",
    Symbol.BLANK: " ",
    Symbol.INVALID: "?",
}

# Segment codes in Symbol order: 0-9, L (out of range), blank
LCD_SEGMENTS: tuple[int, ...] = (
    0x7D,
    0x05,
    0x5B,
    0x1F,
    0x27,
    0x3E,
    0x7E,
    0x15,
    0x7F,
    0x3F,
    0x68,
    0x00,
)

SEGMENT_TABLE: dict[int, Symbol] = {
    code: Symbol(index) for index, code in enumerate(LCD_SEGMENTS)
}


@dataclass(frozen=True)
class DigitDecodeError:
    """A digit whose segment pattern is not in the table.

    ``position`` is 1-based, counted from the left of the display.
    """

    position: int
    observed_code: int

    def __str__(self) -> str:
        return f"unknown segments 0x{self.observed_code:02X} at digit {self.position}"


def segment_code(byte1: int, byte2: int) -> int:
    """Join two nibbles into a segment code, dropping the point bit."""
    return ((byte1 & 0x7) << 4) | (byte2 & 0xF)


def decode_digit(byte1: int, byte2: int) -> Symbol:
    """Map a segment byte pair to the symbol it displays.

    Args:
        byte1: Nibble from frame index 1, 3, 5 or 7.
        byte2: Nibble from the following even index.

    Returns:
        The matching ``Symbol``, or ``Symbol.INVALID`` if the pattern is
        not one the meter is known to show.
    """
    return SEGMENT_TABLE.get(segment_code(byte1, byte2), Symbol.INVALID)


@dataclass(frozen=True)
class DisplayDigits:
    """Everything the digit area of one frame carries."""

    digits: tuple[Symbol, ...]
    sign: bool
    decimal_after: tuple[int, ...]
    errors: tuple[DigitDecodeError, ...]


def decode_display(frame: Frame) -> DisplayDigits:
    """Decode the four digits, sign and decimal points from a frame.

    Every point bit that is set is reported; the meter does not guarantee
    there is only one.
    """
    digits: list[Symbol] = []
    points: list[int] = []
    errors: list[DigitDecodeError] = []
    sign = False

    for position, (i, j) in enumerate(DIGIT_PAIRS, start=1):
        byte1, byte2 = frame[i], frame[j]
        if byte1 & POINT_BIT:
            if position == 1:
                sign = True
            else:
                # The point is drawn in front of this digit
                points.append(position - 1)

        symbol = decode_digit(byte1, byte2)
        if symbol is Symbol.INVALID:
            errors.append(DigitDecodeError(position, segment_code(byte1, byte2)))
        digits.append(symbol)

    return DisplayDigits(
        digits=tuple(digits),
        sign=sign,
        decimal_after=tuple(points),
        errors=tuple(errors),
    )
