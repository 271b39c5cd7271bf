"""Tests for seven-segment digit decoding."""

import pytest

from tp4000zc_mcp.protocol.digits import (
    LCD_SEGMENTS,
    DigitDecodeError,
    Symbol,
    decode_digit,
    decode_display,
    segment_code,
)
from tp4000zc_mcp.protocol.framing import Frame


def _display_frame(codes, sign=False, points=()):
    """Frame with four segment codes; ``points`` are pair numbers 2-4."""
    nibbles = [0] * 14
    for position, code in enumerate(codes, start=1):
        i = 2 * position - 1
        nibbles[i] = (code >> 4) & 0x7
        nibbles[i + 1] = code & 0xF
        if (position == 1 and sign) or position in points:
            nibbles[i] |= 0x8
    return Frame.from_nibbles(nibbles)


def test_decode_zero_and_one():
    assert decode_digit(0x7, 0xD) == Symbol.ZERO
    assert decode_digit(0x0, 0x5) == Symbol.ONE


@pytest.mark.parametrize("index,code", list(enumerate(LCD_SEGMENTS)))
def test_every_table_entry(index, code):
    """Each of the 12 segment codes maps to its symbol."""
    assert decode_digit(code >> 4, code & 0xF) == Symbol(index)


def test_table_symbols():
    assert len(LCD_SEGMENTS) == 12
    assert decode_digit(0x6, 0x8) is Symbol.OVERFLOW
    assert decode_digit(0x0, 0x0) is Symbol.BLANK


@pytest.mark.parametrize("byte1,byte2", [(0x0, 0x8), (0x0, 0x1), (0x7, 0x0), (0x2, 0xE)])
def test_unknown_code_is_invalid(byte1, byte2):
    assert decode_digit(byte1, byte2) is Symbol.INVALID


def test_point_bit_ignored():
    """Bit 3 of the first nibble is the point, not a segment."""
    assert decode_digit(0xF, 0xD) == Symbol.ZERO
    assert decode_digit(0x8, 0x0) == Symbol.BLANK
    assert segment_code(0xF, 0xD) == 0x7D


def test_symbol_chars():
    assert Symbol.SEVEN.char == "7"
    assert Symbol.OVERFLOW.char == "L"
    assert Symbol.BLANK.char == " "
    assert Symbol.INVALID.char == "?"
    assert Symbol.NINE.is_digit
    assert not Symbol.BLANK.is_digit


def test_decode_display_example():
    """7D 27 95 05 reads 0 4 . 7 1."""
    frame = _display_frame([0x7D, 0x27, 0x15, 0x05], points=(3,))
    display = decode_display(frame)
    assert display.digits == (Symbol.ZERO, Symbol.FOUR, Symbol.SEVEN, Symbol.ONE)
    assert display.decimal_after == (2,)
    assert display.sign is False
    assert display.errors == ()


def test_decode_display_sign():
    frame = _display_frame([0x05, 0x7D, 0x7D, 0x7D], sign=True, points=(2,))
    display = decode_display(frame)
    assert display.sign is True
    assert display.decimal_after == (1,)


def test_decode_display_keeps_every_point():
    """Several point bits are all reported, not merged."""
    frame = _display_frame([0x7D] * 4, points=(2, 4))
    assert decode_display(frame).decimal_after == (1, 3)


def test_decode_display_invalid_digit():
    """An unknown pattern is recorded but decoding carries on."""
    frame = _display_frame([0x7D, 0x2E, 0x15, 0x05])
    display = decode_display(frame)
    assert display.digits[1] is Symbol.INVALID
    assert display.digits[2] is Symbol.SEVEN
    assert display.errors == (DigitDecodeError(position=2, observed_code=0x2E),)
    assert str(display.errors[0]) == "unknown segments 0x2E at digit 2"
