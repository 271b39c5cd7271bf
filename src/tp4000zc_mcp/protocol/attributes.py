"""Display attribute (mode flag) decoding.

The tag-1 byte and the tag-10 to tag-14 bytes hold 24 mode flags, four
per nibble. Flags are labelled by the byte they arrive in and their bit
value, e.g. ``A2`` is bit 0x2 of the tag-0xA byte (kilo).

Several flags have never been seen to mean anything and are kept under
placeholder names. ``E8`` is on in every mode except temperature.
"""

from __future__ import annotations

from enum import IntFlag

from .framing import Frame

ATTRIBUTE_COUNT = 24


class Attribute(IntFlag):
    """Mode flags in logical bit order."""

    UNKNOWN_11 = 1 << 0
    AUTO = 1 << 1
    DC = 1 << 2
    AC = 1 << 3
    DIODE = 1 << 4
    KILO = 1 << 5
    NANO = 1 << 6
    MICRO = 1 << 7
    BEEP = 1 << 8
    MEGA = 1 << 9
    PERCENT = 1 << 10
    MILLI = 1 << 11
    HOLD = 1 << 12
    REL = 1 << 13
    OHMS = 1 << 14
    FARADS = 1 << 15
    UNKNOWN_D1 = 1 << 16
    HERTZ = 1 << 17
    VOLTS = 1 << 18
    AMPS = 1 << 19
    UNKNOWN_E1 = 1 << 20
    UNKNOWN_E2 = 1 << 21
    DEGREES_C = 1 << 22
    UNKNOWN_E8 = 1 << 23


ATTRIBUTE_NAMES: tuple[str, ...] = (
    "(unknown 11)",
    "AUTO",
    "DC",
    "AC",
    "DIODE",
    "kilo",
    "nano",
    "micro",
    "beep",
    "mega",
    "Percent",
    "milli",
    "HOLD",
    "REL",
    "Ohms",
    "Farads",
    "(unknown D1)",
    "Hertz",
    "Volts",
    "Amps",
    "(unknown E1)",
    "(unknown E2)",
    "DegreesC",
    "(unknown E8)",
)

RESERVED_ATTRIBUTES = (
    Attribute.UNKNOWN_11
    | Attribute.UNKNOWN_D1
    | Attribute.UNKNOWN_E1
    | Attribute.UNKNOWN_E2
    | Attribute.UNKNOWN_E8
)

# Multipliers for the scaling prefixes
PREFIX_SCALES: dict[Attribute, float] = {
    Attribute.NANO: 1e-9,
    Attribute.MICRO: 1e-6,
    Attribute.MILLI: 1e-3,
    Attribute.KILO: 1e3,
    Attribute.MEGA: 1e6,
}

UNIT_SYMBOLS: dict[Attribute, str] = {
    Attribute.VOLTS: "V",
    Attribute.AMPS: "A",
    Attribute.OHMS: "Ohm",
    Attribute.FARADS: "F",
    Attribute.HERTZ: "Hz",
    Attribute.PERCENT: "%",
    Attribute.DEGREES_C: "degC",
}


def attribute_location(bit: int) -> tuple[int, int]:
    """Return ``(frame_index, nibble_bit)`` for logical attribute ``bit``."""
    if not 0 <= bit < ATTRIBUTE_COUNT:
        raise ValueError(f"Attribute bit must be 0-{ATTRIBUTE_COUNT - 1}, got {bit}")
    index = 0 if bit < 4 else bit // 4 + 8
    return index, bit % 4


def attribute_label(bit: int) -> str:
    """Protocol label of a bit: tag nibble and bit value, e.g. ``"C4"``."""
    index, nibble_bit = attribute_location(bit)
    return f"{index + 1:X}{1 << nibble_bit:X}"


def decode_attributes(frame: Frame) -> Attribute:
    """Collect the 24 mode flags from frame indices 0 and 9-13."""
    attributes = 0
    for bit in range(ATTRIBUTE_COUNT):
        index, nibble_bit = attribute_location(bit)
        if frame[index] & (1 << nibble_bit):
            attributes |= 1 << bit
    return Attribute(attributes)


def attribute_names(attributes: Attribute | int) -> list[str]:
    """Names of the set flags, in bit order."""
    return [
        ATTRIBUTE_NAMES[bit]
        for bit in range(ATTRIBUTE_COUNT)
        if attributes & (1 << bit)
    ]


def attribute_table() -> list[dict]:
    """The full flag table, for display or export."""
    return [
        {
            "bit": bit,
            "label": attribute_label(bit),
            "name": ATTRIBUTE_NAMES[bit],
            "reserved": bool(RESERVED_ATTRIBUTES & (1 << bit)),
        }
        for bit in range(ATTRIBUTE_COUNT)
    ]
