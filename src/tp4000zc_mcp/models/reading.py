"""Decoded meter reading model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..protocol.attributes import (
    Attribute,
    PREFIX_SCALES,
    UNIT_SYMBOLS,
    attribute_names,
)
from ..protocol.digits import DIGIT_COUNT, DigitDecodeError, Symbol


@dataclass(frozen=True)
class Reading:
    """One decoded sample: what the LCD showed and which modes were lit.

    ``decimal_after`` lists the digit positions (1-3) that a decimal point
    follows. Normally there is at most one, but every point bit the meter
    sent is kept.
    """

    digits: tuple[Symbol, ...]
    sign: bool = False
    decimal_after: tuple[int, ...] = ()
    attributes: Attribute = Attribute(0)
    errors: tuple[DigitDecodeError, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if len(self.digits) != DIGIT_COUNT:
            raise ValueError(
                f"Reading needs {DIGIT_COUNT} digits, got {len(self.digits)}"
            )

    def __str__(self) -> str:
        names = " ".join(self.attribute_names)
        return f"{self.text} {names}" if names else self.text

    @property
    def valid(self) -> bool:
        """False if any digit showed a segment pattern we don't know."""
        return Symbol.INVALID not in self.digits

    @property
    def overflow(self) -> bool:
        return Symbol.OVERFLOW in self.digits

    @property
    def text(self) -> str:
        """The display as shown, e.g. ``"-04.71"`` or ``" 0.L "``."""
        out = "-" if self.sign else ""
        for position, symbol in enumerate(self.digits, start=1):
            if position - 1 in self.decimal_after:
                out += "."
            out += symbol.char
        return out

    @property
    def value(self) -> float | None:
        """Signed display value, ignoring prefixes.

        ``None`` for invalid, overflowed or blank displays, and when more
        than one decimal point is lit.
        """
        if not self.valid or self.overflow or len(self.decimal_after) > 1:
            return None

        number = ""
        for position, symbol in enumerate(self.digits, start=1):
            if symbol.is_digit:
                number += symbol.char
            if position in self.decimal_after:
                number += "."
        if not any(c.isdigit() for c in number):
            return None

        value = float(number)
        return -value if self.sign else value

    @property
    def prefix_scale(self) -> float:
        for attribute, scale in PREFIX_SCALES.items():
            if self.attributes & attribute:
                return scale
        return 1.0

    @property
    def scaled_value(self) -> float | None:
        """``value`` with the SI prefix applied (kilo, milli, ...)."""
        value = self.value
        if value is None:
            return None
        return value * self.prefix_scale

    @property
    def unit(self) -> str:
        for attribute, symbol in UNIT_SYMBOLS.items():
            if self.attributes & attribute:
                return symbol
        return ""

    @property
    def attribute_names(self) -> list[str]:
        return attribute_names(self.attributes)

    def has(self, attribute: Attribute) -> bool:
        return bool(self.attributes & attribute)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "value": self.value,
            "scaled_value": self.scaled_value,
            "unit": self.unit,
            "digits": [symbol.char for symbol in self.digits],
            "sign": self.sign,
            "decimal_after": list(self.decimal_after),
            "attributes": self.attribute_names,
            "attribute_mask": int(self.attributes),
            "valid": self.valid,
            "errors": [str(e) for e in self.errors],
        }
