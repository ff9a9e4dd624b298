"""Lossless conversion between sub-units and human-scaled decimal strings."""

from __future__ import annotations

import re

from .errors import MalformedAmount

NATIVE_DECIMALS = 18
GWEI_DECIMALS = 9

_DECIMAL_PATTERN = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?$")


class UnitConverter:
    """Convert between integer sub-units and decimal strings.

    All arithmetic is on Python ints; the decimal string is parsed digit by
    digit so no float ever touches a value that ends up in a transaction.
    """

    def __init__(self, decimals: int = NATIVE_DECIMALS, symbol: str = "ETH") -> None:
        if decimals < 0:
            raise ValueError("decimals must be non-negative")
        self.decimals = decimals
        self.symbol = symbol
        self.scale = 10**decimals

    def to_sub_units(self, value: str) -> int:
        """Parse *value* (e.g. ``"0.5"``) into sub-units."""

        if not isinstance(value, str):
            raise MalformedAmount(f"Amount must be a decimal string, got {type(value).__name__}")
        text = value.strip()
        match = _DECIMAL_PATTERN.match(text)
        if not text or match is None:
            raise MalformedAmount(f"Not a non-negative decimal amount: {value!r}")
        whole = match.group("whole") or ""
        frac = match.group("frac") or ""
        if not whole and not frac:
            raise MalformedAmount(f"Not a non-negative decimal amount: {value!r}")
        if len(frac) > self.decimals:
            raise MalformedAmount(
                f"Amount {value!r} has {len(frac)} fractional digits; "
                f"at most {self.decimals} are representable"
            )
        padded = frac.ljust(self.decimals, "0")
        return int(whole or "0") * self.scale + int(padded or "0")

    def to_decimal_string(self, sub_units: int) -> str:
        """Render *sub_units* with exactly ``decimals`` fractional digits."""

        if isinstance(sub_units, bool) or not isinstance(sub_units, int) or sub_units < 0:
            raise MalformedAmount(f"Sub-unit value must be a non-negative integer: {sub_units!r}")
        whole, frac = divmod(sub_units, self.scale)
        if self.decimals == 0:
            return str(whole)
        return f"{whole}.{frac:0{self.decimals}d}"

    def format_display(self, sub_units: int) -> str:
        """Shorter rendering for output; trailing zeros are trimmed."""

        text = self.to_decimal_string(sub_units)
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text


ETHER = UnitConverter(NATIVE_DECIMALS, "ETH")
GWEI = UnitConverter(GWEI_DECIMALS, "gwei")


def to_sub_units(value: str) -> int:
    return ETHER.to_sub_units(value)


def to_decimal_string(sub_units: int) -> str:
    return ETHER.to_decimal_string(sub_units)
