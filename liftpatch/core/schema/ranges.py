"""Numeric ranges for prescription fields (sets, reps, RIR, RPE).

Ranges arrive in two textual forms:

- Coach shorthand, as typed by a trainer or emitted by the model:
  ``"3-4"`` (inclusive 3 to 4) or ``"3"`` (the degenerate range 3 to 3).
- Storage form, as the hosted Postgres ``numrange`` type renders it:
  ``"[3,4]"``, ``"[3,5)"``, ``"(2,4]"``.

Both parse to the same :class:`NumRange`. Plain JSON numbers are accepted
as degenerate ranges. ``None`` and blank strings mean "no range".
"""

import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

Number = Union[int, float]

_SHORTHAND = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:-\s*(\d+(?:\.\d+)?)\s*)?$")
_BRACKETED = re.compile(r"^\s*([\[(])\s*(\d+(?:\.\d+)?)\s*,\s*(\d+(?:\.\d+)?)\s*([\])])\s*$")


def _to_number(text: str) -> Number:
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {text!r}") from None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _format_number(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        # Plain notation; the parsers do not read exponents
        return format(Decimal(repr(value)), "f")
    return str(value)


@dataclass(frozen=True)
class NumRange:
    """Closed or half-open numeric interval.

    Attributes:
        lower: Lower bound
        upper: Upper bound
        lower_inc: Whether the lower bound is included
        upper_inc: Whether the upper bound is included
    """

    lower: Number
    upper: Number
    lower_inc: bool = True
    upper_inc: bool = True

    def __post_init__(self):
        if not (math.isfinite(self.lower) and math.isfinite(self.upper)):
            raise ValueError(f"Range bounds must be finite: {self.lower}, {self.upper}")
        if self.lower < 0 or self.upper < 0:
            raise ValueError(f"Range bounds must be non-negative: {self.lower}, {self.upper}")
        if self.lower > self.upper:
            raise ValueError(f"Range lower bound {self.lower} exceeds upper bound {self.upper}")
        if self.lower == self.upper and not (self.lower_inc and self.upper_inc):
            raise ValueError(f"Range {self.to_storage()} is empty")

    @property
    def is_degenerate(self) -> bool:
        """True when the range holds exactly one value."""
        return self.lower == self.upper

    def to_storage(self) -> str:
        """Render in Postgres numrange form, e.g. ``[3,4]``."""
        return "{}{},{}{}".format(
            "[" if self.lower_inc else "(",
            _format_number(self.lower),
            _format_number(self.upper),
            "]" if self.upper_inc else ")",
        )

    def to_display(self) -> str:
        """Render as coach shorthand, e.g. ``3-4`` or ``3``.

        Half-open ranges have no shorthand and fall back to storage form.
        """
        if not (self.lower_inc and self.upper_inc):
            return self.to_storage()
        if self.is_degenerate:
            return _format_number(self.lower)
        return f"{_format_number(self.lower)}-{_format_number(self.upper)}"

    def __str__(self) -> str:
        return self.to_display()


def parse_range(value: Any) -> Optional[NumRange]:
    """Parse a range from user, model or storage input.

    Args:
        value: None, a number, a NumRange, or a string in shorthand or
               bracketed form

    Returns:
        NumRange, or None for null/blank input

    Raises:
        ValueError: If the value is not a well-formed range

    Example:
        >>> parse_range("3-4")
        NumRange(lower=3, upper=4, lower_inc=True, upper_inc=True)
        >>> parse_range("3").is_degenerate
        True
    """
    if value is None:
        return None
    if isinstance(value, NumRange):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a range: {value!r}")
    if isinstance(value, (int, float)):
        return NumRange(value, value)
    if not isinstance(value, str):
        raise ValueError(f"Not a range: {value!r}")

    text = value.strip()
    if not text:
        return None

    match = _BRACKETED.match(text)
    if match:
        open_br, lo, hi, close_br = match.groups()
        return NumRange(_to_number(lo), _to_number(hi), open_br == "[", close_br == "]")

    match = _SHORTHAND.match(text)
    if match:
        lo, hi = match.groups()
        lower = _to_number(lo)
        upper = _to_number(hi) if hi is not None else lower
        return NumRange(lower, upper)

    raise ValueError(f"Not a range: {value!r}")


def range_to_json(value: Optional[NumRange]) -> Optional[str]:
    """Serialize an optional range for snapshots (storage form or null)."""
    return value.to_storage() if value is not None else None
