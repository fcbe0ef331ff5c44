"""
16-bit address/value normalization.

Canonical text form is `x` followed by four uppercase hex digits (`x3000`).
Canonical integer form is the signed 16-bit value (`xFFFF` -> -1).

Accepted string inputs: 1-4 hex digits with an optional `x`/`0x` prefix in
either case. Accepted integers: -0x8000..0xFFFF.
"""

from __future__ import annotations

import re
from typing import Any

from lc3spec.sim.errors import NormalizationError

_HEX_RE = re.compile(r"^(?:x|0x|X|0X)?([0-9A-Fa-f]{1,4})$")
_CANONICAL_RE = re.compile(r"^x[0-9A-F]{4}$")


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a valid word
    return isinstance(value, int) and not isinstance(value, bool)


def _hex_digits(value: str) -> str:
    m = _HEX_RE.match(value.strip())
    if m is None:
        raise NormalizationError(f"Unable to normalize number: {value!r}")
    return m.group(1)


def _check_range(value: int) -> int:
    if value < -0x8000 or value > 0xFFFF:
        raise NormalizationError(f"Unable to normalize number: {value} does not fit in 16 bits")
    return value


def normalize_to_s(value: Any) -> str:
    if isinstance(value, str):
        return "x" + _hex_digits(value).rjust(4, "0").upper()
    if _is_int(value):
        return f"x{_check_range(value) & 0xFFFF:04X}"
    raise NormalizationError(f"Unable to normalize number: {value!r}")


def normalize_to_i(value: Any) -> int:
    if isinstance(value, str):
        digits = _hex_digits(value)
        # Sign-extend from the top nibble
        pad = "F" if int(digits[0], 16) > 7 else "0"
        return to_signed(int(digits.rjust(4, pad), 16))
    if _is_int(value):
        return to_signed(_check_range(value))
    raise NormalizationError(f"Unable to normalize number: {value!r}")


def to_signed(word: int) -> int:
    w = int(word) & 0xFFFF
    return w - 0x10000 if w & 0x8000 else w


def is_canonical(text: Any) -> bool:
    return isinstance(text, str) and _CANONICAL_RE.match(text) is not None
