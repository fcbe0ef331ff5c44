"""Expectation checks.

Each check compares an expected value against the client's current state and
appends a readable failure to the reporter on mismatch. Checks never raise for
a mismatch; they raise only when the expected value itself is malformed.
"""

from __future__ import annotations

import os
import re
from typing import Any, Callable, Dict

from lc3spec.config import EMPTY_OBJECT_SIZE, OBJECT_EXT
from lc3spec.utils.hexfmt import normalize_to_s

_HSPACE_RE = re.compile(r"[ \t]+")


def diff(expected: Any, actual: Any) -> str:
    return f"expected: {expected}, actual: {actual}"


def strblock(text: str, indent: str = "    ") -> str:
    if not text:
        return text
    return "".join(indent + line for line in text.splitlines(keepends=True))


def _squash(text: str) -> str:
    # drop blank lines, collapse horizontal whitespace
    lines = [_HSPACE_RE.sub(" ", line) for line in text.splitlines(keepends=True) if line.strip()]
    return "".join(lines).strip()


def ignore_whitespace_equal(lhs: str, rhs: str) -> bool:
    return _squash(lhs or "") == _squash(rhs or "")


def expect_register(lc3, reporter, reg: Any, val: Any) -> None:
    actual = lc3.get_register(reg)
    if str(reg).strip().upper() == "CC":
        expected = str(val)
    else:
        expected = normalize_to_s(val)
    if expected != actual:
        reporter.report(f"Incorrect {reg}: {diff(expected, actual)}")


def expect_memory(lc3, reporter, addr: Any, val: Any) -> None:
    expected = normalize_to_s(val)
    actual = lc3.get_memory(addr)
    if expected != actual:
        reporter.report(f"Incorrect mem[{addr}]: {diff(expected, actual)}")


def expect_output(lc3, reporter, expected: str) -> None:
    actual = lc3.get_output()
    if not ignore_whitespace_equal(expected, actual):
        reporter.report(
            "Incorrect output:\n"
            f"  expected:\n{strblock(expected)}\n  actual:\n{strblock(actual)}"
        )


def expect_nonempty(lc3, reporter, filename: Any) -> None:
    """Report when an object file holds no code (only .ORIG and .END).

    Call it after the file was loaded; the source may not be assembled before.
    """
    path = os.fspath(filename)
    if not path.endswith(OBJECT_EXT):
        path += OBJECT_EXT
    try:
        size = os.path.getsize(path)
    except OSError:
        size = 0
    if size <= EMPTY_OBJECT_SIZE:
        reporter.report(f"File {path} has no code")


EXPECTATIONS: Dict[str, Callable[..., None]] = {
    "register": expect_register,
    "memory": expect_memory,
    "output": expect_output,
    "nonempty": expect_nonempty,
}


def run_expectation(name: str, lc3, reporter, *args: Any) -> None:
    try:
        check = EXPECTATIONS[name]
    except KeyError:
        raise KeyError(f"Unknown expectation {name!r}; choose from {sorted(EXPECTATIONS)}") from None
    check(lc3, reporter, *args)
