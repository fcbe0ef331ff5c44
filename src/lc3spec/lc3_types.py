from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Tuple


MessageKind = Literal["CODE", "REG", "ERR", "BREAK", "BCLEAR", "CONT", "TOCODE", "TRANS", "UNKNOWN"]
ConditionCode = Literal["NEGATIVE", "ZERO", "POSITIVE"]

CONDITION_CODES: Tuple[str, ...] = ("NEGATIVE", "ZERO", "POSITIVE")

_KNOWN_KINDS = ("CODE", "REG", "ERR", "BREAK", "BCLEAR", "CONT", "TOCODE", "TRANS")


@dataclass(frozen=True)
class Message:
    """One classified line of simulator output.

    `args` holds the whitespace-split tokens after the leading kind token.
    Unrecognized kinds are normalized to UNKNOWN.
    """
    kind: MessageKind
    raw: str
    args: Tuple[str, ...] = ()

    def __init__(self, kind: str, raw: str, args: Tuple[str, ...] = ()) -> None:  # type: ignore[override]
        k = str(kind).upper()
        object.__setattr__(self, "kind", k if k in _KNOWN_KINDS else "UNKNOWN")
        object.__setattr__(self, "raw", str(raw))
        object.__setattr__(self, "args", tuple(args))

    @property
    def is_error(self) -> bool:
        return self.kind == "ERR"

    @property
    def is_warning(self) -> bool:
        return self.kind == "ERR" and "WARNING" in self.raw

    def __str__(self) -> str:
        return self.raw
