from __future__ import annotations

import re
import sys
from typing import List

from lc3spec.config import debug_enabled
from lc3spec.lc3_types import Message
from lc3spec.sim.errors import NormalizationError
from lc3spec.sim.state import StateMirror
from lc3spec.utils.hexfmt import normalize_to_i, normalize_to_s

# Parser debug print toggle (default off; LC3DEBUG=1 also enables it)
PARSER_DEBUG = False

# CODE / CODEP, index (the next fetch address, i.e. addr + 1) optionally
# glued to the P marker and followed by a breakpoint letter ("12289B").
_CODE_RE = re.compile(r"^CODEP?\s*(\d+)[A-Za-z]*\s+(.*)$")
_REG_SLOT_RE = re.compile(r"^R?(\d+)$", re.IGNORECASE)


def _debug_on() -> bool:
    return PARSER_DEBUG or debug_enabled()


def _dbg(msg: str) -> None:
    if _debug_on():
        print(f"[LC3] {msg}")


def _classify(token: str) -> str:
    if token.startswith("CODE"):
        return "CODE"
    return token


def parse_message(line: str, state: StateMirror) -> Message:
    """Classify one simulator output line and apply it to `state`.

    Returns the Message so callers can test it against their terminator.
    Unknown kinds and malformed lines are logged and otherwise ignored.
    """
    s = (line or "").strip()
    _dbg(s)
    tokens: List[str] = s.split()
    if not tokens:
        return Message("UNKNOWN", s)

    kind = _classify(tokens[0])
    msg = Message(kind, s, tuple(tokens[1:]))

    try:
        if msg.kind == "CODE":
            _apply_code(s, state)
        elif msg.kind == "REG":
            _apply_reg(msg, state)
        elif msg.kind == "ERR":
            _report_err(msg)
        elif msg.kind == "TRANS":
            # Label translation; nothing to mirror
            if msg.args:
                _dbg(f"translate {msg.args[0]} -> {normalize_to_i(msg.args[0])}")
        elif msg.kind == "UNKNOWN":
            _dbg(f"unexpected message: {s}")
    except (NormalizationError, IndexError, ValueError) as ex:
        _dbg(f"malformed {msg.kind} line ignored ({ex}): {s}")
    return msg


def _apply_code(s: str, state: StateMirror) -> None:
    m = _CODE_RE.match(s)
    if m is None:
        raise ValueError("no address index")
    num_addr = int(m.group(1)) - 1
    rest = m.group(2).split()

    # A label is present only when the next token is not the address itself
    label = None
    if rest and rest[0] != f"x{num_addr & 0xFFFF:04X}":
        label = rest.pop(0).upper()

    addr = normalize_to_s(rest[0])
    val = normalize_to_s(rest[1])

    if label is not None:
        state.add_label(label, addr)
    state.write_memory(normalize_to_i(addr), val)


def _apply_reg(msg: Message, state: StateMirror) -> None:
    m = _REG_SLOT_RE.match(msg.args[0])
    if m is None:
        raise ValueError(f"bad register slot {msg.args[0]!r}")
    if not state.update_slot(int(m.group(1)), msg.args[1]):
        _dbg(f"register report ignored: {msg.raw}")


def _report_err(msg: Message) -> None:
    text = " ".join(msg.args)
    if msg.is_warning:
        _dbg(f"WARNING: {text}")
    else:
        print(f"[LC3] ERROR: {text}", file=sys.stderr)
