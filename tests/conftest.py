"""Shared fakes: a scripted lc3sim speaking the -gui line protocol, and an
in-memory output channel."""

import os
import sys
from collections import deque
from pathlib import Path

import pytest

from lc3spec.sim.lc3 import LC3

RESOURCES = Path(__file__).resolve().parent / "resources"
FAKE_ASSEMBLER = [sys.executable, str(RESOURCES / "fake_lc3as.py")]

REG_NAMES = ("R0", "R1", "R2", "R3", "R4", "R5", "R6", "R7", "PC", "IR", "PSR", "CC")
REG_SLOT = {name: i for i, name in enumerate(REG_NAMES)}

# A couple of OS lines the real simulator reports while loading lc3os
OS_CODE = [
    ("OS_START", "x0200", "xE002"),
    (None, "x0201", "xF025"),
    ("TRAP_HALT", "x048E", "xE021"),
]


def code_line(addr, val, label=None, *, current=False):
    index = int(addr[1:], 16) + 1
    head = f"CODEP{index}" if current else f"CODE {index:5d}"
    fields = [head] + ([label] if label else []) + [addr, val, "NOP"]
    return " ".join(fields)


class FakeSimulator:
    def __init__(self, *, os_code=OS_CODE, banner=()):
        self.sent = []
        self.pending = deque()
        self.started = False
        self.closed = False
        self.port = None
        self.regs = {name: "x0000" for name in REG_NAMES}
        self.regs["CC"] = "ZERO"
        self.mem = {}
        self.labels = {}
        self.programs = {}
        self.breakpoints = set()
        self.continue_replies = deque()
        self._startup = list(banner)
        for label, addr, val in os_code:
            self._startup.append(self._code(label, addr, val))

    # ---- channel protocol ----
    def start(self):
        self.started = True
        return True

    def is_alive(self):
        return self.started and not self.closed

    def close(self):
        self.closed = True

    def send_line(self, line):
        self.sent.append(line)
        if self.port is None:
            self.port = int(line)
            self.pending.extend(self._startup)
            self.pending.extend(self.reg_dump())
            return
        cmd, _, rest = line.partition(" ")
        getattr(self, "_cmd_" + cmd)(rest)

    def read_line(self, timeout=None):
        if self.pending:
            return self.pending.popleft()
        if timeout is not None:
            return None
        raise AssertionError("client blocked on a reply the fake simulator never sends")

    # ---- scripting helpers ----
    def reg_dump(self):
        return [f"REG R{i} {self.regs[name]}" for i, name in enumerate(REG_NAMES)]

    def _code(self, label, addr, val):
        self.mem[addr] = val
        if label is not None:
            self.labels.setdefault(label, addr)
        return code_line(addr, val, label)

    def add_program(self, name, words, extra=()):
        """words: (label or None, addr, value) triples reported on load."""
        self.programs[name] = (list(words), list(extra))

    def queue_continue(self, hang=False, **regs):
        self.continue_replies.append(None if hang else regs)

    # ---- commands ----
    def _cmd_register(self, rest):
        name, val = rest.split()
        self.regs[name] = val
        self.pending.extend([f"REG R{REG_SLOT[name]} {val}", "TOCODE"])

    def _cmd_memory(self, rest):
        addr, val = rest.split()
        addr = self.labels.get(addr, addr)
        val = self.labels.get(val, val)
        self.pending.append(self._code(None, addr, val))

    def _inline_program(self, path):
        """Label-only sources (`.ORIG addr` then one label per line)."""
        words, addr = [], 0
        with open(path) as f:
            for line in f:
                tokens = line.split()
                if not tokens or tokens[0].upper() == ".END":
                    continue
                if tokens[0].upper() == ".ORIG":
                    addr = int(tokens[1][1:], 16)
                    continue
                words.append((tokens[0].upper(), f"x{addr:04X}", "x0000"))
                addr += 1
        return words, []

    def _cmd_file(self, rest):
        name = os.path.basename(rest)
        if name in self.programs:
            words, extra = self.programs[name]
        elif os.path.exists(rest + ".asm"):
            words, extra = self._inline_program(rest + ".asm")
        else:
            self.pending.append(f"ERR Could not open {name}.obj")
            return
        self.pending.append("TOCODE")
        self.pending.extend(extra)
        for label, addr, val in words:
            self.pending.append(self._code(label, addr, val))
        self.pending.append("TOCODE")

    def _cmd_step(self, rest):
        pc = (int(self.regs["PC"][1:], 16) + 1) & 0xFFFF
        self.regs["PC"] = f"x{pc:04X}"
        self.pending.extend(self.reg_dump())

    def _cmd_continue(self, rest):
        reply = self.continue_replies.popleft() if self.continue_replies else {}
        if reply is None:
            return
        self.regs.update(reply)
        self.pending.append("CONT")
        self.pending.extend(self.reg_dump())

    def _cmd_break(self, rest):
        sub, _, target = rest.partition(" ")
        if sub == "set":
            self.breakpoints.add(target)
            self.pending.append(f"BREAK {target}")
        elif target == "all":
            self.breakpoints.clear()
        else:
            self.breakpoints.discard(target)
            self.pending.append(f"BCLEAR {target}")


class FakeOutput:
    def __init__(self, port=4242, *, connect=True, initial=b""):
        self.port = port
        self.connect = connect
        self.buffer = bytearray(initial)
        self.listened = False
        self.closed = False

    def listen(self):
        self.listened = True
        return self.port

    def wait_connected(self, timeout=None):
        return self.connect

    def ready(self, timeout=0.0):
        return bool(self.buffer)

    def read_available(self):
        data = bytes(self.buffer)
        self.buffer.clear()
        return data

    def feed(self, data):
        self.buffer.extend(data)

    def close(self):
        self.closed = True


def make_client(sim, out, **kwargs):
    kwargs.setdefault("poll_interval", 0)
    kwargs.setdefault("poll_retries", 1)
    kwargs.setdefault("drain_s", 0)
    return LC3(channel=sim, output=out, **kwargs)


@pytest.fixture
def fake_sim():
    return FakeSimulator()


@pytest.fixture
def fake_out():
    return FakeOutput(initial=b"LC-3 console\n")


@pytest.fixture
def lc3(fake_sim, fake_out):
    client = make_client(fake_sim, fake_out)
    yield client
    client.close()
