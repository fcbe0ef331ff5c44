# sim/lc3.py
"""
Synchronous control client for `lc3sim -gui`.

Every command is written as one line on the process pipe; the simulator then
answers with any number of CODE/REG/ERR/... lines. Each operation reads and
parses lines (updating the state mirror) until it sees its own terminator:

    set register   ERR | TOCODE
    set memory     ERR | CODE | TOCODE
    load file      second TOCODE, or an ERR other than one "No symbols" warning
    step/continue  REG R11 (the condition-code report)

Breakpoint commands get no reply worth waiting for; whatever arrives within
a short window is drained.

Program output arrives separately on the output socket. There is no
"output ready" signal, so get_output() polls a bounded number of times and
then takes whatever is buffered. Reading output immediately after a very fast
halt can race; read it after continue_() has returned.

A timeout leaves the pipe in the middle of a reply. The client then refuses
further commands (ClientDesynchronized) and must be closed and rebuilt.
"""

from __future__ import annotations

import os
import time
from typing import Any, Callable, Dict, NoReturn, Optional

from lc3spec.backends.base import CommandChannel, OutputChannel
from lc3spec.backends.output_socket import OutputSocket
from lc3spec.backends.process_channel import ProcessChannel
from lc3spec.config import (
    BREAKPOINT_DRAIN_S,
    CONNECT_TIMEOUT_S,
    HALT_BANNER,
    OUTPUT_POLL_INTERVAL_S,
    OUTPUT_POLL_RETRIES,
    debug_enabled,
)
from lc3spec.lc3_types import CONDITION_CODES, Message
from lc3spec.sim.errors import (
    ClientDesynchronized,
    ExecutionTimeout,
    InvalidAddress,
    InvalidConditionCode,
    InvalidValue,
    NormalizationError,
    SimulatorError,
)
from lc3spec.sim.parser import parse_message
from lc3spec.sim.state import StateMirror
from lc3spec.utils.hexfmt import normalize_to_i, normalize_to_s

# Breakpoint token addressing every breakpoint at once
ALL = "all"

NO_SYMBOLS_WARNING = "WARNING: No symbols"

Terminator = Callable[[Message], bool]


def _is_cc_report(msg: Message) -> bool:
    return msg.kind == "REG" and bool(msg.args) and msg.args[0].upper().lstrip("R") == "11"


def _is_ack_or_err(msg: Message) -> bool:
    return msg.kind in ("ERR", "TOCODE")


def _is_code_or_err(msg: Message) -> bool:
    return msg.kind in ("ERR", "CODE", "TOCODE")


def _is_tocode_or_err(msg: Message) -> bool:
    return msg.kind in ("ERR", "TOCODE")


class LC3:
    def __init__(self, *, channel: Optional[CommandChannel] = None, output: Optional[OutputChannel] = None,
                 cwd: Optional[str] = None, connect_timeout: Optional[float] = None,
                 poll_interval: Optional[float] = None, poll_retries: Optional[int] = None,
                 drain_s: Optional[float] = None) -> None:
        self.state = StateMirror()
        # Text of the last non-warning ERR line seen by the most recent command
        self.last_error: Optional[str] = None

        self.poll_interval = OUTPUT_POLL_INTERVAL_S if poll_interval is None else max(0.0, float(poll_interval))
        self.poll_retries = OUTPUT_POLL_RETRIES if poll_retries is None else max(0, int(poll_retries))
        self.drain_s = BREAKPOINT_DRAIN_S if drain_s is None else max(0.0, float(drain_s))

        self._channel: CommandChannel = channel if channel is not None else ProcessChannel(cwd=cwd)
        self._output: OutputChannel = output if output is not None else OutputSocket()
        self._desynced = False
        self._closed = False

        try:
            self._handshake(CONNECT_TIMEOUT_S if connect_timeout is None else connect_timeout)
        except BaseException:
            self.close()
            raise

    # ---------- lifecycle ----------
    def _handshake(self, connect_timeout: float) -> None:
        port = self._output.listen()
        self._channel.start()
        # First line on the pipe tells the simulator where to connect
        self._channel.send_line(str(port))
        if not self._output.wait_connected(timeout=connect_timeout):
            raise SimulatorError(f"Simulator did not connect to output port {port} within {connect_timeout:g} s")
        # Startup banner (mostly the OS image loading), then a full register dump
        self._read_until(_is_cc_report)
        self._output.read_available()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._output.close()
        finally:
            self._channel.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def desynchronized(self) -> bool:
        return self._desynced

    def __enter__(self) -> "LC3":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<LC3 {self.state.describe()}>"

    # ---------- protocol core ----------
    def _command(self, line: str) -> None:
        if self._closed:
            raise SimulatorError("LC3 client is closed")
        if self._desynced:
            raise ClientDesynchronized("A previous command timed out; this client must be discarded")
        self.last_error = None
        self._channel.send_line(line)

    def _read_until(self, done: Terminator, timeout: Optional[float] = None) -> Message:
        deadline = None if timeout is None else time.monotonic() + float(timeout)
        while True:
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._timed_out(timeout)
            line = self._channel.read_line(timeout=remaining)
            if line is None:
                self._timed_out(timeout)
            msg = self._apply(line)
            if done(msg):
                return msg

    def _apply(self, line: str) -> Message:
        msg = parse_message(line, self.state)
        if msg.is_error and not msg.is_warning:
            self.last_error = " ".join(msg.args)
        return msg

    def _timed_out(self, timeout: Optional[float]) -> NoReturn:
        self._desynced = True
        if debug_enabled():
            print(f"[LC3] no terminator within {timeout} s; client desynchronized")
        if timeout is None:
            raise ExecutionTimeout("Simulator reply stream ended without a terminator")
        raise ExecutionTimeout(f"Simulator did not finish within {timeout:g} seconds")

    def _drain(self) -> None:
        if self.drain_s > 0:
            time.sleep(self.drain_s)
        while True:
            line = self._channel.read_line(timeout=0)
            if line is None:
                break
            self._apply(line)

    # ---------- address helpers ----------
    def _address_token(self, addr: Any) -> str:
        """Label name (uppercased) when known, else the canonical address."""
        if self.state.label_address(addr) is not None:
            return addr.strip().upper()
        try:
            return normalize_to_s(addr)
        except NormalizationError as ex:
            raise InvalidAddress(f"Invalid address or unknown label: {addr!r}") from ex

    def _resolve_address(self, addr: Any) -> int:
        label_addr = self.state.label_address(addr)
        if label_addr is not None:
            return normalize_to_i(label_addr)
        try:
            return normalize_to_i(addr)
        except NormalizationError as ex:
            raise InvalidAddress(f"Invalid address or unknown label: {addr!r}") from ex

    # ---------- registers ----------
    def get_register(self, name: Any) -> str:
        return self.state.get_register(name)

    @property
    def registers(self) -> Dict[str, str]:
        return self.state.snapshot()

    def set_register(self, name: Any, value: Any) -> bool:
        reg = StateMirror.register_name(name)
        if value is None:
            raise InvalidValue(f"Invalid register value for {reg}: None")
        if reg == "CC":
            if not isinstance(value, str) or value not in CONDITION_CODES:
                raise InvalidConditionCode("CC can only be set to NEGATIVE, ZERO, or POSITIVE")
            text = value
        else:
            try:
                text = normalize_to_s(value)
            except NormalizationError as ex:
                raise InvalidValue(f"Invalid register value for {reg}: {value!r}") from ex

        self._command(f"register {reg} {text}")
        return not self._read_until(_is_ack_or_err).is_error

    # ---------- memory / labels ----------
    def get_address(self, label: Any) -> Optional[str]:
        return self.state.label_address(label)

    def get_memory(self, addr: Any) -> str:
        return self.state.read_memory(self._resolve_address(addr))

    def set_memory(self, addr: Any, value: Any) -> bool:
        """Write mem[addr]. A known label as `value` stores that label's address."""
        target = self._address_token(addr)
        if self.state.label_address(value) is not None:
            text = value.strip().upper()
        else:
            try:
                text = normalize_to_s(value)
            except NormalizationError as ex:
                raise InvalidValue(f"Invalid memory value or unknown label: {value!r}") from ex

        self._command(f"memory {target} {text}")
        return not self._read_until(_is_code_or_err).is_error

    # ---------- loading / execution ----------
    def load_file(self, path: Any) -> bool:
        """Load an object file (path without extension).

        Returns False when the simulator reported an error; the text is kept
        in `last_error`.
        """
        self._command(f"file {os.fspath(path)}")
        pending = 2
        swallowed = False
        while pending > 0:
            msg = self._read_until(_is_tocode_or_err)
            if msg.kind == "TOCODE":
                pending -= 1
                continue
            if not swallowed and NO_SYMBOLS_WARNING in msg.raw:
                swallowed = True
                continue
            self.last_error = " ".join(msg.args)
            return False
        return True

    def step(self, timeout: Optional[float] = None) -> None:
        self._command("step")
        self._read_until(_is_cc_report, timeout=timeout)

    def continue_(self, timeout: Optional[float] = None) -> None:
        """Run until halt or breakpoint. `timeout` bounds the wait (seconds)."""
        self._command("continue")
        self._read_until(_is_cc_report, timeout=timeout)

    # ---------- breakpoints ----------
    def _breakpoint_token(self, addr: Any) -> str:
        if isinstance(addr, str) and addr.strip().lower() == ALL:
            return ALL
        return self._address_token(addr)

    def set_breakpoint(self, addr: Any) -> None:
        self._command(f"break set {self._breakpoint_token(addr)}")
        self._drain()

    def clear_breakpoint(self, addr: Any) -> None:
        self._command(f"break clear {self._breakpoint_token(addr)}")
        self._drain()

    def clear_breakpoints(self) -> None:
        self.clear_breakpoint(ALL)

    # ---------- program output ----------
    def get_output(self) -> str:
        for _ in range(self.poll_retries):
            if self._output.ready():
                break
            time.sleep(self.poll_interval)
        data = self._output.read_available()
        return data.decode("latin-1").replace(HALT_BANNER, "")
