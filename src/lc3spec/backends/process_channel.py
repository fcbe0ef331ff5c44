from __future__ import annotations

import os
from typing import List, Optional

import pexpect

from lc3spec.config import SIMULATOR_ARGS, SIMULATOR_CMD, debug_enabled
from lc3spec.sim.errors import SimulatorError

_EOL = r"\r?\n"


class ProcessChannel:
    """Command pipe to a simulator subprocess (via pexpect).

    - The child runs on a pseudo-terminal so its replies stay line-buffered.
    - Echo is disabled; only the simulator's own lines are read back.
    - read_line() returns None on timeout and raises SimulatorError on EOF.
    """

    def __init__(self, command: Optional[str] = None, args: Optional[List[str]] = None, *,
                 cwd: Optional[str] = None, encoding: str = "utf-8") -> None:
        self.command = command or SIMULATOR_CMD
        self.args = list(SIMULATOR_ARGS if args is None else args)
        self.cwd = None if cwd is None else os.fspath(cwd)
        self.encoding = encoding
        self._child: Optional[pexpect.spawn] = None

    # --------- Lifecycle ---------
    def start(self) -> bool:
        if self._child is not None:
            return True
        try:
            self._child = pexpect.spawn(
                self.command,
                self.args,
                cwd=self.cwd,
                encoding=self.encoding,
                codec_errors="replace",
                echo=False,
                timeout=None,
            )
        except pexpect.ExceptionPexpect as ex:
            raise SimulatorError(f"Unable to start simulator {self.command!r}: {ex}") from ex
        if debug_enabled():
            print(f"[PROC] spawned {self.command} {' '.join(self.args)} pid={self._child.pid}")
        return True

    def is_alive(self) -> bool:
        return self._child is not None and self._child.isalive()

    def close(self) -> None:
        child = self._child
        self._child = None
        if child is None:
            return
        try:
            if child.isalive():
                child.terminate(force=True)
        finally:
            child.close(force=True)
        if debug_enabled():
            print(f"[PROC] closed exit={child.exitstatus} signal={child.signalstatus}")

    # --------- Line I/O ---------
    def _require(self) -> pexpect.spawn:
        if self._child is None:
            raise SimulatorError("simulator process is not running")
        return self._child

    def send_line(self, line: str) -> None:
        child = self._require()
        if debug_enabled():
            print(f"[PROC] >> {line}")
        try:
            child.sendline(line)
        except OSError as ex:
            raise SimulatorError(f"simulator pipe closed while sending {line!r}") from ex

    def read_line(self, timeout: Optional[float] = None) -> Optional[str]:
        child = self._require()
        try:
            child.expect(_EOL, timeout=timeout)
        except pexpect.TIMEOUT:
            return None
        except pexpect.EOF as ex:
            raise SimulatorError(f"simulator exited (status={child.exitstatus})") from ex
        return child.before
