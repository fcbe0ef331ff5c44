"""
Test orchestrator.

A Test owns one Sandbox and one LC3 client for the duration of run(). The
body receives the Test itself and drives the simulator through the explicit
operation set below. Two failures are recorded instead of raised:

  - ExecutionTimeout (a bounded continue_() that never reached a halt)
  - DoesNotAssembleError (missing, empty, or unassemblable input)

Anything else raised by the body propagates. The client is closed and the
sandbox removed in every case.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

from lc3spec.config import CONTINUE_TIMEOUT_S, debug_enabled
from lc3spec.grader.expectations import run_expectation
from lc3spec.grader.reporter import Reporter
from lc3spec.grader.staging import Sandbox, assemble_and_load, ensure_assembled, ensure_file_present
from lc3spec.sim.errors import DoesNotAssembleError, ExecutionTimeout, LabelExistsError
from lc3spec.sim.lc3 import LC3
from lc3spec.utils.hexfmt import normalize_to_s

TestBody = Callable[["Test"], Any]


class Test:
    __test__ = False  # keep pytest from collecting this class

    def __init__(self, description: str, body: Optional[TestBody] = None, *, points: int = 0,
                 timeout: Optional[float] = None, source_dir=None,
                 assembler: Optional[Sequence[str]] = None,
                 client_factory: Optional[Callable[..., LC3]] = None) -> None:
        self.description = description
        self.body = body
        self.points = points
        self.timeout = CONTINUE_TIMEOUT_S if timeout is None else float(timeout)
        self.source_dir = source_dir
        self.assembler = assembler
        self.client_factory = client_factory or LC3
        self.reporter = Reporter()
        self.sandbox: Optional[Sandbox] = None
        self.lc3: Optional[LC3] = None

    def __repr__(self) -> str:
        state = "PASS" if self.passed else "FAIL"
        return f"<Test {self.description!r} {state} errors={len(self.reporter)}>"

    # ---------- outcome ----------
    @property
    def passed(self) -> bool:
        return self.reporter.passed

    @property
    def failed(self) -> bool:
        return self.reporter.failed

    @property
    def errors(self) -> List[str]:
        return self.reporter.errors

    # ---------- execution ----------
    def run(self) -> "Test":
        sandbox = Sandbox.create(self.source_dir)
        self.sandbox = sandbox
        try:
            self.lc3 = self.client_factory(cwd=str(sandbox.workdir))
            if self.body is not None:
                try:
                    self.body(self)
                except ExecutionTimeout as ex:
                    self.reporter.report(f"Execution timed out: {ex}")
                except DoesNotAssembleError as ex:
                    self.reporter.report(str(ex))
        finally:
            try:
                if self.lc3 is not None:
                    self.lc3.close()
            finally:
                sandbox.cleanup()
        if debug_enabled():
            print(f"[TEST] {self.description}: {'OK' if self.passed else 'FAIL'}")
        return self

    def _client(self) -> LC3:
        if self.lc3 is None or self.sandbox is None:
            raise RuntimeError("Test operations are only available inside run()")
        return self.lc3

    # ---------- loading ----------
    def file(self, filename) -> "Test":
        lc3 = self._client()
        staged = ensure_file_present(self.sandbox, filename)
        checked = ensure_assembled(self.sandbox, staged, self.assembler)
        if not lc3.load_file(checked.with_suffix("")):
            self.reporter.report(f"Unable to load {filename}: {lc3.last_error}")
        return self

    def file_from_asm(self, text: str) -> "Test":
        lc3 = self._client()
        if not assemble_and_load(self.sandbox, lc3, text, assembler=self.assembler):
            self.reporter.report(f"Unable to load inline program: {lc3.last_error}")
        return self

    def set_label(self, label: str, addr: Any) -> "Test":
        """Bind `label` to `addr` by loading a one-label program."""
        name = str(label).strip().upper()
        if self._client().get_address(name) is not None:
            raise LabelExistsError(f"Unable to replace label {name}")
        return self.file_from_asm(f".ORIG {normalize_to_s(addr)}\n{name}\n.END")

    # ---------- client operations ----------
    def get_register(self, name: Any) -> str:
        return self._client().get_register(name)

    def set_register(self, name: Any, value: Any) -> "Test":
        self._client().set_register(name, value)
        return self

    def get_memory(self, addr: Any) -> str:
        return self._client().get_memory(addr)

    def set_memory(self, addr: Any, value: Any) -> "Test":
        self._client().set_memory(addr, value)
        return self

    def get_address(self, label: Any) -> Optional[str]:
        return self._client().get_address(label)

    def step(self) -> "Test":
        self._client().step()
        return self

    def continue_(self, timeout: Optional[float] = None) -> "Test":
        self._client().continue_(timeout=self.timeout if timeout is None else timeout)
        return self

    def set_breakpoint(self, addr: Any) -> "Test":
        self._client().set_breakpoint(addr)
        return self

    def clear_breakpoint(self, addr: Any) -> "Test":
        self._client().clear_breakpoint(addr)
        return self

    def clear_breakpoints(self) -> "Test":
        self._client().clear_breakpoints()
        return self

    def get_output(self) -> str:
        return self._client().get_output()

    # ---------- expectations ----------
    def expect(self, name: str, *args: Any) -> "Test":
        run_expectation(name, self._client(), self.reporter, *args)
        return self

    def expect_register(self, reg: Any, val: Any) -> "Test":
        return self.expect("register", reg, val)

    def expect_memory(self, addr: Any, val: Any) -> "Test":
        return self.expect("memory", addr, val)

    def expect_output(self, expected: str) -> "Test":
        return self.expect("output", expected)

    def expect_nonempty(self, filename) -> "Test":
        self._client()
        return self.expect("nonempty", self.sandbox.path(filename))


def run_test(description: str, body: Optional[TestBody] = None, **kwargs: Any) -> Test:
    return Test(description, body, **kwargs).run()
