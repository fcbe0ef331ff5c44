"""Runs against the real lc3sim/lc3as; skipped when they are not installed."""

import shutil

import pytest

from lc3spec.config import ASSEMBLER_CMD, SIMULATOR_CMD
from lc3spec.grader.sandbox import run_test

pytestmark = pytest.mark.skipif(
    not (shutil.which(SIMULATOR_CMD) and shutil.which(ASSEMBLER_CMD)),
    reason="lc3sim and lc3as are required",
)

COUNTER = """\
        .ORIG x3000
        AND R0, R0, #0
        AND R1, R1, #0
        ADD R1, R1, #5
LOOP    ADD R0, R0, #1
        ADD R1, R1, #-1
        BRp LOOP
        ADD R0, R0, #0
DONE    HALT
        .END
"""

GREETER = """\
        .ORIG x3000
        LEA R0, MSG
        PUTS
        HALT
MSG     .STRINGZ "counted"
        .END
"""


@pytest.fixture
def sources(tmp_path):
    (tmp_path / "counter.asm").write_text(COUNTER)
    (tmp_path / "greeter.asm").write_text(GREETER)
    (tmp_path / "broken.asm").write_text(".ORIG x3000\nNOTANOP R0, R0\n.END\n")
    return tmp_path


def test_counts_to_five(sources):
    def body(t):
        t.file("counter.asm").set_register("PC", "x3000").continue_()
        t.expect_register("R0", 5).expect_register("CC", "POSITIVE").expect_nonempty("counter")

    t = run_test("counter", body, source_dir=sources, timeout=5)
    assert t.passed, t.errors


def test_breakpoints_stop_at_labels(sources):
    def body(t):
        t.file("counter").set_register("PC", "x3000")
        t.set_breakpoint("LOOP").set_breakpoint("DONE")
        t.continue_()
        assert t.get_register("PC") == t.get_address("LOOP")
        t.clear_breakpoint("LOOP").continue_()
        assert t.get_register("PC") == t.get_address("DONE")
        t.expect_register("R0", 5)

    t = run_test("breakpoints", body, source_dir=sources, timeout=5)
    assert t.passed, t.errors


def test_output_is_captured_once(sources):
    seen = []

    def body(t):
        t.file("greeter").set_register("PC", "x3000").continue_()
        seen.append(t.get_output())
        seen.append(t.get_output())

    t = run_test("greeter", body, source_dir=sources, timeout=5)
    assert t.passed, t.errors
    assert seen == ["counted", ""]


def test_set_memory_and_registers(sources):
    def body(t):
        t.file("counter")
        t.set_memory("x4000", -1).expect_memory("x4000", "xFFFF")
        t.set_register("R5", "x1234").expect_register("R5", 0x1234)
        t.set_register("CC", "NEGATIVE").expect_register("CC", "NEGATIVE")

    t = run_test("poke", body, source_dir=sources, timeout=5)
    assert t.passed, t.errors


def test_syntax_error_is_one_report(sources):
    t = run_test("broken", lambda t: t.file("broken.asm"), source_dir=sources)
    assert len(t.errors) == 1
    assert not t.sandbox.exists


def test_infinite_loop_times_out(sources):
    def body(t):
        t.file_from_asm(".ORIG x3000\nSPIN BRnzp SPIN\n.END")
        t.set_register("PC", "x3000").continue_()

    t = run_test("spin", body, source_dir=sources, timeout=0.5)
    assert len(t.errors) == 1
    assert t.errors[0].startswith("Execution timed out")
