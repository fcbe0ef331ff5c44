# sim/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from lc3spec.lc3_types import CONDITION_CODES
from lc3spec.sim.errors import InvalidRegister
from lc3spec.utils.hexfmt import normalize_to_s

ZERO_WORD = "x0000"

REGISTER_NAMES: Tuple[str, ...] = ("R0", "R1", "R2", "R3", "R4", "R5", "R6", "R7", "PC", "IR", "PSR", "CC")

# REG <n> slot number -> register name
SLOT_TO_REGISTER: Dict[int, str] = {i: name for i, name in enumerate(REGISTER_NAMES)}


def _initial_registers() -> Dict[str, str]:
    regs = {name: ZERO_WORD for name in REGISTER_NAMES}
    regs["CC"] = "ZERO"
    return regs


@dataclass
class StateMirror:
    """Local copy of what the simulator last reported.

    Written only by the protocol parser; every public client operation reads it.
    Memory is keyed by signed 16-bit address and defaults to x0000.
    Labels map an uppercase name to a canonical address; the first report wins.
    """
    registers: Dict[str, str] = field(default_factory=_initial_registers)
    memory: Dict[int, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)

    # ---- registers ----
    @staticmethod
    def register_name(name) -> str:
        reg = str(name).strip().upper()
        if reg not in REGISTER_NAMES:
            raise InvalidRegister(f"Invalid register: {name}")
        return reg

    def get_register(self, name) -> str:
        return self.registers[self.register_name(name)]

    def update_slot(self, slot: int, value: str) -> bool:
        """Apply a REG report. Returns False for slots outside 0..11."""
        reg = SLOT_TO_REGISTER.get(int(slot))
        if reg is None:
            return False
        if reg == "CC":
            if value not in CONDITION_CODES:
                return False
            self.registers[reg] = value
        else:
            self.registers[reg] = normalize_to_s(value)
        return True

    def snapshot(self) -> Dict[str, str]:
        return dict(self.registers)

    # ---- memory ----
    def read_memory(self, address: int) -> str:
        return self.memory.get(int(address), ZERO_WORD)

    def write_memory(self, address: int, value: str) -> None:
        self.memory[int(address)] = value

    # ---- labels ----
    def add_label(self, name: str, address: str) -> bool:
        key = name.upper()
        if key in self.labels:
            return False
        self.labels[key] = address
        return True

    def label_address(self, name) -> Optional[str]:
        if not isinstance(name, str):
            return None
        return self.labels.get(name.strip().upper())

    def describe(self) -> str:
        return " ".join(f"{k}={v}" for k, v in self.registers.items())
