import os
import shutil
from typing import List


# External tools
def _resolve_tool(env_name: str, default: str) -> str:
    """Best-effort resolution of an external executable.
    Tries these locations in order:
      1) the path named by the environment variable
      2) the default name found on PATH
    Returns the bare default name when neither resolves, so the failure
    surfaces at spawn time with the original name in the message.
    """
    override = os.environ.get(env_name, "").strip()
    if override:
        return override
    try:
        found = shutil.which(default)
        if found:
            return found
    except Exception:
        pass
    return default


def _env_float(env_name: str, default: float) -> float:
    raw = os.environ.get(env_name, "").strip()
    if not raw:
        return default
    try:
        v = float(raw)
    except ValueError:
        return default
    return v if v > 0 else default


def debug_enabled() -> bool:
    return str(os.environ.get("LC3DEBUG", "")).strip().lower() in ("1", "true", "y", "yes")


SIMULATOR_CMD = _resolve_tool("LC3SIM", "lc3sim")
SIMULATOR_ARGS: List[str] = ["-gui"]
ASSEMBLER_CMD = _resolve_tool("LC3AS", "lc3as")

# Side channel the simulator connects back to for program output
OUTPUT_HOST = os.environ.get("LC3SPEC_HOST", "").strip() or "127.0.0.1"
CONNECT_TIMEOUT_S = _env_float("LC3SPEC_CONNECT_TIMEOUT", 10.0)

# Bound for `continue` inside a test body
CONTINUE_TIMEOUT_S = _env_float("LC3SPEC_TIMEOUT", 1.5)

# No readiness signal exists for program output; poll instead.
OUTPUT_POLL_INTERVAL_S = 0.1
OUTPUT_POLL_RETRIES = 10

# Breakpoint commands get no acknowledgement; drain whatever arrives in this window.
BREAKPOINT_DRAIN_S = 0.01

HALT_BANNER = "\n\n--- halting the LC-3 ---\n\n"

# An object file holding only .ORIG and .END
EMPTY_OBJECT_SIZE = 2

SOURCE_EXT = ".asm"
OBJECT_EXT = ".obj"
