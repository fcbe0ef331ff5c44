from __future__ import annotations

from typing import Optional, Protocol


class CommandChannel(Protocol):
    """Bidirectional line pipe to the simulator process."""

    def start(self) -> bool: ...
    def send_line(self, line: str) -> None: ...

    # Returns None when `timeout` (seconds) expires first; None timeout blocks.
    def read_line(self, timeout: Optional[float] = None) -> Optional[str]: ...

    def is_alive(self) -> bool: ...
    def close(self) -> None: ...


class OutputChannel(Protocol):
    """One-way side channel carrying the target program's character output."""

    def listen(self) -> int: ...
    def wait_connected(self, timeout: Optional[float] = None) -> bool: ...
    def ready(self, timeout: float = 0.0) -> bool: ...
    def read_available(self) -> bytes: ...
    def close(self) -> None: ...
