from __future__ import annotations

from typing import List


class Reporter:
    """Ordered failure messages for one test. A test passes iff none were reported."""

    def __init__(self) -> None:
        self._reports: List[str] = []

    def report(self, msg: str) -> None:
        self._reports.append(str(msg))

    @property
    def passed(self) -> bool:
        return not self._reports

    @property
    def failed(self) -> bool:
        return bool(self._reports)

    @property
    def errors(self) -> List[str]:
        return list(self._reports)

    def __len__(self) -> int:
        return len(self._reports)
