"""Clock port."""

from typing import Protocol


class Clock(Protocol):
    """Port for reading the current time (epoch milliseconds)."""

    def now_ms(self) -> int: ...
