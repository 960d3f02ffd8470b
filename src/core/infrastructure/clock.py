"""System clock adapter."""

import time

from src.core.domain.ports.clock import Clock


class SystemClock(Clock):
    """Wall-clock time in epoch milliseconds."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
