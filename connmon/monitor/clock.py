import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Time source for the monitor.

    `monotonic_ms` drives latency and uptime arithmetic, `now` stamps
    samples for display.
    """

    def monotonic_ms(self) -> int: ...

    def now(self) -> datetime: ...


class SystemClock:
    __slots__ = ()

    def monotonic_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
