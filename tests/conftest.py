"""Shared pytest fixtures for all test modules."""

from datetime import datetime, timedelta, timezone

import pytest

from connmon.monitor.monitor import ConnectionMonitor
from connmon.monitor.scheduler import TickCallback


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start_ms: int = 1_000_000) -> None:
        self.ms = start_ms
        self._epoch = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def advance(self, ms: int) -> None:
        self.ms += ms

    def monotonic_ms(self) -> int:
        return self.ms

    def now(self) -> datetime:
        return self._epoch + timedelta(milliseconds=self.ms)


class ManualTask:
    def __init__(self, interval: float, callback: TickCallback) -> None:
        self.interval = interval
        self.callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler:
    """Scheduler whose ticks fire only when the test calls tick()."""

    def __init__(self) -> None:
        self.tasks: list[ManualTask] = []

    def call_every(self, interval: float, callback: TickCallback) -> ManualTask:
        task = ManualTask(interval, callback)
        self.tasks.append(task)
        return task

    @property
    def active_tasks(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled]

    def tick(self) -> None:
        for task in self.active_tasks:
            task.callback()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def monitor(clock: FakeClock, scheduler: ManualScheduler) -> ConnectionMonitor:
    return ConnectionMonitor(connection_id="test", clock=clock, scheduler=scheduler)


@pytest.fixture
def heartbeat(monitor: ConnectionMonitor, clock: FakeClock):
    """Record one correlated heartbeat of the given latency."""

    def _heartbeat(latency_ms: int, ping_id: str = "default"):
        monitor.record_ping_sent(ping_id)
        clock.advance(latency_ms)
        return monitor.record_pong_received(ping_id)

    return _heartbeat
