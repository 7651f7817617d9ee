"""Connection health monitoring."""

from connmon.monitor.clock import Clock, SystemClock
from connmon.monitor.history import LatencyHistory
from connmon.monitor.monitor import ConnectionMonitor
from connmon.monitor.quality import classify_latency
from connmon.monitor.registry import MonitorRegistry
from connmon.monitor.scheduler import (
    AsyncioScheduler,
    AutoScheduler,
    ScheduledTask,
    Scheduler,
    ThreadScheduler,
)
from connmon.monitor.threadsafe import ThreadSafeConnectionMonitor
from connmon.monitor.types import (
    DEFAULT_PING_ID,
    HISTORY_CAPACITY,
    ConnectionMetrics,
    ConnectionQuality,
    HealthState,
    HealthStatus,
    LatencyMeasurement,
)

__all__ = [
    "ConnectionMonitor",
    "ThreadSafeConnectionMonitor",
    "MonitorRegistry",
    "LatencyHistory",
    "classify_latency",
    "Clock",
    "SystemClock",
    "Scheduler",
    "ScheduledTask",
    "AsyncioScheduler",
    "AutoScheduler",
    "ThreadScheduler",
    "ConnectionMetrics",
    "ConnectionQuality",
    "HealthState",
    "HealthStatus",
    "LatencyMeasurement",
    "DEFAULT_PING_ID",
    "HISTORY_CAPACITY",
]
