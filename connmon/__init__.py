"""Client-side connection health monitoring."""

from connmon.errors import MonitorError, MonitorExistsError, MonitorNotFoundError
from connmon.monitor import (
    ConnectionMetrics,
    ConnectionMonitor,
    ConnectionQuality,
    HealthState,
    HealthStatus,
    LatencyMeasurement,
    MonitorRegistry,
    ThreadSafeConnectionMonitor,
)

__all__ = [
    "ConnectionMonitor",
    "ThreadSafeConnectionMonitor",
    "MonitorRegistry",
    "ConnectionMetrics",
    "ConnectionQuality",
    "HealthState",
    "HealthStatus",
    "LatencyMeasurement",
    "MonitorError",
    "MonitorExistsError",
    "MonitorNotFoundError",
]
