"""Type definitions for connection health monitoring."""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any


class ConnectionQuality(StrEnum):
    """Latency-derived connection rating"""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    UNKNOWN = "unknown"  # No latency sample yet


class HealthState(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(slots=True)
class ConnectionMetrics:
    """Current connection snapshot, overwritten in place by the monitor"""

    latency: int | None = None  # Last round trip, milliseconds
    connection_quality: ConnectionQuality = ConnectionQuality.UNKNOWN
    is_connected: bool = False
    last_ping_timestamp: datetime | None = None
    reconnect_attempts: int = 0
    total_reconnects: int = 0
    connection_uptime: int = 0  # Seconds
    messages_received: int = 0
    messages_sent: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["connection_quality"] = self.connection_quality.value
        if self.last_ping_timestamp is not None:
            data["last_ping_timestamp"] = self.last_ping_timestamp.isoformat()
        return data


@dataclass(frozen=True, slots=True)
class LatencyMeasurement:
    """One correlated heartbeat round trip."""

    timestamp: datetime
    latency_ms: int
    quality: ConnectionQuality

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "latency_ms": self.latency_ms,
            "quality": self.quality.value,
        }


@dataclass(frozen=True, slots=True)
class HealthStatus:
    status: HealthState
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status.value, "message": self.message}


# Configuration constants
DEFAULT_PING_ID = "default"
HISTORY_CAPACITY = 50
UPTIME_TICK_INTERVAL = 1.0  # Seconds between uptime recomputations
HEALTHY_LATENCY_MS = 500

# Quality thresholds (upper bounds, exclusive), milliseconds
EXCELLENT_LATENCY_MS = 50
GOOD_LATENCY_MS = 150
FAIR_LATENCY_MS = 300

# Sample windows for derived queries
AVERAGE_WINDOW = 10
QUALITY_WINDOW = 5
HEALTH_WINDOW = 3
