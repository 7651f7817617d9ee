"""Prometheus rendering of connection monitor snapshots.

Metrics are rebuilt from MonitorRegistry.get_stats() on every scrape; nothing
is pushed or retained between scrapes. Counters are set from the monitor's
lifetime counters rather than incremented, so a monitor reset shows up as a
counter reset, which Prometheus rate() handles.
"""

from typing import TYPE_CHECKING, Any

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

from connmon.monitor.types import ConnectionQuality, HealthState

if TYPE_CHECKING:
    from connmon.monitor.registry import MonitorRegistry

QUALITY_LEVELS = {
    ConnectionQuality.UNKNOWN.value: 0,
    ConnectionQuality.POOR.value: 1,
    ConnectionQuality.FAIR.value: 2,
    ConnectionQuality.GOOD.value: 3,
    ConnectionQuality.EXCELLENT.value: 4,
}


class MetricsCollector:
    """
    Exposes monitor statistics as Prometheus metrics.

    Generates fresh metrics on each collection by calling
    registry.get_stats() and transforming the results into Prometheus format.
    """

    def __init__(self, registry: "MonitorRegistry") -> None:
        """Initialize metrics collector.

        Args:
            registry: Monitor registry to collect stats from
        """
        self._registry = registry

    def collect_metrics(self) -> bytes:
        """
        Collect current stats and return Prometheus text format.

        Returns:
            Prometheus text exposition format bytes
        """
        registry = CollectorRegistry()
        stats = self._registry.get_stats()

        self._collect_summary_metrics(registry, stats)
        self._collect_connection_metrics(registry, stats)

        return generate_latest(registry)

    def _collect_summary_metrics(
        self, registry: CollectorRegistry, stats: dict[str, Any]
    ) -> None:
        connections = Gauge(
            "connmon_connections",
            "Number of monitored connections by state",
            ["state"],
            registry=registry,
        )
        connections.labels(state="total").set(stats.get("connection_count", 0))
        connections.labels(state="healthy").set(stats.get("healthy_count", 0))

    def _collect_connection_metrics(
        self, registry: CollectorRegistry, stats: dict[str, Any]
    ) -> None:
        """Collect per-connection metrics with connection_id labels."""
        connection_stats = stats.get("connections", [])
        if not connection_stats:
            return

        connected = Gauge(
            "connmon_connection_connected",
            "Whether the connection is up (1) or down (0)",
            ["connection_id"],
            registry=registry,
        )
        healthy = Gauge(
            "connmon_connection_healthy",
            "Connection health (1=healthy, 0=unhealthy) labelled with health status",
            ["connection_id", "status"],
            registry=registry,
        )
        latency = Gauge(
            "connmon_connection_latency_milliseconds",
            "Heartbeat round-trip latency",
            ["connection_id", "window"],
            registry=registry,
        )
        quality = Gauge(
            "connmon_connection_quality_level",
            "Connection quality (0=unknown, 1=poor, 2=fair, 3=good, 4=excellent)",
            ["connection_id", "window"],
            registry=registry,
        )
        uptime = Gauge(
            "connmon_connection_uptime_seconds",
            "Seconds since the current session started",
            ["connection_id"],
            registry=registry,
        )
        reconnect_attempts = Gauge(
            "connmon_connection_reconnect_attempts",
            "Consecutive reconnect attempts since the last successful connection",
            ["connection_id"],
            registry=registry,
        )
        pending = Gauge(
            "connmon_connection_pending_pings",
            "Heartbeats awaiting a pong",
            ["connection_id"],
            registry=registry,
        )
        reconnects = Counter(
            "connmon_connection_reconnects_total",
            "Successful reconnects per connection",
            ["connection_id"],
            registry=registry,
        )
        messages = Counter(
            "connmon_connection_messages_total",
            "Messages per connection and direction, heartbeats included",
            ["connection_id", "direction"],
            registry=registry,
        )

        for conn in connection_stats:
            conn_id = conn.get("connection_id", "unknown")
            metrics = conn.get("metrics", {})

            connected.labels(connection_id=conn_id).set(
                1 if metrics.get("is_connected") else 0
            )

            health = conn.get("health", {})
            healthy.labels(
                connection_id=conn_id,
                status=health.get("status", HealthState.UNHEALTHY.value),
            ).set(1 if conn.get("is_healthy") else 0)

            # Absent latencies are left unset rather than reported as 0ms
            if metrics.get("latency") is not None:
                latency.labels(connection_id=conn_id, window="last").set(
                    metrics["latency"]
                )
            if conn.get("average_latency_ms") is not None:
                latency.labels(connection_id=conn_id, window="average").set(
                    conn["average_latency_ms"]
                )

            quality.labels(connection_id=conn_id, window="last").set(
                QUALITY_LEVELS.get(metrics.get("connection_quality"), 0)
            )
            quality.labels(connection_id=conn_id, window="rolling").set(
                QUALITY_LEVELS.get(conn.get("rolling_quality"), 0)
            )

            uptime.labels(connection_id=conn_id).set(metrics.get("connection_uptime", 0))
            reconnect_attempts.labels(connection_id=conn_id).set(
                metrics.get("reconnect_attempts", 0)
            )
            pending.labels(connection_id=conn_id).set(conn.get("pending_pings", 0))

            reconnects.labels(connection_id=conn_id)._value.set(
                metrics.get("total_reconnects", 0)
            )
            messages.labels(connection_id=conn_id, direction="received")._value.set(
                metrics.get("messages_received", 0)
            )
            messages.labels(connection_id=conn_id, direction="sent")._value.set(
                metrics.get("messages_sent", 0)
            )
