import dataclasses
from typing import Any

import structlog

from connmon.core.logging import Logger
from connmon.monitor.clock import Clock, SystemClock
from connmon.monitor.history import LatencyHistory
from connmon.monitor.quality import classify_latency
from connmon.monitor.scheduler import AutoScheduler, ScheduledTask, Scheduler
from connmon.monitor.types import (
    AVERAGE_WINDOW,
    DEFAULT_PING_ID,
    HEALTH_WINDOW,
    HEALTHY_LATENCY_MS,
    HISTORY_CAPACITY,
    QUALITY_WINDOW,
    UPTIME_TICK_INTERVAL,
    ConnectionMetrics,
    ConnectionQuality,
    HealthState,
    HealthStatus,
    LatencyMeasurement,
)

logger: Logger = structlog.get_logger()


class ConnectionMonitor:
    """
    Health monitor for a single persistent connection.

    The transport reports events, the monitor keeps the numbers:

    Lifecycle:
        1. start_monitoring() when the connection opens
        2. record_ping_sent() / record_pong_received() around each heartbeat
        3. record_message_sent() / record_message_received() per payload frame
        4. record_reconnect_attempt() / record_reconnect_success() while reconnecting
        5. stop_monitoring() or record_error() when the connection drops

    Read methods never mutate state and may be called at any time.
    Recording methods never raise.
    """

    __slots__ = (
        "connection_id",
        "_clock",
        "_scheduler",
        "_tick_interval",
        "_healthy_latency_ms",
        "_metrics",
        "_history",
        "_pending_pings",
        "_session_start_ms",
        "_uptime_task",
    )

    def __init__(
        self,
        connection_id: str = "default",
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        history_capacity: int = HISTORY_CAPACITY,
        tick_interval: float = UPTIME_TICK_INTERVAL,
        healthy_latency_ms: int = HEALTHY_LATENCY_MS,
    ) -> None:
        """
        Args:
            connection_id: Name used in log events
            clock: Time source (default: SystemClock)
            scheduler: Runs the uptime tick (default: AutoScheduler)
            history_capacity: Number of latency samples retained
            tick_interval: Seconds between uptime recomputations
            healthy_latency_ms: Average latency at or above which is_healthy() fails
        """
        if tick_interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {tick_interval}")

        self.connection_id = connection_id
        self._clock: Clock = clock or SystemClock()
        self._scheduler: Scheduler = scheduler or AutoScheduler(
            name=f"monitor-{connection_id}-uptime"
        )
        self._tick_interval = tick_interval
        self._healthy_latency_ms = healthy_latency_ms

        self._metrics = ConnectionMetrics()
        self._history = LatencyHistory(history_capacity)
        self._pending_pings: dict[str, int] = {}
        self._session_start_ms: int | None = None
        self._uptime_task: ScheduledTask | None = None

    @property
    def is_running(self) -> bool:
        """Whether a session timer is currently armed."""
        return self._uptime_task is not None

    @property
    def pending_ping_count(self) -> int:
        return len(self._pending_pings)

    # Lifecycle

    def start_monitoring(self) -> None:
        """Begin a new session. Restarts the session clock if one is running."""
        # Arm first: a scheduler failure must leave the previous state intact
        uptime_task = self._scheduler.call_every(
            self._tick_interval, self._update_uptime
        )
        self._cancel_uptime_task()

        self._session_start_ms = self._clock.monotonic_ms()
        self._metrics.is_connected = True
        self._metrics.reconnect_attempts = 0
        self._uptime_task = uptime_task

        logger.info(f"Monitor {self.connection_id} session started")

    def stop_monitoring(self) -> None:
        """End the current session. Counters and history are kept."""
        self._metrics.is_connected = False
        self._cancel_uptime_task()

        logger.info(
            f"Monitor {self.connection_id} session stopped after "
            f"{self._metrics.connection_uptime}s"
        )

    def record_reconnect_attempt(self) -> None:
        self._metrics.reconnect_attempts += 1

    def record_reconnect_success(self) -> None:
        attempts = self._metrics.reconnect_attempts

        self.start_monitoring()
        self._metrics.total_reconnects += 1

        logger.info(
            f"Monitor {self.connection_id} reconnected after {attempts} attempt(s) "
            f"(total reconnects {self._metrics.total_reconnects})"
        )

    def record_error(self, message: str) -> None:
        """Record a connection error and end the current session.

        The error text is kept after a later restart, until overwritten or reset.
        """
        self._metrics.last_error = message
        logger.warning(f"Monitor {self.connection_id} connection error: {message}")

        self.stop_monitoring()

    def reset(self) -> None:
        """Tear down the session and restore every field to its initial value."""
        self._cancel_uptime_task()

        self._metrics = ConnectionMetrics()
        self._history.clear()
        self._pending_pings.clear()
        self._session_start_ms = None

    # Traffic

    def record_ping_sent(self, ping_id: str = DEFAULT_PING_ID) -> None:
        """Record a heartbeat send. Replaces any unanswered ping with the same id."""
        self._pending_pings[ping_id] = self._clock.monotonic_ms()
        self._metrics.messages_sent += 1

    def record_pong_received(
        self, ping_id: str = DEFAULT_PING_ID
    ) -> LatencyMeasurement | None:
        """
        Correlate a heartbeat response with its ping and record the round trip.

        Returns:
            The recorded measurement, or None when no ping with that id is
            pending (stale or duplicate pong), in which case nothing changes.
        """
        sent_ms = self._pending_pings.pop(ping_id, None)
        if sent_ms is None:
            logger.warning(
                f"Monitor {self.connection_id} received pong without matching ping",
                ping_id=ping_id,
            )
            return None

        latency_ms = max(0, self._clock.monotonic_ms() - sent_ms)
        now = self._clock.now()
        quality = classify_latency(latency_ms)

        self._metrics.latency = latency_ms
        self._metrics.last_ping_timestamp = now
        self._metrics.messages_received += 1
        self._metrics.connection_quality = quality

        measurement = LatencyMeasurement(
            timestamp=now,
            latency_ms=latency_ms,
            quality=quality,
        )
        self._history.append(measurement)

        logger.debug(
            f"Monitor {self.connection_id} heartbeat {ping_id}: {latency_ms}ms ({quality})"
        )
        return measurement

    def cancel_ping(self, ping_id: str = DEFAULT_PING_ID) -> bool:
        """Forget a pending ping without recording a sample.

        Returns:
            True if a ping with that id was pending
        """
        return self._pending_pings.pop(ping_id, None) is not None

    def record_message_sent(self) -> None:
        self._metrics.messages_sent += 1

    def record_message_received(self) -> None:
        self._metrics.messages_received += 1

    # Snapshots

    def get_metrics(self) -> ConnectionMetrics:
        """Copy of the current metrics; mutating it does not affect the monitor."""
        return dataclasses.replace(self._metrics)

    def get_latency_history(self) -> list[LatencyMeasurement]:
        return self._history.snapshot()

    # Derived health

    def get_average_latency(self, count: int = AVERAGE_WINDOW) -> int | None:
        """Mean of the last `count` latency samples in whole ms, None if no samples."""
        return self._history.average(count)

    def get_connection_quality(self) -> ConnectionQuality:
        """Quality of the recent average, unlike metrics.connection_quality
        which reflects only the latest heartbeat."""
        avg_latency = self.get_average_latency(QUALITY_WINDOW)
        if avg_latency is None:
            return ConnectionQuality.UNKNOWN

        return classify_latency(avg_latency)

    def is_healthy(self) -> bool:
        if not self._metrics.is_connected:
            return False

        avg_latency = self.get_average_latency(HEALTH_WINDOW)
        if avg_latency is None:
            return True  # Still warming up

        return avg_latency < self._healthy_latency_ms

    def get_health_status(self) -> HealthStatus:
        if not self._metrics.is_connected:
            return HealthStatus(HealthState.UNHEALTHY, "Disconnected from server")

        avg_latency = self.get_average_latency(QUALITY_WINDOW)
        if avg_latency is None:
            return HealthStatus(HealthState.HEALTHY, "Connected (measuring latency...)")

        quality = classify_latency(avg_latency)
        match quality:
            case ConnectionQuality.EXCELLENT | ConnectionQuality.GOOD:
                state = HealthState.HEALTHY
            case ConnectionQuality.FAIR:
                state = HealthState.DEGRADED
            case _:
                state = HealthState.UNHEALTHY

        return HealthStatus(
            state, f"{quality.value.capitalize()} connection ({avg_latency}ms)"
        )

    def get_stats(self) -> dict[str, Any]:
        """JSON-safe summary for health endpoints and metrics collection."""
        return {
            "connection_id": self.connection_id,
            "metrics": self._metrics.to_dict(),
            "average_latency_ms": self.get_average_latency(),
            "rolling_quality": self.get_connection_quality().value,
            "is_healthy": self.is_healthy(),
            "health": self.get_health_status().to_dict(),
            "history_size": len(self._history),
            "pending_pings": len(self._pending_pings),
        }

    # Internals

    def _update_uptime(self) -> None:
        if not self._metrics.is_connected or self._session_start_ms is None:
            return

        elapsed_ms = self._clock.monotonic_ms() - self._session_start_ms
        self._metrics.connection_uptime = max(0, elapsed_ms // 1000)

    def _cancel_uptime_task(self) -> None:
        if self._uptime_task is not None:
            self._uptime_task.cancel()
            self._uptime_task = None
