import threading
from typing import Any

from connmon.monitor.monitor import ConnectionMonitor
from connmon.monitor.scheduler import Scheduler, ThreadScheduler
from connmon.monitor.types import (
    AVERAGE_WINDOW,
    DEFAULT_PING_ID,
    ConnectionMetrics,
    ConnectionQuality,
    HealthStatus,
    LatencyMeasurement,
)


class ThreadSafeConnectionMonitor(ConnectionMonitor):
    """
    ConnectionMonitor for hosts that report events from several threads.

    Every public method and the uptime tick run under one re-entrant lock,
    so composite reads such as get_health_status() see a consistent state.
    Ticks run on a daemon thread unless another scheduler is supplied.
    """

    __slots__ = ("_lock",)

    def __init__(
        self,
        connection_id: str = "default",
        scheduler: Scheduler | None = None,
        **kwargs: Any,
    ) -> None:
        self._lock = threading.RLock()
        super().__init__(
            connection_id=connection_id,
            scheduler=scheduler
            or ThreadScheduler(name=f"monitor-{connection_id}-uptime"),
            **kwargs,
        )

    def start_monitoring(self) -> None:
        with self._lock:
            super().start_monitoring()

    def stop_monitoring(self) -> None:
        with self._lock:
            super().stop_monitoring()

    def record_reconnect_attempt(self) -> None:
        with self._lock:
            super().record_reconnect_attempt()

    def record_reconnect_success(self) -> None:
        with self._lock:
            super().record_reconnect_success()

    def record_error(self, message: str) -> None:
        with self._lock:
            super().record_error(message)

    def reset(self) -> None:
        with self._lock:
            super().reset()

    def record_ping_sent(self, ping_id: str = DEFAULT_PING_ID) -> None:
        with self._lock:
            super().record_ping_sent(ping_id)

    def record_pong_received(
        self, ping_id: str = DEFAULT_PING_ID
    ) -> LatencyMeasurement | None:
        with self._lock:
            return super().record_pong_received(ping_id)

    def cancel_ping(self, ping_id: str = DEFAULT_PING_ID) -> bool:
        with self._lock:
            return super().cancel_ping(ping_id)

    def record_message_sent(self) -> None:
        with self._lock:
            super().record_message_sent()

    def record_message_received(self) -> None:
        with self._lock:
            super().record_message_received()

    def get_metrics(self) -> ConnectionMetrics:
        with self._lock:
            return super().get_metrics()

    def get_latency_history(self) -> list[LatencyMeasurement]:
        with self._lock:
            return super().get_latency_history()

    def get_average_latency(self, count: int = AVERAGE_WINDOW) -> int | None:
        with self._lock:
            return super().get_average_latency(count)

    def get_connection_quality(self) -> ConnectionQuality:
        with self._lock:
            return super().get_connection_quality()

    def is_healthy(self) -> bool:
        with self._lock:
            return super().is_healthy()

    def get_health_status(self) -> HealthStatus:
        with self._lock:
            return super().get_health_status()

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return super().get_stats()

    def _update_uptime(self) -> None:
        with self._lock:
            super()._update_uptime()
