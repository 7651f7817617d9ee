from collections.abc import Callable, Iterator
from typing import Any

import structlog

from connmon.core.logging import Logger
from connmon.errors import MonitorExistsError, MonitorNotFoundError
from connmon.monitor.monitor import ConnectionMonitor

logger: Logger = structlog.get_logger()

MonitorFactory = Callable[[str], ConnectionMonitor]


class MonitorRegistry:
    """
    Named ConnectionMonitor instances, one per monitored connection.

    Health endpoints and metrics collection read through the registry so
    several connections can be observed side by side.
    """

    __slots__ = ("_monitors", "_factory")

    def __init__(self, factory: MonitorFactory | None = None) -> None:
        """
        Args:
            factory: Builds a monitor for a connection name
                (default: ConnectionMonitor(connection_id=name))
        """
        self._monitors: dict[str, ConnectionMonitor] = {}
        self._factory: MonitorFactory = factory or (
            lambda name: ConnectionMonitor(connection_id=name)
        )

    def __len__(self) -> int:
        return len(self._monitors)

    def __contains__(self, name: object) -> bool:
        return name in self._monitors

    def __iter__(self) -> Iterator[str]:
        return iter(self._monitors)

    @property
    def names(self) -> list[str]:
        return list(self._monitors)

    def create(self, name: str) -> ConnectionMonitor:
        if name in self._monitors:
            raise MonitorExistsError(name)

        monitor = self._factory(name)
        self._monitors[name] = monitor

        logger.debug(f"Registered monitor for connection {name}")
        return monitor

    def add(self, name: str, monitor: ConnectionMonitor) -> None:
        if name in self._monitors:
            raise MonitorExistsError(name)

        self._monitors[name] = monitor

    def get(self, name: str) -> ConnectionMonitor:
        try:
            return self._monitors[name]
        except KeyError:
            raise MonitorNotFoundError(name) from None

    def remove(self, name: str) -> ConnectionMonitor:
        """Unregister a monitor, resetting it so its session timer stops."""
        monitor = self.get(name)
        del self._monitors[name]
        monitor.reset()

        logger.debug(f"Removed monitor for connection {name}")
        return monitor

    def clear(self) -> None:
        for name in list(self._monitors):
            self.remove(name)

    def is_healthy(self) -> bool:
        """True when at least one monitor is registered and every monitor is healthy."""
        if not self._monitors:
            return False

        return all(monitor.is_healthy() for monitor in self._monitors.values())

    def get_stats(self) -> dict[str, Any]:
        connections = [monitor.get_stats() for monitor in self._monitors.values()]
        return {
            "connection_count": len(connections),
            "healthy_count": sum(1 for c in connections if c["is_healthy"]),
            "connections": connections,
        }
