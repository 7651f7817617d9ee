import asyncio
import signal
from typing import Any

import structlog

from connmon.core.config import settings
from connmon.core.logging import Logger
from connmon.monitor.monitor import ConnectionMonitor
from connmon.monitor.registry import MonitorRegistry
from connmon.server import HTTPServer
from connmon.session import MonitoredSession

logger: Logger = structlog.getLogger(__name__)


def build_monitor(name: str) -> ConnectionMonitor:
    return ConnectionMonitor(
        connection_id=name,
        history_capacity=settings.HISTORY_CAPACITY,
        tick_interval=settings.UPTIME_TICK_SECONDS,
        healthy_latency_ms=settings.HEALTHY_LATENCY_MS,
    )


class ConnMon:
    """
    Application orchestrator.

    Runs one monitored websocket session per configured URL and an optional
    HTTP server reporting on all of them.
    """

    __slots__ = (
        "_urls",
        "_registry",
        "_sessions",
        "_http_server",
        "_enable_http",
        "_running",
        "_shutdown_event",
    )

    def __init__(
        self,
        urls: dict[str, str],
        enable_http: bool = True,
        registry: MonitorRegistry | None = None,
    ) -> None:
        """
        Args:
            urls: Connection name -> websocket URL
            enable_http: Whether to start the HTTP server (default = True)
            registry: Monitor registry (default: one built from settings)
        """
        if not urls:
            raise ValueError("At least one connection URL is required")

        self._urls = dict(urls)
        self._registry = registry or MonitorRegistry(factory=build_monitor)
        self._sessions: dict[str, MonitoredSession] = {}
        self._http_server: HTTPServer | None = None
        self._enable_http = enable_http
        self._running = False
        self._shutdown_event = asyncio.Event()

    @property
    def registry(self) -> MonitorRegistry:
        return self._registry

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.warning("ConnMon already running")
            return

        try:
            for name, url in self._urls.items():
                monitor = self._registry.create(name)
                session = MonitoredSession(
                    url,
                    monitor,
                    heartbeat_interval=settings.HEARTBEAT_INTERVAL_SECONDS,
                    heartbeat_timeout=settings.HEARTBEAT_TIMEOUT_SECONDS,
                )
                await session.start()
                self._sessions[name] = session

            if self._enable_http:
                self._http_server = HTTPServer(
                    self._registry,
                    port=settings.HTTP_PORT,
                    host=settings.HTTP_HOST,
                )
                try:
                    await self._http_server.start()
                except Exception as e:
                    # Monitoring continues without the HTTP endpoints
                    logger.error(f"Failed to start HTTP server: {e}")
                    self._http_server = None

        except Exception as e:
            logger.error(f"ConnMon startup failed: {e}")
            await self._stop()
            raise

        self._running = True
        logger.info(f"ConnMon started monitoring {len(self._sessions)} connection(s)")

    async def stop(self) -> None:
        if not self._running:
            logger.warning("ConnMon not running")
            return

        self._running = False
        await self._stop()
        logger.info("ConnMon stopped")

    async def _stop(self) -> None:
        if self._http_server:
            try:
                await self._http_server.stop()
            except Exception as e:
                logger.error(f"Error stopping HTTP server: {e}")
            self._http_server = None

        for name, session in self._sessions.items():
            try:
                await session.stop()
            except Exception as e:
                logger.error(f"Error stopping session {name}: {e}")
        self._sessions.clear()

        self._registry.clear()

    def get_stats(self) -> dict[str, Any]:
        return {
            "running": self._running,
            **self._registry.get_stats(),
        }

    async def run(self) -> None:
        """
        Run with automatic signal handling.

        Blocks until SIGINT or SIGTERM received, then gracefully stops.
        """
        loop = asyncio.get_running_loop()

        def signal_handler(*args: Any) -> None:
            logger.info("Shutdown signal received")
            self._shutdown_event.set()

        signals = (signal.SIGINT, signal.SIGTERM)
        for sig in signals:
            loop.add_signal_handler(sig, signal_handler)

        try:
            await self.start()
            await self._shutdown_event.wait()
        finally:
            await self.stop()

            for sig in signals:
                loop.remove_signal_handler(sig)
