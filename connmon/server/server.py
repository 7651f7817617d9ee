from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from aiohttp import web
from aiohttp.hdrs import CONTENT_TYPE
from prometheus_client import CONTENT_TYPE_LATEST

from connmon.core.logging import Logger
from connmon.errors import MonitorNotFoundError
from connmon.metrics.prometheus import MetricsCollector

if TYPE_CHECKING:
    from connmon.monitor.registry import MonitorRegistry

logger: Logger = structlog.getLogger(__name__)


class HTTPServer:
    """
    HTTP server exposing connection health, stats and metrics endpoints.

    Endpoints only read monitor snapshots; they never record events.
    """

    __slots__ = (
        "_registry",
        "_port",
        "_host",
        "_runner",
        "_site",
        "_running",
    )

    def __init__(
        self,
        registry: MonitorRegistry,
        port: int = 8080,
        host: str = "0.0.0.0",
    ) -> None:
        """Initialize HTTP server.

        Args:
            registry: Monitors to report on
            port: Port to bind to (default: 8080)
            host: Host to bind to (default: 0.0.0.0 for container compatibility)
        """
        self._registry = registry
        self._port = port
        self._host = host
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def build_app(self) -> web.Application:
        web_app = web.Application()
        web_app.router.add_get("/health", self._handle_health)
        web_app.router.add_get("/stats", self._handle_stats)
        web_app.router.add_get("/metrics", self._handle_metrics)
        web_app.router.add_get("/history/{connection_id}", self._handle_history)
        return web_app

    async def start(self) -> None:
        """Start HTTP server.

        Raises:
            OSError: If the server cannot bind (port conflict, etc.)
        """
        if self._running:
            logger.warning("HTTP server already running")
            return

        logger.info(f"Starting HTTP server on {self._host}:{self._port}")

        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()

        self._running = True
        logger.info(f"HTTP server started on {self._host}:{self._port}")

    async def stop(self) -> None:
        """Stop HTTP server gracefully."""
        if not self._running:
            logger.warning("HTTP server not running")
            return

        self._running = False

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        logger.info("HTTP server stopped")

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle GET /health endpoint.

        Returns:
            200 OK when every monitored connection is healthy
            503 Service Unavailable otherwise
        """
        logger.debug("GET /health")

        is_healthy = self._registry.is_healthy()
        connections = {}
        for name in self._registry.names:
            monitor = self._registry.get(name)
            connections[name] = {
                "healthy": monitor.is_healthy(),
                **monitor.get_health_status().to_dict(),
            }

        response_data = {
            "healthy": is_healthy,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "connections": connections,
        }

        status = 200 if is_healthy else 503
        return web.json_response(response_data, status=status)

    async def _handle_stats(self, request: web.Request) -> web.Response:
        logger.debug("GET /stats")

        return web.json_response(self._registry.get_stats(), status=200)

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        """Handle GET /metrics endpoint.

        Returns:
            200 OK with Prometheus text exposition format
        """
        try:
            metrics_bytes = MetricsCollector(self._registry).collect_metrics()
        except Exception as e:
            logger.exception(f"Error getting metrics: {e}")
            return web.json_response({"error": str(e)}, status=500)

        return web.Response(
            body=metrics_bytes,
            headers={CONTENT_TYPE: CONTENT_TYPE_LATEST},
        )

    async def _handle_history(self, request: web.Request) -> web.Response:
        """Handle GET /history/{connection_id} endpoint.

        Returns:
            200 OK with the connection's latency samples, oldest first
            404 Not Found for an unknown connection
        """
        connection_id = request.match_info["connection_id"]
        logger.debug(f"GET /history/{connection_id}")

        try:
            monitor = self._registry.get(connection_id)
        except MonitorNotFoundError as e:
            return web.json_response({"error": str(e)}, status=404)

        history = [m.to_dict() for m in monitor.get_latency_history()]
        return web.json_response(
            {
                "connection_id": connection_id,
                "average_latency_ms": monitor.get_average_latency(),
                "samples": history,
            },
            status=200,
        )
