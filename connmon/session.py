import asyncio
from collections.abc import Awaitable, Callable

import structlog
from websockets.asyncio.client import ClientConnection, connect, process_exception
from websockets.exceptions import ConnectionClosed

from connmon.core.logging import Logger
from connmon.heartbeat.driver import HEARTBEAT_INTERVAL, HEARTBEAT_TIMEOUT, HeartbeatDriver
from connmon.monitor.monitor import ConnectionMonitor

MessageCallback = Callable[[str, str | bytes], Awaitable[None]]

logger: Logger = structlog.get_logger()


class MonitoredSession:
    """
    Websocket client session that reports its traffic to a ConnectionMonitor.

    Reconnection and its backoff are left to the websockets client; this
    class only tells the monitor what happened.

    Lifecycle:
        1. Create with a URL and the monitor to feed
        2. Call start() to connect and begin receiving
        3. Incoming frames flow via the optional callback
        4. Call stop() for graceful shutdown
    """

    __slots__ = (
        "url",
        "monitor",
        "on_message",
        "_heartbeat_interval",
        "_heartbeat_timeout",
        "_ws",
        "_heartbeat",
        "_connected_once",
        "_stop_event",
        "_task",
    )

    def __init__(
        self,
        url: str,
        monitor: ConnectionMonitor,
        on_message: MessageCallback | None = None,
        heartbeat_interval: float = HEARTBEAT_INTERVAL,
        heartbeat_timeout: float = HEARTBEAT_TIMEOUT,
    ) -> None:
        self.url = url
        self.monitor = monitor
        self.on_message = on_message
        self._heartbeat_interval = heartbeat_interval
        self._heartbeat_timeout = heartbeat_timeout

        self._ws: ClientConnection | None = None
        self._heartbeat: HeartbeatDriver | None = None
        self._connected_once = False
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    async def start(self) -> None:
        if self._task is not None:
            logger.warning(f"Session {self.monitor.connection_id} already started")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(
            self._connection_loop(),
            name=f"session-{self.monitor.connection_id}",
        )

    async def stop(self) -> None:
        self._stop_event.set()

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self._teardown_connection()
        self.monitor.stop_monitoring()

    async def send(self, message: str | bytes) -> None:
        if not self._ws:
            raise RuntimeError(
                f"Session {self.monitor.connection_id} is not connected, cannot send"
            )

        await self._ws.send(message)
        self.monitor.record_message_sent()

    async def _connection_loop(self) -> None:
        # Disable the library keepalive, the heartbeat driver pings instead
        async for ws in connect(
            self.url,
            ping_interval=None,
            process_exception=self._on_connect_failure,
        ):
            self._on_connected(ws)

            try:
                await self._receive_messages(ws)
            except ConnectionClosed as e:
                self.monitor.record_error(f"Connection closed: {e}")
            else:
                self.monitor.stop_monitoring()
            finally:
                await self._teardown_connection()

            if self._stop_event.is_set():
                break

            self.monitor.record_reconnect_attempt()
            logger.info(
                f"Session {self.monitor.connection_id} reconnecting "
                f"(attempt {self.monitor.get_metrics().reconnect_attempts})"
            )

    def _on_connect_failure(self, exc: Exception) -> Exception | None:
        """Count each failed connect retry, then defer to the library's retry policy.

        Returns:
            None to retry, or the exception to raise
        """
        self.monitor.record_reconnect_attempt()
        logger.info(
            f"Session {self.monitor.connection_id} connect failed: {exc} "
            f"(attempt {self.monitor.get_metrics().reconnect_attempts})"
        )
        return process_exception(exc)

    def _on_connected(self, ws: ClientConnection) -> None:
        self._ws = ws

        if self._connected_once:
            self.monitor.record_reconnect_success()
        else:
            self.monitor.start_monitoring()
            self._connected_once = True

        self._heartbeat = HeartbeatDriver(
            ws,
            self.monitor,
            interval=self._heartbeat_interval,
            timeout=self._heartbeat_timeout,
        )
        self._heartbeat.start()

        logger.info(f"Session {self.monitor.connection_id} connected to {self.url}")

    async def _receive_messages(self, ws: ClientConnection) -> None:
        async for message in ws:
            self.monitor.record_message_received()

            if self.on_message is None:
                continue

            try:
                await self.on_message(self.monitor.connection_id, message)
            except Exception as e:
                logger.exception(f"Message callback error {e}")

    async def _teardown_connection(self) -> None:
        if self._heartbeat:
            await self._heartbeat.stop()
            self._heartbeat = None

        if self._ws:
            await self._ws.close()
            self._ws = None
