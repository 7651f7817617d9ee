import asyncio

import structlog
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from connmon.core.logging import Logger
from connmon.monitor.monitor import ConnectionMonitor
from connmon.monitor.types import LatencyMeasurement

HEARTBEAT_INTERVAL = 10.0
HEARTBEAT_TIMEOUT = 30.0

logger: Logger = structlog.get_logger()


class HeartbeatDriver:
    """
    Periodic websocket ping/pong round trips reported to a ConnectionMonitor.

    Each heartbeat carries a sequential id as its ping payload, so several
    outstanding heartbeats never share a pending entry in the monitor.

    Lifecycle:
        1. Create with an open connection and the monitor to feed
        2. Call start() to begin the heartbeat loop
        3. Call stop() before closing the connection
    """

    __slots__ = (
        "_ws",
        "_monitor",
        "_interval",
        "_timeout",
        "_sequence",
        "_missed",
        "_task",
    )

    def __init__(
        self,
        ws: ClientConnection,
        monitor: ConnectionMonitor,
        interval: float = HEARTBEAT_INTERVAL,
        timeout: float = HEARTBEAT_TIMEOUT,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Heartbeat interval must be positive, got {interval}")
        if timeout <= 0:
            raise ValueError(f"Heartbeat timeout must be positive, got {timeout}")

        self._ws = ws
        self._monitor = monitor
        self._interval = interval
        self._timeout = timeout
        self._sequence = 0
        self._missed = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def missed_heartbeats(self) -> int:
        """Consecutive heartbeats that timed out without a pong."""
        return self._missed

    def start(self) -> None:
        if self.is_running:
            logger.warning("HeartbeatDriver already running")
            return

        self._task = asyncio.create_task(
            self._heartbeat_loop(),
            name=f"heartbeat-{self._monitor.connection_id}",
        )

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass

        self._task = None

    async def beat(self) -> LatencyMeasurement | None:
        """
        Run a single heartbeat round trip.

        Returns:
            The recorded measurement, or None if the pong did not arrive in time

        Raises:
            ConnectionClosed: If the connection closed before or during the ping
        """
        self._sequence += 1
        ping_id = f"hb-{self._sequence}"

        self._monitor.record_ping_sent(ping_id)
        try:
            pong_waiter = await self._ws.ping(ping_id)
            await asyncio.wait_for(pong_waiter, timeout=self._timeout)

        except asyncio.TimeoutError:
            self._monitor.cancel_ping(ping_id)
            self._missed += 1
            logger.warning(
                f"Heartbeat {ping_id} on {self._monitor.connection_id} timed out "
                f"after {self._timeout:.1f}s ({self._missed} missed)"
            )
            return None

        except ConnectionClosed:
            self._monitor.cancel_ping(ping_id)
            raise

        self._missed = 0
        return self._monitor.record_pong_received(ping_id)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)

            try:
                await self.beat()
            except ConnectionClosed:
                logger.debug(
                    f"Heartbeat loop for {self._monitor.connection_id} ended, "
                    "connection closed"
                )
                return
