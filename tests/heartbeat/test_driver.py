"""Tests for the websocket heartbeat driver."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.exceptions import ConnectionClosedError

from connmon.heartbeat.driver import HeartbeatDriver


def make_ws(pong: asyncio.Future | None = None) -> MagicMock:
    ws = MagicMock()
    if pong is None:
        pong = asyncio.get_running_loop().create_future()
        pong.set_result(0.0)
    ws.ping = AsyncMock(return_value=pong)
    return ws


class TestHeartbeatDriver:
    def test_rejects_non_positive_interval(self, monitor) -> None:
        with pytest.raises(ValueError, match="interval must be positive"):
            HeartbeatDriver(MagicMock(), monitor, interval=0)

    def test_rejects_non_positive_timeout(self, monitor) -> None:
        with pytest.raises(ValueError, match="timeout must be positive"):
            HeartbeatDriver(MagicMock(), monitor, timeout=-1)

    @pytest.mark.asyncio
    async def test_beat_records_round_trip(self, monitor) -> None:
        # Arrange
        ws = make_ws()
        driver = HeartbeatDriver(ws, monitor)
        monitor.start_monitoring()

        # Act
        measurement = await driver.beat()

        # Assert
        ws.ping.assert_awaited_once_with("hb-1")
        assert measurement is not None
        metrics = monitor.get_metrics()
        assert metrics.messages_sent == 1
        assert metrics.messages_received == 1
        assert metrics.latency == 0
        assert monitor.pending_ping_count == 0

    @pytest.mark.asyncio
    async def test_beat_uses_sequential_ids(self, monitor) -> None:
        # Arrange
        ws = make_ws()
        driver = HeartbeatDriver(ws, monitor)

        # Act
        await driver.beat()
        ws.ping.return_value = make_ws().ping.return_value
        await driver.beat()

        # Assert
        assert [c.args[0] for c in ws.ping.await_args_list] == ["hb-1", "hb-2"]
        assert len(monitor.get_latency_history()) == 2

    @pytest.mark.asyncio
    async def test_beat_timeout_cancels_pending_ping(self, monitor) -> None:
        # Arrange
        never = asyncio.get_running_loop().create_future()
        driver = HeartbeatDriver(make_ws(never), monitor, timeout=0.01)

        # Act
        measurement = await driver.beat()

        # Assert
        assert measurement is None
        assert driver.missed_heartbeats == 1
        assert monitor.pending_ping_count == 0
        assert monitor.get_latency_history() == []
        assert monitor.get_metrics().messages_sent == 1

    @pytest.mark.asyncio
    async def test_successful_beat_resets_missed_count(self, monitor) -> None:
        # Arrange
        never = asyncio.get_running_loop().create_future()
        ws = make_ws(never)
        driver = HeartbeatDriver(ws, monitor, timeout=0.01)
        await driver.beat()

        # Act
        ws.ping.return_value = make_ws().ping.return_value
        await driver.beat()

        # Assert
        assert driver.missed_heartbeats == 0

    @pytest.mark.asyncio
    async def test_beat_connection_closed_propagates(self, monitor) -> None:
        # Arrange
        ws = MagicMock()
        ws.ping = AsyncMock(side_effect=ConnectionClosedError(None, None))
        driver = HeartbeatDriver(ws, monitor)

        # Act & Assert
        with pytest.raises(ConnectionClosedError):
            await driver.beat()
        assert monitor.pending_ping_count == 0

    @pytest.mark.asyncio
    async def test_loop_runs_until_stopped(self, monitor) -> None:
        # Arrange
        ws = MagicMock()
        loop = asyncio.get_running_loop()

        async def ping(data):
            pong = loop.create_future()
            pong.set_result(0.0)
            return pong

        ws.ping = AsyncMock(side_effect=ping)
        driver = HeartbeatDriver(ws, monitor, interval=0.01)

        # Act
        driver.start()
        await asyncio.sleep(0.1)
        await driver.stop()

        # Assert
        assert driver.is_running is False
        assert ws.ping.await_count >= 2
        assert len(monitor.get_latency_history()) >= 1

    @pytest.mark.asyncio
    async def test_loop_ends_on_connection_closed(self, monitor) -> None:
        # Arrange
        ws = MagicMock()
        ws.ping = AsyncMock(side_effect=ConnectionClosedError(None, None))
        driver = HeartbeatDriver(ws, monitor, interval=0.01)

        # Act
        driver.start()
        await asyncio.sleep(0.05)

        # Assert
        assert driver.is_running is False
        assert ws.ping.await_count == 1
        await driver.stop()
