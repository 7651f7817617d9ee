"""Tests for the monitored websocket session."""

from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError

from connmon.session import MonitoredSession


class FakeWebsocket:
    """Async-iterable stand-in for a websockets ClientConnection."""

    def __init__(self, messages: list, error: Exception | None = None) -> None:
        self._messages = list(messages)
        self._error = error
        self.send = AsyncMock()
        self.close = AsyncMock()
        self.ping = AsyncMock()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self._messages:
            yield message
        if self._error is not None:
            raise self._error


def fake_connect(*steps, before_yield=None):
    """Yield each websocket in turn; exceptions are fed to process_exception
    the way the websockets client does for failed connect retries."""

    def _connect(url, process_exception=None, **kwargs):
        async def _iterate():
            for step in steps:
                if isinstance(step, Exception):
                    fatal = process_exception(step)
                    if fatal is not None:
                        raise fatal
                    continue
                if before_yield is not None:
                    before_yield()
                yield step

        return _iterate()

    return _connect


class TestMonitoredSession:
    @pytest.mark.asyncio
    async def test_send_requires_connection(self, monitor) -> None:
        session = MonitoredSession("ws://test", monitor)

        with pytest.raises(RuntimeError, match="not connected"):
            await session.send("hello")

    @pytest.mark.asyncio
    async def test_send_records_message(self, monitor) -> None:
        # Arrange
        session = MonitoredSession("ws://test", monitor)
        ws = FakeWebsocket([])
        session._ws = ws

        # Act
        await session.send("hello")

        # Assert
        ws.send.assert_awaited_once_with("hello")
        assert monitor.get_metrics().messages_sent == 1

    @pytest.mark.asyncio
    async def test_receive_counts_and_forwards(self, monitor) -> None:
        # Arrange
        callback = AsyncMock()
        session = MonitoredSession("ws://test", monitor, on_message=callback)

        # Act
        await session._receive_messages(FakeWebsocket(["a", b"b"]))

        # Assert
        assert monitor.get_metrics().messages_received == 2
        assert callback.await_count == 2
        callback.assert_awaited_with("test", b"b")

    @pytest.mark.asyncio
    async def test_callback_errors_are_contained(self, monitor) -> None:
        # Arrange
        callback = AsyncMock(side_effect=ValueError("bad payload"))
        session = MonitoredSession("ws://test", monitor, on_message=callback)

        # Act
        await session._receive_messages(FakeWebsocket(["a", "b"]))

        # Assert
        assert monitor.get_metrics().messages_received == 2

    @pytest.mark.asyncio
    async def test_connection_loop_reports_lifecycle(self, monitor) -> None:
        # Arrange
        dropped = FakeWebsocket(
            ["m1", "m2"], error=ConnectionClosedError(None, None)
        )
        clean = FakeWebsocket(["m3"])
        session = MonitoredSession("ws://test", monitor, heartbeat_interval=60.0)

        # Act
        with patch("connmon.session.connect", fake_connect(dropped, clean)):
            await session._connection_loop()

        # Assert
        metrics = monitor.get_metrics()
        assert metrics.messages_received == 3
        assert metrics.total_reconnects == 1
        assert metrics.reconnect_attempts == 1
        assert metrics.is_connected is False
        assert metrics.last_error is not None
        assert metrics.last_error.startswith("Connection closed")
        dropped.close.assert_awaited_once()
        clean.close.assert_awaited_once()
        assert session.is_connected is False

    @pytest.mark.asyncio
    async def test_first_connection_starts_monitoring(self, monitor, scheduler) -> None:
        # Arrange
        session = MonitoredSession("ws://test", monitor, heartbeat_interval=60.0)
        ws = FakeWebsocket([])

        # Act
        session._on_connected(ws)

        # Assert
        metrics = monitor.get_metrics()
        assert metrics.is_connected is True
        assert metrics.total_reconnects == 0
        assert session.is_connected is True
        assert len(scheduler.active_tasks) == 1

        await session._teardown_connection()
        ws.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_disconnects_monitor(self, monitor) -> None:
        # Arrange
        session = MonitoredSession("ws://test", monitor, heartbeat_interval=60.0)
        session._on_connected(FakeWebsocket([]))

        # Act
        await session.stop()

        # Assert
        assert monitor.get_metrics().is_connected is False
        assert session.is_connected is False

    @pytest.mark.asyncio
    async def test_failed_retries_count_as_attempts(self, monitor) -> None:
        # Arrange
        dropped = FakeWebsocket([], error=ConnectionClosedError(None, None))
        recovered = FakeWebsocket([])
        attempts_at_connect = []
        session = MonitoredSession("ws://test", monitor, heartbeat_interval=60.0)

        connect = fake_connect(
            dropped,
            ConnectionRefusedError("refused"),
            OSError("unreachable"),
            recovered,
            before_yield=lambda: attempts_at_connect.append(
                monitor.get_metrics().reconnect_attempts
            ),
        )

        # Act
        with patch("connmon.session.connect", connect):
            await session._connection_loop()

        # Assert - one attempt for the drop, one per failed retry
        assert attempts_at_connect == [0, 3]
        assert monitor.get_metrics().total_reconnects == 1

    def test_connect_failure_defers_to_library_policy(self, monitor) -> None:
        # Arrange
        session = MonitoredSession("ws://test", monitor)

        # Act
        retry = session._on_connect_failure(OSError("unreachable"))
        fatal = session._on_connect_failure(ValueError("bad config"))

        # Assert
        assert retry is None
        assert isinstance(fatal, ValueError)
        assert monitor.get_metrics().reconnect_attempts == 2
