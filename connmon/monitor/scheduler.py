"""Periodic task scheduling for the monitor's session timer."""

import asyncio
import threading
from collections.abc import Callable
from typing import Protocol

import structlog

from connmon.core.logging import Logger

logger: Logger = structlog.get_logger()

TickCallback = Callable[[], None]


class ScheduledTask(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_every(self, interval: float, callback: TickCallback) -> ScheduledTask:
        """Invoke `callback` every `interval` seconds until the task is cancelled"""
        ...


class AsyncioPeriodicTask:
    """Periodic callback backed by an asyncio.Task on the running loop."""

    __slots__ = ("_task", "_cancelled")

    def __init__(self, interval: float, callback: TickCallback, name: str) -> None:
        self._cancelled = False
        self._task: asyncio.Task[None] = asyncio.get_running_loop().create_task(
            self._run(interval, callback),
            name=name,
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._task.cancel()

    async def _run(self, interval: float, callback: TickCallback) -> None:
        while not self._cancelled:
            await asyncio.sleep(interval)
            if self._cancelled:
                break

            try:
                callback()
            except Exception as e:
                logger.exception(f"Periodic callback error: {e}")


class AsyncioScheduler:
    """
    Schedules ticks on the event loop of the calling coroutine.

    `call_every` must be invoked from code running inside the loop, which
    is where transport callbacks execute.
    """

    __slots__ = ("_name",)

    def __init__(self, name: str = "connmon-tick") -> None:
        self._name = name

    def call_every(self, interval: float, callback: TickCallback) -> AsyncioPeriodicTask:
        return AsyncioPeriodicTask(interval, callback, self._name)


class ThreadPeriodicTask:
    """Periodic callback on a daemon thread."""

    __slots__ = ("_stop_event", "_thread")

    def __init__(self, interval: float, callback: TickCallback, name: str) -> None:
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(interval, callback),
            name=name,
            daemon=True,
        )
        self._thread.start()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def cancel(self) -> None:
        self._stop_event.set()

    def _run(self, interval: float, callback: TickCallback) -> None:
        # wait() returns True once cancelled
        while not self._stop_event.wait(interval):
            try:
                callback()
            except Exception as e:
                logger.exception(f"Periodic callback error: {e}")


class ThreadScheduler:
    __slots__ = ("_name",)

    def __init__(self, name: str = "connmon-tick") -> None:
        self._name = name

    def call_every(self, interval: float, callback: TickCallback) -> ThreadPeriodicTask:
        return ThreadPeriodicTask(interval, callback, self._name)


class AutoScheduler:
    """
    Picks the tick backend when the timer is armed.

    Ticks run as an asyncio task when called from inside a running event
    loop, and on a daemon thread otherwise, so arming never fails for lack
    of a loop.
    """

    __slots__ = ("_name",)

    def __init__(self, name: str = "connmon-tick") -> None:
        self._name = name

    def call_every(
        self, interval: float, callback: TickCallback
    ) -> AsyncioPeriodicTask | ThreadPeriodicTask:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return ThreadPeriodicTask(interval, callback, self._name)

        return AsyncioPeriodicTask(interval, callback, self._name)
