"""Exception types raised by connmon."""

from __future__ import annotations


class MonitorError(Exception):
    """Base exception for connection monitor errors."""

    pass


class MonitorNotFoundError(MonitorError):
    """Raised when a named monitor is not present in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No monitor registered for connection '{name}'")
        self.name = name


class MonitorExistsError(MonitorError):
    """Raised when registering a connection name that is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Monitor already registered for connection '{name}'")
        self.name = name
