"""Exception hierarchy for gateway, dispatcher, and poll-cycle failures."""

from __future__ import annotations


class WatcherError(Exception):
    """Base class for all btc_watcher errors."""


class ConfigError(WatcherError):
    """Invalid or inconsistent configuration."""


class GatewayError(WatcherError):
    """Transport failure or non-2xx response from the explorer API."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class UnknownOperationError(WatcherError):
    """The (resource, operation) pair has no entry in the operation table."""

    def __init__(self, resource: str, operation: str) -> None:
        super().__init__(f"Unknown operation '{operation}' for resource '{resource}'")
        self.resource = resource
        self.operation = operation


class ValidationError(WatcherError):
    """A parameter failed validation before any request was made."""


class ItemError(WatcherError):
    """A single dispatched item failed. Carries the failing item index."""

    def __init__(self, message: str, index: int) -> None:
        super().__init__(message)
        self.index = index

    def __str__(self) -> str:
        return f"{self.args[0]} [item {self.index}]"


class PollCycleError(WatcherError):
    """A poll cycle aborted. The cursor was not modified."""

    def __init__(self, message: str, trigger: str | None = None) -> None:
        super().__init__(message)
        self.trigger = trigger
