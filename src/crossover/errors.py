"""Error types shared by the preference owner and the surface controllers.

Three families matter at runtime:

* validation errors, raised before a request leaves a surface;
* command errors, raised when a request to the preference owner fails;
* catalog errors, raised when a crosshair identifier or import is unusable.

None of them is fatal: callers log them and surface a notice.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "CrossoverError",
    "ValidationError",
    "CommandError",
    "CatalogError",
    "UnknownTopicError",
    "LockTransitionTimeout",
    "ShadowLimitError",
]


class CrossoverError(Exception):
    """Base class for every error raised by the overlay."""


class ValidationError(CrossoverError, ValueError):
    """Raised when user input is malformed and must not become a mutation.

    Attributes:
        field: The preference field the input was meant for.
        value: The rejected input.
    """

    def __init__(self, field: str, value: Any, message: str | None = None) -> None:
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid {field}: {value!r}")


class CommandError(CrossoverError):
    """Raised when a request to the preference owner fails.

    Attributes:
        operation: Name of the failed operation (e.g. ``"set_size"``).
        cause: The underlying exception, if any.
    """

    def __init__(self, operation: str, cause: BaseException | None = None, message: str | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = message or (str(cause) if cause is not None else "request failed")
        super().__init__(f"{operation} failed: {detail}")


class CatalogError(CrossoverError, LookupError):
    """Raised for unknown crosshair identifiers or unusable import files."""


class UnknownTopicError(CrossoverError, KeyError):
    """Raised when a wire-level notification names a topic nobody defined."""

    def __init__(self, topic: str) -> None:
        self.topic = topic
        super().__init__(topic)

    def __str__(self) -> str:
        return f"Unknown notification topic: {self.topic}"


class LockTransitionTimeout(CrossoverError, TimeoutError):
    """Raised when an expected lock notification never arrives."""


class ShadowLimitError(CrossoverError):
    """Raised when a shadow surface cannot be created."""
