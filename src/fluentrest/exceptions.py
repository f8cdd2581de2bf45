"""Library-specific exceptions.

Transport, codec and validation failures are not wrapped: they surface as the
httpx, json/msgpack or pydantic exceptions raised by those libraries.
"""

from __future__ import annotations


class FluentRestError(Exception):
    """Base exception for failures raised by fluentrest itself."""

    def __init__(self, message: str, *, client_name: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.client_name = client_name
        self.cause = cause

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        if self.client_name is None:
            return str(self.args[0])
        return f"[{self.client_name}] {self.args[0]}"


class ClientConfigurationError(FluentRestError, ValueError):
    """Raised when a named HTTP client is registered with invalid settings."""


class FactoryClosedError(FluentRestError):
    """Raised when a closed factory or a released transport handle is used."""
