"""Error taxonomy shared by every component.

Extraction misses are never errors. Everything else that can go wrong
surfaces as one of these.
"""

from __future__ import annotations

from typing import Any


class SignalBrainError(Exception):
    """Base class for all application errors."""


class ConfigurationError(SignalBrainError):
    """A required setting is missing or invalid. Raised before any network call."""


class ProviderError(SignalBrainError):
    """AI provider call failed (non-2xx response, network error, bad payload)."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.headers = headers or {}


class RateLimitError(ProviderError):
    """Provider answered HTTP 429."""


class PersistenceError(SignalBrainError):
    """A JSON store could not be read or written."""


class TransportError(SignalBrainError):
    """Telegram connect or send failed."""
