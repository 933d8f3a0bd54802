"""Exception types raised by the autocomplete engine.

Only :class:`ConfigurationError` is meant to escape to the caller; everything
else is caught at the :class:`~.service.AutocompleteService` boundary and
degrades to "no completion for this keystroke".
"""

from __future__ import annotations


class AutocompleteError(Exception):
    """Base class for all autocomplete errors."""


class ConfigurationError(AutocompleteError, ValueError):
    """Invalid settings detected at construction time."""


class RequestError(AutocompleteError):
    """A completion backend failed to produce text for a request."""

    def __init__(self, message: str, *, provider: str | None = None):
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message
