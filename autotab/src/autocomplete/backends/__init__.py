"""Public re-export of the completion backends."""

from __future__ import annotations

# Base class ---------------------------------------------------------------

from .base import CompletionBackend, FIMRequest, apply_stop_tokens  # noqa: F401

# Concrete backends --------------------------------------------------------

from .static import StaticTextBackend, OracleBackend  # noqa: F401

__all__ = [
    "CompletionBackend",
    "FIMRequest",
    "apply_stop_tokens",
    "StaticTextBackend",
    "OracleBackend",
]
