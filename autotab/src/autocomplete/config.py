"""Settings for the inline autocomplete engine.

Defaults mirror the constants the engine was tuned with.  Settings can be
built directly, loaded from ``AUTOTAB_*`` environment variables, or decoded
from the editor's JSON settings blob::

    AUTOTAB_DEBOUNCE_MS=250 AUTOTAB_MAX_CACHE_SIZE=40 autotab-replay

Invalid values raise :class:`~.errors.ConfigurationError` at construction.
"""

from __future__ import annotations

import os
from typing import Any, Mapping

import msgspec

from .errors import ConfigurationError

ENV_PREFIX = "AUTOTAB_"


class AutocompleteConfig(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """Tunables for :class:`~.service.AutocompleteService`."""

    enabled: bool = True

    # timing
    debounce_ms: int = 500
    timeout_ms: int = 60_000
    accept_window_ms: int = 500

    # per-document bounds
    max_cache_size: int = 20
    max_pending_requests: int = 2

    # model context windows (in lines)
    max_prefix_lines: int = 25
    max_suffix_lines: int = 25

    # output shaping
    max_streamed_newlines: int = 10
    suffix_dedup_lines: int = 10
    suffix_dedup_score: float = 90.0

    include_related_context: bool = True

    def __post_init__(self) -> None:
        if self.max_cache_size <= 0:
            raise ConfigurationError("Cache size must be greater than 0")
        if self.max_pending_requests <= 0:
            raise ConfigurationError("max_pending_requests must be greater than 0")
        for name in ("debounce_ms", "timeout_ms", "accept_window_ms"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative")
        if self.timeout_ms == 0:
            raise ConfigurationError("timeout_ms must be greater than 0")
        if self.max_prefix_lines <= 0 or self.max_suffix_lines <= 0:
            raise ConfigurationError("context windows must hold at least one line")
        if not 0.0 <= self.suffix_dedup_score <= 100.0:
            raise ConfigurationError("suffix_dedup_score must be within [0, 100]")

    # ------------------------------------------------------------------
    # Convenience accessors (seconds, as used by asyncio)
    # ------------------------------------------------------------------
    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def accept_window_s(self) -> float:
        return self.accept_window_ms / 1000.0

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, strict: bool = True) -> "AutocompleteConfig":
        """Validate *data* (e.g. decoded editor settings) into a config."""

        try:
            return msgspec.convert(dict(data), type=cls, strict=strict)
        except msgspec.ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    @classmethod
    def from_json(cls, raw: bytes | str) -> "AutocompleteConfig":
        try:
            return msgspec.json.decode(raw, type=cls)
        except msgspec.DecodeError as exc:
            raise ConfigurationError(str(exc)) from exc

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AutocompleteConfig":
        """Load settings from ``AUTOTAB_<FIELD>`` variables.

        Unset variables keep their defaults; values are strings, so the
        conversion runs in non-strict mode (``"250"`` -> ``250``,
        ``"false"`` -> ``False``).
        """

        environ = os.environ if environ is None else environ
        data = {}
        for field in cls.__struct_fields__:
            raw = environ.get(ENV_PREFIX + field.upper())
            if raw is not None:
                data[field] = raw
        return cls.from_dict(data, strict=False)

    def to_dict(self) -> dict[str, Any]:
        return msgspec.to_builtins(self)


DEFAULT_CONFIG = AutocompleteConfig()
