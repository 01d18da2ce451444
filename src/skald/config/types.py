"""Configuration type definitions for Skald settings.

This module defines the Pydantic models used to represent configuration
sections nested within the main Settings class:

- ModelsConfig: default and fallback model
- FastPathConfig: turn limits handed to the engine (immutable)
- CacheConfig: context cache thresholds
- LoggingConfig: turn log settings

All types use `extra="allow"` so unknown keys are preserved and can be
audited with `get_extra_fields()`.
"""

import typing as _typing

import pydantic as _pydantic

import skald.constants as _constants


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    Unknown fields are preserved rather than silently dropped so typos
    can be found.
    """

    model_config = _pydantic.ConfigDict(extra="allow")

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Return fields that were provided but are not in the schema."""
        return dict(self.model_extra) if self.model_extra else {}


class ModelsConfig(ConfigBase):
    """
    Model selection.

    YAML section: models.*
    """

    default: str = _constants.DEFAULT_MODEL
    """Model used when a group has no override (or the override is "auto")."""

    fallback: str = _constants.FALLBACK_MODEL
    """Model retried once when the requested one is not found."""


class FastPathConfig(ConfigBase):
    """
    Turn limits for the fast path engine.

    YAML section: fast_path.*

    Frozen: the engine receives one instance at construction and never
    sees it change.
    """

    model_config = _pydantic.ConfigDict(frozen=True)

    enabled: bool = True
    """Global switch. When false no request is eligible."""

    timeout_ms: int = _pydantic.Field(default=_constants.DEFAULT_TIMEOUT_MS, ge=1)
    """Deadline for a whole turn."""

    streaming_interval_ms: int = _pydantic.Field(
        default=_constants.DEFAULT_STREAMING_INTERVAL_MS, ge=0
    )
    """Minimum spacing between throttled progress events."""

    max_calls_per_turn: int = _pydantic.Field(
        default=_constants.DEFAULT_MAX_CALLS_PER_TURN, ge=1
    )
    """Maximum function calls executed per round."""

    max_tool_rounds: int = _pydantic.Field(default=_constants.DEFAULT_MAX_TOOL_ROUNDS, ge=1)
    """Maximum model calls per turn."""

    max_history_messages: int = _pydantic.Field(
        default=_constants.DEFAULT_MAX_HISTORY_MESSAGES, ge=0
    )
    """Maximum prior messages sent with a turn."""

    knowledge_max_chars: int = _pydantic.Field(
        default=_constants.DEFAULT_KNOWLEDGE_MAX_CHARS, ge=0
    )
    """Knowledge text is truncated to this length before injection."""

    notify_dropped_calls: bool = True
    """Answer calls dropped from a mixed batch with an explicit 'skipped' response."""


class CacheConfig(ConfigBase):
    """
    Context cache settings.

    YAML section: cache.*
    """

    ttl_seconds: int = _pydantic.Field(default=_constants.DEFAULT_CACHE_TTL_SECONDS, ge=1)
    min_cache_chars: int = _pydantic.Field(default=_constants.DEFAULT_MIN_CACHE_CHARS, ge=0)


class LoggingConfig(ConfigBase):
    """
    Logging settings.

    YAML section: logging.*
    """

    enabled: bool = False
    """Write a JSONL turn log."""

    dir: str | None = None
    """Log directory. None = use default."""

    level: _typing.Literal["debug", "info", "warning", "error"] = "info"
    """Log level for the standard library loggers."""

    private: bool = True
    """Lock log directory to owner-only (drwx------)."""
