"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with SKALD_ prefix
3. .env file (if SKALD_ENV_FILE points at one)
4. Layered YAML config files:
   - Project config: .skald/config.yaml (highest)
   - User config: ~/.config/skald/config.yaml

Nested config uses double underscore delimiter:
  SKALD_FAST_PATH__TIMEOUT_MS=60000
  SKALD_FAST_PATH__ENABLED=false
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import skald.config.sources as sources
import skald.config.types as types
import skald.constants as _constants


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    Only an explicit SKALD_ENV_FILE is honoured. If it is set but the file
    does not exist, nothing is loaded rather than falling back silently.
    """
    if env_file := _os.environ.get("SKALD_ENV_FILE"):
        if _pathlib.Path(env_file).exists():
            return env_file
    return None


class Settings(_pydantic_settings.BaseSettings):
    """
    Skald configuration settings.

    All settings can be overridden via environment variables with SKALD_ prefix.
    For nested config, use double underscore: SKALD_FAST_PATH__MAX_TOOL_ROUNDS=2
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="SKALD_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # SKALD_FAST_PATH__TIMEOUT_MS
        extra="allow",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args), highest
        2. env_settings (SKALD_* env vars)
        3. dotenv_settings (.env file)
        4. YAML layers (project over user)
        5. (defaults via Field definitions), lowest
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            sources.LayeredYamlSettingsSource(settings_cls, _pathlib.Path.cwd()),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env file.

        Useful for test isolation and CI environments.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    # =========================================================================
    # Nested config sections
    # =========================================================================

    models: types.ModelsConfig = _pydantic.Field(default_factory=types.ModelsConfig)
    """Model configuration."""

    fast_path: types.FastPathConfig = _pydantic.Field(default_factory=types.FastPathConfig)
    """Turn limits handed to the engine."""

    cache: types.CacheConfig = _pydantic.Field(default_factory=types.CacheConfig)
    """Context cache thresholds."""

    logging: types.LoggingConfig = _pydantic.Field(default_factory=types.LoggingConfig)
    """Logging settings."""

    # =========================================================================
    # Flat fields
    # =========================================================================

    # API key (loaded from env without SKALD_ prefix for compatibility)
    gemini_api_key: str | None = _pydantic.Field(
        default=None,
        description="Gemini API key",
        validation_alias=_pydantic.AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )

    gemini_base_url: str = _pydantic.Field(
        default=_constants.DEFAULT_GEMINI_BASE_URL,
        description="Gemini REST API base URL",
    )

    # =========================================================================
    # Convenience accessors
    # =========================================================================

    @property
    def model(self) -> str:
        """Default model (alias to models.default)."""
        return self.models.default

    def get_api_key(self) -> str | None:
        return self.gemini_api_key

    def get_log_dir(self) -> _pathlib.Path:
        """Directory for turn logs."""
        if self.logging.dir:
            return _pathlib.Path(self.logging.dir).expanduser()
        return _pathlib.Path.home() / ".cache" / "skald" / "logs"
