"""Custom pydantic-settings source for layered YAML configuration.

Configuration layers (in precedence order, highest first):
1. Environment variables (handled by pydantic-settings)
2. Project config: .skald/config.yaml in the project directory
3. User config: ~/.config/skald/config.yaml (or SKALD_CONFIG_DIR)

Nested mappings merge key by key; any other value in a higher layer
replaces the lower one.

Environment variables:
- SKALD_CONFIG_DIR: Override user config directory (default: ~/.config/skald)
"""

import collections.abc as _abc
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

# Environment variable for overriding user config directory
ENV_CONFIG_DIR = "SKALD_CONFIG_DIR"


class ConfigFileError(Exception):
    """Error loading or parsing a configuration file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")


def deep_merge(
    base: _abc.Mapping[str, _typing.Any],
    override: _abc.Mapping[str, _typing.Any],
) -> dict[str, _typing.Any]:
    """Merge ``override`` into ``base`` recursively, returning a new dict."""
    merged: dict[str, _typing.Any] = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, _abc.Mapping) and isinstance(value, _abc.Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def load_yaml_file(path: _pathlib.Path) -> dict[str, _typing.Any] | None:
    """
    Load a YAML file and return its contents as a dict.

    Returns:
        Parsed YAML contents, or None if the file is empty.

    Raises:
        ConfigFileError: If the file cannot be read, is malformed YAML,
            or contains non-dict content at the top level.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(path, f"cannot read file: {e}") from e

    try:
        parsed = _yaml.safe_load(content)
    except _yaml.YAMLError as e:
        raise ConfigFileError(path, f"invalid YAML: {e}") from e

    if parsed is None:
        return None

    if not isinstance(parsed, dict):
        raise ConfigFileError(
            path,
            f"config must be a YAML mapping (dict), got {type(parsed).__name__}",
        )

    return parsed


def get_user_config_path() -> _pathlib.Path:
    """
    Get the path to the user config file.

    Respects SKALD_CONFIG_DIR if set, otherwise uses the XDG standard path.
    """
    config_dir_env = _os.environ.get(ENV_CONFIG_DIR)
    if config_dir_env:
        return _pathlib.Path(config_dir_env) / "config.yaml"
    return _pathlib.Path.home() / ".config" / "skald" / "config.yaml"


def get_project_config_path(project_root: _pathlib.Path) -> _pathlib.Path:
    return project_root / ".skald" / "config.yaml"


class LayeredYamlSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that merges the user and project YAML files.

    Missing files are normal and skipped. Broken files raise
    ``ConfigFileError`` so mistakes surface at startup.
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        project_root: _pathlib.Path | None = None,
        *,
        user_config_path: _pathlib.Path | None = None,
    ) -> None:
        """
        Initialize the settings source.

        Args:
            settings_cls: The Settings class being populated.
            project_root: Directory holding .skald/config.yaml, if any.
            user_config_path: Override path for the user config file (for testing).
        """
        super().__init__(settings_cls)
        self._loaded_layers: list[tuple[str, _pathlib.Path]] = []
        self._data = self._load_layers(
            user_config_path or get_user_config_path(),
            get_project_config_path(project_root) if project_root else None,
        )

    def _load_layers(
        self,
        user_path: _pathlib.Path,
        project_path: _pathlib.Path | None,
    ) -> dict[str, _typing.Any]:
        merged: dict[str, _typing.Any] = {}
        for label, path in (("user", user_path), ("project", project_path)):
            if path is None or not path.exists():
                continue
            content = load_yaml_file(path)
            if content:
                merged = deep_merge(merged, content)
                self._loaded_layers.append((label, path))
        return merged

    def get_loaded_layers(self) -> list[tuple[str, _pathlib.Path]]:
        """Layers that contributed values, lowest precedence first."""
        return list(self._loaded_layers)

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,  # noqa: ARG002 - required by pydantic-settings interface
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        value = self._data.get(field_name)
        if value is None:
            return None, field_name, False
        return value, field_name, isinstance(value, (_abc.Mapping, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """Return the merged config as a plain dict for Pydantic validation."""
        return dict(self._data)
