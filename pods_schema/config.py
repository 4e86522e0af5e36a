"""Layered YAML settings for pods-schema.

Settings resolve through three layers, first hit wins:

1. the config file being edited (``./.pods-schema/config.yaml`` by default)
2. the user's global file (``~/.pods-schema/config.yaml``), unless editing it
3. built-in ``DEFAULTS``
"""

from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".pods-schema"
CONFIG_FILE_NAME = "config.yaml"

DEFAULTS: dict[str, Any] = {
    "storage": "collection",
    "find_limit": 300,
    "schema_files": "",
}


def _global_dir() -> Path:
    return Path.home() / CONFIG_DIR_NAME


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a settings file; a missing file reads as empty."""
    if not path.is_file():
        return {}

    with path.open() as handle:
        data = yaml.safe_load(handle)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(f"expected a mapping, got {type(data).__name__}")
    return data


class Config:
    """Settings backed by one editable YAML file plus the global fallback."""

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Open the settings for a scope.

        Args:
            use_global: Edit the global file and skip the global fallback layer
            config_dir: Directory holding the editable file, instead of the
                current or home directory
        """
        self.is_global = use_global
        if config_dir is None:
            config_dir = _global_dir() if use_global else Path.cwd() / CONFIG_DIR_NAME
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / CONFIG_FILE_NAME

        try:
            self._config = _read_yaml(self.config_file)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", config_file=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e

        self._fallback: dict[str, Any] = {}
        fallback_file = _global_dir() / CONFIG_FILE_NAME
        if not self.is_global and fallback_file != self.config_file:
            try:
                self._fallback = _read_yaml(fallback_file)
            except (OSError, yaml.YAMLError) as e:
                # A broken global file must not block local use.
                logger.warning("Ignoring unreadable global config", config_file=str(fallback_file), error=str(e))

        logger.debug("Loaded config", config_file=str(self.config_file), keys=sorted(self._config))

    def _layers(self) -> list[dict[str, Any]]:
        return [self._config, self._fallback]

    def get(self, key: str, default: Any = None) -> Any:
        """Resolve a setting.

        ``default`` wins over the built-in default, but not over a stored value.
        """
        for layer in self._layers():
            if key in layer:
                return layer[key]

        return DEFAULTS.get(key) if default is None else default

    def get_find_limit(self) -> int:
        value = self.get("find_limit")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid find_limit setting: {value!r}") from e

    def get_schema_files(self) -> list[Path]:
        """Schema file paths, from a list or a comma separated string."""
        value = self.get("schema_files") or []
        items = value.split(",") if isinstance(value, str) else value
        paths = (str(item).strip() for item in items)
        return [Path(path) for path in paths if path]

    def set(self, key: str, value: Any) -> None:
        self._config[key] = value
        self._write()
        logger.info("Config value set", key=key, config_file=str(self.config_file))

    def unset(self, key: str) -> None:
        if key not in self._config:
            return
        del self._config[key]
        self._write()
        logger.info("Config value removed", key=key, config_file=str(self.config_file))

    def list(self) -> dict[str, Any]:
        """Stored settings visible from this scope; the editable file overrides the global one."""
        merged: dict[str, Any] = {}
        for layer in reversed(self._layers()):
            merged.update(layer)
        return merged

    def _write(self) -> None:
        # The directory only appears once something is stored.
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with self.config_file.open("w") as handle:
                yaml.safe_dump(self._config, handle, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error("Failed to save config", config_file=str(self.config_file), error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e


def get_config(use_global: bool = False) -> Config:
    """Open the local settings (with global fallback), or the global ones."""
    return Config(use_global=use_global)
