"""Configuration commands for the pods-schema CLI."""

from cyclopts import App

from pods_schema.config import DEFAULTS, get_config
from pods_schema.storages import STORAGE_TYPES

config_app = App(name="config", help="Manage configuration")


def _validate(key: str, value: str) -> None:
    """Reject values the schema commands could not use."""
    if key == "storage" and value not in STORAGE_TYPES:
        raise ValueError(f"Unknown storage type: {value} (expected one of {', '.join(STORAGE_TYPES)})")
    if key == "find_limit":
        try:
            int(value)
        except ValueError as e:
            raise ValueError(f"find_limit must be an integer, got {value!r}") from e


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration setting.

    Args:
        key: Configuration key (storage, find_limit, schema_files)
        value: Configuration value
        global_: If True, set in global config. If False, set in local config.
    """
    _validate(key, value)
    config = get_config(use_global=global_)
    config.set(key, int(value) if key == "find_limit" else value)
    print(f"Set {key} = {value} ({'global' if global_ else 'local'})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Unset a configuration setting, restoring its default."""
    config = get_config(use_global=global_)
    config.unset(key)
    print(f"Unset {key} ({'global' if global_ else 'local'})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Get the value of a configuration setting."""
    config = get_config(use_global=global_)
    value = config.get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {value}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """List configuration settings, including defaults for unset keys."""
    config = get_config(use_global=global_)
    settings = {**DEFAULTS, **config.list()}

    print("Global settings:\n" if global_ else "Configuration settings:\n")
    for key, value in settings.items():
        marker = "" if key in config.list() else " (default)"
        print(f"{key} = {value}{marker}")
