"""CLI for pods-schema."""

from typing import Annotated, Any, Literal

import structlog
import yaml
from cyclopts import App, Parameter

from pods_schema.config import get_config
from pods_schema.config_commands import config_app
from pods_schema.models import Entity
from pods_schema.storage import Storage
from pods_schema.storages import FileStorage, get_storage
from pods_schema.store import Store

logger = structlog.get_logger()

app = App(
    help="Pods Schema - query pods, groups and fields defined in schema files",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def get_schema_storage(schema: str | None = None) -> Storage:
    """Load the schema files into a new store and return the configured storage.

    Args:
        schema: Comma separated schema files, overriding the configured ones
    """
    config = get_config()
    store = Store()

    loader = FileStorage(store)
    paths = _split(schema) or config.get_schema_files()
    for path in paths:
        loader.load_file(path)

    store.mark_initialized()
    logger.debug("Schema loaded", files=[str(p) for p in paths], objects=len(store))

    return get_storage(config.get("storage"), store, find_limit=config.get_find_limit())


def _print_object(entity: Entity) -> None:
    label = entity.get_label()
    suffix = f" ({label})" if label else ""
    print(f"{entity.get_identifier()}{suffix}")


@app.command
def find(
    object_type: str | None = None,
    parent: str | None = None,
    group: str | None = None,
    top_level: bool = False,
    name: str | None = None,
    filter: str | None = None,
    internal: bool | None = None,
    limit: int | None = None,
    schema: str | None = None,
) -> None:
    """Find objects by type, parent, group, name or argument values.

    Args:
        object_type: Comma separated object types
        parent: Parent identifier
        group: Group identifier
        top_level: Only objects without a parent
        name: Comma separated names
        filter: Comma separated key=value argument filters
        internal: Only internal (or only non-internal) objects
        limit: Maximum number of objects
        schema: Comma separated schema files
    """
    storage = get_schema_storage(schema)

    args: dict[str, Any] = {}
    object_types = _split(object_type)
    if object_types:
        args["object_type"] = object_types
    if top_level:
        args["parent"] = None
    elif parent:
        args["parent"] = parent
    if group:
        args["group"] = group
    if name:
        args["name"] = _split(name)
    if internal is not None:
        args["internal"] = internal
    if limit:
        args["limit"] = limit

    if filter:
        filters = {}
        for f in filter.split(","):
            if "=" in f:
                key, value = f.split("=", 1)
                filters[key.strip()] = value.strip()
        args["args"] = filters

    objects = storage.find(args)

    print(f"Found {len(objects)} object(s):\n")
    for entity in objects.values():
        _print_object(entity)


@app.command
def get(object_type: str, name: str, parent: str | None = None, schema: str | None = None) -> None:
    """Get one object by type and name."""
    storage = get_schema_storage(schema)

    args: dict[str, Any] = {"object_type": object_type, "name": name}
    if parent:
        args["parent"] = parent

    entity = storage.get(args)
    if entity is None:
        print(f"No {object_type} named {name}")
        return

    print(yaml.safe_dump(entity.to_persisted_form(), default_flow_style=False, sort_keys=False), end="")


@app.command
def show(identifier: str, schema: str | None = None) -> None:
    """Show an object by identifier or id."""
    storage = get_schema_storage(schema)

    entity = storage.store.get_object(identifier)
    if entity is None:
        print(f"Object {identifier} not found")
        return

    print(yaml.safe_dump(entity.to_persisted_form(), default_flow_style=False, sort_keys=False), end="")
    parent = entity.get_parent_label()
    if parent:
        print(f"# parent: {parent}")
    group = entity.get_group_label()
    if group:
        print(f"# group: {group}")


@app.command
def tree(schema: str | None = None) -> None:
    """Show every pod with its groups and fields."""
    storage = get_schema_storage(schema)

    for pod in storage.find({"object_type": "pod"}).values():
        _print_object(pod)

        for group in pod.get_groups():
            print(f"  {group.get_name()}/")
            for field in group.get_all_fields():
                print(f"    {field.get_name()}")

        for field in pod.get_all_fields():
            if not field.get_group():
                print(f"  {field.get_name()}")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
