"""Schema object models: pods, groups, fields and friends."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
import yaml

if TYPE_CHECKING:
    from pods_schema.store import Store

logger = structlog.get_logger()

RESERVED_ARGS = (
    "object_type",
    "fields",
    "options",
    "name",
    "id",
    "parent",
    "group",
    "label",
    "description",
)

READ_ONLY_ARGS = ("object_type", "fields", "options")

DELEGATED_ATTRIBUTES = (
    "identifier",
    "object_type",
    "name",
    "id",
    "parent",
    "group",
    "label",
    "description",
)

REFERENCE_PREFIXES = ("parent", "group")


def _is_empty_value(value: Any) -> bool:
    """Whether a reserved value normalizes to an empty string."""
    if value is None:
        return True
    if type(value) is int and value == 0:
        return True
    return isinstance(value, str) and value == "0"


@dataclass
class Record:
    """An external record an entity can be loaded from (a CMS post or similar)."""

    id: int | str
    name: str
    title: str = ""
    content: str = ""
    parent_id: int | str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


class Entity:
    """A schema object identified by ``object_type[/parent]/name``.

    Arguments live in a plain mapping. Reserved arguments are normalized on
    write and ``object_type`` always comes from the class, so an entity built
    from any source has the same shape.
    """

    object_type = "object"

    def __init__(self, args: dict[str, Any] | None = None, store: Store | None = None) -> None:
        """Initialize the entity.

        Args:
            args: Object arguments (name, id, label, description, parent, group, ...)
            store: Registry used to resolve parent and group references
        """
        self.store = store
        self._args: dict[str, Any] = {"object_type": self.object_type}
        self.setup(args or {})

    def setup(self, args: dict[str, Any] | None = None) -> None:
        """Set up the entity from arguments, or rebuild it from its current ones."""
        if not args:
            args = self.get_args()

        defaults = {
            "object_type": self.object_type,
            "name": "",
            "id": "",
            "parent": "",
            "group": "",
            "label": "",
            "description": "",
        }

        merged = {**defaults, **args}

        self._args = defaults
        for arg, value in merged.items():
            self.set_arg(arg, value)

    @classmethod
    def _resolve(
        cls, args: dict[str, Any], store: Store | None, to_args: bool
    ) -> Entity | dict[str, Any]:
        """Return the registered object for ``args['id']`` or build a new one."""
        if args.get("id") and store is not None:
            existing = store.get_object(args["id"])
            if existing is not None:
                logger.debug("Reusing registered object", identifier=existing.get_identifier())
                return existing.get_args() if to_args else existing

        entity = cls(args, store=store)
        return entity.get_args() if to_args else entity

    @classmethod
    def from_serialized(
        cls, serialized: Any, store: Store | None = None, to_args: bool = False
    ) -> Entity | dict[str, Any] | None:
        """Set up an entity from a serialized (YAML) document.

        Args:
            serialized: Output of ``serialize()``, or an entity that is already built
            store: Registry to attach to and look up existing objects in
            to_args: Return the argument mapping instead of the entity

        Returns:
            Entity, argument mapping, or None if the payload is not an object
        """
        if isinstance(serialized, Entity):
            return serialized.get_args() if to_args else serialized

        data = serialized
        if isinstance(serialized, (str, bytes)):
            try:
                data = yaml.safe_load(serialized)
            except yaml.YAMLError as e:
                logger.debug("Failed to parse serialized object", error=str(e))
                return None

        if not isinstance(data, dict):
            return None

        return cls._resolve(data, store, to_args)

    @classmethod
    def from_json(
        cls, payload: str | bytes, store: Store | None = None, to_args: bool = False
    ) -> Entity | dict[str, Any] | None:
        """Set up an entity from a JSON string."""
        try:
            args = json.loads(payload)
        except (TypeError, ValueError) as e:
            logger.debug("Failed to parse object JSON", error=str(e))
            return None

        if not isinstance(args, dict):
            return None

        return cls._resolve(args, store, to_args)

    @classmethod
    def from_array(
        cls, array: dict[str, Any], store: Store | None = None, to_args: bool = False
    ) -> Entity | dict[str, Any] | None:
        """Set up an entity from an argument mapping."""
        if not isinstance(array, dict):
            return None

        return cls._resolve(array, store, to_args)

    @classmethod
    def from_external_record(
        cls, record: Record | None, store: Store | None = None, to_args: bool = False
    ) -> Entity | dict[str, Any] | None:
        """Set up an entity from an external record.

        The record's parent and ``group`` meta value become references.
        """
        if record is None or not record.id:
            return None

        if store is not None:
            existing = store.get_object(record.id)
            if existing is not None:
                return existing.get_args() if to_args else existing

        args: dict[str, Any] = {
            "name": record.name,
            "id": record.id,
            "label": record.title,
            "description": record.content,
            "parent": "",
            "group": "",
        }

        if record.parent_id:
            args["parent"] = record.parent_id

        group = record.meta.get("group")
        if group is not None and len(str(group)) > 0:
            args["group"] = group

        entity = cls(args, store=store)
        return entity.get_args() if to_args else entity

    @classmethod
    def from_persisted_form(cls, data: dict[str, Any], store: Store | None = None) -> Entity:
        """Rebuild an entity from ``to_persisted_form()`` output."""
        entity = cls.__new__(cls)
        entity.store = store
        entity._args = dict(data)
        entity._args["object_type"] = cls.object_type
        entity.setup()
        return entity

    def to_persisted_form(self) -> dict[str, Any]:
        """Return the argument mapping to persist."""
        return self.get_args()

    def to_json(self) -> str:
        return json.dumps(self.to_persisted_form())

    def serialize(self) -> str:
        return yaml.safe_dump(self.to_persisted_form(), default_flow_style=False, sort_keys=False)

    def get_arg(self, arg: str) -> Any:
        """Get an argument value, or None if it is not set."""
        return self._args.get(str(arg))

    def set_arg(self, arg: str, value: Any) -> None:
        """Set an argument value.

        Read-only reserved arguments are ignored. Other reserved arguments are
        trimmed and empty-like values (None, 0, "0") become "".
        """
        arg = str(arg)

        if arg in RESERVED_ARGS:
            if arg in READ_ONLY_ARGS:
                return

            if isinstance(value, str):
                value = value.strip()

            if _is_empty_value(value):
                value = ""

        self._args[arg] = value

    def get_args(self) -> dict[str, Any]:
        return dict(self._args)

    def is_valid(self) -> bool:
        return bool(self.get_name())

    @staticmethod
    def get_identifier_from_args(args: dict[str, Any]) -> str | None:
        """Build an identifier from object arguments.

        Returns:
            ``object_type[/parent][/name]``, or None without an object type
        """
        if not args.get("object_type"):
            return None

        parts = [str(args["object_type"])]

        parent = args.get("parent")
        if parent is not None and len(str(parent)) > 0:
            parts.append(str(parent))

        name = args.get("name")
        if name is not None and len(str(name)) > 0:
            parts.append(str(name))

        return "/".join(parts)

    def get_identifier(self) -> str | None:
        return self.get_identifier_from_args(self._args)

    def _get_supported(self, arg: str) -> Any:
        value = self.get_arg(arg)
        return value if value else None

    def get_object_type(self) -> str:
        return self._args["object_type"]

    def get_name(self) -> str | None:
        return self._get_supported("name")

    def get_id(self) -> int | str | None:
        return self._get_supported("id")

    def get_parent(self) -> int | str | None:
        return self._get_supported("parent")

    def get_group(self) -> int | str | None:
        return self._get_supported("group")

    def get_label(self) -> str | None:
        return self._get_supported("label")

    def get_description(self) -> str | None:
        return self._get_supported("description")

    def get_parent_object(self) -> Entity | None:
        """Resolve the parent reference through the registry."""
        parent = self.get_parent()
        if not parent or self.store is None:
            return None

        return self.store.get_object(parent)

    def get_group_object(self) -> Entity | None:
        """Resolve the group reference and store its canonical identifier."""
        group = self.get_group()
        if not group or self.store is None:
            return None

        found = self.store.get_object(group)

        # A bare group name is scoped to this object's parent.
        if found is None and "/" not in str(group) and self.get_parent():
            found = self.store.get_object(f"group/{self.get_parent()}/{group}")

        if found is not None:
            self.set_arg("group", found.get_identifier())

        return found

    def resolve_delegated_attribute(self, prefix: str, attribute_name: str) -> Any:
        """Read an attribute from the referenced parent or group object.

        Args:
            prefix: Which reference to follow ("parent" or "group")
            attribute_name: Attribute to read from the referenced object

        Returns:
            Attribute value, or None when the reference does not resolve

        Raises:
            ValueError: If prefix or attribute_name is not supported
        """
        if prefix not in REFERENCE_PREFIXES:
            raise ValueError(f"Unsupported reference: {prefix}")
        if attribute_name not in DELEGATED_ATTRIBUTES:
            raise ValueError(f"Unsupported delegated attribute: {attribute_name}")

        target = self.get_parent_object() if prefix == "parent" else self.get_group_object()
        if target is None:
            return None

        return getattr(target, f"get_{attribute_name}")()

    def get_parent_identifier(self) -> str | None:
        return self.resolve_delegated_attribute("parent", "identifier")

    def get_parent_object_type(self) -> str | None:
        return self.resolve_delegated_attribute("parent", "object_type")

    def get_parent_name(self) -> str | None:
        return self.resolve_delegated_attribute("parent", "name")

    def get_parent_id(self) -> int | str | None:
        return self.resolve_delegated_attribute("parent", "id")

    def get_parent_label(self) -> str | None:
        return self.resolve_delegated_attribute("parent", "label")

    def get_group_identifier(self) -> str | None:
        return self.resolve_delegated_attribute("group", "identifier")

    def get_group_object_type(self) -> str | None:
        return self.resolve_delegated_attribute("group", "object_type")

    def get_group_name(self) -> str | None:
        return self.resolve_delegated_attribute("group", "name")

    def get_group_id(self) -> int | str | None:
        return self.resolve_delegated_attribute("group", "id")

    def get_group_label(self) -> str | None:
        return self.resolve_delegated_attribute("group", "label")

    def get_all_fields(self) -> list[Entity]:
        """Get the fields whose parent is this object."""
        if self.store is None:
            return []
        return self.store.get_children(self, ["field"])

    def get_groups(self) -> list[Entity]:
        """Get the groups whose parent is this object."""
        if self.store is None:
            return []
        return self.store.get_children(self, ["group"])

    def __contains__(self, arg: str) -> bool:
        return self.get_arg(arg) is not None

    def __getitem__(self, arg: str) -> Any:
        return self.get_arg(arg)

    def __setitem__(self, arg: str, value: Any) -> None:
        self.set_arg(arg, value)

    def __delitem__(self, arg: str) -> None:
        self.set_arg(arg, None)

    def __str__(self) -> str:
        return self.get_identifier() or ""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.get_identifier()!r}>"


class Pod(Entity):
    """A custom content type."""

    object_type = "pod"


class Group(Entity):
    """A group of fields shown together on a pod."""

    object_type = "group"

    def get_all_fields(self) -> list[Entity]:
        """Get the fields assigned to this group."""
        if self.store is None:
            return []
        return self.store.get_children(self, ["field"], reference="group")

    def get_groups(self) -> list[Entity]:
        return []


class Field(Entity):
    object_type = "field"


class Template(Entity):
    object_type = "template"


class Page(Entity):
    object_type = "page"


OBJECT_TYPES: dict[str, type[Entity]] = {
    "object": Entity,
    "pod": Pod,
    "group": Group,
    "field": Field,
    "template": Template,
    "page": Page,
}


def entity_class_for(object_type: str) -> type[Entity]:
    """Get the entity class for an object type, falling back to Entity."""
    return OBJECT_TYPES.get(object_type, Entity)
