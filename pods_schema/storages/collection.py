"""Collection storage: schema objects registered in the in-memory store."""

import json
from collections.abc import Mapping
from typing import Any

import structlog

from pods_schema.models import Entity
from pods_schema.storage import Storage
from pods_schema.store import Store

logger = structlog.get_logger()

DEFAULT_FIND_LIMIT = 300

REFERENCE_ARGS = ("parent", "group")

# Marks a reference argument that was not given at all.
_UNSET = object()


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset, Mapping))


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, Mapping):
        return list(value.values())
    if _is_list(value):
        return list(value)
    return [value]


def _stringify(value: Any) -> str:
    """Compare values the way the registry stores them: as strings."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, Entity):
        return value.get_identifier() or ""
    if _is_list(value):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _absint(value: Any) -> int:
    try:
        return abs(int(value))
    except (TypeError, ValueError):
        try:
            return abs(int(float(value)))
        except (TypeError, ValueError):
            return 0


def _unique(values: list[Any]) -> list[Any]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _clean_strings(value: Any) -> list[str]:
    """Trim, deduplicate and drop empty values from a filter value."""
    values = _unique([_stringify(v).strip() for v in _as_list(value)])
    return [v for v in values if v not in ("", "0")]


class CollectionStorage(Storage):
    """Storage backed by the object store, queried with in-memory filters."""

    storage_type = "collection"

    compatible_types = {
        "collection": "collection",
        "file": "file",
    }

    # Extra top-level find() arguments that filter on the object argument of the same name.
    secondary_args: tuple[str, ...] = ()

    def __init__(self, store: Store, find_limit: int | None = None) -> None:
        """Initialize collection storage.

        Args:
            store: Object store to register objects in and query
            find_limit: Default maximum number of objects returned by find()
        """
        super().__init__(store)
        self.find_limit = DEFAULT_FIND_LIMIT if find_limit is None else int(find_limit)
        self._find_cache: dict[str, dict[str, Entity]] = {}
        self._deleting: set[int] = set()
        logger.debug("Initialized storage", storage=self.storage_type, find_limit=self.find_limit)

    def get_label(self) -> str:
        return "Code"

    def get_find_limit(self) -> int:
        """Default result size for find() when the caller sets no limit."""
        return self.find_limit

    def get(self, args: dict[str, Any] | None = None) -> Entity | None:
        """Get one object by object type and name (or id)."""
        args = args or {}

        # Object type is required.
        if not args.get("object_type"):
            return None

        find_args: dict[str, Any] = {
            "object_type": args["object_type"],
            "limit": 1,
        }

        for ref in REFERENCE_ARGS:
            for key in (ref, f"{ref}_identifier", f"{ref}_id"):
                if key in args:
                    find_args[key] = args[key]

        if args.get("name"):
            find_args["name"] = args["name"]
        elif args.get("id"):
            return self._get_by_id(args["id"], find_args)
        else:
            return None

        objects = self.find(find_args)
        return next(iter(objects.values()), None)

    def _get_by_id(self, object_id: Any, find_args: dict[str, Any]) -> Entity | None:
        """Get the object owning an id, if it also matches the type and reference filters."""
        entity = self.store.get_object(object_id)
        if entity is None or _stringify(entity.get_id()) != _stringify(object_id).strip():
            return None

        find_args = self._prepare_find_args({**find_args, "limit": -1})
        if find_args is None:
            return None

        for candidate in self._filter_objects(find_args):
            if candidate is entity:
                return entity

        return None

    def _setup_reference_arg(self, args: dict[str, Any], ref: str) -> dict[str, Any]:
        """Normalize the alternative forms of a reference argument to identifiers."""
        identifier_key = f"{ref}_identifier"
        id_key = f"{ref}_id"

        if identifier_key in args:
            value = args.pop(identifier_key)
            if ref not in args:
                args[ref] = value

        if id_key in args:
            value = args.pop(id_key)
            if ref not in args:
                targets = [self.store.get_object(v) or v for v in _as_list(value)]
                args[ref] = targets if _is_list(value) else targets[0]

        if ref not in args:
            return args

        value = args[ref]
        if isinstance(value, Entity):
            args[ref] = value.get_identifier()
        elif _is_list(value):
            args[ref] = [v.get_identifier() if isinstance(v, Entity) else v for v in _as_list(value)]

        return args

    @staticmethod
    def _get_reference_value(args: dict[str, Any], ref: str) -> Any:
        if ref not in args:
            return _UNSET

        # An explicit None asks for objects without this reference.
        if args[ref] is None:
            return ""

        return args[ref]

    def _prepare_find_args(self, args: dict[str, Any] | None) -> dict[str, Any] | None:
        """Normalize find() arguments, or return None when the query is not allowed."""
        args = dict(args or {})

        filters = args.get("args") or {}
        args["args"] = dict(filters) if isinstance(filters, Mapping) else {}

        for ref in REFERENCE_ARGS:
            args = self._setup_reference_arg(args, ref)
            value = self._get_reference_value(args, ref)

            if value is _UNSET:
                continue

            args["args"][ref] = value

        # Object type OR parent is required.
        if not args.get("object_type") and not args.get("parent"):
            return None

        if not args.get("limit"):
            args["limit"] = self.get_find_limit()

        for arg in self.secondary_args:
            if arg not in args:
                continue
            args["args"][arg] = args[arg]

        return args

    def find(self, args: dict[str, Any] | None = None) -> dict[str, Entity]:
        """Find registered objects.

        Args:
            args: Query arguments. ``object_type`` (str or list) or ``parent`` is
                required. Optional: ``parent``/``group`` (value, list, Entity or
                None for "no reference"), ``args`` (per-argument filters), ``id``,
                ``name``, ``internal`` and ``limit``.

        Returns:
            Matching objects keyed by name, in store order
        """
        args = self._prepare_find_args(args)
        if args is None:
            return {}

        cache_key = json.dumps(args, sort_keys=True, default=str)

        use_cache = self.store.initialized

        if use_cache and cache_key in self._find_cache:
            logger.debug("Find cache hit", storage=self.storage_type)
            return dict(self._find_cache[cache_key])

        objects = self._filter_objects(args)

        found = {}
        for entity in objects:
            found[_stringify(entity.get_arg("name"))] = entity

        if use_cache:
            self._find_cache[cache_key] = found

        logger.debug("Found objects", storage=self.storage_type, count=len(found))
        return dict(found)

    def _filter_objects(self, args: dict[str, Any]) -> list[Entity]:
        """Apply the query filters to a snapshot of the compatible objects."""
        objects = list(self.store.get_objects(self.compatible_types).values())

        if not objects:
            return []

        if args.get("object_type"):
            object_types = _as_list(args["object_type"])
            objects = [o for o in objects if o.get_object_type() in object_types]

            if not objects:
                return []

        for arg, value in args["args"].items():
            if value is None:
                objects = [o for o in objects if o.get_arg(arg) is None]
            elif not _is_list(value):
                expected = _stringify(value).strip()
                objects = [o for o in objects if _stringify(o.get_arg(arg)) == expected]
            else:
                expected_values = _clean_strings(value)
                if not expected_values:
                    continue
                # TODO: compare structured argument values structurally instead of by their JSON text.
                objects = [o for o in objects if _stringify(o.get_arg(arg)) in expected_values]

            if not objects:
                return []

        if args.get("id"):
            ids = [i for i in _unique([_absint(v) for v in _as_list(args["id"])]) if i]

            # Ids that are not positive integers match nothing.
            if not ids:
                return []

            objects = [o for o in objects if o.get_id() and _absint(o.get_id()) in ids]

            if not objects:
                return []

        if args.get("name"):
            names = _clean_strings(args["name"])

            if names:
                objects = [o for o in objects if _stringify(o.get_arg("name")) in names]

                if not objects:
                    return []

        if args.get("internal") is not None:
            internal = bool(args["internal"])
            objects = [o for o in objects if bool(o.get_arg("internal")) is internal]

        try:
            limit = int(args.get("limit") or 0)
        except (TypeError, ValueError):
            limit = 0

        # A negative limit means no limit.
        if limit > 0:
            objects = objects[:limit]

        return objects

    def clear_cache(self) -> None:
        self._find_cache.clear()

    def save_object(self, entity: Entity) -> bool:
        """Tag the object with this storage type and register it."""
        if not entity.get_arg("object_storage_type"):
            entity.set_arg("object_storage_type", self.get_object_storage_type())

        self.store.register_object(entity)
        self.clear_cache()
        return True

    def delete_object(self, entity: Entity) -> bool:
        """Delete the object's fields and groups, then unregister the object."""
        # Objects already being deleted further up the cascade.
        if id(entity) in self._deleting:
            return True

        self._deleting.add(id(entity))
        try:
            for child in entity.get_all_fields() + entity.get_groups():
                self.delete(child)
        finally:
            self._deleting.discard(id(entity))

        self.store.unregister_object(entity)
        entity.set_arg("id", None)
        self.clear_cache()
        return True

    def save_args(self, entity: Entity) -> bool:
        # Arguments live on the registered object itself.
        return True
