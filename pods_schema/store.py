"""Object registry shared by storage adapters and entities."""

from collections.abc import Iterable, Mapping

import structlog

from pods_schema.models import Entity

logger = structlog.get_logger()


class Store:
    """Registry of live schema objects keyed by identifier.

    A store is created by the host application for one request (or one CLI
    run) and handed to every storage adapter and entity that needs it. It
    also carries the host's "initialization complete" signal, which gates
    query caching in the adapters.
    """

    def __init__(self) -> None:
        self._objects: dict[str, Entity] = {}
        # id -> identifier
        self._ids: dict[str, str] = {}
        # identifier -> id key, so an entry can be dropped without scanning _ids
        self._id_keys: dict[str, str] = {}
        # id(entity) -> identifier it is registered at
        self._identifiers: dict[int, str] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def mark_initialized(self) -> None:
        """Signal that the host finished bootstrapping and the registry is populated."""
        self._initialized = True
        logger.debug("Store initialized", objects=len(self._objects))

    def register_object(self, entity: Entity) -> None:
        """Register an object at its identifier, replacing any previous entry."""
        identifier = entity.get_identifier()
        if identifier is None:
            logger.debug("Skipping object without identifier")
            return

        # Drop the stale key left behind when a registered object was renamed.
        previous = self._identifiers.get(id(entity))
        if previous is not None and previous != identifier:
            self._forget(previous)

        # Replacing another object at this identifier also drops its id.
        occupant = self._objects.get(identifier)
        if occupant is not None and occupant is not entity:
            self._identifiers.pop(id(occupant), None)
        self._forget_id(identifier)

        if entity.store is None:
            entity.store = self

        self._objects[identifier] = entity
        self._identifiers[id(entity)] = identifier

        entity_id = entity.get_id()
        if entity_id:
            id_key = str(entity_id)
            stale = self._ids.get(id_key)
            if stale is not None and stale != identifier:
                self._id_keys.pop(stale, None)
            self._ids[id_key] = identifier
            self._id_keys[identifier] = id_key

        logger.debug("Registered object", identifier=identifier, id=entity_id)

    def unregister_object(self, entity: Entity) -> None:
        """Remove the registry entry for an object."""
        identifier = entity.get_identifier()
        if identifier is None or self._objects.get(identifier) is not entity:
            identifier = self._identifiers.get(id(entity))
        if identifier is None or identifier not in self._objects:
            return

        self._forget(identifier)
        logger.debug("Unregistered object", identifier=identifier)

    def _forget(self, identifier: str) -> None:
        entity = self._objects.pop(identifier, None)
        if entity is not None and self._identifiers.get(id(entity)) == identifier:
            del self._identifiers[id(entity)]

        self._forget_id(identifier)

    def _forget_id(self, identifier: str) -> None:
        id_key = self._id_keys.pop(identifier, None)
        if id_key is not None and self._ids.get(id_key) == identifier:
            del self._ids[id_key]

    def get_object(self, identifier: int | str) -> Entity | None:
        """Get an object by identifier or by id."""
        key = str(identifier)

        if key in self._objects:
            return self._objects[key]

        mapped = self._ids.get(key)
        if mapped is not None:
            return self._objects.get(mapped)

        return None

    def get_objects(self, compatible_types: Mapping[str, str] | None = None) -> dict[str, Entity]:
        """Get registered objects whose storage type is compatible.

        Args:
            compatible_types: Storage type table of the asking adapter; None returns everything

        Returns:
            Mapping of identifier to object, in registration order
        """
        if compatible_types is None:
            return dict(self._objects)

        return {
            identifier: entity
            for identifier, entity in self._objects.items()
            if not entity.get_arg("object_storage_type")
            or entity.get_arg("object_storage_type") in compatible_types
        }

    def get_children(
        self, entity: Entity, object_types: Iterable[str], reference: str = "parent"
    ) -> list[Entity]:
        """Get registered objects that reference an object.

        Args:
            entity: The referenced object
            object_types: Object types to include
            reference: Argument holding the reference ("parent" or "group")

        Returns:
            Matching objects in registration order
        """
        targets = set()
        identifier = entity.get_identifier()
        if identifier:
            targets.add(identifier)
        if entity.get_id():
            targets.add(str(entity.get_id()))

        if not targets:
            return []

        types = set(object_types)
        return [
            child
            for child in self._objects.values()
            if child is not entity
            and child.get_object_type() in types
            and str(child.get_arg(reference) or "") in targets
        ]

    def flush(self) -> None:
        """Remove every registered object."""
        self._objects.clear()
        self._ids.clear()
        self._id_keys.clear()
        self._identifiers.clear()
        logger.debug("Store flushed")

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, identifier: str) -> bool:
        return self.get_object(identifier) is not None
