"""Storage interface for schema objects."""

from abc import ABC, abstractmethod
from typing import Any

import structlog

from pods_schema.models import Entity
from pods_schema.store import Store

logger = structlog.get_logger()


class Storage(ABC):
    """Abstract base class for schema object storage adapters."""

    storage_type = ""

    compatible_types: dict[str, str] = {}

    def __init__(self, store: Store) -> None:
        self.store = store

    def get_label(self) -> str:
        """Human readable name of the storage type."""
        return self.storage_type.title()

    def get_object_storage_type(self) -> str:
        return self.storage_type

    @abstractmethod
    def get(self, args: dict[str, Any] | None = None) -> Entity | None:
        """Get a single object, or None if it cannot be found."""
        pass

    @abstractmethod
    def find(self, args: dict[str, Any] | None = None) -> dict[str, Entity]:
        """Find objects, keyed by name."""
        pass

    def save(self, entity: Entity) -> bool:
        """Save an object and its arguments."""
        logger.debug("Saving object", storage=self.storage_type, identifier=entity.get_identifier())
        if not self.save_object(entity):
            return False
        return self.save_args(entity)

    def delete(self, entity: Entity) -> bool:
        """Delete an object."""
        logger.debug("Deleting object", storage=self.storage_type, identifier=entity.get_identifier())
        return self.delete_object(entity)

    @abstractmethod
    def save_object(self, entity: Entity) -> bool:
        """Persist the object itself."""
        pass

    @abstractmethod
    def delete_object(self, entity: Entity) -> bool:
        """Remove the object and the objects it owns."""
        pass

    @abstractmethod
    def save_args(self, entity: Entity) -> bool:
        """Persist the object's arguments."""
        pass
