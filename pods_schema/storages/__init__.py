"""Storage implementations."""

from pods_schema.storage import Storage
from pods_schema.storages.collection import DEFAULT_FIND_LIMIT, CollectionStorage
from pods_schema.storages.file import FileStorage
from pods_schema.store import Store

STORAGE_TYPES: dict[str, type[CollectionStorage]] = {
    CollectionStorage.storage_type: CollectionStorage,
    FileStorage.storage_type: FileStorage,
}


def get_storage(storage_type: str, store: Store, find_limit: int | None = None) -> Storage:
    """Get a storage adapter by storage type.

    Args:
        storage_type: Storage type tag ("collection" or "file")
        store: Object store the adapter works against
        find_limit: Default maximum number of objects returned by find()

    Returns:
        Storage adapter instance
    """
    storage_class = STORAGE_TYPES.get(storage_type)
    if storage_class is None:
        raise ValueError(f"Unknown storage type: {storage_type}")
    return storage_class(store, find_limit=find_limit)


__all__ = ["CollectionStorage", "FileStorage", "STORAGE_TYPES", "DEFAULT_FIND_LIMIT", "get_storage"]
