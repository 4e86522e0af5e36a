"""Tests for collection storage."""

from unittest.mock import MagicMock

import pytest

from pods_schema.models import Field, Group, Pod
from pods_schema.storages.collection import DEFAULT_FIND_LIMIT, CollectionStorage
from pods_schema.store import Store


@pytest.fixture
def store() -> Store:
    """Create a store with a blog pod and three fields."""
    store = Store()
    store.register_object(Pod({"name": "blog", "id": 100, "label": "Blog"}))
    store.register_object(Field({"id": 1, "name": "a", "parent": "pod/blog"}))
    store.register_object(Field({"id": 2, "name": "b", "parent": "pod/blog"}))
    store.register_object(Field({"id": 3, "name": "c", "parent": ""}))
    return store


@pytest.fixture
def storage(store: Store) -> CollectionStorage:
    """Create collection storage over the store."""
    return CollectionStorage(store)


def test_find_by_parent(storage: CollectionStorage, store: Store) -> None:
    """Test finding fields of a pod."""
    objects = storage.find({"object_type": "field", "parent": "pod/blog"})

    assert list(objects) == ["a", "b"]
    assert objects["a"] is store.get_object("field/pod/blog/a")
    assert objects["b"].get_id() == 2


def test_find_without_parent(storage: CollectionStorage) -> None:
    """Test that a None parent finds objects without a parent."""
    objects = storage.find({"object_type": "field", "parent": None})

    assert list(objects) == ["c"]
    assert all(o.get_object_type() == "field" and not o.get_parent() for o in objects.values())


def test_find_requires_object_type_or_parent(storage: CollectionStorage) -> None:
    """Test that find without object type or parent returns nothing."""
    assert storage.find({}) == {}
    assert storage.find({"name": "a"}) == {}
    assert storage.find({"parent": None}) == {}
    assert list(storage.find({"parent": "pod/blog"})) == ["a", "b"]


def test_find_by_multiple_object_types(storage: CollectionStorage) -> None:
    """Test object type lists."""
    objects = storage.find({"object_type": ["pod", "field"]})
    assert list(objects) == ["blog", "a", "b", "c"]

    assert storage.find({"object_type": "template"}) == {}


def test_find_by_parent_entity_and_aliases(storage: CollectionStorage, store: Store) -> None:
    """Test the alternative forms of a parent reference."""
    pod = store.get_object("pod/blog")

    assert list(storage.find({"object_type": "field", "parent": pod})) == ["a", "b"]
    assert list(storage.find({"object_type": "field", "parent_identifier": "pod/blog"})) == ["a", "b"]
    assert list(storage.find({"object_type": "field", "parent_id": 100})) == ["a", "b"]
    assert list(storage.find({"object_type": "field", "parent": ["pod/blog", "pod/other"]})) == ["a", "b"]


def test_find_by_group(store: Store) -> None:
    """Test filtering on the group reference."""
    store.register_object(Group({"name": "main", "parent": "pod/blog"}))
    store.register_object(Field({"name": "d", "parent": "pod/blog", "group": "group/pod/blog/main"}))
    storage = CollectionStorage(store)

    assert list(storage.find({"object_type": "field", "group": "group/pod/blog/main"})) == ["d"]
    assert list(storage.find({"object_type": "field", "parent": "pod/blog", "group": None})) == ["a", "b"]


def test_find_by_args(store: Store) -> None:
    """Test per-argument filters."""
    store.register_object(Field({"name": "d", "type": "text", "required": True, "parent": "pod/blog"}))
    store.register_object(Field({"name": "e", "type": "number", "parent": "pod/blog"}))
    store.register_object(Field({"name": "f", "type": "text", "parent": "pod/blog", "pick": {"x": 1}}))
    storage = CollectionStorage(store)

    assert list(storage.find({"object_type": "field", "args": {"type": " text "}})) == ["d", "f"]
    assert list(storage.find({"object_type": "field", "args": {"type": ["number", "text", "text", ""]}})) == [
        "d",
        "e",
        "f",
    ]
    assert list(storage.find({"object_type": "field", "args": {"required": True}})) == ["d"]
    assert list(storage.find({"object_type": "field", "args": {"type": None}})) == ["a", "b", "c"]
    assert list(storage.find({"object_type": "field", "args": {"pick": ['{"x": 1}']}})) == ["f"]
    assert storage.find({"object_type": "field", "args": {"type": "date"}}) == {}


def test_find_empty_list_filter_is_ignored(storage: CollectionStorage) -> None:
    """Test that a list filter with only empty values does not filter."""
    objects = storage.find({"object_type": "field", "args": {"type": ["", " ", "0"]}})
    assert list(objects) == ["a", "b", "c"]


def test_find_by_id(storage: CollectionStorage) -> None:
    """Test the id filter."""
    assert list(storage.find({"object_type": "field", "id": [2, "3", "x"]})) == ["b", "c"]
    assert list(storage.find({"object_type": "field", "id": "1"})) == ["a"]
    assert storage.find({"object_type": "field", "id": 99}) == {}


def test_find_by_name(storage: CollectionStorage) -> None:
    """Test the name filter."""
    assert list(storage.find({"object_type": "field", "name": [" a ", "c", ""]})) == ["a", "c"]
    assert storage.find({"object_type": "field", "name": "z"}) == {}


def test_find_internal(store: Store) -> None:
    """Test the internal filter."""
    store.register_object(Field({"name": "secret", "internal": True, "parent": "pod/blog"}))
    storage = CollectionStorage(store)

    assert list(storage.find({"object_type": "field", "internal": True})) == ["secret"]
    assert list(storage.find({"object_type": "field", "internal": False})) == ["a", "b", "c"]


def test_find_limit_keeps_store_order() -> None:
    """Test that limit truncates in store order."""
    store = Store()
    for name in ["e", "d", "c", "b", "a"]:
        store.register_object(Field({"name": name, "parent": "pod/blog"}))
    storage = CollectionStorage(store)

    objects = storage.find({"object_type": "field", "limit": 2})
    assert list(objects) == ["e", "d"]

    assert len(storage.find({"object_type": "field", "limit": -1})) == 5


def test_find_default_limit() -> None:
    """Test the default and configured limits."""
    store = Store()
    for i in range(5):
        store.register_object(Field({"name": f"f{i}"}))

    assert CollectionStorage(store).get_find_limit() == DEFAULT_FIND_LIMIT == 300
    assert len(CollectionStorage(store, find_limit=3).find({"object_type": "field"})) == 3


def test_find_skips_incompatible_storage_types(store: Store) -> None:
    """Test that objects from other storage types are not visible."""
    store.register_object(Field({"name": "remote", "parent": "pod/blog", "object_storage_type": "post_type"}))
    store.register_object(Field({"name": "loaded", "parent": "pod/blog", "object_storage_type": "file"}))
    storage = CollectionStorage(store)

    assert list(storage.find({"object_type": "field", "parent": "pod/blog"})) == ["a", "b", "loaded"]


def test_find_uses_cache_once_initialized(store: Store) -> None:
    """Test that repeated queries are cached after initialization."""
    storage = CollectionStorage(store)
    store.get_objects = MagicMock(wraps=store.get_objects)

    storage.find({"object_type": "field", "parent": "pod/blog"})
    storage.find({"object_type": "field", "parent": "pod/blog"})
    assert store.get_objects.call_count == 2

    store.mark_initialized()
    first = storage.find({"object_type": "field", "parent": "pod/blog"})
    second = storage.find({"parent": "pod/blog", "object_type": "field"})
    assert store.get_objects.call_count == 3
    assert first == second

    storage.find({"object_type": "field", "parent": "pod/blog", "limit": 1})
    assert store.get_objects.call_count == 4


def test_save_clears_cache(storage: CollectionStorage, store: Store) -> None:
    """Test that saving makes new objects visible to cached queries."""
    store.mark_initialized()
    assert list(storage.find({"object_type": "field", "parent": "pod/blog"})) == ["a", "b"]

    storage.save(Field({"name": "z", "parent": "pod/blog"}))
    assert list(storage.find({"object_type": "field", "parent": "pod/blog"})) == ["a", "b", "z"]


def test_get(storage: CollectionStorage, store: Store) -> None:
    """Test getting a single object."""
    assert storage.get({"object_type": "field", "name": "b"}) is store.get_object("field/pod/blog/b")
    assert storage.get({"object_type": "field", "name": "c", "parent": None}).get_id() == 3
    assert storage.get({"object_type": "field", "id": 1}).get_name() == "a"
    assert storage.get({"object_type": "field", "name": "missing"}) is None
    assert storage.get({"object_type": "field"}) is None
    assert storage.get({"name": "a"}) is None


def test_save_object_tags_storage_type() -> None:
    """Test that saved objects are tagged and registered."""
    store = Store()
    storage = CollectionStorage(store)
    pod = Pod({"name": "book"})
    tagged = Pod({"name": "novel", "object_storage_type": "file"})

    assert storage.save(pod)
    assert storage.save(tagged)
    assert pod.get_arg("object_storage_type") == "collection"
    assert tagged.get_arg("object_storage_type") == "file"
    assert store.get_object("pod/book") is pod
    assert storage.save_args(pod)


def test_delete_object_removes_children() -> None:
    """Test that deleting a pod deletes its fields."""
    store = Store()
    storage = CollectionStorage(store)
    pod = Pod({"name": "book", "id": 7})
    storage.save(pod)
    for name in ("isbn", "title", "author"):
        storage.save(Field({"name": name, "parent": "pod/book"}))
    assert len(store) == 4

    assert storage.delete(pod)
    assert len(store) == 0
    assert pod.get_arg("id") == ""
    assert store.get_object(7) is None


def test_delete_object_removes_groups_and_grouped_fields() -> None:
    """Test that deleting a pod deletes its groups and their fields."""
    store = Store()
    storage = CollectionStorage(store)
    storage.save(Pod({"name": "book"}))
    storage.save(Group({"name": "details", "parent": "pod/book"}))
    storage.save(Field({"name": "isbn", "parent": "pod/book", "group": "group/pod/book/details"}))
    storage.save(Pod({"name": "author"}))

    storage.delete(store.get_object("pod/book"))

    assert list(store.get_objects()) == ["pod/author"]


def test_get_by_id_does_not_match_unrelated_objects() -> None:
    """Test that an id lookup only returns the object owning that exact id."""
    store = Store()
    storage = CollectionStorage(store)
    storage.save(Pod({"name": "blog", "id": 100}))
    storage.save(Field({"id": "uuid-a", "name": "a", "parent": "pod/blog"}))
    storage.save(Field({"id": "uuid-b", "name": "b", "parent": "pod/blog"}))

    assert storage.get({"object_type": "field", "id": "nope"}) is None
    assert storage.get({"object_type": "field", "id": "uuid-b"}).get_name() == "b"
    assert storage.get({"object_type": "pod", "id": "uuid-b"}) is None
    assert storage.get({"object_type": "field", "id": "uuid-b", "parent": "pod/other"}) is None
    assert storage.get({"object_type": "field", "id": 100}) is None


def test_find_by_non_numeric_id_matches_nothing(storage: CollectionStorage) -> None:
    """Test that an id filter without any positive integer matches nothing."""
    assert storage.find({"object_type": "field", "id": "nope"}) == {}
    assert storage.find({"object_type": "field", "id": ["x", "-"]}) == {}


def test_delete_object_with_mutual_parents() -> None:
    """Test that objects referencing each other as parents are deleted once each."""
    store = Store()
    storage = CollectionStorage(store)
    first = Field({"name": "f1", "id": 1, "parent": 2})
    second = Field({"name": "f2", "id": 2, "parent": 1})
    storage.save(first)
    storage.save(second)

    assert first.get_all_fields() == [second]
    assert second.get_all_fields() == [first]

    assert storage.delete(first)

    assert len(store) == 0
    assert store.get_object(1) is None
    assert store.get_object(2) is None
