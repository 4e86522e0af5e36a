"""Schema registry for pods, groups and fields."""

from pods_schema.models import Entity, Field, Group, Page, Pod, Record, Template
from pods_schema.storage import Storage
from pods_schema.store import Store

__all__ = ["Entity", "Field", "Group", "Page", "Pod", "Record", "Storage", "Store", "Template"]
