"""File storage: schema objects loaded from YAML or JSON configuration files."""

import json
from pathlib import Path
from typing import Any

import structlog
import yaml

from pods_schema.models import Entity, Group, entity_class_for
from pods_schema.storages.collection import CollectionStorage

logger = structlog.get_logger()

# Top-level config keys and the object type of their entries.
CONFIG_SECTIONS = {
    "pods": "pod",
    "groups": "group",
    "fields": "field",
    "templates": "template",
    "pages": "page",
}


class FileStorage(CollectionStorage):
    """Storage for objects registered from configuration files.

    A configuration file lists pods with nested groups and fields::

        pods:
          - name: book
            label: Books
            groups:
              - name: details
                fields:
                  - name: isbn
            fields:
              - name: summary

    Loaded objects live in the store like collection objects, tagged with
    the ``file`` storage type.
    """

    storage_type = "file"

    compatible_types = {
        "file": "file",
    }

    def get_label(self) -> str:
        return "File"

    def load_file(self, path: str | Path) -> list[Entity]:
        """Load a configuration file and register its objects.

        Args:
            path: Path to a .json, .yml or .yaml file

        Returns:
            Registered objects in file order
        """
        path = Path(path)
        logger.debug("Loading schema file", path=str(path))

        try:
            with open(path, "r") as f:
                if path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error("Failed to load schema file", path=str(path), error=str(e))
            raise ValueError(f"Failed to load schema file {path}: {e}") from e

        if data is None:
            return []

        if not isinstance(data, dict):
            raise ValueError(f"Schema file {path} must contain a mapping")

        objects = self.register_config(data)
        logger.info("Schema file loaded", path=str(path), objects=len(objects))
        return objects

    def register_config(self, data: dict[str, Any]) -> list[Entity]:
        """Register every object described by a configuration mapping."""
        registered: list[Entity] = []

        for section, object_type in CONFIG_SECTIONS.items():
            for config in data.get(section) or []:
                registered.extend(self._register(object_type, config))

        return registered

    def _register(
        self, object_type: str, config: dict[str, Any], parent: str = "", group: str = ""
    ) -> list[Entity]:
        """Register one object and the groups and fields nested in it."""
        if not isinstance(config, dict):
            logger.warning("Skipping invalid schema entry", object_type=object_type)
            return []

        args = dict(config)
        groups = args.pop("groups", None) or []
        fields = args.pop("fields", None) or []

        if parent and not args.get("parent"):
            args["parent"] = parent
        if group and not args.get("group"):
            args["group"] = group

        entity = entity_class_for(object_type)(args, store=self.store)
        if not entity.is_valid():
            logger.warning("Skipping schema entry without a name", object_type=object_type)
            return []

        self.save(entity)
        registered = [entity]

        identifier = entity.get_identifier() or ""

        # Fields nested in a group belong to the group's pod.
        if isinstance(entity, Group):
            field_parent, field_group = str(entity.get_parent() or ""), identifier
        else:
            field_parent, field_group = identifier, group

        for group_config in groups:
            registered.extend(self._register("group", group_config, parent=identifier))

        for field_config in fields:
            registered.extend(self._register("field", field_config, parent=field_parent, group=field_group))

        return registered
