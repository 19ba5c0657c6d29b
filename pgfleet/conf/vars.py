"""
Vars

Ordered key/value bag used by instances, clusters and the global inventory.
"""

import json
from typing import Any, Dict, Iterator, List, Optional, Tuple

import yaml

from pgfleet.conf.objects import PgDatabase, PgHba, PgService, PgUser
from pgfleet.conf.utils import (
    construct,
    dump_yaml,
    is_null,
    mapping_items,
    yaml_document,
)
from pgfleet.constants import (
    VAR_PG_DATABASES,
    VAR_PG_HBA_RULES,
    VAR_PG_SERVICES,
    VAR_PG_USERS,
)
from pgfleet.exceptions import SchemaError


class Vars:
    """
    Ordered config entries.

    Keys hold the declaration order, data holds the actual entries.
    Every serialization path walks ``keys``; ``data`` is only used for lookup.
    """

    __slots__ = ("keys", "data")

    def __init__(self, keys: Optional[List[str]] = None, data: Optional[Dict] = None):
        self.keys: List[str] = []
        self.data: Dict[str, Any] = {}
        data = data or {}
        for key in keys if keys is not None else list(data):
            self.put(key, data.get(key))

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def has(self, key: str) -> bool:
        """Check whether key exists."""
        return key in self.data

    def put(self, key: str, value: Any) -> None:
        """Store value; a new key is appended, an existing one keeps its position."""
        if key not in self.data:
            self.keys.append(key)
        self.data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def _typed(self, key: str, types, zero) -> Tuple[Any, bool]:
        if key not in self.data:
            return zero, False
        value = self.data[key]
        # bool is an int subclass, but YAML true/false are not integers
        if isinstance(value, bool) and bool not in types:
            return zero, False
        if not isinstance(value, types):
            return zero, False
        return value, True

    def get_string(self, key: str) -> Tuple[str, bool]:
        return self._typed(key, (str,), "")

    def get_integer(self, key: str) -> Tuple[int, bool]:
        return self._typed(key, (int,), 0)

    def get_bool(self, key: str) -> Tuple[bool, bool]:
        return self._typed(key, (bool,), False)

    def get_array(self, key: str) -> Tuple[Optional[list], bool]:
        return self._typed(key, (list,), None)

    def get_map(self, key: str) -> Tuple[Optional[dict], bool]:
        return self._typed(key, (dict,), None)

    def items(self) -> Iterator[Tuple[str, Any]]:
        for key in self.keys:
            yield key, self.data[key]

    def __len__(self) -> int:
        return len(self.keys)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Vars):
            return NotImplemented
        return self.keys == other.keys and self.data == other.data

    def __repr__(self) -> str:
        return f"Vars({self.to_dict()!r})"

    # ------------------------------------------------------------------
    # Serialize
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Plain dict built in key order."""
        return {key: self.data[key] for key in self.keys}

    def to_yaml(self) -> str:
        return dump_yaml(self.to_dict())

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __str__(self) -> str:
        return self.to_yaml()

    # ------------------------------------------------------------------
    # Deserialize
    # ------------------------------------------------------------------
    @classmethod
    def from_node(cls, node: yaml.Node, loader: yaml.SafeLoader) -> "Vars":
        """
        Build Vars from a composed YAML node, keeping declaration order.

        A null node (``vars:`` with nothing after it) gives empty Vars.

        Raises:
            SchemaError: If the node is not a mapping
        """
        if is_null(node):
            return cls()
        if not isinstance(node, yaml.MappingNode):
            raise SchemaError(f"vars must contain YAML mapping, has {node.id}")
        v = cls()
        for key, value_node in mapping_items(loader, node, "vars"):
            v.put(key, construct(loader, value_node))
        return v

    @classmethod
    def from_yaml(cls, text) -> "Vars":
        """Parse a standalone YAML mapping into Vars."""
        with yaml_document(text) as (node, loader):
            return cls.from_node(node, loader)

    @classmethod
    def from_dict(cls, mapping: Optional[Dict[str, Any]]) -> "Vars":
        if mapping is None:
            return cls()
        if not isinstance(mapping, dict):
            raise SchemaError(f"vars must be a mapping, has {type(mapping).__name__}")
        return cls(data=mapping)

    # ------------------------------------------------------------------
    # Reserved keys
    # ------------------------------------------------------------------
    def parse_databases(self) -> list:
        """Parse pg_databases entries into PgDatabase objects."""
        return _parse_objects(self.data.get(VAR_PG_DATABASES), PgDatabase)

    def parse_users(self) -> list:
        """Parse pg_users entries into PgUser objects."""
        return _parse_objects(self.data.get(VAR_PG_USERS), PgUser)

    def parse_services(self) -> list:
        return _parse_objects(self.data.get(VAR_PG_SERVICES), PgService)

    def parse_hba_rules(self) -> list:
        return _parse_objects(self.data.get(VAR_PG_HBA_RULES), PgHba, required="rules")


def _parse_objects(entries, factory, required: str = "name") -> list:
    # malformed entries are skipped rather than failing the whole inventory
    if not isinstance(entries, list):
        return []
    result = []
    for entry in entries:
        if isinstance(entry, dict) and entry.get(required):
            result.append(factory.from_dict(entry))
    return result
