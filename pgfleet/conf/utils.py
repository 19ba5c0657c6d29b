"""YAML and address helpers shared by the inventory model."""

import ipaddress
from contextlib import contextmanager
from typing import Any, Iterator, Tuple

import yaml

from pgfleet.exceptions import SchemaError


def is_valid_ip(s: str) -> bool:
    """Tell whether a string is a syntactically valid IPv4/IPv6 address."""
    if not isinstance(s, str) or not s:
        return False
    try:
        ipaddress.ip_address(s)
    except ValueError:
        return False
    return True


@contextmanager
def yaml_document(data) -> Iterator[Tuple[yaml.Node, yaml.SafeLoader]]:
    """
    Compose a YAML document into a node tree.

    The loader stays alive inside the block so callers can construct
    sub-nodes with ``construct(loader, node)`` while walking the tree in
    declaration order.

    Raises:
        SchemaError: If the document is not valid YAML or is empty
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SchemaError("inventory is not valid utf-8", context=str(e)) from e
    loader = yaml.SafeLoader(data)
    try:
        try:
            node = loader.get_single_node()
        except yaml.YAMLError as e:
            raise SchemaError("invalid yaml document", context=str(e)) from e
        if node is None:
            raise SchemaError("empty inventory document")
        yield node, loader
    finally:
        loader.dispose()


def construct(loader: yaml.SafeLoader, node: yaml.Node) -> Any:
    """Build the python value of a composed node."""
    try:
        return loader.construct_object(node, deep=True)
    except yaml.YAMLError as e:
        raise SchemaError("invalid yaml value", context=str(e)) from e


def mapping_items(loader: yaml.SafeLoader, node: yaml.Node, what: str):
    """
    Iterate (key, value_node) pairs of a mapping node in document order.

    Args:
        loader: Loader that composed the node
        node: Mapping node to walk
        what: Name used in error messages

    Raises:
        SchemaError: If node is not a mapping
    """
    if not isinstance(node, yaml.MappingNode):
        raise SchemaError(f"{what} must contain YAML mapping, has {node.id}")
    for key_node, value_node in node.value:
        yield str(construct(loader, key_node)), value_node


def is_null(node: yaml.Node) -> bool:
    return isinstance(node, yaml.ScalarNode) and node.tag == "tag:yaml.org,2002:null"


def dump_yaml(data: Any) -> str:
    """Dump plain python data with insertion order kept."""
    return yaml.safe_dump(
        data, default_flow_style=False, sort_keys=False, allow_unicode=True
    )
