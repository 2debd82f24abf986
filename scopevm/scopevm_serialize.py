from __future__ import annotations

import json
from typing import Any
import collections.abc

import toml
import xmltodict
import yaml

from scopevm.scopevm_ast import SyntaxNode, SyntaxTree
from scopevm.scopevm_datatypes import Value


# --------------------------
# Helpers
# --------------------------

def _to_builtin(obj: Any) -> Any:
    # Values and trees become plain dict/list/scalars
    if isinstance(obj, Value):
        return obj.to_python()
    if isinstance(obj, SyntaxTree):
        return tree_to_builtin(obj)
    if isinstance(obj, SyntaxNode):
        return node_to_builtin(obj)
    if isinstance(obj, list):
        return [_to_builtin(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {k: _to_builtin(v) for k, v in obj.items()}
    return obj


def _node_fields(node: SyntaxNode) -> dict:
    out: dict = {"kind": str(node.kind)}
    if node.name is not None:
        out["name"] = node.name
    if node.value is not None:
        out["value"] = node.value.to_python()
    loc = node.location
    out["location"] = {"file": loc.file, "offset": loc.offset, "line": loc.line, "column": loc.column}
    return out


def node_to_builtin(node: SyntaxNode) -> dict:
    """Nested {kind, name, value, location, children} mapping for `node`.

    Built with an explicit stack, so arbitrarily deep trees convert.
    """
    top = _node_fields(node)
    stack = [(node, top)]
    while stack:
        cur, out = stack.pop()
        children = cur.children
        if not children:
            continue
        out["children"] = []
        for child in children:
            built = _node_fields(child)
            out["children"].append(built)
            stack.append((child, built))
    return top


def tree_to_builtin(tree: SyntaxTree) -> dict:
    return {"script": tree.name, "root": node_to_builtin(tree.root)}


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str, *, fmt: str) -> Any:
    """
    Convert json, yaml or toml text (bytes are read as UTF-8) to plain Python structures.
    Malformed input raises ValueError.
    """
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    f = (fmt or '').lower()
    if f == 'json':
        return json.loads(text)
    if f == 'yaml':
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"invalid yaml: {e}") from e
    if f == 'toml':
        return toml.loads(text)
    raise ValueError(f"Unsupported deserialization format: {fmt!r}")


def serialize(value: Any,
              *,
              fmt: str,
              pretty: bool = True,
              xml_root: str = "root") -> str:
    """
    Convert a Value, SyntaxTree or plain Python value into text.
    - fmt: 'json' | 'yaml' | 'toml' | 'xml'
    - For XML and TOML, a value that is not a mapping is wrapped under {xml_root: value}
    """
    f = (fmt or '').lower()
    built = _to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    if f == 'toml':
        if not isinstance(built, dict):
            built = {xml_root: built}
        return toml.dumps(built)
    if f == 'xml':
        root = built if isinstance(built, dict) and len(built) == 1 else {xml_root: built}
        return xmltodict.unparse(root, pretty=pretty)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def dump_tree(tree: SyntaxTree, fmt: str = "yaml") -> str:
    return serialize(tree, fmt=fmt)


__all__ = [
    "deserialize",
    "serialize",
    "dump_tree",
    "node_to_builtin",
    "tree_to_builtin",
]
