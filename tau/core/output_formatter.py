"""
Rendering of value trees for reporting.

Supports JSON, YAML and environment-variable style output. Environment
output flattens the tree into upper-cased KEY_PATH pairs.
"""

import json
import logging
from typing import Any, List, Tuple

import yaml

from .value_tree import Branch, Leaf, ValueTree

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "yaml", "env", "plain")


def stringify_value(value: Any) -> str:
    """
    Convert a leaf value to text.

    Strings are returned unchanged, booleans as true/false, null as an
    empty string, and numbers and collections in compact JSON form.
    """
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def flatten(tree: ValueTree, root_token: str = "TAU") -> List[Tuple[str, str]]:
    """
    Flatten a tree into (KEY, value) pairs.

    Keys join the root token and each path segment with underscores and
    are upper-cased, e.g. {"db": {"port": 5432}} with root "TAU" gives
    ("TAU_DB_PORT", "5432"). Collections at a leaf are not descended into.
    Keys that differ only by case in the tree collide silently.
    """
    pairs: List[Tuple[str, str]] = []
    _flatten_branch(tree.root, root_token, pairs)
    return pairs


def _flatten_branch(branch: Branch, prefix: str, pairs: List[Tuple[str, str]]):
    for key in sorted(branch.children):
        node = branch.children[key]
        name = f"{prefix}_{key}".upper() if prefix else key.upper()
        if isinstance(node, Leaf):
            pairs.append((name, stringify_value(node.value)))
        else:
            _flatten_branch(node, name, pairs)


def to_json(tree: ValueTree) -> str:
    return json.dumps(tree.to_dict(), indent=2, sort_keys=True)


def to_yaml(tree: ValueTree) -> str:
    return yaml.safe_dump(tree.to_dict(), default_flow_style=False, sort_keys=True)


def to_env(tree: ValueTree, root_token: str = "TAU") -> str:
    """Render KEY="value" lines, one per leaf."""
    lines = []
    for key, value in flatten(tree, root_token):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        lines.append(f'{key}="{escaped}"')
    return "\n".join(lines)


def to_plain(tree: ValueTree) -> str:
    """Render path = value lines."""
    return "\n".join(f"{path} = {stringify_value(value)}" for path, value in tree.items())


def format_tree(tree: ValueTree, output_format: str, root_token: str = "TAU") -> str:
    """
    Render a tree in one of OUTPUT_FORMATS.

    Raises:
        ValueError: If output_format is not supported
    """
    output_format = output_format.lower()
    if output_format == "json":
        return to_json(tree)
    if output_format == "yaml":
        return to_yaml(tree)
    if output_format == "env":
        return to_env(tree, root_token)
    if output_format == "plain":
        return to_plain(tree)
    raise ValueError(
        f"Invalid output format '{output_format}'. Valid formats are {', '.join(OUTPUT_FORMATS)}"
    )
