"""
Typed hierarchical value model.

Dependency outputs arrive as a flat mapping of dot-delimited paths
("net.vnet_id", "db.credentials") to typed values. ValueTree turns that
mapping into a nested structure of Branch and Leaf nodes, and converts it
back without loss.
"""

import copy
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple, Union

from ..errors import NotFound, ShapeConflict, ValidationFailure

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "."

_SCALAR_TYPES = (str, bool, int, float, type(None))


@dataclass(frozen=True)
class Leaf:
    """
    A typed value at the end of a path.

    Attributes:
        value: Scalar (string, number, bool, null) or a list/mapping of them
    """
    value: Any


@dataclass(frozen=True)
class Branch:
    """
    An inner node mapping child keys to nodes.

    Attributes:
        children: Read-only mapping of key to Leaf or Branch
    """
    children: Mapping[str, "Node"]


Node = Union[Leaf, Branch]


class ValueTree:
    """
    Immutable tree of typed values.

    Build one with from_flat(); a path cannot be both a leaf and the
    ancestor of another path.
    """

    def __init__(self, root: Branch):
        self._root = root

    @classmethod
    def empty(cls) -> "ValueTree":
        return cls(Branch(MappingProxyType({})))

    @classmethod
    def from_flat(cls, values: Mapping[str, Any]) -> "ValueTree":
        """
        Build a tree from a flat mapping of dot-delimited path to value.

        Args:
            values: Mapping such as {"db.host": "x", "db.port": 5432}

        Returns:
            ValueTree with one branch per shared path prefix

        Raises:
            ShapeConflict: If a path is a strict prefix of another path,
                or a path has an empty segment
            ValidationFailure: If a value is not a supported type
        """
        nested: Dict[str, Any] = {}

        for path in sorted(values):
            segments = cls._split(path)
            target = nested

            for depth, segment in enumerate(segments[:-1]):
                existing = target.get(segment)
                if isinstance(existing, Leaf):
                    prefix = PATH_SEPARATOR.join(segments[:depth + 1])
                    raise ShapeConflict(
                        f"Path '{path}' conflicts with value already set at '{prefix}'"
                    )
                if existing is None:
                    existing = {}
                    target[segment] = existing
                target = existing

            last = segments[-1]
            if last in target:
                raise ShapeConflict(
                    f"Path '{path}' is both a value and a parent of other paths"
                )
            target[last] = Leaf(cls._check_value(path, values[path]))

        return cls(cls._freeze(nested))

    @staticmethod
    def _split(path: str) -> List[str]:
        if not isinstance(path, str):
            raise ShapeConflict(f"Path must be a string, got {type(path).__name__}")
        segments = path.split(PATH_SEPARATOR)
        if any(segment == "" for segment in segments):
            raise ShapeConflict(f"Path '{path}' has an empty segment")
        return segments

    @staticmethod
    def _check_value(path: str, value: Any) -> Any:
        """Validate a leaf value recursively and return a private copy of it."""
        def check(item: Any) -> None:
            if isinstance(item, _SCALAR_TYPES):
                return
            if isinstance(item, (list, tuple)):
                for element in item:
                    check(element)
                return
            if isinstance(item, dict):
                for key, element in item.items():
                    if not isinstance(key, str):
                        raise ValidationFailure(
                            f"Value at '{path}' has a non-string key: {key!r}"
                        )
                    check(element)
                return
            raise ValidationFailure(
                f"Unsupported value type at '{path}': {type(item).__name__}"
            )

        check(value)
        return copy.deepcopy(value)

    @classmethod
    def _freeze(cls, nested: Dict[str, Any]) -> Branch:
        children: Dict[str, Node] = {}
        for key, value in nested.items():
            children[key] = value if isinstance(value, Leaf) else cls._freeze(value)
        return Branch(MappingProxyType(children))

    @property
    def root(self) -> Branch:
        return self._root

    def is_empty(self) -> bool:
        return not self._root.children

    def keys(self) -> List[str]:
        """Top-level keys (one per dependency in an aggregate tree)."""
        return sorted(self._root.children)

    def get(self, path: str) -> Any:
        """
        Look up the value at a dot-delimited path.

        A path that ends on a branch returns that subtree as a nested dict.

        Raises:
            NotFound: If no node exists at the path
        """
        node: Node = self._root
        for segment in self._split(path):
            if isinstance(node, Leaf):
                # Allow addressing into a mapping stored as a single leaf
                if isinstance(node.value, dict) and segment in node.value:
                    node = Leaf(node.value[segment])
                    continue
                raise NotFound(f"No value at '{path}'")
            if segment not in node.children:
                raise NotFound(f"No value at '{path}'")
            node = node.children[segment]

        if isinstance(node, Leaf):
            return copy.deepcopy(node.value)
        return self._to_dict(node)

    def __contains__(self, path: str) -> bool:
        try:
            self.get(path)
        except (NotFound, ShapeConflict):
            return False
        return True

    def items(self) -> Iterator[Tuple[str, Any]]:
        """Iterate (path, value) pairs for every leaf, in sorted path order."""
        return iter(self._walk(self._root, ""))

    def _walk(self, branch: Branch, prefix: str) -> List[Tuple[str, Any]]:
        pairs: List[Tuple[str, Any]] = []
        for key in sorted(branch.children):
            node = branch.children[key]
            path = f"{prefix}{PATH_SEPARATOR}{key}" if prefix else key
            if isinstance(node, Leaf):
                pairs.append((path, copy.deepcopy(node.value)))
            else:
                pairs.extend(self._walk(node, path))
        return pairs

    def to_flat(self) -> Dict[str, Any]:
        """Inverse of from_flat()."""
        return dict(self.items())

    def to_dict(self) -> Dict[str, Any]:
        """Render the whole tree as one nested dict."""
        return self._to_dict(self._root)

    @classmethod
    def _to_dict(cls, branch: Branch) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, node in branch.children.items():
            if isinstance(node, Leaf):
                result[key] = copy.deepcopy(node.value)
            else:
                result[key] = cls._to_dict(node)
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValueTree):
            return NotImplemented
        return self.to_flat() == other.to_flat()

    def __repr__(self) -> str:
        return f"ValueTree({self.to_dict()!r})"
