"""Declarative configuration tree.

A tree is made of three node variants, each carrying an explicit state:

- ``Scalar``: a string, integer, boolean or timestamp text
- ``ObjectNode``: a block with named child nodes
- ``ListNode``: an ordered sequence of child nodes

Every node is UNKNOWN (not resolved yet), NULL (explicitly absent) or
KNOWN (holds a value). Nodes are immutable and compare structurally.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Union


class NodeState(str, Enum):
    """Resolution state of a tree node."""
    UNKNOWN = "unknown"
    NULL = "null"
    KNOWN = "known"


@dataclass(frozen=True)
class Scalar:
    """A leaf value."""
    state: NodeState
    value: Any = None

    @classmethod
    def known(cls, value: Any) -> "Scalar":
        if value is None:
            raise ValueError("Known scalar cannot hold None, use Scalar.null()")
        return cls(NodeState.KNOWN, value)

    @classmethod
    def null(cls) -> "Scalar":
        return cls(NodeState.NULL)

    @classmethod
    def unknown(cls) -> "Scalar":
        return cls(NodeState.UNKNOWN)

    @property
    def is_null(self) -> bool:
        return self.state == NodeState.NULL

    @property
    def is_unknown(self) -> bool:
        return self.state == NodeState.UNKNOWN

    def to_python(self) -> Any:
        return self.value if self.state == NodeState.KNOWN else None


@dataclass(frozen=True)
class ObjectNode:
    """A block of named child nodes."""
    state: NodeState
    fields: Mapping[str, "Node"] = field(default_factory=dict)

    @classmethod
    def of(cls, fields: Mapping[str, "Node"]) -> "ObjectNode":
        return cls(NodeState.KNOWN, dict(fields))

    @classmethod
    def null(cls) -> "ObjectNode":
        return cls(NodeState.NULL)

    @classmethod
    def unknown(cls) -> "ObjectNode":
        return cls(NodeState.UNKNOWN)

    @property
    def is_null(self) -> bool:
        return self.state == NodeState.NULL

    @property
    def is_unknown(self) -> bool:
        return self.state == NodeState.UNKNOWN

    def get(self, name: str) -> Optional["Node"]:
        """Return the child node called ``name``, or None if not present."""
        return self.fields.get(name)

    def value_of(self, name: str) -> Any:
        """Return the plain value of a scalar child (None unless known)."""
        node = self.fields.get(name)
        if isinstance(node, Scalar):
            return node.to_python()
        return None

    def replace(self, **updates: "Node") -> "ObjectNode":
        """Return a copy with some child nodes replaced."""
        merged = dict(self.fields)
        merged.update(updates)
        return ObjectNode(self.state, merged)

    def to_python(self) -> Optional[dict[str, Any]]:
        if self.state != NodeState.KNOWN:
            return None
        return {name: node.to_python() for name, node in self.fields.items()}


@dataclass(frozen=True)
class ListNode:
    """An ordered list of child nodes.

    Element order is significant: ``[A, B]`` and ``[B, A]`` are different
    values.
    """
    state: NodeState
    elements: tuple["Node", ...] = ()

    @classmethod
    def of(cls, elements) -> "ListNode":
        return cls(NodeState.KNOWN, tuple(elements))

    @classmethod
    def null(cls) -> "ListNode":
        return cls(NodeState.NULL)

    @classmethod
    def unknown(cls) -> "ListNode":
        return cls(NodeState.UNKNOWN)

    @property
    def is_null(self) -> bool:
        return self.state == NodeState.NULL

    @property
    def is_unknown(self) -> bool:
        return self.state == NodeState.UNKNOWN

    def __iter__(self) -> Iterator["Node"]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def to_python(self) -> Optional[list[Any]]:
        if self.state != NodeState.KNOWN:
            return None
        return [node.to_python() for node in self.elements]


Node = Union[Scalar, ObjectNode, ListNode]
