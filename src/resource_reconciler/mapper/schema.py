"""Declarative schema descriptions shared by expand and flatten.

Each resource type declares its fields once. The mapper walks the same
description in both directions, so a field added here is picked up by
expand, flatten, the parser and the change-set builder alike.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class ScalarType(str, Enum):
    """Wire type of a scalar value."""
    STRING = "string"
    INT = "int"
    BOOL = "bool"
    TIMESTAMP = "timestamp"  # RFC 3339 text


class Nesting(str, Enum):
    """How a nested block appears in the tree and on the wire."""
    SINGLE = "single"  # optional object
    LIST = "list"      # ordered list of objects


@dataclass(frozen=True)
class Attribute:
    """A scalar field."""
    name: str
    wire_name: str
    type: ScalarType = ScalarType.STRING
    required: bool = False
    computed: bool = False  # assigned remotely, never sent
    default: Any = None


@dataclass(frozen=True)
class ListAttribute:
    """An ordered list of scalars (e.g. protocol numbers)."""
    name: str
    wire_name: str
    element_type: ScalarType = ScalarType.STRING
    required: bool = False
    computed: bool = False


@dataclass(frozen=True)
class Block:
    """A nested block of fields."""
    name: str
    wire_name: str
    fields: tuple["Field", ...] = ()
    nesting: Nesting = Nesting.SINGLE
    required: bool = False
    computed: bool = False

    def get(self, name: str) -> Optional["Field"]:
        for f in self.fields:
            if f.name == name:
                return f
        return None


Field = Union[Attribute, ListAttribute, Block]


@dataclass(frozen=True)
class ResourceSchema:
    """Top-level schema of one resource type."""
    name: str
    fields: tuple[Field, ...] = field(default_factory=tuple)

    def get(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def configurable_names(self) -> list[str]:
        """Top-level fields the caller may set."""
        return [f.name for f in self.fields if not f.computed]
