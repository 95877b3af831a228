"""Structural Mapper - declarative trees to API payloads and back.

The mapper converts between a nested, optional-heavy configuration tree
and the wire payload of the remote service:
- expand: tree -> request payload (null fields omitted, order preserved)
- flatten: response payload -> tree (absent and empty lists both null)

Usage:
    from resource_reconciler.mapper import StructuralMapper, TreeParser

    tree = TreeParser(schema).parse({"name": "cfg1"})
    payload = StructuralMapper(schema).expand(tree)
"""

from .diagnostics import Diagnostics, MappingDiagnostic, Severity
from .mapper import StructuralMapper, expand, flatten
from .parser import TreeParser, ParseError, UNKNOWN
from .schema import (
    Attribute,
    Block,
    ListAttribute,
    Nesting,
    ResourceSchema,
    ScalarType,
)
from .tree import ListNode, Node, NodeState, ObjectNode, Scalar

__all__ = [
    # Mapper
    "StructuralMapper",
    "expand",
    "flatten",
    # Diagnostics
    "Diagnostics",
    "MappingDiagnostic",
    "Severity",
    # Parser
    "TreeParser",
    "ParseError",
    "UNKNOWN",
    # Schema
    "Attribute",
    "Block",
    "ListAttribute",
    "Nesting",
    "ResourceSchema",
    "ScalarType",
    # Tree
    "ListNode",
    "Node",
    "NodeState",
    "ObjectNode",
    "Scalar",
]
