"""Parser for declared configuration.

Converts dict/YAML input into a configuration tree for a ResourceSchema.
Keys left out of the input become null nodes, schema defaults are applied,
and the ``UNKNOWN`` marker produces an unknown node.
"""
from collections.abc import Mapping
from typing import Any

from .schema import (
    Attribute,
    Block,
    Field,
    ListAttribute,
    Nesting,
    ResourceSchema,
    ScalarType,
)
from .tree import ListNode, Node, ObjectNode, Scalar


class ParseError(Exception):
    """Error parsing declared configuration."""
    pass


class _Unknown:
    def __repr__(self) -> str:
        return "UNKNOWN"


# Marks a value that is not resolved yet.
UNKNOWN = _Unknown()

_PYTHON_TYPES = {
    ScalarType.STRING: (str,),
    ScalarType.INT: (int,),
    ScalarType.BOOL: (bool,),
    ScalarType.TIMESTAMP: (str,),
}


class TreeParser:
    """Parse declared configuration for one resource type."""

    def __init__(self, schema: ResourceSchema):
        self.schema = schema

    def parse(self, config: Mapping[str, Any]) -> ObjectNode:
        """
        Parse a configuration dict into a tree.

        Args:
            config: Dict keyed by field names

        Returns:
            Root ObjectNode

        Raises:
            ParseError: If config does not fit the schema
        """
        if not isinstance(config, Mapping):
            raise ParseError(f"Expected a mapping for {self.schema.name}")
        return self._parse_object(self.schema.fields, config, self.schema.name)

    def _parse_object(
        self,
        fields: tuple[Field, ...],
        config: Mapping[str, Any],
        path: str,
    ) -> ObjectNode:
        declared = {f.name for f in fields}
        unexpected = sorted(str(k) for k in config if k not in declared)
        if unexpected:
            raise ParseError(f"Unknown fields at {path}: {', '.join(unexpected)}")

        children: dict[str, Node] = {}
        for spec in fields:
            child_path = f"{path}.{spec.name}"
            if spec.name in config:
                value = config[spec.name]
            elif isinstance(spec, Attribute) and spec.default is not None:
                value = spec.default
            else:
                value = None

            if value is None and spec.required and not spec.computed:
                raise ParseError(f"Missing required field: {child_path}")

            children[spec.name] = self._parse_field(spec, value, child_path)

        return ObjectNode.of(children)

    def _parse_field(self, spec: Field, value: Any, path: str) -> Node:
        if isinstance(spec, Attribute):
            if value is UNKNOWN:
                return Scalar.unknown()
            if value is None:
                return Scalar.null()
            return Scalar.known(self._check_scalar(spec.type, value, path))

        if isinstance(spec, ListAttribute):
            if value is UNKNOWN:
                return ListNode.unknown()
            if value is None:
                return ListNode.null()
            if not isinstance(value, (list, tuple)):
                raise ParseError(f"Expected a list at {path}")
            return ListNode.of(
                Scalar.unknown() if item is UNKNOWN
                else Scalar.known(self._check_scalar(spec.element_type, item, f"{path}[{i}]"))
                for i, item in enumerate(value)
            )

        return self._parse_block(spec, value, path)

    def _parse_block(self, spec: Block, value: Any, path: str) -> Node:
        if spec.nesting == Nesting.SINGLE:
            if value is UNKNOWN:
                return ObjectNode.unknown()
            if value is None:
                return ObjectNode.null()
            if not isinstance(value, Mapping):
                raise ParseError(f"Expected a mapping at {path}")
            return self._parse_object(spec.fields, value, path)

        if value is UNKNOWN:
            return ListNode.unknown()
        if value is None:
            return ListNode.null()
        if isinstance(value, Mapping):
            # A single block written without list brackets
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ParseError(f"Expected a list of mappings at {path}")

        elements = []
        for index, item in enumerate(value):
            item_path = f"{path}[{index}]"
            if not isinstance(item, Mapping):
                raise ParseError(f"Expected a mapping at {item_path}")
            elements.append(self._parse_object(spec.fields, item, item_path))
        return ListNode.of(elements)

    def _check_scalar(self, kind: ScalarType, value: Any, path: str) -> Any:
        expected = _PYTHON_TYPES[kind]
        if kind == ScalarType.INT and isinstance(value, bool):
            raise ParseError(f"Expected {kind.value} at {path}, got bool")
        if not isinstance(value, expected):
            raise ParseError(
                f"Expected {kind.value} at {path}, got {type(value).__name__}"
            )
        return value
