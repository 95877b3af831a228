"""Structural mapper between configuration trees and API payloads.

``expand`` turns a declarative tree into a request payload; ``flatten`` turns
a response payload back into a tree. Both walk the same ResourceSchema and
are pure: problems are reported to a Diagnostics sink and mapping continues
best-effort for the remaining fields.
"""
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Iterable, Optional

from ..utils.timefmt import TimestampError, normalize_timestamp
from .diagnostics import Diagnostics
from .schema import (
    Attribute,
    Field,
    ListAttribute,
    Nesting,
    ResourceSchema,
    ScalarType,
)
from .tree import ListNode, Node, NodeState, ObjectNode, Scalar


def _encode_scalar(kind: ScalarType, value: Any) -> Any:
    """Validate a tree scalar and return its wire value.

    Raises:
        TypeError: value does not match the declared type
    """
    if kind == ScalarType.STRING:
        if not isinstance(value, str):
            raise TypeError(f"expected string, got {type(value).__name__}")
        return value
    if kind == ScalarType.INT:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected integer, got {type(value).__name__}")
        return value
    if kind == ScalarType.BOOL:
        if not isinstance(value, bool):
            raise TypeError(f"expected boolean, got {type(value).__name__}")
        return value
    if kind == ScalarType.TIMESTAMP:
        if not isinstance(value, (str, datetime)):
            raise TypeError(f"expected timestamp, got {type(value).__name__}")
        try:
            return normalize_timestamp(value)
        except TimestampError as e:
            raise TypeError(str(e)) from e
    raise TypeError(f"unsupported scalar type {kind}")


# Wire decoding applies the same checks.
_decode_scalar = _encode_scalar


def _null_for(spec: Field) -> Node:
    if isinstance(spec, Attribute):
        return Scalar.null()
    if isinstance(spec, ListAttribute):
        return ListNode.null()
    if spec.nesting == Nesting.LIST:
        return ListNode.null()
    return ObjectNode.null()


class StructuralMapper:
    """Expand and flatten one resource type."""

    def __init__(self, schema: ResourceSchema):
        self.schema = schema

    # --- expand ---

    def expand(
        self,
        tree: ObjectNode,
        diagnostics: Optional[Diagnostics] = None,
        include: Optional[Iterable[str]] = None,
    ) -> dict[str, Any]:
        """
        Convert a configuration tree into an API payload.

        Null blocks, null scalars and null or empty lists are omitted.
        Computed fields are never sent.

        Args:
            tree: Root object of the resource configuration
            diagnostics: Sink for mapping diagnostics (optional)
            include: Restrict to these top-level field names (optional)

        Returns:
            Payload dict keyed by wire names
        """
        diags = diagnostics if diagnostics is not None else Diagnostics()

        if not isinstance(tree, ObjectNode) or tree.state != NodeState.KNOWN:
            diags.error(self.schema.name, "cannot expand a null or unknown tree")
            return {}

        allowed = set(include) if include is not None else None
        return self._expand_object(
            self.schema.fields, tree, self.schema.name, diags, allowed
        )

    def _expand_object(
        self,
        fields: tuple[Field, ...],
        node: ObjectNode,
        path: str,
        diags: Diagnostics,
        include: Optional[set[str]] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        declared = {f.name for f in fields}

        for name in node.fields:
            if name not in declared:
                diags.warn(f"{path}.{name}", "field is not part of the schema")

        for spec in fields:
            if include is not None and spec.name not in include:
                continue
            if spec.computed:
                continue

            child_path = f"{path}.{spec.name}"
            child = node.fields.get(spec.name)

            if child is None or child.state == NodeState.NULL:
                continue
            if child.state == NodeState.UNKNOWN:
                diags.error(child_path, "value is unknown and cannot be sent")
                continue

            value = self._expand_field(spec, child, child_path, diags)
            if value is not None:
                payload[spec.wire_name] = value

        return payload

    def _expand_field(
        self, spec: Field, node: Node, path: str, diags: Diagnostics
    ) -> Any:
        if isinstance(spec, Attribute):
            if not isinstance(node, Scalar):
                diags.error(path, f"expected scalar, got {type(node).__name__}")
                return None
            try:
                return _encode_scalar(spec.type, node.value)
            except TypeError as e:
                diags.error(path, str(e))
                return None

        if isinstance(spec, ListAttribute):
            if not isinstance(node, ListNode):
                diags.error(path, f"expected list, got {type(node).__name__}")
                return None
            values = []
            for index, element in enumerate(node.elements):
                element_path = f"{path}[{index}]"
                if not isinstance(element, Scalar) or element.state != NodeState.KNOWN:
                    diags.error(element_path, "list element must be a known scalar")
                    continue
                try:
                    values.append(_encode_scalar(spec.element_type, element.value))
                except TypeError as e:
                    diags.error(element_path, str(e))
            return values or None

        # Nested block
        if spec.nesting == Nesting.SINGLE:
            if not isinstance(node, ObjectNode):
                diags.error(path, f"expected block, got {type(node).__name__}")
                return None
            return self._expand_object(spec.fields, node, path, diags)

        if not isinstance(node, ListNode):
            diags.error(path, f"expected list of blocks, got {type(node).__name__}")
            return None

        items = []
        for index, element in enumerate(node.elements):
            element_path = f"{path}[{index}]"
            if not isinstance(element, ObjectNode) or element.state != NodeState.KNOWN:
                diags.error(element_path, "list element must be a known block")
                continue
            items.append(self._expand_object(spec.fields, element, element_path, diags))
        return items or None

    # --- flatten ---

    def flatten(
        self,
        payload: Optional[Mapping[str, Any]],
        diagnostics: Optional[Diagnostics] = None,
    ) -> ObjectNode:
        """
        Convert an API payload into a configuration tree.

        Absent fields become null nodes. Empty and absent lists both become
        null list nodes. Malformed content is reported as a warning and the
        offending node becomes null.

        Args:
            payload: Response payload keyed by wire names
            diagnostics: Sink for mapping diagnostics (optional)

        Returns:
            Root ObjectNode holding every schema field
        """
        diags = diagnostics if diagnostics is not None else Diagnostics()

        if payload is None:
            return ObjectNode.null()
        if not isinstance(payload, Mapping):
            diags.warn(self.schema.name, f"expected object, got {type(payload).__name__}")
            return ObjectNode.null()

        return self._flatten_object(self.schema.fields, payload, self.schema.name, diags)

    def _flatten_object(
        self,
        fields: tuple[Field, ...],
        payload: Mapping[str, Any],
        path: str,
        diags: Diagnostics,
    ) -> ObjectNode:
        wire_names = {f.wire_name for f in fields}
        for key in payload:
            if key not in wire_names:
                diags.warn(f"{path}.{key}", "unexpected key in payload")

        children: dict[str, Node] = {}
        for spec in fields:
            child_path = f"{path}.{spec.name}"
            raw = payload.get(spec.wire_name)
            if raw is None:
                children[spec.name] = _null_for(spec)
            else:
                children[spec.name] = self._flatten_field(spec, raw, child_path, diags)

        return ObjectNode.of(children)

    def _flatten_field(
        self, spec: Field, raw: Any, path: str, diags: Diagnostics
    ) -> Node:
        if isinstance(spec, Attribute):
            try:
                return Scalar.known(_decode_scalar(spec.type, raw))
            except TypeError as e:
                diags.warn(path, str(e))
                return Scalar.null()

        if isinstance(spec, ListAttribute):
            if not isinstance(raw, (list, tuple)):
                diags.warn(path, f"expected list, got {type(raw).__name__}")
                return ListNode.null()
            elements = []
            for index, item in enumerate(raw):
                if item is None:
                    diags.warn(f"{path}[{index}]", "null list element dropped")
                    continue
                try:
                    elements.append(Scalar.known(_decode_scalar(spec.element_type, item)))
                except TypeError as e:
                    diags.warn(f"{path}[{index}]", str(e))
            return ListNode.of(elements) if elements else ListNode.null()

        if spec.nesting == Nesting.SINGLE:
            if not isinstance(raw, Mapping):
                diags.warn(path, f"expected object, got {type(raw).__name__}")
                return ObjectNode.null()
            return self._flatten_object(spec.fields, raw, path, diags)

        if not isinstance(raw, (list, tuple)):
            diags.warn(path, f"expected list, got {type(raw).__name__}")
            return ListNode.null()

        blocks = []
        for index, item in enumerate(raw):
            if item is None:
                diags.warn(f"{path}[{index}]", "null list element dropped")
                continue
            if not isinstance(item, Mapping):
                diags.warn(f"{path}[{index}]", f"expected object, got {type(item).__name__}")
                continue
            blocks.append(self._flatten_object(spec.fields, item, f"{path}[{index}]", diags))
        return ListNode.of(blocks) if blocks else ListNode.null()


def expand(
    schema: ResourceSchema,
    tree: ObjectNode,
    diagnostics: Optional[Diagnostics] = None,
    include: Optional[Iterable[str]] = None,
) -> dict[str, Any]:
    """Expand ``tree`` with a throwaway mapper for ``schema``."""
    return StructuralMapper(schema).expand(tree, diagnostics, include)


def flatten(
    schema: ResourceSchema,
    payload: Optional[Mapping[str, Any]],
    diagnostics: Optional[Diagnostics] = None,
) -> ObjectNode:
    """Flatten ``payload`` with a throwaway mapper for ``schema``."""
    return StructuralMapper(schema).flatten(payload, diagnostics)
