"""Change-set builder for updates.

Compares declared configuration against the previously recorded state and
reports which tracked top-level fields differ.
"""
from typing import Optional

from ..mapper import ListNode, Node, NodeState, ObjectNode
from ..resources.base import ResourceType
from .schema import ChangeSet


def normalize(node: Optional[Node]) -> Optional[Node]:
    """Fold known-empty lists into null lists, recursively.

    The remote service does not distinguish an empty list from an absent
    one, so neither should change detection.
    """
    if node is None:
        return None
    if isinstance(node, ListNode):
        if node.state == NodeState.KNOWN and len(node) == 0:
            return ListNode.null()
        if node.state != NodeState.KNOWN:
            return node
        return ListNode.of(normalize(e) for e in node.elements)
    if isinstance(node, ObjectNode):
        if node.state != NodeState.KNOWN:
            return node
        return ObjectNode.of({k: normalize(v) for k, v in node.fields.items()})
    return node


class ChangeSetBuilder:
    """Calculate the minimal set of fields to send on update."""

    def build(
        self,
        resource_type: ResourceType,
        declared: ObjectNode,
        prior: ObjectNode,
    ) -> ChangeSet:
        """
        Calculate changed fields between declared and recorded state.

        Only the resource type's tracked fields are compared, so computed
        attributes that drift between reads never trigger an update.

        Args:
            resource_type: Resource type being updated
            declared: Declared configuration tree
            prior: Last recorded state tree

        Returns:
            ChangeSet with the names of differing fields
        """
        change_set = ChangeSet()

        for name in resource_type.tracked_fields:
            if self._differs(declared.get(name), prior.get(name)):
                change_set.fields.add(name)

        return change_set

    def _differs(self, declared: Optional[Node], prior: Optional[Node]) -> bool:
        # An unresolved value will only be known after the update
        if declared is not None and declared.state == NodeState.UNKNOWN:
            return True

        declared_norm = normalize(declared)
        prior_norm = normalize(prior)

        if declared_norm is None or prior_norm is None:
            declared_null = declared_norm is None or declared_norm.state == NodeState.NULL
            prior_null = prior_norm is None or prior_norm.state == NodeState.NULL
            return declared_null != prior_null

        return declared_norm != prior_norm


def summarize_changes(
    change_set: ChangeSet,
    declared: ObjectNode,
    prior: ObjectNode,
) -> str:
    """
    Create a human-readable summary of a change set.

    Useful for logging before an update call.
    """
    if change_set.empty:
        return "No changes needed - recorded state matches declared configuration"

    lines = [f"Changes to apply ({len(change_set)} fields):"]
    for name in sorted(change_set.fields):
        before = prior.get(name)
        after = declared.get(name)
        lines.append(f"  [~] {name}")
        lines.append(f"      was: {before.to_python() if before is not None else None}")
        lines.append(f"      now: {after.to_python() if after is not None else None}")

    return "\n".join(lines)
