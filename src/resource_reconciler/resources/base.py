"""Base abstractions for remote resource types and their transports."""
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from ..mapper import (
    Diagnostics,
    ObjectNode,
    ResourceSchema,
    Scalar,
    StructuralMapper,
    TreeParser,
)

logger = logging.getLogger(__name__)


@dataclass
class RemoteObject:
    """What a transport call returns for one remote object."""
    resource_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    update_token: Optional[str] = None


class ResourceClient(ABC):
    """Abstract transport for one remote resource type.

    Implementations issue the remote calls. They raise ``NotFoundError`` when
    the service reports the object as missing and ``RemoteError`` (or a
    subclass) for any other failure. A client must be safe for concurrent
    use by several reconciliations.
    """

    @abstractmethod
    async def create(self, payload: dict[str, Any], idempotency_token: str) -> RemoteObject:
        """Create the object. Retrying with the same token must not duplicate it."""
        pass

    @abstractmethod
    async def read(self, resource_id: str) -> RemoteObject:
        """Describe the object.

        Raises:
            NotFoundError: object does not exist
        """
        pass

    @abstractmethod
    async def update(
        self,
        resource_id: str,
        update_token: Optional[str],
        payload: dict[str, Any],
    ) -> RemoteObject:
        """Update the object, guarded by the last update token."""
        pass

    @abstractmethod
    async def delete(self, resource_id: str) -> None:
        """Delete the object.

        Raises:
            NotFoundError: object does not exist
        """
        pass


def unique_id(prefix: str = "reconciler-") -> str:
    """Generate an idempotency token for a create call."""
    return f"{prefix}{uuid.uuid4().hex}"


class ResourceType:
    """Describes one remote resource type.

    Subclasses set the class attributes and override the wire hooks when
    the service splits a field out of its nested object.
    """

    name: str = ""
    schema: ResourceSchema
    # Wire field holding the lifecycle status; None means "found == ACTIVE"
    status_field: Optional[str] = None
    # Tree fields holding the identity and the update token
    id_fields: tuple[str, ...] = ("id",)
    update_token_field: Optional[str] = None
    # Top-level fields compared by the change-set builder
    tracked_fields: tuple[str, ...] = ()
    # Fields sent on every update regardless of changes
    always_send: tuple[str, ...] = ()
    # Write-only fields the service never returns; kept from declared config
    carry_over_fields: tuple[str, ...] = ()
    # Error codes or message fragments worth retrying per mutating call
    create_retry_signatures: tuple[str, ...] = ()
    update_retry_signatures: tuple[str, ...] = ()
    delete_retry_signatures: tuple[str, ...] = ()

    def __init__(self):
        self.mapper = StructuralMapper(self.schema)
        self.parser = TreeParser(self.schema)

    def parse(self, config: dict[str, Any]) -> ObjectNode:
        """Parse declared configuration into a tree."""
        return self.parser.parse(config)

    def to_wire(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Adjust an expanded payload into the shape the transport expects."""
        return payload

    def from_wire(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Adjust a transport payload into the shape the schema describes."""
        return payload

    def expand(
        self,
        tree: ObjectNode,
        diagnostics: Optional[Diagnostics] = None,
        include: Optional[set[str]] = None,
    ) -> dict[str, Any]:
        return self.to_wire(self.mapper.expand(tree, diagnostics, include))

    def flatten(
        self,
        remote: RemoteObject,
        diagnostics: Optional[Diagnostics] = None,
    ) -> ObjectNode:
        """Flatten a remote object, filling identity and update token."""
        tree = self.mapper.flatten(self.from_wire(dict(remote.payload)), diagnostics)
        updates = {name: Scalar.known(remote.resource_id) for name in self.id_fields}
        if self.update_token_field:
            updates[self.update_token_field] = (
                Scalar.known(remote.update_token) if remote.update_token
                else Scalar.null()
            )
        return tree.replace(**updates)

    def carry_over(self, tree: ObjectNode, declared: Optional[ObjectNode]) -> ObjectNode:
        """Copy write-only fields from declared config into a flattened tree."""
        if declared is None or not self.carry_over_fields:
            return tree
        updates = {}
        for name in self.carry_over_fields:
            current = tree.get(name)
            previous = declared.get(name)
            if previous is not None and (current is None or current.is_null):
                updates[name] = previous
        return tree.replace(**updates) if updates else tree

    def status_of(self, payload: dict[str, Any]) -> Optional[str]:
        """Extract the raw status string from a transport payload."""
        if self.status_field is None:
            return None
        value = payload.get(self.status_field)
        return str(value) if value is not None else None

    def resource_id_of(self, tree: ObjectNode) -> Optional[str]:
        for name in self.id_fields:
            value = tree.value_of(name)
            if value:
                return value
        return None

    def update_token_of(self, tree: ObjectNode) -> Optional[str]:
        if not self.update_token_field:
            return None
        return tree.value_of(self.update_token_field)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
