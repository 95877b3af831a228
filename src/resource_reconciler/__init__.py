"""Resource reconciler - drive remote managed resources to their declared state."""

from .errors import (
    MappingError,
    NotFoundError,
    NonRetryableRemoteError,
    ReconcileError,
    RemoteError,
    RetryableRemoteError,
)
from .reconcile import ReconcileEngine, ReconcileFailure, ReconcileResult, ReconcileState
from .resources import RemoteObject, ResourceClient, get_resource_type

__version__ = "0.1.0"

__all__ = [
    "ReconcileEngine",
    "ReconcileFailure",
    "ReconcileResult",
    "ReconcileState",
    "RemoteObject",
    "ResourceClient",
    "get_resource_type",
    "MappingError",
    "NotFoundError",
    "NonRetryableRemoteError",
    "ReconcileError",
    "RemoteError",
    "RetryableRemoteError",
]
