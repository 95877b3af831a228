"""Resource types and transport interfaces."""
from .base import RemoteObject, ResourceClient, ResourceType, unique_id
from .service_action import ServiceAction
from .tls_inspection import TLSInspectionConfiguration

__all__ = [
    "RemoteObject",
    "ResourceClient",
    "ResourceType",
    "unique_id",
    "RESOURCE_TYPES",
    "get_resource_type",
    "ServiceAction",
    "TLSInspectionConfiguration",
]

# Resource type registry
RESOURCE_TYPES = {
    "service_action": ServiceAction,
    "tls_inspection_configuration": TLSInspectionConfiguration,
}


def get_resource_type(name: str) -> ResourceType:
    """Factory function to create resource type instances."""
    key = name.lower()
    if key not in RESOURCE_TYPES:
        raise ValueError(f"Unknown resource type: {name}")
    return RESOURCE_TYPES[key]()
