"""Service catalog self-service action.

The service reports no lifecycle status: an action that can be described
is ready. ``definition.type`` is sent and returned as the top-level
``DefinitionType`` field rather than inside ``Definition``.
"""
from typing import Any

from ..mapper import Attribute, Block, ResourceSchema
from .base import ResourceType

ACCEPT_LANGUAGE_ENGLISH = "en"
DEFINITION_TYPE_SSM_AUTOMATION = "SSM_AUTOMATION"

SERVICE_ACTION_SCHEMA = ResourceSchema(
    name="service_action",
    fields=(
        Attribute("accept_language", "AcceptLanguage", default=ACCEPT_LANGUAGE_ENGLISH),
        Block(
            "definition",
            "Definition",
            fields=(
                Attribute("assume_role", "AssumeRole"),
                Attribute("name", "Name", required=True),
                Attribute("parameters", "Parameters"),
                Attribute("type", "Type", default=DEFINITION_TYPE_SSM_AUTOMATION),
                Attribute("version", "Version", required=True),
            ),
            required=True,
        ),
        Attribute("description", "Description"),
        Attribute("id", "Id", computed=True),
        Attribute("name", "Name", required=True),
    ),
)


class ServiceAction(ResourceType):
    """Self-service action of a service catalog."""

    name = "service_action"
    schema = SERVICE_ACTION_SCHEMA
    tracked_fields = ("accept_language", "definition", "description", "name")
    carry_over_fields = ("accept_language",)
    # The catalog index lags behind new launch profiles
    create_retry_signatures = ("profile does not exist",)
    update_retry_signatures = ("profile does not exist",)
    delete_retry_signatures = ("ResourceInUseException",)

    def to_wire(self, payload: dict[str, Any]) -> dict[str, Any]:
        definition = payload.get("Definition")
        if isinstance(definition, dict) and "Type" in definition:
            payload = dict(payload)
            definition = dict(definition)
            payload["DefinitionType"] = definition.pop("Type")
            payload["Definition"] = definition
        return payload

    def from_wire(self, payload: dict[str, Any]) -> dict[str, Any]:
        if "DefinitionType" not in payload:
            return payload
        payload = dict(payload)
        definition_type = payload.pop("DefinitionType")
        definition = payload.get("Definition")
        if isinstance(definition, dict) and definition_type:
            payload["Definition"] = {**definition, "Type": definition_type}
        return payload
