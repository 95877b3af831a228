"""Network firewall TLS inspection configuration.

The configuration is identified by its ARN, which doubles as the ``id``.
Updates are guarded by an update token that the service rotates on every
successful mutation.
"""
from ..mapper import (
    Attribute,
    Block,
    ListAttribute,
    Nesting,
    ResourceSchema,
    ScalarType,
)
from .base import ResourceType

AWS_OWNED_KMS_KEY = "AWS_OWNED_KMS_KEY"


def _certificate_fields() -> tuple:
    return (
        Attribute("certificate_arn", "CertificateArn", computed=True),
        Attribute("certificate_serial", "CertificateSerial", computed=True),
        Attribute("status", "Status", computed=True),
        Attribute("status_message", "StatusMessage", computed=True),
    )


def _port_range_block(name: str, wire_name: str) -> Block:
    return Block(
        name,
        wire_name,
        fields=(
            Attribute("from_port", "FromPort", ScalarType.INT, required=True),
            Attribute("to_port", "ToPort", ScalarType.INT, required=True),
        ),
        nesting=Nesting.LIST,
    )


def _address_block(name: str, wire_name: str) -> Block:
    return Block(
        name,
        wire_name,
        fields=(
            Attribute("address_definition", "AddressDefinition", required=True),
        ),
        nesting=Nesting.LIST,
    )


SCOPE = Block(
    "scopes",
    "Scopes",
    fields=(
        _port_range_block("destination_ports", "DestinationPorts"),
        _address_block("destinations", "Destinations"),
        ListAttribute("protocols", "Protocols", ScalarType.INT, required=True),
        _port_range_block("source_ports", "SourcePorts"),
        _address_block("sources", "Sources"),
    ),
    nesting=Nesting.LIST,
)

SERVER_CERTIFICATE_CONFIGURATION = Block(
    "server_certificate_configurations",
    "ServerCertificateConfigurations",
    fields=(
        Attribute("certificate_authority_arn", "CertificateAuthorityArn"),
        Block(
            "check_certificate_revocation_status",
            "CheckCertificateRevocationStatus",
            fields=(
                Attribute("revoked_status_action", "RevokedStatusAction"),
                Attribute("unknown_status_action", "UnknownStatusAction"),
            ),
        ),
        SCOPE,
        Block(
            "server_certificates",
            "ServerCertificates",
            fields=(Attribute("resource_arn", "ResourceArn"),),
            nesting=Nesting.LIST,
        ),
    ),
    nesting=Nesting.LIST,
)

TLS_INSPECTION_SCHEMA = ResourceSchema(
    name="tls_inspection_configuration",
    fields=(
        Attribute("arn", "TLSInspectionConfigurationArn", computed=True),
        Attribute("description", "Description"),
        Attribute("id", "TLSInspectionConfigurationArn", computed=True),
        Attribute("name", "TLSInspectionConfigurationName", required=True),
        Attribute("last_modified_time", "LastModifiedTime", ScalarType.TIMESTAMP, computed=True),
        Attribute("number_of_associations", "NumberOfAssociations", ScalarType.INT, computed=True),
        Attribute("status", "TLSInspectionConfigurationStatus", computed=True),
        Attribute("update_token", "UpdateToken", computed=True),
        Block("certificate_authority", "CertificateAuthority", fields=_certificate_fields(), computed=True),
        Block("certificates", "Certificates", fields=_certificate_fields(), nesting=Nesting.LIST, computed=True),
        Block(
            "encryption_configuration",
            "EncryptionConfiguration",
            fields=(
                Attribute("key_id", "KeyId", default=AWS_OWNED_KMS_KEY),
                Attribute("type", "Type", default=AWS_OWNED_KMS_KEY),
            ),
        ),
        Block(
            "tls_inspection_configuration",
            "TLSInspectionConfiguration",
            fields=(SERVER_CERTIFICATE_CONFIGURATION,),
        ),
    ),
)


class TLSInspectionConfiguration(ResourceType):
    """TLS inspection configuration of a network firewall."""

    name = "tls_inspection_configuration"
    schema = TLS_INSPECTION_SCHEMA
    status_field = "TLSInspectionConfigurationStatus"
    id_fields = ("id", "arn")
    update_token_field = "update_token"
    tracked_fields = (
        "description",
        "tls_inspection_configuration",
        "encryption_configuration",
    )
    # The update call replaces the whole configuration and requires the name
    # alongside the ARN
    always_send = (
        "name",
        "tls_inspection_configuration",
        "encryption_configuration",
    )
