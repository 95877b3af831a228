"""Tests for the structural mapper (expand and flatten)."""
import copy

import pytest

from resource_reconciler.mapper import (
    UNKNOWN,
    Diagnostics,
    ListNode,
    ObjectNode,
    Scalar,
    Severity,
    StructuralMapper,
    expand,
    flatten,
)
from resource_reconciler.resources.tls_inspection import TLS_INSPECTION_SCHEMA
from resource_reconciler.resources import TLSInspectionConfiguration


FULL_CONFIG = {
    "name": "cfg1",
    "description": "inspect outbound traffic",
    "encryption_configuration": {
        "key_id": "AWS_OWNED_KMS_KEY",
        "type": "AWS_OWNED_KMS_KEY",
    },
    "tls_inspection_configuration": {
        "server_certificate_configurations": [
            {
                "certificate_authority_arn": "arn:aws:acm:us-east-1:123456789012:certificate/ca-1",
                "check_certificate_revocation_status": {
                    "revoked_status_action": "REJECT",
                    "unknown_status_action": "PASS",
                },
                "scopes": [
                    {
                        "protocols": [6],
                        "destination_ports": [{"from_port": 443, "to_port": 443}],
                        "destinations": [{"address_definition": "0.0.0.0/0"}],
                        "source_ports": [{"from_port": 0, "to_port": 65535}],
                        "sources": [{"address_definition": "10.0.0.0/8"}],
                    }
                ],
            }
        ]
    },
}


@pytest.fixture
def tls():
    return TLSInspectionConfiguration()


@pytest.fixture
def mapper():
    return StructuralMapper(TLS_INSPECTION_SCHEMA)


class TestExpand:
    """Tests for tree -> payload."""

    def test_expand_minimal_omits_absent_fields(self, tls, mapper):
        """Null description is left out of the payload, not sent empty."""
        payload = mapper.expand(tls.parse({"name": "cfg1"}))
        assert payload == {"TLSInspectionConfigurationName": "cfg1"}
        assert "Description" not in payload

    def test_expand_full_config(self, tls, mapper):
        """Nested blocks expand into nested wire objects."""
        payload = mapper.expand(tls.parse(FULL_CONFIG))

        assert payload["TLSInspectionConfigurationName"] == "cfg1"
        assert payload["Description"] == "inspect outbound traffic"
        assert payload["EncryptionConfiguration"] == {
            "KeyId": "AWS_OWNED_KMS_KEY",
            "Type": "AWS_OWNED_KMS_KEY",
        }
        server_config = payload["TLSInspectionConfiguration"]["ServerCertificateConfigurations"][0]
        assert server_config["CheckCertificateRevocationStatus"] == {
            "RevokedStatusAction": "REJECT",
            "UnknownStatusAction": "PASS",
        }
        assert server_config["Scopes"] == [
            {
                "DestinationPorts": [{"FromPort": 443, "ToPort": 443}],
                "Destinations": [{"AddressDefinition": "0.0.0.0/0"}],
                "Protocols": [6],
                "SourcePorts": [{"FromPort": 0, "ToPort": 65535}],
                "Sources": [{"AddressDefinition": "10.0.0.0/8"}],
            }
        ]
        # Absent list block is omitted
        assert "ServerCertificates" not in server_config

    def test_expand_preserves_list_order(self, tls, mapper):
        """[A, B] never comes out as [B, A]."""
        config = copy.deepcopy(FULL_CONFIG)
        scope = config["tls_inspection_configuration"]["server_certificate_configurations"][0]["scopes"][0]
        scope["destination_ports"] = [
            {"from_port": 8443, "to_port": 8443},
            {"from_port": 443, "to_port": 443},
        ]
        scope["protocols"] = [17, 6]

        payload = mapper.expand(tls.parse(config))
        wire_scope = payload["TLSInspectionConfiguration"]["ServerCertificateConfigurations"][0]["Scopes"][0]

        assert [p["FromPort"] for p in wire_scope["DestinationPorts"]] == [8443, 443]
        assert wire_scope["Protocols"] == [17, 6]

    def test_expand_skips_computed_fields(self, tls, mapper):
        """Remote-assigned fields are never sent."""
        tree = tls.parse({"name": "cfg1", "arn": "arn:aws:x", "update_token": "token-1"})
        payload = mapper.expand(tree)
        assert "TLSInspectionConfigurationArn" not in payload
        assert "UpdateToken" not in payload

    def test_expand_unknown_value_is_error(self, tls, mapper):
        """Unknown scalars are reported and not sent."""
        diagnostics = Diagnostics()
        payload = mapper.expand(tls.parse({"name": "cfg1", "description": UNKNOWN}), diagnostics)

        assert diagnostics.has_errors
        assert diagnostics.errors[0].path == "tls_inspection_configuration.description"
        assert "Description" not in payload
        assert payload["TLSInspectionConfigurationName"] == "cfg1"

    def test_expand_include_restricts_top_level(self, tls, mapper):
        """Only included top-level fields are expanded."""
        payload = mapper.expand(tls.parse(FULL_CONFIG), include={"description", "name"})
        assert payload == {
            "Description": "inspect outbound traffic",
            "TLSInspectionConfigurationName": "cfg1",
        }

    def test_expand_non_schema_field_warns(self, tls, mapper):
        """Extra tree fields produce a warning and do not reach the payload."""
        tree = tls.parse({"name": "cfg1"}).replace(colour=Scalar.known("blue"))
        diagnostics = Diagnostics()
        payload = mapper.expand(tree, diagnostics)

        assert payload == {"TLSInspectionConfigurationName": "cfg1"}
        assert [d.severity for d in diagnostics] == [Severity.WARNING]

    def test_expand_null_tree_is_error(self, mapper):
        diagnostics = Diagnostics()
        assert mapper.expand(ObjectNode.null(), diagnostics) == {}
        assert diagnostics.has_errors

    def test_expand_is_pure(self, tls, mapper):
        """Same input gives identical output and the tree is untouched."""
        tree = tls.parse(FULL_CONFIG)
        before = tree.to_python()

        first = mapper.expand(tree)
        second = mapper.expand(tree)

        assert first == second
        assert tree.to_python() == before


class TestFlatten:
    """Tests for payload -> tree."""

    def test_round_trip(self, tls, mapper):
        """flatten(expand(t)) == t."""
        tree = tls.parse(FULL_CONFIG)
        assert mapper.flatten(mapper.expand(tree)) == tree

    def test_round_trip_minimal(self, tls, mapper):
        tree = tls.parse({"name": "cfg1"})
        assert mapper.flatten(mapper.expand(tree)) == tree

    def test_absent_fields_become_null(self, mapper):
        tree = mapper.flatten({"TLSInspectionConfigurationName": "cfg1"})

        assert tree.value_of("name") == "cfg1"
        assert tree.get("description") == Scalar.null()
        assert tree.get("certificates") == ListNode.null()
        assert tree.get("certificate_authority") == ObjectNode.null()

    def test_empty_and_absent_list_are_equal(self, mapper):
        """An empty list and a missing list both flatten to a null list."""
        with_empty = mapper.flatten({"TLSInspectionConfigurationName": "cfg1", "Certificates": []})
        without = mapper.flatten({"TLSInspectionConfigurationName": "cfg1"})

        assert with_empty.get("certificates") == ListNode.null()
        assert with_empty == without

    def test_nested_empty_list_is_null(self, mapper):
        payload = {
            "TLSInspectionConfigurationName": "cfg1",
            "TLSInspectionConfiguration": {"ServerCertificateConfigurations": []},
        }
        tree = mapper.flatten(payload)
        block = tree.get("tls_inspection_configuration")
        assert block.get("server_certificate_configurations") == ListNode.null()

    def test_computed_fields_are_read(self, mapper):
        payload = {
            "TLSInspectionConfigurationArn": "arn:aws:tls/cfg1",
            "TLSInspectionConfigurationName": "cfg1",
            "TLSInspectionConfigurationStatus": "ACTIVE",
            "LastModifiedTime": "2024-01-02T03:04:05Z",
            "NumberOfAssociations": 2,
            "Certificates": [
                {"CertificateArn": "arn:aws:acm:cert/1", "Status": "OK"},
            ],
        }
        tree = mapper.flatten(payload)

        assert tree.value_of("arn") == "arn:aws:tls/cfg1"
        assert tree.value_of("id") == "arn:aws:tls/cfg1"
        assert tree.value_of("status") == "ACTIVE"
        assert tree.value_of("last_modified_time") == "2024-01-02T03:04:05Z"
        assert tree.value_of("number_of_associations") == 2
        certificates = tree.get("certificates")
        assert len(certificates) == 1
        assert certificates.elements[0].value_of("certificate_arn") == "arn:aws:acm:cert/1"
        assert certificates.elements[0].get("certificate_serial") == Scalar.null()

    def test_timestamp_offset_is_kept(self, mapper):
        tree = mapper.flatten({"LastModifiedTime": "2024-01-02T05:04:05+02:00"})
        assert tree.value_of("last_modified_time") == "2024-01-02T05:04:05+02:00"

    def test_naive_timestamp_is_diagnosed(self, mapper):
        diagnostics = Diagnostics()
        tree = mapper.flatten(
            {"TLSInspectionConfigurationName": "cfg1", "LastModifiedTime": "2024-01-02T03:04:05"},
            diagnostics,
        )
        assert tree.get("last_modified_time") == Scalar.null()
        assert tree.value_of("name") == "cfg1"
        assert len(diagnostics.warnings) == 1

    def test_wrong_type_is_warning_not_fatal(self, mapper):
        """Malformed values become null; the rest is still mapped."""
        diagnostics = Diagnostics()
        tree = mapper.flatten(
            {
                "TLSInspectionConfigurationName": "cfg1",
                "NumberOfAssociations": "three",
                "Certificates": {"CertificateArn": "not-a-list"},
            },
            diagnostics,
        )

        assert tree.value_of("name") == "cfg1"
        assert tree.get("number_of_associations") == Scalar.null()
        assert tree.get("certificates") == ListNode.null()
        assert len(diagnostics.warnings) == 2
        assert not diagnostics.has_errors

    def test_unexpected_key_is_warning(self, mapper):
        diagnostics = Diagnostics()
        tree = mapper.flatten(
            {"TLSInspectionConfigurationName": "cfg1", "Colour": "blue"},
            diagnostics,
        )
        assert tree.value_of("name") == "cfg1"
        assert diagnostics.warnings[0].path == "tls_inspection_configuration.Colour"

    def test_bad_list_elements_are_skipped(self, mapper):
        diagnostics = Diagnostics()
        payload = {
            "TLSInspectionConfiguration": {
                "ServerCertificateConfigurations": [
                    None,
                    "garbage",
                    {"CertificateAuthorityArn": "arn:ca"},
                ]
            }
        }
        tree = mapper.flatten(payload, diagnostics)
        configs = tree.get("tls_inspection_configuration").get("server_certificate_configurations")

        assert len(configs) == 1
        assert configs.elements[0].value_of("certificate_authority_arn") == "arn:ca"
        assert [w.path for w in diagnostics.warnings] == [
            "tls_inspection_configuration.tls_inspection_configuration.server_certificate_configurations[0]",
            "tls_inspection_configuration.tls_inspection_configuration.server_certificate_configurations[1]",
        ]

    def test_null_scalar_list_element_is_reported(self, mapper):
        diagnostics = Diagnostics()
        payload = {
            "TLSInspectionConfiguration": {
                "ServerCertificateConfigurations": [
                    {"Scopes": [{"Protocols": [6, None, 17]}]},
                ]
            }
        }
        tree = mapper.flatten(payload, diagnostics)
        scope = (
            tree.get("tls_inspection_configuration")
            .get("server_certificate_configurations").elements[0]
            .get("scopes").elements[0]
        )

        assert [p.value for p in scope.get("protocols").elements] == [6, 17]
        assert len(diagnostics.warnings) == 1
        assert diagnostics.warnings[0].path.endswith("protocols[1]")

    def test_flatten_none_payload(self, mapper):
        assert mapper.flatten(None) == ObjectNode.null()

    def test_flatten_is_pure(self, mapper):
        payload = {"TLSInspectionConfigurationName": "cfg1", "Certificates": []}
        snapshot = copy.deepcopy(payload)

        assert mapper.flatten(payload) == mapper.flatten(payload)
        assert payload == snapshot


class TestModuleFunctions:
    """Tests for the schema-level helpers."""

    def test_expand_and_flatten_helpers(self, tls):
        tree = tls.parse({"name": "cfg1", "description": "d"})
        payload = expand(TLS_INSPECTION_SCHEMA, tree)
        assert payload == {"Description": "d", "TLSInspectionConfigurationName": "cfg1"}
        assert flatten(TLS_INSPECTION_SCHEMA, payload) == tree
