"""Tests for the change-set builder."""
import pytest

from resource_reconciler.mapper import UNKNOWN, ListNode, ObjectNode, Scalar
from resource_reconciler.reconcile import ChangeSet, ChangeSetBuilder, normalize, summarize_changes
from resource_reconciler.resources import ServiceAction, TLSInspectionConfiguration

BASE = {
    "name": "cfg1",
    "description": "first",
    "tls_inspection_configuration": {
        "server_certificate_configurations": [
            {"scopes": [{"protocols": [6], "destination_ports": [{"from_port": 443, "to_port": 443}]}]},
        ]
    },
}


@pytest.fixture
def tls():
    return TLSInspectionConfiguration()


@pytest.fixture
def builder():
    return ChangeSetBuilder()


def recorded(tls, config, **computed):
    """A prior state as it would come back from a read."""
    tree = tls.parse(config)
    return tree.replace(**{k: Scalar.known(v) for k, v in computed.items()})


class TestNormalize:

    def test_empty_list_becomes_null(self):
        assert normalize(ListNode.of([])) == ListNode.null()

    def test_nested_empty_list(self):
        node = ObjectNode.of({"items": ListNode.of([])})
        assert normalize(node) == ObjectNode.of({"items": ListNode.null()})

    def test_scalar_untouched(self):
        assert normalize(Scalar.known(1)) == Scalar.known(1)
        assert normalize(None) is None


class TestChangeSetBuilder:

    def test_unchanged_is_empty(self, tls, builder):
        prior = recorded(tls, BASE, arn="arn:1", id="arn:1", update_token="token-1")
        change_set = builder.build(tls, tls.parse(BASE), prior)

        assert change_set.empty
        assert len(change_set) == 0

    def test_description_change(self, tls, builder):
        prior = recorded(tls, BASE)
        declared = tls.parse({**BASE, "description": "second"})

        change_set = builder.build(tls, declared, prior)
        assert change_set.fields == {"description"}

    def test_description_removed(self, tls, builder):
        prior = recorded(tls, BASE)
        declared = tls.parse({k: v for k, v in BASE.items() if k != "description"})

        assert "description" in builder.build(tls, declared, prior)

    def test_nested_change(self, tls, builder):
        prior = recorded(tls, BASE)
        config = {
            **BASE,
            "tls_inspection_configuration": {
                "server_certificate_configurations": [
                    {"scopes": [{"protocols": [6], "destination_ports": [{"from_port": 8443, "to_port": 8443}]}]},
                ]
            },
        }
        change_set = builder.build(tls, tls.parse(config), prior)
        assert change_set.fields == {"tls_inspection_configuration"}

    def test_reordered_list_is_a_change(self, tls, builder):
        ports = [{"from_port": 443, "to_port": 443}, {"from_port": 8443, "to_port": 8443}]
        a = {"name": "cfg1", "tls_inspection_configuration": {"server_certificate_configurations": [
            {"scopes": [{"protocols": [6], "destination_ports": ports}]}]}}
        b = {"name": "cfg1", "tls_inspection_configuration": {"server_certificate_configurations": [
            {"scopes": [{"protocols": [6], "destination_ports": list(reversed(ports))}]}]}}

        assert not builder.build(tls, tls.parse(a), tls.parse(b)).empty

    def test_computed_drift_ignored(self, tls, builder):
        """Computed fields that change between reads never trigger an update."""
        prior = recorded(
            tls, BASE,
            last_modified_time="2024-01-02T03:04:05Z",
            update_token="token-7",
            status="ACTIVE",
        )
        prior = prior.replace(number_of_associations=Scalar.known(4))

        assert builder.build(tls, tls.parse(BASE), prior).empty

    def test_name_is_not_tracked(self, tls, builder):
        prior = recorded(tls, BASE)
        declared = tls.parse({**BASE, "name": "renamed"})
        assert builder.build(tls, declared, prior).empty

    def test_empty_list_equals_null(self, tls, builder):
        declared = tls.parse({"name": "cfg1", "tls_inspection_configuration": {"server_certificate_configurations": []}})
        prior = tls.parse({"name": "cfg1", "tls_inspection_configuration": {}})
        assert builder.build(tls, declared, prior).empty

    def test_unknown_counts_as_change(self, tls, builder):
        prior = recorded(tls, BASE)
        declared = tls.parse({**BASE, "description": UNKNOWN})
        assert "description" in builder.build(tls, declared, prior)

    def test_service_action_tracks_name(self, builder):
        action = ServiceAction()
        definition = {"name": "AWS-RestartEC2Instance", "version": "1"}
        prior = action.parse({"name": "restart", "definition": definition})
        declared = action.parse({"name": "reboot", "definition": definition})

        assert builder.build(action, declared, prior).fields == {"name"}


class TestSummarizeChanges:

    def test_no_changes(self, tls):
        tree = tls.parse(BASE)
        assert "No changes" in summarize_changes(ChangeSet(), tree, tree)

    def test_lists_fields(self, tls):
        prior = tls.parse(BASE)
        declared = tls.parse({**BASE, "description": "second"})
        summary = summarize_changes(ChangeSet({"description"}), declared, prior)

        assert "1 fields" in summary
        assert "[~] description" in summary
        assert "was: first" in summary
        assert "now: second" in summary
