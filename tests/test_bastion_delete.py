from http import HTTPStatus

import pytest

from gcpprovider.bastion_compute import GoogleAPIError
from gcpprovider.bastion_delete import (
    is_instance_deleted,
    remove_bastion_instance,
    remove_disk,
    remove_firewall_rules,
)
from gcpprovider.bastion_options import (
    Options,
    firewall_egress_allow_only_resource_name,
    firewall_egress_deny_all_resource_name,
    firewall_ingress_allow_ssh_resource_name,
)


class FakeCompute:
    def __init__(self):
        self.instances = {}
        self.firewalls = {}
        self.disks = {}
        self.calls = []
        self.errors = {}

    def _call(self, method, *args):
        self.calls.append((method, *args))
        if method in self.errors:
            raise self.errors[method]

    @staticmethod
    def _lookup(store, key):
        if key not in store:
            raise GoogleAPIError(HTTPStatus.NOT_FOUND, "notFound")
        return store[key]

    def get_instance(self, project, zone, name):
        self._call("get_instance", project, zone, name)
        return self._lookup(self.instances, name)

    def delete_instance(self, project, zone, name):
        self._call("delete_instance", project, zone, name)
        self._lookup(self.instances, name)
        del self.instances[name]

    def delete_firewall(self, project, name):
        self._call("delete_firewall", project, name)
        self._lookup(self.firewalls, name)
        del self.firewalls[name]

    def get_disk(self, project, zone, name):
        self._call("get_disk", project, zone, name)
        return self._lookup(self.disks, name)

    def delete_disk(self, project, zone, name):
        self._call("delete_disk", project, zone, name)
        self._lookup(self.disks, name)
        del self.disks[name]


@pytest.fixture
def opt():
    return Options(
        bastion_instance_name="test-bastion1",
        disk_name="test-bastion1-disk",
        zone="us-west1-a",
        subnetwork="",
        project_id="test-project",
        network="",
        workers_cidr="",
    )


@pytest.fixture
def client():
    return FakeCompute()


def _rule_names(base):
    return [
        firewall_ingress_allow_ssh_resource_name(base),
        firewall_egress_deny_all_resource_name(base),
        firewall_egress_allow_only_resource_name(base),
    ]


def test_remove_firewall_rules_deletes_all_three_in_order(client, opt):
    names = _rule_names(opt.bastion_instance_name)
    client.firewalls = {name: {"name": name} for name in names}
    client.firewalls["unrelated"] = {"name": "unrelated"}
    remove_firewall_rules(client, opt)
    assert client.calls == [("delete_firewall", "test-project", name) for name in names]
    assert list(client.firewalls) == ["unrelated"]


def test_remove_firewall_rules_when_none_exist(client, opt):
    remove_firewall_rules(client, opt)
    assert len(client.calls) == 3
    assert client.firewalls == {}


def test_remove_firewall_rules_stops_on_error(client, opt):
    client.errors["delete_firewall"] = GoogleAPIError(500, "backendError")
    with pytest.raises(RuntimeError, match="failed to delete firewall rule"):
        remove_firewall_rules(client, opt)
    assert len(client.calls) == 1


def test_remove_missing_instance_does_nothing(client, opt):
    remove_bastion_instance(client, opt)
    assert [call[0] for call in client.calls] == ["get_instance"]


def test_remove_instance_then_it_is_deleted(client, opt):
    client.instances["test-bastion1"] = {"name": "test-bastion1"}
    assert is_instance_deleted(client, opt) is False
    remove_bastion_instance(client, opt)
    assert ("delete_instance", "test-project", "us-west1-a", "test-bastion1") in client.calls
    assert is_instance_deleted(client, opt) is True


def test_remove_instance_wraps_delete_error(client, opt):
    client.instances["test-bastion1"] = {"name": "test-bastion1"}
    error = GoogleAPIError(500, "backendError")
    client.errors["delete_instance"] = error
    with pytest.raises(RuntimeError, match="failed to terminate bastion instance") as info:
        remove_bastion_instance(client, opt)
    assert info.value.__cause__ is error


def test_is_instance_deleted_propagates_errors(client, opt):
    client.errors["get_instance"] = GoogleAPIError(500, "backendError")
    with pytest.raises(GoogleAPIError):
        is_instance_deleted(client, opt)


def test_remove_disk(client, opt):
    client.disks["test-bastion1-disk"] = {"name": "test-bastion1-disk"}
    remove_disk(client, opt)
    assert client.disks == {}
    assert client.calls[-1] == ("delete_disk", "test-project", "us-west1-a", "test-bastion1-disk")


def test_remove_missing_disk_does_nothing(client, opt):
    remove_disk(client, opt)
    assert [call[0] for call in client.calls] == ["get_disk"]


def test_remove_disk_wraps_delete_error(client, opt):
    client.disks["test-bastion1-disk"] = {"name": "test-bastion1-disk"}
    client.errors["delete_disk"] = GoogleAPIError(403, "forbidden")
    with pytest.raises(RuntimeError, match="failed to delete disk"):
        remove_disk(client, opt)
    assert "test-bastion1-disk" in client.disks