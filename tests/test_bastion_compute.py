from http import HTTPStatus

import pytest

from gcpprovider.bastion_compute import (
    GoogleAPIError,
    create_firewall_rule_if_not_exist,
    delete_firewall_rule,
    get_bastion_instance,
    get_default_zone,
    get_disk,
    get_firewall_rule,
    patch_firewall_rule,
)
from gcpprovider.bastion_firewall import patch_cidrs
from gcpprovider.bastion_options import Options


class FakeCompute:
    def __init__(self):
        self.instances = {}
        self.firewalls = {}
        self.disks = {}
        self.regions = {}
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

    def insert_instance(self, project, zone, instance):
        self._call("insert_instance", project, zone, instance)
        self.instances[instance["name"]] = instance

    def delete_instance(self, project, zone, name):
        self._call("delete_instance", project, zone, name)
        self._lookup(self.instances, name)
        del self.instances[name]

    def get_firewall(self, project, name):
        self._call("get_firewall", project, name)
        return self._lookup(self.firewalls, name)

    def insert_firewall(self, project, rule):
        self._call("insert_firewall", project, rule)
        if rule["name"] in self.firewalls:
            raise GoogleAPIError(HTTPStatus.CONFLICT, "alreadyExists")
        self.firewalls[rule["name"]] = rule

    def delete_firewall(self, project, name):
        self._call("delete_firewall", project, name)
        self._lookup(self.firewalls, name)
        del self.firewalls[name]

    def patch_firewall(self, project, name, patch):
        self._call("patch_firewall", project, name, patch)
        self._lookup(self.firewalls, name).update(patch)

    def get_disk(self, project, zone, name):
        self._call("get_disk", project, zone, name)
        return self._lookup(self.disks, name)

    def insert_disk(self, project, zone, disk):
        self._call("insert_disk", project, zone, disk)
        self.disks[disk["name"]] = disk

    def delete_disk(self, project, zone, name):
        self._call("delete_disk", project, zone, name)
        self._lookup(self.disks, name)
        del self.disks[name]

    def get_region(self, project, region):
        self._call("get_region", project, region)
        return self._lookup(self.regions, region)


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


def test_patch_firewall_rule_sends_cidr_patch(client, opt):
    cidrs = ["213.69.151.0/24"]
    client.firewalls["test-fw"] = {"name": "test-fw", "sourceRanges": []}
    patch_firewall_rule(client, opt, "test-fw", cidrs)
    assert client.calls == [("patch_firewall", "test-project", "test-fw", patch_cidrs(cidrs))]
    assert client.firewalls["test-fw"]["sourceRanges"] == cidrs


def test_patch_firewall_rule_propagates_errors(client, opt):
    client.errors["patch_firewall"] = GoogleAPIError(500, "backendError")
    with pytest.raises(GoogleAPIError):
        patch_firewall_rule(client, opt, "test-fw", ["213.69.151.0/24"])


def test_delete_firewall_rule(client, opt):
    client.firewalls["test-fw"] = {"name": "test-fw"}
    delete_firewall_rule(client, opt, "test-fw")
    assert client.calls == [("delete_firewall", "test-project", "test-fw")]
    assert "test-fw" not in client.firewalls


def test_delete_missing_firewall_rule_is_ignored(client, opt):
    delete_firewall_rule(client, opt, "test-fw")
    assert client.calls == [("delete_firewall", "test-project", "test-fw")]


def test_delete_firewall_rule_wraps_other_errors(client, opt):
    error = GoogleAPIError(500, "backendError")
    client.errors["delete_firewall"] = error
    with pytest.raises(RuntimeError, match="failed to delete firewall rule test-fw") as info:
        delete_firewall_rule(client, opt, "test-fw")
    assert info.value.__cause__ is error


def test_create_firewall_rule(client, opt):
    rule = {"name": "test-fw", "sourceRanges": ["213.69.151.0/24"]}
    create_firewall_rule_if_not_exist(client, opt, rule)
    assert client.firewalls["test-fw"] == rule


def test_create_existing_firewall_rule_is_ignored(client, opt):
    existing = {"name": "test-fw", "sourceRanges": ["10.0.0.0/8"]}
    client.firewalls["test-fw"] = existing
    create_firewall_rule_if_not_exist(client, opt, {"name": "test-fw", "sourceRanges": []})
    assert client.firewalls["test-fw"] is existing


def test_create_firewall_rule_wraps_other_errors(client, opt):
    client.errors["insert_firewall"] = GoogleAPIError(403, "forbidden")
    with pytest.raises(RuntimeError, match="could not create firewall rule test-fw"):
        create_firewall_rule_if_not_exist(client, opt, {"name": "test-fw"})


def test_get_firewall_rule(client, opt):
    rule = {"name": "test-fw"}
    client.firewalls["test-fw"] = rule
    assert get_firewall_rule(client, opt, "test-fw") == rule
    assert get_firewall_rule(client, opt, "other") is None


def test_get_bastion_instance(client, opt):
    assert get_bastion_instance(client, opt) is None
    instance = {"name": "test-bastion1", "status": "RUNNING"}
    client.instances["test-bastion1"] = instance
    assert get_bastion_instance(client, opt) == instance
    assert client.calls[-1] == ("get_instance", "test-project", "us-west1-a", "test-bastion1")


def test_get_bastion_instance_propagates_other_errors(client, opt):
    client.errors["get_instance"] = GoogleAPIError(500, "backendError")
    with pytest.raises(GoogleAPIError) as info:
        get_bastion_instance(client, opt)
    assert info.value.code == 500


def test_get_disk(client, opt):
    assert get_disk(client, opt) is None
    disk = {"name": "test-bastion1-disk"}
    client.disks["test-bastion1-disk"] = disk
    assert get_disk(client, opt) == disk


def test_get_default_zone_takes_last_path_segment(client, opt):
    client.regions["us-west"] = {
        "zones": ["projects/test-project/zones/us-west1-a", "projects/test-project/zones/us-west1-b"]
    }
    assert get_default_zone(client, opt, "us-west") == "us-west1-a"


def test_get_default_zone_without_zones(client, opt):
    client.regions["us-west"] = {"zones": []}
    with pytest.raises(ValueError, match="no available zones in GCP region: us-west"):
        get_default_zone(client, opt, "us-west")


def test_get_default_zone_unknown_region(client, opt):
    with pytest.raises(GoogleAPIError):
        get_default_zone(client, opt, "regionName")