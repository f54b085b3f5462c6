from gcpprovider.bastion_firewall import (
    SSH_PORT,
    egress_allow_only,
    egress_deny_all,
    ingress_allow_ssh,
    patch_cidrs,
)
from gcpprovider.bastion_options import Options


def make_options():
    return Options(
        bastion_instance_name="test-bastion1",
        disk_name="test-bastion1-disk",
        zone="us-west1-a",
        subnetwork="regions/us-west/subnetworks/cluster1-nodes",
        project_id="test-project",
        network="projects/test-project/global/networks/cluster1",
        workers_cidr="10.250.0.0/16",
    )


def test_patch_cidrs():
    cidrs = ["213.69.151.0/24"]
    assert patch_cidrs(cidrs) == {"sourceRanges": ["213.69.151.0/24"]}


def test_ingress_allow_ssh():
    rule = ingress_allow_ssh(make_options(), ["213.69.151.0/24"])
    assert rule["name"] == "test-bastion1-allow-ssh"
    assert rule["direction"] == "INGRESS"
    assert rule["allowed"] == [{"IPProtocol": "tcp", "ports": ["22"]}]
    assert rule["sourceRanges"] == ["213.69.151.0/24"]
    assert rule["targetTags"] == ["test-bastion1"]
    assert rule["priority"] == 50
    assert rule["network"] == "projects/test-project/global/networks/cluster1"


def test_egress_deny_all():
    rule = egress_deny_all(make_options())
    assert rule["name"] == "test-bastion1-deny-all"
    assert rule["direction"] == "EGRESS"
    assert rule["denied"] == [{"IPProtocol": "all"}]
    assert rule["destinationRanges"] == ["0.0.0.0/0"]
    assert rule["priority"] == 1000
    assert "allowed" not in rule


def test_egress_allow_only():
    rule = egress_allow_only(make_options())
    assert rule["name"] == "test-bastion1-egress-worker"
    assert rule["direction"] == "EGRESS"
    assert rule["allowed"] == [{"IPProtocol": "tcp", "ports": [str(SSH_PORT)]}]
    assert rule["destinationRanges"] == ["10.250.0.0/16"]
    assert rule["priority"] == 60


def test_ssh_port_value():
    rule = ingress_allow_ssh(make_options(), [])
    assert rule["allowed"][0]["ports"] == ["22"]
    assert rule["sourceRanges"] == []