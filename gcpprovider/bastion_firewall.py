"""Firewall rule bodies for bastion hosts, shaped like the GCE REST resource."""

from __future__ import annotations

from typing import Any

from gcpprovider.bastion_options import (
    Options,
    firewall_egress_allow_only_resource_name,
    firewall_egress_deny_all_resource_name,
    firewall_ingress_allow_ssh_resource_name,
)

SSH_PORT = 22


def ingress_allow_ssh(opt: Options, cidrs: list[str]) -> dict[str, Any]:
    """Ingress rule allowing SSH from the given source ranges."""
    return {
        "allowed": [{"IPProtocol": "tcp", "ports": [str(SSH_PORT)]}],
        "description": "SSH access for Bastion",
        "direction": "INGRESS",
        "targetTags": [opt.bastion_instance_name],
        "name": firewall_ingress_allow_ssh_resource_name(opt.bastion_instance_name),
        "network": opt.network,
        "sourceRanges": list(cidrs),
        "priority": 50,
    }


def egress_deny_all(opt: Options) -> dict[str, Any]:
    """Egress rule denying all traffic."""
    return {
        "denied": [{"IPProtocol": "all"}],
        "description": "Bastion egress deny",
        "direction": "EGRESS",
        "targetTags": [opt.bastion_instance_name],
        "name": firewall_egress_deny_all_resource_name(opt.bastion_instance_name),
        "network": opt.network,
        "destinationRanges": ["0.0.0.0/0"],
        "priority": 1000,
    }


def egress_allow_only(opt: Options) -> dict[str, Any]:
    """Egress rule allowing SSH only to the workers CIDR."""
    return {
        "allowed": [{"IPProtocol": "tcp", "ports": [str(SSH_PORT)]}],
        "description": "Allow Bastion egress to Shoot workers",
        "direction": "EGRESS",
        "targetTags": [opt.bastion_instance_name],
        "name": firewall_egress_allow_only_resource_name(opt.bastion_instance_name),
        "network": opt.network,
        "destinationRanges": [opt.workers_cidr],
        "priority": 60,
    }


def patch_cidrs(cidrs: list[str]) -> dict[str, Any]:
    """Patch body replacing a rule's source ranges."""
    return {"sourceRanges": list(cidrs)}