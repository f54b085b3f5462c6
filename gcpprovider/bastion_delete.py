"""Removal of the cloud resources that make up a bastion host."""

from __future__ import annotations

import logging

from gcpprovider.bastion_compute import (
    ComputeClient,
    GoogleAPIError,
    delete_firewall_rule,
    get_bastion_instance,
    get_disk,
)
from gcpprovider.bastion_options import (
    Options,
    firewall_egress_allow_only_resource_name,
    firewall_egress_deny_all_resource_name,
    firewall_ingress_allow_ssh_resource_name,
)

logger = logging.getLogger(__name__)


def remove_firewall_rules(client: ComputeClient, opt: Options) -> None:
    """Delete the three bastion firewall rules."""
    base = opt.bastion_instance_name
    for name in (
        firewall_ingress_allow_ssh_resource_name(base),
        firewall_egress_deny_all_resource_name(base),
        firewall_egress_allow_only_resource_name(base),
    ):
        delete_firewall_rule(client, opt, name)


def remove_bastion_instance(client: ComputeClient, opt: Options) -> None:
    """Delete the bastion instance if it exists."""
    if get_bastion_instance(client, opt) is None:
        return
    try:
        client.delete_instance(opt.project_id, opt.zone, opt.bastion_instance_name)
    except GoogleAPIError as exc:
        raise RuntimeError(f"failed to terminate bastion instance: {exc}") from exc
    logger.info("Instance removed: %s", opt.bastion_instance_name)


def is_instance_deleted(client: ComputeClient, opt: Options) -> bool:
    """Return True once the bastion instance no longer exists."""
    return get_bastion_instance(client, opt) is None


def remove_disk(client: ComputeClient, opt: Options) -> None:
    """Delete the bastion disk if it exists."""
    if get_disk(client, opt) is None:
        return
    try:
        client.delete_disk(opt.project_id, opt.zone, opt.disk_name)
    except GoogleAPIError as exc:
        raise RuntimeError(f"failed to delete disk: {exc}") from exc
    logger.info("Disk removed: %s", opt.disk_name)