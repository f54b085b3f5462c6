"""Reconciliation and deletion of bastion hosts on GCP."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from gcpprovider.bastion_compute import (
    ComputeClient,
    create_firewall_rule_if_not_exist,
    get_bastion_instance,
    get_default_zone,
    get_disk,
    get_firewall_rule,
    patch_firewall_rule,
)
from gcpprovider.bastion_delete import (
    is_instance_deleted,
    remove_bastion_instance,
    remove_disk,
    remove_firewall_rules,
)
from gcpprovider.bastion_firewall import egress_allow_only, egress_deny_all, ingress_allow_ssh
from gcpprovider.bastion_options import (
    Bastion,
    Cluster,
    Options,
    determine_options,
    ingress_permissions,
    marshal_provider_status,
)
from gcpprovider.requeue import RequeueAfterError

logger = logging.getLogger(__name__)

# Requeue soon so a waiting user gets the public endpoint quickly.
_REQUEUE_WAIT_FOR_ENDPOINTS = 5.0
_REQUEUE_WAIT_FOR_DELETION = 30.0


@dataclass
class LoadBalancerIngress:
    """An endpoint given by hostname, IP address or both."""

    hostname: str = ""
    ip: str = ""


@dataclass
class BastionEndpoints:
    """The private and public endpoints of a bastion host."""

    private: LoadBalancerIngress | None = None
    public: LoadBalancerIngress | None = None

    def ready(self) -> bool:
        """True if both endpoints have an IP or a hostname."""
        return ingress_ready(self.private) and ingress_ready(self.public)


@contextmanager
def _wrapped(message: str) -> Iterator[None]:
    try:
        yield
    except RequeueAfterError:
        raise
    except Exception as exc:
        raise RuntimeError(f"{message}: {exc}") from exc


class BastionActuator:
    """Creates and removes the cloud resources of a bastion host.

    ``service_account_getter(bastion)`` returns an object with a ``project_id``;
    ``client_factory(service_account)`` returns a ComputeClient;
    ``status_patcher(bastion)`` persists the bastion's status fields.
    """

    def __init__(
        self,
        service_account_getter: Callable[[Bastion], Any],
        client_factory: Callable[[Any], ComputeClient],
        status_patcher: Callable[[Bastion], None],
    ) -> None:
        self._service_account_getter = service_account_getter
        self._client_factory = client_factory
        self._status_patcher = status_patcher

    def _prepare(self, bastion: Bastion, cluster: Cluster) -> tuple[ComputeClient, Options]:
        with _wrapped("failed to get service account"):
            service_account = self._service_account_getter(bastion)
        with _wrapped("failed to create GCP client"):
            client = self._client_factory(service_account)
        with _wrapped("failed to determine Options"):
            opt = determine_options(bastion, cluster, service_account.project_id)
        if not opt.zone:
            opt.zone = get_default_zone(client, opt, cluster.region)
        return client, opt

    def reconcile(self, bastion: Bastion, cluster: Cluster) -> None:
        """Ensure the bastion's firewall rules, disk and instance exist and publish its endpoint."""
        client, opt = self._prepare(bastion, cluster)

        bastion.provider_status = marshal_provider_status(opt.zone)
        try:
            self._status_patcher(bastion)
        except Exception as exc:
            raise RuntimeError(f"failed to store status.providerStatus for zone: {opt.zone}") from exc

        with _wrapped("failed to ensure firewall rule"):
            ensure_firewall_rules(client, bastion, opt)

        ensure_disk(client, opt)
        instance = ensure_compute_instance(client, bastion, opt)
        endpoints = get_instance_endpoints(instance)

        if not endpoints.ready():
            raise RequeueAfterError(
                RuntimeError("bastion instance has no public/private endpoints yet"),
                _REQUEUE_WAIT_FOR_ENDPOINTS,
            )

        bastion.status_ingress = endpoints.public
        self._status_patcher(bastion)

    def delete(self, bastion: Bastion, cluster: Cluster) -> None:
        """Remove the bastion instance, then its disk and firewall rules."""
        client, opt = self._prepare(bastion, cluster)

        with _wrapped("failed to remove bastion instance"):
            remove_bastion_instance(client, opt)

        with _wrapped("failed to check for bastion instance"):
            deleted = is_instance_deleted(client, opt)

        if not deleted:
            raise RequeueAfterError(
                RuntimeError("bastion instance is still deleting"),
                _REQUEUE_WAIT_FOR_DELETION,
            )

        with _wrapped("failed to remove disk"):
            remove_disk(client, opt)

        with _wrapped("failed to remove firewall rule"):
            remove_firewall_rules(client, opt)


def ensure_firewall_rules(client: ComputeClient, bastion: Bastion, opt: Options) -> None:
    """Create the bastion firewall rules and keep the SSH source ranges up to date."""
    cidrs = ingress_permissions(bastion)

    for rule in (ingress_allow_ssh(opt, cidrs), egress_deny_all(opt), egress_allow_only(opt)):
        create_firewall_rule_if_not_exist(client, opt, rule)

    ssh_rule_name = ingress_allow_ssh(opt, cidrs)["name"]
    try:
        firewall = get_firewall_rule(client, opt, ssh_rule_name)
    except Exception as exc:
        raise RuntimeError(f"could not get firewall rule: {exc}") from exc
    if firewall is None:
        raise RuntimeError("could not get firewall rule")

    current = list(firewall.get("sourceRanges") or [])
    if current != cidrs:
        patch_firewall_rule(client, opt, ssh_rule_name, cidrs)


def ensure_compute_instance(client: ComputeClient, bastion: Bastion, opt: Options) -> dict[str, Any]:
    """Return the bastion instance, creating it first if it does not exist."""
    instance = get_bastion_instance(client, opt)
    if instance is not None:
        return instance

    logger.info("Creating new bastion compute instance")
    try:
        client.insert_instance(opt.project_id, opt.zone, compute_instance_define(opt, bastion.user_data))
    except Exception as exc:
        raise RuntimeError(f"failed to create bastion compute instance: {exc}") from exc

    instance = get_bastion_instance(client, opt)
    if instance is None:
        raise RuntimeError("failed to get (create) bastion compute instance")
    return instance


def ensure_disk(client: ComputeClient, opt: Options) -> None:
    """Create the bastion boot disk if it does not exist."""
    if get_disk(client, opt) is not None:
        return

    logger.info("create new bastion compute instance disk")
    try:
        client.insert_disk(opt.project_id, opt.zone, disk_define(opt.zone, opt.disk_name))
    except Exception as exc:
        raise RuntimeError(f"failed to create compute instance disk: {exc}") from exc

    if get_disk(client, opt) is None:
        raise RuntimeError("failed to get (create) compute instance disk")


def get_instance_endpoints(instance: dict[str, Any] | None) -> BastionEndpoints:
    """Read the private and public endpoints from a running instance."""
    if instance is None:
        raise ValueError("compute instance can't be nil")

    status = instance.get("status", "")
    if status != "RUNNING":
        raise RuntimeError(f"instance not running, status: {status}")

    name = instance.get("name", "")
    interfaces = instance.get("networkInterfaces") or []
    if not interfaces:
        raise RuntimeError(f"no network interfaces found: {name}")

    first = interfaces[0]
    internal_ip = first.get("networkIP", "")

    access_configs = first.get("accessConfigs") or []
    if not access_configs:
        raise RuntimeError(f"no access config found for network interface: {name}")

    external_ip = access_configs[0].get("natIP", "")

    # GCP assigns no public DNS name, so the public endpoint is the IP alone.
    return BastionEndpoints(
        private=address_to_ingress(name, internal_ip),
        public=address_to_ingress(None, external_ip),
    )


def ingress_ready(ingress: LoadBalancerIngress | None) -> bool:
    """True if an IP or a hostname or both are set."""
    return ingress is not None and bool(ingress.hostname or ingress.ip)


def address_to_ingress(dns_name: str | None, ip_address: str | None) -> LoadBalancerIngress | None:
    """Build an ingress from a hostname and an IP; None if both are None."""
    if dns_name is None and ip_address is None:
        return None
    return LoadBalancerIngress(hostname=dns_name or "", ip=ip_address or "")


def compute_instance_define(opt: Options, user_data: bytes | str) -> dict[str, Any]:
    """The instance resource for a new bastion host."""
    startup_script = user_data.decode("utf-8", errors="replace") if isinstance(user_data, bytes) else user_data
    return {
        "disks": [
            {
                "autoDelete": True,
                "boot": True,
                "diskSizeGb": 10,
                "source": f"projects/{opt.project_id}/zones/{opt.zone}/disks/{opt.disk_name}",
                "mode": "READ_WRITE",
            }
        ],
        "deletionProtection": False,
        "description": "Bastion Instance",
        "name": opt.bastion_instance_name,
        "zone": opt.zone,
        "machineType": f"zones/{opt.zone}/machineTypes/n1-standard-1",
        "networkInterfaces": [
            {
                "network": opt.network,
                "subnetwork": opt.subnetwork,
                "accessConfigs": [{"name": "External NAT", "type": "ONE_TO_ONE_NAT"}],
            }
        ],
        "tags": {"items": [opt.bastion_instance_name]},
        "metadata": {
            "items": [
                {"key": "startup-script", "value": startup_script},
                {"key": "block-project-ssh-keys", "value": "TRUE"},
            ]
        },
    }


def disk_define(zone: str, disk_name: str) -> dict[str, Any]:
    """The boot disk resource for a new bastion host."""
    return {
        "description": "Gardenctl Bastion disk",
        "name": disk_name,
        "sizeGb": 10,
        "sourceImage": "projects/debian-cloud/global/images/family/debian-10",
        "zone": zone,
    }