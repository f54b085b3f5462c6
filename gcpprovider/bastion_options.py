"""Options and naming rules for bastion hosts on GCP."""

from __future__ import annotations

import hashlib
import ipaddress
import json
from dataclasses import dataclass, field
from typing import Any

# The base name is used to derive other GCP resource names, each of which
# must fit into 63 characters.
MAX_LENGTH_FOR_BASE_NAME = 33
MAX_LENGTH_FOR_RESOURCE = 63


@dataclass
class Region:
    """A cloud profile region with its availability zones, in order."""

    name: str
    zones: list[str] = field(default_factory=list)


@dataclass
class Cluster:
    """The parts of a shoot cluster that bastion handling needs."""

    name: str
    region: str = ""
    infrastructure_config: bytes | str | None = None
    regions: list[Region] = field(default_factory=list)


@dataclass
class Bastion:
    """A bastion resource: ingress CIDRs, user data and stored provider status."""

    name: str
    namespace: str = ""
    ingress: list[str] = field(default_factory=list)
    user_data: bytes = b""
    provider_status: bytes | None = None
    status_ingress: Any = None


@dataclass
class ProviderStatus:
    """Provider-specific status stored on the bastion resource."""

    zone: str = ""


@dataclass
class Options:
    """Everything needed to set up a bastion instance on GCP."""

    bastion_instance_name: str
    disk_name: str
    zone: str
    subnetwork: str
    project_id: str
    network: str
    workers_cidr: str


def determine_options(bastion: Bastion, cluster: Cluster, project_id: str) -> Options:
    """Compute the options for reconciling a bastion; creates no resources."""
    provider_status = get_provider_status(bastion)
    cluster_name = cluster.name
    base_name = generate_bastion_base_resource_name(cluster_name, bastion.name)
    workers_cidr = get_workers_cidr(cluster)
    network = get_network_name(cluster, project_id, cluster_name)
    region = cluster.region
    return Options(
        bastion_instance_name=base_name,
        zone=get_zone(cluster, region, provider_status),
        disk_name=disk_resource_name(base_name),
        subnetwork=f"regions/{region}/subnetworks/{nodes_resource_name(cluster_name)}",
        project_id=project_id,
        network=network,
        workers_cidr=workers_cidr,
    )


def get_zone(cluster: Cluster, region: str, provider_status: ProviderStatus | None) -> str:
    """Return the stored zone, or the first zone of the region, or ""."""
    if provider_status is not None:
        return provider_status.zone
    for candidate in cluster.regions:
        if candidate.name == region and candidate.zones:
            return candidate.zones[0]
    return ""


def _networks(cluster: Cluster) -> dict[str, Any]:
    raw = cluster.infrastructure_config
    if raw is None:
        raise ValueError("cluster has no infrastructure config")
    config = json.loads(raw)
    if not isinstance(config, dict):
        raise ValueError("infrastructure config is not a JSON object")
    networks = config.get("networks") or {}
    if not isinstance(networks, dict):
        raise ValueError("infrastructure config networks is not a JSON object")
    return networks


def get_workers_cidr(cluster: Cluster) -> str:
    """Return the workers CIDR from the cluster's infrastructure config."""
    return _networks(cluster).get("workers") or ""


def get_network_name(cluster: Cluster, project_id: str, cluster_name: str) -> str:
    """Return the VPC network path, defaulting to a network named after the cluster."""
    vpc = _networks(cluster).get("vpc")
    name = (vpc.get("name") or "") if isinstance(vpc, dict) else cluster_name
    return f"projects/{project_id}/global/networks/{name}"


def ingress_permissions(bastion: Bastion) -> list[str]:
    """Return the bastion's ingress CIDRs normalised; only IPv4 is accepted."""
    cidrs = []
    for cidr in bastion.ingress:
        if "/" not in cidr:
            raise ValueError(f"invalid ingress CIDR {cidr!r}: missing prefix length")
        try:
            network = ipaddress.ip_network(cidr, strict=False)
        except ValueError as exc:
            raise ValueError(f"invalid ingress CIDR {cidr!r}: {exc}") from exc
        if network.version != 4:
            raise ValueError("IPv6 is currently not fully supported")
        cidrs.append(str(network))
    return cidrs


def generate_bastion_base_resource_name(cluster_name: str, bastion_name: str) -> str:
    """Derive a stable, length-limited base name from cluster and bastion names."""
    if not cluster_name:
        raise ValueError("clusterName can't be empty")
    if not bastion_name:
        raise ValueError("bastionName can't be empty")

    static_name = f"{cluster_name}-{bastion_name}"
    digest = hashlib.sha256(static_name.encode("utf-8")).hexdigest()
    if len(static_name) > MAX_LENGTH_FOR_BASE_NAME:
        truncated = static_name.encode("utf-8")[:MAX_LENGTH_FOR_BASE_NAME]
        static_name = truncated.decode("utf-8", errors="ignore")
    return f"{static_name}-bastion-{digest[:5]}"


def get_provider_status(bastion: Bastion) -> ProviderStatus | None:
    """Return the provider status stored on the bastion, if any."""
    if bastion.provider_status is not None:
        return unmarshal_provider_status(bastion.provider_status)
    return None


def marshal_provider_status(zone: str) -> bytes:
    """Encode the provider status as compact JSON."""
    return json.dumps({"zone": zone}, separators=(",", ":")).encode("utf-8")


def unmarshal_provider_status(data: bytes | str) -> ProviderStatus:
    """Decode a provider status from JSON."""
    try:
        decoded = json.loads(data)
    except ValueError as exc:
        raise ValueError("failed to parse json for status.ProviderStatus") from exc
    if not isinstance(decoded, dict):
        raise ValueError("failed to parse json for status.ProviderStatus")
    zone = decoded.get("zone")
    if zone is None:
        zone = ""
    if not isinstance(zone, str):
        raise ValueError("failed to parse json for status.ProviderStatus")
    return ProviderStatus(zone=zone)


def disk_resource_name(base_name: str) -> str:
    return f"{base_name}-disk"


def nodes_resource_name(base_name: str) -> str:
    return f"{base_name}-nodes"


def firewall_ingress_allow_ssh_resource_name(base_name: str) -> str:
    return f"{base_name}-allow-ssh"


def firewall_egress_allow_only_resource_name(base_name: str) -> str:
    return f"{base_name}-egress-worker"


def firewall_egress_deny_all_resource_name(base_name: str) -> str:
    return f"{base_name}-deny-all"