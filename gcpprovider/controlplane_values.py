"""Chart values for the GCP control plane components."""

from __future__ import annotations

import operator as _op
from collections.abc import Callable, Mapping
from typing import Any

from packaging.version import InvalidVersion, Version

from gcpprovider.controlplane_charts import (
    CLOUD_CONTROLLER_MANAGER_DEPLOYMENT_NAME,
    CLOUD_CONTROLLER_MANAGER_NAME,
    CLOUD_CONTROLLER_MANAGER_SERVER_NAME,
    CLOUD_PROVIDER_CONFIG_NAME,
    CSI_ATTACHER_NAME,
    CSI_CONTROLLER_NAME,
    CSI_NODE_NAME,
    CSI_PROVISIONER_NAME,
    CSI_RESIZER_NAME,
    CSI_SNAPSHOT_CONTROLLER_NAME,
    CSI_SNAPSHOTTER_NAME,
)

# Kubernetes version from which the CSI driver replaces the in-tree volume plugin.
CSI_MIGRATION_KUBERNETES_VERSION = "1.18"

SECRET_NAME_CLOUD_PROVIDER = "cloudprovider"
LABEL_POD_MAINTENANCE_RESTART = "maintenance.gardener.cloud/restart"
PURPOSE_INTERNAL = "internal"

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<": _op.lt,
    "<=": _op.le,
    ">": _op.gt,
    ">=": _op.ge,
    "=": _op.eq,
    "==": _op.eq,
    "!=": _op.ne,
}


def _parse_version(text: str) -> Version:
    normalized = text.strip().lstrip("vV")
    for separator in "-+":
        normalized = normalized.split(separator, 1)[0]
    if not normalized:
        raise ValueError(f"invalid version {text!r}")
    try:
        return Version(normalized)
    except InvalidVersion as exc:
        raise ValueError(f"invalid version {text!r}: {exc}") from exc


def compare_versions(version_a: str, operator: str, version_b: str) -> bool:
    """Compare two versions, ignoring a leading "v" and any pre-release or build suffix."""
    compare = _OPERATORS.get(operator.strip())
    if compare is None:
        raise ValueError(f"unsupported comparison operator {operator!r}")
    return compare(_parse_version(version_a), _parse_version(version_b))


def _less_than_csi_migration(kubernetes_version: str) -> bool:
    return compare_versions(kubernetes_version, "<", CSI_MIGRATION_KUBERNETES_VERSION)


def get_network_names(infra_status: Mapping[str, Any], namespace: str) -> tuple[str, str]:
    """Return the network and internal sub-network names of the infrastructure."""
    networks = infra_status.get("networks") or {}
    vpc = networks.get("vpc") or {}
    network_name = vpc.get("name") or namespace

    sub_network_name = ""
    for subnet in networks.get("subnets") or []:
        if subnet.get("purpose") == PURPOSE_INTERNAL:
            sub_network_name = subnet.get("name") or ""
            break

    return network_name, sub_network_name


def get_config_chart_values(
    cp_config: Mapping[str, Any],
    infra_status: Mapping[str, Any],
    namespace: str,
    project_id: str,
) -> dict[str, Any]:
    """Return the values of the cloud provider config chart."""
    network_name, sub_network_name = get_network_names(infra_status, namespace)
    return {
        "projectID": project_id,
        "networkName": network_name,
        "subNetworkName": sub_network_name,
        "zone": cp_config.get("zone", ""),
        "nodeTags": namespace,
    }


def get_ccm_chart_values(
    cp_config: Mapping[str, Any],
    namespace: str,
    kubernetes_version: str,
    replicas: int,
    pod_network: str,
    checksums: Mapping[str, str],
    tls_cipher_suites: list[str],
) -> dict[str, Any]:
    """Return the values of the cloud controller manager chart."""
    _parse_version(kubernetes_version)

    values: dict[str, Any] = {
        "enabled": True,
        "replicas": replicas,
        "clusterName": namespace,
        "kubernetesVersion": kubernetes_version,
        "podNetwork": pod_network,
        "podAnnotations": {
            f"checksum/secret-{CLOUD_CONTROLLER_MANAGER_NAME}": checksums.get(
                CLOUD_CONTROLLER_MANAGER_DEPLOYMENT_NAME, ""
            ),
            f"checksum/secret-{CLOUD_CONTROLLER_MANAGER_NAME}-server": checksums.get(
                CLOUD_CONTROLLER_MANAGER_SERVER_NAME, ""
            ),
            f"checksum/secret-{SECRET_NAME_CLOUD_PROVIDER}": checksums.get(SECRET_NAME_CLOUD_PROVIDER, ""),
            f"checksum/configmap-{CLOUD_PROVIDER_CONFIG_NAME}": checksums.get(CLOUD_PROVIDER_CONFIG_NAME, ""),
        },
        "podLabels": {LABEL_POD_MAINTENANCE_RESTART: "true"},
        "tlsCipherSuites": list(tls_cipher_suites),
    }

    ccm_config = cp_config.get("cloudControllerManager")
    if ccm_config is not None:
        values["featureGates"] = ccm_config.get("featureGates")

    return values


def get_csi_controller_chart_values(
    cp_config: Mapping[str, Any],
    kubernetes_version: str,
    replicas: int,
    project_id: str,
    checksums: Mapping[str, str],
) -> dict[str, Any]:
    """Return the values of the CSI controller chart; disabled before CSI migration."""
    if _less_than_csi_migration(kubernetes_version):
        return {"enabled": False}

    return {
        "enabled": True,
        "replicas": replicas,
        "projectID": project_id,
        "zone": cp_config.get("zone", ""),
        "podAnnotations": {
            f"checksum/secret-{name}": checksums.get(name, "")
            for name in (
                CSI_PROVISIONER_NAME,
                CSI_ATTACHER_NAME,
                CSI_SNAPSHOTTER_NAME,
                CSI_RESIZER_NAME,
                SECRET_NAME_CLOUD_PROVIDER,
            )
        },
        "csiSnapshotController": {
            "replicas": replicas,
            "podAnnotations": {
                f"checksum/secret-{CSI_SNAPSHOT_CONTROLLER_NAME}": checksums.get(CSI_SNAPSHOT_CONTROLLER_NAME, ""),
            },
        },
    }


def get_control_plane_chart_values(
    cp_config: Mapping[str, Any],
    namespace: str,
    kubernetes_version: str,
    replicas: int,
    pod_network: str,
    project_id: str,
    checksums: Mapping[str, str],
    tls_cipher_suites: list[str],
    use_token_requestor: bool,
) -> dict[str, Any]:
    """Return the values of the seed control plane chart."""
    ccm = get_ccm_chart_values(
        cp_config, namespace, kubernetes_version, replicas, pod_network, checksums, tls_cipher_suites
    )
    csi = get_csi_controller_chart_values(cp_config, kubernetes_version, replicas, project_id, checksums)
    return {
        "global": {"useTokenRequestor": use_token_requestor},
        CLOUD_CONTROLLER_MANAGER_NAME: ccm,
        CSI_CONTROLLER_NAME: csi,
    }


def get_control_plane_shoot_chart_values(
    kubernetes_version: str,
    use_token_requestor: bool,
    use_projected_token_mount: bool,
    vpa_enabled: bool,
) -> dict[str, Any]:
    """Return the values of the shoot system components chart."""
    less_than_csi = _less_than_csi_migration(kubernetes_version)
    return {
        "global": {
            "useTokenRequestor": use_token_requestor,
            "useProjectedTokenMount": use_projected_token_mount,
        },
        CLOUD_CONTROLLER_MANAGER_NAME: {"enabled": True},
        CSI_NODE_NAME: {
            "enabled": not less_than_csi,
            "kubernetesVersion": kubernetes_version,
            "vpaEnabled": vpa_enabled,
        },
    }


def get_control_plane_shoot_crds_chart_values(kubernetes_version: str) -> dict[str, Any]:
    """Return the values of the shoot CRDs chart."""
    return {"volumesnapshots": {"enabled": not _less_than_csi_migration(kubernetes_version)}}


def get_storage_classes_chart_values(kubernetes_version: str) -> dict[str, Any]:
    """Return the values of the storage classes chart."""
    return {"useLegacyProvisioner": _less_than_csi_migration(kubernetes_version)}