"""Charts, secret configurations and shoot access secrets of the GCP control plane."""

from __future__ import annotations

import posixpath
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum

# Component and object names used by the control plane charts.
CLOUD_CONTROLLER_MANAGER_NAME = "cloud-controller-manager"
CLOUD_CONTROLLER_MANAGER_DEPLOYMENT_NAME = "cloud-controller-manager"
CLOUD_CONTROLLER_MANAGER_SERVER_NAME = "cloud-controller-manager-server"
CLOUD_PROVIDER_CONFIG_NAME = "cloud-provider-config"

CSI_CONTROLLER_NAME = "csi-driver-controller"
CSI_CONTROLLER_CONFIG_NAME = "csi-driver-controller-config"
CSI_CONTROLLER_OBSERVABILITY_CONFIG_NAME = "csi-driver-controller-observability-config"
CSI_NODE_NAME = "csi-driver-node"
CSI_DRIVER_NAME = "csi-driver"
CSI_PROVISIONER_NAME = "csi-provisioner"
CSI_ATTACHER_NAME = "csi-attacher"
CSI_SNAPSHOTTER_NAME = "csi-snapshotter"
CSI_RESIZER_NAME = "csi-resizer"
CSI_SNAPSHOT_CONTROLLER_NAME = "csi-snapshot-controller"

CLOUD_CONTROLLER_MANAGER_IMAGE_NAME = "cloud-controller-manager"
CSI_DRIVER_IMAGE_NAME = "csi-driver"
CSI_PROVISIONER_IMAGE_NAME = "csi-provisioner"
CSI_ATTACHER_IMAGE_NAME = "csi-attacher"
CSI_SNAPSHOTTER_IMAGE_NAME = "csi-snapshotter"
CSI_RESIZER_IMAGE_NAME = "csi-resizer"
CSI_LIVENESS_PROBE_IMAGE_NAME = "csi-liveness-probe"
CSI_SNAPSHOT_CONTROLLER_IMAGE_NAME = "csi-snapshot-controller"
CSI_NODE_DRIVER_REGISTRAR_IMAGE_NAME = "csi-node-driver-registrar"

USERNAME_PREFIX = "system:extension:provider-gcp:"
INTERNAL_CHARTS_PATH = posixpath.join("charts", "internal")

SECRET_NAME_CA_CLUSTER = "ca"
DEPLOYMENT_NAME_KUBE_APISERVER = "kube-apiserver"
SYSTEM_PRIVILEGED_GROUP = "system:masters"
SHOOT_ACCESS_SECRET_PREFIX = "shoot-access-"


class CertType(str, Enum):
    """The kind of certificate a secret holds."""

    CA = "ca"
    SERVER = "server"
    CLIENT = "client"


@dataclass(frozen=True)
class ChartObject:
    """An object a chart renders, identified by kind and name."""

    kind: str
    name: str


@dataclass
class Chart:
    """A chart with its images, objects and sub-charts."""

    name: str
    path: str = ""
    images: list[str] = field(default_factory=list)
    objects: list[ChartObject] = field(default_factory=list)
    sub_charts: list[Chart] = field(default_factory=list)

    def iter_objects(self) -> Iterator[ChartObject]:
        """Yield this chart's objects, then those of its sub-charts."""
        yield from self.objects
        for sub in self.sub_charts:
            yield from sub.iter_objects()

    def iter_images(self) -> Iterator[str]:
        """Yield this chart's images, then those of its sub-charts."""
        yield from self.images
        for sub in self.sub_charts:
            yield from sub.iter_images()


@dataclass(frozen=True)
class SecretConfig:
    """How a certificate secret, and optionally a kubeconfig for it, is generated."""

    name: str
    common_name: str
    cert_type: CertType
    dns_names: tuple[str, ...] = ()
    organization: tuple[str, ...] = ()
    signing_ca: str | None = None
    kubeconfig_cluster_name: str | None = None
    api_server_host: str | None = None


@dataclass(frozen=True)
class ShootAccessSecret:
    """A secret giving a control plane component access to the shoot."""

    service_account_name: str
    namespace: str

    @property
    def secret_name(self) -> str:
        return SHOOT_ACCESS_SECRET_PREFIX + self.service_account_name


CA_SECRET_CONFIG = SecretConfig(
    name=SECRET_NAME_CA_CLUSTER,
    common_name="kubernetes",
    cert_type=CertType.CA,
)

_CSI_COMPONENTS = (
    CSI_PROVISIONER_NAME,
    CSI_ATTACHER_NAME,
    CSI_SNAPSHOTTER_NAME,
    CSI_RESIZER_NAME,
    CSI_SNAPSHOT_CONTROLLER_NAME,
)

_LEGACY_SECRET_NAMES_TO_CLEANUP = (CLOUD_CONTROLLER_MANAGER_DEPLOYMENT_NAME, *_CSI_COMPONENTS)


def _dns_names_for_service(name: str, namespace: str) -> tuple[str, ...]:
    return (
        name,
        f"{name}.{namespace}",
        f"{name}.{namespace}.svc",
        f"{name}.{namespace}.svc.cluster.local",
    )


def _client_config(name: str, common_name: str, cluster_name: str, organization: tuple[str, ...] = ()) -> SecretConfig:
    return SecretConfig(
        name=name,
        common_name=common_name,
        cert_type=CertType.CLIENT,
        organization=organization,
        signing_ca=SECRET_NAME_CA_CLUSTER,
        kubeconfig_cluster_name=cluster_name,
        api_server_host=DEPLOYMENT_NAME_KUBE_APISERVER,
    )


def secret_configs(use_token_requestor: bool, cluster_name: str) -> list[SecretConfig]:
    """Return the secrets to generate for the cluster, all signed by the cluster CA.

    Without the token requestor, client certificates with kubeconfigs are added
    for the cloud controller manager and each CSI component.
    """
    configs = [
        SecretConfig(
            name=CLOUD_CONTROLLER_MANAGER_SERVER_NAME,
            common_name=CLOUD_CONTROLLER_MANAGER_DEPLOYMENT_NAME,
            cert_type=CertType.SERVER,
            dns_names=_dns_names_for_service(CLOUD_CONTROLLER_MANAGER_DEPLOYMENT_NAME, cluster_name),
            signing_ca=SECRET_NAME_CA_CLUSTER,
        )
    ]
    if not use_token_requestor:
        configs.append(
            _client_config(
                CLOUD_CONTROLLER_MANAGER_DEPLOYMENT_NAME,
                "system:cloud-controller-manager",
                cluster_name,
                organization=(SYSTEM_PRIVILEGED_GROUP,),
            )
        )
        configs.extend(
            _client_config(component, USERNAME_PREFIX + component, cluster_name)
            for component in _CSI_COMPONENTS
        )
    return configs


def shoot_access_secrets(namespace: str) -> list[ShootAccessSecret]:
    """Return the shoot access secrets for the control plane components."""
    return [ShootAccessSecret(name, namespace) for name in _LEGACY_SECRET_NAMES_TO_CLEANUP]


def get_shoot_access_secrets_func(
    use_token_requestor: bool,
) -> Callable[[str], list[ShootAccessSecret]] | None:
    """Return shoot_access_secrets when the token requestor is used, else None."""
    return shoot_access_secrets if use_token_requestor else None


def get_legacy_secret_names_to_cleanup(use_token_requestor: bool) -> list[str] | None:
    """Return the legacy secret names to delete when the token requestor is used, else None."""
    return list(_LEGACY_SECRET_NAMES_TO_CLEANUP) if use_token_requestor else None


def _csi_rbac_objects(component: str) -> list[ChartObject]:
    name = USERNAME_PREFIX + component
    return [
        ChartObject("ClusterRole", name),
        ChartObject("ClusterRoleBinding", name),
        ChartObject("Role", name),
        ChartObject("RoleBinding", name),
    ]


CONFIG_CHART = Chart(
    name="cloud-provider-config",
    path=posixpath.join(INTERNAL_CHARTS_PATH, "cloud-provider-config"),
    objects=[ChartObject("ConfigMap", CLOUD_PROVIDER_CONFIG_NAME)],
)

CONTROL_PLANE_CHART = Chart(
    name="seed-controlplane",
    path=posixpath.join(INTERNAL_CHARTS_PATH, "seed-controlplane"),
    sub_charts=[
        Chart(
            name=CLOUD_CONTROLLER_MANAGER_NAME,
            images=[CLOUD_CONTROLLER_MANAGER_IMAGE_NAME],
            objects=[
                ChartObject("Service", "cloud-controller-manager"),
                ChartObject("Deployment", "cloud-controller-manager"),
                ChartObject("ConfigMap", "cloud-controller-manager-observability-config"),
                ChartObject("VerticalPodAutoscaler", "cloud-controller-manager-vpa"),
            ],
        ),
        Chart(
            name=CSI_CONTROLLER_NAME,
            images=[
                CSI_DRIVER_IMAGE_NAME,
                CSI_PROVISIONER_IMAGE_NAME,
                CSI_ATTACHER_IMAGE_NAME,
                CSI_SNAPSHOTTER_IMAGE_NAME,
                CSI_RESIZER_IMAGE_NAME,
                CSI_LIVENESS_PROBE_IMAGE_NAME,
                CSI_SNAPSHOT_CONTROLLER_IMAGE_NAME,
            ],
            objects=[
                ChartObject("Deployment", CSI_CONTROLLER_NAME),
                ChartObject("ConfigMap", CSI_CONTROLLER_CONFIG_NAME),
                ChartObject("ConfigMap", CSI_CONTROLLER_OBSERVABILITY_CONFIG_NAME),
                ChartObject("VerticalPodAutoscaler", CSI_CONTROLLER_NAME + "-vpa"),
                ChartObject("Deployment", CSI_SNAPSHOT_CONTROLLER_NAME),
                ChartObject("VerticalPodAutoscaler", CSI_SNAPSHOT_CONTROLLER_NAME + "-vpa"),
            ],
        ),
    ],
)

CONTROL_PLANE_SHOOT_CHART = Chart(
    name="shoot-system-components",
    path=posixpath.join(INTERNAL_CHARTS_PATH, "shoot-system-components"),
    sub_charts=[
        Chart(
            name="cloud-controller-manager",
            path=posixpath.join(INTERNAL_CHARTS_PATH, "cloud-controller-manager"),
            objects=[
                ChartObject("ClusterRole", "system:controller:cloud-node-controller"),
                ChartObject("ClusterRoleBinding", "system:controller:cloud-node-controller"),
                ChartObject("ClusterRole", "gce:cloud-provider"),
                ChartObject("ClusterRoleBinding", "gce:cloud-provider"),
            ],
        ),
        Chart(
            name=CSI_NODE_NAME,
            images=[
                CSI_DRIVER_IMAGE_NAME,
                CSI_NODE_DRIVER_REGISTRAR_IMAGE_NAME,
                CSI_LIVENESS_PROBE_IMAGE_NAME,
            ],
            objects=[
                ChartObject("DaemonSet", CSI_NODE_NAME),
                ChartObject("CSIDriver", "pd.csi.storage.gke.io"),
                ChartObject("ServiceAccount", CSI_DRIVER_NAME),
                ChartObject("ClusterRole", USERNAME_PREFIX + CSI_DRIVER_NAME),
                ChartObject("ClusterRoleBinding", USERNAME_PREFIX + CSI_DRIVER_NAME),
                ChartObject("PodSecurityPolicy", (USERNAME_PREFIX + CSI_DRIVER_NAME).replace(":", ".")),
                ChartObject("VerticalPodAutoscaler", CSI_NODE_NAME),
                *_csi_rbac_objects(CSI_PROVISIONER_NAME),
                *_csi_rbac_objects(CSI_ATTACHER_NAME),
                *_csi_rbac_objects(CSI_SNAPSHOT_CONTROLLER_NAME),
                *_csi_rbac_objects(CSI_SNAPSHOTTER_NAME),
                *_csi_rbac_objects(CSI_RESIZER_NAME),
            ],
        ),
    ],
)

CONTROL_PLANE_SHOOT_CRDS_CHART = Chart(
    name="shoot-crds",
    path=posixpath.join(INTERNAL_CHARTS_PATH, "shoot-crds"),
    sub_charts=[
        Chart(
            name="volumesnapshots",
            objects=[
                ChartObject("CustomResourceDefinition", "volumesnapshotclasses.snapshot.storage.k8s.io"),
                ChartObject("CustomResourceDefinition", "volumesnapshotcontents.snapshot.storage.k8s.io"),
                ChartObject("CustomResourceDefinition", "volumesnapshots.snapshot.storage.k8s.io"),
            ],
        )
    ],
)

STORAGE_CLASS_CHART = Chart(
    name="shoot-storageclasses",
    path=posixpath.join(INTERNAL_CHARTS_PATH, "shoot-storageclasses"),
)