# gcpprovider

Reconciliation logic for resources on Google Cloud Platform. It covers
bastion hosts, DNS record sets, checks of infrastructure configuration and
the values for the control plane charts.

## Installation

```
pip install .
```

## Modules

- `gcpprovider.bastion_options` works out everything a bastion needs.
  - `determine_options(bastion, cluster, project_id)` builds an `Options`
    from a `Bastion` and a `Cluster`.
  - `generate_bastion_base_resource_name` gives a stable, length-limited
    base name.
  - Helper functions build the resource names: `disk_resource_name`,
    `nodes_resource_name`, `firewall_ingress_allow_ssh_resource_name`,
    `firewall_egress_allow_only_resource_name` and
    `firewall_egress_deny_all_resource_name`.
  - `ingress_permissions` normalises the ingress CIDRs. It accepts IPv4 only.
  - `marshal_provider_status` and `unmarshal_provider_status` convert the
    provider status to and from JSON.
- `gcpprovider.bastion_firewall` builds the firewall rule bodies as
  dictionaries shaped like the GCE resources: `ingress_allow_ssh`,
  `egress_deny_all`, `egress_allow_only` and `patch_cidrs`.
- `gcpprovider.bastion_compute` wraps calls on a `ComputeClient`.
  - A "not found" answer from `get_bastion_instance`, `get_firewall_rule` or
    `get_disk` comes back as `None`.
  - `create_firewall_rule_if_not_exist` ignores conflicts.
  - `get_default_zone` picks the first zone of a region.
  - API failures are represented by `GoogleAPIError`.
- `gcpprovider.bastion_delete` removes the bastion resources:
  `remove_bastion_instance`, `is_instance_deleted`, `remove_disk` and
  `remove_firewall_rules`.
- `gcpprovider.bastion_actuator` contains `BastionActuator`. Its `reconcile`
  and `delete` methods create and remove the firewall rules, the disk and the
  instance. When another pass is needed they raise
  `gcpprovider.requeue.RequeueAfterError`, which carries a `cause` and a
  `requeue_after` delay in seconds.
- `gcpprovider.dnsrecord` contains `DNSRecordActuator`, which creates,
  updates and deletes record sets through a `DNSClient`. The module also has
  `find_zone_for_name` and `get_meta_record_name`.
- `gcpprovider.configvalidator` contains `ConfigValidator`. Its `validate`
  method checks that the configured Cloud NAT IP names exist and are not in
  use by anything other than the cloud router. It returns a list of
  `FieldError` values, each with an `ErrorType`.
- `gcpprovider.controlplane_charts` describes the control plane charts
  (`Chart`, `ChartObject`) and the secrets:
  - `secret_configs`
  - `shoot_access_secrets`
  - `get_shoot_access_secrets_func`
  - `get_legacy_secret_names_to_cleanup`
- `gcpprovider.controlplane_values` computes the chart values, for example
  `get_config_chart_values`, `get_control_plane_chart_values` and
  `get_storage_classes_chart_values`. It also has `compare_versions`, a
  Kubernetes-style version comparison.

## Example

```python
from gcpprovider.bastion_options import generate_bastion_base_resource_name, disk_resource_name
from gcpprovider.dnsrecord import find_zone_for_name

base = generate_bastion_base_resource_name("clusterName", "shortName")
print(base)                      # clusterName-shortName-bastion-79641
print(disk_resource_name(base))  # clusterName-shortName-bastion-79641-disk

zones = {"shoot.example.com": "zone", "example.com": "zone2"}
print(find_zone_for_name(zones, "api.gcp.foobar.shoot.example.com"))  # zone
```

## What this package does not do

- It does not talk to Google Cloud by itself. The caller supplies the
  clients that match the `ComputeClient` and `DNSClient` protocols, together
  with the service account getters and status patchers.
- There is no command, controller manager, webhook server or Kubernetes
  client.
- The control plane modules describe charts and compute their values. They
  do not render or deploy charts.

## Tests

```
pip install .[test]
pytest
```