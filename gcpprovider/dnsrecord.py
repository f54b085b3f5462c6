"""Reconciliation of DNS records in Google Cloud DNS managed zones."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from gcpprovider.requeue import RequeueAfterError

logger = logging.getLogger(__name__)

# Wait this long after provider errors so that configuration problems do not
# exhaust the account's rate limits through quick retries.
REQUEUE_AFTER_ON_PROVIDER_ERROR = 30.0

DEFAULT_TTL = 120
LAST_OPERATION_TYPE_CREATE = "Create"


@dataclass
class DNSRecord:
    """A DNS record resource: what is wanted in ``record_name`` and where it lives."""

    name: str
    namespace: str
    record_name: str
    record_type: str
    values: list[str] = field(default_factory=list)
    secret_ref: Any = None
    ttl: int | None = None
    zone: str | None = None
    status_zone: str | None = None
    last_operation_type: str | None = None


class DNSClient(Protocol):
    """The Cloud DNS operations the DNS record controller relies on."""

    def get_managed_zones(self) -> dict[str, str]:
        """Return a mapping of zone DNS name to managed zone identifier."""

    def create_or_update_record_set(
        self, managed_zone: str, name: str, record_type: str, values: list[str], ttl: int
    ) -> None:
        """Create the record set, or replace it if it already exists."""

    def delete_record_set(self, managed_zone: str, name: str, record_type: str) -> None:
        """Delete the record set; a missing one is not an error."""


def get_meta_record_name(name: str) -> str:
    """Return the name of the TXT meta record belonging to ``name``."""
    if name.startswith("*."):
        return "*.comment-" + name[2:]
    return "comment-" + name


def find_zone_for_name(zones: Mapping[str, str], name: str) -> str:
    """Return the id of the longest zone whose name is ``name`` or a suffix of it, or ""."""
    best_name, best_id = "", ""
    for zone_name, zone_id in zones.items():
        matches = name == zone_name or name.endswith("." + zone_name)
        if matches and len(zone_name) > len(best_name):
            best_name, best_id = zone_name, zone_id
    return best_id


def _format_values(values: list[str]) -> str:
    return "[" + " ".join(values) + "]"


class DNSRecordActuator:
    """Creates, updates and deletes DNS records in Cloud DNS.

    ``client_factory(secret_ref)`` returns a DNSClient;
    ``status_patcher(dns)`` persists the record's status fields.
    """

    def __init__(
        self,
        client_factory: Callable[[Any], DNSClient],
        status_patcher: Callable[[DNSRecord], None],
    ) -> None:
        self._client_factory = client_factory
        self._status_patcher = status_patcher

    def reconcile(self, dns: DNSRecord, cluster: Any) -> None:
        """Create or update the record set and record the managed zone in the status."""
        client = self._client_factory(dns.secret_ref)
        managed_zone = self._get_managed_zone(dns, client)

        ttl = dns.ttl if dns.ttl is not None else DEFAULT_TTL
        logger.info(
            "Creating or updating DNS recordset: managedZone=%s name=%s type=%s rrdatas=%s",
            managed_zone, dns.record_name, dns.record_type, dns.values,
        )
        try:
            client.create_or_update_record_set(
                managed_zone, dns.record_name, dns.record_type, list(dns.values), ttl
            )
        except Exception as exc:
            raise RequeueAfterError(
                RuntimeError(
                    f"could not create or update DNS recordset in managed zone {managed_zone} "
                    f"with name {dns.record_name}, type {dns.record_type}, and rrdatas "
                    f"{_format_values(dns.values)}: {exc}"
                ),
                REQUEUE_AFTER_ON_PROVIDER_ERROR,
            ) from exc

        if dns.last_operation_type is None or dns.last_operation_type == LAST_OPERATION_TYPE_CREATE:
            meta_name, meta_type = get_meta_record_name(dns.record_name), "TXT"
            logger.info(
                "Deleting meta DNS recordset: managedZone=%s name=%s type=%s",
                managed_zone, meta_name, meta_type,
            )
            try:
                client.delete_record_set(managed_zone, meta_name, meta_type)
            except Exception as exc:
                raise RequeueAfterError(
                    RuntimeError(
                        f"could not delete meta DNS recordset in managed zone {managed_zone} "
                        f"with name {meta_name} and type {meta_type}: {exc}"
                    ),
                    REQUEUE_AFTER_ON_PROVIDER_ERROR,
                ) from exc

        dns.status_zone = managed_zone
        self._status_patcher(dns)

    def delete(self, dns: DNSRecord, cluster: Any) -> None:
        """Delete the record set."""
        client = self._client_factory(dns.secret_ref)
        managed_zone = self._get_managed_zone(dns, client)

        logger.info(
            "Deleting DNS recordset: managedZone=%s name=%s type=%s",
            managed_zone, dns.record_name, dns.record_type,
        )
        try:
            client.delete_record_set(managed_zone, dns.record_name, dns.record_type)
        except Exception as exc:
            raise RequeueAfterError(
                RuntimeError(
                    f"could not delete DNS recordset in managed zone {managed_zone} "
                    f"with name {dns.record_name} and type {dns.record_type}: {exc}"
                ),
                REQUEUE_AFTER_ON_PROVIDER_ERROR,
            ) from exc

    def restore(self, dns: DNSRecord, cluster: Any) -> None:
        """Restore the record; the same as reconciling it."""
        self.reconcile(dns, cluster)

    def migrate(self, dns: DNSRecord, cluster: Any) -> None:
        """Nothing needs migrating for DNS records."""
        return None

    def _get_managed_zone(self, dns: DNSRecord, client: DNSClient) -> str:
        if dns.zone:
            return dns.zone
        if dns.status_zone:
            return dns.status_zone
        try:
            zones = client.get_managed_zones()
        except Exception as exc:
            raise RequeueAfterError(
                RuntimeError(f"could not get DNS managed zones: {exc}"),
                REQUEUE_AFTER_ON_PROVIDER_ERROR,
            ) from exc
        logger.info("Got DNS managed zones: %s", zones)
        zone = find_zone_for_name(zones, dns.record_name)
        if not zone:
            raise RuntimeError(f"could not find DNS managed zone for name {dns.record_name}")
        return zone