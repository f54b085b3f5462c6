"""Validation of infrastructure provider configuration against the cloud."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """The kind of a field validation error."""

    NOT_FOUND = "FieldValueNotFound"
    INVALID = "FieldValueInvalid"
    INTERNAL = "InternalError"


@dataclass(frozen=True)
class FieldError:
    """One validation error for a field path."""

    type: ErrorType
    field: str
    bad_value: Any = None
    detail: str = ""


@dataclass
class Infrastructure:
    """An infrastructure resource with its JSON provider config."""

    name: str
    namespace: str
    region: str
    provider_config: bytes | str | None = None
    secret_ref: Any = None


class ComputeClient(Protocol):
    """The compute operations the config validator relies on."""

    def get_external_addresses(self, region: str) -> Mapping[str, list[str] | None]:
        """Return the region's external address names mapped to the names of their users."""


def _infrastructure_config(infra: Infrastructure) -> dict[str, Any]:
    if infra.provider_config is None:
        raise ValueError("provider config is not set on the infrastructure resource")
    try:
        config = json.loads(infra.provider_config)
    except ValueError as exc:
        raise ValueError(f"could not decode provider config: {exc}") from exc
    if not isinstance(config, dict):
        raise ValueError("provider config is not a JSON object")
    return config


class ConfigValidator:
    """Checks an infrastructure's provider config against the state in GCP.

    ``client_factory(secret_ref)`` returns a ComputeClient.
    """

    def __init__(self, client_factory: Callable[[Any], ComputeClient]) -> None:
        self._client_factory = client_factory

    def validate(self, infra: Infrastructure) -> list[FieldError]:
        """Return all errors found in the infrastructure's provider config."""
        try:
            config = _infrastructure_config(infra)
        except Exception as exc:
            return [FieldError(ErrorType.INTERNAL, "", None, str(exc))]

        try:
            client = self._client_factory(infra.secret_ref)
        except Exception as exc:
            return [FieldError(ErrorType.INTERNAL, "", None, str(exc))]

        logger.info("Validating infrastructure networks configuration")
        networks = config.get("networks") or {}
        return self._validate_networks(client, infra.namespace, infra.region, networks, "networks")

    def _validate_networks(
        self,
        client: ComputeClient,
        cluster_name: str,
        region: str,
        networks: Mapping[str, Any],
        path: str,
    ) -> list[FieldError]:
        cloud_nat = networks.get("cloudNAT") or {}
        nat_ip_names = cloud_nat.get("natIPNames") or []
        if not nat_ip_names:
            return []

        try:
            external_addresses = client.get_external_addresses(region)
        except Exception as exc:
            return [
                FieldError(ErrorType.INTERNAL, path, None, f"could not get external IP addresses: {exc}")
            ]

        cloud_router_name = f"{cluster_name}-cloud-router"
        vpc = networks.get("vpc") or {}
        configured_router = (vpc.get("cloudRouter") or {}).get("name") or ""
        if configured_router:
            cloud_router_name = configured_router

        errors = []
        for index, nat_ip in enumerate(nat_ip_names):
            nat_name = nat_ip.get("name", "")
            field_path = f"{path}.cloudNAT.natIPNames[{index}].name"
            if nat_name not in external_addresses:
                errors.append(FieldError(ErrorType.NOT_FOUND, field_path, nat_name))
                continue
            users = list(external_addresses[nat_name] or [])
            if len(users) > 1 or (len(users) == 1 and users[0] != cloud_router_name):
                errors.append(
                    FieldError(
                        ErrorType.INVALID,
                        field_path,
                        nat_name,
                        f"external IP address is already in use by {','.join(users)}",
                    )
                )
        return errors