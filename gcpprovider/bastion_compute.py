"""Thin helpers over the GCE compute API used by the bastion controller."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Protocol

from gcpprovider.bastion_firewall import patch_cidrs
from gcpprovider.bastion_options import Options

logger = logging.getLogger(__name__)


class GoogleAPIError(Exception):
    """An error answer from the Google API, carrying its HTTP status code."""

    def __init__(self, code: int, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"googleapi: Error {code}: {message}")


class ComputeClient(Protocol):
    """The compute operations the bastion controller relies on.

    Resources are plain dictionaries shaped like the GCE REST resources.
    Failures are reported by raising GoogleAPIError.
    """

    def get_instance(self, project: str, zone: str, name: str) -> dict[str, Any]:
        """Return the named instance."""

    def insert_instance(self, project: str, zone: str, instance: dict[str, Any]) -> Any:
        """Create an instance."""

    def delete_instance(self, project: str, zone: str, name: str) -> Any:
        """Delete the named instance."""

    def get_firewall(self, project: str, name: str) -> dict[str, Any]:
        """Return the named firewall rule."""

    def insert_firewall(self, project: str, rule: dict[str, Any]) -> Any:
        """Create a firewall rule."""

    def delete_firewall(self, project: str, name: str) -> Any:
        """Delete the named firewall rule."""

    def patch_firewall(self, project: str, name: str, patch: dict[str, Any]) -> Any:
        """Apply a partial update to a firewall rule."""

    def get_disk(self, project: str, zone: str, name: str) -> dict[str, Any]:
        """Return the named disk."""

    def insert_disk(self, project: str, zone: str, disk: dict[str, Any]) -> Any:
        """Create a disk."""

    def delete_disk(self, project: str, zone: str, name: str) -> Any:
        """Delete the named disk."""

    def get_region(self, project: str, region: str) -> dict[str, Any]:
        """Return the named region."""


def _has_code(exc: BaseException, status: HTTPStatus) -> bool:
    return isinstance(exc, GoogleAPIError) and exc.code == status


def get_bastion_instance(client: ComputeClient, opt: Options) -> dict[str, Any] | None:
    """Return the bastion instance, or None if it does not exist."""
    try:
        return client.get_instance(opt.project_id, opt.zone, opt.bastion_instance_name)
    except GoogleAPIError as exc:
        if _has_code(exc, HTTPStatus.NOT_FOUND):
            return None
        raise


def get_firewall_rule(client: ComputeClient, opt: Options, name: str) -> dict[str, Any] | None:
    """Return the named firewall rule, or None if it does not exist."""
    try:
        return client.get_firewall(opt.project_id, name)
    except GoogleAPIError as exc:
        if _has_code(exc, HTTPStatus.NOT_FOUND):
            return None
        raise


def create_firewall_rule_if_not_exist(client: ComputeClient, opt: Options, rule: dict[str, Any]) -> None:
    """Create the firewall rule; an already existing rule is left alone."""
    try:
        client.insert_firewall(opt.project_id, rule)
    except GoogleAPIError as exc:
        if _has_code(exc, HTTPStatus.CONFLICT):
            return
        raise RuntimeError(f"could not create firewall rule {rule.get('name', '')}: {exc}") from exc
    logger.info("Firewall created: %s", rule.get("name", ""))


def delete_firewall_rule(client: ComputeClient, opt: Options, name: str) -> None:
    """Delete the named firewall rule; a missing rule is not an error."""
    try:
        client.delete_firewall(opt.project_id, name)
    except GoogleAPIError as exc:
        if _has_code(exc, HTTPStatus.NOT_FOUND):
            return
        raise RuntimeError(f"failed to delete firewall rule {name}: {exc}") from exc
    logger.info("Firewall rule removed: %s", name)


def patch_firewall_rule(client: ComputeClient, opt: Options, name: str, cidrs: list[str]) -> None:
    """Replace the source ranges of the named firewall rule."""
    client.patch_firewall(opt.project_id, name, patch_cidrs(cidrs))


def get_disk(client: ComputeClient, opt: Options) -> dict[str, Any] | None:
    """Return the bastion disk, or None if it does not exist."""
    try:
        return client.get_disk(opt.project_id, opt.zone, opt.disk_name)
    except GoogleAPIError as exc:
        if _has_code(exc, HTTPStatus.NOT_FOUND):
            return None
        raise


def get_default_zone(client: ComputeClient, opt: Options, region: str) -> str:
    """Return the name of the first zone of the given region."""
    response = client.get_region(opt.project_id, region)
    zones = response.get("zones") or []
    if zones:
        return zones[0].split("/")[-1]
    raise ValueError(f"no available zones in GCP region: {region}")