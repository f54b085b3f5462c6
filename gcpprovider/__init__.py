"""Reconciliation logic for GCP bastions, DNS records, infrastructure validation and control plane chart values."""

__version__ = "0.1.0"