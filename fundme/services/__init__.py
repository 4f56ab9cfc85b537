"""Ledger services: project registry, donation ledger and reconciliation."""

from fundme.services.factory import LedgerServices, build_services
from fundme.services.ledger import DonationLedger, ReceiptView
from fundme.services.reconciler import Discrepancy, Reconciler
from fundme.services.registry import (
    FundingStatus,
    ProjectMetadata,
    ProjectRegistry,
    ProjectView,
)

__all__ = [
    "LedgerServices",
    "build_services",
    "DonationLedger",
    "ReceiptView",
    "Discrepancy",
    "Reconciler",
    "FundingStatus",
    "ProjectMetadata",
    "ProjectRegistry",
    "ProjectView",
]
