"""Crowdfunding ledger: projects, pledges and per-donation receipts."""

__version__ = "0.1.0"
