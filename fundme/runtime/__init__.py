"""Execution environment: addressing, clock and atomic account storage."""

from fundme.runtime.addressing import (
    create_address,
    derive_project_address,
    derive_receipt_address,
    find_address,
    verify_address,
)
from fundme.runtime.clock import FixedClock, SystemClock
from fundme.runtime.environment import ExecutionEnvironment, Transaction

__all__ = [
    "create_address",
    "derive_project_address",
    "derive_receipt_address",
    "find_address",
    "verify_address",
    "FixedClock",
    "SystemClock",
    "ExecutionEnvironment",
    "Transaction",
]
