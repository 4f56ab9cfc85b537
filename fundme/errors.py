"""Ledger error hierarchy.

Every failure aborts the enclosing ledger transaction and reaches the caller
unchanged. ``code`` is a stable identifier suitable for API responses and logs.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code = "LedgerError"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ProjectExpired(LedgerError):
    """Project fundraising period has ended."""

    code = "ProjectExpired"

    def __init__(self, project: str, end_time: int, current_time: int):
        super().__init__(
            f"Project fundraising period has ended: project={project}, "
            f"end_time={end_time}, current_time={current_time}"
        )
        self.project = project
        self.end_time = end_time
        self.current_time = current_time


class AddressAlreadyInUse(LedgerError):
    """An account already exists at the derived address."""

    code = "AddressAlreadyInUse"

    def __init__(self, address: str):
        super().__init__(f"Address already in use: {address}")
        self.address = address


class InsufficientFunds(LedgerError):
    """Source account cannot cover the transfer."""

    code = "InsufficientFunds"

    def __init__(self, address: str, balance: int, required: int):
        super().__init__(
            f"Insufficient funds: address={address}, balance={balance}, required={required}"
        )
        self.address = address
        self.balance = balance
        self.required = required


class AddressSpaceExhausted(LedgerError):
    """No bump value yields a valid derived address for these seeds."""

    code = "AddressSpaceExhausted"


class AmountOverflow(LedgerError):
    """Running total would exceed the largest storable amount."""

    code = "AmountOverflow"

    def __init__(self, current: int, increment: int, limit: int):
        super().__init__(f"Amount overflow: {current} + {increment} exceeds {limit}")
        self.current = current
        self.increment = increment
        self.limit = limit


class InvalidAmount(LedgerError, ValueError):
    """Amount must be a non-negative integer within the storable range."""

    code = "InvalidAmount"


class InvalidTimestamp(LedgerError, ValueError):
    """Timestamp must be an integer number of Unix seconds."""

    code = "InvalidTimestamp"


class FieldTooLong(LedgerError, ValueError):
    """A string field exceeds its storage capacity."""

    code = "FieldTooLong"

    def __init__(self, field: str, max_len: int, actual: int):
        super().__init__(f"Field '{field}' is {actual} bytes, maximum is {max_len}")
        self.field = field
        self.max_len = max_len
        self.actual = actual


class InvalidField(LedgerError, ValueError):
    """A string field has the wrong type."""

    code = "InvalidField"

    def __init__(self, field: str, actual_type: str):
        super().__init__(f"Field '{field}' must be a string, got {actual_type}")
        self.field = field


class InvalidSeeds(LedgerError, ValueError):
    """Seeds cannot produce a valid derived address."""

    code = "InvalidSeeds"


class SeedTooLong(InvalidSeeds):
    """A single seed exceeds the maximum seed length."""

    code = "SeedTooLong"


class TooManySeeds(InvalidSeeds):
    """Too many seeds were supplied for a derivation."""

    code = "TooManySeeds"


class InvalidIdentity(LedgerError, ValueError):
    """Identity is not a 0x-prefixed 20-byte hex address."""

    code = "InvalidIdentity"


class SelfTransfer(LedgerError, ValueError):
    """Source and destination of a transfer are the same account."""

    code = "SelfTransfer"

    def __init__(self, address: str):
        super().__init__(f"Cannot transfer from an account to itself: {address}")
        self.address = address


class AddressMismatch(LedgerError):
    """Supplied address does not match the address derived from its seeds."""

    code = "AddressMismatch"

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Address mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class AccountNotFound(LedgerError):
    """No account exists at the given address."""

    code = "AccountNotFound"

    def __init__(self, address: str):
        super().__init__(f"Account not found: {address}")
        self.address = address


class AccountKindMismatch(LedgerError):
    """Account at the address is not of the kind the operation requires."""

    code = "AccountKindMismatch"

    def __init__(self, address: str, expected: str, actual: str):
        super().__init__(f"Account {address} is a {actual} account, expected {expected}")
        self.address = address
        self.expected = expected
        self.actual = actual


class ProjectNotFound(AccountNotFound):
    """No project exists at the given address."""

    code = "ProjectNotFound"

    def __init__(self, address: str):
        LedgerError.__init__(self, f"Project not found: {address}")
        self.address = address


class ReceiptNotFound(AccountNotFound):
    """No donation receipt exists at the given address."""

    code = "ReceiptNotFound"

    def __init__(self, address: str):
        LedgerError.__init__(self, f"Receipt not found: {address}")
        self.address = address
