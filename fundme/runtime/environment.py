"""Execution environment - atomic transactions over addressed account storage."""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fundme.config import Config
from fundme.db.models import (
    ACCOUNT_KIND_WALLET,
    MAX_AMOUNT,
    Account,
    DonationReceipt,
    Project,
)
from fundme.db.session import get_session
from fundme.errors import (
    AccountKindMismatch,
    AccountNotFound,
    AddressAlreadyInUse,
    AmountOverflow,
    InsufficientFunds,
    InvalidAmount,
    LedgerError,
    ProjectNotFound,
    ReceiptNotFound,
    SelfTransfer,
)
from fundme.log import get_logger
from fundme.runtime.addressing import check_wallet_identity, normalize_identity
from fundme.runtime.clock import SystemClock

logger = get_logger(__name__)


def check_amount(amount: int, name: str = "amount") -> int:
    """Validate a ledger amount.

    Raises:
        InvalidAmount: If amount is not an integer in 0..MAX_AMOUNT
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{name} must be an integer, got {type(amount).__name__}")
    if amount < 0 or amount > MAX_AMOUNT:
        raise InvalidAmount(f"{name} must be between 0 and {MAX_AMOUNT}, got {amount}")
    return amount


class Transaction:
    """One atomic unit of work against the ledger store.

    All reads and writes go through a single session; the enclosing
    ``ExecutionEnvironment.transaction()`` commits them together or discards
    them together.
    """

    def __init__(self, session: Session, clock, program_id: str):
        self.session = session
        self.program_id = program_id
        self._clock = clock
        self._now: Optional[int] = None

    def current_time(self) -> int:
        """Clock reading for this transaction; stable across calls."""
        if self._now is None:
            self._now = self._clock.now()
        return self._now

    def get_account(self, address: str, for_update: bool = False) -> Optional[Account]:
        return self.session.get(Account, normalize_identity(address), with_for_update=for_update)

    def load_account(self, address: str, for_update: bool = False) -> Account:
        account = self.get_account(address, for_update=for_update)
        if account is None:
            raise AccountNotFound(address)
        return account

    def create_account(self, address: str, kind: str) -> Account:
        """Create empty storage at ``address``; creation is never an upsert.

        Raises:
            AddressAlreadyInUse: If an account already exists at the address
        """
        address = normalize_identity(address)
        if self.session.get(Account, address) is not None:
            raise AddressAlreadyInUse(address)

        account = Account(address=address, kind=kind, balance=0)
        self.session.add(account)
        try:
            self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent creator
            raise AddressAlreadyInUse(address) from e
        return account

    def transfer(self, source: str, destination: str, amount: int) -> None:
        """Move ``amount`` from ``source`` to ``destination``.

        Raises:
            InsufficientFunds: If source holds less than amount
            AccountNotFound: If destination does not exist
            AmountOverflow: If destination balance would exceed MAX_AMOUNT
            SelfTransfer: If source and destination are the same address
        """
        check_amount(amount)
        source = normalize_identity(source)
        destination = normalize_identity(destination)
        if source == destination:
            raise SelfTransfer(source)

        # Lock in address order so concurrent transfers cannot deadlock
        locked = {addr: self.get_account(addr, for_update=True) for addr in sorted({source, destination})}
        src = locked[source]
        dst = locked[destination]

        if src is None or src.balance < amount:
            raise InsufficientFunds(source, src.balance if src is not None else 0, amount)
        if dst is None:
            raise AccountNotFound(destination)
        if dst.balance + amount > MAX_AMOUNT:
            raise AmountOverflow(dst.balance, amount, MAX_AMOUNT)

        src.balance -= amount
        dst.balance += amount

    def load_project(self, address: str, for_update: bool = False) -> Project:
        project = self.session.get(Project, normalize_identity(address), with_for_update=for_update)
        if project is None:
            raise ProjectNotFound(address)
        return project

    def load_receipt(self, address: str) -> DonationReceipt:
        receipt = self.session.get(DonationReceipt, normalize_identity(address))
        if receipt is None:
            raise ReceiptNotFound(address)
        return receipt

    def add(self, record) -> None:
        """Persist a new record stored at ``record.address``."""
        self.session.add(record)
        try:
            self.session.flush()
        except IntegrityError as e:
            raise AddressAlreadyInUse(record.address) from e


class ExecutionEnvironment:
    """Runs ledger operations as atomic transactions with a trusted clock."""

    def __init__(self, config: Config, clock=None):
        """Initialize the environment.

        Args:
            config: Configuration object (program_id)
            clock: Clock with a ``now()`` method; defaults to the system clock
        """
        self.config = config
        self.program_id = config.program_id.lower()
        self.clock = clock or SystemClock()

    def now(self) -> int:
        return self.clock.now()

    @contextmanager
    def transaction(self) -> Generator[Transaction, None, None]:
        """Open an atomic transaction.

        Example:
            with env.transaction() as tx:
                tx.transfer(a, b, 10)
        """
        try:
            with get_session() as session:
                yield Transaction(session, self.clock, self.program_id)
        except LedgerError as e:
            logger.warning(f"Transaction aborted: {e.code}: {e}")
            raise

    def fund_account(self, address: str, amount: int) -> int:
        """Credit a wallet with spendable value, creating it if needed.

        Returns:
            New balance

        Raises:
            InvalidIdentity: If address lies in the derived address space
            AccountKindMismatch: If the account at address is not a wallet
        """
        address = check_wallet_identity(address)
        check_amount(amount)
        with self.transaction() as tx:
            account = tx.get_account(address, for_update=True)
            if account is None:
                account = tx.create_account(address, ACCOUNT_KIND_WALLET)
            elif account.kind != ACCOUNT_KIND_WALLET:
                raise AccountKindMismatch(address, ACCOUNT_KIND_WALLET, account.kind)
            if account.balance + amount > MAX_AMOUNT:
                raise AmountOverflow(account.balance, amount, MAX_AMOUNT)
            account.balance += amount
            balance = account.balance
        logger.info(f"Funded {address} with {amount}, balance {balance}")
        return balance

    def get_balance(self, address: str) -> int:
        """Spendable balance of ``address`` (0 when no account exists)."""
        with self.transaction() as tx:
            account = tx.get_account(address)
            return account.balance if account is not None else 0
