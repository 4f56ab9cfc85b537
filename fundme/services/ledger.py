"""Donation ledger - accepts pledges and issues receipts.

A donation is one environment transaction: deadline check, value transfer,
aggregate update and receipt creation either all commit or none do.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func

from fundme.db.models import ACCOUNT_KIND_RECEIPT, MAX_AMOUNT, DonationReceipt
from fundme.errors import AddressMismatch, AmountOverflow, ProjectExpired
from fundme.log import get_logger
from fundme.messaging.publisher import EventPublisher
from fundme.runtime.addressing import check_wallet_identity, derive_receipt_address, normalize_identity
from fundme.runtime.environment import ExecutionEnvironment, check_amount

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReceiptView:
    """Read-only snapshot of a donation receipt."""

    address: str
    contributor: str
    project: str
    amount: int
    timestamp: int
    acceptance_seed: int
    refunded: bool
    bump: int

    @classmethod
    def from_record(cls, receipt: DonationReceipt) -> "ReceiptView":
        return cls(
            address=receipt.address,
            contributor=receipt.contributor,
            project=receipt.project,
            amount=receipt.amount,
            timestamp=receipt.timestamp,
            acceptance_seed=receipt.acceptance_seed,
            refunded=receipt.refunded,
            bump=receipt.bump,
        )


class DonationLedger:
    """Validates pledges, moves funds and mints DonationReceipts."""

    def __init__(self, env: ExecutionEnvironment, publisher: Optional[EventPublisher] = None):
        """Initialize the ledger.

        Args:
            env: Execution environment the ledger runs transactions in
            publisher: Optional publisher for DonationReceived events
        """
        self.env = env
        self.publisher = publisher

    def donate(
        self,
        contributor: str,
        project_address: str,
        amount: int,
        acceptance_seed: int,
        receipt_address: Optional[str] = None,
    ) -> str:
        """Pledge ``amount`` from ``contributor`` to a project.

        ``acceptance_seed`` only feeds the receipt address; it is not compared
        with the clock. The stored receipt timestamp always comes from the
        environment clock.

        Args:
            contributor: Identity paying the pledge
            project_address: Address of the project
            amount: Value to transfer
            acceptance_seed: Caller-chosen seed, normally the acceptance timestamp
            receipt_address: Receipt address the caller expects, if pre-computed

        Returns:
            Address of the new DonationReceipt

        Raises:
            InvalidIdentity: If contributor lies in the derived address space
            ProjectNotFound: If no project exists at project_address
            ProjectExpired: If the deadline has passed
            InsufficientFunds: If contributor cannot cover amount
            AmountOverflow: If the project total would exceed MAX_AMOUNT
            AddressMismatch: If receipt_address is not the derived address
            AddressAlreadyInUse: If this seed was already used for this contributor and project
        """
        contributor = check_wallet_identity(contributor)
        project_address = normalize_identity(project_address)
        check_amount(amount)

        with self.env.transaction() as tx:
            now = tx.current_time()

            project = tx.load_project(project_address, for_update=True)
            if now >= project.end_time:
                raise ProjectExpired(project_address, project.end_time, now)

            tx.transfer(contributor, project_address, amount)

            if project.current_amount + amount > MAX_AMOUNT:
                raise AmountOverflow(project.current_amount, amount, MAX_AMOUNT)
            project.current_amount += amount

            address, bump = derive_receipt_address(contributor, project_address, acceptance_seed, tx.program_id)
            if receipt_address is not None and normalize_identity(receipt_address) != address:
                raise AddressMismatch(address, normalize_identity(receipt_address))
            tx.create_account(address, ACCOUNT_KIND_RECEIPT)

            receipt = DonationReceipt(
                address=address,
                contributor=contributor,
                project=project_address,
                amount=amount,
                timestamp=now,
                acceptance_seed=acceptance_seed,
                refunded=False,
                bump=bump,
            )
            tx.add(receipt)

            total = project.current_amount
            target = project.target_amount

        logger.info(f"Donation received: {amount} from {contributor} to {project_address}")
        logger.info(f"Total raised: {total}/{target}")

        if self.publisher is not None:
            self.publisher.publish_donation_received(
                address, now, self._event_data(contributor, project_address, amount, total)
            )
        return address

    @staticmethod
    def _event_data(contributor: str, project: str, amount: int, total: int) -> Dict[str, Any]:
        return {
            "contributor": contributor,
            "project": project,
            "amount": amount,
            "new_total": total,
        }

    def get_receipt(self, address: str) -> ReceiptView:
        """Load a receipt by address.

        Raises:
            ReceiptNotFound: If no receipt exists at address
        """
        with self.env.transaction() as tx:
            return ReceiptView.from_record(tx.load_receipt(address))

    def list_receipts(self, project_address: str) -> List[ReceiptView]:
        with self.env.transaction() as tx:
            receipts = (
                tx.session.query(DonationReceipt)
                .filter(DonationReceipt.project == normalize_identity(project_address))
                .order_by(DonationReceipt.timestamp, DonationReceipt.address)
                .all()
            )
            return [ReceiptView.from_record(r) for r in receipts]

    def list_contributor_receipts(self, contributor: str) -> List[ReceiptView]:
        with self.env.transaction() as tx:
            receipts = (
                tx.session.query(DonationReceipt)
                .filter(DonationReceipt.contributor == normalize_identity(contributor))
                .order_by(DonationReceipt.timestamp, DonationReceipt.address)
                .all()
            )
            return [ReceiptView.from_record(r) for r in receipts]

    def total_donated(self, project_address: str) -> int:
        """Sum of receipt amounts for a project."""
        with self.env.transaction() as tx:
            total = (
                tx.session.query(func.coalesce(func.sum(DonationReceipt.amount), 0))
                .filter(DonationReceipt.project == normalize_identity(project_address))
                .scalar()
            )
            return int(total)
