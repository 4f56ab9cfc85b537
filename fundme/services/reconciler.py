"""Reconciler - audits the ledger invariants.

For every project the running total must equal the sum of its receipts and
the balance held at the project address, and every stored address must
re-derive from its seeds and bump. The reconciler reports discrepancies; it
never repairs them.
"""

from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy import func

from fundme.db.models import Account, DonationReceipt, Project
from fundme.errors import AddressMismatch, InvalidSeeds
from fundme.log import get_logger
from fundme.runtime.addressing import project_seeds, receipt_seeds, verify_address
from fundme.runtime.environment import ExecutionEnvironment

logger = get_logger(__name__)


@dataclass(frozen=True)
class Discrepancy:
    """One invariant violation found by the reconciler."""

    address: str
    check: str
    detail: str


class Reconciler:
    """Ledger invariant auditor."""

    def __init__(self, env: ExecutionEnvironment):
        """Initialize reconciler.

        Args:
            env: Execution environment to read the ledger through
        """
        self.env = env

    def reconcile(self) -> List[Discrepancy]:
        """Check every project and receipt.

        Returns:
            List of discrepancies (empty when the ledger is consistent)
        """
        logger.debug("Running ledger reconciliation")
        found: List[Discrepancy] = []

        with self.env.transaction() as tx:
            session = tx.session
            totals: Dict[str, int] = dict(
                session.query(DonationReceipt.project, func.sum(DonationReceipt.amount))
                .group_by(DonationReceipt.project)
                .all()
            )

            for project in session.query(Project).order_by(Project.address):
                found.extend(self._check_project(tx, project, int(totals.get(project.address) or 0)))

            for receipt in session.query(DonationReceipt).order_by(DonationReceipt.address):
                found.extend(self._check_receipt(tx, receipt))

        for item in found:
            logger.error(f"Ledger discrepancy at {item.address}: {item.check}: {item.detail}")
        if found:
            logger.error(f"Reconciliation found {len(found)} discrepancies")
        else:
            logger.info("Reconciliation: ledger consistent")
        return found

    def _check_project(self, tx, project: Project, receipt_total: int) -> List[Discrepancy]:
        found = []
        if project.current_amount != receipt_total:
            found.append(Discrepancy(
                project.address,
                "receipt_total",
                f"current_amount={project.current_amount}, sum of receipts={receipt_total}",
            ))

        account = tx.session.get(Account, project.address)
        balance = account.balance if account is not None else 0
        if balance != project.current_amount:
            found.append(Discrepancy(
                project.address,
                "account_balance",
                f"current_amount={project.current_amount}, balance={balance}",
            ))

        try:
            verify_address(
                project.address,
                project_seeds(project.owner, project.project_id),
                project.bump,
                tx.program_id,
            )
        except (AddressMismatch, InvalidSeeds) as e:
            found.append(Discrepancy(project.address, "derivation", str(e)))
        return found

    def _check_receipt(self, tx, receipt: DonationReceipt) -> List[Discrepancy]:
        found = []
        project = receipt.project_record
        if project is not None and receipt.timestamp >= project.end_time:
            found.append(Discrepancy(
                receipt.address,
                "deadline",
                f"accepted at {receipt.timestamp}, project closed at {project.end_time}",
            ))
        if receipt.refunded:
            found.append(Discrepancy(receipt.address, "refunded", "receipt is marked refunded"))

        try:
            verify_address(
                receipt.address,
                receipt_seeds(receipt.contributor, receipt.project, receipt.acceptance_seed),
                receipt.bump,
                tx.program_id,
            )
        except (AddressMismatch, InvalidSeeds) as e:
            found.append(Discrepancy(receipt.address, "derivation", str(e)))
        return found
