"""SQLAlchemy ORM models for the ledger schema.

Every project and receipt owns an ``accounts`` row at the same address. The
account primary key is the first-writer-wins guard: creating storage at an
address that already exists fails.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# Amounts live in signed BIGINT columns.
MAX_AMOUNT = 2**63 - 1

# Storage capacities, in UTF-8 bytes.
PROJECT_ID_MAX_LEN = 32
TITLE_MAX_LEN = 100
DESCRIPTION_MAX_LEN = 500
IMAGE_URL_MAX_LEN = 200

ACCOUNT_KIND_WALLET = "wallet"
ACCOUNT_KIND_PROJECT = "project"
ACCOUNT_KIND_RECEIPT = "receipt"


class Account(Base):
    """Addressed storage with a spendable balance (maps to 'accounts' table)."""

    __tablename__ = "accounts"

    address = Column(String(42), primary_key=True)  # 0x + 40 hex
    kind = Column(String(16), nullable=False, default=ACCOUNT_KIND_WALLET)
    balance = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Project(Base):
    """Fundraising project (maps to 'projects' table)."""

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("owner", "project_id", name="uq_projects_owner_project_id"),
    )

    address = Column(String(42), ForeignKey("accounts.address"), primary_key=True)
    owner = Column(String(42), nullable=False, index=True)
    project_id = Column(String(PROJECT_ID_MAX_LEN), nullable=False)
    title = Column(String(TITLE_MAX_LEN), nullable=False, default="")
    description = Column(String(DESCRIPTION_MAX_LEN), nullable=False, default="")
    image_url = Column(String(IMAGE_URL_MAX_LEN), nullable=False, default="")
    target_amount = Column(BigInteger, nullable=False)
    current_amount = Column(BigInteger, nullable=False, default=0)
    end_time = Column(BigInteger, nullable=False)  # Unix timestamp
    bump = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    account = relationship("Account")
    receipts = relationship("DonationReceipt", back_populates="project_record")


class DonationReceipt(Base):
    """Immutable record of one accepted pledge (maps to 'donation_receipts' table)."""

    __tablename__ = "donation_receipts"
    __table_args__ = (
        UniqueConstraint(
            "contributor", "project", "acceptance_seed",
            name="uq_receipts_contributor_project_seed",
        ),
    )

    address = Column(String(42), ForeignKey("accounts.address"), primary_key=True)
    contributor = Column(String(42), nullable=False, index=True)
    project = Column(String(42), ForeignKey("projects.address"), nullable=False, index=True)
    amount = Column(BigInteger, nullable=False)
    timestamp = Column(BigInteger, nullable=False)  # Environment clock, Unix timestamp
    acceptance_seed = Column(BigInteger, nullable=False)
    refunded = Column(Boolean, nullable=False, default=False)
    bump = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    project_record = relationship("Project", back_populates="receipts")
