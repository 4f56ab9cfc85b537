"""Database health check - verify required tables exist."""

from sqlalchemy import inspect

from fundme.db.session import get_engine
from fundme.log import get_logger

logger = get_logger(__name__)

# Required tables that must exist
REQUIRED_TABLES = [
    "accounts",
    "projects",
    "donation_receipts",
]


def check_tables_exist() -> None:
    """Verify all required tables exist in the database.

    Raises:
        RuntimeError: If any required table is missing
    """
    logger.info("Checking database schema...")

    existing = set(inspect(get_engine()).get_table_names())
    for table_name in REQUIRED_TABLES:
        if table_name not in existing:
            raise RuntimeError(
                f"DB schema missing. Table '{table_name}' does not exist. "
                "Run 'python -m fundme db init' first."
            )
        logger.debug(f"Table '{table_name}' exists")

    logger.info("All required tables exist")
