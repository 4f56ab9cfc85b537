"""CLI module for operating the ledger: schema, accounts, projects and audits."""

import argparse
import sys
from datetime import datetime, timezone

from fundme.config import Config
from fundme.db.healthcheck import check_tables_exist
from fundme.db.session import create_schema, init_db
from fundme.errors import LedgerError
from fundme.log import get_logger, setup_logging
from fundme.messaging.rabbitmq import RabbitMQConnection
from fundme.services.factory import LedgerServices, build_services
from fundme.services.registry import ProjectView

logger = get_logger(__name__)


def _format_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _print_project(project: ProjectView) -> None:
    print(f"Project: {project.address}")
    print(f"  Owner: {project.owner}")
    print(f"  Id: {project.project_id}")
    print(f"  Title: {project.metadata.title}")
    print(f"  Description: {project.metadata.description}")
    print(f"  Image URL: {project.metadata.image_url}")
    print(f"  Raised: {project.current_amount}/{project.target_amount}")
    print(f"  Deadline: {_format_ts(project.end_time)}")


def project_show(services: LedgerServices, address: str) -> None:
    """Print a project with its receipts and funding status."""
    registry = services.registry

    _print_project(registry.get_project(address))
    status = registry.funding_status(address)
    print(f"  Open: {'yes' if status.is_open else 'no'}")
    print(f"  Goal reached: {'yes' if status.goal_reached else 'no'}")

    receipts = services.ledger.list_receipts(address)
    print(f"\nReceipts ({len(receipts)}):")
    print("-" * 50)
    for receipt in receipts:
        print(f"  {receipt.address}  {receipt.contributor}  {receipt.amount}  {_format_ts(receipt.timestamp)}")


def project_list(services: LedgerServices, owner: str | None) -> None:
    projects = services.registry.list_projects(owner)
    for project in projects:
        print(f"{project.address}  {project.project_id:<32}  {project.current_amount}/{project.target_amount}")
    print(f"Total projects: {len(projects)}")


def audit(services: LedgerServices) -> int:
    """Run the reconciler and print its findings.

    Returns:
        Process exit code (1 if any discrepancy was found)
    """
    discrepancies = services.reconciler.reconcile()
    if not discrepancies:
        print("Ledger consistent")
        return 0

    print(f"Found {len(discrepancies)} discrepancies:")
    for item in discrepancies:
        print(f"  {item.address}  {item.check}: {item.detail}")
    return 1


def broker_setup(config: Config) -> None:
    """Declare the ledger event exchange."""
    print(f"Setting up RabbitMQ broker at {config.rabbitmq_host}:{config.rabbitmq_port}")

    connection = RabbitMQConnection(**config.get_rabbitmq_connection_params())
    try:
        connection.connect()
        connection.declare_exchange(config.rabbitmq_exchange)
        print(f"Broker setup complete! Exchange: {config.rabbitmq_exchange}")
    finally:
        connection.close()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="Crowdfunding ledger operations",
        prog="python -m fundme",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database commands")
    db_subparsers = db_parser.add_subparsers(dest="subcommand", help="Database subcommands")
    db_subparsers.add_parser("init", help="Create ledger tables")
    db_subparsers.add_parser("check", help="Verify ledger tables exist")

    # Account commands
    account_parser = subparsers.add_parser("account", help="Account commands")
    account_subparsers = account_parser.add_subparsers(dest="subcommand", help="Account subcommands")
    account_fund = account_subparsers.add_parser("fund", help="Credit spendable value to a wallet")
    account_fund.add_argument("--address", "-a", type=str, required=True, help="Wallet address")
    account_fund.add_argument("--amount", type=int, required=True, help="Amount to credit")
    account_balance = account_subparsers.add_parser("balance", help="Show an account balance")
    account_balance.add_argument("--address", "-a", type=str, required=True, help="Account address")

    # Project commands
    project_parser = subparsers.add_parser("project", help="Project commands")
    project_subparsers = project_parser.add_subparsers(dest="subcommand", help="Project subcommands")
    show_parser = project_subparsers.add_parser("show", help="Show a project and its receipts")
    show_parser.add_argument("--address", "-a", type=str, required=True, help="Project address")
    list_parser = project_subparsers.add_parser("list", help="List projects")
    list_parser.add_argument("--owner", "-o", type=str, help="Only projects of this owner")

    # Audit
    subparsers.add_parser("audit", help="Check ledger invariants")

    # Broker commands
    broker_parser = subparsers.add_parser("broker", help="Broker management commands")
    broker_subparsers = broker_parser.add_subparsers(dest="subcommand", help="Broker subcommands")
    broker_subparsers.add_parser("setup", help="Declare the event exchange")

    return parser


def run_command(args: argparse.Namespace, services: LedgerServices) -> int:
    """Dispatch a ledger subcommand.

    Returns:
        Process exit code
    """
    env = services.env

    if args.command == "db":
        if args.subcommand == "init":
            create_schema()
            print("Ledger tables created")
        elif args.subcommand == "check":
            check_tables_exist()
            print("All required tables exist")

    elif args.command == "account":
        if args.subcommand == "fund":
            balance = env.fund_account(args.address, args.amount)
            print(f"Balance of {args.address.lower()}: {balance}")
        elif args.subcommand == "balance":
            print(f"Balance of {args.address.lower()}: {env.get_balance(args.address)}")

    elif args.command == "project":
        if args.subcommand == "show":
            project_show(services, args.address)
        elif args.subcommand == "list":
            project_list(services, args.owner)

    elif args.command == "audit":
        return audit(services)

    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command != "audit" and not getattr(args, "subcommand", None):
        print(f"Usage: python -m fundme {args.command} <subcommand>")
        sys.exit(1)

    # Load config
    try:
        config = Config.from_env()
        config.validate()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config)

    exit_code = 0
    try:
        if args.command == "broker":
            broker_setup(config)
            sys.exit(0)

        init_db(config)
        services = build_services(config)
        try:
            exit_code = run_command(args, services)
        finally:
            services.close()

    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(0)
    except LedgerError as e:
        print(f"{e.code}: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
