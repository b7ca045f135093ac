"""CLI main: argument parsing and command dispatch."""

import argparse
import sys

from ledger_config import LedgerConfig, get_active_config
from ledger_config.loader import log_level
from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.address import AddressBook
from ledger_kernel.exceptions import LedgerKernelError
from ledger_kernel.logging_config import configure_logging, get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.asset_ledger import AssetLedger
from ledger_kernel.services.genesis import load_genesis
from ledger_kernel.services.transfer_entrypoint import TransferEntryPoint, TransferRequest
from scripts.cli.util import fmt_amount, parse_amount

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m scripts.cli",
        description="Multi-asset balance ledger.",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--database-url", help="override database.url from the config")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="create tables and load the genesis assets")

    p = sub.add_parser("create-asset", help="create an asset with zero issuance")
    p.add_argument("asset_id")

    for name, help_text in (("mint", "issue new value"), ("burn", "destroy value")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("asset_id")
        p.add_argument("account_id")
        p.add_argument("amount", type=parse_amount)

    p = sub.add_parser("transfer", help="transfer between accounts")
    p.add_argument("asset_id")
    p.add_argument("origin")
    p.add_argument("destination", help="account id or address-book alias")
    p.add_argument("amount", type=parse_amount)

    p = sub.add_parser("balance", help="show one account balance")
    p.add_argument("asset_id")
    p.add_argument("account_id")

    p = sub.add_parser("holders", help="list holders and issuance of an asset")
    p.add_argument("asset_id")

    sub.add_parser("audit", help="verify issuance and account counts of every asset")
    return parser


def _open_database(config: LedgerConfig, url_override: str | None) -> LedgerDatabase:
    db = config.database
    return LedgerDatabase.from_url(
        url_override or db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )


def run(args: argparse.Namespace, config: LedgerConfig, database: LedgerDatabase) -> int:
    if args.command == "init":
        database.create_tables()
        with database.session_scope() as session:
            ledger = AssetLedger(session)
            if ledger.store.asset_count():
                print("  Store already initialized.")
                return 0
            created = load_genesis(ledger, config.genesis.assets)
        print(f"  Created {len(created)} asset(s): {', '.join(created) or '-'}")
        return 0

    if args.command == "audit":
        with database.session_scope() as session:
            reports = LedgerSelector(session).verify_all()
        failed = 0
        for report in reports:
            status = "OK" if report.is_valid else "FAIL"
            print(
                f"  {status:4}  {report.asset_id:<20} "
                f"issuance={fmt_amount(report.total_issuance)} "
                f"holders={report.holder_count}"
            )
            for problem in report.violations():
                print(f"        {problem}")
            failed += 0 if report.is_valid else 1
        return 1 if failed else 0

    with database.session_scope() as session:
        ledger = AssetLedger(session)

        if args.command == "create-asset":
            ledger.create_asset(args.asset_id)
            print(f"  Created asset {args.asset_id}")
        elif args.command == "mint":
            ledger.mint(args.asset_id, args.account_id, args.amount)
            print(f"  Minted {fmt_amount(args.amount)} {args.asset_id} to {args.account_id}")
        elif args.command == "burn":
            ledger.burn(args.asset_id, args.account_id, args.amount)
            print(f"  Burned {fmt_amount(args.amount)} {args.asset_id} from {args.account_id}")
        elif args.command == "transfer":
            book = config.address_book
            entry = TransferEntryPoint(
                ledger, AddressBook(book.as_dict(), passthrough=book.passthrough)
            )
            receipt = entry.submit(
                args.origin,
                TransferRequest(args.asset_id, args.destination, args.amount),
            )
            print(
                f"  Transferred {fmt_amount(receipt.amount)} {receipt.asset_id} "
                f"{receipt.source} -> {receipt.dest}"
            )
        elif args.command == "balance":
            amount = ledger.balance(args.asset_id, args.account_id)
            print(f"  {args.account_id}: {fmt_amount(amount)} {args.asset_id}")
        elif args.command == "holders":
            details = ledger.asset_details(args.asset_id)
            print(
                f"  {args.asset_id}: issuance={fmt_amount(details.total_issuance)} "
                f"accounts={details.account_count}"
            )
            for holder in LedgerSelector(session).holders(args.asset_id):
                print(f"    {holder.account_id:<30} {fmt_amount(holder.amount):>40}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    configure_logging(level=log_level(config), stream=sys.stderr)
    database = _open_database(config, args.database_url)
    try:
        return run(args, config, database)
    except LedgerKernelError as exc:
        logger.info("cli_command_failed", extra={"command": args.command, "error_code": exc.code})
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        database.dispose()
