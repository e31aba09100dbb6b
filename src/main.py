from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import uvicorn

from accounts import AccountBook, AccountBookError
from config import AppSettings, config
from domain.accounts import TrackedAccount
from providers.base import ProviderError
from providers.mercury import MercuryProvider
from services.aggregation import build_portfolio_run
from services.collector import ProgressEvent
from utils.report import render_accounts, render_mercury_accounts, render_run_report

logger = logging.getLogger(__name__)


def print_progress(event: ProgressEvent) -> None:
    status = "ok" if event.succeeded else f"failed: {event.error}"
    print(f"[{event.completed}/{event.total}] {event.account.display_name} {status}", file=sys.stderr)


def cmd_add(args: argparse.Namespace, settings: AppSettings) -> int:
    book = AccountBook.load(args.accounts or settings.accounts_path)
    entry = book.add_address(args.company, args.name, args.address, args.chain)
    book.save()
    print(f"Added '{entry.name}' ({entry.chain.display_name})")
    return 0


def cmd_add_bank(args: argparse.Namespace, settings: AppSettings) -> int:
    book = AccountBook.load(args.accounts or settings.accounts_path)
    entry = book.add_banking_account(args.company, args.name, args.account_id, args.service)
    book.save()
    print(f"Added '{entry.name}' ({entry.service.display_name})")
    return 0


def cmd_list(args: argparse.Namespace, settings: AppSettings) -> int:
    book = AccountBook.load(args.accounts or settings.accounts_path)
    print(render_accounts(book.filter_by_company(args.company)))
    return 0


def cmd_remove(args: argparse.Namespace, settings: AppSettings) -> int:
    book = AccountBook.load(args.accounts or settings.accounts_path)
    book.remove(args.identifier)
    book.save()
    print(f"Removed '{args.identifier}'")
    return 0


def _run_and_print(accounts: list[TrackedAccount], args: argparse.Namespace, settings: AppSettings) -> int:
    if not accounts:
        print("No accounts to query.")
        return 0
    logger.debug("Querying %d account(s)", len(accounts))
    portfolio_run = build_portfolio_run(settings, rpc_url=args.rpc_url, on_progress=print_progress)
    report = portfolio_run.run(accounts, with_prices=not args.no_prices)
    print(render_run_report(report))
    return 1 if report.failures and not report.accounts else 0


def cmd_query(args: argparse.Namespace, settings: AppSettings) -> int:
    book = AccountBook.load(args.accounts or settings.accounts_path)
    return _run_and_print(book.filter_by_company(args.company), args, settings)


def cmd_query_one(args: argparse.Namespace, settings: AppSettings) -> int:
    book = AccountBook.load(args.accounts or settings.accounts_path)
    return _run_and_print([book.find(args.name)], args, settings)


def cmd_list_mercury_accounts(args: argparse.Namespace, settings: AppSettings) -> int:
    if not settings.mercury_api_key:
        raise ProviderError("MERCURY_API_KEY environment variable not set", provider=MercuryProvider.name)
    book = AccountBook.load(args.accounts or settings.accounts_path)
    provider = MercuryProvider(api_key=settings.mercury_api_key, timeout=settings.provider_timeout_seconds)
    accounts = provider.list_accounts()
    tracked = {str(account.get("id")) for account in accounts if book.has_banking_account(str(account.get("id")))}
    print(render_mercury_accounts(accounts, tracked_ids=tracked))
    return 0


def cmd_serve(args: argparse.Namespace, settings: AppSettings) -> int:
    uvicorn.run("api.api:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gringotts", description="Track wallet and bank balances across chains.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--accounts", type=Path, default=None, help="Address book file (default from settings).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Track a blockchain address.")
    add.add_argument("name")
    add.add_argument("address")
    add.add_argument("--company", default="")
    add.add_argument("--chain", default=None, help="Chain name or alias; detected from the address if omitted.")
    add.set_defaults(handler=cmd_add)

    add_bank = subparsers.add_parser("add-bank", help="Track a banking account.")
    add_bank.add_argument("name")
    add_bank.add_argument("account_id")
    add_bank.add_argument("--service", required=True, help="mercury or circle")
    add_bank.add_argument("--company", default="")
    add_bank.set_defaults(handler=cmd_add_bank)

    list_cmd = subparsers.add_parser("list", help="Show tracked accounts.")
    list_cmd.add_argument("--company", default=None)
    list_cmd.set_defaults(handler=cmd_list)

    remove = subparsers.add_parser("remove", help="Stop tracking an account by name, address or account id.")
    remove.add_argument("identifier")
    remove.set_defaults(handler=cmd_remove)

    for name, handler, help_text in (
        ("query", cmd_query, "Query every tracked account and print the portfolio."),
        ("query-one", cmd_query_one, "Query a single tracked account by name."),
    ):
        query = subparsers.add_parser(name, help=help_text)
        if name == "query-one":
            query.add_argument("name")
        else:
            query.add_argument("--company", default=None)
        query.add_argument("--rpc-url", default=None, help="Override the chain RPC endpoint.")
        query.add_argument("--no-prices", action="store_true", help="Skip USD price lookup.")
        query.set_defaults(handler=handler)

    mercury = subparsers.add_parser("list-mercury-accounts", help="List accounts visible to the Mercury API key.")
    mercury.set_defaults(handler=cmd_list_mercury_accounts)

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(handler=cmd_serve)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    try:
        return args.handler(args, config())
    except (AccountBookError, ProviderError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
