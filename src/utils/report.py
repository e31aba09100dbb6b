from __future__ import annotations

from typing import Any, Collection, Sequence

from domain.accounts import TrackedAccount
from domain.balances import AccountBalances
from domain.portfolio import PortfolioSummary
from services.aggregation import RunReport
from services.collector import AccountFailure

from .formatting import format_amount, format_usd, shorten


def _table(headers: Sequence[str], rows: Sequence[Sequence[str]], *, align_right: Sequence[bool]) -> list[str]:
    widths = [max(len(header), max((len(row[i]) for row in rows), default=0)) for i, header in enumerate(headers)]

    def line(cells: Sequence[str]) -> str:
        parts = [
            f"{cell:>{width}}" if right else f"{cell:<{width}}"
            for cell, width, right in zip(cells, widths, align_right)
        ]
        return " ".join(parts).rstrip()

    header = line(headers)
    lines = [header, "-" * len(header)]
    lines.extend(line(row) for row in rows)
    return lines


def render_accounts(accounts: Sequence[TrackedAccount]) -> str:
    if not accounts:
        return "No addresses or accounts tracked yet.\nUse 'gringotts add' or 'gringotts add-bank' to start tracking."

    rows = [
        (
            account.organization or "-",
            account.display_name,
            shorten(account.identifier),
            "Bank" if account.provider.is_banking else "Wallet",
            account.provider.display_name,
        )
        for account in accounts
    ]
    lines = _table(
        ("Company", "Name", "Address / Account", "Type", "Chain / Service"),
        rows,
        align_right=(False, False, False, False, False),
    )
    lines.append(f"Total: {len(accounts)} tracked")
    return "\n".join(lines)


def render_account_balances(result: AccountBalances) -> str:
    account = result.account
    title = f"{account.display_name} ({account.provider.display_name})"
    lines = [title, f"  {account.identifier}"]
    if account.organization:
        lines.insert(1, f"  Company: {account.organization}")

    if not result.balances:
        lines.append("  (no balances)")
        return "\n".join(lines)

    rows = [
        (
            balance.symbol,
            format_amount(balance.native_amount),
            format_usd(balance.known_usd_value),
        )
        for balance in result.balances
    ]
    lines.extend(f"  {text}" for text in _table(("Asset", "Amount", "USD"), rows, align_right=(False, True, True)))
    lines.append(f"  Total: {format_usd(result.total_usd_value)}")
    return "\n".join(lines)


def render_portfolio_summary(summary: PortfolioSummary) -> str:
    lines = ["Portfolio summary:"]
    if not summary.organizations:
        lines.append("  (empty)")
        return "\n".join(lines)

    for org in summary.sorted_organizations():
        lines.append(f"{org.organization}: {format_usd(org.total_usd_value)}")
        rows = [
            (asset.symbol, format_amount(asset.total_amount), format_usd(asset.total_usd_value))
            for asset in org.sorted_assets()
        ]
        lines.extend(f"  {text}" for text in _table(("Asset", "Amount", "USD"), rows, align_right=(False, True, True)))

    lines.append("=" * 40)
    lines.append(f"Grand total: {format_usd(summary.total_usd_value)}")
    return "\n".join(lines)


def render_failures(failures: Sequence[AccountFailure]) -> str:
    if not failures:
        return ""
    lines = [f"Failed to query {len(failures)} account(s):"]
    for failure in failures:
        account = failure.account
        lines.append(f"  {account.display_name} [{account.provider.display_name}] {failure.error}")
    return "\n".join(lines)


def render_run_report(report: RunReport) -> str:
    sections = [render_account_balances(result) for result in report.accounts]
    sections.append(render_portfolio_summary(report.summary))
    if report.unpriced_symbols:
        sections.append("No USD price for: " + ", ".join(sorted(report.unpriced_symbols)))
    failures = render_failures(report.failures)
    if failures:
        sections.append(failures)
    return "\n\n".join(sections)


def render_mercury_accounts(accounts: Sequence[dict[str, Any]], *, tracked_ids: Collection[str] = ()) -> str:
    rows = [
        (
            str(account.get("id", "")),
            str(account.get("name", "")),
            str(account.get("status", "")),
            str(account.get("kind", "")),
            str(account.get("currentBalance", "")),
            "yes" if str(account.get("id", "")) in tracked_ids else "no",
        )
        for account in accounts
    ]
    lines = ["Mercury accounts:"]
    lines.extend(
        _table(
            ("ID", "Name", "Status", "Kind", "Balance", "Tracked"),
            rows,
            align_right=(False, False, False, False, True, False),
        )
    )
    lines.append(f"Total: {len(accounts)} account(s)")
    return "\n".join(lines)


__all__ = [
    "render_account_balances",
    "render_accounts",
    "render_failures",
    "render_mercury_accounts",
    "render_portfolio_summary",
    "render_run_report",
]
