from __future__ import annotations

from decimal import Decimal

from domain.accounts import ProviderKind
from domain.balances import AccountBalances, AssetBalance
from domain.portfolio import aggregate
from services.aggregation import RunReport
from services.collector import AccountFailure
from tests.helpers.stubs import make_account
from utils.formatting import format_amount, format_usd, shorten
from utils.report import render_accounts, render_portfolio_summary, render_run_report


def test_format_helpers() -> None:
    assert format_amount(Decimal("3.500000")) == "3.5"
    assert format_amount(Decimal("2")) == "2"
    assert format_amount(Decimal("0.1234567")) == "0.123457"
    assert format_usd(Decimal("1234.5")) == "$1,234.50"
    assert format_usd(None) == "-"
    assert shorten("9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM") == "9WzDXw...YtAWWM"
    assert shorten("short") == "short"


def test_render_accounts_lists_wallets_and_banks() -> None:
    text = render_accounts(
        [
            make_account("treasury", organization="Acme"),
            make_account("checking", provider=ProviderKind.MERCURY),
        ]
    )

    assert "treasury" in text
    assert "Mercury Banking" in text
    assert "Total: 2 tracked" in text


def test_render_accounts_empty() -> None:
    assert "No addresses" in render_accounts([])


def test_portfolio_summary_lists_organizations_and_grand_total() -> None:
    results = [
        AccountBalances(
            account=make_account("A", organization="Acme"),
            balances=[AssetBalance(symbol="SOL", native_amount=Decimal("3.5"), known_usd_value=Decimal("70"))],
        ),
        AccountBalances(
            account=make_account("C", provider=ProviderKind.MERCURY),
            balances=[AssetBalance(symbol="USD", native_amount=Decimal("500"), known_usd_value=Decimal("500"))],
        ),
    ]

    text = render_portfolio_summary(aggregate(results))

    assert "Acme: $70.00" in text
    assert "Uncategorized: $500.00" in text
    assert "Grand total: $570.00" in text


def test_run_report_shows_failures_and_unpriced_symbols() -> None:
    failed = make_account("broken", provider=ProviderKind.ETHEREUM)
    result = AccountBalances(
        account=make_account("A", organization="Acme"),
        balances=[AssetBalance(symbol="RAT", native_amount=Decimal("10"))],
    )
    report = RunReport(
        summary=aggregate([result]),
        accounts=[result],
        failures=[AccountFailure(account=failed, error="timed out after 30s")],
        unpriced_symbols={"RAT"},
    )

    text = render_run_report(report)

    assert "No USD price for: RAT" in text
    assert "broken [Ethereum] timed out after 30s" in text
    assert "Total: -" in text
