from __future__ import annotations

import itertools
from decimal import Decimal

import pytest

from domain.accounts import ProviderKind
from domain.balances import AccountBalances, AssetBalance
from domain.portfolio import UNCATEGORIZED, AggregationInvariantViolation, add_asset, aggregate
from domain.pricing import enrich_account
from tests.helpers.stubs import make_account


def _sol(name: str, amount: str, organization: str = "Acme") -> AccountBalances:
    return AccountBalances(
        account=make_account(name, organization=organization),
        balances=[AssetBalance(symbol="SOL", native_amount=Decimal(amount))],
    )


def test_aggregate_sums_same_symbol_within_organization() -> None:
    prices = {"SOL": Decimal("20")}
    results = [enrich_account(_sol("A", "2.5"), prices), enrich_account(_sol("B", "1.0"), prices)]

    summary = aggregate(results)

    sol = summary.organizations["Acme"].assets["SOL"]
    assert sol.total_amount == Decimal("3.5")
    assert sol.total_usd_value == Decimal("70")
    assert summary.organizations["Acme"].total_usd_value == Decimal("70")
    assert summary.total_usd_value == Decimal("70")


def test_fiat_account_without_company_lands_in_uncategorized() -> None:
    fiat = AccountBalances(
        account=make_account("C", provider=ProviderKind.MERCURY),
        balances=[AssetBalance(symbol="USD", native_amount=Decimal("500"), known_usd_value=Decimal("500"))],
    )

    summary = aggregate([fiat])

    assert list(summary.organizations) == [UNCATEGORIZED]
    bucket = summary.organizations[UNCATEGORIZED]
    assert bucket.total_usd_value == Decimal("500")
    assert bucket.assets["USD"].total_amount == Decimal("500")


def test_aggregate_totals_do_not_depend_on_account_order() -> None:
    results = [
        AccountBalances(
            account=make_account("A", organization="Acme"),
            balances=[
                AssetBalance(symbol="SOL", native_amount=Decimal("1.1"), known_usd_value=Decimal("22.2")),
                AssetBalance(symbol="USDC", native_amount=Decimal("10.01"), known_usd_value=Decimal("10.01")),
            ],
        ),
        AccountBalances(
            account=make_account("B", organization="Acme"),
            balances=[AssetBalance(symbol="SOL", native_amount=Decimal("0.3"), known_usd_value=Decimal("6.06"))],
        ),
        AccountBalances(
            account=make_account("C", organization="Globex", provider=ProviderKind.ETHEREUM),
            balances=[
                AssetBalance(symbol="ETH", native_amount=Decimal("0.5")),
                AssetBalance(symbol="USDT", native_amount=Decimal("7"), known_usd_value=Decimal("7")),
            ],
        ),
        AccountBalances(
            account=make_account("D", provider=ProviderKind.MERCURY),
            balances=[AssetBalance(symbol="USD", native_amount=Decimal("500"), known_usd_value=Decimal("500"))],
        ),
    ]
    expected = aggregate(results)

    for permutation in itertools.permutations(results):
        summary = aggregate(permutation)
        assert summary.total_usd_value == expected.total_usd_value
        for key, org in expected.organizations.items():
            other = summary.organizations[key]
            assert other.total_usd_value == org.total_usd_value
            for symbol, asset in org.assets.items():
                assert other.assets[symbol].total_amount == asset.total_amount
                assert other.assets[symbol].total_usd_value == asset.total_usd_value


def test_unpriced_balance_counts_amount_but_not_value() -> None:
    results = [
        AccountBalances(
            account=make_account("A", organization="Acme"),
            balances=[AssetBalance(symbol="RAT", native_amount=Decimal("1000"))],
        )
    ]

    summary = aggregate(results)

    rat = summary.organizations["Acme"].assets["RAT"]
    assert rat.total_amount == Decimal("1000")
    assert rat.total_usd_value == Decimal(0)
    assert summary.total_usd_value == Decimal(0)


def test_zero_amount_balances_are_kept() -> None:
    results = [
        AccountBalances(
            account=make_account("A", organization="Acme"),
            balances=[AssetBalance(symbol="SOL", native_amount=Decimal(0), known_usd_value=Decimal(0))],
        )
    ]

    summary = aggregate(results)

    assert summary.organizations["Acme"].assets["SOL"].total_amount == Decimal(0)


def test_sorted_assets_orders_by_usd_value_then_symbol() -> None:
    summary = aggregate([])
    add_asset(summary, "Acme", "BBB", Decimal(1), Decimal(5))
    add_asset(summary, "Acme", "AAA", Decimal(1), Decimal(5))
    add_asset(summary, "Acme", "CCC", Decimal(1), Decimal(50))

    symbols = [asset.symbol for asset in summary.organizations["Acme"].sorted_assets()]

    assert symbols == ["CCC", "AAA", "BBB"]


def test_verify_passes_for_aggregated_summary() -> None:
    summary = aggregate([_sol("A", "2", organization="Acme"), _sol("B", "1", organization="")])
    summary.verify()


def test_verify_detects_drift_between_levels() -> None:
    summary = aggregate([])
    add_asset(summary, "Acme", "USD", Decimal(10), Decimal(10))
    summary.total_usd_value += Decimal(1)

    with pytest.raises(AggregationInvariantViolation) as exc_info:
        summary.verify()

    assert exc_info.value.scope == "portfolio"
    assert exc_info.value.expected == Decimal(10)
    assert exc_info.value.actual == Decimal(11)
