from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from .balances import AccountBalances

UNCATEGORIZED = "Uncategorized"


class AggregationInvariantViolation(AssertionError):
    def __init__(self, *, expected: Decimal, actual: Decimal, scope: str) -> None:
        self.expected = expected
        self.actual = actual
        self.scope = scope
        super().__init__(f"Total mismatch in {scope}: expected={expected} actual={actual}")


@dataclass
class AssetAggregate:
    symbol: str
    total_amount: Decimal = Decimal(0)
    total_usd_value: Decimal = Decimal(0)


@dataclass
class OrganizationPortfolio:
    organization: str
    assets: dict[str, AssetAggregate] = field(default_factory=dict)
    total_usd_value: Decimal = Decimal(0)

    def sorted_assets(self) -> list[AssetAggregate]:
        return sorted(self.assets.values(), key=lambda asset: (-asset.total_usd_value, asset.symbol))


@dataclass
class PortfolioSummary:
    organizations: dict[str, OrganizationPortfolio] = field(default_factory=dict)
    total_usd_value: Decimal = Decimal(0)

    def sorted_organizations(self) -> list[OrganizationPortfolio]:
        return [self.organizations[key] for key in sorted(self.organizations)]

    def verify(self) -> None:
        """Re-derive every total from its parts and raise on drift."""
        for org in self.organizations.values():
            asset_sum = sum((asset.total_usd_value for asset in org.assets.values()), start=Decimal(0))
            if asset_sum != org.total_usd_value:
                raise AggregationInvariantViolation(
                    expected=asset_sum, actual=org.total_usd_value, scope=f"organization {org.organization}"
                )
        org_sum = sum((org.total_usd_value for org in self.organizations.values()), start=Decimal(0))
        if org_sum != self.total_usd_value:
            raise AggregationInvariantViolation(expected=org_sum, actual=self.total_usd_value, scope="portfolio")


def organization_key(organization: str) -> str:
    return organization if organization else UNCATEGORIZED


def add_asset(
    portfolio: PortfolioSummary,
    organization: str,
    symbol: str,
    native_amount: Decimal,
    usd_value: Decimal | None,
) -> None:
    key = organization_key(organization)
    org = portfolio.organizations.get(key)
    if org is None:
        org = OrganizationPortfolio(organization=key)
        portfolio.organizations[key] = org

    asset = org.assets.get(symbol)
    if asset is None:
        asset = AssetAggregate(symbol=symbol)
        org.assets[symbol] = asset

    asset.total_amount += native_amount
    if usd_value is not None:
        asset.total_usd_value += usd_value
        org.total_usd_value += usd_value
        portfolio.total_usd_value += usd_value


def aggregate(results: Iterable[AccountBalances]) -> PortfolioSummary:
    portfolio = PortfolioSummary()
    for result in results:
        for balance in result.balances:
            add_asset(
                portfolio,
                result.account.organization,
                balance.symbol,
                balance.native_amount,
                balance.known_usd_value,
            )
    return portfolio


__all__ = [
    "AggregationInvariantViolation",
    "AssetAggregate",
    "OrganizationPortfolio",
    "PortfolioSummary",
    "UNCATEGORIZED",
    "add_asset",
    "aggregate",
    "organization_key",
]
