from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

from domain.accounts import TrackedAccount
from domain.balances import AccountBalances
from services.aggregation import RunReport


class NewAddress(BaseModel):
    company: str = ""
    name: str
    address: str
    chain: str | None = None


class AssetBalanceOut(BaseModel):
    symbol: str
    native_amount: Decimal
    usd_value: Decimal | None
    name: str | None = None
    contract: str | None = None


class AccountBalancesOut(BaseModel):
    account: TrackedAccount
    balances: list[AssetBalanceOut]
    total_usd_value: Decimal | None

    @classmethod
    def from_result(cls, result: AccountBalances) -> AccountBalancesOut:
        return cls(
            account=result.account,
            balances=[
                AssetBalanceOut(
                    symbol=balance.symbol,
                    native_amount=balance.native_amount,
                    usd_value=balance.known_usd_value,
                    name=balance.name,
                    contract=balance.contract,
                )
                for balance in result.balances
            ],
            total_usd_value=result.total_usd_value,
        )


class AssetTotalOut(BaseModel):
    symbol: str
    total_amount: Decimal
    total_usd_value: Decimal


class OrganizationOut(BaseModel):
    organization: str
    total_usd_value: Decimal
    assets: list[AssetTotalOut]


class FailureOut(BaseModel):
    account: TrackedAccount
    error: str


class BalancesResponse(BaseModel):
    total_usd_value: Decimal
    organizations: list[OrganizationOut]
    accounts: list[AccountBalancesOut]
    failures: list[FailureOut]
    unpriced_symbols: list[str]

    @classmethod
    def from_report(cls, report: RunReport) -> BalancesResponse:
        summary = report.summary
        return cls(
            total_usd_value=summary.total_usd_value,
            organizations=[
                OrganizationOut(
                    organization=org.organization,
                    total_usd_value=org.total_usd_value,
                    assets=[
                        AssetTotalOut(
                            symbol=asset.symbol,
                            total_amount=asset.total_amount,
                            total_usd_value=asset.total_usd_value,
                        )
                        for asset in org.sorted_assets()
                    ],
                )
                for org in summary.sorted_organizations()
            ],
            accounts=[AccountBalancesOut.from_result(result) for result in report.accounts],
            failures=[FailureOut(account=failure.account, error=failure.error) for failure in report.failures],
            unpriced_symbols=sorted(report.unpriced_symbols),
        )
