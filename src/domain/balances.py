from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from .accounts import TrackedAccount

# Placeholder for tokens whose ticker could not be determined. Aggregated, never priced.
UNKNOWN_SYMBOL = "Unknown"


@dataclass(frozen=True)
class AssetBalance:
    """Holding of one asset as reported by a provider.

    ``known_usd_value`` is ``None`` while the USD value is unknown. A value of
    ``Decimal(0)`` means the holding is known to be worthless.
    """

    symbol: str
    native_amount: Decimal
    known_usd_value: Decimal | None = None
    name: str | None = None
    contract: str | None = None


@dataclass(frozen=True)
class AccountBalances:
    account: TrackedAccount
    balances: list[AssetBalance] = field(default_factory=list)

    @property
    def total_usd_value(self) -> Decimal | None:
        values = [balance.known_usd_value for balance in self.balances if balance.known_usd_value is not None]
        if not values:
            return None
        return sum(values, start=Decimal(0))


__all__ = ["AccountBalances", "AssetBalance", "UNKNOWN_SYMBOL"]
