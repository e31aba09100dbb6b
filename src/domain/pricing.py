from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Mapping, Protocol

from .balances import UNKNOWN_SYMBOL, AccountBalances, AssetBalance


class PriceResolver(Protocol):
    """Lookup interface for symbol→USD-per-unit prices."""

    def resolve_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]: ...


def extract_symbols(results: Iterable[AccountBalances]) -> set[str]:
    """Symbols that need a market price to be valued in USD.

    Balances already carrying a USD value (fiat accounts) are skipped. The
    native symbol of every chain account is always included, even when the
    adapter reported no balance for it, so the set stays stable across runs.
    """
    symbols: set[str] = set()
    for result in results:
        native = result.account.provider.native_symbol
        if native is not None:
            symbols.add(native)
        for balance in result.balances:
            if balance.known_usd_value is None and balance.symbol != UNKNOWN_SYMBOL:
                symbols.add(balance.symbol)
    return symbols


def enrich(balance: AssetBalance, prices: Mapping[str, Decimal]) -> AssetBalance:
    if balance.known_usd_value is not None:
        return balance
    price = prices.get(balance.symbol)
    if price is None:
        return balance
    return replace(balance, known_usd_value=balance.native_amount * price)


def enrich_account(result: AccountBalances, prices: Mapping[str, Decimal]) -> AccountBalances:
    return AccountBalances(
        account=result.account,
        balances=[enrich(balance, prices) for balance in result.balances],
    )


__all__ = ["PriceResolver", "enrich", "enrich_account", "extract_symbols"]
