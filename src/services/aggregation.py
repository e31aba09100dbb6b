from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from config import AppSettings, config
from domain.accounts import TrackedAccount
from domain.balances import AccountBalances
from domain.portfolio import PortfolioSummary, aggregate
from domain.pricing import enrich_account, extract_symbols
from providers.factory import ProviderFactory

from .collector import AccountFailure, BalanceCollector, ProgressCallback, ProviderResolver
from .price_cache import PriceCache
from .price_sources import build_price_source
from .price_types import PriceError, PriceServiceUnavailable

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    summary: PortfolioSummary
    accounts: list[AccountBalances] = field(default_factory=list)
    failures: list[AccountFailure] = field(default_factory=list)
    prices: dict[str, Decimal] = field(default_factory=dict)
    unpriced_symbols: set[str] = field(default_factory=set)


def build_price_cache(settings: AppSettings | None = None) -> PriceCache:
    """Price cache backed by the configured source, or an empty one when none is usable."""
    try:
        source = build_price_source(settings)
    except PriceServiceUnavailable as exc:
        logger.warning("%s", exc)
        return PriceCache.unavailable()
    return PriceCache(source)


class PortfolioRun:
    """One end-to-end run: collect balances, price them, roll them up.

    A failed account or an unreachable price source degrades the report
    instead of aborting it; the accounts that did answer are always summed.
    """

    def __init__(self, collector: BalanceCollector, price_cache: PriceCache) -> None:
        self.collector = collector
        self.price_cache = price_cache

    def run(self, accounts: Sequence[TrackedAccount], *, with_prices: bool = True) -> RunReport:
        collected = self.collector.collect(accounts)

        symbols = extract_symbols(collected.results)
        prices: dict[str, Decimal] = {}
        if with_prices and symbols:
            try:
                prices = self.price_cache.resolve_prices(symbols)
            except PriceError as exc:
                logger.warning("Price lookup failed, continuing without USD values: %s", exc)

        enriched = [enrich_account(result, prices) for result in collected.results]
        summary = aggregate(enriched)
        summary.verify()

        return RunReport(
            summary=summary,
            accounts=enriched,
            failures=collected.failures,
            prices=prices,
            unpriced_symbols=symbols - prices.keys(),
        )


def build_portfolio_run(
    settings: AppSettings | None = None,
    *,
    providers: ProviderResolver | None = None,
    rpc_url: str | None = None,
    on_progress: ProgressCallback | None = None,
) -> PortfolioRun:
    settings = settings or config()
    collector = BalanceCollector(
        providers or ProviderFactory(settings, rpc_url=rpc_url),
        max_workers=settings.max_workers,
        timeout_seconds=settings.provider_timeout_seconds,
        on_progress=on_progress,
    )
    return PortfolioRun(collector, build_price_cache(settings))


__all__ = ["PortfolioRun", "RunReport", "build_portfolio_run", "build_price_cache"]
