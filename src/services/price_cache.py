from __future__ import annotations

import logging
import threading
from collections import Counter
from concurrent.futures import Future
from decimal import Decimal
from typing import Iterable, Sequence

from domain.pricing import PriceResolver

from .price_sources import PriceSource
from .price_types import QUOTE_FALLBACK_ORDER, PriceError

logger = logging.getLogger(__name__)


class PriceCache(PriceResolver):
    """Run-scoped USD price lookup with at most one upstream resolution per symbol.

    Every symbol gets a single ``Future`` the first time it is asked for. The
    caller that created it performs the upstream work; concurrent callers
    asking for the same symbol wait on that future instead of re-querying.
    Outcomes are final for the lifetime of the cache, including "no price".
    """

    def __init__(
        self,
        source: PriceSource | None,
        *,
        quote_fallback: Sequence[str] = QUOTE_FALLBACK_ORDER,
    ) -> None:
        if not quote_fallback:
            msg = "quote_fallback must contain at least one quote currency"
            raise ValueError(msg)
        self.source = source
        self.quote_fallback = tuple(quote.upper() for quote in quote_fallback)
        self.resolutions: Counter[str] = Counter()
        self._entries: dict[str, Future[Decimal | None]] = {}
        self._lock = threading.Lock()

    @classmethod
    def unavailable(cls) -> PriceCache:
        return cls(None)

    @property
    def available(self) -> bool:
        return self.source is not None

    def resolve_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        wanted = sorted({symbol for symbol in symbols if symbol})
        claimed: list[str] = []
        pending: dict[str, Future[Decimal | None]] = {}

        with self._lock:
            for symbol in wanted:
                entry = self._entries.get(symbol)
                if entry is None:
                    entry = Future()
                    self._entries[symbol] = entry
                    claimed.append(symbol)
                    self.resolutions[symbol] += 1
                pending[symbol] = entry

        if claimed:
            self._settle(claimed)

        prices: dict[str, Decimal] = {}
        for symbol, entry in pending.items():
            price = entry.result()
            if price is not None:
                prices[symbol] = price
        return prices

    def cached(self) -> dict[str, Decimal]:
        with self._lock:
            entries = list(self._entries.items())
        prices: dict[str, Decimal] = {}
        for symbol, entry in entries:
            if not entry.done():
                continue
            price = entry.result()
            if price is not None:
                prices[symbol] = price
        return prices

    def _settle(self, symbols: list[str]) -> None:
        resolved: dict[str, Decimal] = {}
        try:
            if self.source is not None:
                resolved = self._fetch(self.source, symbols)
        finally:
            for symbol in symbols:
                self._entries[symbol].set_result(resolved.get(symbol))

    def _fetch(self, source: PriceSource, symbols: list[str]) -> dict[str, Decimal]:
        primary, *fallbacks = self.quote_fallback
        try:
            resolved = source.fetch_prices(symbols)
        except PriceError as exc:
            logger.warning("Batch price request for %d symbols failed: %s; resolving individually", len(symbols), exc)
            return self._fetch_individually(source, symbols, self.quote_fallback)

        resolved = {symbol: price for symbol, price in resolved.items() if symbol in symbols}
        missing = [symbol for symbol in symbols if symbol not in resolved]
        if missing and fallbacks:
            logger.info("No %s quote for %s; trying %s", primary, ", ".join(missing), ", ".join(fallbacks))
            resolved.update(self._fetch_individually(source, missing, tuple(fallbacks)))
        return resolved

    def _fetch_individually(
        self, source: PriceSource, symbols: list[str], quotes: tuple[str, ...]
    ) -> dict[str, Decimal]:
        resolved: dict[str, Decimal] = {}
        for symbol in symbols:
            price = self._fetch_one(source, symbol, quotes)
            if price is not None:
                resolved[symbol] = price
        return resolved

    @staticmethod
    def _fetch_one(source: PriceSource, symbol: str, quotes: tuple[str, ...]) -> Decimal | None:
        last_error: PriceError | None = None
        for quote_id in quotes:
            try:
                return source.fetch_price(symbol, quote_id)
            except PriceError as exc:
                last_error = exc
        logger.warning("No price for %s (tried %s): %s", symbol, "/".join(quotes), last_error)
        return None


__all__ = ["PriceCache"]
