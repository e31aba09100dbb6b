from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Protocol

from config import AppSettings, config

from .coindesk_client import CoinDeskClient
from .price_types import PriceError, PriceServiceUnavailable

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """USD prices for many symbols in one request; symbols without a quote are absent."""
        ...

    def fetch_price(self, symbol: str, quote_id: str) -> Decimal:
        """Price of one symbol in ``quote_id``; raises ``PriceError`` when unavailable."""
        ...


class CoinDeskPriceSource(PriceSource):
    def __init__(self, *, client: CoinDeskClient, market: str = "coinbase") -> None:
        if not market:
            msg = "market must be provided"
            raise ValueError(msg)
        self.client = client
        self.market = market

    def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        instruments = {f"{symbol.upper()}-USD": symbol for symbol in symbols}
        if not instruments:
            return {}
        quotes = self.client.get_latest_ticks(market=self.market, instruments=instruments)
        prices: dict[str, Decimal] = {}
        for instrument, symbol in instruments.items():
            quote = quotes.get(instrument)
            if quote is not None:
                prices[symbol] = quote.rate
        return prices

    def fetch_price(self, symbol: str, quote_id: str) -> Decimal:
        instrument = f"{symbol.upper()}-{quote_id.upper()}"
        quotes = self.client.get_latest_ticks(market=self.market, instruments=[instrument])
        quote = quotes.get(instrument)
        if quote is None:
            msg = f"No price data returned for {instrument} on {self.market}"
            raise PriceError(msg)
        return quote.rate


def build_price_source(settings: AppSettings | None = None) -> PriceSource:
    settings = settings or config()
    if not settings.coindesk_api_key:
        raise PriceServiceUnavailable("COINDESK_API_KEY is not set; USD values will be unavailable")
    client = CoinDeskClient(api_key=settings.coindesk_api_key)
    logger.debug("Using CoinDesk price source on market %s", settings.coindesk_market)
    return CoinDeskPriceSource(client=client, market=settings.coindesk_market)


__all__ = ["CoinDeskPriceSource", "PriceSource", "build_price_source"]
