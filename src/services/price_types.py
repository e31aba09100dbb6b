from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

# Quote currencies tried, in order, when a symbol is resolved on its own.
QUOTE_FALLBACK_ORDER: tuple[str, ...] = ("USD", "USDT", "USDC")


class PriceError(RuntimeError):
    pass


class PriceServiceUnavailable(PriceError):
    """The price source cannot be used at all, e.g. no credentials configured."""


@dataclass(frozen=True)
class PriceQuote:
    """Latest spot price of one instrument."""

    base_id: str
    quote_id: str
    rate: Decimal
    source: str
    timestamp: datetime | None = None


__all__ = ["PriceError", "PriceQuote", "PriceServiceUnavailable", "QUOTE_FALLBACK_ORDER"]
