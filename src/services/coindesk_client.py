from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import requests

from utils.http import build_session

from .price_types import PriceError, PriceQuote

logger = logging.getLogger(__name__)

# API docs: https://developers.coindesk.com/documentation/data-api/spot_v1_latest_tick
LATEST_TICK_PATH = "/spot/v1/latest/tick"


class CoinDeskAPIError(PriceError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class CoinDeskClient:
    """CoinDesk Data API client for latest spot ticks, many instruments per request."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://data-api.coindesk.com",
        timeout: float = 10.0,
        session: requests.Session | None = None,
        retry_attempts: int = 5,
        retry_backoff_seconds: float = 1,
        source_name: str = "coindesk-spot-api",
    ) -> None:
        if not api_key:
            msg = "api_key must be provided"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.source_name = source_name
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self._session = build_session(
            session, retry_attempts=retry_attempts, backoff_seconds=retry_backoff_seconds, methods=("GET",)
        )

    def get_latest_ticks(self, *, market: str, instruments: Iterable[str]) -> dict[str, PriceQuote]:
        """Latest tick keyed by ``BASE-QUOTE``; instruments the market does not list are left out."""
        requested = [instrument.upper() for instrument in instruments]
        if not requested:
            return {}
        if not market:
            msg = "market must be provided"
            raise ValueError(msg)

        payload = self._get(
            LATEST_TICK_PATH,
            params={"market": market, "instruments": ",".join(requested), "apply_mapping": "true"},
        )
        data = payload.get("Data") or {}
        if not isinstance(data, dict):
            raise CoinDeskAPIError("CoinDesk tick payload has unexpected Data type", payload=payload)

        quotes: dict[str, PriceQuote] = {}
        for instrument, entry in data.items():
            quote = self._quote_from_tick(str(instrument).upper(), entry)
            if quote is not None:
                quotes[f"{quote.base_id}-{quote.quote_id}"] = quote
        return quotes

    def _get(self, path: str, *, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = self._session.request(
                "GET", f"{self.base_url}{path}", params=params, timeout=self.timeout, headers=self._headers
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error(exc.response) from exc
        except requests.RequestException as exc:
            raise CoinDeskAPIError(f"CoinDesk API request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise CoinDeskAPIError("CoinDesk API returned invalid JSON", payload=response.text) from exc
        if not isinstance(payload, dict):
            raise CoinDeskAPIError("CoinDesk API returned unexpected payload type", payload=payload)

        # Missing instruments are reported in Err alongside the ones that were found.
        message = _error_message(payload)
        if message and not payload.get("Data"):
            raise CoinDeskAPIError(message, status_code=response.status_code, payload=payload)
        return payload

    def _quote_from_tick(self, instrument: str, entry: Any) -> PriceQuote | None:
        if not isinstance(entry, dict) or entry.get("PRICE") is None:
            return None

        mapped = str(entry.get("MAPPED_INSTRUMENT") or entry.get("INSTRUMENT") or instrument).upper()
        base, _, quote = mapped.partition("-")
        updated = entry.get("PRICE_LAST_UPDATE_TS")
        try:
            rate = Decimal(str(entry["PRICE"]))
            timestamp = datetime.fromtimestamp(int(updated), tz=timezone.utc) if updated is not None else None
        except (InvalidOperation, ValueError, TypeError, OverflowError, OSError):
            logger.warning("Skipping unparsable CoinDesk tick for %s: %r", instrument, entry)
            return None
        if not rate.is_finite():
            logger.warning("Skipping non-finite CoinDesk price for %s: %s", instrument, rate)
            return None

        return PriceQuote(
            base_id=str(entry.get("BASE") or base).upper(),
            quote_id=str(entry.get("QUOTE") or quote).upper(),
            rate=rate,
            source=self.source_name,
            timestamp=timestamp,
        )

    @staticmethod
    def _http_error(response: requests.Response | None) -> CoinDeskAPIError:
        status_code = getattr(response, "status_code", None)
        if response is None:
            return CoinDeskAPIError("CoinDesk API request failed", status_code=status_code)
        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text
        message = _error_message(payload) if isinstance(payload, dict) else None
        return CoinDeskAPIError(
            message or f"CoinDesk API request failed with status {status_code}",
            status_code=status_code,
            payload=payload,
        )


def _error_message(payload: dict[str, Any]) -> str | None:
    err = payload.get("Err")
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    return None


__all__ = ["CoinDeskAPIError", "CoinDeskClient"]
