from __future__ import annotations

from decimal import Decimal, InvalidOperation

import requests

from domain.balances import AssetBalance

from .base import DEFAULT_TIMEOUT_SECONDS, ProviderError, RestClient

CIRCLE_API_BASE = "https://api.circle.com"

# Circle reports fiat currency codes for the stablecoins it holds.
CURRENCY_SYMBOLS = {"USD": "USDC", "EUR": "EURC"}


class CircleProvider:
    """Circle business account. The account identifier is informational: one key sees one account."""

    name = "Circle"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = CIRCLE_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            msg = "api_key must be provided"
            raise ValueError(msg)
        self.client = RestClient(
            base_url,
            provider=self.name,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            session=session,
        )

    def fetch_balances(self, identifier: str) -> list[AssetBalance]:
        payload = self.client.get("/v1/businessAccount/balances")
        data = payload.get("data") if isinstance(payload, dict) else None
        available = data.get("available") if isinstance(data, dict) else None
        if not isinstance(available, list):
            raise ProviderError("Unexpected Circle balances payload", provider=self.name, payload=payload)

        balances: list[AssetBalance] = []
        for entry in available:
            currency = str(entry.get("currency", "")).upper()
            try:
                amount = Decimal(str(entry.get("amount")))
            except InvalidOperation as exc:
                raise ProviderError(
                    f"Failed to parse available amount: {entry.get('amount')}",
                    provider=self.name,
                    identifier=identifier,
                    payload=entry,
                ) from exc
            # Only USD is USD-denominated; EURC and others still need a price.
            balances.append(
                AssetBalance(
                    symbol=CURRENCY_SYMBOLS.get(currency, currency),
                    native_amount=amount,
                    known_usd_value=amount if currency == "USD" else None,
                )
            )
        return balances


__all__ = ["CircleProvider"]
