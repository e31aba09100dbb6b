from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

import requests

from domain.balances import AssetBalance

from .base import DEFAULT_TIMEOUT_SECONDS, ProviderError, RestClient

MERCURY_API_BASE = "https://api.mercury.com/api/v1"


class MercuryProvider:
    """Mercury bank accounts; balances are USD so their USD value is known up front."""

    name = "Mercury Banking"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = MERCURY_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            msg = "api_key must be provided"
            raise ValueError(msg)
        self.client = RestClient(
            base_url,
            provider=self.name,
            headers={"Authorization": f"Bearer secret-token:{api_key}"},
            timeout=timeout,
            session=session,
        )

    def fetch_balances(self, identifier: str) -> list[AssetBalance]:
        account = self.client.get(f"/account/{identifier}")
        current = _to_decimal(account, "currentBalance", identifier=identifier)
        return [AssetBalance(symbol="USD", native_amount=current, known_usd_value=current)]

    def list_accounts(self) -> list[dict[str, Any]]:
        payload = self.client.get("/accounts")
        accounts = payload.get("accounts") if isinstance(payload, dict) else None
        if not isinstance(accounts, list):
            raise ProviderError("Unexpected Mercury accounts payload", provider=self.name, payload=payload)
        return accounts


def _to_decimal(payload: Any, key: str, *, identifier: str) -> Decimal:
    raw = payload.get(key) if isinstance(payload, dict) else None
    if raw is None:
        raise ProviderError(f"Mercury response missing {key}", provider=MercuryProvider.name, identifier=identifier)
    try:
        return Decimal(str(raw))
    except InvalidOperation as exc:
        raise ProviderError(
            f"Mercury {key} is not numeric", provider=MercuryProvider.name, identifier=identifier, payload=payload
        ) from exc


__all__ = ["MercuryProvider"]
