from __future__ import annotations

import requests

from domain.balances import AssetBalance

from .base import DEFAULT_TIMEOUT_SECONDS, JsonRpcClient, ProviderError, scale_units

DEFAULT_RPC_URL = "https://rpc.mainnet.near.org"
YOCTO_DECIMALS = 24


class NearProvider:
    name = "NEAR Protocol"

    def __init__(
        self,
        *,
        rpc_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.rpc = JsonRpcClient(
            rpc_url or DEFAULT_RPC_URL,
            provider=self.name,
            timeout=timeout,
            session=session,
            request_id=lambda: "dontcare",
        )

    def fetch_balances(self, identifier: str) -> list[AssetBalance]:
        result = self.rpc.call(
            "query",
            {"request_type": "view_account", "finality": "final", "account_id": identifier},
        )
        amount = result.get("amount") if isinstance(result, dict) else None
        if not isinstance(amount, str) or not amount.isdigit():
            raise ProviderError("Invalid balance format", provider=self.name, identifier=identifier, payload=result)
        return [AssetBalance(symbol="NEAR", native_amount=scale_units(amount, YOCTO_DECIMALS))]


__all__ = ["NearProvider"]
