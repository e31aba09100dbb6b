from __future__ import annotations

import requests

from domain.balances import AssetBalance

from .base import DEFAULT_TIMEOUT_SECONDS, JsonRpcClient, ProviderError, scale_units

DEFAULT_RPC_URL = "https://fullnode.mainnet.sui.io:443"
SUI_COIN_TYPE = "0x2::sui::SUI"
MIST_DECIMALS = 9


class SuiProvider:
    name = "Sui"

    def __init__(
        self,
        *,
        rpc_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.rpc = JsonRpcClient(rpc_url or DEFAULT_RPC_URL, provider=self.name, timeout=timeout, session=session)

    def fetch_balances(self, identifier: str) -> list[AssetBalance]:
        if not identifier.startswith("0x"):
            raise ProviderError(
                "Invalid Sui address format: must start with 0x", provider=self.name, identifier=identifier
            )

        result = self.rpc.call("suix_getBalance", [identifier, SUI_COIN_TYPE])
        total = result.get("totalBalance") if isinstance(result, dict) else None
        if not isinstance(total, str) or not total.isdigit():
            raise ProviderError("Invalid balance format", provider=self.name, identifier=identifier, payload=result)
        return [AssetBalance(symbol="SUI", native_amount=scale_units(total, MIST_DECIMALS))]


__all__ = ["SuiProvider"]
