from __future__ import annotations

import requests

from domain.balances import AssetBalance

from .base import DEFAULT_TIMEOUT_SECONDS, JsonRpcClient, ProviderError, scale_units

DEFAULT_RPC_URL = "https://free-rpc.nethermind.io/mainnet-juno"
ETH_TOKEN_CONTRACT = "0x049d36570d4e46f48e99674bd3fcc84644ddd6b96f7c741b1562b82f9e004dc7"
BALANCE_OF_SELECTOR = "0x2e4263afad30923c891518314c3c95dbe830a16874e8abc5777a9a20b54c76e"


class StarknetProvider:
    name = "Starknet"

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
                "Invalid Starknet address format: must start with 0x", provider=self.name, identifier=identifier
            )

        result = self.rpc.call(
            "starknet_call",
            {
                "request": {
                    "contract_address": ETH_TOKEN_CONTRACT,
                    "entry_point_selector": BALANCE_OF_SELECTOR,
                    "calldata": [identifier],
                },
                "block_id": "latest",
            },
        )
        # u256 balance is returned as (low, high) felts.
        if not isinstance(result, list) or not result or not isinstance(result[0], str):
            raise ProviderError("Invalid balance format", provider=self.name, identifier=identifier, payload=result)
        try:
            low = int(result[0], 16)
            high = int(result[1], 16) if len(result) > 1 else 0
        except ValueError as exc:
            raise ProviderError(
                "Failed to parse balance", provider=self.name, identifier=identifier, payload=result
            ) from exc
        return [AssetBalance(symbol="ETH", native_amount=scale_units(low + (high << 128), 18))]


__all__ = ["StarknetProvider"]
