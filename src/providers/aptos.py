from __future__ import annotations

import logging

import requests

from domain.balances import AssetBalance
from utils.http import build_session

from .base import DEFAULT_TIMEOUT_SECONDS, ProviderError, scale_units

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://fullnode.mainnet.aptoslabs.com/v1"
OCTA_DECIMALS = 8


class AptosProvider:
    name = "Aptos"

    def __init__(
        self,
        *,
        api_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = (api_url or DEFAULT_API_URL).rstrip("/")
        self.timeout = timeout
        self._session = build_session(session)

    @staticmethod
    def normalize_address(address: str) -> str:
        if address.startswith("0x"):
            return address
        if not address or any(char not in "0123456789abcdefABCDEF" for char in address):
            raise ValueError("Invalid Aptos address format: must be hexadecimal")
        return f"0x{address}"

    def fetch_balances(self, identifier: str) -> list[AssetBalance]:
        try:
            address = self.normalize_address(identifier)
        except ValueError as exc:
            raise ProviderError(str(exc), provider=self.name, identifier=identifier) from exc

        request = {
            "function": "0x1::coin::balance",
            "type_arguments": ["0x1::aptos_coin::AptosCoin"],
            "arguments": [address],
        }
        try:
            response = self._session.post(f"{self.api_url}/view", json=request, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(
                f"Failed to send view request: {exc}", provider=self.name, identifier=identifier
            ) from exc

        # Accounts without a coin store answer with an error status; that is a zero balance.
        if not response.ok:
            logger.info("Aptos view for %s returned status %s; treating as empty", address, response.status_code)
            return [AssetBalance(symbol="APT", native_amount=scale_units(0, OCTA_DECIMALS))]

        try:
            result = response.json()
        except ValueError as exc:
            raise ProviderError(
                "Failed to parse view response", provider=self.name, identifier=identifier, payload=response.text
            ) from exc

        raw = result[0] if isinstance(result, list) and result else "0"
        octas = int(raw) if isinstance(raw, str) and raw.isdigit() else 0
        return [AssetBalance(symbol="APT", native_amount=scale_units(octas, OCTA_DECIMALS))]


__all__ = ["AptosProvider"]
