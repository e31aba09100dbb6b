from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any

import requests

from domain.balances import UNKNOWN_SYMBOL, AssetBalance

from .base import DEFAULT_TIMEOUT_SECONDS, JsonRpcClient, ProviderError, scale_units

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

KNOWN_MINTS: dict[str, str] = {
    "So11111111111111111111111111111111111111112": "SOL",
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "USDC",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": "MSOL",
    "7dHbWXmci3dT8UFYWYZweBLXgycu7Y3iL6trKn1Y7ARj": "stSOL",
    "SW1TCHLmRGTfW5xZknqQdpdarB8PD95sJYWpNp9TbFx": "SWTCH",
    "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL": "JTO",
    "GP2vH92rxSHWm2VzttZBZdeFnv9LyfFJYvPrAet6pump": "RAT",
}

_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


class SolanaProvider:
    name = "Solana"

    def __init__(
        self,
        *,
        rpc_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        known_mints: dict[str, str] | None = None,
    ) -> None:
        self.rpc = JsonRpcClient(rpc_url or DEFAULT_RPC_URL, provider=self.name, timeout=timeout, session=session)
        self.known_mints = KNOWN_MINTS if known_mints is None else known_mints

    def fetch_balances(self, identifier: str) -> list[AssetBalance]:
        if not _BASE58_RE.match(identifier):
            raise ProviderError("Invalid Solana address", provider=self.name, identifier=identifier)

        result = self.rpc.call("getBalance", [identifier])
        lamports = result.get("value") if isinstance(result, dict) else None
        if not isinstance(lamports, int):
            raise ProviderError("Invalid balance format", provider=self.name, identifier=identifier, payload=result)
        balances = [AssetBalance(symbol="SOL", native_amount=scale_units(lamports, 9))]

        accounts = self.rpc.call(
            "getTokenAccountsByOwner",
            [identifier, {"programId": TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
        )
        entries = accounts.get("value") if isinstance(accounts, dict) else None
        for entry in entries or []:
            token = self._parse_token_account(entry)
            if token is not None:
                balances.append(token)
        return balances

    def _parse_token_account(self, entry: Any) -> AssetBalance | None:
        try:
            parsed = entry["account"]["data"]["parsed"]
        except (KeyError, TypeError):
            logger.debug("Skipping token account without parsed data: %s", entry)
            return None
        if not isinstance(parsed, dict) or parsed.get("type") != "account":
            return None

        info = parsed.get("info") or {}
        mint = str(info.get("mint") or "unknown")
        token_amount = info.get("tokenAmount") or {}
        try:
            amount = Decimal(str(token_amount.get("uiAmountString") or token_amount.get("uiAmount") or 0))
        except InvalidOperation:
            logger.warning("Unparsable token amount for mint %s: %s", mint, token_amount)
            return None

        return AssetBalance(
            symbol=self.known_mints.get(mint, UNKNOWN_SYMBOL),
            native_amount=amount,
            contract=mint,
        )


__all__ = ["KNOWN_MINTS", "SolanaProvider"]
