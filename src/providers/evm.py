from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import requests

from domain.accounts import ProviderKind
from domain.balances import UNKNOWN_SYMBOL, AssetBalance

from .base import DEFAULT_TIMEOUT_SECONDS, JsonRpcClient, ProviderError, Throttle, scale_units

logger = logging.getLogger(__name__)

DEFAULT_RPC_URLS: dict[ProviderKind, str] = {
    ProviderKind.ETHEREUM: "https://eth.llamarpc.com",
    ProviderKind.POLYGON: "https://polygon-rpc.com",
    ProviderKind.BSC: "https://bsc-dataseed.binance.org",
    ProviderKind.ARBITRUM: "https://arb1.arbitrum.io/rpc",
    ProviderKind.OPTIMISM: "https://mainnet.optimism.io",
    ProviderKind.AVALANCHE: "https://api.avax.network/ext/bc/C/rpc",
    ProviderKind.BASE: "https://mainnet.base.org",
    ProviderKind.CORE: "https://rpc.coredao.org",
}

# Stablecoin contracts checked on every wallet; (contract, expected symbol).
COMMON_TOKENS: dict[ProviderKind, list[tuple[str, str]]] = {
    ProviderKind.ETHEREUM: [
        ("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", "USDC"),
        ("0xdAC17F958D2ee523a2206206994597C13D831ec7", "USDT"),
        ("0x6B175474E89094C44Da98b954EedeAC495271d0F", "DAI"),
    ],
    ProviderKind.POLYGON: [
        ("0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359", "USDC"),
        ("0xc2132D05D31c914a87C6611C10748AEb04B58e8F", "USDT"),
        ("0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063", "DAI"),
    ],
    ProviderKind.BSC: [
        ("0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", "USDC"),
        ("0x55d398326f99059fF775485246999027B3197955", "USDT"),
        ("0x1AF3F329e8BE154074D8769D1FFa4eE058B1DBc3", "DAI"),
    ],
    ProviderKind.ARBITRUM: [
        ("0xaf88d065e77c8cC2239327C5EDb3A432268e5831", "USDC"),
        ("0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", "USDT"),
        ("0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1", "DAI"),
    ],
    ProviderKind.OPTIMISM: [
        ("0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85", "USDC"),
        ("0x94b008aA00579c1307B0EF2c499aD98a8ce58e58", "USDT"),
        ("0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1", "DAI"),
    ],
    ProviderKind.AVALANCHE: [
        ("0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", "USDC"),
        ("0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7", "USDT"),
        ("0xd586E7F844cEa2F87f50152665BCbc2C279D8d70", "DAI"),
    ],
    ProviderKind.BASE: [
        ("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "USDC"),
        ("0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", "DAI"),
    ],
    ProviderKind.CORE: [
        ("0xa4151B2B3e269645181dCcF2D426cE75fcbDeca9", "USDT"),
        ("0x900101d06A7426441Ae63e9AB3B9b0F63Be145F1", "USDC"),
    ],
}

BALANCE_OF_SELECTOR = "0x70a08231"
DECIMALS_SELECTOR = "0x313ce567"
NAME_SELECTOR = "0x06fdde03"
SYMBOL_SELECTOR = "0x95d89b41"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class _TokenMetadata:
    decimals: int
    symbol: str | None
    name: str | None


def decode_abi_string(raw: str) -> str:
    """Decode an ABI-encoded dynamic ``string`` return value."""
    data = raw.removeprefix("0x")
    if len(data) < 128:
        return ""
    length = int(data[64:128], 16)
    payload = bytes.fromhex(data[128 : 128 + length * 2])
    return payload.decode("utf-8", errors="replace").rstrip("\x00")


def _parse_hex_int(raw: object, *, what: str, provider: str) -> int:
    if not isinstance(raw, str):
        raise ProviderError(f"Invalid {what} format", provider=provider, payload=raw)
    digits = raw.removeprefix("0x")
    if not digits:
        return 0
    try:
        return int(digits, 16)
    except ValueError as exc:
        raise ProviderError(f"Failed to parse {what}", provider=provider, payload=raw) from exc


class EvmProvider:
    def __init__(
        self,
        kind: ProviderKind,
        *,
        rpc_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        throttle: Throttle | None = None,
        tokens: list[tuple[str, str]] | None = None,
    ) -> None:
        if not kind.is_evm:
            msg = f"{kind} is not an EVM chain"
            raise ValueError(msg)
        self.kind = kind
        self.name = kind.display_name
        self.native_symbol = kind.native_symbol or "ETH"
        self.tokens = COMMON_TOKENS.get(kind, []) if tokens is None else tokens
        self.throttle = throttle or Throttle(0.3)
        url = rpc_url or DEFAULT_RPC_URLS[kind]
        self.rpc = JsonRpcClient(url, provider=self.name, timeout=timeout, session=session)

    def fetch_balances(self, identifier: str) -> list[AssetBalance]:
        if not _ADDRESS_RE.match(identifier):
            raise ProviderError("Invalid EVM address format", provider=self.name, identifier=identifier)

        wei = _parse_hex_int(
            self.rpc.call("eth_getBalance", [identifier, "latest"]), what="balance", provider=self.name
        )
        balances = [AssetBalance(symbol=self.native_symbol, native_amount=scale_units(wei, 18))]

        for contract, expected_symbol in self.tokens:
            self.throttle.wait()
            try:
                token = self._token_balance(identifier, contract)
            except ProviderError as exc:
                logger.warning("Failed to query %s balance on %s: %s", expected_symbol, self.name, exc)
                continue
            if token is not None:
                balances.append(token)
        return balances

    def _token_balance(self, wallet: str, contract: str) -> AssetBalance | None:
        padded = wallet.removeprefix("0x").lower().rjust(64, "0")
        raw = _parse_hex_int(
            self._eth_call(contract, f"{BALANCE_OF_SELECTOR}{padded}"), what="token balance", provider=self.name
        )
        if raw == 0:
            return None

        metadata = self._token_metadata(contract)
        return AssetBalance(
            symbol=metadata.symbol or UNKNOWN_SYMBOL,
            native_amount=scale_units(raw, metadata.decimals),
            name=metadata.name,
            contract=contract,
        )

    def _token_metadata(self, contract: str) -> _TokenMetadata:
        self.throttle.wait()
        try:
            decimals = _parse_hex_int(self._eth_call(contract, DECIMALS_SELECTOR), what="decimals", provider=self.name)
        except ProviderError:
            decimals = 18

        self.throttle.wait()
        name = self._optional_string(contract, NAME_SELECTOR)
        self.throttle.wait()
        symbol = self._optional_string(contract, SYMBOL_SELECTOR)
        return _TokenMetadata(decimals=decimals, symbol=symbol, name=name)

    def _optional_string(self, contract: str, selector: str) -> str | None:
        try:
            raw = self._eth_call(contract, selector)
        except ProviderError as exc:
            logger.debug("Metadata call %s on %s failed: %s", selector, contract, exc)
            return None
        if not isinstance(raw, str):
            return None
        try:
            return decode_abi_string(raw) or None
        except ValueError:
            return None

    def _eth_call(self, contract: str, data: str) -> object:
        return self.rpc.call("eth_call", [{"to": contract, "data": data}, "latest"])


__all__ = ["COMMON_TOKENS", "DEFAULT_RPC_URLS", "EvmProvider", "decode_abi_string"]
