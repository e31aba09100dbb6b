from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator


class ProviderKind(StrEnum):
    SOLANA = "solana"
    ETHEREUM = "ethereum"
    POLYGON = "polygon"
    BSC = "bsc"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    AVALANCHE = "avalanche"
    BASE = "base"
    CORE = "core"
    NEAR = "near"
    APTOS = "aptos"
    SUI = "sui"
    STARKNET = "starknet"
    MERCURY = "mercury"
    CIRCLE = "circle"

    @classmethod
    def parse(cls, raw: str) -> ProviderKind:
        key = raw.strip().lower()
        kind = _ALIASES.get(key)
        if kind is None:
            raise ValueError(f"Unknown provider: {raw}")
        return kind

    @property
    def native_symbol(self) -> str | None:
        return _NATIVE_SYMBOLS.get(self)

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def is_evm(self) -> bool:
        return self in _EVM_KINDS

    @property
    def is_banking(self) -> bool:
        return self in (ProviderKind.MERCURY, ProviderKind.CIRCLE)


_ALIASES: dict[str, ProviderKind] = {
    "solana": ProviderKind.SOLANA,
    "sol": ProviderKind.SOLANA,
    "ethereum": ProviderKind.ETHEREUM,
    "eth": ProviderKind.ETHEREUM,
    "polygon": ProviderKind.POLYGON,
    "matic": ProviderKind.POLYGON,
    "bsc": ProviderKind.BSC,
    "binance": ProviderKind.BSC,
    "bnb": ProviderKind.BSC,
    "binancesmartchain": ProviderKind.BSC,
    "arbitrum": ProviderKind.ARBITRUM,
    "arb": ProviderKind.ARBITRUM,
    "optimism": ProviderKind.OPTIMISM,
    "op": ProviderKind.OPTIMISM,
    "avalanche": ProviderKind.AVALANCHE,
    "avax": ProviderKind.AVALANCHE,
    "base": ProviderKind.BASE,
    "core": ProviderKind.CORE,
    "near": ProviderKind.NEAR,
    "aptos": ProviderKind.APTOS,
    "apt": ProviderKind.APTOS,
    "sui": ProviderKind.SUI,
    "starknet": ProviderKind.STARKNET,
    "stark": ProviderKind.STARKNET,
    "mercury": ProviderKind.MERCURY,
    "circle": ProviderKind.CIRCLE,
}

_EVM_KINDS = frozenset(
    {
        ProviderKind.ETHEREUM,
        ProviderKind.POLYGON,
        ProviderKind.BSC,
        ProviderKind.ARBITRUM,
        ProviderKind.OPTIMISM,
        ProviderKind.AVALANCHE,
        ProviderKind.BASE,
        ProviderKind.CORE,
    }
)

# Starknet balances are read from the ETH fee-token contract.
_NATIVE_SYMBOLS: dict[ProviderKind, str] = {
    ProviderKind.SOLANA: "SOL",
    ProviderKind.ETHEREUM: "ETH",
    ProviderKind.POLYGON: "MATIC",
    ProviderKind.BSC: "BNB",
    ProviderKind.ARBITRUM: "ETH",
    ProviderKind.OPTIMISM: "ETH",
    ProviderKind.AVALANCHE: "AVAX",
    ProviderKind.BASE: "ETH",
    ProviderKind.CORE: "CORE",
    ProviderKind.NEAR: "NEAR",
    ProviderKind.APTOS: "APT",
    ProviderKind.SUI: "SUI",
    ProviderKind.STARKNET: "ETH",
}

_DISPLAY_NAMES: dict[ProviderKind, str] = {
    ProviderKind.SOLANA: "Solana",
    ProviderKind.ETHEREUM: "Ethereum",
    ProviderKind.POLYGON: "Polygon",
    ProviderKind.BSC: "Binance Smart Chain",
    ProviderKind.ARBITRUM: "Arbitrum",
    ProviderKind.OPTIMISM: "Optimism",
    ProviderKind.AVALANCHE: "Avalanche C-Chain",
    ProviderKind.BASE: "Base",
    ProviderKind.CORE: "Core",
    ProviderKind.NEAR: "NEAR Protocol",
    ProviderKind.APTOS: "Aptos",
    ProviderKind.SUI: "Sui",
    ProviderKind.STARKNET: "Starknet",
    ProviderKind.MERCURY: "Mercury Banking",
    ProviderKind.CIRCLE: "Circle",
}


class TrackedAccount(BaseModel):
    """An account followed by the registry.

    ``organization`` may be empty; grouping into the uncategorized bucket
    happens when balances are aggregated, the stored label is left as is.
    """

    model_config = ConfigDict(frozen=True)

    organization: str = ""
    display_name: str
    provider: ProviderKind
    identifier: str

    @model_validator(mode="after")
    def _validate_fields(self) -> TrackedAccount:
        if not self.display_name:
            raise ValueError("display_name must be non-empty")
        if not self.identifier:
            raise ValueError("identifier must be non-empty")
        return self


__all__ = ["ProviderKind", "TrackedAccount"]
