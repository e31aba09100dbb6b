from __future__ import annotations

import logging
import threading
from typing import Callable

from config import AppSettings, config
from domain.accounts import ProviderKind

from .aptos import AptosProvider
from .base import BalanceProvider, ProviderError, Throttle
from .circle import CircleProvider
from .evm import EvmProvider
from .mercury import MercuryProvider
from .near import NearProvider
from .solana import SolanaProvider
from .starknet import StarknetProvider
from .sui import SuiProvider

logger = logging.getLogger(__name__)


class ProviderFactory:
    """Builds one adapter per ``ProviderKind`` and reuses it for the rest of the run."""

    def __init__(self, settings: AppSettings | None = None, *, rpc_url: str | None = None) -> None:
        self.settings = settings or config()
        self.rpc_url = rpc_url or self.settings.rpc_url
        self._providers: dict[ProviderKind, BalanceProvider] = {}
        self._lock = threading.Lock()
        self._builders: dict[ProviderKind, Callable[[], BalanceProvider]] = {
            ProviderKind.SOLANA: self._solana,
            ProviderKind.NEAR: self._near,
            ProviderKind.APTOS: self._aptos,
            ProviderKind.SUI: self._sui,
            ProviderKind.STARKNET: self._starknet,
            ProviderKind.MERCURY: self._mercury,
            ProviderKind.CIRCLE: self._circle,
        }

    def __call__(self, kind: ProviderKind) -> BalanceProvider:
        return self.get(kind)

    def get(self, kind: ProviderKind) -> BalanceProvider:
        with self._lock:
            provider = self._providers.get(kind)
            if provider is None:
                provider = self._build(kind)
                self._providers[kind] = provider
            return provider

    def _build(self, kind: ProviderKind) -> BalanceProvider:
        logger.debug("Building provider for %s", kind)
        if kind.is_evm:
            return EvmProvider(
                kind,
                rpc_url=self.rpc_url,
                timeout=self.settings.provider_timeout_seconds,
                throttle=Throttle(self.settings.token_query_delay_seconds),
            )
        return self._builders[kind]()

    @property
    def _timeout(self) -> float:
        return self.settings.provider_timeout_seconds

    def _solana(self) -> BalanceProvider:
        return SolanaProvider(rpc_url=self.rpc_url, timeout=self._timeout)

    def _near(self) -> BalanceProvider:
        return NearProvider(rpc_url=self.rpc_url, timeout=self._timeout)

    def _aptos(self) -> BalanceProvider:
        return AptosProvider(api_url=self.rpc_url, timeout=self._timeout)

    def _sui(self) -> BalanceProvider:
        return SuiProvider(rpc_url=self.rpc_url, timeout=self._timeout)

    def _starknet(self) -> BalanceProvider:
        return StarknetProvider(rpc_url=self.rpc_url, timeout=self._timeout)

    def _mercury(self) -> BalanceProvider:
        if not self.settings.mercury_api_key:
            raise ProviderError("MERCURY_API_KEY environment variable not set", provider=MercuryProvider.name)
        return MercuryProvider(api_key=self.settings.mercury_api_key, timeout=self._timeout)

    def _circle(self) -> BalanceProvider:
        if not self.settings.circle_api_key:
            raise ProviderError("CIRCLE_API_KEY environment variable not set", provider=CircleProvider.name)
        return CircleProvider(api_key=self.settings.circle_api_key, timeout=self._timeout)


__all__ = ["ProviderFactory"]
