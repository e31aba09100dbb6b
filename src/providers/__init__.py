"""Provider adapters: one ``BalanceProvider`` per chain or bank.

Each adapter turns an account identifier into a list of ``AssetBalance``
records or raises ``ProviderError``. ``ProviderFactory`` picks the adapter
for a ``ProviderKind``.
"""

from .base import BalanceProvider, ProviderError
from .factory import ProviderFactory

__all__ = ["BalanceProvider", "ProviderError", "ProviderFactory"]
