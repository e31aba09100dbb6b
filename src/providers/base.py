from __future__ import annotations

import itertools
import logging
import threading
import time
from decimal import Decimal
from typing import Any, Callable, Protocol

import requests

from domain.balances import AssetBalance
from utils.http import build_session

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

_RATE_LIMIT_MARKERS = ("rate limit", "too many requests")


class ProviderError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        provider: str,
        identifier: str | None = None,
        status_code: int | None = None,
        payload: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.identifier = identifier
        self.status_code = status_code
        self.payload = payload


class BalanceProvider(Protocol):
    name: str

    def fetch_balances(self, identifier: str) -> list[AssetBalance]: ...


class Throttle:
    """Minimum spacing between consecutive calls, shared by every thread using it."""

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval_seconds < 0:
            msg = "min_interval_seconds must be >= 0"
            raise ValueError(msg)
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: float | None = None

    def wait(self) -> None:
        with self._lock:
            now = self._clock()
            if self._last_call is not None:
                remaining = self.min_interval_seconds - (now - self._last_call)
                if remaining > 0:
                    self._sleep(remaining)
                    now = self._clock()
            self._last_call = now


def scale_units(raw: int | str, decimals: int) -> Decimal:
    """Convert an integer amount of base units into the asset's display unit."""
    value = Decimal(int(raw))
    if decimals:
        return value / (Decimal(10) ** decimals)
    return value


class JsonRpcClient:
    """JSON-RPC 2.0 over HTTP POST, errors surfaced as ``ProviderError``."""

    def __init__(
        self,
        url: str,
        *,
        provider: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
        request_id: Callable[[], int | str] | None = None,
    ) -> None:
        self.url = url
        self.provider = provider
        self.timeout = timeout
        self._session = build_session(session)
        counter = itertools.count(1)
        self._request_id = request_id or (lambda: next(counter))

    def call(self, method: str, params: Any) -> Any:
        request = {"jsonrpc": "2.0", "method": method, "params": params, "id": self._request_id()}
        logger.debug("%s RPC %s %s", self.provider, method, self.url)
        try:
            response = self._session.post(self.url, json=request, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            status_code = getattr(exc.response, "status_code", None)
            raise ProviderError(
                f"{self.provider} RPC request failed with status {status_code}",
                provider=self.provider,
                status_code=status_code,
            ) from exc
        except requests.RequestException as exc:
            raise ProviderError(f"Failed to send {self.provider} RPC request: {exc}", provider=self.provider) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Failed to parse {self.provider} RPC response", provider=self.provider, payload=response.text
            ) from exc

        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected {self.provider} RPC payload", provider=self.provider, payload=payload)

        error = payload.get("error")
        if error:
            message = str(error.get("message") if isinstance(error, dict) else error)
            if any(marker in message.lower() for marker in _RATE_LIMIT_MARKERS):
                raise ProviderError(
                    "Rate limit exceeded. Try again in a moment or use a custom RPC URL with --rpc-url",
                    provider=self.provider,
                    payload=payload,
                )
            raise ProviderError(f"RPC error: {message}", provider=self.provider, payload=payload)

        if "result" not in payload or payload["result"] is None:
            raise ProviderError("No result in RPC response", provider=self.provider, payload=payload)
        return payload["result"]


class RestClient:
    """Authenticated JSON REST calls used by the banking providers."""

    def __init__(
        self,
        base_url: str,
        *,
        provider: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.provider = provider
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.timeout = timeout
        self._session = build_session(session)

    def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.get(url, params=params, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(f"Failed to send request to {self.provider} API: {exc}", provider=self.provider) from exc

        if not response.ok:
            raise ProviderError(
                f"{self.provider} API request failed with status {response.status_code}: {response.text}",
                provider=self.provider,
                status_code=response.status_code,
                payload=response.text,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(
                f"Failed to parse {self.provider} API response", provider=self.provider, payload=response.text
            ) from exc


__all__ = [
    "BalanceProvider",
    "JsonRpcClient",
    "ProviderError",
    "RestClient",
    "Throttle",
    "scale_units",
]
