from __future__ import annotations

from decimal import Decimal
from typing import Any
from unittest.mock import Mock

import pytest

from domain.accounts import ProviderKind
from providers.base import ProviderError, Throttle
from providers.evm import (
    BALANCE_OF_SELECTOR,
    DECIMALS_SELECTOR,
    NAME_SELECTOR,
    SYMBOL_SELECTOR,
    EvmProvider,
    decode_abi_string,
)

WALLET = "0x" + "ab" * 20
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


def _abi_string(text: str) -> str:
    raw = text.encode()
    return "0x" + f"{32:064x}" + f"{len(raw):064x}" + raw.hex().ljust(64, "0")


def _rpc_session(handler) -> Mock:
    session = Mock()

    def post(url: str, json: dict[str, Any], timeout: float) -> Mock:
        response = Mock()
        result = handler(json["method"], json["params"])
        response.json.return_value = {"jsonrpc": "2.0", "id": json["id"], "result": result}
        return response

    session.post.side_effect = post
    return session


def _handler(token_balances: dict[str, int]):
    def handle(method: str, params: list[Any]) -> Any:
        if method == "eth_getBalance":
            return hex(2 * 10**18)
        call, _ = params
        contract, data = call["to"], call["data"]
        if data.startswith(BALANCE_OF_SELECTOR):
            return hex(token_balances.get(contract, 0))
        if data == DECIMALS_SELECTOR:
            return hex(6)
        if data == NAME_SELECTOR:
            return _abi_string("USD Coin")
        if data == SYMBOL_SELECTOR:
            return _abi_string("USDC")
        raise AssertionError(f"unexpected call {data}")

    return handle


def test_fetch_balances_reads_native_and_non_zero_tokens() -> None:
    session = _rpc_session(_handler({USDC: 1_500_000}))
    provider = EvmProvider(
        ProviderKind.ETHEREUM,
        rpc_url="http://rpc",
        session=session,
        throttle=Throttle(0),
        tokens=[(USDC, "USDC"), (DAI, "DAI")],
    )

    balances = provider.fetch_balances(WALLET)

    assert [balance.symbol for balance in balances] == ["ETH", "USDC"]
    assert balances[0].native_amount == Decimal(2)
    usdc = balances[1]
    assert usdc.native_amount == Decimal("1.5")
    assert usdc.name == "USD Coin"
    assert usdc.contract == USDC
    assert usdc.known_usd_value is None


def test_balance_of_call_pads_wallet_address() -> None:
    seen: list[str] = []

    def handle(method: str, params: list[Any]) -> Any:
        if method == "eth_getBalance":
            return "0x0"
        seen.append(params[0]["data"])
        return "0x0"

    provider = EvmProvider(
        ProviderKind.POLYGON,
        rpc_url="http://rpc",
        session=_rpc_session(handle),
        throttle=Throttle(0),
        tokens=[(USDC, "USDC")],
    )

    balances = provider.fetch_balances(WALLET)

    assert seen == [BALANCE_OF_SELECTOR + "0" * 24 + "ab" * 20]
    assert [balance.symbol for balance in balances] == ["MATIC"]


def test_failed_token_query_is_skipped() -> None:
    def handle(method: str, params: list[Any]) -> Any:
        if method == "eth_getBalance":
            return "0x1"
        return "not-hex"

    provider = EvmProvider(
        ProviderKind.BASE,
        rpc_url="http://rpc",
        session=_rpc_session(handle),
        throttle=Throttle(0),
        tokens=[(USDC, "USDC")],
    )

    balances = provider.fetch_balances(WALLET)

    assert [balance.symbol for balance in balances] == ["ETH"]


def test_invalid_address_is_rejected_without_rpc_call() -> None:
    session = Mock()
    provider = EvmProvider(ProviderKind.ETHEREUM, rpc_url="http://rpc", session=session)

    with pytest.raises(ProviderError, match="Invalid EVM address"):
        provider.fetch_balances("0x1234")
    session.post.assert_not_called()


def test_non_evm_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        EvmProvider(ProviderKind.SOLANA)


def test_decode_abi_string() -> None:
    assert decode_abi_string(_abi_string("Dai Stablecoin")) == "Dai Stablecoin"
    assert decode_abi_string("0x") == ""
