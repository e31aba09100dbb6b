from __future__ import annotations

from decimal import Decimal
from typing import Any
from unittest.mock import Mock

import pytest

from domain.balances import UNKNOWN_SYMBOL
from providers.aptos import AptosProvider
from providers.base import ProviderError
from providers.near import NearProvider
from providers.solana import SolanaProvider
from providers.starknet import StarknetProvider
from providers.sui import SuiProvider

SOLANA_WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _rpc_session(results: dict[str, Any]) -> Mock:
    session = Mock()
    session.requests = []

    def post(url: str, json: dict[str, Any], timeout: float) -> Mock:
        session.requests.append(json)
        response = Mock()
        response.json.return_value = {"jsonrpc": "2.0", "id": json["id"], "result": results[json["method"]]}
        return response

    session.post.side_effect = post
    return session


def _token_account(mint: str, amount: str) -> dict[str, Any]:
    return {
        "pubkey": "acc",
        "account": {
            "data": {
                "parsed": {
                    "type": "account",
                    "info": {"mint": mint, "tokenAmount": {"uiAmountString": amount, "decimals": 6}},
                }
            }
        },
    }


def test_solana_reads_sol_and_token_accounts() -> None:
    session = _rpc_session(
        {
            "getBalance": {"context": {"slot": 1}, "value": 2_500_000_000},
            "getTokenAccountsByOwner": {
                "value": [_token_account(USDC_MINT, "12.5"), _token_account("MysteryMint111", "7")]
            },
        }
    )
    provider = SolanaProvider(rpc_url="http://rpc", session=session)

    balances = provider.fetch_balances(SOLANA_WALLET)

    assert [(b.symbol, b.native_amount) for b in balances] == [
        ("SOL", Decimal("2.5")),
        ("USDC", Decimal("12.5")),
        (UNKNOWN_SYMBOL, Decimal("7")),
    ]
    assert balances[2].contract == "MysteryMint111"
    token_request = session.requests[1]
    assert token_request["params"][2] == {"encoding": "jsonParsed"}


def test_solana_rejects_non_base58_address() -> None:
    provider = SolanaProvider(rpc_url="http://rpc", session=Mock())

    with pytest.raises(ProviderError, match="Invalid Solana address"):
        provider.fetch_balances("0x" + "ab" * 20)


def test_rpc_error_becomes_provider_error() -> None:
    session = Mock()
    response = Mock()
    response.json.return_value = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "Too many requests"}}
    session.post.return_value = response
    provider = SolanaProvider(rpc_url="http://rpc", session=session)

    with pytest.raises(ProviderError, match="Rate limit exceeded"):
        provider.fetch_balances(SOLANA_WALLET)


def test_near_scales_yocto_amount() -> None:
    session = _rpc_session({"query": {"amount": "1500000000000000000000000", "locked": "0"}})
    provider = NearProvider(rpc_url="http://rpc", session=session)

    balances = provider.fetch_balances("alice.near")

    assert [(b.symbol, b.native_amount) for b in balances] == [("NEAR", Decimal("1.5"))]
    assert session.requests[0]["id"] == "dontcare"
    assert session.requests[0]["params"]["account_id"] == "alice.near"


def test_sui_reads_total_balance() -> None:
    session = _rpc_session({"suix_getBalance": {"coinType": "0x2::sui::SUI", "totalBalance": "3000000000"}})
    provider = SuiProvider(rpc_url="http://rpc", session=session)

    balances = provider.fetch_balances("0xabc")

    assert [(b.symbol, b.native_amount) for b in balances] == [("SUI", Decimal(3))]


def test_sui_requires_hex_prefix() -> None:
    with pytest.raises(ProviderError, match="must start with 0x"):
        SuiProvider(rpc_url="http://rpc", session=Mock()).fetch_balances("abc")


def test_starknet_combines_u256_felts() -> None:
    session = _rpc_session({"starknet_call": [hex(5 * 10**17), "0x0"]})
    provider = StarknetProvider(rpc_url="http://rpc", session=session)

    balances = provider.fetch_balances("0x123")

    assert [(b.symbol, b.native_amount) for b in balances] == [("ETH", Decimal("0.5"))]
    assert session.requests[0]["params"]["request"]["calldata"] == ["0x123"]


def test_aptos_reads_view_result() -> None:
    session = Mock()
    response = Mock()
    response.ok = True
    response.json.return_value = ["250000000"]
    session.post.return_value = response
    provider = AptosProvider(api_url="http://aptos/v1", session=session)

    balances = provider.fetch_balances("abc123")

    assert [(b.symbol, b.native_amount) for b in balances] == [("APT", Decimal("2.5"))]
    url = session.post.call_args.args[0]
    body = session.post.call_args.kwargs["json"]
    assert url == "http://aptos/v1/view"
    assert body["arguments"] == ["0xabc123"]


def test_aptos_account_without_coin_store_is_zero() -> None:
    session = Mock()
    response = Mock()
    response.ok = False
    response.status_code = 400
    session.post.return_value = response
    provider = AptosProvider(api_url="http://aptos/v1", session=session)

    balances = provider.fetch_balances("0xabc")

    assert balances[0].native_amount == Decimal(0)


def test_aptos_rejects_non_hex_address() -> None:
    with pytest.raises(ProviderError, match="hexadecimal"):
        AptosProvider(session=Mock()).fetch_balances("not-an-address")
