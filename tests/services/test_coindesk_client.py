from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from services.coindesk_client import CoinDeskAPIError, CoinDeskClient


def _mock_response(payload: dict, status_code: int = 200) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = "payload"
    response.raise_for_status.return_value = None
    return response


def test_get_latest_ticks_parses_response() -> None:
    session = Mock()
    payload = {
        "Data": {
            "SOL-USD": {
                "TYPE": "952",
                "MARKET": "coinbase",
                "INSTRUMENT": "SOL-USD",
                "MAPPED_INSTRUMENT": "SOL-USD",
                "BASE": "SOL",
                "QUOTE": "USD",
                "PRICE": 145.25,
                "PRICE_LAST_UPDATE_TS": 1_700_000_000,
            }
        },
        "Err": {},
    }
    session.request.return_value = _mock_response(payload)

    client = CoinDeskClient(api_key="token", session=session)
    quotes = client.get_latest_ticks(market="coinbase", instruments=["sol-usd"])

    quote = quotes["SOL-USD"]
    assert quote.rate == Decimal("145.25")
    assert quote.base_id == "SOL"
    assert quote.quote_id == "USD"
    assert quote.timestamp == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    session.request.assert_called_once()
    kwargs = session.request.call_args.kwargs
    assert kwargs["params"] == {"market": "coinbase", "instruments": "SOL-USD", "apply_mapping": "true"}
    assert kwargs["headers"]["Authorization"] == "Bearer token"


def test_get_latest_ticks_keeps_found_instruments_when_some_are_missing() -> None:
    session = Mock()
    payload = {
        "Data": {"ETH-USD": {"BASE": "ETH", "QUOTE": "USD", "PRICE": "3000"}},
        "Err": {"type": 2, "message": "Not found: RAT-USD"},
    }
    session.request.return_value = _mock_response(payload)

    client = CoinDeskClient(api_key="token", session=session)
    quotes = client.get_latest_ticks(market="coinbase", instruments=["ETH-USD", "RAT-USD"])

    assert list(quotes) == ["ETH-USD"]
    assert quotes["ETH-USD"].rate == Decimal("3000")


def test_get_latest_ticks_raises_when_nothing_is_found() -> None:
    session = Mock()
    session.request.return_value = _mock_response({"Data": {}, "Err": {"message": "Not found"}})

    client = CoinDeskClient(api_key="token", session=session)

    with pytest.raises(CoinDeskAPIError, match="Not found"):
        client.get_latest_ticks(market="coinbase", instruments=["RAT-USD"])


def test_get_latest_ticks_with_no_instruments_skips_request() -> None:
    session = Mock()
    client = CoinDeskClient(api_key="token", session=session)

    assert client.get_latest_ticks(market="coinbase", instruments=[]) == {}
    session.request.assert_not_called()


def test_http_error_is_wrapped_with_message_from_payload() -> None:
    session = Mock()
    response = Mock()
    response.status_code = 401
    response.json.return_value = {"Err": {"message": "Invalid API key"}}
    response.raise_for_status.side_effect = requests.HTTPError(response=response)
    session.request.return_value = response

    client = CoinDeskClient(api_key="token", session=session)

    with pytest.raises(CoinDeskAPIError) as exc_info:
        client.get_latest_ticks(market="coinbase", instruments=["SOL-USD"])

    assert exc_info.value.status_code == 401
    assert str(exc_info.value) == "Invalid API key"


def test_connection_error_is_wrapped() -> None:
    session = Mock()
    session.request.side_effect = requests.ConnectionError("refused")

    client = CoinDeskClient(api_key="token", session=session)

    with pytest.raises(CoinDeskAPIError, match="request failed"):
        client.get_latest_ticks(market="coinbase", instruments=["SOL-USD"])


def test_client_requires_api_key() -> None:
    with pytest.raises(ValueError):
        CoinDeskClient(api_key="")


def test_get_latest_ticks_skips_unparsable_prices() -> None:
    session = Mock()
    payload = {
        "Data": {
            "SOL-USD": {"BASE": "SOL", "QUOTE": "USD", "PRICE": "unavailable"},
            "BTC-USD": {"BASE": "BTC", "QUOTE": "USD", "PRICE": "NaN"},
            "ETH-USD": {"BASE": "ETH", "QUOTE": "USD", "PRICE": "3000", "PRICE_LAST_UPDATE_TS": "soon"},
            "USDC-USD": {"BASE": "USDC", "QUOTE": "USD", "PRICE": "1"},
        },
        "Err": {},
    }
    session.request.return_value = _mock_response(payload)

    client = CoinDeskClient(api_key="token", session=session)
    quotes = client.get_latest_ticks(market="coinbase", instruments=["SOL-USD", "BTC-USD", "ETH-USD", "USDC-USD"])

    assert list(quotes) == ["USDC-USD"]
