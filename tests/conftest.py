from decimal import Decimal
from pathlib import Path

import pytest

from accounts import AccountBook
from tests.helpers.stubs import StubPriceSource


@pytest.fixture(scope="function")
def price_source() -> StubPriceSource:
    return StubPriceSource({"SOL": Decimal("20"), "ETH": Decimal("3000"), "USDC": Decimal("1")})


@pytest.fixture(scope="function")
def accounts_path(tmp_path: Path) -> Path:
    return tmp_path / ".gringotts" / "addresses.json"


@pytest.fixture(scope="function")
def account_book(accounts_path: Path) -> AccountBook:
    return AccountBook.load(accounts_path)
