from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ACCOUNTS_PATH = Path.home() / ".gringotts" / "addresses.json"


class AppSettings(BaseSettings):
    coindesk_api_key: str | None = None
    coindesk_market: str = "coinbase"
    mercury_api_key: str | None = None
    circle_api_key: str | None = None

    accounts_path: Path = DEFAULT_ACCOUNTS_PATH
    rpc_url: str | None = None

    provider_timeout_seconds: float = 30.0
    max_workers: int = 4
    token_query_delay_seconds: float = 0.3

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
