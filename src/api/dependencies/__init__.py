from typing import Annotated

from fastapi import Depends, Request

from accounts import AccountBook
from config import AppSettings, config
from services.aggregation import PortfolioRun, build_portfolio_run


def get_settings() -> AppSettings:
    return config()


def get_account_book(settings: Annotated[AppSettings, Depends(get_settings)]) -> AccountBook:
    return AccountBook.load(settings.accounts_path)


def get_portfolio_run(request: Request, settings: Annotated[AppSettings, Depends(get_settings)]) -> PortfolioRun:
    # Providers live for the app; the price cache is fresh for every run.
    providers = getattr(request.app.state, "providers", None)
    return build_portfolio_run(settings, providers=providers)
