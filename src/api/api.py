import logging
from contextlib import asynccontextmanager
from time import perf_counter
from typing import Annotated, AsyncGenerator, Awaitable, Callable

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status

from accounts import AccountBook, AccountBookError
from api.dependencies import get_account_book, get_portfolio_run, get_settings
from api.schemas import BalancesResponse, NewAddress
from domain.accounts import TrackedAccount
from providers.factory import ProviderFactory
from services.aggregation import PortfolioRun

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    fastapi_app.state.providers = ProviderFactory(get_settings())
    yield


app = FastAPI(title="gringotts", lifespan=lifespan)


@app.middleware("http")
async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    start_time = perf_counter()
    response = await call_next(request)
    process_time = perf_counter() - start_time
    logger.info("Request time: %s %s: %.4fs", request.method, request.url, process_time)
    return response


@app.get("/accounts")
def list_accounts(
    book: Annotated[AccountBook, Depends(get_account_book)],
    company: str | None = None,
) -> list[TrackedAccount]:
    return book.filter_by_company(company)


@app.post("/accounts", status_code=status.HTTP_201_CREATED)
def add_account(new: NewAddress, book: Annotated[AccountBook, Depends(get_account_book)]) -> TrackedAccount:
    try:
        book.add_address(new.company, new.name, new.address, new.chain)
    except AccountBookError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    book.save()
    return book.find(new.name.strip())


@app.delete("/accounts/{name}", status_code=status.HTTP_204_NO_CONTENT)
def remove_account(name: str, book: Annotated[AccountBook, Depends(get_account_book)]) -> None:
    try:
        book.remove(name)
    except AccountBookError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    book.save()


@app.get("/balances")
def get_balances(
    book: Annotated[AccountBook, Depends(get_account_book)],
    portfolio_run: Annotated[PortfolioRun, Depends(get_portfolio_run)],
    company: str | None = None,
    prices: bool = True,
) -> BalancesResponse:
    report = portfolio_run.run(book.filter_by_company(company), with_prices=prices)
    return BalancesResponse.from_report(report)


@app.get("/balances/{name}")
def get_account_balances(
    name: str,
    book: Annotated[AccountBook, Depends(get_account_book)],
    portfolio_run: Annotated[PortfolioRun, Depends(get_portfolio_run)],
    prices: bool = True,
) -> BalancesResponse:
    try:
        account = book.find(name)
    except AccountBookError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    report = portfolio_run.run([account], with_prices=prices)
    return BalancesResponse.from_report(report)

