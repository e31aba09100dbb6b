from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Callable, Sequence

from domain.accounts import ProviderKind, TrackedAccount
from domain.balances import AccountBalances, AssetBalance
from providers.base import BalanceProvider, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
DEFAULT_TIMEOUT_SECONDS = 30.0

ProviderResolver = Callable[[ProviderKind], BalanceProvider]


@dataclass(frozen=True)
class AccountFailure:
    account: TrackedAccount
    error: str


@dataclass(frozen=True)
class ProgressEvent:
    account: TrackedAccount
    succeeded: bool
    completed: int
    total: int
    error: str | None = None


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class CollectionResult:
    results: list[AccountBalances] = field(default_factory=list)
    failures: list[AccountFailure] = field(default_factory=list)


@dataclass(frozen=True)
class _Outcome:
    account: TrackedAccount
    balances: list[AssetBalance] | None
    error: str | None


class BalanceCollector:
    """Queries every tracked account once and keeps going when some of them fail.

    Accounts run on a bounded worker pool. Each provider call gets its own
    daemon thread and is bounded by ``timeout_seconds`` from the moment it
    starts; a call that overruns is reported as a failure for that account
    and its result is discarded when it eventually returns.
    """

    def __init__(
        self,
        resolve_provider: ProviderResolver,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if max_workers <= 0:
            msg = "max_workers must be > 0"
            raise ValueError(msg)
        if timeout_seconds <= 0:
            msg = "timeout_seconds must be > 0"
            raise ValueError(msg)
        self.resolve_provider = resolve_provider
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds
        self.on_progress = on_progress

    def collect(self, accounts: Sequence[TrackedAccount]) -> CollectionResult:
        collected = CollectionResult()
        total = len(accounts)
        if total == 0:
            return collected

        with ThreadPoolExecutor(max_workers=min(self.max_workers, total), thread_name_prefix="account") as attempts:
            futures = [attempts.submit(self._attempt, account) for account in accounts]
            for completed, future in enumerate(as_completed(futures), start=1):
                self._record(collected, future.result(), completed=completed, total=total)

        logger.info("Collected balances for %d of %d accounts", len(collected.results), total)
        return collected

    def collect_one(self, account: TrackedAccount) -> CollectionResult:
        return self.collect([account])

    def _attempt(self, account: TrackedAccount) -> _Outcome:
        try:
            provider = self.resolve_provider(account.provider)
            balances = self._call(provider, account).result(timeout=self.timeout_seconds)
        except FuturesTimeoutError:
            return _Outcome(account, None, f"timed out after {self.timeout_seconds:g}s")
        except ProviderError as exc:
            return _Outcome(account, None, str(exc))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Malformed response for %s", account.display_name, exc_info=True)
            return _Outcome(account, None, f"malformed response: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error querying %s", account.display_name)
            return _Outcome(account, None, f"unexpected error: {exc!r}")
        return _Outcome(account, list(balances), None)

    @staticmethod
    def _call(provider: BalanceProvider, account: TrackedAccount) -> Future[list[AssetBalance]]:
        # One daemon thread per call, so an overrunning call never holds a pool slot.
        call: Future[list[AssetBalance]] = Future()
        call.set_running_or_notify_cancel()

        def run() -> None:
            try:
                call.set_result(provider.fetch_balances(account.identifier))
            except Exception as exc:
                call.set_exception(exc)

        threading.Thread(target=run, name=f"provider-call-{account.display_name}", daemon=True).start()
        return call

    def _record(self, collected: CollectionResult, outcome: _Outcome, *, completed: int, total: int) -> None:
        account = outcome.account
        if outcome.balances is not None:
            collected.results.append(AccountBalances(account=account, balances=outcome.balances))
        else:
            error = outcome.error or "unknown error"
            logger.warning("Failed to query %s (%s): %s", account.display_name, account.identifier, error)
            collected.failures.append(AccountFailure(account=account, error=error))

        if self.on_progress is not None:
            self.on_progress(
                ProgressEvent(
                    account=account,
                    succeeded=outcome.balances is not None,
                    completed=completed,
                    total=total,
                    error=outcome.error,
                )
            )


__all__ = [
    "AccountFailure",
    "BalanceCollector",
    "CollectionResult",
    "ProgressCallback",
    "ProgressEvent",
    "ProviderResolver",
]
