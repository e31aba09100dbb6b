from __future__ import annotations

from typing import Iterable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry


def build_session(
    session: requests.Session | None = None,
    *,
    retry_attempts: int = 3,
    backoff_seconds: float = 1.0,
    methods: Iterable[str] = ("GET", "POST"),
) -> requests.Session:
    """Session that backs off and retries when the upstream answers 429."""
    session = session or requests.Session()
    retry = Retry(
        total=retry_attempts,
        backoff_factor=backoff_seconds,
        status_forcelist={429},
        allowed_methods=frozenset(methods),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


__all__ = ["build_session"]
