"""Fixed per-URL retry budget around the request executor."""

from __future__ import annotations

from typing import Any

from ..config import FetchConfig
from .errors import RetriesExhausted
from .executor import RequestExecutor
from .observer import FetchObserver, NullObserver
from .outcome import Failure, FetchRequest


class RetryCoordinator:
    """Retry a URL immediately after each failure, up to ``config.retries`` attempts."""

    def __init__(
        self,
        executor: RequestExecutor,
        config: FetchConfig,
        observer: FetchObserver | None = None,
    ) -> None:
        self.executor = executor
        self.config = config
        self.observer = observer or NullObserver()

    async def fetch_with_retry(self, url: str) -> Any:
        request = FetchRequest(url=url, attempt=1)
        while True:
            outcome = await self.executor.execute(request, timeout_ms=self.config.timeout_ms)
            if not isinstance(outcome, Failure):
                return outcome.value
            if request.attempt >= self.config.retries:
                error = RetriesExhausted(url, request.attempt, outcome)
                self.observer.retries_exhausted(error)
                raise error
            request = request.next_attempt()
            self.observer.retrying(url, request.attempt, outcome)


__all__ = ["RetryCoordinator"]
