"""Single bounded-time attempt at fetching and decoding a JSON document."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable

import httpx

from ..config import FetchConfig
from .observer import FetchObserver, NullObserver
from .outcome import AttemptOutcome, Failure, FailureKind, FetchRequest, Success

TIMEOUT_MESSAGE = "request timed out"

DeadlineFactory = Callable[[float], AsyncContextManager[object]]


def _positive_budget(timeout_ms: int) -> int:
    if timeout_ms <= 0:
        raise ValueError("timeout_ms must be positive")
    return timeout_ms


class RequestExecutor:
    """Run one GET under a per-attempt deadline and classify the result.

    The executor never retries and keeps no state between calls; every
    ``execute`` owns its own deadline, which is disarmed as soon as the attempt
    settles, whatever the exit path.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout_ms: int,
        observer: FetchObserver | None = None,
        deadline_factory: DeadlineFactory = asyncio.timeout,
    ) -> None:
        self._client = client
        self.timeout_ms = _positive_budget(timeout_ms)
        self.observer = observer or NullObserver()
        self._deadline_factory = deadline_factory

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        config: FetchConfig,
        observer: FetchObserver | None = None,
    ) -> AsyncIterator["RequestExecutor"]:
        """Yield an executor backed by a client it owns and closes on exit."""

        # The per-attempt deadline governs; httpx' own timeout is disabled.
        async with httpx.AsyncClient(follow_redirects=True, timeout=None) as client:
            yield cls(client, config.timeout_ms, observer=observer)

    async def execute(self, request: FetchRequest, timeout_ms: int | None = None) -> AttemptOutcome:
        budget_ms = self.timeout_ms if timeout_ms is None else _positive_budget(timeout_ms)
        self.observer.attempt_started(request)
        outcome = await self._attempt(request, budget_ms / 1000.0)
        if isinstance(outcome, Failure):
            self.observer.attempt_failed(request, outcome)
        else:
            self.observer.attempt_succeeded(request)
        return outcome

    # ------------------------------------------------------------------
    async def _attempt(self, request: FetchRequest, budget: float) -> AttemptOutcome:
        try:
            async with self._deadline_factory(budget):
                response = await self._client.get(request.url)
        except TimeoutError:
            return Failure(FailureKind.TIMEOUT, TIMEOUT_MESSAGE)
        except httpx.TimeoutException:
            return Failure(FailureKind.TIMEOUT, TIMEOUT_MESSAGE)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            return Failure(FailureKind.NETWORK, str(exc) or exc.__class__.__name__)
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> AttemptOutcome:
        if not response.is_success:
            return Failure(FailureKind.HTTP_STATUS, f"HTTP error! status: {response.status_code}")
        try:
            return Success(response.json())
        except ValueError as exc:
            # JSONDecodeError and UnicodeDecodeError both land here
            return Failure(FailureKind.DECODE, str(exc))


__all__ = ["DeadlineFactory", "RequestExecutor", "TIMEOUT_MESSAGE"]
