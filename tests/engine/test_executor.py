from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager

import httpx
import pytest

from parallel_fetch.config import FetchConfig
from parallel_fetch.engine import Failure, FailureKind, FetchRequest, RequestExecutor, Success
from parallel_fetch.engine.executor import TIMEOUT_MESSAGE

URL = "https://api.example.com/items"


class CountingDeadline:
    """Deadline factory wrapping ``asyncio.timeout`` and counting arm/release."""

    def __init__(self) -> None:
        self.armed = 0
        self.released = 0

    def __call__(self, seconds: float):
        return self._scope(seconds)

    @asynccontextmanager
    async def _scope(self, seconds: float):
        self.armed += 1
        try:
            async with asyncio.timeout(seconds):
                yield
        finally:
            self.released += 1


def _execute(executor: RequestExecutor, url: str = URL, **kwargs):
    return asyncio.run(executor.execute(FetchRequest(url=url), **kwargs))


def test_executor_decodes_json_body(mock_client, recording_observer) -> None:
    client = mock_client({URL: {"items": [1, 2, 3]}})
    executor = RequestExecutor(client, timeout_ms=500, observer=recording_observer)

    outcome = _execute(executor)

    assert outcome == Success({"items": [1, 2, 3]})
    assert outcome.ok
    assert recording_observer.named("attempt_started") == [(URL, 1)]
    assert recording_observer.named("attempt_succeeded") == [(URL, 1)]
    assert recording_observer.named("attempt_failed") == []


@pytest.mark.parametrize("status", [301, 404, 500, 503])
def test_executor_classifies_non_success_status(mock_client, status: int) -> None:
    client = mock_client({URL: {"ok": False}}, statuses={URL: status})
    executor = RequestExecutor(client, timeout_ms=500)

    outcome = _execute(executor)

    assert outcome == Failure(FailureKind.HTTP_STATUS, f"HTTP error! status: {status}")
    assert not outcome.ok


def test_executor_classifies_invalid_json(mock_client, recording_observer) -> None:
    client = mock_client({URL: "<html>not json</html>"})
    executor = RequestExecutor(client, timeout_ms=500, observer=recording_observer)

    outcome = _execute(executor)

    assert isinstance(outcome, Failure)
    assert outcome.kind is FailureKind.DECODE
    assert outcome.message
    assert recording_observer.named("attempt_failed") == [(URL, 1, FailureKind.DECODE)]


def test_executor_classifies_transport_errors(mock_client) -> None:
    client = mock_client({URL: httpx.ConnectError("connection refused")})
    executor = RequestExecutor(client, timeout_ms=500)

    outcome = _execute(executor)

    assert outcome == Failure(FailureKind.NETWORK, "connection refused")


def test_executor_maps_transport_timeout_to_timeout(mock_client) -> None:
    client = mock_client({URL: httpx.ReadTimeout("read timed out")})
    executor = RequestExecutor(client, timeout_ms=500)

    outcome = _execute(executor)

    assert outcome == Failure(FailureKind.TIMEOUT, TIMEOUT_MESSAGE)


def test_executor_cancels_slow_request_at_deadline(mock_client) -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={"late": True})

    executor = RequestExecutor(mock_client(handler=slow), timeout_ms=30)

    async def scenario():
        started = time.perf_counter()
        outcome = await executor.execute(FetchRequest(url=URL))
        elapsed = time.perf_counter() - started
        # No stale cancellation may leak into the caller once the attempt settled
        await asyncio.sleep(0.05)
        return outcome, elapsed, asyncio.current_task().cancelling()

    outcome, elapsed, cancelling = asyncio.run(scenario())

    assert outcome == Failure(FailureKind.TIMEOUT, "request timed out")
    assert elapsed < 2
    assert cancelling == 0


def test_executor_timeout_override_per_call(mock_client) -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.2)
        return httpx.Response(200, json={"done": True})

    executor = RequestExecutor(mock_client(handler=slow), timeout_ms=10_000)

    assert _execute(executor, timeout_ms=20).kind is FailureKind.TIMEOUT
    assert _execute(executor, timeout_ms=5_000) == Success({"done": True})


def test_executor_releases_deadline_on_every_exit_path(mock_client) -> None:
    slow_url = "https://api.example.com/slow"

    async def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == slow_url:
            await asyncio.sleep(5)
        if url.endswith("/missing"):
            return httpx.Response(404)
        if url.endswith("/broken"):
            return httpx.Response(200, text="{")
        if url.endswith("/down"):
            raise httpx.ConnectError("unreachable")
        return httpx.Response(200, json={"ok": True})

    deadline = CountingDeadline()
    executor = RequestExecutor(
        mock_client(handler=handler), timeout_ms=30, deadline_factory=deadline
    )
    urls = [
        URL,
        "https://api.example.com/missing",
        "https://api.example.com/broken",
        "https://api.example.com/down",
        slow_url,
    ]

    async def scenario():
        return [await executor.execute(FetchRequest(url=url)) for url in urls]

    outcomes = asyncio.run(scenario())

    assert [getattr(outcome, "kind", None) for outcome in outcomes] == [
        None,
        FailureKind.HTTP_STATUS,
        FailureKind.DECODE,
        FailureKind.NETWORK,
        FailureKind.TIMEOUT,
    ]
    assert deadline.armed == len(urls)
    assert deadline.released == len(urls)


def test_executor_propagates_outer_cancellation(mock_client) -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, json={})

    executor = RequestExecutor(mock_client(handler=slow), timeout_ms=10_000)

    async def scenario():
        task = asyncio.create_task(executor.execute(FetchRequest(url=URL)))
        await asyncio.sleep(0.05)
        task.cancel()
        await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(scenario())


def test_executor_rejects_non_positive_timeout(mock_client) -> None:
    with pytest.raises(ValueError):
        RequestExecutor(mock_client({}), timeout_ms=0)


@pytest.mark.parametrize("timeout_ms", [0, -50])
def test_executor_rejects_non_positive_timeout_override(mock_client, recording_observer, timeout_ms) -> None:
    hits: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        hits.append(str(request.url))
        return httpx.Response(200, json={})

    executor = RequestExecutor(mock_client(handler=handler), timeout_ms=1000, observer=recording_observer)

    with pytest.raises(ValueError):
        _execute(executor, timeout_ms=timeout_ms)
    assert hits == []
    assert recording_observer.events == []


def test_executor_open_owns_and_closes_client() -> None:
    async def scenario():
        async with RequestExecutor.open(FetchConfig(timeout_ms=1234)) as executor:
            client = executor._client
            assert executor.timeout_ms == 1234
            assert not client.is_closed
        return client

    client = asyncio.run(scenario())
    assert client.is_closed


def test_fetch_request_numbering() -> None:
    request = FetchRequest(url=URL)
    assert request.attempt == 1
    following = request.next_attempt()
    assert following == FetchRequest(url=URL, attempt=2)
    assert request.attempt == 1
    with pytest.raises(ValueError):
        FetchRequest(url=URL, attempt=0)
