"""Pytest fixtures shared across the parallel-fetch test-suite."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence

import httpx
import pytest

from parallel_fetch.config import ConfigLocator, ConfigRepository, FetchConfig
from parallel_fetch.engine import (
    AttemptOutcome,
    BatchAborted,
    Failure,
    FetchRequest,
    NullObserver,
    RetriesExhausted,
    Success,
)


class ScriptedExecutor:
    """Stand-in for ``RequestExecutor`` replaying scripted outcomes per URL.

    Each URL consumes its outcome list in order and keeps repeating the last
    one; unscripted URLs succeed with ``{"url": url}``. Concurrency is tracked
    so tests can assert the in-flight bound.
    """

    def __init__(
        self,
        script: Mapping[str, Sequence[AttemptOutcome | BaseException]] | None = None,
        delays: Mapping[str, float] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.script = {url: list(outcomes) for url, outcomes in (script or {}).items()}
        self.delays = dict(delays or {})
        self.delay = delay
        self.calls: list[FetchRequest] = []
        self.timeouts: list[int | None] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, request: FetchRequest, timeout_ms: int | None = None) -> AttemptOutcome:
        self.calls.append(request)
        self.timeouts.append(timeout_ms)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(request.url, self.delay))
            outcomes = self.script.get(request.url)
            if not outcomes:
                return Success({"url": request.url})
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1

    def calls_for(self, url: str) -> list[FetchRequest]:
        return [call for call in self.calls if call.url == url]

    @property
    def called_urls(self) -> list[str]:
        return [call.url for call in self.calls]


class RecordingObserver(NullObserver):
    """Observer keeping every event as ``(name, payload)`` tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def attempt_started(self, request: FetchRequest) -> None:
        self.events.append(("attempt_started", (request.url, request.attempt)))

    def attempt_succeeded(self, request: FetchRequest) -> None:
        self.events.append(("attempt_succeeded", (request.url, request.attempt)))

    def attempt_failed(self, request: FetchRequest, failure: Failure) -> None:
        self.events.append(("attempt_failed", (request.url, request.attempt, failure.kind)))

    def retrying(self, url: str, next_attempt: int, failure: Failure) -> None:
        self.events.append(("retrying", (url, next_attempt)))

    def retries_exhausted(self, error: RetriesExhausted) -> None:
        self.events.append(("retries_exhausted", (error.url, error.attempts)))

    def batch_started(self, index: int, urls: Sequence[str]) -> None:
        self.events.append(("batch_started", (index, list(urls))))

    def batch_completed(self, index: int, results: Sequence[Any]) -> None:
        self.events.append(("batch_completed", (index, len(results))))

    def run_completed(self, results: Sequence[Any]) -> None:
        self.events.append(("run_completed", len(results)))

    def run_aborted(self, error: BatchAborted) -> None:
        self.events.append(("run_aborted", (error.batch_index, error.url)))

    def named(self, name: str) -> list[Any]:
        return [payload for event, payload in self.events if event == name]


@pytest.fixture
def make_executor() -> Callable[..., ScriptedExecutor]:
    return ScriptedExecutor


@pytest.fixture
def recording_observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def fetch_config() -> Callable[..., FetchConfig]:
    def _builder(**overrides: Any) -> FetchConfig:
        base: dict[str, Any] = {"timeout_ms": 500, "retries": 3, "batch_size": 5}
        base.update(overrides)
        return FetchConfig(**base)

    return _builder


def json_routes(
    routes: Mapping[str, Any],
    statuses: Mapping[str, int] | None = None,
) -> httpx.MockTransport:
    """Mock transport answering each URL with its JSON payload.

    A route value that is a ``str`` is sent as a raw body, an exception
    instance is raised as a transport failure. Unknown URLs answer 404.
    """

    statuses = dict(statuses or {})

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url not in routes:
            return httpx.Response(404, json={"error": "not found"})
        payload = routes[url]
        if isinstance(payload, BaseException):
            raise payload
        status = statuses.get(url, 200)
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, content=json.dumps(payload).encode("utf-8"))

    return httpx.MockTransport(handler)


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    def _builder(
        routes: Mapping[str, Any] | None = None,
        statuses: Mapping[str, int] | None = None,
        handler: Callable[[httpx.Request], Any] | None = None,
    ) -> httpx.AsyncClient:
        transport = httpx.MockTransport(handler) if handler else json_routes(routes or {}, statuses)
        return httpx.AsyncClient(transport=transport)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("PARALLEL_FETCH_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
