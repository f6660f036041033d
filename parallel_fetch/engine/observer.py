"""Observer hooks through which the engine reports progress and failures."""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence

import structlog

from .errors import BatchAborted, RetriesExhausted
from .outcome import Failure, FetchRequest


class FetchObserver(Protocol):
    """Events emitted by executor, retry coordinator and batch scheduler."""

    def attempt_started(self, request: FetchRequest) -> None:
        """An attempt is about to be sent."""

    def attempt_succeeded(self, request: FetchRequest) -> None:
        """An attempt returned a decoded JSON body."""

    def attempt_failed(self, request: FetchRequest, failure: Failure) -> None:
        """An attempt settled with a classified failure."""

    def retrying(self, url: str, next_attempt: int, failure: Failure) -> None:
        """A failed URL is about to be retried."""

    def retries_exhausted(self, error: RetriesExhausted) -> None:
        """A URL failed its last permitted attempt."""

    def batch_started(self, index: int, urls: Sequence[str]) -> None:
        """A batch of concurrent fetches is starting."""

    def batch_completed(self, index: int, results: Sequence[Any]) -> None:
        """Every URL of a batch succeeded."""

    def run_completed(self, results: Sequence[Any]) -> None:
        """All batches succeeded."""

    def run_aborted(self, error: BatchAborted) -> None:
        """A batch failed and the run stopped."""


class NullObserver:
    """Observer ignoring every event; subclass and override what you need."""

    def attempt_started(self, request: FetchRequest) -> None:
        return

    def attempt_succeeded(self, request: FetchRequest) -> None:
        return

    def attempt_failed(self, request: FetchRequest, failure: Failure) -> None:
        return

    def retrying(self, url: str, next_attempt: int, failure: Failure) -> None:
        return

    def retries_exhausted(self, error: RetriesExhausted) -> None:
        return

    def batch_started(self, index: int, urls: Sequence[str]) -> None:
        return

    def batch_completed(self, index: int, results: Sequence[Any]) -> None:
        return

    def run_completed(self, results: Sequence[Any]) -> None:
        return

    def run_aborted(self, error: BatchAborted) -> None:
        return


class LoggingObserver(NullObserver):
    """Forward engine events to a structlog logger."""

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("parallel_fetch.engine")

    def attempt_started(self, request: FetchRequest) -> None:
        self.logger.debug("attempt_started", url=request.url, attempt=request.attempt)

    def attempt_failed(self, request: FetchRequest, failure: Failure) -> None:
        self.logger.warning(
            "attempt_failed",
            url=request.url,
            attempt=request.attempt,
            kind=failure.kind.value,
            error=failure.message,
        )

    def retrying(self, url: str, next_attempt: int, failure: Failure) -> None:
        self.logger.info("retrying", url=url, attempt=next_attempt, kind=failure.kind.value)

    def retries_exhausted(self, error: RetriesExhausted) -> None:
        self.logger.error(
            "retries_exhausted",
            url=error.url,
            attempts=error.attempts,
            kind=error.kind.value,
            error=error.message,
        )

    def batch_started(self, index: int, urls: Sequence[str]) -> None:
        self.logger.debug("batch_started", batch=index, size=len(urls))

    def batch_completed(self, index: int, results: Sequence[Any]) -> None:
        self.logger.debug("batch_completed", batch=index, size=len(results))

    def run_completed(self, results: Sequence[Any]) -> None:
        self.logger.info("run_completed", total=len(results))

    def run_aborted(self, error: BatchAborted) -> None:
        self.logger.error(
            "run_aborted",
            batch=error.batch_index,
            url=error.url,
            attempts=error.attempts,
            kind=error.kind.value,
        )


class CompositeObserver:
    """Fan every event out to several observers, in registration order."""

    def __init__(self, observers: Optional[List[FetchObserver]] = None) -> None:
        self.observers = observers or []

    def add_observer(self, observer: FetchObserver) -> None:
        self.observers.append(observer)

    def attempt_started(self, request: FetchRequest) -> None:
        for observer in self.observers:
            observer.attempt_started(request)

    def attempt_succeeded(self, request: FetchRequest) -> None:
        for observer in self.observers:
            observer.attempt_succeeded(request)

    def attempt_failed(self, request: FetchRequest, failure: Failure) -> None:
        for observer in self.observers:
            observer.attempt_failed(request, failure)

    def retrying(self, url: str, next_attempt: int, failure: Failure) -> None:
        for observer in self.observers:
            observer.retrying(url, next_attempt, failure)

    def retries_exhausted(self, error: RetriesExhausted) -> None:
        for observer in self.observers:
            observer.retries_exhausted(error)

    def batch_started(self, index: int, urls: Sequence[str]) -> None:
        for observer in self.observers:
            observer.batch_started(index, urls)

    def batch_completed(self, index: int, results: Sequence[Any]) -> None:
        for observer in self.observers:
            observer.batch_completed(index, results)

    def run_completed(self, results: Sequence[Any]) -> None:
        for observer in self.observers:
            observer.run_completed(results)

    def run_aborted(self, error: BatchAborted) -> None:
        for observer in self.observers:
            observer.run_aborted(error)


__all__ = ["CompositeObserver", "FetchObserver", "LoggingObserver", "NullObserver"]
