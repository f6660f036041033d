"""Batch scheduling: bounded concurrency within a batch, strict order across batches."""

from __future__ import annotations

import asyncio
import math
from enum import Enum
from typing import Any, Iterator, Sequence

from ..config import FetchConfig
from .errors import BatchAborted, RetriesExhausted
from .observer import FetchObserver, NullObserver
from .retry import RetryCoordinator


class SchedulerState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"


def batch_count(total: int, batch_size: int) -> int:
    return math.ceil(total / batch_size)


def iter_batches(urls: Sequence[str], batch_size: int) -> Iterator[list[str]]:
    """Yield contiguous slices of ``urls``; the last one may be shorter."""

    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    for index in range(batch_count(len(urls), batch_size)):
        yield list(urls[index * batch_size : (index + 1) * batch_size])


class BatchScheduler:
    """Fetch every URL, ``batch_size`` at a time, failing fast on the first bad batch.

    Batch ``i + 1`` is only started once every fetch of batch ``i`` has settled,
    so no more than ``batch_size`` attempts are ever outstanding. Results are
    kept in input order. When any URL of a batch exhausts its retries the run
    raises :class:`BatchAborted` and the results gathered so far are dropped.
    """

    def __init__(
        self,
        coordinator: RetryCoordinator,
        config: FetchConfig,
        observer: FetchObserver | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.config = config
        self.observer = observer or NullObserver()
        self.state = SchedulerState.PENDING
        self.current_batch: int | None = None

    async def fetch_all(self, urls: Sequence[str]) -> list[Any]:
        self.state = SchedulerState.RUNNING
        self.current_batch = None
        accumulated: list[Any] = []
        for index, batch in enumerate(iter_batches(urls, self.config.batch_size)):
            self.current_batch = index
            self.observer.batch_started(index, batch)
            try:
                batch_results = await self._run_batch(index, batch)
            except BatchAborted as exc:
                self.state = SchedulerState.FAILED
                self.observer.run_aborted(exc)
                raise
            except BaseException:
                self.state = SchedulerState.FAILED
                raise
            self.observer.batch_completed(index, batch_results)
            accumulated.extend(batch_results)
        self.state = SchedulerState.COMPLETED
        self.observer.run_completed(accumulated)
        return accumulated

    async def _run_batch(self, index: int, batch: list[str]) -> list[Any]:
        settled = await asyncio.gather(
            *(self.coordinator.fetch_with_retry(url) for url in batch),
            return_exceptions=True,
        )
        failures: list[RetriesExhausted] = []
        for result in settled:
            if isinstance(result, RetriesExhausted):
                failures.append(result)
            elif isinstance(result, BaseException):
                raise result
        if failures:
            raise BatchAborted(index, failures[0], failures) from failures[0]
        return list(settled)


__all__ = ["BatchScheduler", "SchedulerState", "batch_count", "iter_batches"]
