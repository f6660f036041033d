"""Exceptions escalated by the retry and batch layers."""

from __future__ import annotations

from typing import Sequence

from .outcome import Failure, FailureKind


class FetchError(RuntimeError):
    """Base class for unrecoverable fetch errors."""


class RetriesExhausted(FetchError):
    """Every permitted attempt for one URL failed."""

    def __init__(self, url: str, attempts: int, last_failure: Failure) -> None:
        self.url = url
        self.attempts = attempts
        self.last_failure = last_failure
        super().__init__(
            f"Fetch failed after {attempts} attempts: {url} ({last_failure.describe()})"
        )

    @property
    def kind(self) -> FailureKind:
        return self.last_failure.kind

    @property
    def message(self) -> str:
        return self.last_failure.message


class BatchAborted(FetchError):
    """A batch contained a URL that exhausted its retries; the whole run stops.

    ``cause`` is the first failing URL of the batch in input order, ``failures``
    holds every failure observed in that batch.
    """

    def __init__(
        self,
        batch_index: int,
        cause: RetriesExhausted,
        failures: Sequence[RetriesExhausted] | None = None,
    ) -> None:
        self.batch_index = batch_index
        self.cause = cause
        self.failures = list(failures) if failures else [cause]
        super().__init__(f"Batch {batch_index} aborted: {cause}")

    @property
    def url(self) -> str:
        return self.cause.url

    @property
    def attempts(self) -> int:
        return self.cause.attempts

    @property
    def kind(self) -> FailureKind:
        return self.cause.kind

    @property
    def message(self) -> str:
        return self.cause.message


__all__ = ["BatchAborted", "FetchError", "RetriesExhausted"]
