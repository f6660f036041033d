"""Bounded-concurrency batched JSON fetching over httpx."""

from .config import FetchConfig
from .engine import (
    BatchAborted,
    BatchScheduler,
    FailureKind,
    FetchError,
    RequestExecutor,
    RetriesExhausted,
    RetryCoordinator,
)
from .orchestrator import fetch_all, fetch_all_sync

__version__ = "0.1.0"

__all__ = [
    "BatchAborted",
    "BatchScheduler",
    "FailureKind",
    "FetchConfig",
    "FetchError",
    "RequestExecutor",
    "RetriesExhausted",
    "RetryCoordinator",
    "fetch_all",
    "fetch_all_sync",
]
