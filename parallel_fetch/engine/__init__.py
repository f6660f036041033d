"""Engine components: executor → retry coordinator → batch scheduler."""

from .errors import BatchAborted, FetchError, RetriesExhausted
from .executor import RequestExecutor
from .observer import CompositeObserver, FetchObserver, LoggingObserver, NullObserver
from .outcome import AttemptOutcome, Failure, FailureKind, FetchRequest, Success
from .retry import RetryCoordinator
from .scheduler import BatchScheduler, SchedulerState, iter_batches

__all__ = [
    "AttemptOutcome",
    "BatchAborted",
    "BatchScheduler",
    "CompositeObserver",
    "Failure",
    "FailureKind",
    "FetchError",
    "FetchObserver",
    "FetchRequest",
    "LoggingObserver",
    "NullObserver",
    "RequestExecutor",
    "RetriesExhausted",
    "RetryCoordinator",
    "SchedulerState",
    "Success",
    "iter_batches",
]
