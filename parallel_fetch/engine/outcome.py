"""Per-attempt request and outcome types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class FailureKind(str, Enum):
    """Classification of a failed attempt."""

    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    DECODE = "decode"
    NETWORK = "network"


@dataclass(frozen=True, slots=True)
class FetchRequest:
    """A single attempt at fetching ``url``; built fresh for every attempt."""

    url: str
    attempt: int = 1

    def __post_init__(self) -> None:
        if self.attempt < 1:
            raise ValueError("attempt numbers start at 1")

    def next_attempt(self) -> "FetchRequest":
        return FetchRequest(url=self.url, attempt=self.attempt + 1)


@dataclass(frozen=True, slots=True)
class Success:
    """Decoded JSON body of a successful attempt."""

    value: Any

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Failure:
    """Classified failure of a single attempt."""

    kind: FailureKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    def describe(self) -> str:
        return f"{self.kind.value}: {self.message}"


AttemptOutcome = Union[Success, Failure]


__all__ = ["AttemptOutcome", "Failure", "FailureKind", "FetchRequest", "Success"]
