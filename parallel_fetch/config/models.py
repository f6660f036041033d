"""Pydantic models describing fetch behaviour and application settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_RETRIES = 3
DEFAULT_BATCH_SIZE = 5


class FetchConfig(BaseModel):
    """Per-run knobs: attempt timeout, retry budget and batch width.

    The model is frozen so one instance stays constant for the duration of a
    fetch operation; use :meth:`with_overrides` to derive a variant.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, description="Per-attempt time budget.")
    retries: int = Field(default=DEFAULT_RETRIES, ge=1, description="Total attempts allowed per URL.")
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, description="URLs fetched concurrently.")

    @field_validator("timeout_ms", "retries", "batch_size", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        # bool is an int subclass; `retries: true` in YAML should not mean 1
        if isinstance(value, bool):
            raise ValueError("expected a positive integer, got a boolean")
        return value

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def with_overrides(self, **overrides: Any) -> "FetchConfig":
        """Return a validated copy with the non-``None`` overrides applied."""

        payload = self.model_dump()
        payload.update({key: value for key, value in overrides.items() if value is not None})
        return FetchConfig.model_validate(payload)


class AppConfig(BaseModel):
    """Settings persisted for the command line host."""

    fetch: FetchConfig = Field(default_factory=FetchConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    output_dir: Path = Field(default=Path("data/outputs"))
    output_format: Literal["json", "jsonl"] = "json"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("output_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)


__all__ = [
    "AppConfig",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_RETRIES",
    "DEFAULT_TIMEOUT_MS",
    "FetchConfig",
]
