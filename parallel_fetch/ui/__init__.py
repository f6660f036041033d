"""User interaction helpers."""

from .progress import BatchProgress, ProgressState

__all__ = ["BatchProgress", "ProgressState"]
