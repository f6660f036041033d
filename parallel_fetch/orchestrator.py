"""Entry points wiring configuration, engine, progress and export together."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence

import httpx
import structlog

from .config import ConfigRepository, FetchConfig
from .engine import (
    BatchScheduler,
    CompositeObserver,
    FetchObserver,
    LoggingObserver,
    NullObserver,
    RequestExecutor,
    RetryCoordinator,
)
from .exporter import ResultExporter
from .ui import BatchProgress

ClientFactory = Callable[[], httpx.AsyncClient]


async def fetch_all(
    urls: Sequence[str],
    config: FetchConfig | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    observer: FetchObserver | None = None,
) -> list[Any]:
    """Fetch and decode every URL; return the values in input order.

    Raises :class:`~parallel_fetch.engine.BatchAborted` when any URL exhausts its
    retries. A caller-supplied ``client`` is used as is and left open. Nothing
    is logged unless an ``observer`` such as
    :class:`~parallel_fetch.engine.LoggingObserver` is passed.
    """

    config = config or FetchConfig()
    observer = observer or NullObserver()
    if client is None:
        async with RequestExecutor.open(config, observer=observer) as executor:
            return await _schedule(executor, urls, config, observer)
    executor = RequestExecutor(client, config.timeout_ms, observer=observer)
    return await _schedule(executor, urls, config, observer)


async def _schedule(
    executor: RequestExecutor,
    urls: Sequence[str],
    config: FetchConfig,
    observer: FetchObserver,
) -> list[Any]:
    coordinator = RetryCoordinator(executor, config, observer=observer)
    scheduler = BatchScheduler(coordinator, config, observer=observer)
    return await scheduler.fetch_all(urls)


def fetch_all_sync(
    urls: Sequence[str],
    config: FetchConfig | None = None,
    **kwargs: Any,
) -> list[Any]:
    """Blocking wrapper around :func:`fetch_all` for synchronous callers."""

    return asyncio.run(fetch_all(urls, config, **kwargs))


@dataclass(slots=True)
class RunSummary:
    """What a completed command line run produced."""

    urls: list[str]
    results: list[Any]
    config: FetchConfig
    elapsed: float
    output_path: Path | None = None
    counters: dict[str, int] = field(default_factory=dict)


class Orchestrator:
    """Run a fetch with stored settings, optional progress bar and file export.

    Every ``run`` drives its own event loop, so the HTTP client is created and
    closed inside the run. ``client_factory`` replaces the default client,
    e.g. with one mounted on a mock transport.
    """

    def __init__(
        self,
        config_repository: ConfigRepository,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config_repository = config_repository
        self.client_factory = client_factory
        self.logger = structlog.get_logger("parallel_fetch.orchestrator").bind(
            component="orchestrator"
        )

    async def _fetch(self, urls: list[str], config: FetchConfig, observer: FetchObserver) -> list[Any]:
        if self.client_factory is None:
            return await fetch_all(urls, config, observer=observer)
        async with self.client_factory() as client:
            return await fetch_all(urls, config, client=client, observer=observer)

    def run(
        self,
        urls: Sequence[str],
        *,
        timeout_ms: int | None = None,
        retries: int | None = None,
        batch_size: int | None = None,
        progress_enabled: bool = False,
        output: Path | None = None,
        export: bool = False,
        fmt: str | None = None,
    ) -> RunSummary:
        app_config = self.config_repository.load_app_config()
        config = app_config.fetch.with_overrides(
            timeout_ms=timeout_ms, retries=retries, batch_size=batch_size
        )
        url_list = list(urls)
        progress = BatchProgress(enabled=progress_enabled)
        observer = CompositeObserver([LoggingObserver(self.logger), progress])
        progress.start(len(url_list))
        self.logger.info(
            "run_started",
            total=len(url_list),
            timeout_ms=config.timeout_ms,
            retries=config.retries,
            batch_size=config.batch_size,
        )
        started = time.perf_counter()
        try:
            results = asyncio.run(self._fetch(url_list, config, observer))
        finally:
            progress.close()
        elapsed = time.perf_counter() - started

        output_path: Path | None = None
        if output is not None or export:
            exporter = ResultExporter(
                self.config_repository.resolve_output_path(app_config.output_dir),
                fmt=fmt or app_config.output_format,
                path=self.config_repository.resolve_output_path(output) if output else None,
            )
            output_path = exporter.export(url_list, results)
            self.logger.info("results_exported", path=str(output_path), total=len(results))

        return RunSummary(
            urls=url_list,
            results=results,
            config=config,
            elapsed=elapsed,
            output_path=output_path,
            counters=progress.summary(),
        )


__all__ = ["Orchestrator", "RunSummary", "fetch_all", "fetch_all_sync"]
