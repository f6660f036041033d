"""Terminal progress display driven by engine observer events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text

from ..engine import BatchAborted, Failure, FetchRequest, NullObserver, RetriesExhausted


@dataclass
class ProgressState:
    total: int
    fetched: int = 0
    retried: int = 0
    failed: int = 0
    batch: int | None = None
    current_url: str | None = None


class RateColumn(ProgressColumn):
    """Render throughput as "X.X url/s"."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} url/s", style="progress.percentage")


def _shorten(url: str, limit: int = 60) -> str:
    if len(url) > limit:
        return url[: limit - 3] + "..."
    return url


class BatchProgress(NullObserver):
    """Rich progress bar counting fetched URLs, retries and exhausted URLs."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.state: ProgressState | None = None

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            # 非交互环境回退为静默模式
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[batch]:<10}", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            RateColumn(),
            TextColumn("[green]✓{task.fields[fetched]:>3}", justify="right"),
            TextColumn("[yellow]↺{task.fields[retried]:>3}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>3}", justify="right"),
            TextColumn("[dim]{task.fields[current_url]}", justify="left"),
            console=self._console,
            transient=True,
            expand=True,
        )
        try:
            self._progress.start()
        except LiveError:
            # 同一控制台已有活动进度条
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "fetch",
            total=total,
            batch="-",
            fetched=0,
            retried=0,
            failed=0,
            current_url="等待中…",
        )

    def _refresh(self, advance: int = 0) -> None:
        if self._progress is None or self._task_id is None or self.state is None:
            return
        self._progress.update(
            self._task_id,
            advance=advance,
            batch=f"batch {self.state.batch}" if self.state.batch is not None else "-",
            fetched=self.state.fetched,
            retried=self.state.retried,
            failed=self.state.failed,
            current_url=_shorten(self.state.current_url or ""),
        )

    def _require_state(self) -> ProgressState:
        if self.state is None:
            raise RuntimeError("BatchProgress.start must be called before events arrive")
        return self.state

    # observer hooks ---------------------------------------------------
    def attempt_started(self, request: FetchRequest) -> None:
        self._require_state().current_url = request.url
        self._refresh()

    def attempt_succeeded(self, request: FetchRequest) -> None:
        self._require_state().fetched += 1
        self._refresh(advance=1)

    def retrying(self, url: str, next_attempt: int, failure: Failure) -> None:
        self._require_state().retried += 1
        self._refresh()

    def retries_exhausted(self, error: RetriesExhausted) -> None:
        self._require_state().failed += 1
        self._refresh(advance=1)

    def batch_started(self, index: int, urls: Sequence[str]) -> None:
        self._require_state().batch = index
        self._refresh()

    def run_completed(self, results: Sequence[Any]) -> None:
        self.close()

    def run_aborted(self, error: BatchAborted) -> None:
        self.close()

    def close(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self._task_id = None

    def summary(self) -> dict[str, int]:
        if not self.state:
            return {"total": 0, "fetched": 0, "retried": 0, "failed": 0}
        return {
            "total": self.state.total,
            "fetched": self.state.fetched,
            "retried": self.state.retried,
            "failed": self.state.failed,
        }


__all__ = ["BatchProgress", "ProgressState", "RateColumn"]
