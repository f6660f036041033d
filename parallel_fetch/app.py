"""Typer CLI entrypoint for parallel-fetch."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, List, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table
from typer import BadParameter

from .config import AppConfig, ConfigRepository, read_url_list
from .engine import BatchAborted
from .exporter import EXPORT_FORMATS
from .logging_conf import ERROR_LOG_NAME, FETCH_LOG_NAME, configure_logging, tail_log
from .orchestrator import Orchestrator, RunSummary

app = typer.Typer(
    help="parallel-fetch 命令行工具：分批并发抓取 JSON 接口",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="抓取配置管理命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="日志查看命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator: Orchestrator


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    return AppState(repository=repository, orchestrator=Orchestrator(repository))


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


# 进度条策略：默认在交互式终端显示，非TTY自动降级为静默
def _progress_default_enabled() -> bool:
    return bool(getattr(sys.stdout, "isatty", lambda: False)())


def _collect_urls(urls: Optional[List[str]], file: Optional[Path]) -> list[str]:
    collected = [url.strip() for url in (urls or []) if url.strip()]
    if file is not None:
        try:
            collected.extend(read_url_list(file))
        except (FileNotFoundError, ValueError) as exc:
            raise BadParameter(str(exc), param_hint="--file") from exc
    if not collected:
        raise BadParameter("请提供至少一个 URL（参数或 --file）。")
    return collected


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or str(exc)


def _render_config_table(config: AppConfig) -> Table:
    table = Table(title="当前抓取配置", box=box.SIMPLE_HEAD)
    table.add_column("配置项", style="cyan", no_wrap=True)
    table.add_column("取值", style="green")
    table.add_row("timeout_ms", str(config.fetch.timeout_ms))
    table.add_row("retries", str(config.fetch.retries))
    table.add_row("batch_size", str(config.fetch.batch_size))
    table.add_row("log_level", config.log_level)
    table.add_row("output_dir", str(config.output_dir))
    table.add_row("output_format", config.output_format)
    return table


def _render_summary_table(summary: RunSummary) -> Table:
    table = Table(title="抓取结果", box=box.SIMPLE_HEAD)
    table.add_column("指标", style="cyan")
    table.add_column("数值", style="green", justify="right")
    table.add_row("URL 数量", str(len(summary.urls)))
    table.add_row("成功", str(len(summary.results)))
    table.add_row("批大小", str(summary.config.batch_size))
    table.add_row("重试次数", str(summary.counters.get("retried", 0)))
    table.add_row("耗时", f"{summary.elapsed:.2f}s")
    if summary.output_path is not None:
        table.add_row("输出文件", str(summary.output_path))
    return table


app.add_typer(config_app, name="config", help="查看或修改抓取配置")
app.add_typer(log_app, name="log", help="查看日志文件")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="开启调试日志", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="分批并发抓取 URL 并解析 JSON，任何 URL 重试耗尽即整体失败。")
def run(
    ctx: typer.Context,
    urls: Annotated[Optional[List[str]], typer.Argument(help="要抓取的 URL 列表。")] = None,
    file: Annotated[
        Optional[Path],
        typer.Option("--file", "-f", help="URL 列表文件（txt 每行一个，或 YAML/JSON 数组）。"),
    ] = None,
    timeout_ms: Annotated[
        Optional[int], typer.Option("--timeout-ms", min=1, help="单次请求超时（毫秒）。")
    ] = None,
    retries: Annotated[
        Optional[int], typer.Option("--retries", min=1, help="每个 URL 的最大尝试次数。")
    ] = None,
    batch_size: Annotated[
        Optional[int], typer.Option("--batch-size", min=1, help="每批并发请求数。")
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="结果输出文件路径。")
    ] = None,
    export: bool = typer.Option(
        False, "--export", help="按配置的 output_dir 自动生成输出文件。", is_flag=True
    ),
    fmt: Annotated[
        Optional[str], typer.Option("--format", help="输出格式：json 或 jsonl。")
    ] = None,
    quiet: bool = typer.Option(False, "--quiet", help="只输出结果 JSON。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    url_list = _collect_urls(urls, file)
    if fmt is not None and fmt not in EXPORT_FORMATS:
        raise BadParameter(f"不支持的输出格式：{fmt}", param_hint="--format")

    try:
        summary = state.orchestrator.run(
            url_list,
            timeout_ms=timeout_ms,
            retries=retries,
            batch_size=batch_size,
            progress_enabled=_progress_default_enabled() and not quiet,
            output=output,
            export=export,
            fmt=fmt,
        )
    except ValidationError as exc:
        raise BadParameter(_validation_message(exc)) from exc
    except BatchAborted as exc:
        console.print(f"[red]抓取失败：第 {exc.batch_index} 批中止。[/red]")
        console.print(f"URL：{exc.url}")
        console.print(f"尝试次数：{exc.attempts}")
        console.print(f"错误类型：{exc.kind.value}")
        console.print(f"错误信息：{exc.message}")
        raise typer.Exit(code=1) from exc

    if quiet:
        if summary.output_path is not None:
            console.print(str(summary.output_path))
        else:
            console.print_json(data=summary.results)
        return
    console.print(_render_summary_table(summary))
    if summary.output_path is None:
        console.print_json(data=summary.results)


@config_app.command("show", help="显示当前生效的抓取配置。")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(_render_config_table(state.repository.load_app_config()))


@config_app.command("set", help="修改并保存抓取配置。")
def config_set(
    ctx: typer.Context,
    timeout_ms: Annotated[Optional[int], typer.Option("--timeout-ms", help="单次请求超时（毫秒）。")] = None,
    retries: Annotated[Optional[int], typer.Option("--retries", help="每个 URL 的最大尝试次数。")] = None,
    batch_size: Annotated[Optional[int], typer.Option("--batch-size", help="每批并发请求数。")] = None,
) -> None:
    state = _get_state(ctx)
    if timeout_ms is None and retries is None and batch_size is None:
        raise BadParameter("请至少指定一个配置项。")
    try:
        updated = state.repository.update_fetch_config(
            timeout_ms=timeout_ms, retries=retries, batch_size=batch_size
        )
    except ValidationError as exc:
        raise BadParameter(_validation_message(exc)) from exc
    console.print("配置已保存。", style="green")
    console.print(_render_config_table(updated))


@log_app.command("tail", help="输出日志文件末尾若干行。")
def log_tail(
    ctx: typer.Context,
    lines: int = typer.Option(50, "--lines", "-n", min=1, help="显示行数。"),
    errors: bool = typer.Option(False, "--errors", help="查看错误日志。", is_flag=True),
) -> None:
    state = _get_state(ctx)
    log_name = ERROR_LOG_NAME if errors else FETCH_LOG_NAME
    path = state.repository.locator.logs_dir / log_name
    content = tail_log(path, lines)
    if not content:
        console.print(f"日志为空：{path}", style="yellow")
        return
    for line in content:
        console.print(line.rstrip("\n"), markup=False, highlight=False)


__all__ = ["app", "AppState", "build_state"]
