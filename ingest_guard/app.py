"""Typer CLI entrypoint for ingest-guard."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, SourceConfig
from .engine import (
    ArticleCandidate,
    BatchDeduplicator,
    DuplicateDetector,
    HttpFeedCollector,
    PersistedStateDeduplicator,
    TTLCache,
)
from .engine.store import SQLiteArticleStore
from .infra import SQLiteManager
from .logging_conf import (
    available_source_logs,
    configure_logging,
    default_log_dir,
    source_log_path,
    tail_log,
)
from .orchestrator import CollectionSummary, CollectorBusyError, IngestionOrchestrator
from .scheduler import APSchedulerAdapter

app = typer.Typer(
    help="ingest-guard 命令行工具：去重采集与缓存",
    no_args_is_help=True,
    rich_markup_mode=None,
)
source_app = typer.Typer(name="source", help="信息源管理命令", no_args_is_help=True, rich_markup_mode=None)
ingest_app = typer.Typer(name="ingest", help="采集与去重命令", no_args_is_help=True, rich_markup_mode=None)
store_app = typer.Typer(name="store", help="文章库查看命令", no_args_is_help=True, rich_markup_mode=None)
log_app = typer.Typer(name="log", help="日志查看命令", no_args_is_help=True, rich_markup_mode=None)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator: IngestionOrchestrator
    store: SQLiteArticleStore
    cache: TTLCache
    scheduler: APSchedulerAdapter


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    store = SQLiteArticleStore(SQLiteManager(), repository.database_path())
    cache = TTLCache(default_ttl=global_config.cache.default_ttl_seconds)
    orchestrator = IngestionOrchestrator(
        config_repository=repository,
        store=store,
        cache=cache,
        collector=HttpFeedCollector(global_config.collection),
    )
    return AppState(
        repository=repository,
        orchestrator=orchestrator,
        store=store,
        cache=cache,
        scheduler=APSchedulerAdapter(),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _render_sources_table(sources: Sequence[SourceConfig]) -> Table:
    table = Table(title=f"信息源总览 · 共 {len(sources)} 个", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("名称", style="cyan", no_wrap=True)
    table.add_column("用途", style="magenta")
    table.add_column("状态", style="green")
    table.add_column("最小间隔", style="yellow")
    table.add_column("地址", overflow="fold")
    for source in sources:
        interval = source.min_interval_minutes
        table.add_row(
            str(source.source_id),
            source.source_name,
            source.purpose,
            "启用" if source.is_active else "停用",
            "默认" if interval is None else f"{interval:g} 分钟",
            source.feed_url,
        )
    return table


def _render_summary(title: str, summary: CollectionSummary) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAD)
    table.add_column("指标", style="cyan")
    table.add_column("数量", style="green", justify="right")
    rows = [
        ("已抓取信息源", summary.sources_fetched),
        ("节流跳过", summary.sources_throttled),
        ("抓取失败", summary.sources_failed),
        ("采集文章", summary.collected),
        ("已处理跳过", summary.already_processed),
        ("批内去重后", summary.unique),
        ("有效链接", summary.valid_urls),
        ("库内去重后", summary.fresh),
        ("写入成功", summary.inserted),
        ("写入失败", len(summary.insert_failures)),
    ]
    for label, value in rows:
        table.add_row(label, str(value))
    return table


def _load_candidates(path: Path) -> list[ArticleCandidate]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"无法读取文章文件 {path}: {exc}") from exc
    if isinstance(payload, dict):
        payload = payload.get("articles", payload.get("items"))
    if not isinstance(payload, list):
        raise typer.BadParameter("文章文件需为 JSON 数组或包含 articles 字段的对象。")
    return [ArticleCandidate.from_mapping(entry) for entry in payload if isinstance(entry, dict)]


app.add_typer(source_app, name="source", help="管理信息源（list/add/remove）")
app.add_typer(ingest_app, name="ingest", help="执行采集、离线去重或常驻调度")
app.add_typer(store_app, name="store", help="查看已入库文章")
app.add_typer(log_app, name="log", help="查看日志文件")


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="开启调试日志")
) -> None:
    ctx.obj = build_state(verbose)


@source_app.command("list", help="查看信息源清单。")
def source_list(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    sources = state.repository.list_sources()
    if not sources:
        console.print("暂无信息源配置，使用 `ingest-guard source add` 创建新信息源。", style="yellow")
        raise typer.Exit(code=0)
    console.print(_render_sources_table(sources))


@source_app.command("add", help="创建新的信息源配置。")
def source_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="信息源名称。"),
    source_id: int = typer.Option(..., "--id", help="信息源数字 ID（节流记录按此区分）。"),
    feed_url: str = typer.Option(..., "--url", help="JSON 文章源地址。"),
    purpose: str = typer.Option("both", "--purpose", help="dashboard / market-intelligence / both"),
    min_interval: Optional[float] = typer.Option(None, "--min-interval", help="最小抓取间隔（分钟）。"),
    inactive: bool = typer.Option(False, "--inactive", help="创建为停用状态。"),
) -> None:
    state = _get_state(ctx)
    try:
        source = SourceConfig(
            source_id=source_id,
            source_name=name,
            feed_url=feed_url,
            purpose=purpose,
            min_interval_minutes=min_interval,
            is_active=not inactive,
        )
    except ValueError as exc:
        console.print(f"配置无效：{exc}", style="red")
        raise typer.Exit(code=1) from exc
    clash = state.repository.find_source(source_id)
    if clash is not None and clash.source_name != name:
        console.print(f"ID {source_id} 已被信息源 `{clash.source_name}` 使用。", style="red")
        raise typer.Exit(code=1)
    path = state.repository.save_source(source)
    console.print(f"信息源 `{name}` 已创建：{path}", style="green")


@source_app.command("remove", help="删除信息源配置。")
def source_remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="要删除的信息源名称。"),
    yes: bool = typer.Option(False, "--yes", help="跳过删除确认提示。"),
) -> None:
    state = _get_state(ctx)
    source_path = state.repository.source_path(name)
    if not source_path.exists():
        console.print(f"未找到信息源 `{name}`。", style="red")
        raise typer.Exit(code=1)
    if not yes and not typer.confirm(f"确认删除 `{name}`？", default=False):
        console.print("已取消删除操作。", style="yellow")
        raise typer.Exit(code=0)
    state.repository.delete_source(name)
    console.print(f"信息源 `{name}` 已删除。", style="green")


@ingest_app.command("run", help="立即执行一次采集（节流、去重、入库）。")
def ingest_run(
    ctx: typer.Context,
    purpose: Optional[str] = typer.Option(None, "--purpose", help="仅采集指定用途的信息源。"),
    force: bool = typer.Option(False, "--force", help="忽略抓取节流。"),
    quiet: bool = typer.Option(False, "--quiet", help="只输出精简结果。"),
) -> None:
    state = _get_state(ctx)
    try:
        summary = state.orchestrator.run_collection(purpose=purpose, force=force)
    except CollectorBusyError as exc:
        console.print(f"采集进行中：{exc}", style="yellow")
        raise typer.Exit(code=1) from exc
    if quiet:
        console.print(
            f"运行完成：写入 {summary.inserted}，失败 {len(summary.insert_failures)}，"
            f"节流 {summary.sources_throttled}"
        )
    else:
        console.print(_render_summary("采集结果", summary))
    for failure in summary.insert_failures:
        console.print(f"- 写入失败：{failure.title} ({failure.source_url})：{failure.error}", style="red")
    if summary.insert_failures:
        raise typer.Exit(code=1)


@ingest_app.command("dedupe", help="对 JSON 文章文件做离线去重。")
def ingest_dedupe(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="JSON 文章数组文件。", exists=True, dir_okay=False),
    against_store: bool = typer.Option(False, "--against-store", help="同时与文章库比对。"),
    output: Optional[Path] = typer.Option(None, "--output", help="将保留的文章写入该文件。"),
) -> None:
    state = _get_state(ctx)
    candidates = _load_candidates(path)
    detector = DuplicateDetector(state.repository.load_global_config().dedup)
    kept = BatchDeduplicator(detector).deduplicate(candidates)
    if against_store:
        kept = PersistedStateDeduplicator(state.store, detector).deduplicate(kept)
    table = Table(title=f"去重结果 · 保留 {len(kept)} / {len(candidates)}", box=box.SIMPLE_HEAD)
    table.add_column("标题", style="cyan", overflow="fold")
    table.add_column("链接", overflow="fold")
    for candidate in kept:
        table.add_row(candidate.title, candidate.source_url or "-")
    console.print(table)
    if output is not None:
        output.write_text(
            json.dumps([c.to_record() for c in kept], ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        console.print(f"已写入 {output}", style="green")


@ingest_app.command("serve", help="常驻运行：定时采集并清理过期缓存。")
def ingest_serve(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(None, "--interval", help="采集间隔（分钟），默认读取全局配置。"),
) -> None:
    state = _get_state(ctx)
    global_config = state.repository.load_global_config()
    minutes = interval or global_config.collection.interval_minutes
    state.scheduler.schedule_collection(state.orchestrator.run_collection, minutes)
    state.scheduler.schedule_cache_sweep(state.cache, global_config.cache.sweep_interval_seconds)
    state.scheduler.start()
    console.print(f"调度已启动，每 {minutes:g} 分钟采集一次，Ctrl+C 退出。", style="green")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("正在停止调度…", style="yellow")
    finally:
        state.scheduler.shutdown()
        state.store.close()


@store_app.command("recent", help="查看最近入库的文章。")
def store_recent(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", help="显示记录数量。"),
) -> None:
    state = _get_state(ctx)
    rows = state.store.recent(limit=limit)
    if not rows:
        console.print("文章库为空。", style="dim")
        return
    table = Table(title=f"最近 {len(rows)} 篇文章 · 共 {state.store.count()} 篇", box=box.SIMPLE_HEAD)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("标题", overflow="fold")
    table.add_column("来源", style="magenta")
    table.add_column("入库时间", style="green")
    for row in rows:
        table.add_row(str(row["id"]), str(row["title"]), str(row.get("source_name") or "-"), str(row["created_at"]))
    console.print(table)


def _render_log_files(paths: Iterable[Path]) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("文件名", style="green")
    for path in paths:
        table.add_row(path.name)
    return table


@log_app.command("list", help="列出可用的信息源日志文件。")
def log_list() -> None:
    logs = list(available_source_logs())
    if not logs:
        console.print("暂未生成任何信息源日志。", style="dim")
        return
    console.print(_render_log_files(logs))


@log_app.command("show", help="查看指定日志的最近内容。")
def log_show(
    name: Optional[str] = typer.Option(None, "--source", help="信息源名称（为空则展示全局日志）。"),
    tail: int = typer.Option(100, "--tail", help="显示最近 N 行内容。"),
) -> None:
    path = source_log_path(name) if name else default_log_dir() / "ingest.log"
    lines = tail_log(path, tail)
    if not lines:
        console.print("暂无日志信息，请稍后再试。", style="dim")
        return
    console.print(f"{'源日志' if name else '全局日志'} · 最近 {len(lines)} 行", style="cyan")
    console.print("".join(lines))


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
