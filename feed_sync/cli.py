"""
Command-line interface for the feed synchronization engine.

Uses Typer to drive a SyncController from the terminal: browse the feed
with filters, open a single item by id, toggle bookmarks and inspect facet
counts. Supports loading .env files for the API location.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console

from .config import AppConfig, load_config
from .controller import SyncController
from .logging_utils import setup_logging
from .renderer import render_item, render_items, render_stats

app = typer.Typer(add_completion=False)
console = Console()


def _prepare(
    config: Path | None,
    api_url: str | None,
    log_level: str | None,
) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if api_url:
        cfg.api.base_url = api_url
    if log_level:
        cfg.logging.level = log_level
    log_dir = Path(cfg.logging.log_dir or cfg.bookmarks.storage_dir).expanduser()
    setup_logging(cfg.logging, log_dir)
    return cfg


ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="YAML config file.")
ApiUrlOption = typer.Option(None, "--api-url", envvar="FEED_SYNC_API_URL", help="Content API base URL.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")


@app.command()
def browse(
    query: str = typer.Option("", "--query", "-q", help="Full-text search."),
    source: list[str] = typer.Option([], "--source", "-s", help="Restrict to source (repeatable)."),
    tag: list[str] = typer.Option([], "--tag", "-t", help="Restrict to tag (repeatable)."),
    novelty: int | None = typer.Option(None, "--novelty", "-n", help="Minimum novelty bucket."),
    random: bool = typer.Option(False, "--random", help="Random order instead of newest first."),
    bookmarks: bool = typer.Option(False, "--bookmarks", "-b", help="Show bookmarked items only."),
    pages: int = typer.Option(1, "--pages", "-p", min=1, help="Number of pages to load."),
    config: Path | None = ConfigOption,
    api_url: str | None = ApiUrlOption,
    log_level: str | None = LogLevelOption,
):
    """Show the feed for the given filters."""
    cfg = _prepare(config, api_url, log_level)

    async def _run() -> SyncController:
        controller = SyncController.from_config(cfg)
        await controller.bootstrap()
        if bookmarks:
            await controller.set_bookmark_mode(True)
            await controller.drain()
            return controller
        if query:
            await controller.set_query(query)
        if source:
            await controller.set_sources(source)
        if tag:
            await controller.set_tags(tag)
        if novelty is not None:
            await controller.set_min_novelty(novelty)
        if random:
            await controller.set_random_order()
        if pages > 1:
            await controller.load_all_pages(max_pages=pages - 1)
        await controller.drain()
        return controller

    try:
        controller = asyncio.run(_run())
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    render_items(controller.session, console)
    if controller.session.error:
        raise typer.Exit(code=1)


@app.command()
def show(
    item_id: int = typer.Argument(..., help="Item identifier."),
    config: Path | None = ConfigOption,
    api_url: str | None = ApiUrlOption,
    log_level: str | None = LogLevelOption,
):
    """Open a single item, loading it even if it is not on the first page."""
    cfg = _prepare(config, api_url, log_level)

    async def _run() -> tuple[SyncController, object]:
        controller = SyncController.from_config(cfg)
        await controller.bootstrap()
        await controller.drain()
        item = await controller.ensure_item_loaded(item_id)
        return controller, item

    controller, item = asyncio.run(_run())
    if item is None:
        console.print(f"[yellow]{controller.session.notice}[/yellow]")
        raise typer.Exit(code=1)
    render_item(item, console, bookmarked=controller.is_bookmarked(item_id))


@app.command()
def bookmark(
    item_id: int = typer.Argument(..., help="Item identifier."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Toggle a bookmark without contacting the API."""
    cfg = _prepare(config, None, log_level)
    controller = SyncController.from_config(cfg)
    controller.bookmarks.load()
    bookmarked = controller.bookmarks.toggle(item_id)
    state = "Bookmarked" if bookmarked else "Removed bookmark for"
    console.print(f"{state} item {item_id} ({len(controller.bookmarks)} total)")


@app.command()
def stats(
    query: str = typer.Option("", "--query", "-q", help="Scope source counts to a search."),
    config: Path | None = ConfigOption,
    api_url: str | None = ApiUrlOption,
    log_level: str | None = LogLevelOption,
):
    """Print source and tag counts."""
    cfg = _prepare(config, api_url, log_level)

    async def _run() -> SyncController:
        controller = SyncController.from_config(cfg)
        await controller.bootstrap()
        if query:
            await controller.set_query(query)
        await controller.drain()
        return controller

    controller = asyncio.run(_run())
    render_stats(controller.session, console)


if __name__ == "__main__":
    app()
