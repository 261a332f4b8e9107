from __future__ import annotations

from rich.console import Console
from rich.table import Table

from .formatters import format_date, format_tag_for_display
from .session import FeedSession
from .types import Item


def build_items_table(items: list[Item], bookmarked: set[int], title: str = "Feed") -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("", width=1)
    table.add_column("ID", justify="right", style="cyan", no_wrap=True)
    table.add_column("Published", no_wrap=True)
    table.add_column("Source", style="magenta")
    table.add_column("Title")
    table.add_column("Tags", style="green")
    table.add_column("Novelty", justify="right")

    for item in items:
        novelty = f"{item.novelty_score:.0f}" if item.novelty_score is not None else "-"
        table.add_row(
            "*" if item.id in bookmarked else "",
            str(item.id),
            format_date(item.published_at),
            item.source_type or "",
            item.title,
            ", ".join(format_tag_for_display(tag) for tag in item.tags),
            novelty,
        )
    return table


def build_counts_table(counts: dict[str, int], title: str, label: str) -> Table:
    table = Table(title=title)
    table.add_column(label)
    table.add_column("Count", justify="right")
    for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0].lower())):
        table.add_row(format_tag_for_display(name) if label == "Tag" else name, str(count))
    return table


def render_items(session: FeedSession, console: Console) -> None:
    """Print the displayed list plus the status line the UI would show."""
    title = "Bookmarks" if session.bookmark_mode else "Feed"
    console.print(build_items_table(session.items, session.bookmarked_ids, title=title))
    status = f"{len(session.items)} items"
    if session.exhausted:
        status += " (all loaded)"
    console.print(status)
    if session.error:
        console.print(f"[red]{session.error}[/red]")
    if session.notice:
        console.print(f"[yellow]{session.notice}[/yellow]")


def render_item(item: Item, console: Console, bookmarked: bool = False) -> None:
    marker = " [bookmarked]" if bookmarked else ""
    console.print(f"[bold]{item.title or '(untitled)'}[/bold]{marker}")
    console.print(f"{format_date(item.published_at)} | {item.source_type or 'unknown source'}")
    if item.tags:
        console.print(", ".join(format_tag_for_display(tag) for tag in item.tags))
    if item.url:
        console.print(item.url)
    summary = item.payload.get("summary")
    if summary:
        console.print(summary)


def render_stats(session: FeedSession, console: Console) -> None:
    scoped = session.scoped_sources
    if scoped is None:
        scoped = session.unscoped.sources
    console.print(build_counts_table(scoped, "Sources", "Source"))
    console.print(build_counts_table(session.unscoped.tags, "Tags", "Tag"))
    console.print(f"Total items in catalog: {session.unscoped.total}")
