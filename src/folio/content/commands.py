"""CLI commands for inspecting series and tags.

List series with their reading order and tags with their posts.
"""

from __future__ import annotations

import json as json_module
import sys

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _load_graph(obj, include_drafts: bool):
    """Parse content and build the graph, exiting on content errors."""
    from folio.cli import fail
    from folio.content.graph import build_graph
    from folio.content.loader import ContentLoader
    from folio.core.config import get_paths
    from folio.core.errors import FolioError

    paths = obj.paths() if obj is not None else get_paths()
    try:
        posts = ContentLoader(paths.content, jobs=paths.config.jobs).load()
        return build_graph(posts, include_drafts=include_drafts)
    except FolioError as e:
        fail(e)


@click.command(name="series")
@click.argument("name", required=False)
@click.option("--drafts", is_flag=True, help="Include drafts")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def series(obj, name: str | None, drafts: bool, as_json: bool) -> None:
    """List series, or the reading order of series NAME."""
    graph = _load_graph(obj, drafts)

    if name is not None:
        group = graph.series.get(name)
        if group is None:
            console.print(f"[red]Series not found: {name}[/red]")
            sys.exit(1)

        members = [
            {
                "slug": p.slug,
                "title": p.title,
                "date": p.published_at.date().isoformat(),
                "draft": p.is_draft,
            }
            for p in group.members
        ]
        if as_json:
            click.echo(json_module.dumps({"name": group.name, "posts": members}, indent=2))
            return

        table = Table(title=f"{group.name} ({len(group)} posts)")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Date", style="dim")
        table.add_column("Slug", style="cyan")
        table.add_column("Title", no_wrap=False)
        for i, m in enumerate(members, start=1):
            title = f"{m['title']} [yellow](draft)[/yellow]" if m["draft"] else m["title"]
            table.add_row(str(i), m["date"], m["slug"], title)
        console.print(table)
        return

    rows = [
        {
            "name": group.name,
            "posts": len(group),
            "first": group.members[0].published_at.date().isoformat(),
            "last": group.members[-1].published_at.date().isoformat(),
        }
        for group in graph.series.values()
    ]

    if as_json:
        click.echo(json_module.dumps(rows, indent=2))
        return

    if not rows:
        console.print("[yellow]No series found.[/yellow]")
        return

    table = Table(title=f"Series ({len(rows)})")
    table.add_column("Name", style="cyan")
    table.add_column("Posts", justify="right")
    table.add_column("First", style="dim")
    table.add_column("Last", style="dim")
    for r in rows:
        table.add_row(r["name"], str(r["posts"]), r["first"], r["last"])
    console.print(table)


@click.command(name="tags")
@click.option("--drafts", is_flag=True, help="Include drafts")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--limit", default=0, type=int, help="Max tags to show (0=all)")
@click.pass_obj
def tags(obj, drafts: bool, as_json: bool, limit: int) -> None:
    """List tags by usage, with their most recent posts."""
    graph = _load_graph(obj, drafts)

    rows = [
        {"tag": tag, "count": len(posts), "posts": [p.slug for p in posts]}
        for tag, posts in graph.tags.items()
    ]
    rows.sort(key=lambda r: (-r["count"], r["tag"].lower()))
    if limit:
        rows = rows[:limit]

    if as_json:
        click.echo(json_module.dumps(rows, indent=2))
        return

    if not rows:
        console.print("[yellow]No tags found.[/yellow]")
        return

    table = Table(title=f"Tags ({len(rows)})")
    table.add_column("Tag", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Recent Posts", style="dim", no_wrap=False)
    for r in rows:
        recent = ", ".join(r["posts"][:3])
        if len(r["posts"]) > 3:
            recent += ", ..."
        table.add_row(r["tag"], str(r["count"]), recent)
    console.print(table)
