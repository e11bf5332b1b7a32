"""
Main CLI dispatcher for folio.

Usage:
    folio init                           # Create folio.yaml and content/
    folio build [--drafts] [--strict] [--out DIR]
    folio check [--drafts] [--strict]
    folio series | folio tags
"""

from __future__ import annotations

import json as json_module
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from folio import __version__
from folio.content.models import BuildIssue
from folio.core.errors import (
    EXIT_FAILURE,
    ConfigError,
    ContentError,
    ContentErrors,
    FolioError,
)

console = Console()
err_console = Console(stderr=True)


class Context:
    """Shared context for all commands."""

    def __init__(self, verbose: bool = False, site: Path | None = None):
        self.verbose = verbose
        self.site = site
        self.console = console

    def paths(self):
        """Resolve site paths, exiting with a message when there is no site."""
        from folio.core.config import get_paths

        try:
            root = self.site.resolve() if self.site else None
            return get_paths(root)
        except FileNotFoundError as e:
            err_console.print(f"[red]{e}[/red]")
            sys.exit(EXIT_FAILURE)
        except ConfigError as e:
            err_console.print(f"[red]Config error:[/red] {e.message}")
            sys.exit(EXIT_FAILURE)


pass_context = click.make_pass_decorator(Context, ensure=True)


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def print_errors(errors: list[ContentError]) -> None:
    """Print collected content errors as a table."""
    table = Table(title=f"Content Errors ({len(errors)})")
    table.add_column("File", style="cyan", no_wrap=False)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Kind", style="magenta")
    table.add_column("Problem", style="red", no_wrap=False)

    for error in errors:
        data = error.to_dict()
        detail = error.message
        if data.get("field"):
            detail = f"{data['field']}: {detail}"
        line = data.get("line")
        table.add_row(
            data["path"] or "-",
            str(line) if line is not None else "",
            error.kind,
            detail,
        )

    err_console.print(table)


def print_warnings(warnings: list[BuildIssue]) -> None:
    """Print build warnings as a table."""
    if not warnings:
        return
    table = Table(title=f"Warnings ({len(warnings)})")
    table.add_column("File", style="cyan", no_wrap=False)
    table.add_column("Warning", style="yellow", no_wrap=False)
    for w in warnings:
        table.add_row(str(w.path) if w.path else "-", w.message)
    err_console.print(table)


def fail(error: FolioError, as_json: bool = False) -> NoReturn:
    """Report a fatal error and exit with its code."""
    if isinstance(error, ContentErrors):
        collected = error
    elif isinstance(error, ContentError):
        collected = ContentErrors([error])
    else:
        collected = None

    if as_json:
        payload = {
            "ok": False,
            "message": error.message,
            "errors": collected.to_list() if collected else [],
        }
        click.echo(json_module.dumps(payload, indent=2))
    elif collected:
        print_errors(collected.errors)
    else:
        err_console.print(f"[red]Error:[/red] {error.message}")
    sys.exit(error.exit_code)


@click.group()
@click.version_option(version=__version__, prog_name="folio")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option(
    "--site",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Site root (default: nearest directory with folio.yaml)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, site: Path | None) -> None:
    """Build a static HTML site from Markdown posts.

    Posts carry TOML (+++) or YAML (---) front matter with a title and date,
    and may be grouped into series and tagged.
    """
    setup_logging(verbose)
    ctx.obj = Context(verbose=verbose, site=site)


@main.command()
@click.option("--title", default=None, help="Site title")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing folio.yaml")
@pass_context
def init(ctx: Context, title: str | None, force: bool) -> None:
    """Create folio.yaml and an empty content directory."""
    from folio.core.config import CONFIG_FILENAME, write_default_config

    site_root = (ctx.site or Path.cwd()).resolve()
    config_file = site_root / CONFIG_FILENAME

    if config_file.exists() and not force:
        console.print(f"[yellow]{CONFIG_FILENAME} already exists at {site_root}[/yellow]")
        console.print("[dim]Use --force to overwrite.[/dim]")
        return

    site_root.mkdir(parents=True, exist_ok=True)
    write_default_config(site_root, title=title)
    console.print(f"  [green]Created[/green] {CONFIG_FILENAME}")

    content_dir = site_root / "content"
    if not content_dir.exists():
        content_dir.mkdir()
        console.print("  [green]Created[/green] content/")

    console.print()
    console.print("[green]Done![/green] Run 'folio build' to render the site.")


@main.command()
@click.option("--drafts", is_flag=True, help="Include draft posts in the output")
@click.option("--strict", is_flag=True, help="Treat broken references and render failures as errors")
@click.option(
    "--out",
    "out_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: output_dir from folio.yaml)",
)
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=None, help="Worker threads")
@click.option("--json", "as_json", is_flag=True, help="Output report as JSON")
@pass_context
def build(
    ctx: Context,
    drafts: bool,
    strict: bool,
    out_dir: Path | None,
    jobs: int | None,
    as_json: bool,
) -> None:
    """Build the site into the output directory."""
    from folio.build import BuildOptions, SiteBuilder

    paths = ctx.paths()
    options = BuildOptions.from_paths(
        paths, include_drafts=drafts, strict=strict, out_dir=out_dir, jobs=jobs
    )

    try:
        report = SiteBuilder(options).build()
    except FolioError as e:
        fail(e, as_json=as_json)

    if as_json:
        click.echo(json_module.dumps({"ok": True, **report.to_dict()}, indent=2))
        return

    print_warnings(report.warnings)
    console.print(
        f"[green]Built[/green] {report.pages} pages from {report.posts} posts "
        f"into {report.out_dir} [dim]({report.elapsed:.2f}s)[/dim]"
    )
    if report.skipped:
        console.print(f"[yellow]Skipped {len(report.skipped)} post(s): {', '.join(report.skipped)}[/yellow]")
    if report.drafts_hidden:
        console.print(f"[dim]{report.drafts_hidden} draft(s) not built (use --drafts)[/dim]")
    if ctx.verbose:
        console.print(f"[dim]Output digest: {report.digest}[/dim]")


@main.command()
@click.option("--drafts", is_flag=True, help="Check as if drafts were published")
@click.option("--strict", is_flag=True, help="Treat broken references as errors")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@pass_context
def check(ctx: Context, drafts: bool, strict: bool, as_json: bool) -> None:
    """Validate content without writing any output."""
    from folio.build import BuildOptions, SiteBuilder

    paths = ctx.paths()
    options = BuildOptions.from_paths(paths, include_drafts=drafts, strict=strict)

    try:
        result = SiteBuilder(options).check()
    except FolioError as e:
        fail(e, as_json=as_json)

    if as_json:
        payload = {
            "ok": True,
            "posts": len(result.graph.posts),
            "references": sum(len(r.references) for r in result.resolution.posts.values()),
            "warnings": [w.to_dict() for w in result.warnings],
        }
        click.echo(json_module.dumps(payload, indent=2))
        return

    print_warnings(result.warnings)
    console.print(
        f"[green]OK[/green] {len(result.graph.posts)} posts, "
        f"{len(result.graph.series)} series, {len(result.graph.tags)} tags"
    )


# Import and register command groups (imports after main definition intentional)
from folio.content.commands import series, tags  # noqa: E402

main.add_command(series)
main.add_command(tags)


if __name__ == "__main__":
    main()
