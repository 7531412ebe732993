"""
indexed-docs CLI - index, search and manage package documentation.
"""

import asyncio
from datetime import timedelta
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from indexed_docs import DocsIndex, init
from indexed_docs.config.settings import Settings, load_settings
from indexed_docs.coordinator import IndexingState
from indexed_docs.core.debug import enable_debug, get_log_file, init_logging
from indexed_docs.errors import FetchError, IndexedDocsError, ParseError
from indexed_docs.models import PackageIdentity
from indexed_docs.providers.docs_rs import PROVIDER_ID as DOCS_RS

app = typer.Typer(
    name="indexed-docs",
    help="indexed-docs - fetch, index and search package documentation",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to indexed_docs.yaml (defaults are used when omitted)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable verbose debug logging to the session log file",
    ),
) -> None:
    """Global options."""
    init_logging()
    if debug:
        enable_debug()
        console.print(f"[yellow]Debug mode enabled - logging to {get_log_file()}[/yellow]\n")

    if config_path is None:
        ctx.obj = Settings()
        return
    try:
        ctx.obj = load_settings(config_path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config_path}[/red]")
        raise typer.Exit(1)


def parse_package(spec: str, provider: str) -> PackageIdentity:
    """Accept ``provider/name@version`` or a bare ``name[@version]``."""
    if "/" in spec:
        return PackageIdentity.parse(spec)
    name, _, version = spec.partition("@")
    return PackageIdentity(provider_id=provider, name=name, version=version or None)


def _run(settings: Settings, command, progress=None):
    """Run an async command against a freshly initialized index."""

    async def runner():
        docs = init(settings, progress=progress)
        try:
            return await command(docs)
        finally:
            await docs.aclose()

    try:
        return asyncio.run(runner())
    except IndexedDocsError as e:
        _print_error(e)
        raise typer.Exit(1)


def _print_error(error: IndexedDocsError) -> None:
    console.print(f"[red]{error}[/red]")
    if isinstance(error, FetchError) and error.is_transient:
        hint = "Temporary failure, try again"
        if error.retry_after:
            hint += f" in {error.retry_after:.0f}s"
        console.print(f"[yellow]{hint}[/yellow]")
    elif isinstance(error, ParseError):
        console.print("[dim]Raw content excerpt (include this in bug reports):[/dim]")
        console.print(error.raw_excerpt, markup=False, highlight=False)


@app.command()
def index(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package, e.g. serde, serde@1.0.200 or docs.rs/serde"),
    provider: str = typer.Option(DOCS_RS, "--provider", "-p", help="Provider id for bare names"),
    force: bool = typer.Option(False, "--force", "-f", help="Re-fetch even if cached"),
) -> None:
    """Fetch and index documentation for a package."""
    identity = parse_package(package, provider)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task(f"Indexing {identity.key}...", total=None)

        def on_progress(_identity: PackageIdentity, state: IndexingState) -> None:
            bar.update(task, description=f"{identity.key}: {state.value.replace('_', ' ')}")

        package_docs = _run(
            ctx.obj,
            lambda docs: docs.coordinator.ensure_indexed(identity, force_refresh=force),
            progress=on_progress,
        )

    console.print(
        f"[green]Indexed {identity.key}[/green]: {len(package_docs.entries)} entries "
        f"[dim](indexed {package_docs.indexed_at:%Y-%m-%d %H:%M} UTC)[/dim]"
    )


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to search for"),
    package: Optional[str] = typer.Option(None, "--package", "-P", help="Restrict to one package"),
    provider: str = typer.Option(DOCS_RS, "--provider", "-p", help="Provider id for bare names"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum results"),
    context: bool = typer.Option(False, "--context", help="Print as prompt context"),
) -> None:
    """Search indexed documentation."""
    settings: Settings = ctx.obj
    scope = parse_package(package, provider) if package else None
    max_results = limit or settings.search.max_results

    async def command(docs: DocsIndex):
        if context:
            return await docs.injector.get_relevant_context(query, scope)
        return await docs.store.search(scope, query, limit=max_results)

    results = _run(settings, command)

    if context and results:
        console.print(results, markup=False, highlight=False)
        return
    if not results:
        console.print("[yellow]No matching documentation[/yellow]")
        return

    table = Table(title=f"Results for '{query}'", show_header=True, header_style="bold cyan")
    table.add_column("Score", style="magenta", justify="right")
    table.add_column("Package", style="green")
    table.add_column("Path", style="yellow")
    table.add_column("Kind")
    for result in results:
        table.add_row(
            f"{result.relevance_score:.2f}",
            result.identity.key,
            result.entry.qualified_name,
            result.entry.kind.value,
        )
    console.print(table)


@app.command("list")
def list_packages(ctx: typer.Context) -> None:
    """List indexed packages."""
    status = _run(ctx.obj, lambda docs: docs.store.stats())

    if not status["packages"]:
        console.print("[yellow]No packages indexed yet[/yellow]")
    else:
        table = Table(title="Indexed Packages", show_header=True, header_style="bold cyan")
        table.add_column("Package", style="green")
        table.add_column("Entries", justify="right")
        table.add_column("Indexed At", style="dim")
        for key in sorted(status["packages"]):
            info = status["packages"][key]
            table.add_row(key, str(info["entry_count"]), info["indexed_at"])
        console.print(table)

    if status["unreadable_records"]:
        console.print(f"[red]{status['unreadable_records']} unreadable record(s) skipped[/red]")


@app.command()
def show(
    ctx: typer.Context,
    package: str = typer.Argument(..., help="Package to show"),
    provider: str = typer.Option(DOCS_RS, "--provider", "-p", help="Provider id for bare names"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum entries to list"),
) -> None:
    """Show the entries cached for a package."""
    identity = parse_package(package, provider)
    package_docs = _run(ctx.obj, lambda docs: docs.store.get(identity))

    if package_docs is None:
        console.print(f"[yellow]{identity.key} is not indexed[/yellow]")
        raise typer.Exit(1)

    table = Table(
        title=f"{identity.key} ({len(package_docs.entries)} entries)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Path", style="green")
    table.add_column("Kind", style="yellow")
    table.add_column("URL", style="dim")
    for entry in package_docs.entries[:limit]:
        table.add_row(entry.qualified_name, entry.kind.value, entry.source_url or "")
    console.print(table)
    console.print(f"[dim]content hash {package_docs.content_hash}[/dim]")


@app.command()
def evict(
    ctx: typer.Context,
    package: Optional[str] = typer.Argument(None, help="Package to evict"),
    provider: str = typer.Option(DOCS_RS, "--provider", "-p", help="Provider id for bare names"),
    older_than: Optional[int] = typer.Option(
        None, "--older-than", help="Evict packages indexed more than N days ago"
    ),
    all_packages: bool = typer.Option(False, "--all", help="Remove every cached package"),
) -> None:
    """Evict cached packages."""
    if all_packages:
        removed = _run(ctx.obj, lambda docs: docs.store.clear())
        console.print(f"[green]Removed {removed} record(s)[/green]")
    elif older_than is not None:
        evicted = _run(ctx.obj, lambda docs: docs.store.prune(timedelta(days=older_than)))
        for identity in evicted:
            console.print(f"  - {identity.key}")
        console.print(f"[green]Evicted {len(evicted)} package(s)[/green]")
    elif package:
        identity = parse_package(package, provider)
        _run(ctx.obj, lambda docs: docs.store.delete(identity))
        console.print(f"[green]Evicted {identity.key}[/green]")
    else:
        console.print("[red]Specify a package, --older-than or --all[/red]")
        raise typer.Exit(1)


@app.command()
def providers(ctx: typer.Context) -> None:
    """List registered documentation providers."""

    async def command(docs: DocsIndex):
        return docs.registry.list_providers()

    descriptors = _run(ctx.obj, command)

    table = Table(title="Providers", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="green")
    table.add_column("Name", style="yellow")
    for descriptor in descriptors:
        table.add_row(descriptor.id, descriptor.display_name)
    console.print(table)


@app.command()
def suggest(ctx: typer.Context) -> None:
    """Suggest packages to index from the configured project."""

    async def command(docs: DocsIndex):
        return {
            provider.id: provider.suggest_packages()
            for provider in docs.registry.providers()
        }

    suggestions = _run(ctx.obj, command)

    found = False
    for provider_id in sorted(suggestions):
        for name in suggestions[provider_id]:
            console.print(f"{provider_id}/{name}")
            found = True
    if not found:
        console.print("[yellow]No suggestions[/yellow]")


if __name__ == "__main__":
    app()
