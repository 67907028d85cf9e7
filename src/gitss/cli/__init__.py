"""
CLI for GITSS.

Provides command-line interface for indexing git refs and searching the index.
"""

import asyncio
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from gitss.core.config import configure_logging, load_config
from gitss.core.filters import FilterParams
from gitss.core.metadata import RefKind
from gitss.services import ServicesContainer, create_services

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="gitss",
    help="GITSS - Faceted search over git repositories",
    add_completion=False,
)

_config_option = typer.Option(None, "--config", "-c", help="Path to a YAML or JSON config file")


def get_services(
    config_path: Optional[Path] = None,
    progress_callback: Optional[Callable[[int, str], None]] = None,
) -> ServicesContainer:
    """Load configuration, apply logging settings and build services."""
    container = create_services(config_path, progress_callback=progress_callback)
    configure_logging(container.config.logging)
    return container


async def _close(services: ServicesContainer) -> None:
    await services.document_store.close()


@app.command()
def index(
    organization: str = typer.Argument(..., help="Organization name"),
    project: str = typer.Argument(..., help="Project name"),
    repository: str = typer.Argument(..., help="Repository name"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Index only this branch"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Index only this tag"),
    config: Optional[Path] = _config_option,
):
    """Index the branches and tags of a repository."""
    if branch and tag:
        console.print("[bold red]Error:[/bold red] Use either --branch or --tag, not both")
        raise typer.Exit(1)

    console.print(f"[bold blue]Indexing[/bold blue] {organization}/{project}/{repository}...")

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Initializing...", total=None)

            def update_progress(current: int, message: str) -> None:
                progress.update(task, description=f"{message} ({current} files)")

            services = get_services(config, progress_callback=update_progress)

            async def run():
                try:
                    if branch:
                        return await services.repository_indexer.index_ref(
                            organization, project, repository, RefKind.BRANCH, branch
                        )
                    if tag:
                        return await services.repository_indexer.index_ref(
                            organization, project, repository, RefKind.TAG, tag
                        )
                    return await services.repository_indexer.index_repository(
                        organization, project, repository
                    )
                finally:
                    await _close(services)

            result = asyncio.run(run())

        summary = Table.grid(padding=1)
        summary.add_column(style="bold")
        summary.add_column()
        summary.add_row("Total Files:", str(result.total_files))
        summary.add_row("Created:", str(result.created))
        summary.add_row("Merged:", str(result.merged))
        summary.add_row("Unchanged:", str(result.unchanged))
        summary.add_row("Pruned:", str(result.pruned))
        summary.add_row("Duration:", f"{result.duration_seconds:.2f}s")

        if result.failed_files:
            summary.add_row("Failed Files:", f"[red]{len(result.failed_files)}[/red]")

        console.print(
            Panel(
                summary,
                title="[bold green]Indexing Complete[/bold green]",
                border_style="green",
                expand=False,
            )
        )

        if result.failed_files:
            console.print("\n[bold red]Failed Files:[/bold red]")
            for f in result.failed_files[:5]:
                console.print(f"  - {f}")
            if len(result.failed_files) > 5:
                console.print(f"  ... and {len(result.failed_files) - 5} more")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command("delete-refs")
def delete_refs(
    organization: str = typer.Argument(..., help="Organization name"),
    project: str = typer.Argument(..., help="Project name"),
    repository: str = typer.Argument(..., help="Repository name"),
    branches: Optional[list[str]] = typer.Option(None, "--branch", "-b", help="Deleted branch (repeatable)"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Deleted tag (repeatable)"),
    config: Optional[Path] = _config_option,
):
    """Remove deleted branches and tags from the index."""
    if not branches and not tags:
        console.print("[bold red]Error:[/bold red] Name at least one --branch or --tag")
        raise typer.Exit(1)

    try:
        services = get_services(config)

        async def run():
            try:
                return await services.repository_indexer.remove_refs(
                    organization, project, repository, branches or [], tags or []
                )
            finally:
                await _close(services)

        result = asyncio.run(run())
        console.print(
            f"[green]Updated {result.updated} and deleted {result.deleted} document(s)[/green]"
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    page: int = typer.Option(1, "--page", "-i", help="Result page (1-based)"),
    ext: Optional[list[str]] = typer.Option(None, "--ext", "-x", help="Extension filter"),
    organization: Optional[list[str]] = typer.Option(None, "--org", "-o", help="Organization filter"),
    project: Optional[list[str]] = typer.Option(None, "--project", "-p", help="Project filter"),
    repository: Optional[list[str]] = typer.Option(None, "--repo", "-r", help="Repository filter"),
    branch: Optional[list[str]] = typer.Option(None, "--branch", "-b", help="Branch filter"),
    tag: Optional[list[str]] = typer.Option(None, "--tag", "-t", help="Tag filter"),
    config: Optional[Path] = _config_option,
):
    """Search the index."""
    filters = FilterParams(
        exts=ext or [],
        organizations=organization or [],
        projects=project or [],
        repositories=repository or [],
        branches=branch or [],
        tags=tag or [],
    )

    try:
        services = get_services(config)

        async def run():
            try:
                return await services.indexer_service.search_query(query, filters, page)
            finally:
                await _close(services)

        result = asyncio.run(run())

        console.print(
            f"[bold]{result.size}[/bold] hit(s) in {result.time:.3f}s "
            f"(page {result.current}{'' if result.is_last_page else f', next {result.next}'})"
        )

        for hit in result.hits:
            meta = hit.metadata
            refs = ", ".join([*meta.branches, *(f"tag:{t}" for t in meta.tags)])
            console.print(
                f"\n[cyan]{meta.organization}/{meta.project}/{meta.repository}[/cyan]"
                f"[bold]{meta.path}[/bold] [dim]({refs})[/dim]"
            )
            for preview in hit.preview:
                console.print(f"  [dim]{preview.offset:>5}[/dim]  {preview.content}")

        if result.full_refs_facet:
            tree = Table(title="Repositories", box=None, show_header=True)
            tree.add_column("Repository", style="cyan")
            tree.add_column("Hits", justify="right")
            for org in result.full_refs_facet:
                for proj in org.projects:
                    for repo in proj.repositories:
                        tree.add_row(f"{org.term}/{proj.term}/{repo.term}", str(repo.count))
            console.print(Panel(tree, border_style="blue", expand=False))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def status(config: Optional[Path] = _config_option):
    """Show index statistics and store health."""
    try:
        services = get_services(config)
        cfg = services.config

        async def run():
            try:
                return await services.indexer_service.count()
            finally:
                await _close(services)

        try:
            count = asyncio.run(run())
            console.print(f"  [green]✓[/green] Document Store: Connected ({count} documents)")
        except Exception as e:
            console.print(f"  [red]✗[/red] Document Store: Error - {e}")

        config_summary = f"""Collection: {cfg.store.collection_name}
Git Data Dir: {cfg.indexing.git_data_dir}
Batch Size: {cfg.indexing.batch_size}
Page Limit: {cfg.search.page_limit}"""

        console.print(Panel(config_summary, title="Configuration", border_style="dim", expand=False))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="HTTP host (default from GITSS_SERVER_HOST or 0.0.0.0)"),
    port: Optional[int] = typer.Option(None, "--port", help="HTTP port (default from GITSS_SERVER_PORT or 3000)"),
    config: Optional[Path] = _config_option,
):
    """Start the HTTP API server."""
    import uvicorn

    try:
        from gitss.http_server import create_app

        cfg = load_config(config)
        configure_logging(cfg.logging)
        actual_host = host if host is not None else cfg.server.host
        actual_port = port if port is not None else cfg.server.port

        app_instance = create_app(create_services(config))
        console.print(f"[bold green]Starting API server at http://{actual_host}:{actual_port}[/bold green]")
        uvicorn.run(
            app_instance,
            host=actual_host,
            port=actual_port,
            reload=False,
            log_level="debug" if cfg.server.debug else "info",
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
