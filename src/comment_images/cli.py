"""
CLI for comment-images.

Commands:
- scan: Resolve the image directives in a source file and report them
- info: Show configuration and supported comment dialects
"""

import asyncio
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import settings
from .directives import DIALECTS, get_dialect
from .logging import setup_logging

app = typer.Typer(
    name="comment-images",
    help="Resolve image directives embedded in source code comments",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log per-line resolution decisions"
    ),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Also write logs to this file", dir_okay=False
    ),
):
    """Comment Images - inline images from comment directives."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(
        level=log_level,
        json_output=settings.log_json,
        log_file=str(log_file) if log_file else None,
    )
    logger.debug("CLI initialized: level={}, download dir={}", log_level, settings.download_path)


@app.command()
def scan(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Source file to scan"),
    content_type: str = typer.Option(
        "",
        "--content-type",
        "-t",
        help="Content type or language (default: inferred from the file suffix)",
    ),
):
    """Resolve every image directive in a file, downloading remote images."""
    from .editing import CommentImageOrchestrator
    from .rendering import ConsoleRenderer

    content_type = content_type or path.suffix
    if get_dialect(content_type) is None:
        logger.error("Unsupported content type: {}", content_type)
        console.print(f"[red]Error: unsupported content type '{content_type}'[/]")
        raise typer.Exit(2)

    if not settings.enabled:
        console.print("[yellow]Comment images are disabled (COMMENT_IMAGES_ENABLED=false)[/]")
        return

    lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    logger.info("Scanning {} ({} lines, content type {})", path, len(lines), content_type)
    renderer = ConsoleRenderer(console)

    async def run_scan():
        orchestrator = CommentImageOrchestrator(
            renderer,
            lines.__getitem__,
            content_type,
            settings=settings,
            document_path=path.resolve(),
        )
        try:
            orchestrator.notify_lines_changed(range(len(lines)))
            await orchestrator.drain()
        finally:
            await orchestrator.aclose()

    asyncio.run(run_scan())

    if not renderer.outcomes:
        console.print("[yellow]No image directives found[/]")
        return

    renderer.print_summary()
    if renderer.error_count:
        logger.warning("{} directives could not be resolved", renderer.error_count)
        raise typer.Exit(1)


@app.command()
def info():
    """Show configuration and supported comment dialects."""
    logger.debug("Displaying configuration")
    console.print("[bold blue]Comment Images Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Enabled", str(settings.enabled))
    table.add_row("Debounce", f"{settings.debounce_ms} ms")
    table.add_row("Download Directory", str(settings.download_path))
    table.add_row("Fetch Timeout", f"{settings.fetch_timeout:g} s")
    table.add_row("Fetch Attempts", str(settings.fetch_attempts))
    table.add_row("Log Level", settings.log_level)

    console.print(table)

    dialects = Table(title="Comment Dialects")
    dialects.add_column("Dialect", style="cyan")
    dialects.add_column("Comment Openers", style="green")
    dialects.add_column("Content Types")
    for dialect in DIALECTS.values():
        dialects.add_row(
            dialect.name,
            "  ".join(dialect.comment_openers),
            ", ".join(dialect.content_types),
        )

    console.print(dialects)


if __name__ == "__main__":
    app()
