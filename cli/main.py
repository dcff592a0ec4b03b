"""
Scriptura - Main CLI Application

Command-line interface for looking up, searching and importing scripture.
"""
import asyncio
import json
from pathlib import Path
from typing import Optional, List, Tuple
from enum import Enum

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from canon.model import Canon, load_canon
from config import get_config
from core.errors import AmbiguousReference, ScriptureError
from db.loader import load_verse_file
from db.sql import SqlVerseStore
from engine.assembler import Assembler
from engine.resolver import resolve
from engine.search import SearchEngine
from engine.types import PassageView, SearchResult
from observability.logging import LogContext, LoggingConfig, get_logger, setup_logging

# Initialize app
app = typer.Typer(
    name="scriptura",
    help="Scriptura - Scripture reference resolution and search",
    add_completion=False
)

console = Console()
logger = get_logger("scriptura.cli")

DatabaseOption = typer.Option(None, "--database", "-d", help="Database URL (defaults to DATABASE_URL)")


class OutputFormat(str, Enum):
    """Output format options."""
    JSON = "json"
    TABLE = "table"


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output")
):
    """Scriptura - Scripture reference resolution and search."""
    setup_logging(
        LoggingConfig(level="DEBUG" if verbose else "WARNING", json_format=False),
        force=True,
    )


@app.command()
def books(
    testament: Optional[str] = typer.Option(None, "--testament", "-t", help="OT or NT")
):
    """List the books of the canon."""
    canon = _canon()
    wanted = testament.upper() if testament else None

    table = Table(title="Books")
    table.add_column("#", justify="right")
    table.add_column("Code", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Chapters", justify="right")
    table.add_column("Verses", justify="right")

    shown = 0
    for book in canon.books:
        if wanted and book.testament != wanted:
            continue
        table.add_row(str(book.order), book.id, book.name, str(book.chapter_count), str(book.total_verses))
        shown += 1

    console.print(table)
    console.print(f"{shown} books")


@app.command()
def lookup(
    reference: str = typer.Argument(..., help="Reference (e.g., 'John 3:16' or 'jn 3.16-18')"),
    translation: Optional[str] = typer.Option(None, "--translation", "-t", help="Translation tag"),
    json_ld: bool = typer.Option(False, "--json-ld", help="Print the JSON-LD document"),
    database: Optional[str] = DatabaseOption,
):
    """Resolve a reference and print its text."""
    canon = _canon()
    with LogContext(command="lookup", reference=reference):
        resolved = resolve(reference, canon, translations=get_config().linked_data.known_translations)
        if resolved.is_failure:
            logger.info("Reference rejected", error=resolved.exception)
            _fail(resolved.exception)

        assembler, view = asyncio.run(_assemble(canon, resolved.value, translation, database))
        logger.info("Passage assembled", translation=view.translation, verses=len(view.verses))

    if json_ld:
        typer.echo(json.dumps(assembler.to_json_ld(view), indent=2, ensure_ascii=False))
        return

    _display_passage(view, canon)


@app.command()
def search(
    query: str = typer.Argument(..., help="Reference or free text"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum results"),
    translation: Optional[str] = typer.Option(None, "--translation", "-t", help="Translation tag"),
    output: OutputFormat = typer.Option(OutputFormat.TABLE, "--output", "-o", help="Output format"),
    database: Optional[str] = DatabaseOption,
):
    """Search by reference, falling back to verse text."""
    canon = _canon()
    results = asyncio.run(_search(canon, query, limit, translation, database))

    if output == OutputFormat.JSON:
        typer.echo(json.dumps([result.to_dict(canon) for result in results], indent=2, ensure_ascii=False))
        return

    if not results:
        console.print("[yellow]No results[/yellow]")
        return

    table = Table(title=f"Results for {query!r}")
    table.add_column("Reference", style="cyan", no_wrap=True)
    table.add_column("Kind", style="yellow")
    table.add_column("Relevance", justify="right")
    table.add_column("Snippet")

    for result in results:
        table.add_row(
            result.reference.format(canon),
            result.kind,
            f"{result.relevance:g}",
            getattr(result, "snippet", ""),
        )

    console.print(table)
    console.print(f"\n{len(results)} result(s)")


@app.command("import-verses")
def import_verses(
    source: Path = typer.Argument(..., help="JSON-lines, JSON or CSV verse file"),
    translation: Optional[str] = typer.Option(None, "--translation", "-t", help="Tag for rows without one"),
    database: Optional[str] = DatabaseOption,
):
    """Import verse text into the database."""
    if not source.exists():
        console.print(f"[red]Error: Input file not found: {source}[/red]")
        raise typer.Exit(1)

    canon = _canon()
    default_translation = (translation or get_config().linked_data.default_translation).upper()
    with LogContext(command="import-verses", source=source.name, translation=default_translation):
        try:
            report = load_verse_file(source, canon, default_translation)
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

        stored = asyncio.run(_import_rows(canon, report.rows, database))
        logger.info("Verses imported", stored=stored, skipped=report.skipped)

    console.print(f"[green]Imported {stored} verses from {source.name}[/green]")
    if report.skipped:
        console.print(f"[yellow]Skipped {report.skipped} row(s)[/yellow]")
        for problem in report.problems:
            console.print(f"  - {problem}")


@app.command("init-db")
def init_db(database: Optional[str] = DatabaseOption):
    """Create tables and load the book catalog."""
    stats = asyncio.run(_init_db(database))

    table = Table(title="Database")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right", style="green")
    for name, count in stats.items():
        table.add_row(name, str(count))
    console.print(table)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Server port"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload")
):
    """Start the Scriptura API server."""
    config = get_config().api
    host = host or config.host
    port = port or config.port
    console.print(f"[bold]Starting server at {host}:{port}[/bold]")

    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=reload or config.reload,
    )


# Helper functions
def _canon() -> Canon:
    return load_canon(get_config().canon.path)


def _store(canon: Canon, database: Optional[str]) -> SqlVerseStore:
    config = get_config().database
    return SqlVerseStore(database or config.url, canon=canon, echo=config.echo)


def _fail(error: Optional[Exception]) -> None:
    """Print an engine error and exit non-zero."""
    console.print(f"[red]{getattr(error, 'message', error)}[/red]")
    if isinstance(error, AmbiguousReference):
        for label in error.labels:
            console.print(f"  - {label}")
    elif isinstance(error, ScriptureError):
        for suggestion in error.suggestions:
            console.print(f"  [dim]{suggestion}[/dim]")
    raise typer.Exit(1)


async def _assemble(
    canon: Canon,
    citation,
    translation: Optional[str],
    database: Optional[str],
) -> Tuple[Assembler, PassageView]:
    store = _store(canon, database)
    assembler = Assembler(canon, store, get_config().linked_data)
    try:
        assembled = await assembler.assemble(citation, translation)
    finally:
        await store.close()
    if assembled.is_failure:
        _fail(assembled.exception)
    return assembler, assembled.value


async def _search(
    canon: Canon,
    query: str,
    limit: Optional[int],
    translation: Optional[str],
    database: Optional[str],
) -> List[SearchResult]:
    config = get_config()
    store = _store(canon, database)
    engine = SearchEngine(canon, store, config.search, config.linked_data.known_translations)
    try:
        return await engine.search(query, limit, translation)
    finally:
        await store.close()


async def _import_rows(canon: Canon, rows: list, database: Optional[str]) -> int:
    store = _store(canon, database)
    try:
        await store.create_tables()
        return await store.batch_upsert_verses(rows)
    finally:
        await store.close()


async def _init_db(database: Optional[str]) -> dict:
    store = _store(_canon(), database)
    try:
        await store.create_tables()
        return await store.get_statistics()
    finally:
        await store.close()


def _display_passage(view: PassageView, canon: Canon):
    """Display an assembled passage, one panel per chapter."""
    for chapter in view.chapters:
        body = "\n".join(f"[bold]{number}[/bold] {escape(text)}" for number, text in chapter.verses)
        console.print(Panel(
            body,
            title=chapter.reference.format(canon),
            subtitle=chapter.translation,
            border_style="blue",
        ))


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
