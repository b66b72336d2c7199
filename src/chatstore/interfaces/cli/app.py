"""Maintenance CLI for chatstore using Rich and Typer."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from chatstore.core import config
from chatstore.storage.archive import export_folder_to_file, import_folder_from_zip
from chatstore.storage.errors import StorageError
from chatstore.storage.fs import get_storage_usage
from chatstore.storage.index import read_index, rebuild_folder_index
from chatstore.storage.root import get_root, set_root

app = typer.Typer(
    name="chatstore",
    help="chatstore - inspect and maintain a chat store",
    no_args_is_help=True,
)

console = Console()

COLLECTIONS = ("chats", "repositories", "skills", "images")

RootOption = typer.Option(
    None,
    "--root",
    "-r",
    help="Storage root (default: ~/.chatstore or $CHATSTORE_DATA_DIR)",
)


@app.callback()
def configure(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Configure logging for every command."""
    logger = config.setup_logging()
    if debug or config.DEBUG:
        logger.setLevel(logging.DEBUG)
        console.print("[dim]Debug logging enabled[/dim]")


def _use_root(root: Optional[str]) -> Path:
    if root:
        return set_root(root)
    return get_root()


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        console.print(
            f"[red]Unknown collection: {collection}[/red] "
            f"(expected one of {', '.join(COLLECTIONS)})"
        )
        raise typer.Exit(2)


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


@app.command()
def usage(
    root: Optional[str] = RootOption,
    top: int = typer.Option(10, "--top", "-n", help="Number of largest files to show"),
):
    """Show total storage usage and the largest files."""
    root_path = _use_root(root)
    result = asyncio.run(get_storage_usage())

    table = Table(title=f"Storage usage ({root_path})", show_header=True)
    table.add_column("Path", style="cyan")
    table.add_column("Size", justify="right")

    largest = sorted(result.entries, key=lambda e: e.size, reverse=True)[:top]
    for entry in largest:
        table.add_row(entry.path, _format_size(entry.size))

    console.print(table)
    console.print(
        f"[bold]{len(result.entries)} files, {_format_size(result.total_size)}[/bold]"
    )


@app.command("list")
def list_entries(
    collection: str = typer.Argument(..., help="Collection to list"),
    root: Optional[str] = RootOption,
):
    """List the index entries of a collection."""
    _check_collection(collection)
    _use_root(root)
    entries = asyncio.run(read_index(collection))

    if not entries:
        console.print(f"[dim]No entries in {collection}.[/dim]")
        return

    table = Table(title=collection.title(), show_header=True)
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Updated", style="dim")

    for entry in sorted(entries, key=lambda e: e.updated, reverse=True):
        table.add_row(entry.id, entry.title or "", entry.updated)

    console.print(table)


@app.command("rebuild-index")
def rebuild_index(
    collection: str = typer.Argument(..., help="Collection to re-index"),
    root: Optional[str] = RootOption,
):
    """Rebuild a collection's index from its folders on disk."""
    _check_collection(collection)
    _use_root(root)
    entries = asyncio.run(rebuild_folder_index(collection))
    console.print(f"[green]Rebuilt {collection} index: {len(entries)} entries[/green]")


@app.command()
def export(
    collection: str = typer.Argument(..., help="Collection to export"),
    dest: Path = typer.Argument(..., help="Zip file to write"),
    root: Optional[str] = RootOption,
):
    """Export a collection as a zip archive."""
    _check_collection(collection)
    _use_root(root)
    target = asyncio.run(export_folder_to_file(collection, dest))
    console.print(f"[green]Exported {collection} to {target}[/green]")


@app.command("import")
def import_archive(
    collection: str = typer.Argument(..., help="Collection to import into"),
    source: Path = typer.Argument(..., help="Zip file to read"),
    root: Optional[str] = RootOption,
):
    """Import a zip archive into a collection and rebuild its index."""
    _check_collection(collection)
    if not source.is_file():
        console.print(f"[red]File not found: {source}[/red]")
        raise typer.Exit(1)

    _use_root(root)
    try:
        entries = asyncio.run(import_folder_from_zip(collection, source.read_bytes()))
    except StorageError as e:
        console.print(f"[red]Import failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Imported {collection}: {len(entries)} entries[/green]")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
