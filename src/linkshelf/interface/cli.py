"""
LinkShelf CLI - Command-line interface.

Commands:
- linkshelf add "Docs" --url https://docs.python.org → Add an item
- linkshelf list → Show the item tree
- linkshelf move 5 --parent 2 → Move an item
- linkshelf rm 2 --recursive → Delete a folder and its contents
- linkshelf tag 5 "python, docs" → Replace an item's tags
- linkshelf import backup.json → Merge an exported document
- linkshelf export → Write the store to JSON
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from linkshelf.core.config import settings, setup_logging, get_logger
from linkshelf.core.errors import FolderNotEmptyError, LinkShelfError
from linkshelf.core.types import DuplicatePolicy, Item, ItemType
from linkshelf.services.importer import ImportOptions
from linkshelf.services.store import LinkStore, get_store

app = typer.Typer(
    name="linkshelf",
    help="LinkShelf - Hierarchical store of links, folders and notes",
    no_args_is_help=True,
)
console = Console()
logger = get_logger("interface.cli")


def get_store_instance() -> LinkStore:
    """Get or create the global store instance."""
    return get_store()


@contextmanager
def handle_errors():
    """Report store errors in red and exit non-zero."""
    try:
        yield
    except FolderNotEmptyError as e:
        logger.warning(str(e))
        console.print(f"[red]Error: {e}[/red]")
        for child in e.children:
            console.print(f"  • {child.name} ({child.item_type.value}, #{child.id})")
        raise typer.Exit(code=1)
    except LinkShelfError as e:
        logger.warning(str(e))
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def _label(item: Item) -> str:
    icon = "📁" if item.item_type is ItemType.FOLDER else "🔗"
    text = f"{icon} [cyan]{item.name}[/cyan] [dim]#{item.id}[/dim]"
    if item.url:
        text += f" [dim]{item.url}[/dim]"
    return text


def _items_table(title: str, items: list[Item]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("URL / Command", style="white")
    table.add_column("Opened", justify="right")

    for item in items:
        table.add_row(
            str(item.id),
            item.name,
            item.item_type.value,
            item.url or item.command or "-",
            str(item.access_count),
        )
    return table


@app.command()
def init():
    """Initialize the data directory and database."""
    setup_logging()

    console.print("[bold]Initializing LinkShelf...[/bold]\n")

    console.print("Creating data directories...")
    settings.ensure_directories()
    console.print(f"  ✓ Data directory: {settings.data_dir}")

    store = get_store_instance()
    console.print(f"  ✓ Database: {store.db.db_path}")

    console.print("\n[green]✓ Initialization complete![/green]")


@app.command()
def add(
    name: str = typer.Argument(..., help="Item name"),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="URL or path"),
    item_type: ItemType = typer.Option(
        ItemType.WEB_URL, "--type", "-t", case_sensitive=False, help="Item type"
    ),
    parent: Optional[int] = typer.Option(None, "--parent", "-p", help="Parent item id"),
    position: int = typer.Option(0, "--position", help="1-based position (0 = append)"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    notes: Optional[str] = typer.Option(None, "--notes"),
    command: Optional[str] = typer.Option(None, "--command", "-c", help="Terminal command"),
    terminal: Optional[str] = typer.Option(None, "--terminal", help="Terminal type"),
    tags: Optional[str] = typer.Option(None, "--tags", help="Comma-separated tags"),
):
    """Add a new item."""
    setup_logging()

    with handle_errors():
        store = get_store_instance()
        item = store.create_item(
            Item(
                name=name,
                item_type=item_type,
                url=url,
                command=command,
                terminal_type=terminal,
                description=description,
                notes=notes,
                parent_id=parent,
                sort_order=position,
            ),
            tags=tags,
        )

    console.print(f"[green]✓ Added {item.item_type.value} '{item.name}' (#{item.id})[/green]")


@app.command("list")
def list_items(
    root: Optional[int] = typer.Argument(None, help="Show only this subtree"),
):
    """Show the item tree."""
    setup_logging()

    with handle_errors():
        store = get_store_instance()
        if root is not None:
            top = store.get_item(root)
            if top is None:
                console.print(f"[red]Error: Item {root} not found[/red]")
                raise typer.Exit(code=1)
            tree = Tree(_label(top))
            start = [(tree, top.id)]
        else:
            tree = Tree("[bold]LinkShelf[/bold]")
            start = [(tree, None)]

        stack = start
        while stack:
            branch, parent_id = stack.pop()
            for child in store.get_children(parent_id):
                node = branch.add(_label(child))
                stack.append((node, child.id))

    if root is None and not store.get_root_items():
        console.print("[dim]No items yet[/dim]")
        return
    console.print(tree)


@app.command()
def show(
    item_id: int = typer.Argument(..., help="Item id"),
):
    """Show one item in detail."""
    setup_logging()

    with handle_errors():
        store = get_store_instance()
        item = store.get_item(item_id)
        if item is None:
            console.print(f"[red]Error: Item {item_id} not found[/red]")
            raise typer.Exit(code=1)
        path = " / ".join(node.name for node in store.get_path(item_id))
        tags = store.get_tags_for_item(item_id)

    lines = [
        f"[bold]Type:[/bold] {item.item_type.value}",
        f"[bold]Path:[/bold] {path}",
    ]
    if item.url:
        lines.append(f"[bold]URL:[/bold] {item.url}")
    if item.command:
        lines.append(f"[bold]Command:[/bold] {item.command} [dim]({item.terminal_type})[/dim]")
    if item.description:
        lines.append(f"[bold]Description:[/bold] {item.description}")
    if tags:
        lines.append("[bold]Tags:[/bold] " + ", ".join(
            f"[{tag.color}]{tag.name}[/]" for tag in tags
        ))
    lines.append(f"[bold]Opened:[/bold] {item.access_count} time(s)")
    if item.last_accessed_at:
        lines.append(f"[bold]Last opened:[/bold] {item.last_accessed_at:%Y-%m-%d %H:%M}")
    if item.notes:
        lines.append(f"\n{item.notes}")

    console.print(Panel("\n".join(lines), title=f"{item.name} (#{item.id})"))


@app.command()
def move(
    item_id: int = typer.Argument(..., help="Item to move"),
    parent: Optional[int] = typer.Option(None, "--parent", "-p", help="New parent (omit for root)"),
    position: Optional[int] = typer.Option(None, "--position", help="1-based position (omit to append)"),
):
    """Move an item under another parent or to the root."""
    setup_logging()

    with handle_errors():
        item = get_store_instance().move_item(item_id, parent, position)

    where = "root" if item.parent_id is None else f"#{item.parent_id}"
    console.print(f"[green]✓ Moved '{item.name}' to {where} at position {item.sort_order}[/green]")


@app.command()
def rm(
    item_id: int = typer.Argument(..., help="Item to delete"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Delete children too"),
):
    """Delete an item."""
    setup_logging()

    with handle_errors():
        store = get_store_instance()
        if recursive:
            deleted = store.delete_item_recursive(item_id)
            console.print(f"[green]✓ Deleted {len(deleted)} item(s)[/green]")
            for summary in deleted[1:]:
                console.print(f"  • {summary.name} ({summary.item_type.value})")
        elif store.delete_item(item_id):
            console.print(f"[green]✓ Deleted item {item_id}[/green]")
        else:
            console.print(f"[yellow]Item {item_id} not found[/yellow]")


@app.command()
def tag(
    item_id: int = typer.Argument(..., help="Item to tag"),
    labels: str = typer.Argument("", help="Comma-separated tags (empty clears)"),
):
    """Replace an item's tags."""
    setup_logging()

    with handle_errors():
        result = get_store_instance().set_tags_for_item(item_id, labels)

    if not result.changed:
        console.print("[dim]Tags unchanged[/dim]")
        return
    if result.added:
        console.print(f"[green]+ {', '.join(result.added)}[/green]")
    if result.removed:
        console.print(f"[red]- {', '.join(result.removed)}[/red]")
    if result.created:
        console.print(f"[dim]New tags: {', '.join(result.created)}[/dim]")


@app.command()
def tags(
    delete: Optional[int] = typer.Option(None, "--delete", help="Delete an unused tag"),
):
    """List tags with their usage."""
    setup_logging()

    with handle_errors():
        store = get_store_instance()
        if delete is not None:
            if store.delete_tag(delete):
                console.print(f"[green]✓ Deleted tag {delete}[/green]")
            else:
                console.print(f"[yellow]Tag {delete} not found[/yellow]")
            return

        tag_list = store.get_all_tags()
        if not tag_list:
            console.print("[dim]No tags[/dim]")
            return

        table = Table(title="Tags")
        table.add_column("ID", style="dim", justify="right")
        table.add_column("Name")
        table.add_column("Color", style="dim")
        table.add_column("Items", justify="right")
        for entry in tag_list:
            table.add_row(
                str(entry.id),
                f"[{entry.color}]{entry.name}[/]",
                entry.color,
                str(store.get_tag_usage(entry.id)),
            )

    console.print(table)


@app.command()
def search(
    term: str = typer.Argument(..., help="Text to look for"),
):
    """Search names, urls, descriptions, notes and tags."""
    setup_logging()

    results = get_store_instance().search_items(term)
    if results:
        console.print(_items_table(f"Results for '{term}'", results))
    else:
        console.print("[dim]No matches[/dim]")


@app.command()
def top(
    limit: int = typer.Option(settings.recent_limit, "--limit", "-n"),
):
    """Show the most opened items."""
    setup_logging()

    results = get_store_instance().get_most_accessed(limit)
    if results:
        console.print(_items_table("Most Opened", results))
    else:
        console.print("[dim]Nothing opened yet[/dim]")


@app.command()
def recent(
    limit: int = typer.Option(settings.recent_limit, "--limit", "-n"),
):
    """Show recently opened items."""
    setup_logging()

    results = get_store_instance().get_recently_accessed(limit)
    if results:
        console.print(_items_table("Recently Opened", results))
    else:
        console.print("[dim]Nothing opened yet[/dim]")


@app.command("open")
def open_item(
    item_id: int = typer.Argument(..., help="Item to open"),
):
    """Record that an item was opened and print its target."""
    setup_logging()

    with handle_errors():
        item = get_store_instance().record_access(item_id)

    console.print(item.url or item.command or item.name)


@app.command("import")
def import_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export file to merge"),
    container: bool = typer.Option(True, "--container/--no-container", help="Wrap in a new folder"),
    policy: str = typer.Option("skip", "--policy", help="skip, rename or update_existing"),
    match_names: bool = typer.Option(False, "--match-names", help="Apply the policy to item names too"),
):
    """Merge an exported document into the store."""
    setup_logging()

    try:
        duplicate_policy = DuplicatePolicy.parse(policy)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    options = ImportOptions(
        create_container=container,
        duplicate_policy=duplicate_policy,
        match_item_names=match_names,
        source_name=path.name,
    )

    with handle_errors():
        with console.status("Importing..."):
            summary = get_store_instance().import_document(path.read_bytes(), options)

    console.print(Panel(
        f"[green]✓ Imported {summary.items_created} item(s)[/green]\n\n"
        f"Skipped: {summary.items_skipped}\n"
        f"Updated: {summary.items_updated}\n"
        f"Renamed: {summary.items_renamed}\n"
        f"Tags created: {summary.tags_created}",
        title="Import",
    ))
    if summary.orphaned:
        console.print(
            f"[yellow]⚠ {len(summary.orphaned)} item(s) referenced a missing parent: "
            f"{', '.join(summary.orphaned)}[/yellow]"
        )


@app.command()
def export(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File to write ('-' for stdout)"),
):
    """Export the whole store as JSON."""
    setup_logging()

    data = get_store_instance().export_document()

    if output is not None and str(output) == "-":
        typer.echo(data.decode("utf-8"))
        return

    if output is None:
        settings.ensure_directories()
        output = settings.exports_dir / f"linkshelf-export-{datetime.now():%Y%m%d-%H%M%S}.json"

    output.write_bytes(data)
    console.print(f"[green]✓ Exported to {output}[/green]")


@app.command()
def check():
    """Verify tree structure and sibling ordering."""
    setup_logging()

    problems = get_store_instance().check_invariants()
    if not problems:
        console.print("[green]✓ No problems found[/green]")
        return

    for problem in problems:
        console.print(f"[red]✗ {problem}[/red]")
    raise typer.Exit(code=1)


@app.command()
def status():
    """Show system status."""
    setup_logging()

    console.print("[bold]LinkShelf Status[/bold]\n")

    console.print(f"Data directory: {settings.data_dir}")
    console.print(f"  Exists: {'✓' if settings.data_dir.exists() else '✗'}")

    store = get_store_instance()
    console.print(f"Database: {store.db.db_path}")

    counts = store.stats()
    console.print("\nCounts:")
    for name, count in counts.items():
        console.print(f"  {name}: {count}")


if __name__ == "__main__":
    app()
