"""CLI entry point for Purchase Tracker."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from .codec import FileFormat, ImportFormatError
from .config import ConfigManager
from .data_store import DocumentState, DocumentStore, StorageError
from .inventory_manager import (
    DuplicateItemError,
    InvalidEntryError,
    InventoryManager,
    ItemNotFoundError,
    PurchaseNotFoundError,
    item_payload,
)
from .merge import InvalidItemNameError
from .output_formatter import OutputFormatter
from .sqlite_store import RemoteStore

app = typer.Typer(
    name="purchases",
    help="Track purchases and price changes of inventory items",
    no_args_is_help=True,
)

# Global state for formatter and config (set by callback)
formatter: OutputFormatter = OutputFormatter()
config: ConfigManager | None = None
manager: InventoryManager | None = None
remote_store: RemoteStore | None = None
database_override: Path | None = None


def get_config() -> ConfigManager:
    """Get or create ConfigManager instance."""
    global config
    if config is None:
        config = ConfigManager()
    return config


def get_manager() -> InventoryManager:
    """Get or create InventoryManager instance using config values."""
    global manager
    if manager is None:
        cfg = get_config()
        store = DocumentStore(cfg.data.storage_dir, storage_key=cfg.data.storage_key)
        manager = InventoryManager(DocumentState(store))
    return manager


def get_remote_store() -> RemoteStore:
    """Get or create RemoteStore instance using config values."""
    global remote_store
    if remote_store is None:
        cfg = get_config()
        remote_store = RemoteStore(
            database_override or cfg.remote.database_path, timeout=cfg.remote.timeout
        )
    return remote_store


def setup_logging(level: str) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def error_code(exc: Exception) -> str | None:
    """Map an exception to the CLI error code reported for it."""
    if isinstance(exc, (InvalidEntryError, InvalidItemNameError)):
        return "VALIDATION_ERROR"
    if isinstance(exc, (ItemNotFoundError, PurchaseNotFoundError)):
        return "ITEM_NOT_FOUND"
    if isinstance(exc, DuplicateItemError):
        return "DUPLICATE_ITEM"
    if isinstance(exc, ImportFormatError):
        return "IMPORT_FORMAT_ERROR"
    if isinstance(exc, (StorageError, OSError)):
        return "STORAGE_ERROR"
    return None


def fail(exc: Exception) -> None:
    """Report an exception and exit with status 1."""
    formatter.error(str(exc), error_code=error_code(exc))
    raise typer.Exit(code=1)


@app.callback()
def main(
    json_output: Annotated[
        bool, typer.Option("--json", help="Output as JSON for programmatic use")
    ] = False,
    data_dir: Annotated[Path | None, typer.Option("--data-dir", help="Data directory path")] = None,
    database: Annotated[
        Path | None, typer.Option("--database", help="Remote SQLite database path")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Purchase Tracker CLI - Record purchases and watch prices change."""
    global formatter, config, manager, remote_store, database_override

    formatter = OutputFormatter(json_mode=json_output)

    # Load config early
    config = ConfigManager()
    setup_logging("DEBUG" if verbose else config.logging.level)

    # CLI options override config, which overrides default
    effective_data_dir = data_dir if data_dir else config.data.storage_dir
    store = DocumentStore(effective_data_dir, storage_key=config.data.storage_key)
    manager = InventoryManager(DocumentState(store))

    if database:
        database_override = database
    elif data_dir:
        database_override = data_dir / "inventory.db"
    else:
        database_override = None
    remote_store = None


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Item name")],
    quantity: Annotated[str | None, typer.Option("--quantity", "-q", help="Quantity bought")] = None,
    price: Annotated[str | None, typer.Option("--price", "-p", help="Unit price")] = None,
    supplier: Annotated[str | None, typer.Option("--supplier", "-s", help="Supplier")] = None,
    purchase_date: Annotated[
        str | None, typer.Option("--date", "-d", help="Purchase date (YYYY-MM-DD)")
    ] = None,
) -> None:
    """Record a purchase, creating the item if it is new."""
    try:
        defaults = get_config().defaults
        result = get_manager().add_purchase(
            name,
            qty=quantity if quantity is not None else defaults.quantity,
            unit_price=price if price is not None else defaults.unit_price,
            purchase_date=purchase_date,
            supplier=supplier or defaults.supplier,
        )
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command()
def buy(
    item_id: Annotated[str, typer.Argument(help="Item ID to add a purchase to")],
    quantity: Annotated[str | None, typer.Option("--quantity", "-q", help="Quantity bought")] = None,
    price: Annotated[str | None, typer.Option("--price", "-p", help="Unit price")] = None,
    supplier: Annotated[str | None, typer.Option("--supplier", "-s", help="Supplier")] = None,
    purchase_date: Annotated[
        str | None, typer.Option("--date", "-d", help="Purchase date (YYYY-MM-DD)")
    ] = None,
) -> None:
    """Add a purchase to an existing item."""
    try:
        defaults = get_config().defaults
        result = get_manager().add_purchase_to_item(
            item_id,
            qty=quantity if quantity is not None else defaults.quantity,
            unit_price=price if price is not None else defaults.unit_price,
            purchase_date=purchase_date,
            supplier=supplier or defaults.supplier,
        )
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command(name="list")
def list_items(
    search: Annotated[str | None, typer.Option("--search", help="Filter by name")] = None,
    sort: Annotated[str, typer.Option("--sort", help="Sort by 'name' or 'date'")] = "name",
    desc: Annotated[bool, typer.Option("--desc", help="Sort descending")] = False,
) -> None:
    """List items with their latest price and totals."""
    try:
        result = get_manager().list_items(search=search, sort_by=sort, descending=desc)
        formatter.output(result)
    except Exception as e:
        fail(e)


@app.command()
def show(
    item_id: Annotated[str, typer.Argument(help="Item ID to show")],
) -> None:
    """Show an item with its purchase history."""
    try:
        result = get_manager().show_item(item_id)
        formatter.output(result)
    except Exception as e:
        fail(e)


@app.command()
def rename(
    item_id: Annotated[str, typer.Argument(help="Item ID to rename")],
    new_name: Annotated[str, typer.Argument(help="New item name")],
) -> None:
    """Rename an item."""
    try:
        result = get_manager().rename_item(item_id, new_name)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command()
def delete(
    item_id: Annotated[str, typer.Argument(help="Item ID to delete")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete an item and all of its purchases."""
    if not yes:
        typer.confirm("Delete this item and all its purchases?", abort=True)
    try:
        result = get_manager().delete_item(item_id)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command(name="delete-purchase")
def delete_purchase(
    item_id: Annotated[str, typer.Argument(help="Item ID")],
    purchase_id: Annotated[str, typer.Argument(help="Purchase ID to delete")],
) -> None:
    """Delete a single purchase."""
    try:
        result = get_manager().delete_purchase(item_id, purchase_id)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command()
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Remove all items and purchases."""
    if not yes:
        typer.confirm("Are you sure you want to clear all data?", abort=True)
    try:
        result = get_manager().clear_all()
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command(name="export")
def export_data(
    fmt: Annotated[FileFormat, typer.Argument(help="Export format")],
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output file")] = None,
) -> None:
    """Export all purchases as CSV or the full document as JSON."""
    try:
        result = get_manager().export(fmt, output)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command(name="import")
def import_data(
    path: Annotated[
        Path,
        typer.Argument(help="CSV or JSON file to import", exists=True, dir_okay=False),
    ],
) -> None:
    """Import a file. CSV rows are merged, JSON replaces all data."""
    try:
        result = get_manager().import_file(path)
        formatter.output(result, result["message"])
    except Exception as e:
        fail(e)


@app.command()
def sync() -> None:
    """Copy every local purchase to the remote database."""
    try:
        result = get_manager().sync(get_remote_store())
    except Exception as e:
        fail(e)
        return

    report = result["data"]["sync"]
    if result["success"]:
        formatter.output(result, result["message"])
    elif not report["errors"]:
        formatter.warning(result["message"])
    else:
        formatter.error(result["message"], error_code="REMOTE_ERROR")
        raise typer.Exit(code=1)


# =============================================================================
# Remote Store Commands
# =============================================================================

remote_app = typer.Typer(help="Remote database commands")
app.add_typer(remote_app, name="remote")


def _remote_result(result) -> None:
    """Exit with REMOTE_ERROR when a remote operation failed."""
    if not result.success:
        formatter.error(result.message, error_code="REMOTE_ERROR")
        raise typer.Exit(code=1)


def _remote_not_found(item_id: str) -> None:
    formatter.error(f"Item with ID '{item_id}' not found", error_code="ITEM_NOT_FOUND")
    raise typer.Exit(code=1)


@remote_app.command(name="check")
def remote_check() -> None:
    """Check that the remote database is reachable."""
    store = get_remote_store()
    result = store.check_connection()
    _remote_result(result)
    output = {
        "success": True,
        "message": result.message,
        "data": {"connection": {**result.data, "database": str(store.db_path)}},
    }
    formatter.output(output, output["message"])


@remote_app.command(name="list")
def remote_list() -> None:
    """List items stored in the remote database."""
    result = get_remote_store().get_all_items()
    _remote_result(result)
    output = {
        "success": True,
        "message": result.message,
        "data": {"items": [item_payload(item) for item in result.data]},
    }
    formatter.output(output)


@remote_app.command(name="search")
def remote_search(
    term: Annotated[str, typer.Argument(help="Text to look for in item names")],
) -> None:
    """Search remote items by name."""
    result = get_remote_store().search_items(term)
    _remote_result(result)
    output = {
        "success": True,
        "message": result.message,
        "data": {"items": [item_payload(item) for item in result.data]},
    }
    formatter.output(output, output["message"])


@remote_app.command(name="show")
def remote_show(
    item_id: Annotated[str, typer.Argument(help="Remote item ID")],
) -> None:
    """Show a remote item with its purchases."""
    result = get_remote_store().get_item(item_id)
    _remote_result(result)
    if result.data is None:
        _remote_not_found(item_id)
    formatter.output({"success": True, "data": {"item": item_payload(result.data)}})


@remote_app.command(name="stats")
def remote_stats(
    item_id: Annotated[str, typer.Argument(help="Remote item ID")],
) -> None:
    """Show price statistics for a remote item."""
    store = get_remote_store()
    found = store.get_item(item_id)
    _remote_result(found)
    if found.data is None:
        _remote_not_found(item_id)

    result = store.get_item_stats(item_id)
    _remote_result(result)
    output = {
        "success": True,
        "message": result.message,
        "data": {"remote_stats": {"name": found.data.name, "stats": result.data.model_dump()}},
    }
    formatter.output(output)


@remote_app.command(name="delete")
def remote_delete(
    item_id: Annotated[str, typer.Argument(help="Remote item ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a remote item and its purchases."""
    if not yes:
        typer.confirm("Delete this remote item and all its purchases?", abort=True)
    result = get_remote_store().delete_item(item_id)
    _remote_result(result)
    if result.data is None:
        _remote_not_found(item_id)
    output = {
        "success": True,
        "message": result.message,
        "data": {"removed_item": result.data.model_dump()},
    }
    formatter.output(output, output["message"])


@app.command()
def tui() -> None:
    """Open the interactive terminal interface."""
    from .tui import PurchaseTrackerTUI

    PurchaseTrackerTUI(get_manager()).run()


if __name__ == "__main__":
    app()
