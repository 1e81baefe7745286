"""Output formatting for CLI and programmatic use."""

import json
from decimal import Decimal
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .data_store import JSONEncoder


def format_money(value: Any) -> str:
    """Render an amount as dollars with two decimals."""
    return f"${Decimal(str(value or 0)):.2f}"


def format_qty(value: Any) -> str:
    """Render a quantity without trailing zeros."""
    return format(Decimal(str(value or 0)).normalize(), "f")


def format_date(value: Any) -> str:
    """Render a purchase date as YYYY-MM-DD."""
    if value is None:
        return "-"
    if hasattr(value, "date"):
        return value.date().isoformat()
    return str(value)[:10]


def format_change(change: Any) -> str:
    """Render a unit price change with colour and sign."""
    if change is None:
        return "[dim]-[/dim]"
    amount = Decimal(str(change))
    if amount > 0:
        return f"[red]+{format_money(amount)}[/red]"
    if amount < 0:
        return f"[green]-{format_money(-amount)}[/green]"
    return format_money(amount)


class OutputFormatter:
    """Formats output for both Rich terminal and JSON modes."""

    def __init__(self, json_mode: bool = False):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode
        self.console = Console()

    def output(self, data: dict[str, Any], message: str = "") -> None:
        """Output data in appropriate format.

        Args:
            data: Data to output
            message: Optional message for Rich mode
        """
        if self.json_mode:
            self._output_json(data)
        else:
            self._output_rich(data, message)

    def _output_json(self, data: dict[str, Any]) -> None:
        """Output as JSON to stdout."""
        print(json.dumps(data, cls=JSONEncoder, indent=2))

    def _output_rich(self, data: dict[str, Any], message: str) -> None:
        """Output with Rich formatting."""
        if message:
            self.console.print(f"[green]✓[/green] {message}")

        payload = data.get("data") or {}
        if "items" in payload:
            self._render_items(payload)
        elif "item" in payload and isinstance(payload["item"], dict):
            self._render_item(payload["item"])
        elif "import" in payload:
            self._render_import(payload["import"])
        elif "export" in payload:
            self._render_export(payload["export"])
        elif "sync" in payload:
            self._render_sync(payload["sync"])
        elif "connection" in payload:
            self._render_connection(payload["connection"])
        elif "remote_stats" in payload:
            self._render_stats(payload["remote_stats"])

    def _render_items(self, payload: dict) -> None:
        """Render the item overview table."""
        items = payload["items"]

        if not items:
            self.console.print("[dim]No items found[/dim]")
            return

        table = Table(title=payload.get("title", "Inventory"), show_header=True, header_style="bold cyan")
        table.add_column("Item", style="cyan", no_wrap=False)
        table.add_column("Last Purchase", style="green")
        table.add_column("Last Price", justify="right")
        table.add_column("Change", justify="right")
        table.add_column("Purchases", style="magenta", justify="right")
        table.add_column("Total Spent", style="yellow", justify="right")
        table.add_column("ID", style="dim")

        for item in items:
            stats = item.get("stats") or {}
            last = stats.get("last")
            table.add_row(
                item["name"],
                format_date(last["date"]) if last else "-",
                format_money(last["unit_price"]) if last else "-",
                format_change(stats.get("price_change")),
                str(stats.get("purchase_count", len(item.get("purchases", [])))),
                format_money(stats.get("total_spent")),
                str(item["id"])[:8],
            )

        self.console.print(table)

        summary = payload.get("summary")
        if summary:
            self.console.print(
                f"\nItems: {summary['item_count']}  "
                f"Purchases: {summary['purchase_count']}  "
                f"Total spent: {format_money(summary['total_spent'])}"
            )
        else:
            self.console.print(f"\nTotal items: {len(items)}")

    def _render_item(self, item: dict) -> None:
        """Render a single item with its purchase history."""
        stats = item.get("stats") or {}

        panel_content = f"""[bold]{item["name"]}[/bold]

ID: {item["id"]}
Purchases: {stats.get("purchase_count", len(item.get("purchases", [])))}
Total spent: {format_money(stats.get("total_spent"))}
Average price: {format_money(stats.get("average_price"))}
Price change: {format_change(stats.get("price_change"))}"""

        panel = Panel(panel_content, title="Item Details", border_style="green")
        self.console.print(panel)

        purchases = item.get("purchases") or []
        if not purchases:
            self.console.print("[dim]No purchases recorded[/dim]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Date")
        table.add_column("Qty", justify="right")
        table.add_column("Unit Price", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Supplier")
        table.add_column("ID", style="dim")

        for purchase in purchases:
            qty = Decimal(str(purchase.get("qty") or 0))
            price = Decimal(str(purchase.get("unit_price") or 0))
            table.add_row(
                format_date(purchase.get("date")),
                format_qty(qty),
                format_money(price),
                format_money(qty * price),
                purchase.get("supplier") or "-",
                str(purchase["id"])[:8],
            )

        self.console.print(table)

    def _render_import(self, result: dict) -> None:
        """Render import counts."""
        self.console.print(f"Format: {result['format'].upper()}")
        self.console.print(f"Rows imported: {result['rows']}")
        self.console.print(f"Items affected: {result['items']}")

    def _render_export(self, result: dict) -> None:
        """Render export destination."""
        self.console.print(f"Wrote {result['path']}")
        self.console.print(
            f"[dim]{result['items']} items, {result['purchases']} purchases[/dim]"
        )

    def _render_sync(self, report: dict) -> None:
        """Render sync report."""
        self.console.print("\n[bold]Sync Summary[/bold]")
        self.console.print(f"Synced: [green]{report['synced']}[/green]")
        self.console.print(f"Already present: {report['skipped']}")
        if report["failed"]:
            self.console.print(f"Failed: [red]{report['failed']}[/red]")
        for error in report.get("errors", []):
            self.console.print(f"  [red]•[/red] {error}")

    def _render_connection(self, connection: dict) -> None:
        """Render remote connection status."""
        if connection.get("connected"):
            self.console.print(f"Database: {connection.get('database', '')}")
        else:
            self.console.print("[red]Not connected[/red]")

    def _render_stats(self, result: dict) -> None:
        """Render derived statistics for a remote item."""
        stats = result["stats"]
        last = stats.get("last")
        previous = stats.get("previous")

        panel_content = f"""[bold]{result["name"]}[/bold]

Purchases: {stats["purchase_count"]}
Last price: {format_money(last["unit_price"]) if last else "-"}
Previous price: {format_money(previous["unit_price"]) if previous else "-"}
Price change: {format_change(stats.get("price_change"))}
Total spent: {format_money(stats["total_spent"])}
Average price: {format_money(stats["average_price"])}"""

        self.console.print(Panel(panel_content, title="Item Statistics", border_style="cyan"))

    def error(self, message: str, error_code: str | None = None) -> None:
        """Output error message.

        Args:
            message: Error message
            error_code: Optional error code
        """
        if self.json_mode:
            output = {"success": False, "error": message}
            if error_code:
                output["error_code"] = error_code
            print(json.dumps(output))
        else:
            self.console.print(f"[red]✗ Error:[/red] {message}")

    def success(self, message: str, data: dict | None = None) -> None:
        """Output success message.

        Args:
            message: Success message
            data: Optional data to include
        """
        if self.json_mode:
            output: dict[str, Any] = {"success": True, "message": message}
            if data:
                output["data"] = data
            print(json.dumps(output, cls=JSONEncoder))
        else:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Output warning message.

        Args:
            message: Warning message
        """
        if self.json_mode:
            print(json.dumps({"warning": message}))
        else:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
