"""Terminal UI for Purchase Tracker."""

from __future__ import annotations

from datetime import date
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Input, Label, Static

from .inventory_manager import (
    InvalidEntryError,
    InventoryManager,
    ItemNotFoundError,
    PurchaseNotFoundError,
)
from .output_formatter import format_date, format_money, format_qty


def _plain_change(change: Any) -> str:
    if change is None:
        return "-"
    if change > 0:
        return f"+{format_money(change)}"
    if change < 0:
        return f"-{format_money(-change)}"
    return format_money(change)


class PurchaseFormScreen(ModalScreen[dict[str, Any] | None]):
    """Modal dialog to record a purchase."""

    DEFAULT_CSS = """
    PurchaseFormScreen {
        align: center middle;
    }

    #purchase-form-dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        border: round $primary;
        background: $surface;
    }

    #purchase-form-actions {
        align-horizontal: right;
        height: auto;
        margin-top: 1;
    }

    #purchase-form-error {
        color: $error;
        height: auto;
    }

    .field-label {
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, defaults: dict[str, Any] | None = None):
        super().__init__()
        self.defaults = defaults or {}

    def compose(self) -> ComposeResult:
        with Vertical(id="purchase-form-dialog"):
            yield Label("Add Purchase", classes="field-label")
            yield Label("Item Name", classes="field-label")
            yield Input(value=self._value("name"), placeholder="Widget", id="name")
            yield Label("Date", classes="field-label")
            yield Input(value=self._value("date", date.today().isoformat()), id="date")
            yield Label("Quantity", classes="field-label")
            yield Input(value=self._value("qty", "1"), id="qty")
            yield Label("Unit Price", classes="field-label")
            yield Input(value=self._value("unit_price", "0"), id="unit_price")
            yield Label("Supplier (optional)", classes="field-label")
            yield Input(value=self._value("supplier"), placeholder="Acme", id="supplier")
            yield Static("", id="purchase-form-error")
            with Vertical(id="purchase-form-actions"):
                yield Button("Add", variant="primary", id="submit")
                yield Button("Cancel", id="cancel")

    def _value(self, key: str, fallback: str = "") -> str:
        value = self.defaults.get(key)
        if value is None:
            return fallback
        return str(value)

    def action_cancel(self) -> None:
        self.dismiss(None)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
            return

        if event.button.id != "submit":
            return

        name = self.query_one("#name", Input).value.strip()
        if not name:
            self.query_one("#purchase-form-error", Static).update("Item name is required")
            self.app.bell()
            return

        self.dismiss(
            {
                "name": name,
                "date": self.query_one("#date", Input).value.strip(),
                "qty": self.query_one("#qty", Input).value.strip() or "0",
                "unit_price": self.query_one("#unit_price", Input).value.strip() or "0",
                "supplier": self.query_one("#supplier", Input).value.strip() or None,
            }
        )


class PurchaseTrackerTUI(App[None]):
    """Interactive terminal UI for items and their purchases."""

    TITLE = "Purchase Tracker"
    SUB_TITLE = "Terminal Interface"

    DEFAULT_CSS = """
    #status {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $boost;
        color: $text;
    }

    DataTable {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("a", "add_purchase", "Add Purchase"),
        Binding("x", "delete_purchase", "Delete Purchase"),
        Binding("d", "delete_item", "Delete Item"),
    ]

    def __init__(self, manager: InventoryManager):
        super().__init__()
        self.manager = manager
        self._item_ids: list[str] = []
        self._purchase_ids: list[str] = []
        self._items: dict[str, dict[str, Any]] = {}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield DataTable(id="items-table")
        yield DataTable(id="purchases-table")
        yield Static(
            "a:add purchase  x:delete purchase  d:delete item  r:refresh  q:quit",
            id="status",
        )
        yield Footer()

    def on_mount(self) -> None:
        items_table = self.query_one("#items-table", DataTable)
        items_table.cursor_type = "row"
        items_table.add_columns(
            "Item", "Last Purchase", "Last Price", "Change", "Total Spent", "Purchases"
        )

        purchases_table = self.query_one("#purchases-table", DataTable)
        purchases_table.cursor_type = "row"
        purchases_table.add_columns("Date", "Qty", "Unit Price", "Total", "Supplier")

        self.action_refresh()

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.data_table.id == "items-table":
            self._refresh_purchases_table()

    def action_refresh(self) -> None:
        try:
            self.manager.state.load()
            self._refresh_items_table()
            self._set_status("Refreshed items")
        except Exception as exc:
            self._set_status(f"Refresh failed: {exc}")

    def action_add_purchase(self) -> None:
        defaults: dict[str, Any] = {}
        item_id = self._selected_item_id()
        if item_id is not None:
            defaults["name"] = self._items[item_id]["name"]
        self.push_screen(PurchaseFormScreen(defaults), self._handle_add_purchase)

    def action_delete_purchase(self) -> None:
        item_id = self._selected_item_id()
        purchase_id = self._selected_purchase_id()
        if item_id is None or purchase_id is None:
            self._set_status("No purchase selected")
            return

        try:
            result = self.manager.delete_purchase(item_id, purchase_id)
            self._refresh_items_table(keep=item_id)
            self._set_status(result["message"])
        except (ItemNotFoundError, PurchaseNotFoundError) as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Delete failed: {exc}")

    def action_delete_item(self) -> None:
        item_id = self._selected_item_id()
        if item_id is None:
            self._set_status("No item selected")
            return

        try:
            result = self.manager.delete_item(item_id)
            self._refresh_items_table()
            self._set_status(result["message"])
        except ItemNotFoundError as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Delete failed: {exc}")

    def _refresh_items_table(self, keep: str | None = None) -> None:
        table = self.query_one("#items-table", DataTable)
        table.clear(columns=False)
        self._item_ids = []
        self._items = {}

        result = self.manager.list_items()
        for item in result["data"]["items"]:
            item_id = str(item["id"])
            stats = item["stats"]
            last = stats["last"]
            self._item_ids.append(item_id)
            self._items[item_id] = item
            table.add_row(
                item["name"],
                format_date(last["date"]) if last else "-",
                format_money(last["unit_price"]) if last else "-",
                _plain_change(stats["price_change"]),
                format_money(stats["total_spent"]),
                str(stats["purchase_count"]),
                key=item_id,
            )

        if self._item_ids:
            row = self._item_ids.index(keep) if keep in self._item_ids else 0
            table.move_cursor(row=row, column=0)
        self._refresh_purchases_table()

    def _refresh_purchases_table(self) -> None:
        table = self.query_one("#purchases-table", DataTable)
        table.clear(columns=False)
        self._purchase_ids = []

        item_id = self._selected_item_id()
        if item_id is None:
            return

        for purchase in self._items[item_id]["purchases"]:
            purchase_id = str(purchase["id"])
            self._purchase_ids.append(purchase_id)
            table.add_row(
                format_date(purchase["date"]),
                format_qty(purchase["qty"]),
                format_money(purchase["unit_price"]),
                format_money(purchase["qty"] * purchase["unit_price"]),
                purchase["supplier"] or "-",
                key=purchase_id,
            )

    def _handle_add_purchase(self, payload: dict[str, Any] | None) -> None:
        if payload is None:
            self._set_status("Add purchase canceled")
            return

        try:
            result = self.manager.add_purchase(
                payload["name"],
                qty=payload["qty"],
                unit_price=payload["unit_price"],
                purchase_date=payload["date"],
                supplier=payload["supplier"],
            )
            self._refresh_items_table(keep=str(result["data"]["item"]["id"]))
            self._set_status(result["message"])
        except InvalidEntryError as exc:
            self._set_status(str(exc))
        except Exception as exc:
            self._set_status(f"Add failed: {exc}")

    def _selected_item_id(self) -> str | None:
        table = self.query_one("#items-table", DataTable)
        row = table.cursor_row
        if row is None or row < 0 or row >= len(self._item_ids):
            return None
        return self._item_ids[row]

    def _selected_purchase_id(self) -> str | None:
        table = self.query_one("#purchases-table", DataTable)
        row = table.cursor_row
        if row is None or row < 0 or row >= len(self._purchase_ids):
            return None
        return self._purchase_ids[row]

    def _set_status(self, message: str) -> None:
        self.query_one("#status", Static).update(message)
