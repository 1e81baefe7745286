"""Smoke tests for the terminal UI."""

import asyncio
from decimal import Decimal

from textual.widgets import Button, DataTable, Input

from purchase_tracker.tui import PurchaseFormScreen, PurchaseTrackerTUI, _plain_change


def run(app, scenario):
    """Drive the app headlessly through an async scenario."""

    async def main():
        async with app.run_test(size=(120, 50)) as pilot:
            await pilot.pause()
            await scenario(app, pilot)

    asyncio.run(main())


def add_widget(manager):
    manager.add_purchase("Widget", qty="10", unit_price="25.5", purchase_date="2024-01-01")
    manager.add_purchase("Widget", qty="5", unit_price="27", purchase_date="2024-01-02")


class TestPlainChange:
    def test_values(self):
        assert _plain_change(None) == "-"
        assert _plain_change(Decimal("1.5")) == "+$1.50"
        assert _plain_change(Decimal("-2")) == "-$2.00"
        assert _plain_change(Decimal("0")) == "$0.00"


class TestPurchaseTrackerTUI:
    """Tests for the main TUI screen."""

    def test_tables_load(self, manager):
        add_widget(manager)
        manager.add_purchase("Gadget", qty="1", unit_price="3", purchase_date="2024-01-05")

        async def scenario(app, pilot):
            items = app.query_one("#items-table", DataTable)
            purchases = app.query_one("#purchases-table", DataTable)
            assert items.row_count == 2
            # Gadget sorts first and has one purchase
            assert purchases.row_count == 1

        run(PurchaseTrackerTUI(manager), scenario)

    def test_empty_inventory(self, manager):
        async def scenario(app, pilot):
            assert app.query_one("#items-table", DataTable).row_count == 0
            assert app.query_one("#purchases-table", DataTable).row_count == 0

        run(PurchaseTrackerTUI(manager), scenario)

    def test_delete_purchase(self, manager):
        add_widget(manager)

        async def scenario(app, pilot):
            assert app.query_one("#purchases-table", DataTable).row_count == 2
            await pilot.press("x")
            await pilot.pause()
            assert app.query_one("#purchases-table", DataTable).row_count == 1

        run(PurchaseTrackerTUI(manager), scenario)

        purchases = manager.document.items[0].purchases
        assert [p.unit_price for p in purchases] == [Decimal("25.5")]

    def test_delete_item(self, manager):
        add_widget(manager)

        async def scenario(app, pilot):
            await pilot.press("d")
            await pilot.pause()
            assert app.query_one("#items-table", DataTable).row_count == 0

        run(PurchaseTrackerTUI(manager), scenario)
        assert manager.document.items == []

    def test_refresh_picks_up_external_changes(self, manager):
        add_widget(manager)

        async def scenario(app, pilot):
            manager.add_purchase("Gadget", qty="1", unit_price="3", purchase_date="2024-01-05")
            await pilot.press("r")
            await pilot.pause()
            assert app.query_one("#items-table", DataTable).row_count == 2

        run(PurchaseTrackerTUI(manager), scenario)

    def test_add_purchase_form(self, manager):
        add_widget(manager)

        async def scenario(app, pilot):
            await pilot.press("a")
            await pilot.pause()
            screen = app.screen
            assert isinstance(screen, PurchaseFormScreen)
            # Selected item prefills the name
            assert screen.query_one("#name", Input).value == "Widget"

            screen.query_one("#qty", Input).value = "2"
            screen.query_one("#unit_price", Input).value = "30"
            screen.query_one("#date", Input).value = "2024-02-01"
            screen.query_one("#submit", Button).press()
            await pilot.pause()

            assert not isinstance(app.screen, PurchaseFormScreen)
            assert app.query_one("#purchases-table", DataTable).row_count == 3

        run(PurchaseTrackerTUI(manager), scenario)

        item = manager.document.items[0]
        assert len(item.purchases) == 3
        assert item.purchases[-1].unit_price == Decimal("30")

    def test_add_purchase_canceled(self, manager):
        async def scenario(app, pilot):
            await pilot.press("a")
            await pilot.pause()
            await pilot.press("escape")
            await pilot.pause()
            assert not isinstance(app.screen, PurchaseFormScreen)

        run(PurchaseTrackerTUI(manager), scenario)
        assert manager.document.items == []
