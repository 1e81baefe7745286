"""Tests for derived purchase statistics."""

import random
from datetime import datetime
from decimal import Decimal

from purchase_tracker.analytics import compute_item_stats, sort_purchases, summarize_document
from purchase_tracker.models import InventoryDocument, Item, Purchase


def _purchase(day: int, qty: str, price: str) -> Purchase:
    return Purchase(date=datetime(2024, 1, day), qty=Decimal(qty), unit_price=Decimal(price))


class TestSortPurchases:
    """Tests for newest-first ordering."""

    def test_newest_first(self):
        purchases = [_purchase(1, "1", "1"), _purchase(3, "1", "3"), _purchase(2, "1", "2")]
        ordered = sort_purchases(purchases)
        assert [p.date.day for p in ordered] == [3, 2, 1]

    def test_same_date_keeps_insertion_order(self):
        first = _purchase(5, "1", "1")
        second = _purchase(5, "2", "2")
        assert sort_purchases([first, second]) == [first, second]

    def test_input_not_modified(self):
        purchases = [_purchase(1, "1", "1"), _purchase(2, "1", "1")]
        sort_purchases(purchases)
        assert purchases[0].date.day == 1


class TestComputeItemStats:
    """Tests for per-item statistics."""

    def test_no_purchases(self):
        stats = compute_item_stats([])
        assert stats.last is None
        assert stats.previous is None
        assert stats.price_change is None
        assert stats.total_spent == Decimal("0")
        assert stats.average_price == Decimal("0")
        assert stats.purchase_count == 0

    def test_single_purchase_has_no_price_change(self):
        stats = compute_item_stats([_purchase(1, "2", "4")])
        assert stats.last is not None
        assert stats.previous is None
        assert stats.price_change is None
        assert stats.total_spent == Decimal("8")
        assert stats.average_price == Decimal("8")

    def test_widget_example(self, widget_item):
        """10 x 25.5 then 5 x 27."""
        stats = compute_item_stats(widget_item.purchases)
        assert stats.total_spent == Decimal("390")
        assert stats.price_change == Decimal("1.5")
        assert stats.last.unit_price == Decimal("27")
        assert stats.previous.unit_price == Decimal("25.5")
        assert stats.average_price == Decimal("195")
        assert stats.purchase_count == 2

    def test_price_drop_is_negative(self):
        stats = compute_item_stats([_purchase(1, "1", "5"), _purchase(2, "1", "3")])
        assert stats.price_change == Decimal("-2")

    def test_order_independent(self):
        """Reordering the purchase list changes no derived value."""
        purchases = [_purchase(day, str(day), f"{day}.25") for day in range(1, 8)]
        expected = compute_item_stats(purchases)

        shuffled = purchases[:]
        random.Random(7).shuffle(shuffled)
        actual = compute_item_stats(shuffled)

        assert actual.total_spent == expected.total_spent
        assert actual.price_change == expected.price_change
        assert actual.last.id == expected.last.id
        assert actual.previous.id == expected.previous.id


class TestSummarizeDocument:
    """Tests for document totals."""

    def test_empty(self):
        summary = summarize_document(InventoryDocument())
        assert summary.item_count == 0
        assert summary.purchase_count == 0
        assert summary.total_spent == Decimal("0")

    def test_totals(self, sample_document):
        summary = summarize_document(sample_document)
        assert summary.item_count == 2
        assert summary.purchase_count == 2
        assert summary.total_spent == Decimal("390")

    def test_counts_every_item(self):
        document = InventoryDocument(
            items=[
                Item(name="A", purchases=[_purchase(1, "1", "2")]),
                Item(name="B", purchases=[_purchase(1, "3", "1"), _purchase(2, "1", "1")]),
            ]
        )
        summary = summarize_document(document)
        assert summary.purchase_count == 3
        assert summary.total_spent == Decimal("6")
