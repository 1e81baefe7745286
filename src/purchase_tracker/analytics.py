"""Derived statistics over purchase history."""

from collections.abc import Iterable

from .models import ZERO, DocumentSummary, InventoryDocument, ItemStats, Purchase


def sort_purchases(purchases: Iterable[Purchase]) -> list[Purchase]:
    """Return a copy of purchases ordered newest first.

    Purchases sharing a date keep the order they were appended in.
    """
    return sorted(purchases, key=lambda p: p.date, reverse=True)


def compute_item_stats(purchases: Iterable[Purchase]) -> ItemStats:
    """Compute last/previous purchase, price change and totals.

    Args:
        purchases: Purchase list in any order

    Returns:
        ItemStats; price_change is None when fewer than two purchases exist
    """
    ordered = sort_purchases(purchases)
    last = ordered[0] if ordered else None
    previous = ordered[1] if len(ordered) > 1 else None

    price_change = None
    if last is not None and previous is not None:
        price_change = last.unit_price - previous.unit_price

    total_spent = sum((p.qty * p.unit_price for p in ordered), ZERO)
    count = len(ordered)
    average_price = total_spent / count if count else ZERO

    return ItemStats(
        last=last,
        previous=previous,
        price_change=price_change,
        total_spent=total_spent,
        average_price=average_price,
        purchase_count=count,
    )


def summarize_document(document: InventoryDocument) -> DocumentSummary:
    """Totals across every item in a document."""
    purchase_count = 0
    total_spent = ZERO
    for item in document.items:
        purchase_count += len(item.purchases)
        total_spent += sum((p.qty * p.unit_price for p in item.purchases), ZERO)

    return DocumentSummary(
        item_count=len(document.items),
        purchase_count=purchase_count,
        total_spent=total_spent,
    )
