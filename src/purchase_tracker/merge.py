"""Merging purchases into a document by item name.

Every function here returns a new document and leaves its input untouched.
Items are matched by trimmed, case-insensitive name.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from .item_normalizer import clean_item_name, normalize_item_name
from .models import InventoryDocument, Item, Purchase, PurchaseFields


class InvalidItemNameError(ValueError):
    """Raised when an item name is empty or whitespace only."""

    def __init__(self, name: str | None = None):
        self.name = name
        super().__init__("Item name is required")


def _require_name(name: str | None) -> str:
    cleaned = clean_item_name(name)
    if not cleaned:
        raise InvalidItemNameError(name)
    return cleaned


def _as_fields(fields: PurchaseFields | dict | None) -> PurchaseFields:
    if fields is None:
        return PurchaseFields()
    if isinstance(fields, PurchaseFields):
        return fields
    return PurchaseFields.model_validate(fields)


def new_purchase(fields: PurchaseFields | dict | None) -> Purchase:
    """Mint a purchase with a fresh id from purchase fields."""
    data = _as_fields(fields)
    return Purchase(
        date=data.date,
        qty=data.qty,
        unit_price=data.unit_price,
        supplier=data.supplier,
    )


def find_item(document: InventoryDocument, name: str) -> Item | None:
    """Find the item whose name matches case-insensitively."""
    key = normalize_item_name(name)
    for item in document.items:
        if normalize_item_name(item.name) == key:
            return item
    return None


def merge_purchase(
    document: InventoryDocument,
    name: str,
    fields: PurchaseFields | dict | None = None,
) -> InventoryDocument:
    """Attach one purchase to the matching item, creating it if needed.

    Args:
        document: Target document
        name: Item name as entered
        fields: Purchase date, qty, unit price and supplier

    Returns:
        New document containing the appended purchase

    Raises:
        InvalidItemNameError: If name is blank
    """
    cleaned = _require_name(name)
    item = Item(name=cleaned, purchases=[new_purchase(fields)])
    return merge_items(document, [item])


def group_rows(rows: Iterable[tuple[str, PurchaseFields | dict | None]]) -> list[Item]:
    """Group (name, fields) rows into one item per distinct name.

    The first spelling seen for a name becomes the item's display name and
    purchases keep row order.

    Raises:
        InvalidItemNameError: If any row has a blank name
    """
    grouped: dict[str, Item] = {}
    for name, fields in rows:
        cleaned = _require_name(name)
        key = normalize_item_name(cleaned)
        if key not in grouped:
            grouped[key] = Item(name=cleaned)
        purchase = new_purchase(fields)
        purchase.item_id = grouped[key].id
        grouped[key].purchases.append(purchase)

    return list(grouped.values())


def merge_batch(
    document: InventoryDocument,
    rows: Sequence[tuple[str, PurchaseFields | dict | None]],
) -> InventoryDocument:
    """Merge a batch of rows into a document.

    Existing items receive only the new purchases; unknown names become new
    items appended in first-seen order.

    Raises:
        InvalidItemNameError: If any row has a blank name; nothing is merged
    """
    batch = group_rows(rows)
    return merge_items(document, batch)


def merge_items(document: InventoryDocument, incoming: Iterable[Item]) -> InventoryDocument:
    """Merge already-grouped items into a document by name.

    Unmatched items are added as they are; matched ones only contribute
    their purchases to the existing item.
    """
    merged = document.model_copy(deep=True)
    index = {normalize_item_name(item.name): item for item in reversed(merged.items)}
    now = datetime.now()

    for item in incoming:
        key = normalize_item_name(item.name)
        existing = index.get(key)
        if existing is None:
            added = item.model_copy(deep=True)
            for purchase in added.purchases:
                purchase.item_id = added.id
            merged.items.append(added)
            index[key] = added
            continue

        for purchase in item.purchases:
            appended = purchase.model_copy(deep=True)
            appended.item_id = existing.id
            existing.purchases.append(appended)
        existing.updated_at = now

    return merged
