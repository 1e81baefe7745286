"""Inventory management operations."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

from . import codec
from .analytics import compute_item_stats, sort_purchases, summarize_document
from .data_store import DocumentState, DocumentStore
from .item_normalizer import clean_item_name, same_item_name
from .merge import find_item, merge_purchase, new_purchase
from .models import InventoryDocument, Item, PurchaseFields, parse_purchase_date
from .sqlite_store import RemoteStore
from .sync import sync_to_remote

MIN_NAME_LENGTH = 2


class InvalidEntryError(ValueError):
    """Raised when manually entered purchase data fails validation."""


class DuplicateItemError(Exception):
    """Raised when renaming an item onto another item's name."""

    def __init__(self, existing_item: Item):
        self.existing_item = existing_item
        super().__init__(f"Item '{existing_item.name}' already exists")


class ItemNotFoundError(Exception):
    """Raised when an item is not found."""

    def __init__(self, item_id: UUID | str):
        self.item_id = item_id
        super().__init__(f"Item with ID '{item_id}' not found")


class PurchaseNotFoundError(Exception):
    """Raised when a purchase is not found on an item."""

    def __init__(self, purchase_id: UUID | str):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase with ID '{purchase_id}' not found")


def validate_item_name(name: str | None) -> str:
    """Check a manually entered item name.

    Raises:
        InvalidEntryError: If the name is blank or too short
    """
    cleaned = clean_item_name(name)
    if not cleaned:
        raise InvalidEntryError("Item name is required")
    if len(cleaned) < MIN_NAME_LENGTH:
        raise InvalidEntryError(f"Item name must be at least {MIN_NAME_LENGTH} characters")
    return cleaned


def validate_number(value: Any, field_name: str) -> Decimal:
    """Check a manually entered quantity or price.

    Raises:
        InvalidEntryError: If the value is not a finite number >= 0
    """
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidEntryError(f"{field_name} must be a positive number") from None
    if not number.is_finite() or number < 0:
        raise InvalidEntryError(f"{field_name} must be a positive number")
    return number


def validate_date(value: Any) -> datetime:
    """Check a manually entered purchase date.

    Raises:
        InvalidEntryError: If the date is missing or unreadable
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidEntryError("Date is required")
    try:
        return parse_purchase_date(value)
    except ValueError:
        raise InvalidEntryError("Invalid date format") from None


def _as_uuid(value: UUID | str, error: type[Exception]) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise error(value) from None


def item_payload(item: Item) -> dict[str, Any]:
    """Serializable item with purchases newest first and derived stats."""
    stats = compute_item_stats(item.purchases)
    payload = item.model_dump()
    payload["purchases"] = [p.model_dump() for p in sort_purchases(item.purchases)]
    payload["stats"] = stats.model_dump()
    return payload


class InventoryManager:
    """Manages items and purchases in the local document."""

    def __init__(self, state: DocumentState | None = None):
        """Initialize inventory manager.

        Args:
            state: DocumentState instance. Creates one over ./data if not provided.
        """
        self.state = state or DocumentState(DocumentStore())

    @property
    def document(self) -> InventoryDocument:
        """Current document."""
        return self.state.document

    def _entry_fields(
        self,
        qty: Any,
        unit_price: Any,
        purchase_date: Any,
        supplier: str | None,
    ) -> PurchaseFields:
        return PurchaseFields(
            qty=validate_number(qty, "Quantity"),
            unit_price=validate_number(unit_price, "Price"),
            date=validate_date(date.today() if purchase_date is None else purchase_date),
            supplier=supplier,
        )

    def _find(self, document: InventoryDocument, item_id: UUID) -> Item:
        for item in document.items:
            if item.id == item_id:
                return item
        raise ItemNotFoundError(item_id)

    # --- Entry ---

    def add_purchase(
        self,
        name: str,
        qty: Any = 1,
        unit_price: Any = 0,
        purchase_date: Any = None,
        supplier: str | None = None,
    ) -> dict:
        """Record a purchase under an item name.

        The purchase joins an existing item with the same name (ignoring
        case) or starts a new item.

        Args:
            name: Item name
            qty: Quantity bought
            unit_price: Price per unit
            purchase_date: Purchase date, today if omitted
            supplier: Optional supplier name

        Returns:
            Dict with success status and item data

        Raises:
            InvalidEntryError: If any field fails validation
        """
        cleaned = validate_item_name(name)
        fields = self._entry_fields(qty, unit_price, purchase_date, supplier)
        is_new_item = find_item(self.document, cleaned) is None

        document = self.state.mutate(lambda doc: merge_purchase(doc, cleaned, fields))
        item = find_item(document, cleaned)

        return {
            "success": True,
            "message": f"Successfully added {cleaned}",
            "data": {
                "item": item_payload(item),
                "purchase": item.purchases[-1].model_dump(),
                "is_new_item": is_new_item,
            },
        }

    def add_purchase_to_item(
        self,
        item_id: UUID | str,
        qty: Any = 1,
        unit_price: Any = 0,
        purchase_date: Any = None,
        supplier: str | None = None,
    ) -> dict:
        """Append a purchase to a specific item.

        Raises:
            ItemNotFoundError: If item not found
            InvalidEntryError: If any field fails validation
        """
        target_id = _as_uuid(item_id, ItemNotFoundError)
        fields = self._entry_fields(qty, unit_price, purchase_date, supplier)
        self._find(self.document, target_id)

        def append(doc: InventoryDocument) -> None:
            item = self._find(doc, target_id)
            purchase = new_purchase(fields)
            purchase.item_id = item.id
            item.purchases.append(purchase)
            item.updated_at = datetime.now()

        document = self.state.mutate(append)
        item = self._find(document, target_id)
        return {
            "success": True,
            "message": "Purchase added successfully",
            "data": {
                "item": item_payload(item),
                "purchase": item.purchases[-1].model_dump(),
            },
        }

    # --- Removal and rename ---

    def delete_purchase(self, item_id: UUID | str, purchase_id: UUID | str) -> dict:
        """Delete one purchase. The item and its other purchases stay.

        Raises:
            ItemNotFoundError: If item not found
            PurchaseNotFoundError: If the item has no such purchase
        """
        target_id = _as_uuid(item_id, ItemNotFoundError)
        target_purchase = _as_uuid(purchase_id, PurchaseNotFoundError)
        item = self._find(self.document, target_id)
        if not any(p.id == target_purchase for p in item.purchases):
            raise PurchaseNotFoundError(purchase_id)

        def remove(doc: InventoryDocument) -> None:
            found = self._find(doc, target_id)
            found.purchases = [p for p in found.purchases if p.id != target_purchase]
            found.updated_at = datetime.now()

        document = self.state.mutate(remove)
        return {
            "success": True,
            "message": "Purchase deleted",
            "data": {"item": item_payload(self._find(document, target_id))},
        }

    def delete_item(self, item_id: UUID | str) -> dict:
        """Delete an item together with all of its purchases.

        Raises:
            ItemNotFoundError: If item not found
        """
        target_id = _as_uuid(item_id, ItemNotFoundError)
        removed = self._find(self.document, target_id)

        def remove(doc: InventoryDocument) -> None:
            doc.items = [item for item in doc.items if item.id != target_id]

        self.state.mutate(remove)
        return {
            "success": True,
            "message": f"Deleted {removed.name} and {len(removed.purchases)} purchases",
            "data": {"removed_item": removed.model_dump()},
        }

    def rename_item(self, item_id: UUID | str, new_name: str) -> dict:
        """Rename an item.

        Raises:
            ItemNotFoundError: If item not found
            InvalidEntryError: If the new name is invalid
            DuplicateItemError: If another item already has that name
        """
        target_id = _as_uuid(item_id, ItemNotFoundError)
        cleaned = validate_item_name(new_name)
        self._find(self.document, target_id)
        for other in self.document.items:
            if other.id != target_id and same_item_name(other.name, cleaned):
                raise DuplicateItemError(other)

        def rename(doc: InventoryDocument) -> None:
            item = self._find(doc, target_id)
            item.name = cleaned
            item.updated_at = datetime.now()

        document = self.state.mutate(rename)
        return {
            "success": True,
            "message": f"Renamed item to {cleaned}",
            "data": {"item": item_payload(self._find(document, target_id))},
        }

    def clear_all(self) -> dict:
        """Remove every item from the document."""
        removed_count = len(self.document.items)
        self.state.mutate(lambda doc: InventoryDocument())
        return {
            "success": True,
            "message": "All data cleared",
            "data": {"removed_count": removed_count},
        }

    # --- Queries ---

    def get_item(self, item_id: UUID | str) -> Item:
        """Get a specific item by ID.

        Raises:
            ItemNotFoundError: If item not found
        """
        return self._find(self.document, _as_uuid(item_id, ItemNotFoundError))

    def show_item(self, item_id: UUID | str) -> dict:
        """Item details with purchases newest first and derived stats."""
        item = self.get_item(item_id)
        return {"success": True, "data": {"item": item_payload(item)}}

    def list_items(
        self,
        search: str | None = None,
        sort_by: str = "name",
        descending: bool = False,
    ) -> dict:
        """List items with derived stats.

        Args:
            search: Case-insensitive substring filter on the name
            sort_by: "name" or "date" (date of the last purchase)
            descending: Reverse the sort order

        Returns:
            Dict with item payloads and document totals
        """
        items = list(self.document.items)
        if search:
            needle = search.casefold()
            items = [item for item in items if needle in item.name.casefold()]

        if sort_by == "date":

            def sort_key(item: Item) -> Any:
                stats = compute_item_stats(item.purchases)
                return stats.last.date if stats.last else datetime.min

        elif sort_by == "name":

            def sort_key(item: Item) -> Any:
                return item.name.casefold()

        else:
            raise InvalidEntryError(f"Unknown sort field: {sort_by}")

        items.sort(key=sort_key, reverse=descending)
        summary = summarize_document(self.document)

        return {
            "success": True,
            "data": {
                "items": [item_payload(item) for item in items],
                "total_items": len(items),
                "summary": summary.model_dump(),
            },
        }

    # --- Import / export ---

    def import_text(self, text: str, filename: str | None = None) -> dict:
        """Import CSV (merged) or JSON (replacing) text.

        Raises:
            codec.ImportFormatError: If the payload is unusable; nothing changes
        """
        result = codec.import_text(self.document, text, filename)
        self.state.mutate(lambda doc: result.document)
        return {
            "success": True,
            "message": result.message,
            "data": {
                "import": {
                    "format": result.format,
                    "rows": result.rows,
                    "items": result.items,
                }
            },
        }

    def import_file(self, path: Path) -> dict:
        """Import a .csv or .json file, detecting the format if needed."""
        text = Path(path).read_text(encoding="utf-8-sig")
        return self.import_text(text, Path(path).name)

    def export(self, fmt: codec.FileFormat, path: Path | None = None) -> dict:
        """Write the document to a CSV or JSON file.

        Args:
            fmt: Output format
            path: Destination; defaults to inventory_export_<date>.<ext>

        Returns:
            Dict with the written path and row/item counts
        """
        fmt = codec.FileFormat(fmt)
        if path is None:
            path = Path.cwd() / f"inventory_export_{date.today().isoformat()}.{fmt.value}"

        Path(path).write_text(codec.export_text(self.document, fmt), encoding="utf-8")
        summary = summarize_document(self.document)
        return {
            "success": True,
            "message": f"{fmt.value.upper()} exported successfully",
            "data": {
                "export": {
                    "format": fmt.value,
                    "path": str(path),
                    "items": summary.item_count,
                    "purchases": summary.purchase_count,
                }
            },
        }

    # --- Remote ---

    def sync(self, remote: RemoteStore) -> dict:
        """Push every local purchase to the remote store."""
        if not self.document.items:
            return {
                "success": False,
                "message": "No data to sync. Add some items first.",
                "data": {"sync": {"synced": 0, "skipped": 0, "failed": 0, "errors": []}},
            }

        report = sync_to_remote(self.document, remote)
        if report.errors and not (report.synced or report.skipped or report.failed):
            message = report.errors[0]
        elif report.failed:
            message = (
                f"Synced {report.synced} records successfully, {report.failed} failed."
            )
        else:
            message = f"Successfully synced {report.synced} records to database!"

        return {
            "success": report.ok,
            "message": message,
            "data": {"sync": report.model_dump()},
        }
