"""CSV and JSON import/export for the inventory document.

CSV import merges rows into the existing document by item name. JSON import
replaces the whole document. The two are kept as separate operations.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ValidationError

from .data_store import dump_document, load_json
from .item_normalizer import clean_item_name, normalize_item_name
from .merge import merge_batch, merge_items
from .models import (
    ZERO,
    ImportResult,
    InventoryDocument,
    PurchaseFields,
    parse_purchase_date,
    to_amount,
)

logger = logging.getLogger(__name__)

CSV_HEADER = ("Item Name", "Purchase Date", "Quantity", "Unit Price", "Supplier", "Total")


class ImportFormatError(Exception):
    """Raised when an import payload cannot be used. Nothing is imported."""


class CSVFormatError(ImportFormatError):
    """Raised for unreadable or empty CSV payloads."""


class MissingColumnError(CSVFormatError):
    """Raised when the CSV header has no item name column."""

    def __init__(self) -> None:
        super().__init__("CSV must include an Item Name column")


class JSONFormatError(ImportFormatError):
    """Raised for unparseable JSON or invalid item records."""


class InvalidStructureError(JSONFormatError):
    """Raised when JSON is neither {"items": [...]} nor a bare array."""

    def __init__(self) -> None:
        super().__init__("Invalid JSON structure. Expected {items: [...]}")


class UnsupportedFormatError(ImportFormatError):
    """Raised when a payload is neither JSON nor CSV."""

    def __init__(self) -> None:
        super().__init__("Unsupported file type. Please provide a .json or .csv file.")


class FileFormat(str, Enum):
    """Supported import/export formats."""

    CSV = "csv"
    JSON = "json"


def format_decimal(value: Decimal) -> str:
    """Render a decimal without exponent notation."""
    return format(value, "f")


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


# --- CSV ---


def export_csv(document: InventoryDocument) -> str:
    """Flatten the document to one CSV row per purchase."""
    lines = [",".join(CSV_HEADER)]
    for item in document.items:
        for purchase in item.purchases:
            lines.append(
                ",".join(
                    [
                        _quote(item.name),
                        purchase.date.isoformat(),
                        format_decimal(purchase.qty),
                        format_decimal(purchase.unit_price),
                        _quote(purchase.supplier or ""),
                        format_decimal(purchase.qty * purchase.unit_price),
                    ]
                )
            )
    return "\n".join(lines)


@dataclass
class CsvColumns:
    """Positions of recognised columns in a CSV header."""

    name: int
    date: int | None = None
    qty: int | None = None
    price: int | None = None
    supplier: int | None = None


class CsvRow(BaseModel):
    """One usable CSV data row, with every optional field defaulted."""

    line: int
    name: str
    date: datetime | None = None
    qty: Decimal = ZERO
    unit_price: Decimal = ZERO
    supplier: str | None = None

    def to_fields(self) -> PurchaseFields:
        """Purchase fields for the merge engine."""
        return PurchaseFields(
            date=self.date or datetime.now(),
            qty=self.qty,
            unit_price=self.unit_price,
            supplier=self.supplier,
        )


def _find_column(headers: list[str], *needles: str) -> int | None:
    for index, header in enumerate(headers):
        if any(needle in header for needle in needles):
            return index
    return None


def locate_columns(header_row: list[str]) -> CsvColumns:
    """Locate columns by case-insensitive substring; first match wins.

    Raises:
        MissingColumnError: If no header mentions "item"
    """
    headers = [h.strip().lower() for h in header_row]
    name = _find_column(headers, "item")
    if name is None:
        raise MissingColumnError()
    return CsvColumns(
        name=name,
        date=_find_column(headers, "date"),
        qty=_find_column(headers, "qty", "quantity"),
        price=_find_column(headers, "unit", "price"),
        supplier=_find_column(headers, "supplier"),
    )


def _cell(row: list[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def parse_csv_rows(text: str) -> list[CsvRow]:
    """Parse CSV text into typed rows.

    Rows with a blank item name are skipped.

    Raises:
        CSVFormatError: If the text is empty, unreadable, lacks an item
            column or contains an invalid date
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), skipinitialspace=True)
    records: list[tuple[int, list[str]]] = []
    try:
        for row in reader:
            if any(cell.strip() for cell in row):
                records.append((reader.line_num, row))
    except csv.Error as e:
        raise CSVFormatError(f"Failed to read CSV: {e}") from e

    if not records:
        raise CSVFormatError("CSV file is empty")

    columns = locate_columns(records[0][1])
    rows: list[CsvRow] = []
    for line, row in records[1:]:
        name = clean_item_name(_cell(row, columns.name))
        if not name:
            continue

        raw_date = _cell(row, columns.date)
        try:
            purchase_date = parse_purchase_date(raw_date) if raw_date else None
        except ValueError as e:
            raise CSVFormatError(f"Line {line}: invalid date {raw_date!r}") from e

        rows.append(
            CsvRow(
                line=line,
                name=name,
                date=purchase_date,
                qty=to_amount(_cell(row, columns.qty)),
                unit_price=to_amount(_cell(row, columns.price)),
                supplier=_cell(row, columns.supplier) or None,
            )
        )
    return rows


def import_csv(document: InventoryDocument, text: str) -> ImportResult:
    """Merge CSV rows into a document.

    Rows for the same item name (case-insensitively) become one item;
    existing items get the new purchases appended.

    Raises:
        CSVFormatError: If the payload is unusable; the document is untouched
    """
    rows = parse_csv_rows(text)
    if not rows:
        raise CSVFormatError("No valid rows found in CSV")

    merged = merge_batch(document, [(row.name, row.to_fields()) for row in rows])
    distinct = len({normalize_item_name(row.name) for row in rows})
    logger.info("Imported %d CSV rows for %d items", len(rows), distinct)
    return ImportResult(
        format=FileFormat.CSV.value,
        document=merged,
        rows=len(rows),
        items=distinct,
        message=f"Successfully imported {len(rows)} rows from CSV",
    )


# --- JSON ---


def export_json(document: InventoryDocument) -> str:
    """Serialize the full document."""
    return dump_document(document)


def parse_json_document(data: Any) -> InventoryDocument:
    """Build a document from parsed JSON.

    Items whose names match case-insensitively are folded into the first
    one, keeping every purchase.

    Raises:
        InvalidStructureError: If data is neither {"items": [...]} nor a list
        JSONFormatError: If an item record is invalid
    """
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        payload = data
    elif isinstance(data, list):
        payload = {"items": data}
    else:
        raise InvalidStructureError()

    try:
        document = InventoryDocument.model_validate(payload)
    except ValidationError as e:
        raise JSONFormatError(f"Invalid item data in JSON: {e.error_count()} error(s)") from e

    folded = merge_items(document.model_copy(update={"items": []}), document.items)
    if len(folded.items) < len(document.items):
        logger.info(
            "Folded %d duplicate item names in JSON",
            len(document.items) - len(folded.items),
        )
    return folded


def import_json(text: str) -> ImportResult:
    """Parse a JSON payload into a replacement document.

    Raises:
        JSONFormatError: If the payload is unusable
    """
    try:
        data = load_json(text)
    except json.JSONDecodeError as e:
        raise JSONFormatError(f"Failed to read JSON file: {e}") from e

    document = parse_json_document(data)
    logger.info("Imported %d items from JSON", len(document.items))
    return ImportResult(
        format=FileFormat.JSON.value,
        document=document,
        rows=sum(len(item.purchases) for item in document.items),
        items=len(document.items),
        message=f"Successfully imported {len(document.items)} items from JSON",
    )


# --- Detection ---


def detect_format(text: str, filename: str | None = None) -> FileFormat:
    """Decide whether a payload is JSON or CSV.

    A .json or .csv extension wins. Otherwise text that parses as JSON is
    JSON, and text containing a comma is CSV.

    Raises:
        UnsupportedFormatError: If neither applies
    """
    name = (filename or "").lower()
    if name.endswith(".json"):
        return FileFormat.JSON
    if name.endswith(".csv"):
        return FileFormat.CSV

    try:
        json.loads(text)
        return FileFormat.JSON
    except ValueError:
        pass

    if "," in text:
        return FileFormat.CSV
    raise UnsupportedFormatError()


def import_text(
    document: InventoryDocument, text: str, filename: str | None = None
) -> ImportResult:
    """Import a payload of either format into (or over) a document."""
    if detect_format(text, filename) == FileFormat.JSON:
        return import_json(text)
    return import_csv(document, text)


def export_text(document: InventoryDocument, fmt: FileFormat) -> str:
    """Export a document in the given format."""
    if fmt == FileFormat.JSON:
        return export_json(document)
    return export_csv(document)
