"""Tests for CSV and JSON import/export."""

import json
from datetime import datetime
from decimal import Decimal

import pytest

from purchase_tracker.codec import (
    CSV_HEADER,
    CSVFormatError,
    FileFormat,
    InvalidStructureError,
    JSONFormatError,
    MissingColumnError,
    UnsupportedFormatError,
    detect_format,
    export_csv,
    export_json,
    export_text,
    import_csv,
    import_json,
    import_text,
    locate_columns,
    parse_csv_rows,
)
from purchase_tracker.merge import merge_purchase
from purchase_tracker.models import InventoryDocument, Item


class TestExportCSV:
    """Tests for CSV export."""

    def test_header_only_for_empty_document(self):
        assert export_csv(InventoryDocument()) == ",".join(CSV_HEADER)

    def test_one_row_per_purchase(self, sample_document):
        lines = export_csv(sample_document).split("\n")
        assert lines[0] == "Item Name,Purchase Date,Quantity,Unit Price,Supplier,Total"
        assert len(lines) == 3
        assert lines[1] == '"Widget",2024-01-02T00:00:00,5,27,"Acme",135'
        assert lines[2] == '"Widget",2024-01-01T00:00:00,10,25.5,"Acme",255.0'

    def test_quotes_escaped(self):
        document = InventoryDocument(
            items=[Item.model_validate({"name": 'Bolt 3/4"', "purchases": [{"qty": 1}]})]
        )
        row = export_csv(document).split("\n")[1]
        assert row.startswith('"Bolt 3/4"""')
        assert row.split(",")[4] == '""'


class TestParseCSV:
    """Tests for CSV parsing."""

    def test_locate_columns_by_substring(self):
        columns = locate_columns(["Item Name", "Purchase Date", "Qty", "Unit Price", "Supplier"])
        assert (columns.name, columns.date, columns.qty, columns.price, columns.supplier) == (
            0,
            1,
            2,
            3,
            4,
        )

    def test_locate_columns_optional(self):
        columns = locate_columns(["item"])
        assert columns.date is None
        assert columns.qty is None

    def test_missing_item_column(self):
        with pytest.raises(MissingColumnError, match="Item Name column"):
            parse_csv_rows("Name,Qty\nWidget,1")

    def test_empty_csv(self):
        with pytest.raises(CSVFormatError, match="CSV file is empty"):
            parse_csv_rows("\n\n")

    def test_defaults_for_missing_cells(self):
        rows = parse_csv_rows("Item,Qty,Price\nWidget")
        assert rows[0].qty == Decimal("0")
        assert rows[0].unit_price == Decimal("0")
        assert rows[0].date is None
        assert rows[0].supplier is None

    def test_invalid_numbers_coerce_to_zero(self):
        rows = parse_csv_rows("Item,Qty,Price\nWidget,many,-2")
        assert rows[0].qty == Decimal("0")
        assert rows[0].unit_price == Decimal("0")

    def test_blank_names_skipped(self):
        rows = parse_csv_rows("Item,Qty\n  ,1\nWidget,2")
        assert [row.name for row in rows] == ["Widget"]

    def test_quoted_fields(self):
        rows = parse_csv_rows('Item Name,Supplier\n"Nuts, mixed","Acme, Inc."')
        assert rows[0].name == "Nuts, mixed"
        assert rows[0].supplier == "Acme, Inc."

    def test_byte_order_mark_ignored(self):
        rows = parse_csv_rows("\ufeffItem Name,Qty\nWidget,1")
        assert rows[0].name == "Widget"

    def test_invalid_date_reports_line(self):
        with pytest.raises(CSVFormatError, match="Line 3: invalid date"):
            parse_csv_rows("Item,Date\nWidget,2024-01-01\nGadget,someday")


class TestImportCSV:
    """Tests for merging CSV imports."""

    def test_same_name_rows_become_one_item(self):
        """Header 'Item Name, Date, Qty, Price' with two rows for one item."""
        text = (
            "Item Name, Date, Qty, Price\n"
            "Widget, 2024-01-01, 10, 25.5\n"
            "widget, 2024-01-02, 5, 27\n"
        )
        result = import_csv(InventoryDocument(), text)

        assert result.format == "csv"
        assert result.rows == 2
        assert result.items == 1
        assert len(result.document.items) == 1
        item = result.document.items[0]
        assert item.name == "Widget"
        assert [p.date for p in item.purchases] == [datetime(2024, 1, 1), datetime(2024, 1, 2)]
        assert [p.unit_price for p in item.purchases] == [Decimal("25.5"), Decimal("27")]

    def test_merges_into_existing_document(self, sample_document):
        result = import_csv(sample_document, "Item,Qty,Price\nWIDGET,1,30\nSprocket,2,1")
        names = [item.name for item in result.document.items]
        assert names == ["Widget", "Gadget", "Sprocket"]
        assert len(result.document.items[0].purchases) == 3
        assert len(sample_document.items[0].purchases) == 2

    def test_missing_date_defaults_to_now(self):
        before = datetime.now()
        result = import_csv(InventoryDocument(), "Item\nWidget")
        assert result.document.items[0].purchases[0].date >= before

    def test_no_valid_rows(self):
        with pytest.raises(CSVFormatError, match="No valid rows found in CSV"):
            import_csv(InventoryDocument(), "Item Name,Qty\n ,1")

    def test_message(self):
        result = import_csv(InventoryDocument(), "Item\nA\nB\nC")
        assert result.message == "Successfully imported 3 rows from CSV"

    def test_round_trip(self, sample_document):
        """Export then import reproduces every purchase with new ids."""
        result = import_csv(InventoryDocument(), export_csv(sample_document))

        original = sample_document.items[0]
        imported = result.document.items[0]
        assert imported.name == original.name
        assert imported.id != original.id
        for before, after in zip(original.purchases, imported.purchases):
            assert after.id != before.id
            assert after.date == before.date
            assert after.qty == before.qty
            assert after.unit_price == before.unit_price
            assert after.supplier == before.supplier

        # items without purchases produce no CSV rows
        assert len(result.document.items) == 1


class TestJSON:
    """Tests for JSON export and replacing import."""

    def test_export_shape(self, sample_document):
        data = json.loads(export_json(sample_document))
        assert data["version"] == "1.0"
        assert [item["name"] for item in data["items"]] == ["Widget", "Gadget"]
        assert data["items"][0]["purchases"][0]["unit_price"] == "27"

    def test_round_trip(self, sample_document):
        result = import_json(export_json(sample_document))
        assert result.document.model_dump() == sample_document.model_dump()
        assert result.items == 2
        assert result.rows == 2

    def test_round_trip_keeps_decimal_precision(self):
        document = merge_purchase(
            InventoryDocument(),
            "Widget",
            {"qty": "12345678901234567.89", "unit_price": "0.123456789012345678"},
        )
        purchase = import_json(export_json(document)).document.items[0].purchases[0]
        assert purchase.qty == Decimal("12345678901234567.89")
        assert purchase.unit_price == Decimal("0.123456789012345678")

    def test_numeric_amounts_stay_exact(self):
        text = (
            '{"items": [{"name": "Widget",'
            ' "purchases": [{"unit_price": 0.12345678901234567891}]}]}'
        )
        purchase = import_json(text).document.items[0].purchases[0]
        assert purchase.unit_price == Decimal("0.12345678901234567891")

    def test_duplicate_names_folded(self):
        """Same-name items collapse into the first, keeping all purchases."""
        text = json.dumps(
            {
                "items": [
                    {"name": "Widget", "purchases": [{"date": "2024-01-01", "qty": 10}]},
                    {"name": "widget ", "purchases": [{"date": "2024-01-02", "qty": 5}]},
                    {"name": "Gadget", "purchases": []},
                ]
            }
        )
        result = import_json(text)
        assert result.items == 2
        assert result.rows == 2

        widget, gadget = result.document.items
        assert widget.name == "Widget"
        assert gadget.name == "Gadget"
        assert [p.qty for p in widget.purchases] == [Decimal("10"), Decimal("5")]
        assert all(p.item_id == widget.id for p in widget.purchases)

    def test_bare_array_accepted(self):
        result = import_json('[{"name": "Widget", "purchases": []}]')
        assert result.document.items[0].name == "Widget"

    def test_object_without_items_rejected(self):
        with pytest.raises(InvalidStructureError, match="Expected"):
            import_json('{"foo": 1}')

    def test_unparseable_rejected(self):
        with pytest.raises(JSONFormatError):
            import_json("{not json")

    def test_invalid_item_rejected(self):
        with pytest.raises(JSONFormatError, match="Invalid item data"):
            import_json('{"items": [{"purchases": []}]}')

    def test_legacy_field_names(self):
        text = json.dumps(
            {
                "items": [
                    {
                        "id": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                        "name": "Widget",
                        "createdAt": "2024-01-01T00:00:00",
                        "updatedAt": "2024-01-02T00:00:00",
                        "purchases": [
                            {
                                "id": "16fd2706-8baf-433b-82eb-8c7fada847da",
                                "itemId": "7c9e6679-7425-40de-944b-e07fc1f90ae7",
                                "date": "2024-01-02",
                                "qty": 5,
                                "unitPrice": 27,
                                "supplier": "",
                            }
                        ],
                    }
                ]
            }
        )
        item = import_json(text).document.items[0]
        assert str(item.id) == "7c9e6679-7425-40de-944b-e07fc1f90ae7"
        assert item.purchases[0].unit_price == Decimal("27")
        assert item.purchases[0].supplier is None


class TestDetectFormat:
    """Tests for format detection and dispatch."""

    def test_extension_wins(self):
        assert detect_format("a,b", "data.JSON") == FileFormat.JSON
        assert detect_format("{}", "data.csv") == FileFormat.CSV

    def test_content_sniffing(self):
        assert detect_format('{"items": []}') == FileFormat.JSON
        assert detect_format("Item,Qty\nWidget,1") == FileFormat.CSV

    def test_unsupported(self):
        with pytest.raises(UnsupportedFormatError):
            detect_format("just some words", "notes.txt")

    def test_json_import_replaces(self, sample_document):
        result = import_text(sample_document, '{"items": [{"name": "Sprocket"}]}')
        assert [item.name for item in result.document.items] == ["Sprocket"]

    def test_csv_import_merges(self, sample_document):
        result = import_text(sample_document, "Item,Qty\nSprocket,1", "new.csv")
        assert len(result.document.items) == 3

    def test_rejected_json_leaves_document(self, sample_document):
        before = sample_document.model_dump()
        with pytest.raises(InvalidStructureError):
            import_text(sample_document, '{"foo": 1}', "bad.json")
        assert sample_document.model_dump() == before

    def test_export_text(self, sample_document):
        assert export_text(sample_document, FileFormat.CSV).startswith("Item Name,")
        assert export_text(sample_document, FileFormat.JSON).startswith("{")
