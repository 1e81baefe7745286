"""Tests for data models."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from purchase_tracker.models import (
    InventoryDocument,
    Item,
    Purchase,
    PurchaseFields,
    SyncReport,
    parse_purchase_date,
    to_amount,
)


class TestToAmount:
    """Tests for quantity/price coercion."""

    def test_numbers_pass_through(self):
        assert to_amount(3) == Decimal("3")
        assert to_amount(2.5) == Decimal("2.5")
        assert to_amount(Decimal("1.25")) == Decimal("1.25")

    def test_numeric_strings(self):
        assert to_amount(" 4.75 ") == Decimal("4.75")

    @pytest.mark.parametrize(
        "value", [None, "", "abc", "-1", -3, float("nan"), float("inf"), True, [1]]
    )
    def test_invalid_values_become_zero(self, value):
        """Missing, non-numeric, non-finite and negative values coerce to 0."""
        assert to_amount(value) == Decimal("0")


class TestParsePurchaseDate:
    """Tests for purchase date parsing."""

    def test_iso_date(self):
        assert parse_purchase_date("2024-01-01") == datetime(2024, 1, 1)

    def test_iso_datetime(self):
        assert parse_purchase_date("2024-01-01T10:30:00") == datetime(2024, 1, 1, 10, 30)

    def test_aware_datetime_converted_to_local_time(self):
        """Offsets are applied and dropped."""
        utc = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        expected = utc.astimezone().replace(tzinfo=None)
        assert parse_purchase_date("2024-01-01T10:00:00+02:00") == expected

    def test_aware_now_matches_default_clock(self):
        """An imported UTC timestamp lands on the same clock as local defaults."""
        imported = parse_purchase_date(datetime.now(timezone.utc).isoformat())
        assert abs(imported - PurchaseFields().date) < timedelta(minutes=1)

    def test_us_style_date(self):
        assert parse_purchase_date("01/15/2024") == datetime(2024, 1, 15)

    def test_date_object(self):
        assert parse_purchase_date(date(2024, 3, 5)) == datetime(2024, 3, 5)

    @pytest.mark.parametrize("value", ["", "yesterday", "2024-13-45", 12])
    def test_invalid_dates_raise(self, value):
        with pytest.raises(ValueError):
            parse_purchase_date(value)


class TestPurchase:
    """Tests for Purchase model."""

    def test_create_minimal(self):
        """Create purchase with defaults."""
        purchase = Purchase()
        assert isinstance(purchase.id, UUID)
        assert purchase.qty == Decimal("0")
        assert purchase.unit_price == Decimal("0")
        assert purchase.supplier is None
        assert isinstance(purchase.date, datetime)

    def test_invalid_numbers_coerce_to_zero(self):
        purchase = Purchase(qty="lots", unit_price=-4)
        assert purchase.qty == Decimal("0")
        assert purchase.unit_price == Decimal("0")

    def test_total(self):
        purchase = Purchase(qty=3, unit_price="1.50")
        assert purchase.total == Decimal("4.50")

    def test_camel_case_aliases(self):
        """Field names from exported documents are accepted."""
        item_id = uuid4()
        purchase = Purchase.model_validate(
            {
                "unitPrice": "2.25",
                "qty": 2,
                "itemId": str(item_id),
                "createdAt": "2024-01-01T00:00:00",
            }
        )
        assert purchase.unit_price == Decimal("2.25")
        assert purchase.item_id == item_id
        assert purchase.created_at == datetime(2024, 1, 1)

    def test_blank_supplier_is_none(self):
        assert Purchase(supplier="   ").supplier is None
        assert Purchase(supplier=" Acme ").supplier == "Acme"

    def test_missing_date_defaults_to_now(self):
        before = datetime.now()
        purchase = PurchaseFields(date=None)
        assert purchase.date >= before


class TestItem:
    """Tests for Item model."""

    def test_name_is_trimmed(self):
        assert Item(name="  Widget  ").name == "Widget"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            Item(name="   ")

    def test_purchases_claimed_by_item(self):
        """Every purchase carries its owning item's id."""
        item = Item(name="Widget", purchases=[Purchase(item_id=uuid4()), Purchase()])
        assert all(p.item_id == item.id for p in item.purchases)

    def test_null_purchases(self):
        item = Item.model_validate({"name": "Widget", "purchases": None})
        assert item.purchases == []


class TestInventoryDocument:
    """Tests for InventoryDocument model."""

    def test_empty_document(self):
        document = InventoryDocument()
        assert document.version == "1.0"
        assert document.items == []

    def test_validate_nested(self):
        document = InventoryDocument.model_validate(
            {
                "items": [
                    {
                        "name": "Widget",
                        "purchases": [{"qty": 1, "unitPrice": 2, "date": "2024-01-01"}],
                    }
                ]
            }
        )
        assert document.items[0].purchases[0].unit_price == Decimal("2")


class TestSyncReport:
    """Tests for SyncReport."""

    def test_ok_without_failures(self):
        assert SyncReport(synced=2, skipped=1).ok is True

    def test_not_ok_with_failures(self):
        assert SyncReport(synced=1, failed=1, errors=["boom"]).ok is False

    def test_not_ok_with_connection_error(self):
        assert SyncReport(errors=["Database connection failed"]).ok is False
