"""Core data models for Purchase Tracker."""

import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

ZERO = Decimal("0")

_FALLBACK_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%d.%m.%Y")


def to_amount(value: Any) -> Decimal:
    """Coerce a quantity or price to a non-negative Decimal.

    Missing, non-numeric, non-finite and negative values all become zero.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return ZERO
        amount = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return ZERO
    else:
        return ZERO

    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def parse_purchase_date(value: Any) -> datetime:
    """Parse a purchase date into a naive datetime.

    Date-only values mean midnight. Aware datetimes are converted to local
    time and made naive, the same clock as the datetime.now() defaults, so
    every purchase date can be compared with every other.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Date is required")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None
            for fmt in _FALLBACK_DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
            if parsed is None:
                raise ValueError(f"Invalid date format: {value!r}")
    else:
        raise ValueError(f"Invalid date format: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


class PurchaseFields(BaseModel):
    """Fields describing a purchase before it is attached to an item."""

    date: datetime = Field(default_factory=datetime.now)
    qty: Decimal = ZERO
    unit_price: Decimal = Field(
        default=ZERO, validation_alias=AliasChoices("unit_price", "unitPrice")
    )
    supplier: str | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return datetime.now()
        return parse_purchase_date(v)

    @field_validator("qty", "unit_price", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> Decimal:
        return to_amount(v)

    @field_validator("supplier", mode="before")
    @classmethod
    def _blank_supplier(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None


class Purchase(PurchaseFields):
    """One recorded acquisition of an item."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    item_id: UUID | None = Field(
        default=None, validation_alias=AliasChoices("item_id", "itemId")
    )
    created_at: datetime = Field(
        default_factory=datetime.now, validation_alias=AliasChoices("created_at", "createdAt")
    )

    @property
    def total(self) -> Decimal:
        """Amount spent on this purchase."""
        return self.qty * self.unit_price


class Item(BaseModel):
    """An inventory article tracked by name."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    created_at: datetime = Field(
        default_factory=datetime.now, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: datetime = Field(
        default_factory=datetime.now, validation_alias=AliasChoices("updated_at", "updatedAt")
    )
    purchases: list[Purchase] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _trim_name(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Item name is required")
        return v.strip()

    @field_validator("purchases", mode="before")
    @classmethod
    def _null_purchases(cls, v: Any) -> Any:
        return [] if v is None else v

    @model_validator(mode="after")
    def _claim_purchases(self) -> "Item":
        for purchase in self.purchases:
            purchase.item_id = self.id
        return self


class InventoryDocument(BaseModel):
    """The complete collection of items at a point in time."""

    version: str = "1.0"
    last_updated: datetime = Field(default_factory=datetime.now)
    items: list[Item] = Field(default_factory=list)


class ItemStats(BaseModel):
    """Values derived from an item's purchase list."""

    last: Purchase | None = None
    previous: Purchase | None = None
    price_change: Decimal | None = None
    total_spent: Decimal = ZERO
    average_price: Decimal = ZERO
    purchase_count: int = 0


class DocumentSummary(BaseModel):
    """Totals across a whole document."""

    item_count: int = 0
    purchase_count: int = 0
    total_spent: Decimal = ZERO


class OperationResult(BaseModel):
    """Uniform result of a remote store operation."""

    success: bool
    data: Any = None
    message: str = ""


class SyncReport(BaseModel):
    """Outcome of pushing a local document to the remote store."""

    synced: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when nothing failed."""
        return self.failed == 0 and not self.errors


class ImportResult(BaseModel):
    """Outcome of importing a CSV or JSON payload."""

    format: Literal["csv", "json"]
    document: InventoryDocument
    rows: int = 0
    items: int = 0
    message: str = ""
