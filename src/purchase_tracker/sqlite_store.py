"""Relational store for Purchase Tracker, backed by SQLite.

Every public operation returns an OperationResult instead of raising, so
callers can report database failures and carry on. Item names are matched
trimmed and case-insensitively, the same rule the local merge uses.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from uuid import UUID, uuid4

from .analytics import compute_item_stats
from .item_normalizer import clean_item_name
from .models import Item, OperationResult, Purchase, PurchaseFields

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")


def adapt_uuid(uuid_val: UUID) -> str:
    """Adapt UUID to string for SQLite."""
    return str(uuid_val)


def adapt_datetime(dt: datetime) -> str:
    """Adapt datetime to ISO string for SQLite."""
    return dt.isoformat()


def adapt_decimal(value: Decimal) -> str:
    """Adapt Decimal to its exact string form for SQLite."""
    return str(value)


def convert_decimal(value: bytes) -> Decimal:
    """Convert a NUMERIC column back to Decimal."""
    return Decimal(value.decode())


# Register adapters and converters
sqlite3.register_adapter(UUID, adapt_uuid)
sqlite3.register_adapter(datetime, adapt_datetime)
sqlite3.register_adapter(Decimal, adapt_decimal)
sqlite3.register_converter("NUMERIC", convert_decimal)


def to_numeric(value: Decimal) -> Decimal:
    """Round an amount to the two decimal places the schema stores."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RemoteStore:
    """Manages relational persistence of items and purchases."""

    def __init__(self, db_path: Path | None = None, timeout: float = 5.0):
        """Initialize remote store.

        Args:
            db_path: Path to the SQLite database file. Defaults to ./data/inventory.db
            timeout: Seconds to wait on a locked database
        """
        if db_path is None:
            db_path = Path.cwd() / "data" / "inventory.db"
        self.db_path = db_path
        self.timeout = timeout
        self._ensure_directories()
        self._init_database()

    def _ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self):
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.timeout,
            detect_types=sqlite3.PARSE_DECLTYPES,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize database schema if not exists."""
        with self._get_connection() as conn:
            conn.executescript("""
                -- Schema version tracking
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                -- Inventory items
                CREATE TABLE IF NOT EXISTS items (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                -- Purchase records
                CREATE TABLE IF NOT EXISTS purchases (
                    id TEXT PRIMARY KEY,
                    item_id TEXT NOT NULL REFERENCES items(id) ON DELETE CASCADE,
                    date TEXT NOT NULL,
                    qty NUMERIC(10,2) NOT NULL,
                    unit_price NUMERIC(10,2) NOT NULL,
                    supplier TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_purchases_item_id ON purchases(item_id);
                CREATE INDEX IF NOT EXISTS idx_purchases_date ON purchases(date);
                CREATE INDEX IF NOT EXISTS idx_items_name ON items(name);

                -- Refresh updated_at whenever an item row changes
                CREATE TRIGGER IF NOT EXISTS update_items_updated_at
                    AFTER UPDATE ON items
                    FOR EACH ROW
                    WHEN NEW.updated_at = OLD.updated_at
                BEGIN
                    UPDATE items
                    SET updated_at = strftime('%Y-%m-%dT%H:%M:%f', 'now', 'localtime')
                    WHERE id = NEW.id;
                END;

                -- Record schema version
                INSERT OR IGNORE INTO schema_version (version) VALUES (1);
            """)

    # --- Row mapping ---

    def _row_to_purchase(self, row: sqlite3.Row) -> Purchase:
        return Purchase(
            id=UUID(row["id"]),
            item_id=UUID(row["item_id"]),
            date=datetime.fromisoformat(row["date"]),
            qty=row["qty"],
            unit_price=row["unit_price"],
            supplier=row["supplier"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _load_item(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Item:
        purchase_rows = conn.execute(
            "SELECT * FROM purchases WHERE item_id = ? ORDER BY date DESC, rowid ASC",
            (row["id"],),
        ).fetchall()
        return Item(
            id=UUID(row["id"]),
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            purchases=[self._row_to_purchase(r) for r in purchase_rows],
        )

    def _find_item_row(self, conn: sqlite3.Connection, item_id: UUID | str) -> sqlite3.Row | None:
        return conn.execute("SELECT * FROM items WHERE id = ?", (str(item_id),)).fetchone()

    def _insert_item(self, conn: sqlite3.Connection, name: str) -> UUID:
        item_id = uuid4()
        now = datetime.now()
        conn.execute(
            "INSERT INTO items (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (item_id, name, now, now),
        )
        return item_id

    def _insert_purchase(
        self,
        conn: sqlite3.Connection,
        item_id: UUID | str,
        fields: PurchaseFields,
        purchase_id: UUID | None,
    ) -> Purchase:
        purchase = Purchase(
            id=purchase_id or uuid4(),
            item_id=UUID(str(item_id)),
            date=fields.date,
            qty=to_numeric(fields.qty),
            unit_price=to_numeric(fields.unit_price),
            supplier=fields.supplier,
        )
        conn.execute(
            """
            INSERT INTO purchases
            (id, item_id, date, qty, unit_price, supplier, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                purchase.id,
                purchase.item_id,
                purchase.date,
                purchase.qty,
                purchase.unit_price,
                purchase.supplier,
                purchase.created_at,
            ),
        )
        return purchase

    # --- Operations ---

    def check_connection(self) -> OperationResult:
        """Check that the database answers queries."""
        try:
            with self._get_connection() as conn:
                conn.execute("SELECT 1").fetchone()
            return OperationResult(
                success=True,
                data={"connected": True},
                message="Database connected successfully",
            )
        except sqlite3.Error as e:
            logger.exception("Database connection check failed")
            return OperationResult(
                success=False,
                data={"connected": False},
                message=f"Database connection failed: {e}",
            )

    def get_all_items(self) -> OperationResult:
        """Fetch every item with its purchases, newest item first."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM items ORDER BY created_at DESC, rowid DESC"
                ).fetchall()
                items = [self._load_item(conn, row) for row in rows]
            return OperationResult(
                success=True,
                data=items,
                message=f"Successfully retrieved {len(items)} items",
            )
        except sqlite3.Error as e:
            logger.exception("Error fetching items")
            return OperationResult(success=False, message=f"Failed to fetch items: {e}")

    def add_item(self, name: str) -> OperationResult:
        """Create an item by name."""
        cleaned = clean_item_name(name)
        if not cleaned:
            return OperationResult(success=False, message="Item name is required")
        try:
            with self._get_connection() as conn:
                item_id = self._insert_item(conn, cleaned)
                item = self._load_item(conn, self._find_item_row(conn, item_id))
            return OperationResult(
                success=True, data=item, message=f"Successfully added item: {cleaned}"
            )
        except sqlite3.Error as e:
            logger.exception("Error adding item %r", cleaned)
            return OperationResult(success=False, message=f"Failed to add item: {e}")

    def add_purchase(
        self,
        item_id: UUID | str,
        fields: PurchaseFields,
        purchase_id: UUID | None = None,
    ) -> OperationResult:
        """Add a purchase to an existing item."""
        try:
            with self._get_connection() as conn:
                purchase = self._insert_purchase(conn, item_id, fields, purchase_id)
            return OperationResult(
                success=True, data=purchase, message="Successfully added purchase"
            )
        except sqlite3.Error as e:
            logger.exception("Error adding purchase to item %s", item_id)
            return OperationResult(success=False, message=f"Failed to add purchase: {e}")

    def add_item_with_purchase(
        self,
        name: str,
        fields: PurchaseFields,
        purchase_id: UUID | None = None,
    ) -> OperationResult:
        """Add a purchase under a name, creating the item if needed.

        The item lookup and both inserts share one transaction.
        """
        cleaned = clean_item_name(name)
        if not cleaned:
            return OperationResult(success=False, message="Item name is required")
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT id FROM items WHERE name = ? LIMIT 1", (cleaned,)
                ).fetchone()
                is_new_item = row is None
                item_id = self._insert_item(conn, cleaned) if is_new_item else UUID(row["id"])
                purchase = self._insert_purchase(conn, item_id, fields, purchase_id)

            message = (
                "Successfully added item and purchase"
                if is_new_item
                else "Successfully added purchase to existing item"
            )
            return OperationResult(
                success=True,
                data={"item_id": item_id, "purchase": purchase, "is_new_item": is_new_item},
                message=message,
            )
        except sqlite3.Error as e:
            logger.exception("Error adding item with purchase %r", cleaned)
            return OperationResult(
                success=False, message=f"Failed to add item with purchase: {e}"
            )

    def get_item(self, item_id: UUID | str) -> OperationResult:
        """Fetch one item with its purchases, newest purchase first."""
        try:
            with self._get_connection() as conn:
                row = self._find_item_row(conn, item_id)
                item = self._load_item(conn, row) if row else None
            return OperationResult(
                success=True,
                data=item,
                message="Item found" if item else "Item not found",
            )
        except sqlite3.Error as e:
            logger.exception("Error fetching item %s", item_id)
            return OperationResult(success=False, message=f"Failed to fetch item: {e}")

    def has_purchase(self, purchase_id: UUID | str) -> OperationResult:
        """Whether a purchase with this id is already stored."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT 1 FROM purchases WHERE id = ?", (str(purchase_id),)
                ).fetchone()
            return OperationResult(
                success=True,
                data=row is not None,
                message="Purchase exists" if row else "Purchase not found",
            )
        except sqlite3.Error as e:
            logger.exception("Error looking up purchase %s", purchase_id)
            return OperationResult(success=False, message=f"Failed to look up purchase: {e}")

    def delete_purchase(self, purchase_id: UUID | str) -> OperationResult:
        """Delete one purchase; its item and siblings are untouched."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM purchases WHERE id = ?", (str(purchase_id),)
                ).fetchone()
                deleted = self._row_to_purchase(row) if row else None
                conn.execute("DELETE FROM purchases WHERE id = ?", (str(purchase_id),))
            return OperationResult(
                success=True, data=deleted, message="Purchase deleted successfully"
            )
        except sqlite3.Error as e:
            logger.exception("Error deleting purchase %s", purchase_id)
            return OperationResult(success=False, message=f"Failed to delete purchase: {e}")

    def delete_item(self, item_id: UUID | str) -> OperationResult:
        """Delete an item; its purchases go with it."""
        try:
            with self._get_connection() as conn:
                row = self._find_item_row(conn, item_id)
                deleted = self._load_item(conn, row) if row else None
                conn.execute("DELETE FROM items WHERE id = ?", (str(item_id),))
            return OperationResult(
                success=True,
                data=deleted,
                message="Item and all its purchases deleted successfully",
            )
        except sqlite3.Error as e:
            logger.exception("Error deleting item %s", item_id)
            return OperationResult(success=False, message=f"Failed to delete item: {e}")

    def update_item_name(self, item_id: UUID | str, new_name: str) -> OperationResult:
        """Rename an item. The updated_at trigger stamps the change."""
        cleaned = clean_item_name(new_name)
        if not cleaned:
            return OperationResult(success=False, message="Item name is required")
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "UPDATE items SET name = ? WHERE id = ?", (cleaned, str(item_id))
                )
                row = self._find_item_row(conn, item_id)
                item = self._load_item(conn, row) if row else None
            return OperationResult(
                success=True, data=item, message="Item name updated successfully"
            )
        except sqlite3.Error as e:
            logger.exception("Error updating item %s", item_id)
            return OperationResult(success=False, message=f"Failed to update item: {e}")

    def search_items(self, search_term: str) -> OperationResult:
        """Find items whose name contains the term, ignoring case."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM items
                    WHERE name LIKE '%' || ? || '%' ESCAPE '\\'
                    ORDER BY name
                    """,
                    (_escape_like(search_term),),
                ).fetchall()
                items = [self._load_item(conn, row) for row in rows]
            return OperationResult(
                success=True,
                data=items,
                message=f'Found {len(items)} items matching "{search_term}"',
            )
        except sqlite3.Error as e:
            logger.exception("Error searching items for %r", search_term)
            return OperationResult(
                success=False, data=[], message=f"Failed to search items: {e}"
            )

    def get_item_stats(self, item_id: UUID | str) -> OperationResult:
        """Derived statistics for one stored item."""
        found = self.get_item(item_id)
        if not found.success or found.data is None:
            return OperationResult(success=False, message="Item not found")
        return OperationResult(
            success=True,
            data=compute_item_stats(found.data.purchases),
            message="Item statistics calculated",
        )
