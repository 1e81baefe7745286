"""Purchase Tracker - Record purchases and follow item price changes."""

from .analytics import compute_item_stats, sort_purchases, summarize_document
from .codec import (
    CSVFormatError,
    FileFormat,
    ImportFormatError,
    InvalidStructureError,
    JSONFormatError,
    MissingColumnError,
    UnsupportedFormatError,
    export_csv,
    export_json,
    import_csv,
    import_json,
    import_text,
)
from .config import ConfigManager
from .data_store import DocumentState, DocumentStore, StorageError
from .inventory_manager import (
    DuplicateItemError,
    InvalidEntryError,
    InventoryManager,
    ItemNotFoundError,
    PurchaseNotFoundError,
)
from .merge import InvalidItemNameError, merge_batch, merge_items, merge_purchase
from .models import (
    DocumentSummary,
    ImportResult,
    InventoryDocument,
    Item,
    ItemStats,
    OperationResult,
    Purchase,
    PurchaseFields,
    SyncReport,
)
from .output_formatter import OutputFormatter
from .sqlite_store import RemoteStore
from .sync import sync_to_remote

__version__ = "0.1.0"

__all__ = [
    "compute_item_stats",
    "ConfigManager",
    "CSVFormatError",
    "DocumentState",
    "DocumentStore",
    "DocumentSummary",
    "DuplicateItemError",
    "export_csv",
    "export_json",
    "FileFormat",
    "import_csv",
    "import_json",
    "import_text",
    "ImportFormatError",
    "ImportResult",
    "InvalidEntryError",
    "InvalidItemNameError",
    "InvalidStructureError",
    "InventoryDocument",
    "InventoryManager",
    "Item",
    "ItemNotFoundError",
    "ItemStats",
    "JSONFormatError",
    "merge_batch",
    "merge_items",
    "merge_purchase",
    "MissingColumnError",
    "OperationResult",
    "OutputFormatter",
    "Purchase",
    "PurchaseFields",
    "PurchaseNotFoundError",
    "RemoteStore",
    "sort_purchases",
    "StorageError",
    "summarize_document",
    "sync_to_remote",
    "SyncReport",
    "UnsupportedFormatError",
]
