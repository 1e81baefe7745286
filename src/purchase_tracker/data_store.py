"""Local persistence for Purchase Tracker.

The local store is a key-value slot store: each key maps to one JSON file in
the data directory. The whole document lives under a single key and is
rewritten after every successful mutation through DocumentState.
"""

import json
import logging
import os
import tempfile
from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from .models import InventoryDocument

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "inventoryApp.data"


class StorageError(Exception):
    """Raised when the local storage slot cannot be written."""


class JSONEncoder(json.JSONEncoder):
    """JSON encoder for CLI output; amounts are rendered as numbers."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, time):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


def dump_document(document: InventoryDocument) -> str:
    """Serialize a document to JSON text.

    Decimal amounts are written as exact decimal strings.
    """
    return json.dumps(document.model_dump(mode="json"), indent=2)


def load_json(text: str) -> Any:
    """Parse JSON text keeping decimal numbers exact."""
    return json.loads(text, parse_float=Decimal)


class DocumentStore:
    """Manages the key-value storage slots holding the document."""

    def __init__(self, data_dir: Path | None = None, storage_key: str = DEFAULT_STORAGE_KEY):
        """Initialize document store.

        Args:
            data_dir: Directory for slot files. Defaults to ./data
            storage_key: Key of the slot holding the document
        """
        self.data_dir = data_dir or Path.cwd() / "data"
        self.storage_key = storage_key
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create the data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _slot_path(self, key: str) -> Path:
        """Path to the file backing a storage key."""
        return self.data_dir / f"{key}.json"

    # --- Slot Operations ---

    def get_item(self, key: str) -> str | None:
        """Read the raw text stored under a key.

        Returns:
            Stored text, or None if the key has never been written
        """
        path = self._slot_path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        """Store text under a key, replacing any previous value.

        Raises:
            StorageError: If the slot file cannot be written
        """
        path = self._slot_path(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error("Failed to write storage slot %s: %s", key, e)
            raise StorageError(f"Failed to save data: {e}") from e

    def remove_item(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if the key existed
        """
        path = self._slot_path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    def keys(self) -> list[str]:
        """List stored keys."""
        return sorted(p.stem for p in self.data_dir.glob("*.json"))

    # --- Document Operations ---

    def load_document(self) -> InventoryDocument:
        """Load the document from its slot.

        A missing slot yields an empty document. A corrupt slot is logged,
        copied aside as ``<key>.corrupt`` and also yields an empty document.
        """
        raw = self.get_item(self.storage_key)
        if raw is None:
            return InventoryDocument()

        try:
            return InventoryDocument.model_validate(load_json(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("Stored document under %s is unreadable: %s", self.storage_key, e)
            self.set_item(f"{self.storage_key}.corrupt", raw)
            return InventoryDocument()

    def save_document(self, document: InventoryDocument) -> None:
        """Write the document to its slot.

        Raises:
            StorageError: If the slot cannot be written
        """
        document.last_updated = datetime.now()
        self.set_item(self.storage_key, dump_document(document))
        logger.debug(
            "Saved %d items to %s", len(document.items), self._slot_path(self.storage_key)
        )

    def clear_document(self) -> bool:
        """Remove the stored document entirely."""
        return self.remove_item(self.storage_key)


class DocumentState:
    """Explicit owner of the in-memory document.

    Changes go through mutate(), which saves after every successful change.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._document: InventoryDocument | None = None

    @property
    def document(self) -> InventoryDocument:
        """Current document, loaded on first access."""
        if self._document is None:
            self._document = self.store.load_document()
        return self._document

    def load(self) -> InventoryDocument:
        """(Re)load the document from the store."""
        self._document = self.store.load_document()
        return self._document

    def mutate(
        self, fn: Callable[[InventoryDocument], InventoryDocument | None]
    ) -> InventoryDocument:
        """Apply a change and persist it.

        fn receives a deep copy of the current document and either edits it
        in place or returns a replacement. If fn raises, or saving fails, the
        previous document stays current and the exception propagates.
        """
        working = self.document.model_copy(deep=True)
        result = fn(working)
        updated = result if result is not None else working

        previous = self._document
        self._document = updated
        try:
            self.save()
        except StorageError:
            self._document = previous
            raise
        return updated

    def save(self) -> None:
        """Persist the current document."""
        self.store.save_document(self.document)
