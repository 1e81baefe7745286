"""Shared test fixtures for Purchase Tracker."""

from datetime import datetime
from decimal import Decimal

import pytest

from purchase_tracker.data_store import DocumentState, DocumentStore
from purchase_tracker.inventory_manager import InventoryManager
from purchase_tracker.models import InventoryDocument, Item, Purchase
from purchase_tracker.sqlite_store import RemoteStore


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def document_store(temp_data_dir):
    """Create a DocumentStore with temporary directory."""
    return DocumentStore(data_dir=temp_data_dir)


@pytest.fixture
def document_state(document_store):
    """Create a DocumentState over the temporary store."""
    return DocumentState(document_store)


@pytest.fixture
def manager(document_state):
    """Create an InventoryManager with temporary storage."""
    return InventoryManager(document_state)


@pytest.fixture
def remote_store(tmp_path):
    """Create a RemoteStore with a temporary database."""
    return RemoteStore(db_path=tmp_path / "remote" / "inventory.db")


@pytest.fixture
def widget_item():
    """Widget bought twice, newest purchase listed first."""
    return Item(
        name="Widget",
        purchases=[
            Purchase(
                date=datetime(2024, 1, 2),
                qty=Decimal("5"),
                unit_price=Decimal("27"),
                supplier="Acme",
            ),
            Purchase(
                date=datetime(2024, 1, 1),
                qty=Decimal("10"),
                unit_price=Decimal("25.5"),
                supplier="Acme",
            ),
        ],
    )


@pytest.fixture
def sample_document(widget_item):
    """Document with a purchased item and an item without purchases."""
    return InventoryDocument(items=[widget_item, Item(name="Gadget")])
