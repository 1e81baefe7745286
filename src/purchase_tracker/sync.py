"""Push the local document to the remote store."""

import logging

from .models import InventoryDocument, PurchaseFields, SyncReport
from .sqlite_store import RemoteStore

logger = logging.getLogger(__name__)


def sync_to_remote(document: InventoryDocument, remote: RemoteStore) -> SyncReport:
    """Copy every purchase of every item to the remote store.

    Items are matched by name on the remote side. Purchases keep their local
    id, so ones already stored remotely are skipped and a repeated sync adds
    nothing. A failed write is counted and the sync moves on to the next
    purchase.

    Args:
        document: Local document to push
        remote: Destination store

    Returns:
        SyncReport with synced/skipped/failed counts
    """
    report = SyncReport()

    connection = remote.check_connection()
    if not connection.success:
        report.errors.append(connection.message)
        return report

    for item in document.items:
        for purchase in item.purchases:
            exists = remote.has_purchase(purchase.id)
            if exists.success and exists.data:
                report.skipped += 1
                continue

            fields = PurchaseFields(
                date=purchase.date,
                qty=purchase.qty,
                unit_price=purchase.unit_price,
                supplier=purchase.supplier,
            )
            result = remote.add_item_with_purchase(item.name, fields, purchase_id=purchase.id)
            if result.success:
                report.synced += 1
            else:
                report.failed += 1
                report.errors.append(f"{item.name}: {result.message}")
                logger.warning("Failed to sync purchase %s of %r", purchase.id, item.name)

    logger.info(
        "Sync finished: %d synced, %d skipped, %d failed",
        report.synced,
        report.skipped,
        report.failed,
    )
    return report
