"""Guards against sending the same expiry notification twice.

The cycle latch (``notified_for_expiry``) stays set until the item's expiry
date is changed. The minimum resend interval on ``last_notification_sent`` is
only consulted by the urgent same-day path.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .db import InventoryDB
    from .models import PerishableItem

logger = logging.getLogger(__name__)

RESEND_INTERVAL = timedelta(hours=4)


def is_cycle_latched(item: PerishableItem) -> bool:
    return item.notified_for_expiry


def sent_within(
    item: PerishableItem, now: datetime, interval: timedelta = RESEND_INTERVAL
) -> bool:
    """True if the last send happened less than ``interval`` before ``now``."""
    last = item.last_notification_sent
    if last is None:
        return False
    return now - last < interval


class DedupTracker:
    """Persists the dedup state of an item after a send attempt."""

    def __init__(
        self, inventory: InventoryDB, resend_interval: timedelta = RESEND_INTERVAL
    ) -> None:
        self._inventory = inventory
        self.resend_interval = resend_interval

    def record_send(self, item: PerishableItem, now: datetime) -> bool:
        """Latch the item and stamp the send time.

        The in-memory item is updated too, so later checks in the same scan
        see the new state.
        """
        updated = self._inventory.mark_notified(item.id, now)
        if not updated:
            logger.warning("Item %s vanished before it could be marked notified", item.id)
            return False
        item.notified_for_expiry = True
        item.last_notification_sent = now
        return True
