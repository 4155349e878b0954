"""Perishable item storage and expiry queries."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterable

from ..models import ITEM_STATUSES, STATUS_USED, NotificationPolicy, PerishableItem
from ..policy import validate_days_before
from .schema import ensure_schema


def _join_days(days: list[int]) -> str:
    return ",".join(str(d) for d in validate_days_before(days))


class InventoryDB:
    """Manages the perishable_items table."""

    def __init__(
        self,
        db_path: str | Path = "~/.config/kitchensathi/kitchen.db",
        default_days_before: list[int] | None = None,
    ) -> None:
        self._db_path = db_path
        self._default_days_before = default_days_before
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def add_item(
        self,
        user_id: int,
        name: str,
        *,
        quantity: float = 1.0,
        unit: str = "pcs",
        status: str = "pending",
        expiry_date: date | None = None,
        price: float | None = None,
        policy: NotificationPolicy | None = None,
    ) -> int:
        """Insert a new item. A default policy is applied when none is given.

        Returns:
            The inserted row ID.
        """
        if status not in ITEM_STATUSES:
            raise ValueError(f"Unknown item status: {status!r}")
        policy = policy or NotificationPolicy.default(self._default_days_before)
        conn = self._get_conn()
        cur = conn.execute(
            """INSERT INTO perishable_items
               (user_id, name, quantity, unit, status, expiry_date, price,
                notify_enabled, days_before_expiry, email_notifications,
                in_app_notifications)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user_id,
                name,
                quantity,
                unit,
                status,
                expiry_date.isoformat() if expiry_date else None,
                price,
                int(policy.enabled),
                _join_days(policy.days_before_expiry),
                int(policy.email_notifications),
                int(policy.in_app_notifications),
            ),
        )
        conn.commit()
        return cur.lastrowid

    def get_item(self, item_id: int) -> PerishableItem | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT * FROM perishable_items WHERE id = ?", (item_id,)
        ).fetchone()
        return PerishableItem.from_row(dict(row)) if row else None

    def find_expiring_between(
        self, start: date, end: date, statuses: Iterable[str]
    ) -> list[PerishableItem]:
        """Return items whose expiry_date is in [start, end] with a matching status.

        Notification preferences are not filtered here.
        """
        statuses = list(statuses)
        if not statuses:
            return []
        placeholders = ", ".join("?" for _ in statuses)
        conn = self._get_conn()
        rows = conn.execute(
            f"""SELECT * FROM perishable_items
                WHERE expiry_date IS NOT NULL
                  AND expiry_date >= ?
                  AND expiry_date <= ?
                  AND status IN ({placeholders})""",
            (start.isoformat(), end.isoformat(), *statuses),
        ).fetchall()
        return [PerishableItem.from_row(dict(r)) for r in rows]

    def find_urgent(
        self, today: date, statuses: Iterable[str] = ("pending", "completed")
    ) -> list[PerishableItem]:
        """Return items expiring within the given calendar day."""
        return self.find_expiring_between(today, today, statuses)

    def mark_notified(self, item_id: int, sent_at: datetime) -> bool:
        """Set the dedup fields of a single item without touching others.

        Returns:
            True if the item exists and was updated.
        """
        conn = self._get_conn()
        cur = conn.execute(
            """UPDATE perishable_items
               SET notified_for_expiry = 1,
                   last_notification_sent = ?
               WHERE id = ?""",
            (sent_at.isoformat(), item_id),
        )
        conn.commit()
        return cur.rowcount == 1

    def update_expiry(
        self,
        item_id: int,
        *,
        expiry_date: date | None = None,
        policy: NotificationPolicy | None = None,
    ) -> PerishableItem | None:
        """Change an item's expiry date and/or notification policy.

        Storing a different expiry date starts a new expiry cycle, so the
        notified latch and last send time are cleared.
        """
        item = self.get_item(item_id)
        if item is None:
            return None

        conn = self._get_conn()
        if expiry_date is not None and expiry_date != item.expiry_date:
            conn.execute(
                """UPDATE perishable_items
                   SET expiry_date = ?,
                       notified_for_expiry = 0,
                       last_notification_sent = NULL,
                       updated_at = datetime('now')
                   WHERE id = ?""",
                (expiry_date.isoformat(), item_id),
            )
        if policy is not None:
            conn.execute(
                """UPDATE perishable_items
                   SET notify_enabled = ?,
                       days_before_expiry = ?,
                       email_notifications = ?,
                       in_app_notifications = ?,
                       updated_at = datetime('now')
                   WHERE id = ?""",
                (
                    int(policy.enabled),
                    _join_days(policy.days_before_expiry),
                    int(policy.email_notifications),
                    int(policy.in_app_notifications),
                    item_id,
                ),
            )
        conn.commit()
        return self.get_item(item_id)

    def set_status(self, item_id: int, status: str) -> None:
        """Change the lifecycle status. Marking as used records used_at once."""
        if status not in ITEM_STATUSES:
            raise ValueError(f"Unknown item status: {status!r}")
        conn = self._get_conn()
        conn.execute(
            """UPDATE perishable_items
               SET status = ?,
                   used_at = CASE
                       WHEN ? = ? AND used_at IS NULL THEN datetime('now')
                       ELSE used_at
                   END,
                   updated_at = datetime('now')
               WHERE id = ?""",
            (status, status, STATUS_USED, item_id),
        )
        conn.commit()

    def get_expiry_stats(
        self,
        today: date,
        days: int = 7,
        statuses: Iterable[str] = ("pending", "completed"),
    ) -> dict:
        """Count items expiring in the next N days, grouped by date."""
        items = self.find_expiring_between(
            today, today + timedelta(days=days), statuses
        )
        by_date: dict[str, list[str]] = {}
        for item in sorted(items, key=lambda i: (i.expiry_date, i.name)):
            by_date.setdefault(item.expiry_date.isoformat(), []).append(item.name)
        return {
            "total_expiring_items": len(items),
            "by_date": [
                {"date": d, "count": len(names), "items": names}
                for d, names in by_date.items()
            ],
        }

    def delete_item(self, item_id: int) -> None:
        """Delete an item by ID."""
        conn = self._get_conn()
        conn.execute("DELETE FROM perishable_items WHERE id = ?", (item_id,))
        conn.commit()
