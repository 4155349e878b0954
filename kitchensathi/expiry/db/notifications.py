"""Notification record storage.

The expiry scanner only ever appends. Reading and marking records as read
belongs to the user-facing notification API.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from ..models import Notification
from .schema import ensure_schema


class NotificationDB:
    """Manages the notifications table."""

    def __init__(self, db_path: str | Path = "~/.config/kitchensathi/kitchen.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def create(self, notification: Notification) -> Notification:
        """Append a notification and return it with id and created_at set."""
        created_at = notification.created_at or datetime.now(timezone.utc)
        conn = self._get_conn()
        cur = conn.execute(
            """INSERT INTO notifications
               (user_id, type, title, message, data_json, is_read, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                notification.user_id,
                notification.type,
                notification.title,
                notification.message,
                json.dumps(notification.data.to_dict(), ensure_ascii=False),
                int(notification.is_read),
                created_at.isoformat(),
            ),
        )
        conn.commit()
        notification.id = cur.lastrowid
        notification.created_at = created_at
        return notification

    def list_for_user(
        self, user_id: int, *, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        """Return a user's notifications, newest first."""
        conn = self._get_conn()
        query = "SELECT * FROM notifications WHERE user_id = ?"
        if unread_only:
            query += " AND is_read = 0"
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        rows = conn.execute(query, (user_id, limit)).fetchall()
        return [Notification.from_row(dict(r)) for r in rows]

    def unread_count(self, user_id: int) -> int:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM notifications WHERE user_id = ? AND is_read = 0",
            (user_id,),
        ).fetchone()
        return row["n"]

    def mark_read(self, notification_id: int, user_id: int) -> bool:
        conn = self._get_conn()
        cur = conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        conn.commit()
        return cur.rowcount == 1

    def mark_all_read(self, user_id: int) -> int:
        conn = self._get_conn()
        cur = conn.execute(
            "UPDATE notifications SET is_read = 1 WHERE user_id = ? AND is_read = 0",
            (user_id,),
        )
        conn.commit()
        return cur.rowcount

    def delete(self, notification_id: int, user_id: int) -> bool:
        conn = self._get_conn()
        cur = conn.execute(
            "DELETE FROM notifications WHERE id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        conn.commit()
        return cur.rowcount == 1
