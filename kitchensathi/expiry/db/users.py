"""Read access to user records and their notification preferences."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from ..models import User, UserPreferences
from .schema import ensure_schema


class UserDB:
    """Manages the users table."""

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

    def add_user(
        self,
        email: str,
        name: str = "",
        preferences: UserPreferences | None = None,
    ) -> int:
        prefs = preferences or UserPreferences()
        conn = self._get_conn()
        cur = conn.execute(
            """INSERT INTO users
               (email, name, pref_email, pref_in_app, pref_expiry_alerts)
               VALUES (?, ?, ?, ?, ?)""",
            (email, name, int(prefs.email), int(prefs.in_app), int(prefs.expiry_alerts)),
        )
        conn.commit()
        return cur.lastrowid

    def get_user(self, user_id: int) -> User | None:
        conn = self._get_conn()
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return User.from_row(dict(row)) if row else None

    def update_preferences(self, user_id: int, preferences: UserPreferences) -> None:
        conn = self._get_conn()
        conn.execute(
            """UPDATE users
               SET pref_email = ?, pref_in_app = ?, pref_expiry_alerts = ?
               WHERE id = ?""",
            (
                int(preferences.email),
                int(preferences.in_app),
                int(preferences.expiry_alerts),
                user_id,
            ),
        )
        conn.commit()
