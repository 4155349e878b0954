"""SQLite storage for perishable items, users and notifications."""

from .inventory import InventoryDB
from .notifications import NotificationDB
from .schema import ensure_schema
from .users import UserDB

__all__ = [
    "InventoryDB",
    "NotificationDB",
    "UserDB",
    "ensure_schema",
]
