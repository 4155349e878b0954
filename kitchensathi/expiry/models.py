"""Data models for perishable items, users and notifications."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Union

STATUS_PENDING = "pending"      # Not yet bought
STATUS_COMPLETED = "completed"  # Bought but not used
STATUS_USED = "used"            # Bought and consumed

ITEM_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_USED)


def _parse_date(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class NotificationPolicy:
    """Per-item notification settings, embedded in the item."""

    enabled: bool = True
    days_before_expiry: list[int] = field(default_factory=lambda: [1, 3, 7])
    email_notifications: bool = True
    in_app_notifications: bool = True

    @classmethod
    def default(cls, days_before: list[int] | None = None) -> NotificationPolicy:
        from .policy import validate_days_before

        if days_before is None:
            return cls()
        return cls(days_before_expiry=validate_days_before(days_before))


@dataclass
class PerishableItem:
    """A grocery item with an optional expiry date, owned by one user."""

    id: int
    user_id: int
    name: str
    quantity: float = 1.0
    unit: str = "pcs"
    status: str = STATUS_PENDING
    expiry_date: date | None = None
    price: float | None = None
    policy: NotificationPolicy = field(default_factory=NotificationPolicy)
    last_notification_sent: datetime | None = None
    notified_for_expiry: bool = False
    used_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> PerishableItem:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            quantity=row["quantity"],
            unit=row["unit"],
            status=row["status"],
            expiry_date=_parse_date(row["expiry_date"]),
            price=row["price"],
            policy=NotificationPolicy(
                enabled=bool(row["notify_enabled"]),
                days_before_expiry=[
                    int(d) for d in row["days_before_expiry"].split(",") if d
                ],
                email_notifications=bool(row["email_notifications"]),
                in_app_notifications=bool(row["in_app_notifications"]),
            ),
            last_notification_sent=_parse_datetime(row["last_notification_sent"]),
            notified_for_expiry=bool(row["notified_for_expiry"]),
            used_at=_parse_datetime(row["used_at"]),
        )


@dataclass
class UserPreferences:
    email: bool = True
    in_app: bool = True
    expiry_alerts: bool = True


@dataclass
class User:
    id: int
    email: str
    name: str = ""
    preferences: UserPreferences = field(default_factory=UserPreferences)

    @classmethod
    def from_row(cls, row: dict) -> User:
        return cls(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            preferences=UserPreferences(
                email=bool(row["pref_email"]),
                in_app=bool(row["pref_in_app"]),
                expiry_alerts=bool(row["pref_expiry_alerts"]),
            ),
        )


# -- Notification payloads ---------------------------------------------------
# Each variant carries exactly the fields its notification type needs.


@dataclass(frozen=True)
class ExpiryAlertData:
    item_id: int
    item_name: str
    expiry_date: date
    days_until_expiry: int

    @property
    def type(self) -> str:
        return "grocery_expiry"

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "expiry_date": self.expiry_date.isoformat(),
            "days_until_expiry": self.days_until_expiry,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ExpiryAlertData:
        return cls(
            item_id=data["item_id"],
            item_name=data["item_name"],
            expiry_date=date.fromisoformat(data["expiry_date"]),
            days_until_expiry=int(data["days_until_expiry"]),
        )


@dataclass(frozen=True)
class RecipeSharedData:
    recipe_id: str
    recipe_name: str
    shared_by: str
    share_id: str

    @property
    def type(self) -> str:
        return "recipe_shared"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> RecipeSharedData:
        return cls(**data)


@dataclass(frozen=True)
class MealReminderData:
    meal_type: str
    meal_date: date
    recipe_name: str | None = None

    @property
    def type(self) -> str:
        return "meal_reminder"

    def to_dict(self) -> dict:
        return {
            "meal_type": self.meal_type,
            "meal_date": self.meal_date.isoformat(),
            "recipe_name": self.recipe_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> MealReminderData:
        return cls(
            meal_type=data["meal_type"],
            meal_date=date.fromisoformat(data["meal_date"]),
            recipe_name=data.get("recipe_name"),
        )


@dataclass(frozen=True)
class ShareStatusData:
    recipe_name: str
    recipient_name: str
    accepted: bool

    @property
    def type(self) -> str:
        return "share_accepted" if self.accepted else "share_rejected"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ShareStatusData:
        return cls(**data)


NotificationData = Union[
    ExpiryAlertData, RecipeSharedData, MealReminderData, ShareStatusData
]

NOTIFICATION_TYPES = (
    "grocery_expiry",
    "recipe_shared",
    "meal_reminder",
    "share_accepted",
    "share_rejected",
)


def payload_from_dict(notification_type: str, data: dict) -> NotificationData:
    """Rebuild the payload variant for a stored notification type."""
    match notification_type:
        case "grocery_expiry":
            return ExpiryAlertData.from_dict(data)
        case "recipe_shared":
            return RecipeSharedData.from_dict(data)
        case "meal_reminder":
            return MealReminderData.from_dict(data)
        case "share_accepted" | "share_rejected":
            return ShareStatusData.from_dict(data)
        case _:
            raise ValueError(
                f"Unknown notification type: {notification_type!r} "
                f"(expected one of: {', '.join(NOTIFICATION_TYPES)})"
            )


@dataclass
class Notification:
    """An in-app notification record. The type tag comes from the payload."""

    user_id: int
    title: str
    message: str
    data: NotificationData
    is_read: bool = False
    id: int | None = None
    created_at: datetime | None = None

    @property
    def type(self) -> str:
        return self.data.type

    @classmethod
    def from_row(cls, row: dict) -> Notification:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            message=row["message"],
            data=payload_from_dict(row["type"], json.loads(row["data_json"])),
            is_read=bool(row["is_read"]),
            created_at=_parse_datetime(row["created_at"]),
        )
