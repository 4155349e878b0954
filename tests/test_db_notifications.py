"""Tests for NotificationDB and UserDB."""

from datetime import date, datetime, timedelta, timezone

import pytest

from kitchensathi.expiry.db import NotificationDB, UserDB
from kitchensathi.expiry.models import (
    ExpiryAlertData,
    MealReminderData,
    Notification,
    UserPreferences,
)

NOW = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def users(tmp_path):
    db = UserDB(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def notifications(tmp_path):
    db = NotificationDB(tmp_path / "test.db")
    yield db
    db.close()


@pytest.fixture
def user_id(users):
    return users.add_user("cook@example.com", "Asha")


def _expiry_notification(user_id, item_id=1, created_at=NOW, is_read=False):
    return Notification(
        user_id=user_id,
        title="⏰ Item Expiring Tomorrow",
        message="Milk will expire tomorrow. Use it soon!",
        data=ExpiryAlertData(
            item_id=item_id,
            item_name="Milk",
            expiry_date=date(2025, 1, 11),
            days_until_expiry=1,
        ),
        is_read=is_read,
        created_at=created_at,
    )


def test_add_and_get_user(users):
    uid = users.add_user(
        "a@example.com", "Ravi", UserPreferences(email=False, in_app=True)
    )
    user = users.get_user(uid)
    assert user.email == "a@example.com"
    assert user.name == "Ravi"
    assert user.preferences.email is False
    assert user.preferences.in_app is True
    assert user.preferences.expiry_alerts is True


def test_get_missing_user(users):
    assert users.get_user(42) is None


def test_update_preferences(users, user_id):
    users.update_preferences(user_id, UserPreferences(expiry_alerts=False))
    assert users.get_user(user_id).preferences.expiry_alerts is False


def test_create_assigns_id_and_keeps_payload(notifications, user_id):
    created = notifications.create(_expiry_notification(user_id))
    assert created.id is not None

    stored = notifications.list_for_user(user_id)
    assert len(stored) == 1
    assert stored[0].type == "grocery_expiry"
    assert stored[0].data == created.data
    assert stored[0].created_at == NOW
    assert stored[0].is_read is False


def test_create_sets_created_at_when_missing(notifications, user_id):
    n = _expiry_notification(user_id, created_at=None)
    notifications.create(n)
    assert n.created_at is not None


def test_list_newest_first_and_unread_only(notifications, user_id):
    notifications.create(_expiry_notification(user_id, 1, NOW))
    notifications.create(
        _expiry_notification(user_id, 2, NOW + timedelta(hours=1), is_read=True)
    )

    all_items = notifications.list_for_user(user_id)
    assert [n.data.item_id for n in all_items] == [2, 1]

    unread = notifications.list_for_user(user_id, unread_only=True)
    assert [n.data.item_id for n in unread] == [1]


def test_other_payload_types_round_trip(notifications, user_id):
    notifications.create(
        Notification(
            user_id=user_id,
            title="🌙 Dinner Reminder",
            message="Time for dinner!",
            data=MealReminderData(meal_type="dinner", meal_date=date(2025, 1, 10)),
        )
    )
    stored = notifications.list_for_user(user_id)[0]
    assert stored.type == "meal_reminder"
    assert stored.data.meal_date == date(2025, 1, 10)
    assert stored.data.recipe_name is None


def test_unread_count_and_mark_read(notifications, user_id):
    a = notifications.create(_expiry_notification(user_id, 1))
    notifications.create(_expiry_notification(user_id, 2))
    assert notifications.unread_count(user_id) == 2

    assert notifications.mark_read(a.id, user_id) is True
    assert notifications.unread_count(user_id) == 1

    assert notifications.mark_all_read(user_id) == 1
    assert notifications.unread_count(user_id) == 0


def test_mark_read_scoped_to_owner(notifications, users, user_id):
    other = users.add_user("other@example.com")
    n = notifications.create(_expiry_notification(user_id))
    assert notifications.mark_read(n.id, other) is False
    assert notifications.unread_count(user_id) == 1


def test_delete(notifications, user_id):
    n = notifications.create(_expiry_notification(user_id))
    assert notifications.delete(n.id, user_id) is True
    assert notifications.list_for_user(user_id) == []
