"""Tests for the eligibility evaluator."""

from datetime import date, datetime, timedelta, timezone

import pytest

from kitchensathi.expiry.evaluator import (
    CHANNEL_EMAIL,
    CHANNEL_IN_APP,
    SCAN_URGENT,
    Fire,
    NoAction,
    days_until_expiry,
    evaluate,
    select_channels,
)
from kitchensathi.expiry.models import NotificationPolicy, PerishableItem, UserPreferences

NOW = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def _item(days, **kwargs) -> PerishableItem:
    expiry = TODAY + timedelta(days=days) if days is not None else None
    return PerishableItem(id=1, user_id=1, name="Milk", expiry_date=expiry, **kwargs)


class TestDaysUntilExpiry:
    def test_counts_from_start_of_day(self):
        """Late in the day still counts whole calendar days."""
        late = datetime(2025, 1, 10, 23, 59, tzinfo=timezone.utc)
        assert days_until_expiry(date(2025, 1, 11), late) == 1

    def test_today_is_zero(self):
        assert days_until_expiry(TODAY, NOW) == 0

    def test_past_is_negative(self):
        assert days_until_expiry(date(2025, 1, 8), NOW) == -2


class TestDailyPath:
    def test_fires_on_configured_offset(self):
        decision = evaluate(_item(3), UserPreferences(), NOW)
        assert decision == Fire(3, frozenset({CHANNEL_EMAIL, CHANNEL_IN_APP}))

    def test_no_fire_off_offset(self):
        """Two days left is not in {1, 3, 7}."""
        decision = evaluate(_item(3), UserPreferences(), NOW + timedelta(days=1))
        assert isinstance(decision, NoAction)

    def test_no_expiry_date(self):
        assert isinstance(evaluate(_item(None), UserPreferences(), NOW), NoAction)

    def test_master_switch_off(self):
        decision = evaluate(_item(1), UserPreferences(expiry_alerts=False), NOW)
        assert decision == NoAction("user expiry alerts disabled")

    def test_item_disabled(self):
        item = _item(1, policy=NotificationPolicy(enabled=False))
        assert evaluate(item, UserPreferences(), NOW) == NoAction("item notifications disabled")

    def test_latched_item_never_fires(self):
        item = _item(1, notified_for_expiry=True)
        assert isinstance(evaluate(item, UserPreferences(), NOW), NoAction)

    def test_zero_offset_fires_daily(self):
        item = _item(0, policy=NotificationPolicy(days_before_expiry=[0]))
        assert evaluate(item, UserPreferences(), NOW) == Fire(
            0, frozenset({CHANNEL_EMAIL, CHANNEL_IN_APP})
        )

    def test_daily_ignores_expired_today_without_zero_offset(self):
        assert isinstance(evaluate(_item(0), UserPreferences(), NOW), NoAction)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="scan kind"):
            evaluate(_item(1), UserPreferences(), NOW, kind="weekly")


class TestUrgentPath:
    def test_fires_today_without_zero_offset(self):
        decision = evaluate(_item(0), UserPreferences(), NOW, kind=SCAN_URGENT)
        assert isinstance(decision, Fire)
        assert decision.days_until_expiry == 0
        assert decision.urgent is True

    def test_ignores_cycle_latch(self):
        item = _item(0, notified_for_expiry=True)
        assert isinstance(evaluate(item, UserPreferences(), NOW, kind=SCAN_URGENT), Fire)

    def test_debounced_within_interval(self):
        item = _item(0, last_notification_sent=NOW - timedelta(hours=3, minutes=59))
        decision = evaluate(item, UserPreferences(), NOW, kind=SCAN_URGENT)
        assert decision == NoAction("notified recently")

    def test_fires_after_interval(self):
        item = _item(0, last_notification_sent=NOW - timedelta(hours=4))
        assert isinstance(evaluate(item, UserPreferences(), NOW, kind=SCAN_URGENT), Fire)

    def test_custom_interval(self):
        item = _item(0, last_notification_sent=NOW - timedelta(hours=1))
        decision = evaluate(
            item, UserPreferences(), NOW, kind=SCAN_URGENT, resend_interval=timedelta(minutes=30)
        )
        assert isinstance(decision, Fire)

    def test_future_item_not_urgent(self):
        assert isinstance(evaluate(_item(1), UserPreferences(), NOW, kind=SCAN_URGENT), NoAction)

    def test_respects_master_switch(self):
        decision = evaluate(
            _item(0), UserPreferences(expiry_alerts=False), NOW, kind=SCAN_URGENT
        )
        assert isinstance(decision, NoAction)


class TestChannels:
    @pytest.mark.parametrize(
        "item_email, user_email, item_in_app, user_in_app, expected",
        [
            (True, True, True, True, {CHANNEL_EMAIL, CHANNEL_IN_APP}),
            (True, False, True, True, {CHANNEL_IN_APP}),
            (False, True, True, True, {CHANNEL_IN_APP}),
            (True, True, True, False, {CHANNEL_EMAIL}),
            (True, True, False, True, {CHANNEL_EMAIL}),
            (False, False, False, False, set()),
        ],
    )
    def test_both_levels_required(self, item_email, user_email, item_in_app, user_in_app, expected):
        item = _item(
            1,
            policy=NotificationPolicy(
                email_notifications=item_email, in_app_notifications=item_in_app
            ),
        )
        prefs = UserPreferences(email=user_email, in_app=user_in_app)
        assert select_channels(item, prefs) == frozenset(expected)
