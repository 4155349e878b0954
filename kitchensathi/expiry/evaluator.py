"""Decides whether an item's expiry notification fires. No I/O."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Union

from .dedup import RESEND_INTERVAL, is_cycle_latched, sent_within
from .models import PerishableItem, UserPreferences

CHANNEL_EMAIL = "email"
CHANNEL_IN_APP = "in_app"

SCAN_DAILY = "daily"
SCAN_URGENT = "urgent"


@dataclass(frozen=True)
class NoAction:
    reason: str


@dataclass(frozen=True)
class Fire:
    days_until_expiry: int
    channels: frozenset[str]
    urgent: bool = False


Decision = Union[NoAction, Fire]


def days_until_expiry(expiry_date: date, now: datetime) -> int:
    """Whole days from the start of ``now``'s day to the expiry date.

    Zero means the item expires today, negative means it already expired.
    """
    return (expiry_date - now.date()).days


def select_channels(item: PerishableItem, prefs: UserPreferences) -> frozenset[str]:
    """Each channel needs both the item-level and the user-level flag."""
    channels = set()
    if item.policy.email_notifications and prefs.email:
        channels.add(CHANNEL_EMAIL)
    if item.policy.in_app_notifications and prefs.in_app:
        channels.add(CHANNEL_IN_APP)
    return frozenset(channels)


def evaluate(
    item: PerishableItem,
    prefs: UserPreferences,
    now: datetime,
    *,
    kind: str = SCAN_DAILY,
    resend_interval: timedelta = RESEND_INTERVAL,
) -> Decision:
    """Evaluate one item for the daily or the urgent scan.

    The daily path fires once per expiry cycle when the day count matches one
    of the item's configured offsets. The urgent path fires for items
    expiring today or earlier regardless of offsets and of the cycle latch,
    but at most once per ``resend_interval``.
    """
    if kind not in (SCAN_DAILY, SCAN_URGENT):
        raise ValueError(f"Unknown scan kind: {kind!r}")

    if item.expiry_date is None:
        return NoAction("no expiry date")

    days = days_until_expiry(item.expiry_date, now)

    if not prefs.expiry_alerts:
        return NoAction("user expiry alerts disabled")
    if not item.policy.enabled:
        return NoAction("item notifications disabled")

    if kind == SCAN_URGENT:
        if days > 0:
            return NoAction(f"not expiring today ({days} days left)")
        if sent_within(item, now, resend_interval):
            return NoAction("notified recently")
        return Fire(days, select_channels(item, prefs), urgent=True)

    if is_cycle_latched(item):
        return NoAction("already notified for this expiry date")
    if days not in item.policy.days_before_expiry:
        return NoAction(f"{days} days left is not a configured offset")
    return Fire(days, select_channels(item, prefs))
