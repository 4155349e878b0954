"""One pass of candidate lookup, eligibility evaluation and dispatch."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable

from .dedup import RESEND_INTERVAL
from .evaluator import SCAN_DAILY, SCAN_URGENT, Fire, evaluate

if TYPE_CHECKING:
    from .db import InventoryDB, UserDB
    from .dispatcher import NotificationDispatcher
    from .models import PerishableItem, User

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Outcome counters for a single scan."""

    kind: str
    started_at: datetime
    candidates: int = 0
    notified: int = 0
    emails_sent: int = 0
    skipped: int = 0
    failed: int = 0
    by_days: Counter = field(default_factory=Counter)


class ExpiryScanner:
    """Finds items nearing expiry and dispatches notifications for them.

    A failing inventory query aborts the whole scan by raising. Failures for
    a single item or user are logged and the scan moves on.
    """

    def __init__(
        self,
        inventory: InventoryDB,
        users: UserDB,
        dispatcher: NotificationDispatcher,
        *,
        lookahead_days: int = 30,
        statuses: Iterable[str] = ("pending", "completed"),
        resend_interval: timedelta = RESEND_INTERVAL,
    ) -> None:
        self._inventory = inventory
        self._users = users
        self._dispatcher = dispatcher
        self._lookahead = timedelta(days=lookahead_days)
        self._statuses = tuple(statuses)
        self._resend_interval = resend_interval

    async def run_daily_scan(self, now: datetime) -> ScanResult:
        today = now.date()
        items = self._inventory.find_expiring_between(
            today, today + self._lookahead, self._statuses
        )
        logger.info(
            "Daily expiry scan: %d items expiring by %s",
            len(items),
            today + self._lookahead,
        )
        return await self._scan(SCAN_DAILY, items, now)

    async def run_urgent_scan(self, now: datetime) -> ScanResult:
        items = self._inventory.find_urgent(now.date(), self._statuses)
        logger.info("Urgent expiry scan: %d items expiring today", len(items))
        return await self._scan(SCAN_URGENT, items, now)

    async def _scan(
        self, kind: str, items: list[PerishableItem], now: datetime
    ) -> ScanResult:
        result = ScanResult(kind=kind, started_at=now, candidates=len(items))

        by_user: dict[int, list[PerishableItem]] = {}
        for item in items:
            by_user.setdefault(item.user_id, []).append(item)

        for user_id, user_items in by_user.items():
            try:
                user = self._users.get_user(user_id)
            except Exception:
                logger.exception("Failed to load user %s", user_id)
                result.failed += len(user_items)
                continue
            if user is None:
                logger.warning(
                    "Skipping %d items of missing user %s", len(user_items), user_id
                )
                result.skipped += len(user_items)
                continue

            for item in user_items:
                try:
                    await self._process_item(kind, item, user, now, result)
                except Exception:
                    logger.exception("Failed to process item %s (%s)", item.id, item.name)
                    result.failed += 1

        logger.info(
            "%s scan finished: %d notified, %d emails, %d skipped, %d failed",
            kind.capitalize(),
            result.notified,
            result.emails_sent,
            result.skipped,
            result.failed,
        )
        if result.by_days:
            logger.info("Notification summary by days until expiry: %s", dict(result.by_days))
        return result

    async def _process_item(
        self,
        kind: str,
        item: PerishableItem,
        user: User,
        now: datetime,
        result: ScanResult,
    ) -> None:
        decision = evaluate(
            item,
            user.preferences,
            now,
            kind=kind,
            resend_interval=self._resend_interval,
        )
        if not isinstance(decision, Fire):
            logger.debug("Item %s (%s): %s", item.id, item.name, decision.reason)
            result.skipped += 1
            return

        outcome = await self._dispatcher.dispatch(
            item, user, decision.days_until_expiry, decision.channels, now
        )
        result.notified += 1
        result.by_days[decision.days_until_expiry] += 1
        if outcome.email_sent:
            result.emails_sent += 1
