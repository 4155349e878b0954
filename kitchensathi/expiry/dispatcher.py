"""Creates expiry notifications and delivers them on each selected channel."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from .evaluator import CHANNEL_EMAIL, CHANNEL_IN_APP
from .mailer import render_expiry_email
from .messages import expiry_message, expiry_title
from .models import ExpiryAlertData, Notification

if TYPE_CHECKING:
    from .db import NotificationDB
    from .dedup import DedupTracker
    from .mailer import EmailTransport
    from .models import PerishableItem, User

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    notification: Notification
    email_attempted: bool = False
    email_sent: bool = False
    latched: bool = False


def build_expiry_notification(
    item: PerishableItem,
    user_id: int,
    days_until_expiry: int,
    *,
    is_read: bool = False,
) -> Notification:
    return Notification(
        user_id=user_id,
        title=expiry_title(days_until_expiry),
        message=expiry_message(item.name, days_until_expiry),
        data=ExpiryAlertData(
            item_id=item.id,
            item_name=item.name,
            expiry_date=item.expiry_date,
            days_until_expiry=days_until_expiry,
        ),
        is_read=is_read,
    )


class NotificationDispatcher:
    """Fans one firing trigger out to the in-app feed and email.

    The steps run in a fixed order: notification record, email attempt,
    dedup latch. A failed or slow email never prevents the latch write.
    """

    def __init__(
        self,
        notifications: NotificationDB,
        dedup: DedupTracker,
        transport: EmailTransport | None = None,
        email_timeout: float = 10.0,
    ) -> None:
        self._notifications = notifications
        self._dedup = dedup
        self._transport = transport
        self._email_timeout = email_timeout

    async def dispatch(
        self,
        item: PerishableItem,
        user: User,
        days_until_expiry: int,
        channels: frozenset[str],
        now: datetime,
    ) -> DispatchResult:
        # The record is the in-app channel; without it the record is kept
        # for history but starts out read.
        notification = build_expiry_notification(
            item,
            user.id,
            days_until_expiry,
            is_read=CHANNEL_IN_APP not in channels,
        )
        notification.created_at = now
        self._notifications.create(notification)
        result = DispatchResult(notification=notification)
        logger.info(
            "Created %s notification %s for item %s (%s)",
            notification.type,
            notification.id,
            item.id,
            notification.title,
        )

        if CHANNEL_EMAIL in channels:
            result.email_attempted, result.email_sent = await self._send_email(
                item, user, days_until_expiry
            )

        result.latched = self._dedup.record_send(item, now)
        return result

    async def _send_email(
        self, item: PerishableItem, user: User, days_until_expiry: int
    ) -> tuple[bool, bool]:
        """Returns (attempted, sent). Failures are logged, never raised."""
        if self._transport is None:
            logger.debug("No email transport configured, skipping email for item %s", item.id)
            return False, False
        if not user.email:
            logger.warning("User %s has no email address, skipping email", user.id)
            return False, False

        subject, html, text = render_expiry_email(
            user.name, item.name, item.expiry_date, days_until_expiry
        )
        try:
            await asyncio.wait_for(
                self._transport.send(user.email, subject, html, text),
                timeout=self._email_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Email to %s for item %s timed out after %ss",
                user.email,
                item.id,
                self._email_timeout,
            )
            return True, False
        except Exception:
            logger.exception("Failed to send expiry email for item %s", item.id)
            return True, False
        return True, True
