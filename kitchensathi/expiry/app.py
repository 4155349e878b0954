"""Explicit startup and shutdown wiring for the expiry service."""

from __future__ import annotations

import asyncio
import logging

from .config import ExpiryServiceConfig
from .db import InventoryDB, NotificationDB, UserDB
from .dedup import DedupTracker
from .dispatcher import NotificationDispatcher
from .mailer import EmailTransport, create_transport
from .scanner import ExpiryScanner
from .scheduler import ExpiryScheduler

logger = logging.getLogger(__name__)

_UNSET = object()


class ExpiryApp:
    """Builds every component from one config and owns their lifetime.

    Construct once at process start, call :meth:`start`, and :meth:`close`
    on the way out.
    """

    def __init__(
        self,
        config: ExpiryServiceConfig,
        *,
        transport: EmailTransport | None | object = _UNSET,
    ) -> None:
        self.config = config
        db_path = config.database.path
        self.inventory = InventoryDB(
            db_path, default_days_before=config.expiry.default_days_before
        )
        self.users = UserDB(db_path)
        self.notifications = NotificationDB(db_path)

        if transport is _UNSET:
            transport = create_transport(config.email)
        self.transport = transport

        self.dedup = DedupTracker(self.inventory, config.expiry.resend_interval)
        self.dispatcher = NotificationDispatcher(
            self.notifications,
            self.dedup,
            self.transport,
            email_timeout=config.email.timeout_seconds,
        )
        self.scanner = ExpiryScanner(
            self.inventory,
            self.users,
            self.dispatcher,
            lookahead_days=config.expiry.lookahead_days,
            statuses=config.expiry.notify_statuses,
            resend_interval=config.expiry.resend_interval,
        )
        self.scheduler = ExpiryScheduler(self.scanner, config.scheduler)

    async def start(self) -> None:
        self.scheduler.start()
        if self.config.scheduler.scan_on_start:
            logger.info("Running startup expiry scan...")
            try:
                await self.scheduler.trigger_manual_scan()
            except Exception:
                logger.exception("Startup expiry scan failed")

    def stop(self) -> None:
        self.scheduler.stop()

    def close(self) -> None:
        self.stop()
        self.inventory.close()
        self.users.close()
        self.notifications.close()

    async def aclose(self) -> None:
        """Stop scheduling, let a running scan finish, then close the stores."""
        self.stop()
        await self.scheduler.wait_for_scans()
        self.close()

    def expiry_stats(self, days: int = 7) -> dict:
        """Items expiring in the next ``days`` days plus the next daily run."""
        now = self.scheduler.now()
        stats = self.inventory.get_expiry_stats(
            now.date(), days, self.config.expiry.notify_statuses
        )
        stats["next_check"] = self.scheduler.next_daily_run().isoformat()
        return stats

    async def run_forever(self) -> None:
        """Start the scheduler and block until cancelled."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.aclose()
