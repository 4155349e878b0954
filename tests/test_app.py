"""Tests for ExpiryApp wiring."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from kitchensathi.expiry.app import ExpiryApp
from kitchensathi.expiry.config import (
    DatabaseConfig,
    EmailConfig,
    ExpiryConfig,
    ExpiryServiceConfig,
    SchedulerConfig,
)
from kitchensathi.expiry.mailer import EmailTransport, SmtpEmailTransport


class RecordingTransport(EmailTransport):
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html_body, text_body=None):
        self.sent.append((to, subject))


def _today():
    return datetime.now(timezone.utc).date()


@pytest.fixture
def config(tmp_path):
    return ExpiryServiceConfig(
        database=DatabaseConfig(path=str(tmp_path / "kitchen.db")),
        email=EmailConfig(enabled=False),
    )


def test_app_without_email_has_no_transport(config):
    app = ExpiryApp(config)
    try:
        assert app.transport is None
        assert app.scheduler.running is False
    finally:
        app.close()


def test_app_builds_smtp_transport_when_configured(tmp_path):
    config = ExpiryServiceConfig(
        database=DatabaseConfig(path=str(tmp_path / "kitchen.db")),
        email=EmailConfig(user="bot@example.com", password="secret"),
    )
    app = ExpiryApp(config)
    try:
        assert isinstance(app.transport, SmtpEmailTransport)
    finally:
        app.close()


def test_app_applies_expiry_config(tmp_path):
    config = ExpiryServiceConfig(
        database=DatabaseConfig(path=str(tmp_path / "kitchen.db")),
        expiry=ExpiryConfig(default_days_before=[2]),
        email=EmailConfig(enabled=False),
    )
    app = ExpiryApp(config)
    try:
        uid = app.users.add_user("cook@example.com")
        item_id = app.inventory.add_item(uid, "Milk", expiry_date=_today())
        assert app.inventory.get_item(item_id).policy.days_before_expiry == [2]
    finally:
        app.close()


def test_expiry_stats(config):
    app = ExpiryApp(config)
    try:
        uid = app.users.add_user("cook@example.com")
        app.inventory.add_item(uid, "Milk", expiry_date=_today() + timedelta(days=1))
        app.inventory.add_item(uid, "Rice", expiry_date=_today() + timedelta(days=20))

        stats = app.expiry_stats(days=7)

        assert stats["total_expiring_items"] == 1
        assert stats["by_date"][0]["items"] == ["Milk"]
        next_check = datetime.fromisoformat(stats["next_check"])
        assert next_check > datetime.now(timezone.utc)
    finally:
        app.close()


@pytest.mark.asyncio
async def test_start_with_scan_on_start(tmp_path):
    """Startup scan notifies an item expiring tomorrow and emails it."""
    config = ExpiryServiceConfig(
        database=DatabaseConfig(path=str(tmp_path / "kitchen.db")),
        scheduler=SchedulerConfig(scan_on_start=True),
    )
    transport = RecordingTransport()
    app = ExpiryApp(config, transport=transport)
    uid = app.users.add_user("cook@example.com", "Asha")
    item_id = app.inventory.add_item(
        uid, "Milk", expiry_date=_today() + timedelta(days=1)
    )
    try:
        await app.start()
        assert app.scheduler.running is True
        assert {j["id"] for j in app.scheduler.get_jobs()} == {
            "daily_expiry_scan",
            "urgent_expiry_scan",
        }
        assert len(transport.sent) == 1
        assert app.notifications.unread_count(uid) == 1
        assert app.inventory.get_item(item_id).notified_for_expiry is True
    finally:
        app.close()
    assert app.scheduler.running is False


@pytest.mark.asyncio
async def test_startup_scan_failure_is_logged(config, caplog):
    config.scheduler.scan_on_start = True
    app = ExpiryApp(config, transport=None)

    async def broken(now):
        raise RuntimeError("db gone")

    app.scanner.run_daily_scan = broken
    try:
        await app.start()
        assert app.scheduler.running is True
        assert "Startup expiry scan failed" in caplog.text
    finally:
        app.close()


@pytest.mark.asyncio
async def test_aclose_waits_for_running_scan(config):
    """Shutdown lets an in-progress scheduled scan finish before closing stores."""
    app = ExpiryApp(config, transport=None)
    gate = asyncio.Event()
    finished = []

    async def slow_scan(now):
        await gate.wait()
        finished.append(now)

    app.scanner.run_daily_scan = slow_scan
    await app.start()
    job = asyncio.create_task(app.scheduler._job_daily_scan())
    await asyncio.sleep(0.05)
    assert app.scheduler.is_scanning("daily") is True

    closing = asyncio.create_task(app.aclose())
    await asyncio.sleep(0.05)
    assert not closing.done()

    gate.set()
    await closing
    await job
    assert len(finished) == 1
    assert app.scheduler.running is False
