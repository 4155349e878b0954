"""TOML configuration loader for the expiry notification service."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from datetime import time, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .policy import validate_days_before

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass
class DatabaseConfig:
    path: str = "~/.config/kitchensathi/kitchen.db"


@dataclass
class SchedulerConfig:
    daily_time: time = time(9, 0)
    urgent_interval_minutes: int = 60
    timezone: str = "UTC"
    scan_on_start: bool = False

    @property
    def urgent_interval(self) -> timedelta:
        return timedelta(minutes=self.urgent_interval_minutes)


@dataclass
class ExpiryConfig:
    lookahead_days: int = 30
    resend_interval_hours: float = 4.0
    notify_statuses: list[str] = field(
        default_factory=lambda: ["pending", "completed"]
    )
    default_days_before: list[int] = field(default_factory=lambda: [1, 3, 7])

    @property
    def resend_interval(self) -> timedelta:
        return timedelta(hours=self.resend_interval_hours)


@dataclass
class EmailConfig:
    enabled: bool = True
    host: str = "smtp.gmail.com"
    port: int = 587
    use_tls: bool = True
    user: str = ""
    password: str = ""
    from_address: str = "noreply@kitchensathi.com"
    from_name: str = "KitchenSathi"
    timeout_seconds: float = 10.0

    @property
    def configured(self) -> bool:
        return self.enabled and bool(self.user) and bool(self.password)


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class ExpiryServiceConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    expiry: ExpiryConfig = field(default_factory=ExpiryConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def parse_time_of_day(value: str | time) -> time:
    """Parse an ``HH:MM`` string into a :class:`datetime.time`."""
    if isinstance(value, time):
        return value
    parts = str(value).strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")
    try:
        hour, minute = int(parts[0]), int(parts[1])
        return time(hour, minute)
    except ValueError:
        raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")


def load_config(path: str | Path | None = None) -> ExpiryServiceConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    Email credentials can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    dbs = raw.get("database", {})
    sch = raw.get("scheduler", {})
    exp = raw.get("expiry", {})
    eml = raw.get("email", {})
    lgg = raw.get("logging", {})

    urgent_minutes = int(sch.get("urgent_interval_minutes", 60))
    if urgent_minutes <= 0:
        raise ValueError("scheduler.urgent_interval_minutes must be positive")

    lookahead = int(exp.get("lookahead_days", 30))
    if lookahead < 0:
        raise ValueError("expiry.lookahead_days must not be negative")

    tz_name = sch.get("timezone", "UTC")
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown scheduler.timezone: {tz_name!r}") from e

    # Resolve email settings: config file → environment variable
    email_user = eml.get("user", "") or os.environ.get("EMAIL_USER", "")
    email_password = eml.get("password", "") or os.environ.get(
        "EMAIL_PASSWORD", ""
    )
    email_host = eml.get("host", "") or os.environ.get(
        "EMAIL_HOST", "smtp.gmail.com"
    )
    from_address = (
        eml.get("from_address", "")
        or os.environ.get("EMAIL_FROM", "")
        or email_user
        or "noreply@kitchensathi.com"
    )

    return ExpiryServiceConfig(
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/kitchensathi/kitchen.db"),
        ),
        scheduler=SchedulerConfig(
            daily_time=parse_time_of_day(sch.get("daily_time", "09:00")),
            urgent_interval_minutes=urgent_minutes,
            timezone=tz_name,
            scan_on_start=sch.get("scan_on_start", False),
        ),
        expiry=ExpiryConfig(
            lookahead_days=lookahead,
            resend_interval_hours=float(exp.get("resend_interval_hours", 4.0)),
            notify_statuses=exp.get("notify_statuses", ["pending", "completed"]),
            default_days_before=validate_days_before(
                exp.get("default_days_before", [1, 3, 7])
            ),
        ),
        email=EmailConfig(
            enabled=eml.get("enabled", True),
            host=email_host,
            port=int(eml.get("port", 587)),
            use_tls=eml.get("use_tls", True),
            user=email_user,
            password=email_password,
            from_address=from_address,
            from_name=eml.get("from_name", "KitchenSathi"),
            timeout_seconds=float(eml.get("timeout_seconds", 10.0)),
        ),
        logging=LoggingConfig(
            level=str(lgg.get("level", "INFO")).upper(),
        ),
    )
