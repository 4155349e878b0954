"""Expiry scanning and notification dispatch for perishable kitchen items."""

from .app import ExpiryApp
from .config import (
    DatabaseConfig,
    EmailConfig,
    ExpiryConfig,
    ExpiryServiceConfig,
    LoggingConfig,
    SchedulerConfig,
    load_config,
)
from .dedup import DedupTracker
from .dispatcher import DispatchResult, NotificationDispatcher
from .evaluator import Fire, NoAction, days_until_expiry, evaluate
from .mailer import EmailDeliveryError, EmailTransport, SmtpEmailTransport
from .models import (
    ExpiryAlertData,
    Notification,
    NotificationPolicy,
    PerishableItem,
    User,
    UserPreferences,
)
from .scanner import ExpiryScanner, ScanResult
from .scheduler import ExpiryScheduler

__all__ = [
    "ExpiryApp",
    "ExpiryScheduler",
    "ExpiryScanner",
    "ScanResult",
    "NotificationDispatcher",
    "DispatchResult",
    "DedupTracker",
    "evaluate",
    "days_until_expiry",
    "Fire",
    "NoAction",
    "EmailTransport",
    "SmtpEmailTransport",
    "EmailDeliveryError",
    "PerishableItem",
    "NotificationPolicy",
    "Notification",
    "ExpiryAlertData",
    "User",
    "UserPreferences",
    "ExpiryServiceConfig",
    "DatabaseConfig",
    "SchedulerConfig",
    "ExpiryConfig",
    "EmailConfig",
    "LoggingConfig",
    "load_config",
]
