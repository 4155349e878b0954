"""Outbound email for expiry alerts.

Delivery goes through an :class:`EmailTransport`. The SMTP transport runs
``smtplib`` in a worker thread so a slow mail server never blocks the event
loop. The socket timeout comes from ``EmailConfig.timeout_seconds``.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import TYPE_CHECKING

from .messages import expiry_phrase

if TYPE_CHECKING:
    from .config import EmailConfig

logger = logging.getLogger(__name__)


class EmailDeliveryError(RuntimeError):
    """Raised when an email could not be handed to the mail transport."""


# =============================================================================
# EMAIL TEMPLATES
# =============================================================================

EXPIRY_EMAIL_SUBJECT = "{emoji} {headline}"

EXPIRY_EMAIL_HTML = """\
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #1f2937; background: #f3f4f6; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: #ea580c; color: white; padding: 30px; text-align: center; }}
        .content {{ padding: 30px; background: #ffffff; }}
        .alert {{ background: {background}; border-left: 4px solid {color}; padding: 20px; border-radius: 8px; }}
        .footer {{ text-align: center; padding: 20px; color: #6b7280; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{emoji} Grocery Expiry Alert</h1>
            <p>KitchenSathi - Smart Kitchen Management</p>
        </div>
        <div class="content">
            <p>Hi <strong>{user_name}</strong>,</p>
            <div class="alert">
                <p><strong>{headline}!</strong></p>
                <p>📅 Expiry Date: <strong>{expiry_date}</strong></p>
            </div>
            <p>Use it in a meal soon, or remove it from your kitchen if it has gone off.</p>
        </div>
        <div class="footer">
            <p>You're receiving this because expiry alerts are enabled for this item.</p>
        </div>
    </div>
</body>
</html>
"""

EXPIRY_EMAIL_TEXT = """\
Hi {user_name},

{headline}!
Expiry Date: {expiry_date}

Use it in a meal soon, or remove it from your kitchen if it has gone off.

---
KitchenSathi - Smart Kitchen Management
"""

_URGENCY_STYLE = {
    "urgent": ("🚨", "#dc2626", "#fee2e2"),
    "warning": ("⚠️", "#f59e0b", "#fef3c7"),
    "info": ("📅", "#3b82f6", "#dbeafe"),
}


def urgency_level(days_until_expiry: int) -> str:
    if days_until_expiry <= 1:
        return "urgent"
    if days_until_expiry <= 2:
        return "warning"
    return "info"


def render_expiry_email(
    user_name: str, item_name: str, expiry_date: date, days_until_expiry: int
) -> tuple[str, str, str]:
    """Build the subject, HTML body and plain-text body of an expiry alert."""
    emoji, color, background = _URGENCY_STYLE[urgency_level(days_until_expiry)]
    verb = "expired" if days_until_expiry < 0 else "expires"
    headline = f'"{item_name}" {verb} {expiry_phrase(days_until_expiry)}'
    date_display = expiry_date.strftime("%A, %B %d, %Y")
    subject = EXPIRY_EMAIL_SUBJECT.format(emoji=emoji, headline=headline)
    html = EXPIRY_EMAIL_HTML.format(
        emoji=emoji,
        color=color,
        background=background,
        user_name=escape(user_name or "there"),
        headline=escape(headline, quote=False),
        expiry_date=date_display,
    )
    text = EXPIRY_EMAIL_TEXT.format(
        user_name=user_name or "there",
        headline=headline,
        expiry_date=date_display,
    )
    return subject, html, text


# =============================================================================
# TRANSPORTS
# =============================================================================


class EmailTransport(ABC):
    """Abstract base for sending one email."""

    @abstractmethod
    async def send(
        self, to: str, subject: str, html_body: str, text_body: str | None = None
    ) -> None:
        """Send a message.

        Raises:
            EmailDeliveryError: If the message could not be sent.
        """
        ...


class SmtpEmailTransport(EmailTransport):
    """Sends mail through an SMTP server with STARTTLS and login."""

    def __init__(self, config: EmailConfig) -> None:
        self._config = config

    async def send(
        self, to: str, subject: str, html_body: str, text_body: str | None = None
    ) -> None:
        msg = self._build_message(to, subject, html_body, text_body)
        try:
            await asyncio.to_thread(self._send_via_smtp, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"Failed to send email to {to}: {e}") from e
        logger.info("Email sent to %s: %s", to, subject)

    def _build_message(
        self, to: str, subject: str, html_body: str, text_body: str | None
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self._config.from_name} <{self._config.from_address}>"
        msg["To"] = to
        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def _send_via_smtp(self, msg: MIMEMultipart) -> None:
        cfg = self._config
        with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds) as server:
            if cfg.use_tls:
                server.starttls()
            if cfg.user and cfg.password:
                server.login(cfg.user, cfg.password)
            server.send_message(msg)


def create_transport(config: EmailConfig) -> EmailTransport | None:
    """Build the SMTP transport, or None when email is disabled or unconfigured."""
    if not config.enabled:
        logger.info("Email notifications are disabled in configuration")
        return None
    if not config.configured:
        logger.warning(
            "Email credentials not configured. Email sending will be disabled."
        )
        return None
    return SmtpEmailTransport(config)
