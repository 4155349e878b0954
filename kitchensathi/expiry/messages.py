"""Title and message wording for expiry notifications."""

from __future__ import annotations


def expiry_phrase(days_until_expiry: int) -> str:
    if days_until_expiry < 0:
        n = -days_until_expiry
        return f"{n} day{'s' if n != 1 else ''} ago"
    if days_until_expiry == 0:
        return "today"
    if days_until_expiry == 1:
        return "tomorrow"
    return f"in {days_until_expiry} days"


def expiry_title(days_until_expiry: int) -> str:
    if days_until_expiry <= 0:
        return "⚠️ Item Expired Today!" if days_until_expiry == 0 else "⚠️ Item Expired!"
    if days_until_expiry == 1:
        return "⏰ Item Expiring Tomorrow"
    return f"⏰ Item Expiring in {days_until_expiry} days"


def expiry_message(item_name: str, days_until_expiry: int) -> str:
    if days_until_expiry <= 0:
        return (
            f"{item_name} has expired {expiry_phrase(days_until_expiry)}. "
            "Consider removing it."
        )
    return f"{item_name} will expire {expiry_phrase(days_until_expiry)}. Use it soon!"
