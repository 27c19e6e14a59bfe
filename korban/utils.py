"""Utility functions for the application."""

from __future__ import annotations

import datetime
import math
import re
import smtplib
from typing import Any
from zoneinfo import ZoneInfo

from flask import current_app, render_template
from flask_mail import Message

from .constants import SMTP_AUTH_ERROR_CODE
from .extensions import mail

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class EmailError(Exception):
    """Base class for email errors."""

    pass


def send_email(to, subject, template, **kwargs):
    """Send an email to a recipient.

    Raises:
        EmailError: If sending the email fails.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=render_template(template, **kwargs),
        sender=current_app.config["MAIL_DEFAULT_SENDER"],
    )
    try:
        mail.send(msg)
    except smtplib.SMTPAuthenticationError as e:
        if e.smtp_code == SMTP_AUTH_ERROR_CODE:
            raise EmailError(
                "Authentication failed. Google requires you to use an App Password. "
                "Please verify your MAIL_USERNAME and MAIL_PASSWORD settings."
            ) from e
        raise EmailError(f"SMTP Authentication failed: {e}") from e
    except Exception as e:
        raise EmailError(f"Failed to send email: {e}") from e


def is_valid_email(value: str | None) -> bool:
    """Loose syntactic check used before sending reminders."""
    return bool(value) and bool(EMAIL_RE.match(value.strip()))


def is_valid_month(value: str | None) -> bool:
    """Check a YYYY-MM month key."""
    return bool(value) and bool(MONTH_RE.match(value))


def strip_none(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None so absent fields stay absent in Firestore."""
    return {key: value for key, value in data.items() if value is not None}


def snapshot_to_dict(snapshot: Any) -> dict[str, Any]:
    """Convert a Firestore snapshot to a dict carrying its id."""
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


def to_datetime(value: Any) -> datetime.datetime | None:
    """Normalise a Firestore timestamp or ISO string to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime(
            value.year, value.month, value.day, tzinfo=datetime.timezone.utc
        )
    return None


def month_key(value: Any) -> str | None:
    """Return the YYYY-MM bucket for a timestamp."""
    moment = to_datetime(value)
    if moment is None:
        return None
    return f"{moment.year:04d}-{moment.month:02d}"


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def local_today(timezone: str = "UTC") -> datetime.date:
    """Calendar date right now in the named IANA timezone."""
    return utcnow().astimezone(ZoneInfo(timezone)).date()


def format_bytes(num_bytes: int) -> str:
    """Format a byte count for humans, e.g. 1536 -> '1.5 KB'."""
    if num_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    exponent = min(int(math.log(num_bytes, 1024)), len(units) - 1)
    value = round(num_bytes / (1024**exponent), 2)
    return f"{value:g} {units[exponent]}"


def natural_sort_key(name: str) -> tuple[str, int, str]:
    """Sort key splitting a name into prefix, number and suffix.

    "Kumpulan 2" sorts before "Kumpulan 10"; names without a number sort by
    their text.
    """
    match = re.match(r"^(.*?)(\d+)(.*)$", name or "")
    if match:
        prefix, number, suffix = match.groups()
        return (prefix.strip().lower(), int(number), suffix.strip().lower())
    return ((name or "").lower(), 0, "")


def form_errors(form: Any) -> str:
    """Flatten WTForms errors into a single message."""
    return "; ".join(
        f"{field}: {', '.join(messages)}" for field, messages in form.errors.items()
    )
