"""Outgoing plain-text mail for activation codes, recovery codes and loan summaries."""

import logging
import smtplib
from email.message import EmailMessage
from typing import TYPE_CHECKING
from urllib.parse import urlencode

if TYPE_CHECKING:
    from bookloan.core.config import Settings
    from bookloan.models import Account, Loan

logger = logging.getLogger(__name__)


def send_mail(settings: "Settings", to: str, subject: str, body: str) -> bool:
    """
    Send a plain-text message through the configured SMTP relay.

    Returns False (and logs) when SMTP is not configured or delivery fails;
    callers never abort a request because mail could not be sent.
    """
    if not settings.SMTP_HOST:
        logger.info("SMTP_HOST not set; skipping mail to=%s subject=%r", to, subject)
        if settings.APP_ENV == "dev":
            logger.debug("Unsent mail body:\n%s", body)
        return False

    msg = EmailMessage()
    msg["From"] = settings.MAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SEC
        ) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USER and settings.SMTP_PASSWORD is not None:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD.get_secret_value())
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Failed to send mail to=%s subject=%r: %s", to, subject, e)
        return False
    logger.info("Mail sent to=%s subject=%r", to, subject)
    return True


def _link(settings: "Settings", path: str, email: str, code: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}{path}?{urlencode({'email': email, 'code': code})}"


def activation_message(settings: "Settings", name: str, email: str, code: str) -> tuple[str, str]:
    """Subject and body for the one-time activation code."""
    link = _link(settings, "/activate", email, code)
    body = (
        f"Hello {name},\n\n"
        f"Your activation code is: {code}\n\n"
        f"Use this code to activate your account, or open:\n{link}\n"
    )
    return "Account activation", body


def recovery_message(settings: "Settings", name: str, email: str, code: str) -> tuple[str, str]:
    """Subject and body for the password-recovery code."""
    link = _link(settings, "/reset-password", email, code)
    body = (
        f"Hello {name},\n\n"
        f"Your password recovery code is: {code}\n\n"
        f"Use this code to reset your password, or open:\n{link}\n"
    )
    return "Password recovery", body


def active_loans_message(account: "Account", loans: list["Loan"]) -> tuple[str, str]:
    """Subject and body listing an account's unreturned loans."""
    lines = [f"Hello {account.name},", "", "Your active loans:"]
    if not loans:
        lines.append("  (none)")
    for loan in loans:
        item = loan.item
        lines.append(
            f"  - {item.title} by {item.author}: borrowed {loan.loaned_at:%Y-%m-%d}, "
            f"due {loan.due_date:%Y-%m-%d}{' (OVERDUE)' if loan.overdue else ''}"
        )
    return "Your active loans", "\n".join(lines) + "\n"
