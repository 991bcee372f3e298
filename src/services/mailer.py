"""
Outgoing transactional email.

In development and test environments messages are logged instead of sent.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _build_message(settings: Settings, to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.email_from
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    return message


def _send_sync(settings: Settings, message: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
        smtp.starttls()
        if settings.smtp_login:
            smtp.login(settings.smtp_login, settings.smtp_password)
        smtp.send_message(message)


async def send_email(to: str, subject: str, body: str) -> None:
    """
    Send a plain text email.

    SMTP is blocking, so delivery runs in a worker thread. Delivery errors
    propagate to the caller.
    """
    settings = get_settings()
    message = _build_message(settings, to, subject, body)
    if settings.is_local_environment:
        logger.info("email_not_sent_local", extra={"to": to, "subject": subject, "body": body})
        return
    await asyncio.to_thread(_send_sync, settings, message)
    logger.info("email_sent", extra={"to": to, "subject": subject})


async def send_password_reset_email(email: str, code: str) -> None:
    """Send the link for redeeming a password reset code."""
    domain = get_settings().frontend_domain
    await send_email(
        email,
        "Password reset",
        "You requested a password reset.\n\n"
        f"Follow this link to choose a new password: "
        f"https://{domain}/reset-password/{code}\n\n"
        "If you did not request this, you can ignore this email.",
    )


async def send_email_not_registered_email(email: str) -> None:
    """Tell someone who asked for a reset that the address has no account."""
    domain = get_settings().frontend_domain
    await send_email(
        email,
        "Password reset",
        "Someone requested a password reset for this email address, "
        "but no account is registered with it.\n\n"
        f"You can sign up at https://{domain}/signup",
    )
