"""Email sending service.

Supports two backends:
- SMTP via aiosmtplib (production)
- Log-only (development / testing), logs the email instead of sending

Set EMAIL_BACKEND=smtp and configure SMTP_* settings for production.

Emails are sent after the database transaction has committed. A failed
send is logged and never fails the request that triggered it.
"""

import logging
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

from app.config import settings

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None: ...


class LogEmailSender:
    """Development sender: logs email content instead of sending."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.info("EMAIL to=%s subject=%s\n%s", to, subject, body)


class SmtpEmailSender:
    """Production sender: sends via SMTP."""

    async def send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = settings.smtp_from_address
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        await aiosmtplib.send(
            msg,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username or None,
            password=settings.smtp_password or None,
            use_tls=settings.smtp_use_tls,
        )


def get_email_sender() -> EmailSender:
    if settings.email_backend == "smtp":
        return SmtpEmailSender()
    return LogEmailSender()


async def send_quietly(to: str, subject: str, body: str) -> bool:
    """Send an email, logging (not raising) delivery failures."""
    try:
        await get_email_sender().send(to=to, subject=subject, body=body)
    except (aiosmtplib.SMTPException, OSError):
        logger.exception("Failed to send email to=%s subject=%s", to, subject)
        return False
    return True


async def send_new_job_email(
    to: str, provider_name: str, service_name: str, customer_name: str, location: str,
) -> bool:
    body = (
        f"Hi {provider_name},\n\n"
        f"{customer_name} has requested {service_name} at {location}.\n\n"
        f"Please respond within {settings.job_response_window_minutes} minutes "
        "to accept, negotiate, or decline the request.\n"
    )
    return await send_quietly(to, f"New job request: {service_name}", body)


async def send_job_accepted_email(
    to: str, customer_name: str, provider_name: str, service_name: str,
) -> bool:
    body = (
        f"Hi {customer_name},\n\n"
        f"{provider_name} accepted your {service_name} request. "
        "Close the deal to get the work started.\n"
    )
    return await send_quietly(to, f"Your {service_name} request was accepted", body)
