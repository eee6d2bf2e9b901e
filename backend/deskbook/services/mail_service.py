"""
DeskBook Backend - Mail Service
=================================

What:  Sends the login confirmation email and free-form messages.
How:   Two backends selected by MAIL_BACKEND:
           smtp  builds an EmailMessage and hands it to smtplib in a worker
                 thread (asyncio.to_thread), so the event loop never blocks
           log   only logs the delivery (development and tests)
Who:   UserService (confirmation), POST /send_email.
When:  Always scheduled as a FastAPI background task, after the response
       has been produced. Delivery failures are logged, never surfaced.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Tuple

from deskbook.config import settings
from deskbook.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)

CONFIRMATION_SUBJECT = "Confirm your DeskBook login"


def confirmation_message(token: str) -> Tuple[str, str]:
    """Subject and plain-text body of the login confirmation email."""
    link = settings.confirmation_url.format(token=token)
    body = (
        "Hello,\n\n"
        "Use the link below to finish signing in to DeskBook:\n\n"
        f"{link}\n\n"
        f"The link expires in {settings.confirmation_token_ttl // 60} minutes. "
        "If you did not ask to sign in, ignore this email.\n"
    )
    return CONFIRMATION_SUBJECT, body


class MailService:
    def __init__(self, backend: Optional[str] = None):
        self.backend = backend or settings.mail_backend

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = settings.mail_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver_smtp(self, message: EmailMessage) -> None:
        """Blocking SMTP delivery; runs in a worker thread."""
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver one message.

        Raises:
            MailDeliveryError: the SMTP server refused or could not be reached
        """
        message = self.build_message(to, subject, body)

        if self.backend == "log":
            logger.info("Mail (log backend) subject=%r body_length=%d", subject, len(body))
            return

        try:
            await asyncio.to_thread(self._deliver_smtp, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery failed: %s", str(e))
            raise MailDeliveryError(
                context={"smtp_host": settings.smtp_host, "error_type": type(e).__name__},
            ) from None

        logger.info("Mail delivered via %s:%d", settings.smtp_host, settings.smtp_port)

    async def send_confirmation(self, email: str, token: str) -> None:
        subject, body = confirmation_message(token)
        await self.send(email, subject, body)

    # ── Background-task entry points ──────────────────────────────────────
    # These run after the response is sent; nothing can be reported to the
    # client any more, so failures end in the log.

    async def deliver(self, to: str, subject: str, body: str) -> bool:
        try:
            await self.send(to, subject, body)
        except MailDeliveryError as e:
            logger.warning("Email not delivered: %s (context=%s)", e.message, e.context)
            return False
        return True

    async def deliver_confirmation(self, email: str, token: str) -> bool:
        subject, body = confirmation_message(token)
        return await self.deliver(email, subject, body)


# Singleton instance
mail_service = MailService()
