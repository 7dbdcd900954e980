import asyncio
import logging
import smtplib
from email.message import EmailMessage

from lireddit.config import settings

logger = logging.getLogger(__name__)


def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        smtp.send_message(message)


async def send_email(to: str, html: str, subject: str = "Change password") -> None:
    """
    Send an HTML email to *to*.

    Without ``SMTP_HOST`` configured (local development) the message is only
    logged.  SMTP runs in a worker thread so the event loop is never blocked.
    """
    if not settings.SMTP_HOST:
        logger.info("Email to %s (%s): %s", to, subject, html)
        return

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(html, subtype="html")

    await asyncio.to_thread(_deliver, message)
    logger.info("Email sent to %s (%s)", to, subject)
