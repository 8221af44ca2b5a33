import logging
import smtplib
from email.message import EmailMessage

from app.core.config import settings

logger = logging.getLogger(__name__)


def _send_email_smtp(msg: EmailMessage) -> None:
    """
    Send an email message over SMTP.
    This is intended to be called from Celery workers, not request handlers.
    """
    if not settings.SMTP_USER or not settings.EMAILS_FROM_EMAIL:
        logger.warning("SMTP not configured; dropping email subject=%s", msg["Subject"])
        return

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.ehlo()
        server.starttls()
        server.ehlo()
        server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.send_message(msg)
