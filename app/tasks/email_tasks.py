from celery import Task
from celery.utils.log import get_task_logger
from email.message import EmailMessage
from typing import Optional

from app.core.celery_app import celery_app
from app.core.config import settings
from app.utils.email import _send_email_smtp
from app.utils.email_templates import password_reset_template

logger = get_task_logger(__name__)


class EmailTask(Task):
    """
    Base email task with retries and backoff.
    Prevents email loss on temporary SMTP failures.
    """
    autoretry_for = (Exception,)
    retry_kwargs = {"max_retries": 3}
    retry_backoff = True
    retry_backoff_max = 600  # 10 minutes
    retry_jitter = True
    acks_late = True


def build_email(
    *,
    to: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
    msg["To"] = to
    msg.set_content(text)

    if html:
        msg.add_alternative(html, subtype="html")

    return msg


@celery_app.task(base=EmailTask, bind=True)
def send_password_reset(self, user_email: str, user_name: str, reset_token: str):
    html, reset_link = password_reset_template(user_name, reset_token)

    msg = build_email(
        to=user_email,
        subject="Reset Your Password",
        text=f"Open this link to set a new password: {reset_link}",
        html=html,
    )

    _send_email_smtp(msg)
    logger.info("password_reset_sent to=%s", user_email)
