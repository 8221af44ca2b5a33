from datetime import datetime
from html import escape

from app.core.config import settings


def password_reset_template(user_name: str, reset_token: str) -> tuple[str, str]:
    """HTML body for the password reset email, plus the link it points at."""
    reset_link = f"{settings.FRONTEND_URL}/reset-password/{reset_token}"
    expires_minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
    current_year = datetime.utcnow().year
    html = f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; line-height: 1.6;">
        <h2>Password Reset Request</h2>
        <p>Hello {escape(user_name)},</p>
        <p>You requested to reset your password. Click the button below to set a new password:</p>
        <p>
            <a href="{reset_link}" style="display:inline-block;background:#0070f3;color:#fff;padding:12px 24px;text-decoration:none;border-radius:5px;">
                Reset Password
            </a>
        </p>
        <p>Or copy this link: <a href="{reset_link}">{reset_link}</a></p>
        <p>This link will expire in {expires_minutes} minutes.</p>
        <p>If you didn't request this, you can safely ignore this email.</p>
        <p>&copy; {current_year} {escape(settings.EMAILS_FROM_NAME)}</p>
    </body>
    </html>
    """
    return html, reset_link
