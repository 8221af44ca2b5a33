from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.models.token_blacklist import TokenBlacklist
from app.tasks import email_tasks, security_tasks
from app.utils.email_templates import password_reset_template


def test_password_reset_template_links_to_frontend():
    html, link = password_reset_template("Sara <admin>", "token-123")

    assert link.endswith("/reset-password/token-123")
    assert link in html
    # Names are escaped before being placed in markup
    assert "Sara &lt;admin&gt;" in html


def test_send_password_reset_builds_message(monkeypatch):
    sent = []
    monkeypatch.setattr(email_tasks, "_send_email_smtp", sent.append)

    email_tasks.send_password_reset("user@example.com", "Sara", "token-456")

    assert len(sent) == 1
    msg = sent[0]
    assert msg["To"] == "user@example.com"
    assert msg["Subject"] == "Reset Your Password"
    assert "token-456" in msg.get_body(preferencelist=("plain",)).get_content()


def test_cleanup_removes_only_expired_tokens(db_session: Session, monkeypatch):
    now = datetime.utcnow()
    db_session.add_all(
        [
            TokenBlacklist(jti="expired", user_id=1, expires_at=now - timedelta(hours=1), reason="logout"),
            TokenBlacklist(jti="live", user_id=1, expires_at=now + timedelta(hours=1), reason="logout"),
        ]
    )
    db_session.commit()
    monkeypatch.setattr(security_tasks, "SessionLocal", lambda: db_session)

    result = security_tasks.cleanup_expired_blacklisted_tokens()

    assert result == {"deleted": 1}
    assert [t.jti for t in db_session.query(TokenBlacklist).all()] == ["live"]
