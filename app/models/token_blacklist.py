from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import Query, Session

from app.db.base_class import Base


class TokenBlacklist(Base):
    """JWT ids revoked by logout; a row is only meaningful until the token's own expiry."""

    __tablename__ = "token_blacklist"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    reason = Column(String(50), nullable=True)  # e.g. "logout"
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @classmethod
    def active(cls, db: Session, jti: str, now: Optional[datetime] = None) -> Query:
        return db.query(cls).filter(cls.jti == jti, cls.expires_at > (now or datetime.utcnow()))

    @classmethod
    def expired(cls, db: Session, now: Optional[datetime] = None) -> Query:
        return db.query(cls).filter(cls.expires_at < (now or datetime.utcnow()))
