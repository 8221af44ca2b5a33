from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.security import decode_token
from app.db.session import get_db
from app.models.token_blacklist import TokenBlacklist
from app.models.user import User

logger = structlog.get_logger()


def is_token_revoked(db: Session, jti: Optional[str]) -> bool:
    if not jti:
        return True
    return TokenBlacklist.active(db, jti).first() is not None


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get("access_token")
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


def user_from_token_payload(db: Session, payload: dict) -> User:
    """Resolve the user of a decoded token, enforcing revocation and session version."""
    if is_token_revoked(db, payload.get("jti")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    user = db.query(User).filter(User.id == int(user_id)).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    raw_session_version = payload.get("session_version", 0)
    try:
        token_session_version = int(raw_session_version)
    except (TypeError, ValueError):
        token_session_version = -1
    if token_session_version != user.session_version:
        logger.info("session_rejected", user_id=user.id, reason="session_version_mismatch")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has been invalidated. Please login again.",
        )

    return user


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Get current authenticated user from cookie or bearer token."""
    token = _extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    payload = decode_token(token)
    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    user = user_from_token_payload(db, payload)
    request.state.token_payload = payload
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    return current_user
