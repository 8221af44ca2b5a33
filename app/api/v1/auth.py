from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, user_from_token_payload
from app.core.config import settings
from app.core.exceptions import APIError, EmailAlreadyExists, InvalidCredentials
from app.core.rate_limiter import limiter
from app.core.security import (
    create_access_token,
    create_password_reset_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from app.db.session import get_db
from app.middleware.csrf import CSRF_COOKIE_NAME, generate_csrf_token, set_csrf_cookie
from app.models.token_blacklist import TokenBlacklist
from app.models.user import User
from app.schemas.address import AddressResponse
from app.schemas.company import CompanyProfileResponse, CompanyRegister
from app.schemas.user import ForgotPasswordRequest, ResetPasswordRequest, UserCreate, UserLogin, UserResponse
from app.services.address_service import AddressService
from app.services.company_service import CompanyService
from app.tasks.email_tasks import send_password_reset
from app.utils.response import success

router = APIRouter()
logger = structlog.get_logger()


def _blacklist_token(db: Session, token: str, reason: str) -> None:
    payload = decode_token(token)
    jti = payload.get("jti")
    user_id = payload.get("sub")
    exp = payload.get("exp")
    if not jti or not user_id or not exp:
        return

    expires_at = datetime.utcfromtimestamp(exp)
    existing = db.query(TokenBlacklist).filter(TokenBlacklist.jti == jti).first()
    if existing:
        return

    db.add(
        TokenBlacklist(
            jti=jti,
            user_id=int(user_id),
            expires_at=expires_at,
            reason=reason,
        )
    )


def _should_use_secure_cookies(request: Request) -> bool:
    if settings.ENVIRONMENT != "production":
        return False
    return request.url.scheme == "https"


def _set_access_cookie(response: JSONResponse, access_token: str, request: Request) -> None:
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        secure=_should_use_secure_cookies(request),
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )


def _set_auth_cookies(
    response: JSONResponse,
    access_token: str,
    refresh_token: str,
    request: Request,
) -> None:
    _set_access_cookie(response, access_token, request)
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=_should_use_secure_cookies(request),
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400,
        path="/",
    )


def _issue_tokens(user: User) -> tuple[str, str]:
    access_token = create_access_token(
        data={"sub": str(user.id), "session_version": user.session_version}
    )
    refresh_token = create_refresh_token(
        data={"sub": str(user.id), "session_version": user.session_version}
    )
    return access_token, refresh_token


@router.get("/csrf-token")
def get_csrf_token():
    token = generate_csrf_token()
    response = JSONResponse(content=success(message="CSRF token set"))
    set_csrf_cookie(response, token)
    return response


@router.post(
    "/register",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register account",
    description="""
Creates a user account, optionally together with the first delivery address,
and starts a session.

Validation:
1. Email, phone and national id must be unique
2. Password is hashed before persistence
3. The first address receives a digital id and becomes primary
""",
    responses={
        201: {"description": "Registration successful"},
        409: {"description": "Email, phone or national id already registered"},
        422: {"description": "Validation error"},
    },
)
@limiter.limit("5/minute")
def register(request: Request, user_in: UserCreate, db: Session = Depends(get_db)):
    email = user_in.email.lower()
    if db.query(User).filter(func.lower(User.email) == email).first():
        raise EmailAlreadyExists()

    if db.query(User).filter(User.phone == user_in.phone).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Phone number already registered",
        )

    if user_in.iqama_id and db.query(User).filter(User.iqama_id == user_in.iqama_id).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="ID already registered",
        )

    user = User(
        email=email,
        password_hash=hash_password(user_in.password),
        name=user_in.name,
        phone=user_in.phone,
        iqama_id=user_in.iqama_id,
        account_type=user_in.account_type,
    )
    db.add(user)
    db.flush()

    address = None
    if user_in.address is not None:
        address = AddressService.create_address(db, user.id, user_in.address, commit=False)

    db.commit()
    db.refresh(user)
    logger.info("user_registered", user_id=user.id, with_address=address is not None)

    access_token, refresh_token = _issue_tokens(user)
    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success(
            data={
                "user": UserResponse.model_validate(user).model_dump(),
                "address": AddressResponse.model_validate(address).model_dump() if address else None,
            },
            message="Registration successful",
        ),
    )
    _set_auth_cookies(response, access_token, refresh_token, request)
    return response


@router.post(
    "/register/company",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Register company account",
    description="""
Creates a company account and its profile, then starts a session.
Email, phone and unified number must be unique.
""",
    responses={
        201: {"description": "Registration successful"},
        409: {"description": "Email, phone or unified number already registered"},
        422: {"description": "Validation error"},
    },
)
@limiter.limit("5/minute")
def register_company(request: Request, company_in: CompanyRegister, db: Session = Depends(get_db)):
    user = CompanyService.register_company(db, company_in)

    access_token, refresh_token = _issue_tokens(user)
    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success(
            data={
                "user": UserResponse.model_validate(user).model_dump(),
                "company": CompanyProfileResponse.model_validate(user.company_profile).model_dump(),
            },
            message="Registration successful",
        ),
    )
    _set_auth_cookies(response, access_token, refresh_token, request)
    return response


@router.post(
    "/login",
    response_model=dict,
    summary="Login",
    description="""
Authenticates by email or national id and sets `access_token` and
`refresh_token` as httpOnly cookies.
""",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid credentials"},
    },
)
@limiter.limit("10/minute")
async def login(request: Request, db: Session = Depends(get_db)):
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        payload = await request.json()
    else:
        form = await request.form()
        payload = dict(form)

    try:
        credentials = UserLogin(**payload)
    except ValidationError as exc:
        raise APIError(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            message="Validation failed",
            errors=[
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ],
        )

    identifier = credentials.identifier.strip()
    user = db.query(User).filter(func.lower(User.email) == identifier.lower()).first()
    if not user:
        user = db.query(User).filter(User.iqama_id == identifier).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise InvalidCredentials()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    # Rotate session version to invalidate all previously issued tokens.
    if settings.ENVIRONMENT == "production":
        user.session_version += 1
        db.commit()
        db.refresh(user)

    access_token, refresh_token = _issue_tokens(user)
    logger.info("user_logged_in", user_id=user.id)

    response = JSONResponse(
        content=success(
            data={
                "user": UserResponse.model_validate(user).model_dump(),
                "access_token": access_token,
                "refresh_token": refresh_token,
            },
            message="Login successful",
        )
    )
    _set_auth_cookies(response, access_token, refresh_token, request)
    return response


@router.post("/refresh")
@limiter.limit("20/minute")
def refresh_token(request: Request, db: Session = Depends(get_db)):
    refresh_token_value = request.cookies.get("refresh_token")
    if not refresh_token_value:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not found",
        )

    payload = decode_token(refresh_token_value)
    if payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    user = user_from_token_payload(db, payload)

    new_access_token = create_access_token(
        data={"sub": str(user.id), "session_version": user.session_version}
    )
    response = JSONResponse(content=success(message="Token refreshed"))
    _set_access_cookie(response, new_access_token, request)
    return response


@router.post(
    "/session/ping",
    summary="Session liveness ping",
    description="Confirms the session is still valid and extends the access cookie.",
    responses={
        200: {"description": "Session alive"},
        401: {"description": "Session expired or revoked"},
    },
)
def session_ping(request: Request, current_user: User = Depends(get_current_user)):
    access_token = create_access_token(
        data={"sub": str(current_user.id), "session_version": current_user.session_version}
    )
    response = JSONResponse(
        content=success(
            data={
                "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
                "idle_timeout": settings.SESSION_IDLE_TIMEOUT_SECONDS,
                "ping_interval": settings.SESSION_PING_INTERVAL_SECONDS,
            },
            message="Session active",
        )
    )
    _set_access_cookie(response, access_token, request)
    return response


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    """Revoke the current tokens and clear cookies. Succeeds even without a session."""
    access_token = request.cookies.get("access_token")
    refresh_token_value = request.cookies.get("refresh_token")

    for token in [access_token, refresh_token_value]:
        if not token:
            continue
        try:
            _blacklist_token(db, token, reason="logout")
        except HTTPException:
            continue

    try:
        db.commit()
    except IntegrityError:
        db.rollback()

    response = JSONResponse(content=success(message="Logout successful"))
    secure = _should_use_secure_cookies(request)
    response.delete_cookie(key="access_token", path="/", samesite="lax", secure=secure)
    response.delete_cookie(key="refresh_token", path="/", samesite="lax", secure=secure)
    response.delete_cookie(key=CSRF_COOKIE_NAME, path="/", samesite="lax", secure=secure)
    return response


@router.post("/forgot-password")
@limiter.limit("5/minute")
def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(func.lower(User.email) == payload.email.lower()).first()

    if user and user.is_active:
        token = create_password_reset_token(user.id, user.session_version)
        try:
            send_password_reset.delay(user.email, user.name, token)
        except Exception as exc:
            # Do not leak whether the account exists or the queue is down
            logger.error("password_reset_enqueue_failed", user_id=user.id, error=str(exc))

    return success(
        message="If an account exists with this email, a reset link will be sent.",
    )


@router.post("/reset-password")
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    invalid = HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Invalid or expired reset link",
    )
    try:
        token_payload = decode_token(payload.token)
    except HTTPException:
        raise invalid
    if token_payload.get("type") != "password_reset":
        raise invalid

    user = db.query(User).filter(User.id == int(token_payload.get("sub", 0))).first()
    if not user or int(token_payload.get("session_version", -1)) != user.session_version:
        raise invalid

    user.password_hash = hash_password(payload.password)
    # Invalidates this reset link and every open session
    user.session_version += 1
    db.commit()
    logger.info("password_reset_completed", user_id=user.id)

    return success(message="Password has been reset successfully")
