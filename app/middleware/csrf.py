from secrets import token_urlsafe
import hmac

from fastapi import Request, Response

from app.core.config import settings

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_MAX_AGE = 60 * 60 * 24
CSRF_PROTECTED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Endpoints reachable before a CSRF cookie can exist, that only end a session,
# or that authenticate by driver id rather than cookie
CSRF_EXEMPT_PATHS = {
    f"{settings.API_V1_STR}/auth/login",
    f"{settings.API_V1_STR}/auth/register",
    f"{settings.API_V1_STR}/auth/register/company",
    f"{settings.API_V1_STR}/auth/refresh",
    f"{settings.API_V1_STR}/auth/logout",
    f"{settings.API_V1_STR}/auth/forgot-password",
    f"{settings.API_V1_STR}/auth/reset-password",
    f"{settings.API_V1_STR}/driver/check-pending-feedback",
    f"{settings.API_V1_STR}/driver/lookup-address",
    f"{settings.API_V1_STR}/driver/feedback",
}


def generate_csrf_token() -> str:
    return token_urlsafe(32)


def set_csrf_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=False,
        secure=settings.ENVIRONMENT == "production",
        samesite="lax",
        max_age=CSRF_COOKIE_MAX_AGE,
        path="/",
    )


def verify_csrf_token(request: Request) -> bool:
    """Double-submit check: the cookie and the header must carry the same token."""
    csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)
    csrf_header = request.headers.get(CSRF_HEADER_NAME)

    if not csrf_cookie or not csrf_header:
        return False

    return hmac.compare_digest(csrf_cookie, csrf_header)


def requires_csrf_check(request: Request) -> bool:
    # API calls from local tooling run without the browser cookie dance
    if settings.ENVIRONMENT != "production" and request.url.path.startswith("/api/"):
        return False
    if request.method not in CSRF_PROTECTED_METHODS:
        return False
    path = request.url.path.rstrip("/") or "/"
    return path not in CSRF_EXEMPT_PATHS
