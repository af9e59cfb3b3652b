"""
CSRF Protection Middleware for FastAPI

Implements double-submit cookie pattern for CSRF protection.
- Generates a CSRF token and sets it as a cookie
- Validates that the X-CSRF-Token header matches the cookie value
- Applies to state-changing methods (POST, PUT, PATCH, DELETE)
- Excludes the unauthenticated auth endpoints and health checks

The session cookie is SameSite=Lax, so every cookie-authenticated write
must carry the header. Set CSRF_ENABLED=false only for local testing.
"""
import logging
import secrets
from typing import Callable, List

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .config import SESSION_COOKIE_SECURE

logger = logging.getLogger(__name__)

# CSRF token cookie name
CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_COOKIE_MAX_AGE = 86400

# Methods that require CSRF protection
PROTECTED_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Prefixes exempt from CSRF protection (no session exists yet on these)
EXEMPT_PREFIXES: List[str] = [
    "/auth/login",
    "/auth/register",
    "/auth/forgot-password",
    "/auth/reset-password",
    "/health",  # Health checks
    "/docs",  # API docs
    "/openapi.json",  # OpenAPI spec
    "/csrf-token",  # CSRF token endpoint
]

# Exact-match exemptions
EXEMPT_EXACT = {"/"}


def generate_csrf_token() -> str:
    """Generate a cryptographically secure CSRF token"""
    return secrets.token_urlsafe(32)


def is_path_exempt(path: str) -> bool:
    """Check if a path is exempt from CSRF protection"""
    if path in EXEMPT_EXACT:
        return True
    return any(path.startswith(prefix) for prefix in EXEMPT_PREFIXES)


def set_csrf_cookie(response: Response, token: str) -> None:
    # Readable by the frontend so it can echo it in the header
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=False,
        secure=SESSION_COOKIE_SECURE,
        samesite="strict",
        max_age=CSRF_COOKIE_MAX_AGE,
        path="/",
    )


def _sets_csrf_cookie(response: Response) -> bool:
    # /csrf-token issues its own token; a second cookie would replace it
    prefix = f"{CSRF_COOKIE_NAME}="
    return any(value.startswith(prefix) for value in response.headers.getlist("set-cookie"))


def _reject(detail: str) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": detail})


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    CSRF Protection Middleware using double-submit cookie pattern.

    How it works:
    1. On any request, if no CSRF cookie exists, generate one and set it
    2. For state-changing requests (POST/PUT/PATCH/DELETE):
       - Check that X-CSRF-Token header exists
       - Verify it matches the csrf_token cookie
       - Reject with a 403 JSON response if missing or mismatched
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        csrf_cookie = request.cookies.get(CSRF_COOKIE_NAME)

        needs_validation = request.method in PROTECTED_METHODS and not is_path_exempt(
            request.url.path
        )

        if needs_validation:
            csrf_header = request.headers.get(CSRF_HEADER_NAME)

            if not csrf_cookie:
                logger.warning(f"🚫 CSRF: Missing cookie for {request.method} {request.url.path}")
                return _reject("CSRF token missing. Please refresh the page and try again.")

            if not csrf_header:
                logger.warning(f"🚫 CSRF: Missing header for {request.method} {request.url.path}")
                return _reject("CSRF token header missing. Please refresh the page and try again.")

            # Constant-time comparison
            if not secrets.compare_digest(csrf_cookie, csrf_header):
                logger.warning(f"🚫 CSRF: Token mismatch for {request.method} {request.url.path}")
                return _reject("CSRF token invalid. Please refresh the page and try again.")

            logger.debug(f"✅ CSRF: Valid token for {request.method} {request.url.path}")

        response = await call_next(request)

        if not csrf_cookie and not _sets_csrf_cookie(response):
            set_csrf_cookie(response, generate_csrf_token())
            logger.debug("🔑 CSRF: Set new token cookie")

        return response
