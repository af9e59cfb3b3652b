import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from ..auth import (
    clear_session_cookie,
    get_backend,
    get_http_client,
    get_public_backend,
    get_session,
    get_session_store,
    landing_path,
    require_session,
    set_session_cookie,
)
from ..backend_client import BackendAPIError, BackendClient
from ..config import (
    LOGIN_RATE_LIMIT,
    LOGIN_RATE_WINDOW_SECONDS,
    PASSWORD_RESET_RATE_LIMIT,
    PASSWORD_RESET_RATE_WINDOW_SECONDS,
    SESSION_COOKIE_NAME,
)
from ..domain.tenants.service import TenantService
from ..rate_limiter import create_rate_limiter
from ..sessions import SessionData, SessionStore
from ..utils.errors import ERROR_MESSAGES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# Rate limiters
rate_limit_login = create_rate_limiter(
    limit=LOGIN_RATE_LIMIT,
    window_seconds=LOGIN_RATE_WINDOW_SECONDS,
    key_prefix="login",
    use_ip=True,
)

rate_limit_register = create_rate_limiter(
    limit=LOGIN_RATE_LIMIT,
    window_seconds=LOGIN_RATE_WINDOW_SECONDS,
    key_prefix="register",
    use_ip=True,
)

rate_limit_password_reset = create_rate_limiter(
    limit=PASSWORD_RESET_RATE_LIMIT,
    window_seconds=PASSWORD_RESET_RATE_WINDOW_SECONDS,
    key_prefix="password_reset",
    use_ip=True,
)


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    password: str
    confirm_password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str
    confirm_password: str


def _auth_error(e: BackendAPIError, default_message: str) -> HTTPException:
    """Backend auth failure surfaced with the backend's status"""
    return HTTPException(status_code=e.status_code, detail=e.message or default_message)


async def _start_session(
    request: Request,
    response: Response,
    email: str,
    password: str,
    store: SessionStore,
    http_client: httpx.AsyncClient,
) -> SessionData:
    """Log in against the backend and bind the tokens to a fresh session"""
    public_backend = BackendClient(http_client)
    try:
        data = await public_backend.post(
            "/auth/login",
            json={"email": email, "password": password},
            tenant_scoped=False,
            error_message="Login failed",
        )
    except BackendAPIError as e:
        logger.warning(f"⚠️ Login failed for {email}: {e.message}")
        raise _auth_error(e, "Login failed") from e

    data = data or {}

    # Rotate the session id on every login
    previous = store.get(request.cookies.get(SESSION_COOKIE_NAME))
    if previous:
        store.delete(previous.id)

    session = store.create()
    session.store_tokens(data.get("access_token"), data.get("refresh_token"))
    session.user = data.get("user")
    store.save(session)

    try:
        await TenantService(BackendClient(http_client, session, store), session, store).fetch_tenants()
    except BackendAPIError as e:
        logger.warning(f"⚠️ Could not load tenants after login: {e.message}")

    set_session_cookie(response, session.id)
    logger.info(f"✅ User logged in: {(session.user or {}).get('id')}")
    return session


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    _: None = Depends(rate_limit_login),
):
    """Log in and open a server-side session"""
    session = await _start_session(request, response, data.email, data.password, store, http_client)
    return {"success": True, "user": session.user, "landing": landing_path(session.user)}


@router.post("/register")
async def register(
    data: RegisterRequest,
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
    http_client: httpx.AsyncClient = Depends(get_http_client),
    backend: BackendClient = Depends(get_public_backend),
    _: None = Depends(rate_limit_register),
):
    """Register a new account, then log it in"""
    logger.info(f"📥 Registration request for {data.email}")
    try:
        await backend.post(
            "/auth/register",
            json=data.model_dump(exclude_none=True),
            tenant_scoped=False,
            error_message="Registration failed",
        )
    except BackendAPIError as e:
        logger.warning(f"⚠️ Registration failed for {data.email}: {e.message}")
        raise _auth_error(e, "Registration failed") from e

    session = await _start_session(request, response, data.email, data.password, store, http_client)
    return {
        "success": True,
        "message": "Registration successful",
        "user": session.user,
        "landing": landing_path(session.user),
    }


@router.post("/logout")
async def logout(
    response: Response,
    session: Optional[SessionData] = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    if session:
        store.delete(session.id)
        logger.info("✅ Session closed")
    clear_session_cookie(response)
    return {"success": True}


@router.get("/me")
async def get_me(
    session: SessionData = Depends(require_session),
    store: SessionStore = Depends(get_session_store),
    backend: BackendClient = Depends(get_backend),
):
    """Current user, verified against the backend"""
    user = await backend.get("/auth/me", tenant_scoped=False)
    session.user = user
    store.save(session)
    return {
        "user": user,
        "is_authenticated": session.is_authenticated,
        "is_master_admin": session.is_master_admin,
        "is_impersonating": session.is_impersonating,
        "landing": landing_path(session.user, session.is_impersonating),
    }


@router.post("/refresh")
async def refresh(
    response: Response,
    session: SessionData = Depends(require_session),
    store: SessionStore = Depends(get_session_store),
    backend: BackendClient = Depends(get_backend),
):
    """Force a token refresh; a failed refresh logs the user out"""
    if not await backend.refresh_tokens():
        store.delete(session.id)
        clear_session_cookie(response)
        raise HTTPException(status_code=401, detail=ERROR_MESSAGES["TOKEN_EXPIRED"])
    return {"success": True}


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    backend: BackendClient = Depends(get_public_backend),
    _: None = Depends(rate_limit_password_reset),
):
    try:
        await backend.post(
            "/auth/forgot-password",
            json={"email": data.email},
            tenant_scoped=False,
            error_message="Failed to send reset email",
        )
    except BackendAPIError as e:
        raise _auth_error(e, "Failed to send reset email") from e
    return {"success": True, "message": "Password reset email sent"}


@router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    backend: BackendClient = Depends(get_public_backend),
    _: None = Depends(rate_limit_password_reset),
):
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=400, detail=ERROR_MESSAGES["PASSWORD_MISMATCH"])

    try:
        await backend.post(
            "/auth/reset-password",
            json=data.model_dump(),
            tenant_scoped=False,
            error_message="Password reset failed",
        )
    except BackendAPIError as e:
        raise _auth_error(e, "Password reset failed") from e
    return {"success": True, "message": "Password reset successfully"}
