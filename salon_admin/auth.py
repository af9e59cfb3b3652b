"""
Session and role dependencies for the API routes

The browser only holds the opaque session cookie; bearer and refresh tokens
stay in the server-side session.
"""

import logging
from typing import Optional

import httpx
from fastapi import Depends, HTTPException, Request, Response

from .backend_client import BackendClient, get_shared_http_client
from .config import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, SESSION_TTL_SECONDS
from .sessions import SessionData, SessionStore, session_store

logger = logging.getLogger(__name__)


def get_session_store() -> SessionStore:
    return session_store


def get_http_client() -> httpx.AsyncClient:
    return get_shared_http_client()


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=SESSION_TTL_SECONDS,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")


def landing_path(user: Optional[dict], impersonating: bool = False) -> str:
    """Master admins land on the console, everyone else (and impersonation) on the dashboard"""
    if user and user.get("role") == "master_admin" and not impersonating:
        return "/admin"
    return "/dashboard"


async def get_session(
    request: Request, store: SessionStore = Depends(get_session_store)
) -> Optional[SessionData]:
    """Session for the request cookie, or None"""
    return store.get(request.cookies.get(SESSION_COOKIE_NAME))


async def require_session(
    session: Optional[SessionData] = Depends(get_session),
) -> SessionData:
    if session is None or not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


async def require_tenant(session: SessionData = Depends(require_session)) -> SessionData:
    if not session.tenant_id:
        raise HTTPException(
            status_code=409, detail="No active tenant. Create or select a tenant first."
        )
    return session


async def require_master_admin(session: SessionData = Depends(require_session)) -> SessionData:
    if not session.is_master_admin:
        logger.warning(f"🚫 Master admin route denied for user {(session.user or {}).get('id')}")
        raise HTTPException(status_code=403, detail="Master admin access required")
    return session


async def get_backend(
    session: SessionData = Depends(require_session),
    store: SessionStore = Depends(get_session_store),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> BackendClient:
    """Backend client carrying the caller's token and tenant"""
    return BackendClient(http_client, session, store)


async def get_public_backend(
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> BackendClient:
    """Backend client for unauthenticated calls (login, register, password reset)"""
    return BackendClient(http_client)
