"""Server-side sessions keyed by an httponly cookie"""

import logging
import secrets
from typing import Any, Optional

from fastapi import HTTPException
from pydantic import BaseModel

from .cache import Cache, build_session_key, cache
from .config import SESSION_TTL_SECONDS

logger = logging.getLogger(__name__)

MASTER_ADMIN_ROLE = "master_admin"


class Impersonation(BaseModel):
    """Admin credentials stashed while a master admin acts as a tenant"""

    tenant_id: str
    admin_access_token: Optional[str] = None
    admin_refresh_token: Optional[str] = None
    admin_user: Optional[dict[str, Any]] = None


class SessionData(BaseModel):
    id: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[dict[str, Any]] = None
    tenants: list[dict[str, Any]] = []
    current_tenant: Optional[dict[str, Any]] = None
    impersonation: Optional[Impersonation] = None
    onboarding: Optional[dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @property
    def is_impersonating(self) -> bool:
        return self.impersonation is not None

    @property
    def is_master_admin(self) -> bool:
        return bool(self.user) and self.user.get("role") == MASTER_ADMIN_ROLE

    @property
    def tenant_id(self) -> Optional[str]:
        """Tenant stamped on backend requests (impersonated tenant wins)"""
        if self.impersonation:
            return self.impersonation.tenant_id
        if self.current_tenant and self.current_tenant.get("id") is not None:
            return str(self.current_tenant["id"])
        return None

    def store_tokens(self, access_token: Optional[str], refresh_token: Optional[str]) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token

    def clear_auth(self) -> None:
        """Forget everything tied to the signed-in user"""
        self.access_token = None
        self.refresh_token = None
        self.user = None
        self.tenants = []
        self.current_tenant = None
        self.impersonation = None
        self.onboarding = None

    def find_tenant(self, tenant_id: str) -> Optional[dict[str, Any]]:
        for tenant in self.tenants:
            if str(tenant.get("id")) == str(tenant_id):
                return tenant
        return None


class SessionStore:
    """Persists SessionData as JSON in Redis"""

    def __init__(self, backend: Cache, ttl: int = SESSION_TTL_SECONDS):
        self.backend = backend
        self.ttl = ttl

    def create(self) -> SessionData:
        session = SessionData(id=secrets.token_urlsafe(32))
        self.save(session)
        logger.info("✅ Session created")
        return session

    def get(self, session_id: Optional[str]) -> Optional[SessionData]:
        if not session_id:
            return None
        data = self.backend.get(build_session_key(session_id))
        if not data:
            return None
        try:
            return SessionData.model_validate(data)
        except ValueError as e:
            logger.warning(f"⚠️ Discarding unreadable session: {e}")
            self.backend.delete(build_session_key(session_id))
            return None

    def save(self, session: SessionData) -> None:
        if not self.backend.set(build_session_key(session.id), session.model_dump(), self.ttl):
            logger.error("❌ Failed to persist session")
            raise HTTPException(status_code=503, detail="Session storage unavailable")

    def delete(self, session_id: str) -> None:
        self.backend.delete(build_session_key(session_id))


# Global session store
session_store = SessionStore(cache)
