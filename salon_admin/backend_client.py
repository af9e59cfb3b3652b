"""
HTTP client for the external booking backend

Attaches the session's bearer token and tenant header to every call and
replays a request once after a silent token refresh when the backend
answers 401.
"""

import logging
from typing import Any, Optional

import httpx

from .config import BACKEND_API_URL, BACKEND_TIMEOUT_SECONDS
from .sessions import SessionData, SessionStore
from .utils.errors import ERROR_MESSAGES, extract_error_message, get_user_friendly_error_message

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-ID"
REFRESH_PATH = "/auth/refresh-token"
DEFAULT_ERROR_MESSAGE = "Operation failed"

# Shared connection pool, opened in the app lifespan
http_client: Optional[httpx.AsyncClient] = None


def get_shared_http_client() -> httpx.AsyncClient:
    """Get or create the shared AsyncClient pointed at BACKEND_API_URL"""
    global http_client

    if http_client is None or http_client.is_closed:
        logger.info(f"🔄 Opening backend connection pool: {BACKEND_API_URL}")
        http_client = httpx.AsyncClient(
            base_url=BACKEND_API_URL, timeout=BACKEND_TIMEOUT_SECONDS
        )
    return http_client


async def close_shared_http_client() -> None:
    global http_client

    if http_client is not None:
        await http_client.aclose()
        http_client = None
        logger.info("✅ Backend connection pool closed")


class BackendAPIError(Exception):
    """Non-2xx response (or transport failure) from the backend"""

    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    @classmethod
    def from_response(cls, response: httpx.Response, default_message: str) -> "BackendAPIError":
        payload = _decode_body(response)
        message = extract_error_message(payload, "")
        if not message:
            # Auth and server failures read the same for every call
            generic = default_message == DEFAULT_ERROR_MESSAGE
            if generic or response.status_code in (401, 403) or response.status_code >= 500:
                message = get_user_friendly_error_message(response.status_code, payload)
            else:
                message = default_message
        return cls(response.status_code, message, payload)


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class BackendClient:
    """Per-request view of the shared httpx client bound to one session"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        session: Optional[SessionData] = None,
        store: Optional[SessionStore] = None,
    ):
        self.http_client = http_client
        self.session = session
        self.store = store

    def _build_headers(
        self,
        headers: Optional[dict[str, str]],
        access_token: Optional[str],
        tenant_id: Optional[str],
        tenant_scoped: bool,
    ) -> tuple[dict[str, str], bool]:
        merged = dict(headers or {})
        used_session_token = False

        token = access_token
        if token is None and self.session is not None:
            token = self.session.access_token
            used_session_token = token is not None
        if token:
            merged["Authorization"] = f"Bearer {token}"

        if tenant_scoped:
            tenant = tenant_id
            if tenant is None and self.session is not None:
                tenant = self.session.tenant_id
            if tenant:
                merged[TENANT_HEADER] = str(tenant)

        return merged, used_session_token

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
        access_token: Optional[str] = None,
        tenant_id: Optional[str] = None,
        tenant_scoped: bool = True,
        error_message: str = DEFAULT_ERROR_MESSAGE,
        raw: bool = False,
        _retry: bool = False,
    ) -> Any:
        """
        Call the backend and decode the response.

        Raises:
            BackendAPIError: on non-2xx responses and transport failures
        """
        request_headers, used_session_token = self._build_headers(
            headers, access_token, tenant_id, tenant_scoped
        )
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = await self.http_client.request(
                method, path, params=params, json=json, headers=request_headers
            )
        except httpx.RequestError as e:
            logger.error(f"❌ Backend unreachable for {method} {path}: {e}")
            raise BackendAPIError(502, ERROR_MESSAGES["NETWORK_ERROR"]) from e

        if (
            response.status_code == 401
            and used_session_token
            and not _retry
            and self.session is not None
            and self.session.refresh_token
        ):
            logger.info(f"🔄 Access token rejected for {method} {path}, refreshing")
            if await self.refresh_tokens():
                return await self.request(
                    method,
                    path,
                    params=params,
                    json=json,
                    headers=headers,
                    tenant_id=tenant_id,
                    tenant_scoped=tenant_scoped,
                    error_message=error_message,
                    raw=raw,
                    _retry=True,
                )
            raise BackendAPIError(401, ERROR_MESSAGES["TOKEN_EXPIRED"])

        if response.is_error:
            error = BackendAPIError.from_response(response, error_message)
            logger.warning(f"⚠️ Backend {method} {path} failed ({response.status_code}): {error.message}")
            raise error

        if raw:
            return response
        return _decode_body(response)

    async def refresh_tokens(self) -> bool:
        """
        Exchange the session's refresh token for a new token pair.
        Clears the session's auth when the refresh fails.
        """
        session = self.session
        if session is None or not session.refresh_token:
            return False

        try:
            response = await self.http_client.post(
                REFRESH_PATH, json={"refresh_token": session.refresh_token}
            )
        except httpx.RequestError as e:
            logger.error(f"❌ Token refresh failed: {e}")
            response = None

        if response is None or response.is_error:
            logger.warning("⚠️ Token refresh rejected, logging out")
            session.clear_auth()
            self._persist()
            return False

        data = _decode_body(response)
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            logger.warning("⚠️ Token refresh returned no access token, logging out")
            session.clear_auth()
            self._persist()
            return False

        session.store_tokens(access_token, data.get("refresh_token") or session.refresh_token)
        self._persist()
        logger.info("✅ Access token refreshed")
        return True

    def _persist(self) -> None:
        if self.store is not None and self.session is not None:
            self.store.save(self.session)

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)
