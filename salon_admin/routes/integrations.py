"""
Calendar Integration Routes
Lists the tenant's Google/Microsoft calendar connections and starts or ends
the backend OAuth flows.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..auth import get_backend, require_tenant
from ..backend_client import BackendClient
from ..sessions import SessionData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["Integrations"])

CALENDAR_FEATURES = [
    "Real-time availability checking",
    "Automatic event creation",
    "Two-way synchronization",
]

INTEGRATIONS = {
    "google-calendar": {
        "name": "Google Calendar",
        "description": "Sync appointments with Google Calendar for real-time availability",
        "tenant_key": "google_calendar_integration",
        "connect_path": "/tenant/connect-calendar",
        "disconnect_path": "/tenant/disconnect-calendar",
        "connect_error": "Failed to initiate Google OAuth",
    },
    "microsoft-calendar": {
        "name": "Microsoft Calendar",
        "description": "Sync appointments with Microsoft Outlook/Office 365 Calendar",
        "tenant_key": "microsoft_calendar_integration",
        "connect_path": "/tenant/connect-microsoft-calendar",
        "disconnect_path": "/tenant/disconnect-microsoft-calendar",
        "connect_error": "Failed to initiate Microsoft OAuth",
    },
}


def _get_integration(integration_id: str) -> dict:
    integration = INTEGRATIONS.get(integration_id)
    if not integration:
        raise HTTPException(status_code=404, detail="Integration not found")
    return integration


def describe_integrations(tenant: dict) -> list[dict]:
    described = []
    for integration_id, integration in INTEGRATIONS.items():
        state = (tenant or {}).get(integration["tenant_key"]) or {}
        described.append(
            {
                "id": integration_id,
                "name": integration["name"],
                "description": integration["description"],
                "category": "Calendar",
                "status": "connected" if state.get("connected") else "disconnected",
                "last_sync": state.get("last_sync"),
                "features": CALENDAR_FEATURES,
            }
        )
    return described


@router.get("")
async def list_integrations(session: SessionData = Depends(require_tenant)):
    integrations = describe_integrations(session.current_tenant)
    return {
        "integrations": integrations,
        "connected": sum(1 for i in integrations if i["status"] == "connected"),
        "disconnected": sum(1 for i in integrations if i["status"] == "disconnected"),
    }


@router.post("/{integration_id}/connect")
async def connect_integration(
    integration_id: str,
    backend: BackendClient = Depends(get_backend),
    _: SessionData = Depends(require_tenant),
):
    """Start the OAuth flow; the client redirects to the returned authUrl"""
    integration = _get_integration(integration_id)
    result = await backend.post(
        integration["connect_path"], json={}, error_message=integration["connect_error"]
    )
    auth_url = (result or {}).get("authUrl") if isinstance(result, dict) else None
    if not auth_url:
        logger.error(f"❌ {integration['name']} OAuth start returned no authUrl")
        raise HTTPException(status_code=502, detail=integration["connect_error"])

    logger.info(f"🔄 {integration['name']} OAuth initiated")
    return {"authUrl": auth_url}


@router.post("/{integration_id}/disconnect")
async def disconnect_integration(
    integration_id: str,
    backend: BackendClient = Depends(get_backend),
    _: SessionData = Depends(require_tenant),
):
    integration = _get_integration(integration_id)
    await backend.post(
        integration["disconnect_path"],
        json={},
        error_message=f"Failed to disconnect {integration['name']}",
    )
    logger.info(f"✅ {integration['name']} disconnected")
    return {"success": True}
