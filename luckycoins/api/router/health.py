from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from luckycoins.core.dependencies import get_admin_store, get_auth_session
from luckycoins.core.service.auth.auth_session import AuthSession
from luckycoins.core.service.auth.cache.admin_session_store import AdminSessionStore
from luckycoins.infra.config.settings import settings

router = APIRouter(tags=["Health"])


async def check_storage_health(store: AdminSessionStore) -> Dict[str, str]:
    """Check durable session storage reachability."""
    if await store.ping():
        return {"status": "healthy", "message": "Connected"}
    return {"status": "unhealthy", "message": "Storage unreachable"}


def check_session_health(session: AuthSession) -> Dict[str, Any]:
    return {
        "status": "loading" if session.is_loading else "ready",
        "backend_connected": session.backend.actor is not None and not session.backend.is_fetching,
        "authenticated": session.is_authenticated,
    }


@router.get("/health")
async def health_check(
    store: AdminSessionStore = Depends(get_admin_store),
    session: AuthSession = Depends(get_auth_session)
):
    storage = await check_storage_health(store)
    body = {
        "status": "healthy" if storage["status"] == "healthy" else "degraded",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "storage": storage,
            "session": check_session_health(session),
        },
    }
    code = status.HTTP_200_OK if body["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=body)
