"""
FastAPI dependency injection functions and the session component wiring.
The app builds one PortalContainer in its lifespan and keeps it on app.state.
"""

from typing import Optional

from fastapi import Request

from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.admin_session_service import AdminSessionService
from luckycoins.core.service.auth.auth_session import AuthSession
from luckycoins.core.service.auth.cache.admin_session_store import (
    AdminSessionStore,
    MemoryAdminSessionStore,
    RedisAdminSessionStore,
)
from luckycoins.core.service.auth.credentials import AdminCredentialVerifier, EmbeddedCredentialVerifier
from luckycoins.core.service.auth.identity import IdentityProvider
from luckycoins.core.service.backend.connection import ActorFactory, BackendConnection, create_gateway_actor
from luckycoins.core.service.profile.setup_service import ProfileSetupService
from luckycoins.core.service.query_cache import QueryCache
from luckycoins.infra.config.redis import close_redis_pool, get_redis
from luckycoins.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class PortalContainer:
    """Owns the session components for one process and their start/stop order"""

    def __init__(
        self,
        admin_store: AdminSessionStore,
        identity_provider: Optional[IdentityProvider] = None,
        actor_factory: ActorFactory = create_gateway_actor,
        verifier: Optional[AdminCredentialVerifier] = None
    ):
        self.identity_provider = identity_provider or IdentityProvider()
        self.backend = BackendConnection(self.identity_provider, actor_factory)
        self.query_cache = QueryCache()
        self.admin_sessions = AdminSessionService(admin_store, verifier or EmbeddedCredentialVerifier())
        self.auth_session = AuthSession(
            self.identity_provider,
            self.backend,
            self.admin_sessions,
            self.query_cache
        )
        self.profile_setup = ProfileSetupService(self.auth_session)

    async def start(self) -> None:
        # Session listens first so it sees every later identity/backend change
        await self.auth_session.start()
        await self.backend.start()
        await self.identity_provider.initialize()
        logger.info("Portal session started")

    async def stop(self) -> None:
        await self.auth_session.close()
        await self.backend.close()
        logger.info("Portal session stopped")


async def create_admin_store() -> AdminSessionStore:
    """Durable admin session storage selected by SESSION_STORE_BACKEND"""
    if settings.SESSION_STORE_BACKEND == "memory":
        logger.warning("Using in-memory admin session storage; sessions end with the process")
        return MemoryAdminSessionStore()
    return RedisAdminSessionStore(await get_redis())


async def close_admin_store(store: AdminSessionStore) -> None:
    if isinstance(store, RedisAdminSessionStore):
        await close_redis_pool()


def get_container(request: Request) -> PortalContainer:
    return request.app.state.container


def get_auth_session(request: Request) -> AuthSession:
    return get_container(request).auth_session


def get_identity_provider(request: Request) -> IdentityProvider:
    return get_container(request).identity_provider


def get_admin_session_service(request: Request) -> AdminSessionService:
    return get_container(request).admin_sessions


def get_profile_setup_service(request: Request) -> ProfileSetupService:
    return get_container(request).profile_setup


def get_admin_store(request: Request) -> AdminSessionStore:
    return get_container(request).admin_sessions.store
