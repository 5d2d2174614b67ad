"""
Shared fixtures and fakes for session tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

import pytest

from luckycoins.core.service.auth.admin_session_service import AdminSessionService
from luckycoins.core.service.auth.auth_session import AuthSession
from luckycoins.core.service.auth.cache.admin_session_store import MemoryAdminSessionStore
from luckycoins.core.service.auth.credentials import EmbeddedCredentialVerifier
from luckycoins.core.service.auth.identity import IdentityProvider
from luckycoins.core.service.auth.models.profile import UserProfile
from luckycoins.core.service.backend.connection import BackendConnection
from luckycoins.core.service.query_cache import QueryCache

TEST_ADMIN_ID = "admin"
TEST_ADMIN_PASSWORD = "admin123"
TEST_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

NOT_FOUND_RESULT = {"__kind__": "err", "err": "notFound"}
UNAUTHORIZED_RESULT = {"__kind__": "err", "err": "unauthorized"}


def make_profile_payload(**overrides) -> dict:
    payload = {
        "id": "test-principal",
        "name": "Alice",
        "email": "alice@example.com",
        "coinsBalance": 1500,
        "createdAt": 1_767_225_600_000_000_000,
        "role": "user",
        "isVerified": True,
        "isBlocked": False,
        "referralCode": "ALICE1",
    }
    payload.update(overrides)
    return payload


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime = TEST_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeActor:
    """Backend actor double; `response` may be a value or an exception to raise"""

    def __init__(self, response: Any = None):
        self.response = response
        self.calls = 0
        self.saved: List[UserProfile] = []
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def get_caller_user_profile(self) -> Any:
        self.calls += 1
        response = self.response
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(response, BaseException):
            raise response
        return response

    async def save_caller_user_profile(self, profile: UserProfile) -> None:
        self.saved.append(profile)
        self.response = {"__kind__": "ok", "ok": profile.to_wire()}

    async def aclose(self) -> None:
        self.closed = True


def actor_factory_for(actor: FakeActor):
    async def factory(identity):
        return actor
    return factory


async def wait_for(predicate: Callable[[], bool], attempts: int = 200) -> None:
    """Yield to the loop until `predicate` holds"""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def build_session(
    actor: FakeActor,
    store: Optional[MemoryAdminSessionStore] = None,
    clock: Optional[FrozenClock] = None,
    actor_factory=None
) -> AuthSession:
    provider = IdentityProvider(persist=False)
    backend = BackendConnection(provider, actor_factory or actor_factory_for(actor))
    admin_sessions = AdminSessionService(
        store if store is not None else MemoryAdminSessionStore(),
        EmbeddedCredentialVerifier(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD),
        clock=clock or FrozenClock()
    )
    session = AuthSession(provider, backend, admin_sessions, QueryCache())
    await session.start()
    await backend.start()
    await provider.initialize()
    return session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def admin_store() -> MemoryAdminSessionStore:
    return MemoryAdminSessionStore()


@pytest.fixture
def fake_actor() -> FakeActor:
    return FakeActor(NOT_FOUND_RESULT)
