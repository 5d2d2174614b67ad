import re
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from luckycoins.core.service.auth.admin_session_service import (
    INVALID_CREDENTIALS_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    AdminSessionService,
)
from luckycoins.core.service.auth.cache.admin_session_store import MemoryAdminSessionStore
from luckycoins.core.service.auth.credentials import EmbeddedCredentialVerifier
from luckycoins.core.service.auth.models.admin import to_epoch_ms

from conftest import TEST_ADMIN_ID, TEST_ADMIN_PASSWORD, TEST_NOW, FrozenClock

TOKEN_PATTERN = re.compile(r"^[0-9a-f]{64}$")
TOKEN_KEY = "adminSessionToken"
EXPIRY_KEY = "adminSessionExpiry"
VALID_TOKEN = "ab" * 32


@pytest.fixture
def verifier():
    return EmbeddedCredentialVerifier(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)


@pytest.fixture
def service(admin_store, verifier, clock):
    return AdminSessionService(admin_store, verifier, clock=clock)


@pytest.mark.asyncio
async def test_login_stores_token_and_expiry(service, admin_store):
    """Should issue a 64 hex char token expiring exactly eight hours out"""
    result = await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    assert result.success is True
    assert result.error is None
    assert TOKEN_PATTERN.match(service.session_token)
    assert service.is_admin is True

    expected_expiry = to_epoch_ms(TEST_NOW + timedelta(hours=8))
    assert service.expires_at == expected_expiry
    assert admin_store.data == {
        TOKEN_KEY: service.session_token,
        EXPIRY_KEY: str(expected_expiry),
    }


@pytest.mark.asyncio
async def test_login_issues_fresh_token_each_time(service):
    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)
    first = service.session_token
    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    assert service.session_token != first


@pytest.mark.asyncio
@pytest.mark.parametrize("admin_id,password", [
    ("admin", "wrong"),
    ("Admin", TEST_ADMIN_PASSWORD),
    ("root", TEST_ADMIN_PASSWORD),
    ("", ""),
])
async def test_login_rejects_bad_credentials(service, admin_store, admin_id, password):
    """Should reject without touching storage or session state"""
    result = await service.login(admin_id, password)

    assert result.success is False
    assert result.error == INVALID_CREDENTIALS_MESSAGE
    assert service.is_admin is False
    assert service.session_token is None
    assert admin_store.data == {}


@pytest.mark.asyncio
async def test_login_rejection_keeps_existing_session(service, admin_store):
    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)
    token = service.session_token

    result = await service.login(TEST_ADMIN_ID, "wrong")

    assert result.success is False
    assert service.session_token == token
    assert admin_store.data[TOKEN_KEY] == token


@pytest.mark.asyncio
async def test_login_verifier_failure_returns_generic_error(admin_store, clock):
    verifier = AsyncMock()
    verifier.verify.side_effect = RuntimeError("verifier offline")
    service = AdminSessionService(admin_store, verifier, clock=clock)

    result = await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    assert result.success is False
    assert result.error == UNEXPECTED_ERROR_MESSAGE
    assert service.is_admin is False
    assert admin_store.data == {}


@pytest.mark.asyncio
async def test_login_store_failure_returns_generic_error(verifier, clock):
    store = MemoryAdminSessionStore()
    store.write_pair = AsyncMock(side_effect=ConnectionError("storage down"))
    service = AdminSessionService(store, verifier, clock=clock)

    result = await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    assert result.success is False
    assert result.error == UNEXPECTED_ERROR_MESSAGE
    assert service.is_admin is False
    assert service.session_token is None


@pytest.mark.asyncio
async def test_restore_unexpired_session(verifier, clock):
    expiry = to_epoch_ms(TEST_NOW + timedelta(hours=1))
    store = MemoryAdminSessionStore({TOKEN_KEY: VALID_TOKEN, EXPIRY_KEY: str(expiry)})
    service = AdminSessionService(store, verifier, clock=clock)

    assert await service.restore() is True
    assert service.is_admin is True
    assert service.session_token == VALID_TOKEN
    assert service.expires_at == expiry


@pytest.mark.asyncio
async def test_restore_expired_session_clears_storage(verifier, clock):
    expiry = to_epoch_ms(TEST_NOW - timedelta(minutes=1))
    store = MemoryAdminSessionStore({TOKEN_KEY: VALID_TOKEN, EXPIRY_KEY: str(expiry)})
    service = AdminSessionService(store, verifier, clock=clock)

    assert await service.restore() is False
    assert service.is_admin is False
    assert store.data == {}


@pytest.mark.asyncio
async def test_restore_at_exact_expiry_is_expired(verifier, clock):
    store = MemoryAdminSessionStore({TOKEN_KEY: VALID_TOKEN, EXPIRY_KEY: str(to_epoch_ms(TEST_NOW))})
    service = AdminSessionService(store, verifier, clock=clock)

    assert await service.restore() is False
    assert store.data == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("stored", [
    {TOKEN_KEY: VALID_TOKEN},
    {EXPIRY_KEY: "9999999999999"},
    {TOKEN_KEY: VALID_TOKEN, EXPIRY_KEY: "not-a-number"},
    {TOKEN_KEY: "short", EXPIRY_KEY: "9999999999999"},
])
async def test_restore_discards_unusable_pairs(verifier, clock, stored):
    """Should treat partial or corrupt storage as logged out and clean it up"""
    store = MemoryAdminSessionStore(stored)
    service = AdminSessionService(store, verifier, clock=clock)

    assert await service.restore() is False
    assert service.is_admin is False
    assert store.data == {}


@pytest.mark.asyncio
async def test_restore_with_empty_storage(service):
    assert await service.restore() is False
    assert service.is_admin is False


@pytest.mark.asyncio
async def test_restore_read_failure_starts_logged_out(verifier, clock):
    store = MemoryAdminSessionStore()
    store.read_pair = AsyncMock(side_effect=ConnectionError("storage down"))
    service = AdminSessionService(store, verifier, clock=clock)

    assert await service.restore() is False
    assert service.is_admin is False


@pytest.mark.asyncio
async def test_restore_runs_once(verifier, clock):
    expiry = to_epoch_ms(TEST_NOW + timedelta(hours=1))
    store = MemoryAdminSessionStore({TOKEN_KEY: VALID_TOKEN, EXPIRY_KEY: str(expiry)})
    service = AdminSessionService(store, verifier, clock=clock)
    await service.restore()

    await service.logout()
    store.data.update({TOKEN_KEY: VALID_TOKEN, EXPIRY_KEY: str(expiry)})

    assert await service.restore() is False
    assert service.is_admin is False


@pytest.mark.asyncio
async def test_logout_clears_memory_and_storage(service, admin_store):
    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    await service.logout()

    assert service.is_admin is False
    assert service.session_token is None
    assert admin_store.data == {}


@pytest.mark.asyncio
async def test_logout_without_session_is_harmless(service, admin_store):
    await service.logout()

    assert service.is_admin is False
    assert admin_store.data == {}


@pytest.mark.asyncio
async def test_check_session_before_and_after_expiry(service, admin_store, clock):
    """Should keep the session until its expiry instant, then drop it"""
    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    clock.advance(timedelta(hours=7, minutes=59))
    assert await service.check_session() is True
    assert admin_store.data != {}

    clock.advance(timedelta(minutes=1))
    assert service.is_admin is False
    assert await service.check_session() is False
    assert service.session_token is None
    assert admin_store.data == {}


@pytest.mark.asyncio
async def test_check_session_without_session(service):
    assert await service.check_session() is False


@pytest.mark.asyncio
async def test_listeners_notified_on_changes(service):
    calls = []
    remove = service.add_listener(lambda: calls.append(service.is_admin))

    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)
    await service.logout()
    remove()
    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    assert calls == [True, False]


@pytest.mark.asyncio
async def test_custom_session_duration(admin_store, verifier):
    clock = FrozenClock()
    service = AdminSessionService(
        admin_store, verifier, clock=clock, session_duration=timedelta(minutes=5)
    )

    await service.login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)

    assert service.expires_at == to_epoch_ms(TEST_NOW + timedelta(minutes=5))
