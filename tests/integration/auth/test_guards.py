import asyncio
from datetime import timedelta

import pytest

from luckycoins.core.service.auth.guards import (
    admin_login_redirect,
    require_admin_role,
    require_admin_session,
    require_authenticated,
)
from luckycoins.core.service.auth.models.state import NavigationTarget

from conftest import (
    TEST_ADMIN_ID,
    TEST_ADMIN_PASSWORD,
    FakeActor,
    FrozenClock,
    build_session,
    make_profile_payload,
)


@pytest.mark.asyncio
async def test_require_authenticated_redirects_anonymous_visitor():
    session = await build_session(FakeActor())

    intent = require_authenticated(session)

    assert intent.redirect_to == NavigationTarget.LOGIN
    assert intent.wait is False


@pytest.mark.asyncio
async def test_require_authenticated_waits_while_loading():
    actor = FakeActor(make_profile_payload())
    actor.gate = asyncio.Event()
    session = await build_session(actor)
    await session.identity_provider.login()

    intent = require_authenticated(session)
    assert intent.wait is True
    assert intent.redirect_to is None

    actor.gate.set()
    await session.wait_until_loaded(timeout=2)
    assert require_authenticated(session) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("role,allowed", [("admin", True), ("user", False), ("guest", False)])
async def test_require_admin_role(role, allowed):
    session = await build_session(FakeActor({"__kind__": "ok", "ok": make_profile_payload(role=role)}))
    await session.identity_provider.login()
    await session.wait_until_loaded(timeout=2)

    intent = require_admin_role(session)

    if allowed:
        assert intent is None
    else:
        assert intent.redirect_to == NavigationTarget.DASHBOARD


@pytest.mark.asyncio
async def test_admin_guards_follow_session_expiry():
    clock = FrozenClock()
    session = await build_session(FakeActor(), clock=clock)

    assert (await require_admin_session(session)).redirect_to == NavigationTarget.ADMIN_LOGIN
    assert admin_login_redirect(session) is None

    await session.admin_login(TEST_ADMIN_ID, TEST_ADMIN_PASSWORD)
    assert await require_admin_session(session) is None
    assert admin_login_redirect(session).redirect_to == NavigationTarget.ADMIN_DASHBOARD

    clock.advance(timedelta(hours=8))
    assert (await require_admin_session(session)).redirect_to == NavigationTarget.ADMIN_LOGIN
    assert session.snapshot().is_admin is False
    assert session.admin_session_token is None
