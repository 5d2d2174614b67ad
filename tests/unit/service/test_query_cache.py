import pytest

from luckycoins.core.service.query_cache import CURRENT_USER_PROFILE_KEY, QueryCache


def counting_loader():
    calls = []

    async def loader():
        calls.append(1)
        return len(calls)

    return loader, calls


@pytest.mark.asyncio
async def test_fetch_loads_once_until_invalidated():
    cache = QueryCache()
    loader, calls = counting_loader()

    assert await cache.fetch(CURRENT_USER_PROFILE_KEY, loader) == 1
    assert await cache.fetch(CURRENT_USER_PROFILE_KEY, loader) == 1

    cache.invalidate(CURRENT_USER_PROFILE_KEY)
    assert await cache.fetch(CURRENT_USER_PROFILE_KEY, loader) == 2
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_invalidate_drops_keys_under_prefix():
    cache = QueryCache()
    profile_loader, profile_calls = counting_loader()
    pool_loader, pool_calls = counting_loader()
    await cache.fetch(CURRENT_USER_PROFILE_KEY + ("summary",), profile_loader)
    await cache.fetch(("lotteryPool", "pool-1"), pool_loader)

    dropped = cache.invalidate(CURRENT_USER_PROFILE_KEY)

    assert dropped == 1
    await cache.fetch(CURRENT_USER_PROFILE_KEY + ("summary",), profile_loader)
    await cache.fetch(("lotteryPool", "pool-1"), pool_loader)
    assert len(profile_calls) == 2
    assert len(pool_calls) == 1


@pytest.mark.asyncio
async def test_failed_load_is_not_cached():
    cache = QueryCache()

    async def failing():
        raise LookupError("not yet")

    with pytest.raises(LookupError):
        await cache.fetch(CURRENT_USER_PROFILE_KEY, failing)

    assert cache.invalidate(CURRENT_USER_PROFILE_KEY) == 0
