from typing import Any, Awaitable, Callable, Dict, Hashable, Tuple

from luckycoins.core.logger.logger import get_logger

logger = get_logger(__name__)

QueryKey = Tuple[Hashable, ...]

CURRENT_USER_PROFILE_KEY: QueryKey = ("currentUserProfile",)


class QueryCache:
    """Keyed cache of views derived from remote query results.

    Invalidating a key drops every entry whose key starts with it, so
    ``("currentUserProfile",)`` clears ``("currentUserProfile", "summary")``
    as well.
    """

    def __init__(self):
        self._entries: Dict[QueryKey, Any] = {}

    async def fetch(self, key: QueryKey, loader: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value or load, store and return it.

        Nothing is stored when the loader raises.
        """
        if key in self._entries:
            return self._entries[key]
        value = await loader()
        self._entries[key] = value
        return value

    def invalidate(self, key: QueryKey) -> int:
        """Drop all entries under `key`; returns how many were dropped"""
        stale = [k for k in self._entries if k[:len(key)] == key]
        for k in stale:
            del self._entries[k]
        logger.debug("Query cache invalidated", extra={"query_key": list(key), "dropped": len(stale)})
        return len(stale)
