"""
HTTP client setup for the canister gateway.
A failed call is reported once; whether to retry is the caller's decision.
Every backend handle owns its client and closes it along with the handle.
"""

from typing import Any, Dict, Optional

import httpx

from luckycoins.infra.config.settings import get_settings

settings = get_settings()


class HTTPClientConfig:
    """Timeouts, pool limits and headers for gateway clients"""

    @classmethod
    def get_timeout(cls, read_timeout: Optional[float] = None) -> httpx.Timeout:
        """Connects fail fast; canister calls may take a consensus round to reply"""
        return httpx.Timeout(
            read_timeout or settings.HTTP_BACKEND_TIMEOUT,
            connect=settings.HTTP_DEFAULT_TIMEOUT
        )

    @classmethod
    def get_base_headers(cls) -> Dict[str, str]:
        return {
            "User-Agent": f"LuckyCoins-Portal/{settings.APP_VERSION}",
            "Accept": "application/json",
        }

    @classmethod
    def create_client_config(cls, read_timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Keyword arguments for an httpx.AsyncClient (not the client itself)

        Args:
            read_timeout: Override for the per-call read timeout in seconds

        Returns:
            Dict with client configuration
        """
        return {
            "timeout": cls.get_timeout(read_timeout),
            "limits": httpx.Limits(
                max_connections=settings.HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=settings.HTTP_MAX_KEEPALIVE_CONNECTIONS
            ),
            "headers": cls.get_base_headers(),
            "follow_redirects": False,
        }


def create_backend_client(base_url: Optional[str] = None, **kwargs) -> httpx.AsyncClient:
    """
    Client bound to the canister gateway.
    The owner must close it with `await client.aclose()`.
    """
    config = HTTPClientConfig.create_client_config()
    config["base_url"] = base_url or settings.BACKEND_GATEWAY_URL
    config.update(kwargs)
    return httpx.AsyncClient(**config)
