"""
Client for the lottery canister's JSON gateway.

Each call is POSTed to ``/api/canister/{canister_id}/{method}`` with a JSON
body ``{"args": [...]}``. Calls are signed by the caller's identity; anonymous
calls carry the anonymous principal and no signature. A successful reply is
``{"reply": <value>}``; anything else becomes a BackendCallError whose message
carries the gateway's error text.
"""

import base64
import json
from typing import Any, List, Optional

import httpx

from luckycoins.core.exceptions.base import BackendCallError
from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.identity import Ed25519Identity, Principal
from luckycoins.core.service.auth.models.profile import UserProfile
from luckycoins.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class CanisterGatewayClient:
    """Actor for the lottery canister, bound to one identity"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        identity: Optional[Ed25519Identity] = None,
        canister_id: Optional[str] = None
    ):
        self.http = http_client
        self.identity = identity
        self.canister_id = canister_id or settings.BACKEND_CANISTER_ID

    @property
    def sender(self) -> Principal:
        return self.identity.principal if self.identity else Principal.anonymous()

    def _build_headers(self, method: str, body: bytes) -> dict:
        headers = {
            "Content-Type": "application/json",
            "X-Sender": self.sender.to_text(),
        }
        if self.identity is not None:
            signature = self.identity.sign(method.encode("utf-8") + b"\n" + body)
            headers["X-Sender-Pubkey"] = base64.b64encode(self.identity.der_public_key).decode("ascii")
            headers["X-Signature"] = base64.b64encode(signature).decode("ascii")
        return headers

    async def call(self, method: str, args: Optional[List[Any]] = None) -> Any:
        """
        Invoke a canister method through the gateway

        Args:
            method: Canister method name, e.g. ``getCallerUserProfile``
            args: Positional arguments, JSON-serializable

        Returns:
            The decoded ``reply`` value

        Raises:
            BackendCallError: On timeout, connection failure, non-2xx status
                or a malformed reply
        """
        body = json.dumps({"args": args or []}).encode("utf-8")
        url = f"/api/canister/{self.canister_id}/{method}"

        try:
            response = await self.http.post(url, content=body, headers=self._build_headers(method, body))
        except httpx.TimeoutException as e:
            logger.error("Canister call timed out", extra={"method": method})
            raise BackendCallError(f"{method} timed out", method=method) from e
        except httpx.HTTPError as e:
            logger.error("Canister call failed", extra={"method": method, "error": str(e)})
            raise BackendCallError(f"{method} failed: {e}", method=method) from e

        if response.status_code >= 400:
            error_text = self._extract_error(response)
            logger.warning(
                "Canister call rejected",
                extra={"method": method, "status_code": response.status_code, "error": error_text}
            )
            raise BackendCallError(
                f"{method} rejected: {error_text}",
                method=method,
                status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise BackendCallError(f"{method} returned invalid JSON", method=method) from e

        if not isinstance(payload, dict) or "reply" not in payload:
            raise BackendCallError(f"{method} returned no reply", method=method, detail=payload)

        return payload["reply"]

    @staticmethod
    def _extract_error(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return response.text

    async def aclose(self) -> None:
        await self.http.aclose()

    async def get_caller_user_profile(self) -> Any:
        """Raw profile result; shape normalization happens in the session core"""
        return await self.call("getCallerUserProfile")

    async def save_caller_user_profile(self, profile: UserProfile) -> None:
        await self.call("saveCallerUserProfile", [profile.to_wire()])
        logger.info("Caller profile saved", extra={"principal": self.sender.to_text()})
