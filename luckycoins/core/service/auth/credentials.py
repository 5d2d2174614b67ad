import hmac
from abc import ABC, abstractmethod
from typing import Optional

from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.utils.crypto import hash_password
from luckycoins.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()


class AdminCredentialVerifier(ABC):
    """Decides whether an (admin id, password) pair grants an admin session"""

    @abstractmethod
    async def verify(self, admin_id: str, password: str) -> bool:
        ...


class EmbeddedCredentialVerifier(AdminCredentialVerifier):
    """Checks credentials against an id and plaintext shipped with the client.

    The expected digest is recomputed from the embedded plaintext on every
    call, so the plaintext itself is part of the deployment. Accept/reject
    outcomes match a stored-digest check for the same plaintext.
    """

    def __init__(
        self,
        admin_id: Optional[str] = None,
        expected_password: Optional[str] = None
    ):
        self.admin_id = admin_id if admin_id is not None else settings.ADMIN_ID
        self._expected_password = (
            expected_password if expected_password is not None else settings.ADMIN_PASSWORD
        )
        logger.warning(
            "Admin credentials are verified against an embedded plaintext password",
            extra={"admin_id": self.admin_id}
        )

    async def verify(self, admin_id: str, password: str) -> bool:
        # Case-sensitive, exact match on the id
        if admin_id != self.admin_id:
            return False

        provided_hash = hash_password(password)
        expected_hash = hash_password(self._expected_password)
        return hmac.compare_digest(provided_hash, expected_hash)
