from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.cache.admin_session_store import AdminSessionStore
from luckycoins.core.service.auth.credentials import AdminCredentialVerifier
from luckycoins.core.service.auth.models.admin import AdminLoginResult, AdminSession, to_epoch_ms
from luckycoins.core.service.auth.utils.crypto import generate_session_token
from luckycoins.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()

INVALID_CREDENTIALS_MESSAGE = "Invalid admin credentials"
UNEXPECTED_ERROR_MESSAGE = "An error occurred. Please try again."

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AdminSessionService:
    """Admin credential check and session lifecycle.

    The in-memory session and the stored (token, expiry) pair change together:
    login writes the pair before the session is held in memory, logout and
    expiry drop the memory copy and delete the pair.
    """

    def __init__(
        self,
        store: AdminSessionStore,
        verifier: AdminCredentialVerifier,
        clock: Clock = utc_now,
        session_duration: Optional[timedelta] = None
    ):
        self.store = store
        self.verifier = verifier
        self.clock = clock
        self.session_duration = session_duration or timedelta(hours=settings.ADMIN_SESSION_DURATION_HOURS)
        self._session: Optional[AdminSession] = None
        self._restored = False
        self._listeners: List[Callable[[], None]] = []

    @property
    def session_token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def expires_at(self) -> Optional[int]:
        return self._session.expires_at if self._session else None

    @property
    def is_admin(self) -> bool:
        """Pure read; an expired pair stays stored until `check_session` runs"""
        return self._session is not None and not self._session.is_expired(self.clock())

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change callback; returns a function that removes it"""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_session(self, session: Optional[AdminSession]) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener()

    async def restore(self) -> bool:
        """Restore a stored, unexpired session. Runs once; later calls are no-ops."""
        if self._restored:
            return self.is_admin
        self._restored = True

        try:
            token, expiry = await self.store.read_pair()
        except Exception as e:
            logger.error("Admin session restore failed, starting logged out", extra={"error": str(e)})
            return False

        if token is None and expiry is None:
            return False

        session = self._parse_stored(token, expiry)
        if session is not None and not session.is_expired(self.clock()):
            self._set_session(session)
            logger.info("Admin session restored", extra={"expires_at": session.expires_at})
            return True

        logger.info(
            "Discarding stored admin session",
            extra={"partial": token is None or expiry is None}
        )
        await self._clear_storage()
        return False

    @staticmethod
    def _parse_stored(token: Optional[str], expiry: Optional[str]) -> Optional[AdminSession]:
        if not token or not expiry:
            return None
        try:
            return AdminSession(token=token, expires_at=int(expiry))
        except ValueError:
            # pydantic's ValidationError is a ValueError too
            return None

    async def login(self, admin_id: str, password: str) -> AdminLoginResult:
        """Check credentials and open an admin session. Never raises."""
        try:
            if not await self.verifier.verify(admin_id, password):
                logger.warning("Admin login rejected")
                return AdminLoginResult(success=False, error=INVALID_CREDENTIALS_MESSAGE)

            now = self.clock()
            session = AdminSession(
                token=generate_session_token(settings.ADMIN_SESSION_TOKEN_BYTES),
                expires_at=to_epoch_ms(now + self.session_duration)
            )
            await self.store.write_pair(
                session.token,
                session.expires_at,
                ttl_ms=int(self.session_duration.total_seconds() * 1000)
            )
            self._set_session(session)

            logger.info("Admin session created", extra={"expires_at": session.expires_at})
            return AdminLoginResult(success=True)

        except Exception as e:
            logger.error("Admin login failed unexpectedly", extra={"error": str(e)})
            return AdminLoginResult(success=False, error=UNEXPECTED_ERROR_MESSAGE)

    async def logout(self) -> None:
        """Drop the session locally and in storage, whatever its state"""
        self._set_session(None)
        await self._clear_storage()
        logger.info("Admin logged out")

    async def check_session(self) -> bool:
        """Re-validate the held session, expiring it if its time has passed"""
        if self._session is None:
            return False
        if self._session.is_expired(self.clock()):
            logger.info("Admin session expired", extra={"expires_at": self._session.expires_at})
            self._set_session(None)
            await self._clear_storage()
            return False
        return True

    async def _clear_storage(self) -> None:
        try:
            await self.store.clear_pair()
        except Exception as e:
            logger.error("Failed to delete stored admin session", extra={"error": str(e)})
