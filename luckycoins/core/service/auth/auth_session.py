"""
Session bootstrap for the portal.

AuthSession reconciles three independent signals into one view:

- whether a cryptographic identity is present (IdentityProvider)
- whether a backend handle for that identity is ready (BackendConnection)
- whether the backend holds a profile for the caller (one remote call)

and exposes the result as an immutable AuthSnapshot. It also fronts the
admin session lifecycle so a host has a single object to bind to.
"""

import asyncio
from typing import Callable, List, Optional, Set, Tuple

from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.admin_session_service import AdminSessionService
from luckycoins.core.service.auth.identity import Ed25519Identity, IdentityProvider
from luckycoins.core.service.auth.models.admin import AdminLoginResult
from luckycoins.core.service.auth.models.profile import (
    ProfileFetchOutcome,
    ProfileOutcomeKind,
    UserProfile,
)
from luckycoins.core.service.auth.models.state import AuthSnapshot
from luckycoins.core.service.auth.profile_normalizer import (
    LOAD_FAILED_MESSAGE,
    classify_profile_exception,
    normalize_profile_response,
)
from luckycoins.core.service.backend.connection import BackendActor, BackendConnection
from luckycoins.core.service.query_cache import CURRENT_USER_PROFILE_KEY, QueryCache

logger = get_logger(__name__)

SnapshotListener = Callable[[AuthSnapshot], None]


class AuthSession:
    """Profile bootstrap state machine plus admin session front.

    Every profile fetch takes a generation number. A result is applied only if
    no newer fetch or reset happened meanwhile and the identity is unchanged,
    so a response that arrives after logout never repopulates the profile.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        backend: BackendConnection,
        admin_sessions: AdminSessionService,
        query_cache: Optional[QueryCache] = None
    ):
        self.identity_provider = identity_provider
        self.backend = backend
        self.admin_sessions = admin_sessions
        self.query_cache = query_cache or QueryCache()

        self._user_profile: Optional[UserProfile] = None
        self._profile_loading = False
        self._is_fetched = False
        self._show_profile_setup = False
        self._profile_error: Optional[str] = None

        self._generation = 0
        self._profile_identity: Optional[Ed25519Identity] = None
        self._last_trigger: Optional[Tuple[Ed25519Identity, BackendActor]] = None
        self._fetch_tasks: Set[asyncio.Task] = set()

        self._subscribers: List[SnapshotListener] = []
        self._last_published: Optional[AuthSnapshot] = None
        self._unsubscribers: List[Callable[[], None]] = []

    # Derived view

    @property
    def identity(self) -> Optional[Ed25519Identity]:
        return self.identity_provider.identity

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def is_loading(self) -> bool:
        return (
            self.identity_provider.is_initializing
            or self.backend.is_fetching
            or (self.is_authenticated and self._profile_loading and not self._is_fetched)
        )

    @property
    def user_profile(self) -> Optional[UserProfile]:
        return self._user_profile

    @property
    def is_fetched(self) -> bool:
        return self._is_fetched

    @property
    def show_profile_setup(self) -> bool:
        return self._show_profile_setup

    @property
    def profile_error(self) -> Optional[str]:
        return self._profile_error

    @property
    def is_admin(self) -> bool:
        return self.admin_sessions.is_admin

    @property
    def admin_session_token(self) -> Optional[str]:
        return self.admin_sessions.session_token

    def snapshot(self) -> AuthSnapshot:
        identity = self.identity
        return AuthSnapshot(
            is_authenticated=identity is not None,
            is_loading=self.is_loading,
            user_profile=self._user_profile,
            is_fetched=self._is_fetched,
            show_profile_setup=self._show_profile_setup,
            profile_error=self._profile_error,
            principal=identity.principal.to_text() if identity else None,
            admin_session_token=self.admin_session_token,
            is_admin=self.is_admin,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call `listener` with each new snapshot; returns an unsubscribe function"""
        self._subscribers.append(listener)

        def unsubscribe() -> None:
            if listener in self._subscribers:
                self._subscribers.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        current = self.snapshot()
        if current == self._last_published:
            return
        self._last_published = current
        for listener in list(self._subscribers):
            try:
                listener(current)
            except Exception as e:
                logger.error("Session subscriber failed", extra={"error": str(e)}, exc_info=True)

    # Lifecycle

    async def start(self) -> None:
        """Restore the admin session and begin following identity and backend"""
        await self.admin_sessions.restore()
        if not self._unsubscribers:
            self._unsubscribers = [
                self.identity_provider.add_listener(self._on_inputs_changed),
                self.backend.add_listener(self._on_inputs_changed),
                self.admin_sessions.add_listener(self._publish),
            ]
        self._on_inputs_changed()

    async def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        tasks = list(self._fetch_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def settled(self) -> AuthSnapshot:
        """Wait for scheduled profile fetches to finish, then return the snapshot"""
        while self._fetch_tasks:
            await asyncio.gather(*list(self._fetch_tasks), return_exceptions=True)
        return self.snapshot()

    async def wait_until_loaded(self, timeout: float = 10.0) -> AuthSnapshot:
        """Wait for the first snapshot that is no longer loading.

        Raises:
            asyncio.TimeoutError: if loading has not finished within `timeout`
        """
        if not self.is_loading:
            return self.snapshot()

        loaded = asyncio.get_running_loop().create_future()

        def listener(snapshot: AuthSnapshot) -> None:
            if not snapshot.is_loading and not loaded.done():
                loaded.set_result(snapshot)

        unsubscribe = self.subscribe(listener)
        try:
            return await asyncio.wait_for(loaded, timeout)
        finally:
            unsubscribe()

    # Trigger discipline

    def _on_inputs_changed(self) -> None:
        identity = self.identity

        if identity != self._profile_identity:
            # Logout or account switch: drop everything derived from the old identity now
            self._reset_profile_state()
            self._profile_identity = identity

        actor = self.backend.actor
        if identity is not None and not self.backend.is_fetching:
            if actor is None:
                if not self._is_fetched:
                    self._settle_without_backend()
            elif (identity, actor) != self._last_trigger:
                self._last_trigger = (identity, actor)
                self._schedule_fetch()

        self._publish()

    def _reset_profile_state(self) -> None:
        self._generation += 1
        self._last_trigger = None
        self._user_profile = None
        self._profile_loading = False
        self._is_fetched = False
        self._show_profile_setup = False
        self._profile_error = None
        self.query_cache.invalidate(CURRENT_USER_PROFILE_KEY)

    def _schedule_fetch(self) -> None:
        # Raised before the task runs so is_loading cannot dip between
        # "handle ready" and "profile fetched"
        self._profile_loading = True
        task = asyncio.get_running_loop().create_task(self.fetch_profile())
        self._fetch_tasks.add(task)
        task.add_done_callback(self._fetch_tasks.discard)

    # Operations

    async def fetch_profile(self) -> None:
        """Fetch the caller's profile once and fold the outcome into state"""
        identity = self.identity
        actor = self.backend.actor
        if identity is None or actor is None or self.backend.is_fetching:
            self._reset_profile_state()
            self._publish()
            return

        self._generation += 1
        generation = self._generation
        self._profile_loading = True
        self._profile_error = None
        self._publish()

        try:
            raw = await actor.get_caller_user_profile()
            outcome = normalize_profile_response(raw)
        except Exception as e:
            logger.error(
                "Failed to fetch user profile",
                extra={"principal": identity.principal.to_text(), "error": str(e)}
            )
            outcome = classify_profile_exception(e)

        if generation != self._generation or self.identity != identity:
            logger.info(
                "Discarding stale profile result",
                extra={"principal": identity.principal.to_text()}
            )
            return

        self._apply_outcome(outcome)
        self._profile_loading = False
        self._publish()

    def _apply_outcome(self, outcome: ProfileFetchOutcome) -> None:
        self._user_profile = outcome.profile if outcome.kind == ProfileOutcomeKind.READY else None
        self._show_profile_setup = outcome.kind == ProfileOutcomeKind.SETUP_REQUIRED
        self._profile_error = outcome.message
        self._is_fetched = True

        logger.info(
            "Profile fetch settled",
            extra={"outcome": outcome.kind.value, "principal": self._principal_text()}
        )

    def _settle_without_backend(self) -> None:
        # Identity present but no handle could be built for it
        logger.warning(
            "No backend handle for the current identity",
            extra={"principal": self._principal_text()}
        )
        self._apply_outcome(ProfileFetchOutcome.failed(LOAD_FAILED_MESSAGE))
        self._profile_loading = False

    def _principal_text(self) -> Optional[str]:
        return self.identity.principal.to_text() if self.identity else None

    async def complete_profile_setup(self) -> None:
        """Close the setup prompt, reload the profile and refresh dependent views"""
        self._show_profile_setup = False
        self._publish()
        await self.fetch_profile()
        self.query_cache.invalidate(CURRENT_USER_PROFILE_KEY)

    async def refetch_profile(self) -> None:
        await self.fetch_profile()
        self.query_cache.invalidate(CURRENT_USER_PROFILE_KEY)

    # Admin session

    async def admin_login(self, admin_id: str, password: str) -> AdminLoginResult:
        return await self.admin_sessions.login(admin_id, password)

    async def admin_logout(self) -> None:
        await self.admin_sessions.logout()

    async def check_admin(self) -> bool:
        """Re-validate the admin session; admin views call this on each navigation"""
        is_admin = await self.admin_sessions.check_session()
        self._publish()
        return is_admin
