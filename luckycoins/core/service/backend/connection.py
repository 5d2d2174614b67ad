import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Set

from luckycoins.core.http_client import create_backend_client
from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.identity import Ed25519Identity, IdentityProvider
from luckycoins.core.service.auth.models.profile import UserProfile
from luckycoins.core.service.backend.gateway_client import CanisterGatewayClient

logger = get_logger(__name__)


class BackendActor(Protocol):
    """Remote methods the session core relies on"""

    async def get_caller_user_profile(self) -> Any:
        ...

    async def save_caller_user_profile(self, profile: UserProfile) -> None:
        ...


ActorFactory = Callable[[Optional[Ed25519Identity]], Awaitable[BackendActor]]


async def create_gateway_actor(identity: Optional[Ed25519Identity]) -> BackendActor:
    return CanisterGatewayClient(create_backend_client(), identity=identity)


class BackendConnection:
    """Live backend handle, rebuilt whenever the identity changes.

    While a handle for the current identity is being built, or the held handle
    still belongs to a previous identity, `is_fetching` is true and `actor`
    must not be used for caller-scoped calls.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        actor_factory: ActorFactory = create_gateway_actor
    ):
        self.identity_provider = identity_provider
        self.actor_factory = actor_factory
        self._actor: Optional[BackendActor] = None
        self._bound_identity: Optional[Ed25519Identity] = None
        self._connecting = False
        self._generation = 0
        self._listeners: List[Callable[[], None]] = []
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def actor(self) -> Optional[BackendActor]:
        return self._actor

    @property
    def is_fetching(self) -> bool:
        return self._connecting or self._bound_identity != self.identity_provider.identity

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    async def start(self) -> None:
        """Follow identity changes and build the first handle"""
        if self._unsubscribe is None:
            self._unsubscribe = self.identity_provider.add_listener(self._on_identity_changed)
        await self.connect()

    def _on_identity_changed(self) -> None:
        if self._bound_identity == self.identity_provider.identity and not self._connecting:
            return
        task = asyncio.get_running_loop().create_task(self.connect())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def connect(self) -> Optional[BackendActor]:
        """(Re)build the handle for the current identity; the newest call wins"""
        identity = self.identity_provider.identity
        self._generation += 1
        generation = self._generation
        self._connecting = True
        self._notify()

        try:
            actor = await self.actor_factory(identity)
        except Exception as e:
            logger.error("Failed to create backend handle", extra={"error": str(e)})
            if generation == self._generation:
                # Settle on "no handle" for this identity instead of connecting forever
                await self._replace_actor(None, identity)
            return None

        if generation != self._generation:
            await self._close_actor(actor)
            return None

        await self._replace_actor(actor, identity)
        logger.info(
            "Backend handle ready",
            extra={"principal": identity.principal.to_text() if identity else "anonymous"}
        )
        return actor

    async def _replace_actor(
        self,
        actor: Optional[BackendActor],
        identity: Optional[Ed25519Identity]
    ) -> None:
        previous = self._actor
        self._actor = actor
        self._bound_identity = identity
        self._connecting = False
        self._notify()
        if previous is not None and previous is not actor:
            await self._close_actor(previous)

    @staticmethod
    async def _close_actor(actor: BackendActor) -> None:
        close = getattr(actor, "aclose", None)
        if close is None:
            return
        try:
            await close()
        except Exception as e:
            logger.warning(f"Failed to close backend handle: {e}")

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        self._generation += 1
        actor, self._actor = self._actor, None
        self._bound_identity = None
        self._connecting = False
        if actor is not None:
            await self._close_actor(actor)
