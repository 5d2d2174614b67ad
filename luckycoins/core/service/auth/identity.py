"""
Cryptographic identity for the portal.

An identity is an Ed25519 key pair; its principal is the self-authenticating
principal of the public key. The provider keeps the seed on disk so a
restarted process comes back logged in, the same way a browser keeps its
delegation between reloads.
"""

import asyncio
import base64
import hashlib
import zlib
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from luckycoins.core.exceptions.base import IdentityError
from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.utils.crypto import (
    der_encode_public_key,
    generate_ed25519_seed,
    load_signing_key,
)
from luckycoins.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()

SELF_AUTHENTICATING_SUFFIX = b"\x02"
ANONYMOUS_BYTES = b"\x04"


class Principal(BaseModel):
    """Opaque principal bytes with the dashed base32 text form"""
    model_config = ConfigDict(frozen=True)

    raw: bytes

    @classmethod
    def self_authenticating(cls, public_key: bytes) -> "Principal":
        digest = hashlib.sha224(der_encode_public_key(public_key)).digest()
        return cls(raw=digest + SELF_AUTHENTICATING_SUFFIX)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(raw=ANONYMOUS_BYTES)

    def to_text(self) -> str:
        checksum = zlib.crc32(self.raw).to_bytes(4, "big")
        encoded = base64.b32encode(checksum + self.raw).decode("ascii").rstrip("=").lower()
        return "-".join(encoded[i:i + 5] for i in range(0, len(encoded), 5))

    def __str__(self) -> str:
        return self.to_text()


class Ed25519Identity:
    """Signing identity backed by an Ed25519 seed"""

    def __init__(self, seed: bytes):
        if len(seed) != 32:
            raise IdentityError("Identity seed must be 32 bytes", detail={"length": len(seed)})
        self._seed = seed
        self._signing_key, self.public_key = load_signing_key(seed)
        self.principal = Principal.self_authenticating(self.public_key)

    @classmethod
    def generate(cls) -> "Ed25519Identity":
        return cls(generate_ed25519_seed())

    @property
    def seed(self) -> bytes:
        return self._seed

    @property
    def der_public_key(self) -> bytes:
        return der_encode_public_key(self.public_key)

    def sign(self, message: bytes) -> bytes:
        return self._signing_key.sign(message)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Ed25519Identity) and other.principal == self.principal

    def __hash__(self) -> int:
        return hash(self.principal)

    def __repr__(self) -> str:
        return f"Ed25519Identity(principal={self.principal.to_text()})"


class IdentityProvider:
    """Observable holder of the current identity.

    `is_initializing` stays true until `initialize()` has looked for a saved
    key. Listeners are called synchronously after every change.
    """

    def __init__(self, key_path: Optional[str] = None, persist: bool = True):
        path = key_path if key_path is not None else settings.IDENTITY_KEY_PATH
        self.key_path: Optional[Path] = Path(path) if (persist and path) else None
        self._identity: Optional[Ed25519Identity] = None
        self._is_initializing = True
        self._listeners: List[Callable[[], None]] = []

    @property
    def identity(self) -> Optional[Ed25519Identity]:
        return self._identity

    @property
    def is_initializing(self) -> bool:
        return self._is_initializing

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    async def initialize(self) -> Optional[Ed25519Identity]:
        """Restore a saved identity, if any, and finish initializing"""
        try:
            seed = await asyncio.to_thread(self._read_seed)
            if seed is not None:
                self._identity = Ed25519Identity(seed)
                logger.info(
                    "Identity restored",
                    extra={"principal": self._identity.principal.to_text()}
                )
        except (IdentityError, OSError, ValueError) as e:
            logger.error("Saved identity could not be restored", extra={"error": str(e)})
            self._identity = None
        finally:
            self._is_initializing = False
            self._notify()
        return self._identity

    async def login(self, identity: Optional[Ed25519Identity] = None) -> Ed25519Identity:
        """Adopt the given identity, or a freshly generated one, and save it"""
        new_identity = identity or Ed25519Identity.generate()
        try:
            await asyncio.to_thread(self._write_seed, new_identity.seed)
        except OSError as e:
            raise IdentityError("Failed to store identity key", detail={"error": str(e)}) from e

        self._identity = new_identity
        self._is_initializing = False
        logger.info("Identity logged in", extra={"principal": new_identity.principal.to_text()})
        self._notify()
        return new_identity

    async def clear(self) -> None:
        """Forget the identity and its saved key"""
        principal = self._identity.principal.to_text() if self._identity else None
        self._identity = None
        self._notify()
        try:
            await asyncio.to_thread(self._delete_seed)
        except OSError as e:
            logger.error("Failed to delete identity key", extra={"error": str(e)})
        logger.info("Identity cleared", extra={"principal": principal})

    def _read_seed(self) -> Optional[bytes]:
        if self.key_path is None or not self.key_path.exists():
            return None
        return bytes.fromhex(self.key_path.read_text().strip())

    def _write_seed(self, seed: bytes) -> None:
        if self.key_path is None:
            return
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        self.key_path.write_text(seed.hex())
        self.key_path.chmod(0o600)

    def _delete_seed(self) -> None:
        if self.key_path is not None:
            self.key_path.unlink(missing_ok=True)
