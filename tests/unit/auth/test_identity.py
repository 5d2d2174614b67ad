import ed25519
import pytest

from luckycoins.core.exceptions.base import IdentityError
from luckycoins.core.service.auth.identity import Ed25519Identity, IdentityProvider, Principal
from luckycoins.core.service.auth.utils.crypto import (
    ED25519_DER_PREFIX,
    generate_session_token,
    hash_password,
)

SEED = bytes(range(32))


def test_anonymous_principal_text():
    principal = Principal.anonymous()

    assert principal.to_text() == "2vxsx-fae"
    assert principal.raw == b"\x04"


def test_self_authenticating_principal_shape():
    identity = Ed25519Identity(SEED)

    assert len(identity.principal.raw) == 29
    assert identity.principal.raw.endswith(b"\x02")
    assert identity.der_public_key == ED25519_DER_PREFIX + identity.public_key


def test_principal_text_groups():
    text = Ed25519Identity(SEED).principal.to_text()

    assert text == str(Ed25519Identity(SEED).principal)
    assert all(len(group) <= 5 for group in text.split("-"))
    assert text == text.lower()


def test_identity_is_deterministic_from_seed():
    assert Ed25519Identity(SEED) == Ed25519Identity(SEED)
    assert Ed25519Identity(SEED) != Ed25519Identity.generate()


def test_identity_rejects_short_seed():
    with pytest.raises(IdentityError):
        Ed25519Identity(b"short")


def test_signatures_verify_with_public_key():
    identity = Ed25519Identity(SEED)
    signature = identity.sign(b"payload")

    verifying_key = ed25519.VerifyingKey(identity.public_key)
    verifying_key.verify(signature, b"payload")
    with pytest.raises(ed25519.BadSignatureError):
        verifying_key.verify(signature, b"tampered")


def test_hash_password_is_sha256_hex():
    assert hash_password("admin123") == (
        "240be518fabd2724ddb6f04eeb1da5967448d7e831c08c8fa822809f74c720a9"
    )


def test_session_token_is_hex():
    token = generate_session_token(32)

    assert len(token) == 64
    int(token, 16)


@pytest.mark.asyncio
async def test_provider_without_saved_key_finishes_initializing(tmp_path):
    provider = IdentityProvider(key_path=str(tmp_path / "identity.key"))
    assert provider.is_initializing is True

    assert await provider.initialize() is None
    assert provider.is_initializing is False
    assert provider.identity is None


@pytest.mark.asyncio
async def test_provider_persists_and_restores_identity(tmp_path):
    key_path = tmp_path / "keys" / "identity.key"
    provider = IdentityProvider(key_path=str(key_path))
    await provider.initialize()
    identity = await provider.login()

    restored = IdentityProvider(key_path=str(key_path))
    await restored.initialize()

    assert key_path.exists()
    assert restored.identity == identity


@pytest.mark.asyncio
async def test_provider_clear_removes_saved_key(tmp_path):
    key_path = tmp_path / "identity.key"
    provider = IdentityProvider(key_path=str(key_path))
    await provider.login()

    await provider.clear()

    assert provider.identity is None
    assert not key_path.exists()


@pytest.mark.asyncio
async def test_provider_ignores_corrupt_key(tmp_path):
    key_path = tmp_path / "identity.key"
    key_path.write_text("not hex")
    provider = IdentityProvider(key_path=str(key_path))

    assert await provider.initialize() is None
    assert provider.is_initializing is False


@pytest.mark.asyncio
async def test_provider_notifies_listeners(tmp_path):
    provider = IdentityProvider(persist=False)
    seen = []
    provider.add_listener(lambda: seen.append(provider.identity))

    await provider.initialize()
    identity = await provider.login(Ed25519Identity(SEED))
    await provider.clear()

    assert seen == [None, identity, None]
