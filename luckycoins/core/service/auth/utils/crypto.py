"""
Cryptographic helpers for the session core.
Digests, random session tokens, and Ed25519 identity keys.
"""

import hashlib
import secrets
from typing import Tuple

import ed25519

from luckycoins.core.logger.logger import get_logger

logger = get_logger(__name__)

# ASN.1 DER header of an Ed25519 SubjectPublicKeyInfo (RFC 8410)
ED25519_DER_PREFIX = bytes.fromhex("302a300506032b6570032100")


def hash_password(candidate: str) -> str:
    """
    Digest a password candidate

    Args:
        candidate: Plaintext to digest

    Returns:
        str: SHA-256 of the UTF-8 bytes, lowercase hex, unsalted
    """
    return hashlib.sha256(candidate.encode("utf-8")).hexdigest()


def generate_session_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure session token

    Args:
        length: Number of random bytes (default: 32 bytes = 256 bits)

    Returns:
        str: Lowercase hex token, two characters per byte
    """
    return secrets.token_hex(length)


def generate_ed25519_seed() -> bytes:
    """Fresh 32-byte Ed25519 seed"""
    return secrets.token_bytes(32)


def load_signing_key(seed: bytes) -> Tuple[ed25519.SigningKey, bytes]:
    """
    Build a signing key from its seed

    Returns:
        Tuple[SigningKey, bytes]: (signing key, raw 32-byte public key)
    """
    try:
        signing_key = ed25519.SigningKey(seed)
        return signing_key, signing_key.get_verifying_key().to_bytes()
    except Exception as e:
        logger.error(f"Failed to load ed25519 signing key: {str(e)}")
        raise


def der_encode_public_key(public_key: bytes) -> bytes:
    if len(public_key) != 32:
        raise ValueError(f"Ed25519 public key must be 32 bytes, got {len(public_key)}")
    return ED25519_DER_PREFIX + public_key
