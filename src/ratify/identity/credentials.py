"""Member credential (PIN) hashing and verification.

PINs are never stored. Only a salted PBKDF2-HMAC-SHA256 digest is kept,
encoded as:

    pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>

Verification is constant-time. A missing or malformed hash never
verifies.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

from ratify.errors import ValidationError


ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 200_000
SALT_BYTES = 16


def _derive(secret: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt, iterations)


def hash_credential(secret: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Hash a PIN for storage.

    Raises ValidationError if the PIN is empty.
    """
    if not isinstance(secret, str) or not secret:
        raise ValidationError("PIN is required")
    if iterations < 1:
        raise ValidationError(f"iterations must be >= 1, got {iterations}")
    salt = secrets.token_bytes(SALT_BYTES)
    digest = _derive(secret, salt, iterations)
    return f"{ALGORITHM}${iterations}${salt.hex()}${digest.hex()}"


def verify_credential(secret: Optional[str], stored_hash: Optional[str]) -> bool:
    """Check a PIN against a stored hash."""
    if not secret or not stored_hash:
        return False
    try:
        algorithm, iterations, salt_hex, digest_hex = stored_hash.split("$")
        if algorithm != ALGORITHM:
            return False
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
        rounds = int(iterations)
    except ValueError:
        return False
    if rounds < 1:
        return False
    return hmac.compare_digest(_derive(secret, salt, rounds), expected)
