"""Member identity — credential hashing and verification."""

from ratify.identity.credentials import hash_credential, verify_credential

__all__ = ["hash_credential", "verify_credential"]
