"""One-way password hashing."""

from __future__ import annotations

import secrets

from argon2 import PasswordHasher as Argon2Hasher
from argon2 import Type
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher:
    """Salted argon2id hashing.

    Hashing is deliberately slow; callers on an event loop must run it in a
    worker thread.
    """

    def __init__(self, *, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4) -> None:
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        self._decoy_digest: str | None = None

    def hash(self, plaintext: str) -> str:
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, digest: str | None) -> bool:
        if not digest:
            self._verify_decoy(plaintext)
            return False
        try:
            return self._hasher.verify(digest, plaintext)
        except (VerificationError, InvalidHashError):
            return False

    def unusable_hash(self) -> str:
        """Digest of a random secret nobody knows; for federated-only accounts."""
        return self.hash(secrets.token_urlsafe(32))

    def _verify_decoy(self, plaintext: str) -> None:
        # Unknown accounts cost the same as a wrong password.
        if self._decoy_digest is None:
            self._decoy_digest = self.unusable_hash()
        try:
            self._hasher.verify(self._decoy_digest, plaintext)
        except VerificationError:
            pass


__all__ = ["PasswordHasher"]
