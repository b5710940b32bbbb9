"""External identity provider interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class InvalidAssertionError(Exception):
    """Raised when an identity assertion cannot be verified for any reason."""


class IdentityProviderUnavailableError(InvalidAssertionError):
    """The provider (or its signing keys) could not be reached in time."""


@dataclass(frozen=True, slots=True)
class VerifiedIdentityAssertion:
    login_id: str
    given_name: str
    family_name: str


class IdentityVerifier(ABC):
    """Provider-neutral identity assertion verification interface."""

    @abstractmethod
    def verify(self, assertion_token: str) -> VerifiedIdentityAssertion:
        """Verify assertion against the configured audience and return the identity."""


__all__ = [
    "IdentityProviderUnavailableError",
    "IdentityVerifier",
    "InvalidAssertionError",
    "VerifiedIdentityAssertion",
]
