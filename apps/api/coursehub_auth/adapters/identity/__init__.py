"""External identity verifier adapters."""

from .base import (
    IdentityProviderUnavailableError,
    IdentityVerifier,
    InvalidAssertionError,
    VerifiedIdentityAssertion,
)
from .google_identity import GoogleIdentityVerifier
from .mock_identity import MockIdentityVerifier

__all__ = [
    "GoogleIdentityVerifier",
    "IdentityProviderUnavailableError",
    "IdentityVerifier",
    "InvalidAssertionError",
    "MockIdentityVerifier",
    "VerifiedIdentityAssertion",
]
