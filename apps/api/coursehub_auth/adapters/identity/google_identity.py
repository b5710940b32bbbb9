"""Google ID token verifier adapter."""

from __future__ import annotations

from collections.abc import Iterable
import logging

import jwt
from jwt import PyJWKClient

from coursehub_auth.adapters.identity.base import (
    IdentityProviderUnavailableError,
    IdentityVerifier,
    InvalidAssertionError,
    VerifiedIdentityAssertion,
)

logger = logging.getLogger(__name__)


class GoogleIdentityVerifier(IdentityVerifier):
    """Verifies Google-signed ID tokens against the provider's published keys.

    Signing keys are fetched from the JWKS endpoint with a bounded timeout and
    cached for an hour. The audience must equal the platform's registered client
    id and the issuer must be one of Google's.
    """

    def __init__(
        self,
        *,
        client_id: str | None,
        jwks_url: str,
        issuers: Iterable[str],
        timeout_seconds: float,
    ) -> None:
        self._client_id = client_id
        self._issuers = frozenset(issuers)
        self._jwks_client = PyJWKClient(jwks_url, cache_keys=True, lifespan=3600, timeout=timeout_seconds)

    def verify(self, assertion_token: str) -> VerifiedIdentityAssertion:
        if not self._client_id:
            logger.error("identity.verifier_misconfigured reason=missing_client_id")
            raise InvalidAssertionError("Identity verifier is not configured")

        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(assertion_token)
        except jwt.PyJWKClientConnectionError as exc:
            raise IdentityProviderUnavailableError("Identity provider keys are unavailable") from exc
        except jwt.PyJWTError as exc:
            raise InvalidAssertionError("Invalid identity assertion") from exc

        try:
            decoded = jwt.decode(
                assertion_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self._client_id,
                options={"require": ["iss", "aud", "exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidAssertionError("Invalid identity assertion") from exc

        if decoded.get("iss") not in self._issuers:
            raise InvalidAssertionError("Invalid identity assertion issuer")

        email = str(decoded.get("email") or "").strip()
        if not email:
            raise InvalidAssertionError("Identity assertion missing email")
        if decoded.get("email_verified") in (False, "false"):
            raise InvalidAssertionError("Identity assertion email is not verified")

        return VerifiedIdentityAssertion(
            login_id=email,
            given_name=str(decoded.get("given_name") or ""),
            family_name=str(decoded.get("family_name") or ""),
        )


__all__ = ["GoogleIdentityVerifier"]
