"""Mock identity verifier for local development and tests."""

from coursehub_auth.adapters.identity.base import (
    IdentityVerifier,
    InvalidAssertionError,
    VerifiedIdentityAssertion,
)


class MockIdentityVerifier(IdentityVerifier):
    """Accepts deterministic test assertions only.

    Expected assertion format:
    - ``test:<email>``
    - ``test:<email>:<given name>:<family name>``
    """

    def verify(self, assertion_token: str) -> VerifiedIdentityAssertion:
        parts = assertion_token.split(":")
        if len(parts) not in (2, 4) or parts[0] != "test":
            raise InvalidAssertionError("Invalid identity assertion")

        login_id = parts[1].strip()
        if not login_id:
            raise InvalidAssertionError("Identity assertion missing email")

        given_name, family_name = (parts[2].strip(), parts[3].strip()) if len(parts) == 4 else ("", "")
        return VerifiedIdentityAssertion(login_id=login_id, given_name=given_name, family_name=family_name)


__all__ = ["MockIdentityVerifier"]
