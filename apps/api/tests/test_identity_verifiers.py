"""Identity verifier adapter tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
import unittest
from unittest.mock import patch

from cryptography.hazmat.primitives.asymmetric import rsa
import jwt

from coursehub_auth.adapters.identity import (
    GoogleIdentityVerifier,
    IdentityProviderUnavailableError,
    InvalidAssertionError,
    MockIdentityVerifier,
)
from coursehub_auth.core.config import GOOGLE_ISSUERS, Settings
from coursehub_auth.routes.dependencies import build_identity_verifier

_CLIENT_ID = "client-123.apps.googleusercontent.com"


class MockIdentityVerifierTests(unittest.TestCase):
    def test_mock_verifier_normalizes_assertion(self) -> None:
        assertion = MockIdentityVerifier().verify("test:user@x.com:Ada:Lovelace")

        self.assertEqual(assertion.login_id, "user@x.com")
        self.assertEqual(assertion.given_name, "Ada")
        self.assertEqual(assertion.family_name, "Lovelace")

    def test_mock_verifier_rejects_invalid_assertion(self) -> None:
        for token in ("invalid", "test:", "prod:user@x.com", "test:a:b"):
            with self.subTest(token=token):
                with self.assertRaises(InvalidAssertionError):
                    MockIdentityVerifier().verify(token)

    def test_builder_selects_provider_from_settings(self) -> None:
        google = build_identity_verifier(
            Settings(identity_provider="google", google_client_id=_CLIENT_ID, jwt_secret="s")
        )
        mock = build_identity_verifier(Settings(identity_provider="mock", jwt_secret="s"))

        self.assertIsInstance(google, GoogleIdentityVerifier)
        self.assertIsInstance(mock, MockIdentityVerifier)


class GoogleIdentityVerifierTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        cls.foreign_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    def setUp(self) -> None:
        self.verifier = GoogleIdentityVerifier(
            client_id=_CLIENT_ID,
            jwks_url="https://keys.invalid/certs",
            issuers=GOOGLE_ISSUERS,
            timeout_seconds=1.0,
        )
        self._key_patch = patch.object(
            self.verifier._jwks_client,
            "get_signing_key_from_jwt",
            return_value=SimpleNamespace(key=self.private_key.public_key()),
        )
        self.get_signing_key = self._key_patch.start()
        self.addCleanup(self._key_patch.stop)

    def _token(self, *, key=None, **overrides) -> str:
        now = datetime.now(UTC)
        claims = {
            "iss": "https://accounts.google.com",
            "aud": _CLIENT_ID,
            "sub": "10769150350006150715113082367",
            "email": "ada@x.com",
            "email_verified": True,
            "given_name": "Ada",
            "family_name": "Lovelace",
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(hours=1)).timestamp()),
        }
        claims.update(overrides)
        claims = {name: value for name, value in claims.items() if value is not None}
        return jwt.encode(claims, key or self.private_key, algorithm="RS256", headers={"kid": "k1"})

    def test_valid_assertion_yields_verified_identity(self) -> None:
        assertion = self.verifier.verify(self._token())

        self.assertEqual(assertion.login_id, "ada@x.com")
        self.assertEqual(assertion.given_name, "Ada")
        self.assertEqual(assertion.family_name, "Lovelace")

    def test_every_verification_failure_maps_to_invalid_assertion(self) -> None:
        past = datetime.now(UTC) - timedelta(days=1)
        cases = {
            "wrong_audience": self._token(aud="someone-else"),
            "wrong_issuer": self._token(iss="https://evil.example"),
            "expired": self._token(iat=int(past.timestamp()), exp=int((past + timedelta(hours=1)).timestamp())),
            "bad_signature": self._token(key=self.foreign_key),
            "missing_email": self._token(email=None),
            "unverified_email": self._token(email_verified=False),
            "malformed": "not-a-jwt",
        }
        for name, token in cases.items():
            with self.subTest(case=name):
                with self.assertRaises(InvalidAssertionError) as context:
                    self.verifier.verify(token)
                self.assertNotIsInstance(context.exception, IdentityProviderUnavailableError)

    def test_unreachable_key_endpoint_raises_unavailable(self) -> None:
        self.get_signing_key.side_effect = jwt.PyJWKClientConnectionError("timed out")

        with self.assertRaises(IdentityProviderUnavailableError):
            self.verifier.verify(self._token())

    def test_unknown_signing_key_is_invalid(self) -> None:
        self.get_signing_key.side_effect = jwt.PyJWKClientError("Unable to find a signing key")

        with self.assertRaises(InvalidAssertionError) as context:
            self.verifier.verify(self._token())
        self.assertNotIsInstance(context.exception, IdentityProviderUnavailableError)

    def test_missing_client_id_rejects_everything(self) -> None:
        verifier = GoogleIdentityVerifier(
            client_id=None,
            jwks_url="https://keys.invalid/certs",
            issuers=GOOGLE_ISSUERS,
            timeout_seconds=1.0,
        )

        with self.assertRaises(InvalidAssertionError):
            verifier.verify(self._token())


if __name__ == "__main__":
    unittest.main()
