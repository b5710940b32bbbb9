"""Token signer and token ledger tests."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
import tempfile
import threading
from types import SimpleNamespace
import unittest

import jwt
from sqlalchemy import update

from coursehub_auth.core.tokens import ExpiredTokenError, InvalidSignatureError, TokenSigner
from coursehub_auth.domain.roles import Role
from coursehub_auth.repositories.database import Database, TokenRow
from coursehub_auth.repositories.tokens import TokenKind, TokenLedger
from coursehub_auth.repositories.users import CredentialStore, UserAccount

_SECRET = "unit-test-signing-secret-0123456789"


def _signer(**overrides) -> TokenSigner:
    options = {
        "secret": _SECRET,
        "access_ttl": timedelta(minutes=15),
        "refresh_ttl": timedelta(days=7),
    }
    options.update(overrides)
    return TokenSigner(**options)


def _account(login_id: str = "a@x.com", role: Role = Role.USER) -> UserAccount:
    return UserAccount(
        id="user-1",
        login_id=login_id,
        password_hash=None,
        first_name="A",
        last_name="B",
        role=role,
        created_at=datetime.now(UTC),
    )


class TokenSignerTests(unittest.TestCase):
    def test_access_token_claims_carry_subject_role_and_ttl(self) -> None:
        signer = _signer()

        claims = signer.verify(signer.issue_access_token(_account(role=Role.ADMIN)))

        self.assertEqual(claims.subject, "a@x.com")
        self.assertEqual(claims.role, Role.ADMIN)
        self.assertEqual(claims.token_type, "access")
        self.assertEqual(claims.expires_at - claims.issued_at, timedelta(minutes=15))
        self.assertLessEqual(abs(claims.issued_at - datetime.now(UTC)), timedelta(seconds=5))

    def test_refresh_token_uses_long_window_and_is_not_an_access_token(self) -> None:
        signer = _signer()
        refresh = signer.issue_refresh_token(_account())

        claims = signer.verify(refresh, expected_type="refresh")

        self.assertEqual(claims.expires_at - claims.issued_at, timedelta(days=7))
        with self.assertRaises(InvalidSignatureError):
            signer.verify(refresh, expected_type="access")

    def test_tokens_issued_in_same_instant_are_distinct(self) -> None:
        fixed = datetime(2026, 1, 1, tzinfo=UTC)
        signer = _signer(clock=lambda: fixed, access_ttl=timedelta(days=36500))

        first = signer.issue_access_token(_account())
        second = signer.issue_access_token(_account())

        self.assertNotEqual(first, second)

    def test_expired_token_is_rejected(self) -> None:
        past = datetime.now(UTC) - timedelta(days=2)
        token = _signer(clock=lambda: past, access_ttl=timedelta(hours=1)).issue_access_token(_account())

        with self.assertRaises(ExpiredTokenError):
            _signer().verify(token)

    def test_token_signed_with_other_key_is_rejected(self) -> None:
        foreign = _signer(secret="another-secret-that-is-long-enough-xx").issue_access_token(_account())

        with self.assertRaises(InvalidSignatureError):
            _signer().verify(foreign)

    def test_malformed_and_claimless_tokens_are_rejected(self) -> None:
        claimless = jwt.encode({"sub": "a@x.com"}, _SECRET, algorithm="HS256")
        for token in ("", "not.a.jwt", claimless):
            with self.subTest(token=token):
                with self.assertRaises(InvalidSignatureError):
                    _signer().verify(token)

    def test_key_id_is_written_to_header_when_configured(self) -> None:
        with_kid = _signer(key_id="key-2026-01").issue_access_token(_account())
        without_kid = _signer().issue_access_token(_account())

        self.assertEqual(jwt.get_unverified_header(with_kid)["kid"], "key-2026-01")
        self.assertNotIn("kid", jwt.get_unverified_header(without_kid))

    def test_any_object_with_login_id_and_role_can_be_a_subject(self) -> None:
        subject = SimpleNamespace(login_id="service@x.com", role=Role.ADMIN)

        claims = _signer().verify(_signer().issue_access_token(subject), expected_type="access")

        self.assertEqual(claims.subject, "service@x.com")
        self.assertEqual(claims.role, Role.ADMIN)


class TokenLedgerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        self.database = Database(f"sqlite:///{self._tmpdir.name}/ledger.db")
        self.database.create_schema()
        self.signer = _signer()
        self.ledger = TokenLedger(self.database, self.signer)
        users = CredentialStore(self.database)
        self.alice = users.create(login_id="alice@x.com", password_hash=None, first_name="A", last_name="L")
        self.bob = users.create(login_id="bob@x.com", password_hash=None, first_name="B", last_name="O")

    def tearDown(self) -> None:
        self.database.dispose()
        self._tmpdir.cleanup()

    def _issue(self, user: UserAccount) -> str:
        access = self.signer.issue_access_token(user)
        self.ledger.record(user, access, self.signer.issue_refresh_token(user))
        return access

    def test_record_appends_usable_bearer_row(self) -> None:
        access = self._issue(self.alice)

        record = self.ledger.find_by_access_token(access)

        self.assertIsNotNone(record)
        self.assertEqual(record.user_id, self.alice.id)
        self.assertEqual(record.token_kind, TokenKind.BEARER)
        self.assertFalse(record.expired)
        self.assertFalse(record.revoked)
        self.assertTrue(self.ledger.is_valid(access))

    def test_unknown_and_unsigned_values_are_not_valid(self) -> None:
        self.assertFalse(self.ledger.is_valid("never-issued"))

        forged = _signer(secret="another-secret-that-is-long-enough-xx").issue_access_token(self.alice)
        self.ledger.record(self.alice, forged, "refresh")

        self.assertFalse(self.ledger.is_valid(forged))

    def test_expired_signature_is_not_valid_even_with_clean_flags(self) -> None:
        past = datetime.now(UTC) - timedelta(days=2)
        stale = _signer(clock=lambda: past, access_ttl=timedelta(hours=1)).issue_access_token(self.alice)
        self.ledger.record(self.alice, stale, "refresh")

        self.assertFalse(self.ledger.is_valid(stale))

    def test_revoke_all_terminates_every_prior_token_of_one_user(self) -> None:
        alice_tokens = [self._issue(self.alice) for _ in range(3)]
        bob_token = self._issue(self.bob)

        revoked = self.ledger.revoke_all(self.alice)

        self.assertEqual(revoked, 3)
        for token in alice_tokens:
            self.assertFalse(self.ledger.is_valid(token))
        self.assertTrue(self.ledger.is_valid(bob_token))
        for record in self.ledger.list_for_user(self.alice.id):
            self.assertTrue(record.expired)
            self.assertTrue(record.revoked)

    def test_revocation_is_terminal_and_rows_are_retained(self) -> None:
        old = self._issue(self.alice)
        self.ledger.revoke_all(self.alice)
        fresh = self._issue(self.alice)

        self.assertEqual(self.ledger.revoke_all(self.bob), 0)
        self.assertFalse(self.ledger.is_valid(old))
        self.assertTrue(self.ledger.is_valid(fresh))
        self.assertEqual(len(self.ledger.list_for_user(self.alice.id)), 2)

        self.assertEqual(self.ledger.revoke_all(self.alice), 1)
        self.assertEqual(self.ledger.revoke_all(self.alice), 0)
        self.assertEqual(len(self.ledger.list_for_user(self.alice.id)), 2)

    def test_revoke_all_counts_only_rows_with_both_flags_clear(self) -> None:
        only_expired, only_revoked, clean = (self._issue(self.alice) for _ in range(3))
        with self.database.session() as session, session.begin():
            session.execute(update(TokenRow).where(TokenRow.access_token == only_expired).values(expired=True))
            session.execute(update(TokenRow).where(TokenRow.access_token == only_revoked).values(revoked=True))

        self.assertEqual(self.ledger.revoke_all(self.alice), 1)
        self.assertFalse(self.ledger.is_valid(clean))
        self.assertEqual(self.ledger.revoke_all(self.alice), 0)

    def test_read_back_issue_time_is_utc_aware(self) -> None:
        access = self._issue(self.alice)

        issued_at = self.ledger.find_by_access_token(access).issued_at

        self.assertEqual(issued_at.utcoffset(), timedelta(0))
        self.assertLessEqual(abs(datetime.now(UTC) - issued_at), timedelta(minutes=1))

    def test_concurrent_validator_never_sees_partial_revocation(self) -> None:
        tokens = [self._issue(self.alice) for _ in range(20)]
        observed: list[int] = []
        done = threading.Event()

        def _observe() -> None:
            while not done.is_set():
                records = self.ledger.list_for_user(self.alice.id)
                observed.append(sum(1 for record in records if record.usable))

        with ThreadPoolExecutor(max_workers=1) as executor:
            watcher = executor.submit(_observe)
            self.ledger.revoke_all(self.alice)
            done.set()
            watcher.result()

        self.assertTrue(set(observed) <= {0, len(tokens)})
        self.assertFalse(any(self.ledger.is_valid(token) for token in tokens))


if __name__ == "__main__":
    unittest.main()
