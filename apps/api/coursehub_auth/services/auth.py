"""Authentication gateway: registration, password login, federated login, logout."""

from __future__ import annotations

import logging

from coursehub_auth.adapters.identity import (
    IdentityProviderUnavailableError,
    IdentityVerifier,
    InvalidAssertionError,
    VerifiedIdentityAssertion,
)
from coursehub_auth.core.logging_safety import safe_log_identifier
from coursehub_auth.core.passwords import PasswordHasher
from coursehub_auth.core.tokens import TokenSigner
from coursehub_auth.domain.context import AuthContext
from coursehub_auth.domain.roles import Role
from coursehub_auth.errors import AuthenticationError, ConflictError, InternalError, ValidationError
from coursehub_auth.repositories.tokens import TokenLedger
from coursehub_auth.repositories.users import CredentialStore, UserAccount
from coursehub_auth.schemas.auth import (
    AuthenticationResponse,
    AuthPrincipal,
    FederatedLoginResponse,
    UserProfile,
)

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Invalid email or password"
ASSERTION_FAILED_MESSAGE = "Invalid identity assertion"
BEARER_FAILED_MESSAGE = "Invalid or missing bearer token"


class AuthenticationService:
    """Orchestrates the credential store, hasher, signer, ledger and verifier.

    Every successful ``register``, ``authenticate`` and ``federated_login`` writes
    exactly one ledger row. Prior sessions are left untouched; revocation only
    happens through ``revoke_sessions``.
    """

    def __init__(
        self,
        *,
        users: CredentialStore,
        ledger: TokenLedger,
        signer: TokenSigner,
        hasher: PasswordHasher,
        verifier: IdentityVerifier,
    ) -> None:
        self._users = users
        self._ledger = ledger
        self._signer = signer
        self._hasher = hasher
        self._verifier = verifier

    def register(self, *, login_id: str, password: str, first_name: str, last_name: str) -> AuthenticationResponse:
        if not login_id.strip():
            raise ValidationError("Email must not be blank")

        try:
            user = self._users.create(
                login_id=login_id,
                password_hash=self._hasher.hash(password),
                first_name=first_name,
                last_name=last_name,
                role=Role.USER,
            )
        except ConflictError:
            logger.info(
                "auth.register_rejected login_id=%s reason=duplicate_login_id",
                safe_log_identifier(login_id, prefix="lid"),
            )
            raise

        access_token, refresh_token = self._issue_session(user)
        logger.info("auth.registered user_id=%s", safe_log_identifier(user.id, prefix="uid"))
        return AuthenticationResponse(access_token=access_token, refresh_token=refresh_token, profile=to_profile(user))

    def authenticate(self, *, login_id: str, password: str) -> AuthenticationResponse:
        user = self._users.find_by_login_id(login_id) if login_id.strip() else None
        # Always pay for one hash check so unknown accounts are not faster to reject.
        password_ok = self._hasher.verify(password, user.password_hash if user is not None else None)
        if user is None or not password_ok:
            logger.warning(
                "auth.login_rejected login_id=%s reason=%s",
                safe_log_identifier(login_id, prefix="lid"),
                "unknown_login_id" if user is None else "password_mismatch",
            )
            raise AuthenticationError(LOGIN_FAILED_MESSAGE)

        access_token, refresh_token = self._issue_session(user)
        logger.info("auth.login_accepted user_id=%s", safe_log_identifier(user.id, prefix="uid"))
        return AuthenticationResponse(access_token=access_token, refresh_token=refresh_token, profile=to_profile(user))

    def federated_login(self, *, assertion_token: str | None) -> FederatedLoginResponse:
        if not assertion_token or not assertion_token.strip():
            raise ValidationError("Token is missing")

        assertion = self._verify_assertion(assertion_token)
        user = self._find_or_create_federated(assertion)
        access_token, _ = self._issue_session(user)
        logger.info("auth.federated_login_accepted user_id=%s", safe_log_identifier(user.id, prefix="uid"))
        return FederatedLoginResponse(access_token=access_token, profile=to_profile(user))

    def logout(self, context: AuthContext) -> None:
        """Forget the caller's request-scoped identity.

        Issued tokens stay valid until they expire or ``revoke_sessions`` runs.
        """
        context.clear()

    def resolve_principal(self, access_token: str) -> AuthPrincipal:
        record = self._ledger.resolve(access_token)
        user = self._users.get_by_id(record.user_id) if record is not None else None
        if user is None:
            raise AuthenticationError(BEARER_FAILED_MESSAGE)
        return AuthPrincipal(user_id=user.id, login_id=user.login_id, role=user.role)

    def get_profile(self, principal: AuthPrincipal) -> UserProfile:
        user = self._users.get_by_id(principal.user_id)
        if user is None:
            raise AuthenticationError(BEARER_FAILED_MESSAGE)
        return to_profile(user)

    def revoke_sessions(self, principal: AuthPrincipal) -> int:
        user = self._users.get_by_id(principal.user_id)
        if user is None:
            raise AuthenticationError(BEARER_FAILED_MESSAGE)
        return self._ledger.revoke_all(user)

    def _issue_session(self, user: UserAccount) -> tuple[str, str]:
        access_token = self._signer.issue_access_token(user)
        refresh_token = self._signer.issue_refresh_token(user)
        self._ledger.record(user, access_token, refresh_token)
        return access_token, refresh_token

    def _verify_assertion(self, assertion_token: str) -> VerifiedIdentityAssertion:
        try:
            return self._verifier.verify(assertion_token)
        except IdentityProviderUnavailableError as exc:
            logger.error(
                "auth.federated_login_failed reason=provider_unavailable error=%s",
                type(exc.__cause__ or exc).__name__,
            )
            raise InternalError("Identity verification is temporarily unavailable") from exc
        except InvalidAssertionError as exc:
            logger.warning("auth.federated_login_rejected reason=invalid_assertion")
            raise AuthenticationError(ASSERTION_FAILED_MESSAGE) from exc
        except Exception as exc:
            logger.exception("auth.federated_login_rejected reason=unexpected_verifier_error")
            raise AuthenticationError(ASSERTION_FAILED_MESSAGE) from exc

    def _find_or_create_federated(self, assertion: VerifiedIdentityAssertion) -> UserAccount:
        existing = self._users.find_by_login_id(assertion.login_id)
        if existing is not None:
            return existing

        try:
            user = self._users.create(
                login_id=assertion.login_id,
                password_hash=self._hasher.unusable_hash(),
                first_name=assertion.given_name,
                last_name=assertion.family_name,
                role=Role.USER,
            )
        except ConflictError:
            # A concurrent first login for the same identity won the insert.
            user = self._users.find_by_login_id(assertion.login_id)
            if user is None:
                raise InternalError() from None
            return user

        logger.info("auth.federated_account_created user_id=%s", safe_log_identifier(user.id, prefix="uid"))
        return user


def to_profile(user: UserAccount) -> UserProfile:
    return UserProfile(
        id=user.id,
        login_id=user.login_id,
        first_name=user.first_name,
        last_name=user.last_name,
        display_name=user.display_name,
        role=user.role,
    )


__all__ = ["AuthenticationService", "to_profile"]
