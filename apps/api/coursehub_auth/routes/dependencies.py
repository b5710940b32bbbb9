"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.concurrency import run_in_threadpool
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coursehub_auth.adapters.identity import GoogleIdentityVerifier, IdentityVerifier, MockIdentityVerifier
from coursehub_auth.core.config import Settings
from coursehub_auth.core.logging_safety import safe_log_identifier
from coursehub_auth.core.passwords import PasswordHasher
from coursehub_auth.core.tokens import TokenSigner
from coursehub_auth.domain.context import AuthContext
from coursehub_auth.errors import AuthenticationError
from coursehub_auth.repositories.database import Database
from coursehub_auth.repositories.tokens import TokenLedger
from coursehub_auth.repositories.users import CredentialStore
from coursehub_auth.schemas.auth import AuthPrincipal
from coursehub_auth.services.auth import BEARER_FAILED_MESSAGE, AuthenticationService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
logger = logging.getLogger(__name__)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def build_identity_verifier(settings: Settings) -> IdentityVerifier:
    """Resolve provider adapter from configuration."""
    if settings.identity_provider == "google":
        return GoogleIdentityVerifier(
            client_id=settings.google_client_id,
            jwks_url=settings.google_jwks_url,
            issuers=settings.google_issuers,
            timeout_seconds=settings.identity_verifier_timeout_seconds,
        )
    return MockIdentityVerifier()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_token_signer(request: Request) -> TokenSigner:
    return request.app.state.token_signer


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def get_credential_store(database: Annotated[Database, Depends(get_database)]) -> CredentialStore:
    return CredentialStore(database)


def get_token_ledger(
    database: Annotated[Database, Depends(get_database)],
    signer: Annotated[TokenSigner, Depends(get_token_signer)],
) -> TokenLedger:
    return TokenLedger(database, signer)


def get_auth_service(
    users: Annotated[CredentialStore, Depends(get_credential_store)],
    ledger: Annotated[TokenLedger, Depends(get_token_ledger)],
    signer: Annotated[TokenSigner, Depends(get_token_signer)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
) -> AuthenticationService:
    return AuthenticationService(users=users, ledger=ledger, signer=signer, hasher=hasher, verifier=verifier)


def get_auth_context(request: Request) -> AuthContext:
    """Return the request-scoped context, creating an anonymous one on first use."""
    context = getattr(request.state, "auth_context", None)
    if not isinstance(context, AuthContext):
        context = AuthContext()
        request.state.auth_context = context
    return context


async def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
    context: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthPrincipal:
    """Validate bearer access token against the ledger and attach the principal to the request context."""
    safe_correlation_id = safe_log_identifier(_request_correlation_id(request), prefix="cid")
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise AuthenticationError(BEARER_FAILED_MESSAGE)

    try:
        principal = await run_in_threadpool(service.resolve_principal, credentials.credentials)
    except AuthenticationError:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_not_usable",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s role=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="pid"),
        principal.role.value,
    )
    context.principal = principal
    return principal


async def get_request_auth_context(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    service: Annotated[AuthenticationService, Depends(get_auth_service)],
    context: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    """Context populated from a bearer token when one is usable; anonymous otherwise."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        return context

    try:
        context.principal = await run_in_threadpool(service.resolve_principal, credentials.credentials)
    except AuthenticationError:
        logger.info(
            "auth.anonymous correlation_id=%s method=%s path=%s reason=token_not_usable",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.method,
            request.url.path,
        )
    return context
