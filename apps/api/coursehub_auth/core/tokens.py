"""Signed, time-bounded session tokens."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Literal, Protocol
from uuid import uuid4

import jwt

from coursehub_auth.domain.roles import Role

TokenType = Literal["access", "refresh"]
_REQUIRED_CLAIMS = ["sub", "role", "type", "iat", "exp", "jti"]


class TokenSubject(Protocol):
    """Anything carrying the identity claims a token is minted for."""

    @property
    def login_id(self) -> str: ...

    @property
    def role(self) -> Role: ...


class TokenVerificationError(Exception):
    """Raised when a token cannot be trusted."""


class InvalidSignatureError(TokenVerificationError):
    """Malformed token, bad signature, missing claims or wrong token type."""


class ExpiredTokenError(TokenVerificationError):
    """Signature is valid but the validity window has passed."""


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject: str
    role: Role
    token_type: TokenType
    token_id: str
    issued_at: datetime
    expires_at: datetime


class TokenSigner:
    """Issues and verifies JWTs with a process-wide key.

    ``key_id`` is written to the ``kid`` header so verifiers can pick a key once
    rotation exists.
    """

    def __init__(
        self,
        *,
        secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
        algorithm: str = "HS256",
        key_id: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._key_id = key_id
        self._ttls: dict[TokenType, timedelta] = {"access": access_ttl, "refresh": refresh_ttl}
        self._clock = clock or (lambda: datetime.now(UTC))

    def issue_access_token(self, user: TokenSubject) -> str:
        return self._issue(user, "access")

    def issue_refresh_token(self, user: TokenSubject) -> str:
        return self._issue(user, "refresh")

    def ttl(self, token_type: TokenType) -> timedelta:
        return self._ttls[token_type]

    def verify(self, token: str, *, expected_type: TokenType | None = None) -> TokenClaims:
        try:
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidSignatureError("Token is invalid") from exc

        token_type = decoded.get("type")
        if token_type not in self._ttls:
            raise InvalidSignatureError("Token type is invalid")
        if expected_type is not None and token_type != expected_type:
            raise InvalidSignatureError("Token type is invalid")
        try:
            role = Role(decoded["role"])
        except ValueError as exc:
            raise InvalidSignatureError("Token role is invalid") from exc

        return TokenClaims(
            subject=str(decoded["sub"]),
            role=role,
            token_type=token_type,
            token_id=str(decoded["jti"]),
            issued_at=datetime.fromtimestamp(decoded["iat"], UTC),
            expires_at=datetime.fromtimestamp(decoded["exp"], UTC),
        )

    def _issue(self, user: TokenSubject, token_type: TokenType) -> str:
        issued_at = self._clock()
        claims = {
            "sub": user.login_id,
            "role": user.role.value,
            "type": token_type,
            "jti": uuid4().hex,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttls[token_type]).timestamp()),
        }
        headers = {"kid": self._key_id} if self._key_id else None
        return jwt.encode(claims, self._secret, algorithm=self._algorithm, headers=headers)


__all__ = [
    "ExpiredTokenError",
    "InvalidSignatureError",
    "TokenClaims",
    "TokenSigner",
    "TokenSubject",
    "TokenType",
    "TokenVerificationError",
]
