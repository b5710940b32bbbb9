"""Request-scoped authentication context."""

from __future__ import annotations

from dataclasses import dataclass

from coursehub_auth.schemas.auth import AuthPrincipal


@dataclass(slots=True)
class AuthContext:
    """Who the current request is acting as; lives on ``request.state`` only."""

    principal: AuthPrincipal | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    def clear(self) -> None:
        self.principal = None
