"""Token ledger: every issued token pair and its revocation state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
import logging

from sqlalchemy import select, update

from coursehub_auth.core.logging_safety import safe_log_identifier
from coursehub_auth.core.tokens import TokenSigner, TokenVerificationError
from coursehub_auth.repositories.database import Database, TokenRow, as_utc
from coursehub_auth.repositories.users import UserAccount

logger = logging.getLogger(__name__)


class TokenKind(StrEnum):
    BEARER = "BEARER"


@dataclass(slots=True)
class AuthTokenRecord:
    id: int
    user_id: str
    access_token: str
    refresh_token: str
    token_kind: TokenKind
    expired: bool
    revoked: bool
    issued_at: datetime

    @property
    def usable(self) -> bool:
        return not self.expired and not self.revoked


class TokenLedger:
    """Append-only history of token issuance.

    Rows are never deleted. The only mutation is flipping ``expired`` and
    ``revoked`` to true, and no code path sets them back.
    """

    def __init__(self, database: Database, signer: TokenSigner) -> None:
        self._database = database
        self._signer = signer

    def record(self, user: UserAccount, access_token: str, refresh_token: str) -> AuthTokenRecord:
        row = TokenRow(
            user_id=user.id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_kind=TokenKind.BEARER.value,
            expired=False,
            revoked=False,
            issued_at=datetime.now(UTC),
        )
        with self._database.session() as session, session.begin():
            session.add(row)
        return _to_record(row)

    def revoke_all(self, user: UserAccount) -> int:
        """Terminate every usable token owned by ``user`` in one statement.

        A single UPDATE inside one transaction, so a concurrent validator sees
        either none or all of the user's tokens revoked.
        """
        with self._database.session() as session, session.begin():
            result = session.execute(
                update(TokenRow)
                .where(TokenRow.user_id == user.id)
                .where(TokenRow.expired.is_(False))
                .where(TokenRow.revoked.is_(False))
                .values(expired=True, revoked=True)
            )
            revoked_count = result.rowcount or 0
        logger.info(
            "tokens.revoked user_id=%s count=%s",
            safe_log_identifier(user.id, prefix="uid"),
            revoked_count,
        )
        return revoked_count

    def find_by_access_token(self, access_token: str) -> AuthTokenRecord | None:
        with self._database.session() as session:
            row = session.scalar(select(TokenRow).where(TokenRow.access_token == access_token))
            return _to_record(row) if row is not None else None

    def list_for_user(self, user_id: str) -> list[AuthTokenRecord]:
        with self._database.session() as session:
            rows = session.scalars(
                select(TokenRow).where(TokenRow.user_id == user_id).order_by(TokenRow.id)
            ).all()
            return [_to_record(row) for row in rows]

    def is_valid(self, access_token: str) -> bool:
        return self.resolve(access_token) is not None

    def resolve(self, access_token: str) -> AuthTokenRecord | None:
        """Return the usable ledger record for an access token, or ``None``.

        The record must exist with both flags false and the signer must
        independently accept the token as an unexpired access token.
        """
        record = self.find_by_access_token(access_token)
        if record is None or not record.usable:
            return None
        try:
            self._signer.verify(access_token, expected_type="access")
        except TokenVerificationError:
            return None
        return record


def _to_record(row: TokenRow) -> AuthTokenRecord:
    return AuthTokenRecord(
        id=row.id,
        user_id=row.user_id,
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        token_kind=TokenKind(row.token_kind),
        expired=row.expired,
        revoked=row.revoked,
        issued_at=as_utc(row.issued_at),
    )


__all__ = ["AuthTokenRecord", "TokenKind", "TokenLedger"]
