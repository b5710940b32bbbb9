"""Credential store: user identity records keyed by a unique login identifier."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from coursehub_auth.domain.roles import Role
from coursehub_auth.errors import ConflictError
from coursehub_auth.repositories.database import Database, UserRow, as_utc


@dataclass(slots=True)
class UserAccount:
    id: str
    login_id: str
    password_hash: str | None
    first_name: str
    last_name: str
    role: Role
    created_at: datetime

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class UserLookup(Protocol):
    """Capability exported to collaborators that only need to resolve users."""

    def get_by_id(self, user_id: str) -> UserAccount | None: ...


def normalize_login_id(value: str) -> str:
    return value.strip().lower()


class CredentialStore:
    def __init__(self, database: Database) -> None:
        self._database = database

    def find_by_login_id(self, login_id: str) -> UserAccount | None:
        with self._database.session() as session:
            row = session.scalar(select(UserRow).where(UserRow.login_id == normalize_login_id(login_id)))
            return _to_account(row) if row is not None else None

    def get_by_id(self, user_id: str) -> UserAccount | None:
        with self._database.session() as session:
            row = session.get(UserRow, user_id)
            return _to_account(row) if row is not None else None

    def create(
        self,
        *,
        login_id: str,
        password_hash: str | None,
        first_name: str,
        last_name: str,
        role: Role = Role.USER,
    ) -> UserAccount:
        """Insert a new account; the unique index decides concurrent races.

        There is no prior existence check: of two concurrent inserts for the same
        login identifier the database admits exactly one and the other raises
        ``ConflictError``.
        """
        row = UserRow(
            id=str(uuid4()),
            login_id=normalize_login_id(login_id),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            created_at=datetime.now(UTC),
        )
        try:
            with self._database.session() as session, session.begin():
                session.add(row)
        except IntegrityError as exc:
            raise ConflictError() from exc
        return _to_account(row)


def _to_account(row: UserRow) -> UserAccount:
    return UserAccount(
        id=row.id,
        login_id=row.login_id,
        password_hash=row.password_hash,
        first_name=row.first_name,
        last_name=row.last_name,
        role=row.role,
        created_at=as_utc(row.created_at),
    )


__all__ = ["CredentialStore", "UserAccount", "UserLookup", "normalize_login_id"]
