"""Credential store: identity lookup and persistence over the users table."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.user import User
from services.errors import Conflict, NotFound
from utils.security import hash_password, verify_password


class CredentialStore:
    """Single-record operations on identities. Soft-deleted rows are invisible."""

    def __init__(self, storage: DBStorage):
        self._storage = storage

    def _query(self):
        return self._storage.get_session().query(User).filter(User.deleted_at.is_(None))

    def find_by_email_or_username(self, login: str) -> Optional[User]:
        """An email match wins; the username is only tried when no email matches."""
        user = self.find_by_email(login)
        if user is None:
            user = self._query().filter(User.username == (login or "").strip()).first()
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self._query().filter(User.email == (email or "").strip().lower()).first()

    def find_by_id(self, user_id: str) -> Optional[User]:
        user = self._storage.get(User, user_id)
        if user is None or user.deleted_at is not None:
            return None
        return user

    def find_by_verification_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        return self._query().filter(User.email_verification_token == token).first()

    def find_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        """Only a matching token that has not expired yet resolves."""
        if not token:
            return None
        return (
            self._query()
            .filter(User.password_reset_token == token)
            .filter(User.password_reset_expires > now)
            .first()
        )

    def exists(self, email: str, username: str) -> bool:
        # Deleted identities keep their email and username reserved. Emails and
        # usernames share one login namespace, so each is checked against both.
        email = email.strip().lower()
        username = username.strip()
        session = self._storage.get_session()
        clash = (
            session.query(User.id)
            .filter(or_(
                User.email.in_((email, username.lower())),
                User.username.in_((username, email)),
            ))
            .first()
        )
        return clash is not None

    def create(self, *, email: str, username: str, password: str, full_name: str, **profile) -> User:
        """Raises Conflict when the email or username is already taken."""
        if self.exists(email, username):
            raise Conflict("User with this email or username already exists")
        user = User(
            email=email.strip().lower(),
            username=username.strip(),
            password_hash=hash_password(password),
            full_name=full_name,
            **profile,
        )
        self._storage.new(user)
        try:
            self._storage.save()
        except IntegrityError:
            # Lost a race against a concurrent registration; the unique index decides
            raise Conflict("User with this email or username already exists")
        return user

    def save(self, user: User) -> User:
        """Persist mutated fields; NotFound if the identity vanished meanwhile."""
        session = self._storage.get_session()
        # Check the stored row, not the pending changes (a soft delete sets deleted_at)
        with session.no_autoflush:
            exists = session.query(User.id).filter(User.id == user.id, User.deleted_at.is_(None)).first()
        if exists is None:
            session.rollback()
            raise NotFound("User not found")
        self._storage.new(user)
        self._storage.save()
        return user

    def set_password(self, user: User, new_password: str) -> None:
        user.password_hash = hash_password(new_password)

    def register_failed_login(self, user: User) -> int:
        """
        Atomic increment of the failure counter, so concurrent failures
        cannot overwrite each other. Returns the counter after the increment.
        """
        session = self._storage.get_session()
        session.execute(
            update(User)
            .where(User.id == user.id)
            .values(failed_login_attempts=User.failed_login_attempts + 1)
        )
        self._storage.save()
        session.refresh(user)
        return user.failed_login_attempts


def check_password(user: User, candidate: str) -> bool:
    return verify_password(candidate or "", user.password_hash)
