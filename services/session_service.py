"""
Session service: register, login, logout, refresh and the password and
email-verification flows.

All session state lives in the store (users and refresh_tokens tables), so a
SessionService instance holds no per-request data and can be shared.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from models.base_model import utcnow
from models.user import User, is_locked, is_usable
from services.credential_store import CredentialStore, check_password
from services.email_service import AccountMailer
from services.errors import (
    AccountInactive,
    AccountLocked,
    InvalidCredentials,
    InvalidOrExpiredToken,
    InvalidToken,
    NotFound,
)
from services.refresh_token_store import RefreshTokenStore
from services.token_issuer import TokenIssuer
from utils.security import generate_token

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCK_DURATION = timedelta(minutes=30)
PASSWORD_RESET_EXPIRES = timedelta(hours=1)


@dataclass
class AuthSession:
    user: User
    access_token: str
    refresh_token: str
    expires_in: int


class SessionService:
    def __init__(
        self,
        credentials: CredentialStore,
        refresh_tokens: RefreshTokenStore,
        tokens: TokenIssuer,
        mailer: AccountMailer,
        clock: Callable[[], datetime] = utcnow,
        max_login_attempts: int = MAX_LOGIN_ATTEMPTS,
        lock_duration: timedelta = LOCK_DURATION,
        reset_expires: timedelta = PASSWORD_RESET_EXPIRES,
    ):
        self._credentials = credentials
        self._refresh_tokens = refresh_tokens
        self._tokens = tokens
        self._mailer = mailer
        self._clock = clock
        self._max_login_attempts = max_login_attempts
        self._lock_duration = lock_duration
        self._reset_expires = reset_expires

    def _issue_session(self, user: User, ip: Optional[str] = None, user_agent: Optional[str] = None,
                       refresh_token: Optional[str] = None) -> AuthSession:
        # The refresh token is persisted last; if that write fails nothing is returned
        access_token = self._tokens.issue_access_token(user)
        refresh_token = self._tokens.issue_refresh_token(user.id, ip=ip, user_agent=user_agent, token=refresh_token)
        return AuthSession(
            user=user,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self._tokens.access_lifetime_seconds,
        )

    def register(self, profile: dict, ip: Optional[str] = None, user_agent: Optional[str] = None) -> AuthSession:
        user = self._credentials.create(**profile, email_verification_token=generate_token())

        self._mailer.send_verification_email(user.email, user.email_verification_token)
        logger.info("User registered: %s", user.email)
        return self._issue_session(user, ip=ip, user_agent=user_agent)

    def login(self, email: str, password: str, ip: Optional[str] = None, user_agent: Optional[str] = None) -> AuthSession:
        user = self._credentials.find_by_email_or_username(email)
        if user is None:
            raise InvalidCredentials()

        now = self._clock()
        if is_locked(user, now):
            raise AccountLocked()
        if user.lock_until is not None:
            # An expired lock starts a fresh count
            user.failed_login_attempts = 0
            user.lock_until = None
            self._credentials.save(user)

        if not check_password(user, password):
            attempts = self._credentials.register_failed_login(user)
            if attempts >= self._max_login_attempts:
                user.lock_until = now + self._lock_duration
                self._credentials.save(user)
                logger.warning("Account locked after %d failed logins: %s", attempts, user.email)
            raise InvalidCredentials()

        if not user.is_active:
            raise AccountInactive("Account is deactivated")

        user.failed_login_attempts = 0
        user.lock_until = None
        user.last_login = now
        self._credentials.save(user)

        logger.info("User logged in: %s", user.email)
        return self._issue_session(user, ip=ip, user_agent=user_agent)

    def logout(self, user_id: str, ip: Optional[str] = None) -> int:
        """Revokes refresh tokens only; issued access tokens live until they expire."""
        revoked = self._refresh_tokens.revoke_all(user_id, ip=ip)
        logger.info("User logged out: %s (%d refresh tokens revoked)", user_id, revoked)
        return revoked

    def refresh_access_token(self, refresh_token: str) -> dict:
        record = self._refresh_tokens.find_active_by_token(refresh_token)
        if record is None:
            raise InvalidToken("Invalid or expired refresh token")

        user = self._credentials.find_by_id(record.user_id)
        if not is_usable(user):
            raise AccountInactive()

        return {
            "access_token": self._tokens.issue_access_token(user),
            "expires_in": self._tokens.access_lifetime_seconds,
        }

    def rotate_refresh_token(self, refresh_token: str, ip: Optional[str] = None,
                             user_agent: Optional[str] = None) -> AuthSession:
        """Exchange a refresh token for a new pair, chaining old to new."""
        record = self._refresh_tokens.find_active_by_token(refresh_token)
        if record is None:
            raise InvalidToken("Invalid or expired refresh token")
        user = self._credentials.find_by_id(record.user_id)
        if not is_usable(user):
            raise AccountInactive()

        # Claim the old token before storing its successor; a rotation that
        # loses the race fails here and leaves nothing behind
        successor = self._refresh_tokens.new_token()
        self._refresh_tokens.revoke_and_replace(refresh_token, successor, ip=ip)
        return self._issue_session(user, ip=ip, user_agent=user_agent, refresh_token=successor)

    def forgot_password(self, email: str) -> None:
        """Same outcome whether or not the address is registered."""
        user = self._credentials.find_by_email(email)
        if user is None:
            return

        user.password_reset_token = generate_token()
        user.password_reset_expires = self._clock() + self._reset_expires
        self._credentials.save(user)
        self._mailer.send_password_reset_email(user.email, user.password_reset_token)

    def reset_password(self, token: str, new_password: str) -> None:
        user = self._credentials.find_by_reset_token(token, self._clock())
        if user is None:
            raise InvalidOrExpiredToken("Invalid or expired reset token")

        self._credentials.set_password(user, new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        self._credentials.save(user)
        logger.info("Password reset for user: %s", user.email)

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = self._credentials.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        if not check_password(user, current_password):
            raise InvalidCredentials("Current password is incorrect")

        self._credentials.set_password(user, new_password)
        self._credentials.save(user)
        logger.info("Password changed for user: %s", user.email)

    def verify_email(self, token: str) -> None:
        user = self._credentials.find_by_verification_token(token)
        if user is None:
            raise InvalidOrExpiredToken("Invalid verification token")

        user.is_email_verified = True
        user.email_verification_token = None
        self._credentials.save(user)

    def get_user(self, user_id: str) -> User:
        user = self._credentials.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user
