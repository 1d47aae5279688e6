from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, Boolean, Integer, DateTime, CheckConstraint

from models.base_model import Base, BaseModel, SoftDeleteMixin

ROLE_ADMIN = "admin"
ROLE_FIELD_OFFICER = "field_officer"
ROLE_VIEWER = "viewer"
ROLES = (ROLE_ADMIN, ROLE_FIELD_OFFICER, ROLE_VIEWER)


class User(SoftDeleteMixin, BaseModel, Base):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(32), nullable=True)
    organization = Column(String(255), nullable=True)
    role = Column(String(32), nullable=False, default=ROLE_VIEWER)

    is_active = Column(Boolean, nullable=False, default=True)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)

    email_verification_token = Column(String(128), nullable=True, index=True)
    password_reset_token = Column(String(128), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("failed_login_attempts >= 0", name="ck_users_attempts_nonnegative"),
    )

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"


def is_locked(user: User, now: datetime) -> bool:
    """A lock holds while lock_until is set and still in the future."""
    return user.lock_until is not None and user.lock_until > now


def is_usable(user: Optional[User]) -> bool:
    """True for an identity that exists, is active and was not deleted."""
    return user is not None and bool(user.is_active) and user.deleted_at is None


def summarize(user: User) -> dict:
    """Identity summary attached to an authenticated request."""
    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "username": user.username,
    }
