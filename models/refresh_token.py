"""
RefreshToken model: opaque long-lived tokens used to mint new access tokens.
Fields:
- token (unique, indexed) - random hex string, never reused
- user_id - owning identity, indexed
- expires_at, revoked_at, revoked_by_ip
- replaced_by_token - rotation chain pointer
- created_by_ip, user_agent - origin metadata

Rows are never deleted; revocation only stamps revoked_at.
"""
from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_by_ip = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by_ip = Column(String(64), nullable=True)
    replaced_by_token = Column(String(128), nullable=True)

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} expires={self.expires_at}>"


def is_expired(token: RefreshToken, now: datetime) -> bool:
    return now >= token.expires_at


def is_active(token: RefreshToken, now: datetime) -> bool:
    return token.revoked_at is None and not is_expired(token, now)
