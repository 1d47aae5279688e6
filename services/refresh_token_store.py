"""Refresh token store: the single source of truth for token activity."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import update

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken, is_active
from services.errors import InvalidToken
from utils.security import generate_token

# 40 random bytes = 320 bits of entropy
TOKEN_BYTES = 40


class RefreshTokenStore:
    def __init__(self, storage: DBStorage, lifetime: timedelta, clock: Callable[[], datetime] = utcnow):
        self._storage = storage
        self._lifetime = lifetime
        self._clock = clock

    def _query(self):
        return self._storage.get_session().query(RefreshToken)

    @staticmethod
    def new_token() -> str:
        return generate_token(TOKEN_BYTES)

    def create(self, user_id: str, ip: Optional[str] = None, user_agent: Optional[str] = None,
               token: Optional[str] = None) -> RefreshToken:
        record = RefreshToken(
            token=token or self.new_token(),
            user_id=user_id,
            expires_at=self._clock() + self._lifetime,
            created_by_ip=ip,
            user_agent=user_agent[:512] if user_agent else None,
        )
        self._storage.new(record)
        self._storage.save()
        return record

    def find_active_by_token(self, token: str) -> Optional[RefreshToken]:
        """Returns the record only while it is neither revoked nor expired."""
        if not token:
            return None
        record = self._query().filter(RefreshToken.token == token).first()
        if record is None or not is_active(record, self._clock()):
            return None
        return record

    def revoke_all(self, user_id: str, ip: Optional[str] = None) -> int:
        """Revoke every still-unrevoked token of an identity. Returns how many."""
        now = self._clock()
        records = (
            self._query()
            .filter(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None))
            .all()
        )
        for record in records:
            record.revoked_at = now
            record.revoked_by_ip = ip
        self._storage.save()
        return len(records)

    def revoke_and_replace(self, old_token: str, new_token: str, ip: Optional[str] = None) -> RefreshToken:
        """
        Rotation: stamp the old token revoked and chain it to its successor.
        A single conditional UPDATE claims the old token, so of two concurrent
        rotations exactly one succeeds; the other gets InvalidToken.
        """
        now = self._clock()
        session = self._storage.get_session()
        result = session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.token == old_token,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .values(revoked_at=now, revoked_by_ip=ip, replaced_by_token=new_token)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            raise InvalidToken("Invalid or expired refresh token")
        self._storage.save()
        return self._query().filter(RefreshToken.token == old_token).populate_existing().one()
