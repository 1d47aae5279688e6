"""Administrative identity management."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.user import User
from services.credential_store import CredentialStore
from services.errors import NotFound
from services.refresh_token_store import RefreshTokenStore

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "phone_number", "organization")


class UserService:
    def __init__(self, storage: DBStorage, credentials: CredentialStore, refresh_tokens: RefreshTokenStore):
        self._storage = storage
        self._credentials = credentials
        self._refresh_tokens = refresh_tokens

    def list_users(self, role: Optional[str] = None, is_active: Optional[bool] = None,
                   page: int = 1, limit: int = 20) -> Tuple[list, int]:
        query = self._storage.get_session().query(User).filter(User.deleted_at.is_(None))
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        total = query.count()
        rows = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return rows, total

    def get_user(self, user_id: str) -> User:
        user = self._credentials.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def create_user(self, data: dict) -> User:
        user = self._credentials.create(**data)
        logger.info("User created: %s (%s)", user.email, user.role)
        return user

    def update_user(self, user_id: str, data: dict) -> User:
        """Profile fields only; password, role and status have their own paths."""
        user = self.get_user(user_id)
        for field in PROFILE_FIELDS:
            if field in data:
                setattr(user, field, data[field])
        return self._credentials.save(user)

    def update_role(self, user_id: str, role: str) -> User:
        user = self.get_user(user_id)
        user.role = role
        return self._credentials.save(user)

    def update_status(self, user_id: str, is_active: bool) -> User:
        user = self.get_user(user_id)
        user.is_active = is_active
        return self._credentials.save(user)

    def delete_user(self, user_id: str) -> None:
        """
        Soft delete: the row stays so trees and health records keep a valid
        created_by / inspected_by reference. Refresh tokens are revoked.
        """
        user = self.get_user(user_id)
        user.deleted_at = utcnow()
        user.is_active = False
        self._credentials.save(user)
        self._refresh_tokens.revoke_all(user.id)
